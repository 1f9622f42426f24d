"""Persisted record types: the head, directories, and files.

The flat store holds three record families:

- **Head** — one per filesystem; the root path and the next unused
  block id.  Its presence is what "initialized" means.
- **Directory** — one per directory, keyed by its canonical path.  It
  lists child directory *names* and embeds the records of the files it
  directly contains.
- **File** — lives inside its parent directory record, never on its
  own.  Points at exactly one block holding the file's bytes.

Records are validated on construction, so a malformed directory (two
children with one name, a file claiming a different parent) can never
be built, and therefore never persisted.  The JSON field names match
the layout older clients already wrote.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from kvfs.errors import AlreadyExistsError, CorruptRecordError, InvalidArgumentError
from kvfs.paths import ROOT, SEP


def _require_name(name: str) -> None:
    if not isinstance(name, str) or not name or SEP in name or name in {".", ".."}:
        msg = f"Invalid entry name: {name!r}"
        raise InvalidArgumentError(msg)


def _require_count(label: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        msg = f"{label} must be a non-negative integer, got {value!r}"
        raise InvalidArgumentError(msg)


@dataclass
class Head:
    """The filesystem head record."""

    root: str = ROOT
    next_block_id: int = 1

    def __post_init__(self) -> None:
        """Validate the block counter."""
        _require_count("next_block_id", self.next_block_id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored JSON layout."""
        return {"root": self.root, "nextFileBlockId": self.next_block_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Head:
        """Deserialize from the stored JSON layout."""
        return cls(root=data.get("root", ROOT), next_block_id=data["nextFileBlockId"])


@dataclass
class FileRecord:
    """Metadata for one file.

    Attributes:
        name: The file's name within its parent directory.
        path: The canonical path of the parent directory.
        size: Content length in bytes.
        utc: Last modification time, epoch milliseconds.
        block: Id of the block holding the content.

    """

    name: str
    path: str
    size: int
    utc: int
    block: int

    def __post_init__(self) -> None:
        """Validate name and numeric fields."""
        _require_name(self.name)
        _require_count("size", self.size)
        _require_count("utc", self.utc)
        _require_count("block", self.block)

    @property
    def full_path(self) -> str:
        """Return the file's own canonical path."""
        if self.path == ROOT:
            return ROOT + self.name
        return self.path + SEP + self.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored JSON layout."""
        return {
            "name": self.name,
            "path": self.path,
            "size": self.size,
            "utc": self.utc,
            "block": self.block,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileRecord:
        """Deserialize from the stored JSON layout."""
        return cls(
            name=data["name"],
            path=data["path"],
            size=data["size"],
            utc=data["utc"],
            block=data["block"],
        )


@dataclass
class DirectoryRecord:
    """Metadata for one directory.

    ``dirs`` and the names in ``files`` share one namespace: a name is
    either a child directory or a file, never both.
    """

    path: str
    dirs: list[str] = field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]
    files: list[FileRecord] = field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]

    def __post_init__(self) -> None:
        """Enforce unique names and consistent file parents."""
        seen: set[str] = set()
        for name in [*self.dirs, *(f.name for f in self.files)]:
            _require_name(name)
            if name in seen:
                msg = f"Duplicate entry {name!r} in {self.path}"
                raise AlreadyExistsError(msg)
            seen.add(name)
        for f in self.files:
            if f.path != self.path:
                msg = f"File {f.name!r} claims parent {f.path}, stored in {self.path}"
                raise InvalidArgumentError(msg)

    def child_path(self, name: str) -> str:
        """Return the canonical path of a child entry."""
        if self.path == ROOT:
            return ROOT + name
        return self.path + SEP + name

    def has_entry(self, name: str) -> bool:
        """Return True if *name* is a child directory or a file here."""
        return name in self.dirs or self.find_file(name) is not None

    def find_file(self, name: str) -> FileRecord | None:
        """Return the file record called *name*, or None."""
        for f in self.files:
            if f.name == name:
                return f
        return None

    def file_index(self, name: str) -> int | None:
        """Return the position of file *name* in ``files``, or None."""
        for i, f in enumerate(self.files):
            if f.name == name:
                return i
        return None

    def add_dir(self, name: str) -> None:
        """Append a child directory name.

        Raises:
            AlreadyExistsError: If *name* is already taken here.

        """
        _require_name(name)
        if self.has_entry(name):
            msg = f"Already exists: {self.child_path(name)}"
            raise AlreadyExistsError(msg)
        self.dirs.append(name)

    def add_file(self, record: FileRecord) -> None:
        """Append a file record.

        Raises:
            AlreadyExistsError: If the name is already taken here.
            InvalidArgumentError: If the record names another parent.

        """
        if record.path != self.path:
            msg = f"File {record.name!r} claims parent {record.path}, not {self.path}"
            raise InvalidArgumentError(msg)
        if self.has_entry(record.name):
            msg = f"Already exists: {self.child_path(record.name)}"
            raise AlreadyExistsError(msg)
        self.files.append(record)

    def entry_names(self) -> list[str]:
        """Return child directory names, then file names, in insertion order."""
        return [*self.dirs, *(f.name for f in self.files)]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored JSON layout."""
        return {
            "path": self.path,
            "files": [f.to_dict() for f in self.files],
            "dirs": list(self.dirs),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DirectoryRecord:
        """Deserialize from the stored JSON layout."""
        return cls(
            path=data["path"],
            dirs=list(data.get("dirs", [])),
            files=[FileRecord.from_dict(f) for f in data.get("files", [])],
        )


def dump_record(record: Head | DirectoryRecord) -> str:
    """Encode a record as the JSON string stored in the host store."""
    return json.dumps(record.to_dict(), separators=(",", ":"))


def load_head(text: str) -> Head:
    """Decode a stored head record.

    Raises:
        CorruptRecordError: If *text* is not a valid head record.

    """
    try:
        return Head.from_dict(json.loads(text))
    except (json.JSONDecodeError, KeyError, TypeError, AttributeError, InvalidArgumentError) as e:
        msg = f"Corrupt head record: {e}"
        raise CorruptRecordError(msg) from e


def load_directory(text: str) -> DirectoryRecord:
    """Decode a stored directory record.

    Raises:
        CorruptRecordError: If *text* is not a valid directory record.

    """
    try:
        return DirectoryRecord.from_dict(json.loads(text))
    except (
        json.JSONDecodeError,
        KeyError,
        TypeError,
        AttributeError,
        InvalidArgumentError,
        AlreadyExistsError,
    ) as e:
        msg = f"Corrupt directory record: {e}"
        raise CorruptRecordError(msg) from e

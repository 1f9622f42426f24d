"""Key-value store backends and the record key scheme.

The filesystem persists everything (the head record, directory records,
block contents) as string values in a flat host store that only knows
``get`` / ``set`` / ``remove``.  There are no transactions and no way to
list keys by prefix, so every record must be reachable from a key the
filesystem can compute.

Backends:
    - ``MemoryStore`` — a plain dict, for tests and throwaway instances.
    - ``JsonFileStore`` — the same dict, written to a JSON file after
      every mutation so data survives restarts.

Any object with the three ``KeyValueStore`` methods can be used instead,
e.g. an adapter over a host settings API.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from kvfs.errors import OperationFailedError

if TYPE_CHECKING:
    from pathlib import Path


class RecordKind(StrEnum):
    """The record families stored under distinct key namespaces."""

    CONFIG = "config"
    DIR = "dir"
    BLOCK = "block"


def make_key(prefix: str, kind: RecordKind, sub_key: str | int) -> str:
    """Build the store key for a record.

    The kind is separated from the sub-key by a ``:`` and kinds never
    contain one, so distinct ``(kind, sub_key)`` pairs never collide::

        make_key("CBFS", RecordKind.DIR, "/data") → "CBFS$dir:/data"

    """
    return f"{prefix}${kind.value}:{sub_key}"


class KeyValueStore(Protocol):
    """Protocol for the host-provided string store."""

    def get(self, key: str) -> str | None:
        """Return the value stored under *key*, or None if absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    def remove(self, key: str) -> None:
        """Delete *key*.  Removing an absent key is not an error."""
        ...


class MemoryStore:
    """Dict-backed store living only as long as the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        """Create a store, optionally pre-populated (copied, not referenced)."""
        self._data: dict[str, str] = dict(initial) if initial else {}

    def get(self, key: str) -> str | None:
        """Return the value for *key*, or None."""
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        """Set *key* to *value*."""
        self._data[key] = value

    def remove(self, key: str) -> None:
        """Remove *key* if present."""
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        """Return every stored key."""
        return list(self._data)

    def snapshot(self) -> dict[str, str]:
        """Return a copy of the whole mapping."""
        return dict(self._data)

    def __len__(self) -> int:
        """Return the number of stored keys."""
        return len(self._data)


class JsonFileStore(MemoryStore):
    """Store that mirrors its contents into a JSON file.

    The file is read once on construction (if it exists) and rewritten
    in full after each ``set`` or ``remove``.  Writes go to a sibling
    temporary file first and are then renamed over the target, so a
    crash leaves either the old or the new file, never half of one.
    """

    def __init__(self, path: Path) -> None:
        """Open (or prepare to create) the store file at *path*.

        Raises:
            OperationFailedError: If the file exists but is not a JSON
                object of strings.

        """
        super().__init__()
        self._path = path
        if path.exists():
            self._data = self._load(path)

    @property
    def path(self) -> Path:
        """Return the backing file path."""
        return self._path

    @staticmethod
    def _load(path: Path) -> dict[str, str]:
        try:
            data = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            msg = f"Cannot load store file {path}: {e}"
            raise OperationFailedError(msg) from e
        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            msg = f"Store file is not a string mapping: {path}"
            raise OperationFailedError(msg)
        return data

    def set(self, key: str, value: str) -> None:
        """Set *key* and flush to disk."""
        super().set(key, value)
        self.flush()

    def remove(self, key: str) -> None:
        """Remove *key* and flush to disk."""
        super().remove(key)
        self.flush()

    def flush(self) -> None:
        """Write the whole mapping to the backing file.

        Raises:
            OperationFailedError: If the file cannot be written.

        """
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            tmp.write_text(json.dumps(self._data, indent=2))
            tmp.replace(self._path)
        except OSError as e:
            msg = f"Cannot write store file {self._path}: {e}"
            raise OperationFailedError(msg) from e

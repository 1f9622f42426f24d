"""Directory tree stored as flat, independently persisted records.

Every directory is one record keyed by its canonical path, so looking
one up is a single store read: no walking from the root.  A file is
found by reading its parent directory and scanning the parent's file
list, which is fine because directories are expected to stay small.

The root ``/`` holds only the logical roots created at initialization.
It never gains new directories or files, and nothing can be moved into
or out of it.

The store has no transactions.  When a change touches two records (a
move between directories), the record gaining the entry is written
before the record losing it.  An interruption in between leaves the
file listed twice rather than not at all, and the duplicate is easy to
spot and remove.
"""

from __future__ import annotations

from collections import deque
from dataclasses import replace
from typing import TYPE_CHECKING

from kvfs.errors import (
    AlreadyExistsError,
    DirNotFoundError,
    FileNotFound,
    InvalidOperationError,
    ParentNotFoundError,
    SourceMissingError,
)
from kvfs.paths import ROOT, parse
from kvfs.records import DirectoryRecord, FileRecord, dump_record, load_directory
from kvfs.store import RecordKind, make_key

if TYPE_CHECKING:
    from collections.abc import Iterator

    from kvfs.logging import Logger
    from kvfs.store import KeyValueStore


class DirectoryTree:
    """Lookup, insertion and removal of directory and file entries."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        prefix: str,
        logger: Logger | None = None,
    ) -> None:
        """Create a tree over *store*, namespacing keys with *prefix*."""
        self._store = store
        self._prefix = prefix
        self._logger = logger

    def _key(self, path: str) -> str:
        return make_key(self._prefix, RecordKind.DIR, path)

    def _log(self, message: str, path: str) -> None:
        if self._logger is not None:
            self._logger.info(message, source="tree", path=path)

    # -- Raw record access ------------------------------------------------

    def find_directory(self, path: str) -> DirectoryRecord | None:
        """Return the directory record at canonical *path*, or None."""
        raw = self._store.get(self._key(path))
        if raw is None:
            return None
        return load_directory(raw)

    def put_directory(self, record: DirectoryRecord) -> None:
        """Persist a directory record under its own path."""
        self._store.set(self._key(record.path), dump_record(record))

    def delete_directory(self, path: str) -> None:
        """Remove a directory record.  Children are not touched."""
        self._store.remove(self._key(path))

    # -- Lookup -------------------------------------------------------------

    def get_directory(self, path: str) -> DirectoryRecord:
        """Return the directory record at canonical *path*.

        Raises:
            DirNotFoundError: If no such directory exists.

        """
        record = self.find_directory(path)
        if record is None:
            msg = f"Directory not found: {path}"
            raise DirNotFoundError(msg)
        return record

    def find_file(self, path: str) -> FileRecord | None:
        """Return the file record at canonical *path*, or None."""
        parsed = parse(path)
        if not parsed.base:
            return None
        parent = self.find_directory(parsed.dir)
        if parent is None:
            return None
        return parent.find_file(parsed.base)

    def get_file(self, path: str) -> FileRecord:
        """Return the file record at canonical *path*.

        Raises:
            FileNotFound: If the parent or the file does not exist.

        """
        record = self.find_file(path)
        if record is None:
            msg = f"File not found: {path}"
            raise FileNotFound(msg)
        return record

    def _get_parent(self, path: str) -> DirectoryRecord:
        if path == ROOT:
            msg = "The root directory cannot hold new entries"
            raise InvalidOperationError(msg)
        parent = self.find_directory(path)
        if parent is None:
            msg = f"Parent directory not found: {path}"
            raise ParentNotFoundError(msg)
        return parent

    # -- Mutation -----------------------------------------------------------

    def create_directory(self, parent_path: str, name: str) -> DirectoryRecord:
        """Create an empty directory *name* inside *parent_path*.

        The new record is written before the parent that lists it.

        Raises:
            InvalidOperationError: If *parent_path* is the root.
            ParentNotFoundError: If the parent does not exist.
            AlreadyExistsError: If *name* is taken by a directory or file.

        """
        parent = self._get_parent(parent_path)
        parent.add_dir(name)
        record = DirectoryRecord(path=parent.child_path(name))
        self.put_directory(record)
        self.put_directory(parent)
        self._log("created directory", record.path)
        return record

    def ensure_name_free(self, parent_path: str, name: str) -> DirectoryRecord:
        """Check that *name* can be added to *parent_path* and return the parent.

        Raises:
            InvalidOperationError: If *parent_path* is the root.
            ParentNotFoundError: If the parent does not exist.
            AlreadyExistsError: If *name* is taken by a directory or file.

        """
        parent = self._get_parent(parent_path)
        if parent.has_entry(name):
            msg = f"Already exists: {parent.child_path(name)}"
            raise AlreadyExistsError(msg)
        return parent

    def insert_file(self, record: FileRecord) -> None:
        """Append *record* to its parent's file list and persist the parent.

        Raises:
            InvalidOperationError: If the parent is the root.
            ParentNotFoundError: If the parent does not exist.
            AlreadyExistsError: If the name is already taken.

        """
        parent = self._get_parent(record.path)
        parent.add_file(record)
        self.put_directory(parent)
        self._log("created file", record.full_path)

    def update_file(self, record: FileRecord) -> None:
        """Replace the stored entry for *record* with its current fields.

        Raises:
            DirNotFoundError: If the parent does not exist.
            SourceMissingError: If the parent no longer lists the file.

        """
        parent = self.get_directory(record.path)
        index = parent.file_index(record.name)
        if index is None:
            msg = f"File not listed in its parent: {record.full_path}"
            raise SourceMissingError(msg)
        parent.files[index] = record
        self.put_directory(parent)

    def remove_file(self, path: str, name: str) -> FileRecord:
        """Drop file *name* from directory *path* and return its record.

        The caller owns the returned record's block and must free it.

        Raises:
            DirNotFoundError: If the directory does not exist.
            FileNotFound: If the directory has no such file.

        """
        parent = self.get_directory(path)
        index = parent.file_index(name)
        if index is None:
            msg = f"File not found: {parent.child_path(name)}"
            raise FileNotFound(msg)
        removed = parent.files.pop(index)
        self.put_directory(parent)
        self._log("removed file", removed.full_path)
        return removed

    def move_file(self, record: FileRecord, new_parent_path: str, new_name: str) -> FileRecord:
        """Move *record* to *new_parent_path* under *new_name*.

        Both parents are validated before anything is written.  When the
        parent is unchanged, the record is renamed in place with a single
        write.

        Returns:
            The moved file record.

        Raises:
            InvalidOperationError: If either parent is the root.
            ParentNotFoundError: If the destination parent does not exist.
            DirNotFoundError: If the source parent does not exist.
            SourceMissingError: If the source parent does not list the file.
            AlreadyExistsError: If *new_name* is taken at the destination.

        """
        if record.path == ROOT:
            msg = "Files cannot be moved out of the root directory"
            raise InvalidOperationError(msg)
        old_parent = self.get_directory(record.path)
        index = old_parent.file_index(record.name)
        if index is None:
            msg = f"File not listed in its parent: {record.full_path}"
            raise SourceMissingError(msg)

        moved = replace(old_parent.files[index], name=new_name, path=new_parent_path)
        if new_parent_path == old_parent.path:
            # The source's own name counts as taken.
            if old_parent.has_entry(new_name):
                msg = f"Already exists: {old_parent.child_path(new_name)}"
                raise AlreadyExistsError(msg)
            old_parent.files[index] = moved
            self.put_directory(old_parent)
        else:
            new_parent = self._get_parent(new_parent_path)
            new_parent.add_file(moved)
            del old_parent.files[index]
            self.put_directory(new_parent)
            self.put_directory(old_parent)
        self._log(f"moved file from {record.full_path}", moved.full_path)
        return moved

    # -- Traversal ----------------------------------------------------------

    def walk(self, start: str = ROOT) -> Iterator[DirectoryRecord]:
        """Yield directory records breadth-first from *start*.

        Children listed but missing from the store are skipped.
        """
        top = self.find_directory(start)
        if top is None:
            return
        queue: deque[DirectoryRecord] = deque([top])
        while queue:
            current = queue.popleft()
            yield current
            for name in current.dirs:
                child = self.find_directory(current.child_path(name))
                if child is not None:
                    queue.append(child)

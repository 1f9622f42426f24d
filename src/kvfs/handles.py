"""Open file handles — an in-memory table of (path, flags) pairs.

Opening a file yields a **handle**: an integer naming an entry in the
handle table.  The table is not persisted; it lives exactly as long as
the filesystem instance that owns it.

A handle does not pin its file.  Every ``resolve`` re-reads the file
record by path, so a handle always sees the latest size and mtime, and
a handle whose file was removed resolves to ``FileNotFound``.

Handle values are seeded from the clock and probed upward (wrapping
inside ``handle_range``) until a free value is found.  They are unique
among open handles only; a closed value may come back later.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import IntFlag
from typing import TYPE_CHECKING

from kvfs.config import HANDLE_RANGE, HANDLE_SEED_OFFSET
from kvfs.errors import AlreadyExistsError, FileNotFound, InvalidHandleError, OperationFailedError

if TYPE_CHECKING:
    from collections.abc import Callable

    from kvfs.logging import Logger
    from kvfs.records import FileRecord
    from kvfs.tree import DirectoryTree


class OpenFlags(IntFlag):
    """Bit flags accepted by ``open``; combine with ``|``."""

    READ = 0x01
    WRITE = 0x02
    READ_WRITE = 0x04
    APPEND = 0x08
    CREATE = 0x10
    EXCLUSIVE = 0x20
    TRUNCATE = 0x40


def now_ms() -> int:
    """Return the current time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class OpenHandle:
    """The table entry behind a handle."""

    path: str
    flags: OpenFlags


@dataclass(frozen=True)
class ResolvedHandle:
    """A handle's entry together with the live file record."""

    handle: int
    path: str
    flags: OpenFlags
    file: FileRecord


class HandleTable:
    """Registry of open handles for one filesystem instance."""

    def __init__(
        self,
        *,
        seed_offset: int = HANDLE_SEED_OFFSET,
        handle_range: int = HANDLE_RANGE,
        clock: Callable[[], int] = now_ms,
        logger: Logger | None = None,
    ) -> None:
        """Create an empty table.

        Args:
            seed_offset: Added to the clock reading to seed a new handle.
            handle_range: Handles are taken modulo this value.
            clock: Returns the current time in milliseconds.
            logger: Receives open/close events.

        """
        self._handles: dict[int, OpenHandle] = {}
        self._seed_offset = seed_offset
        self._range = handle_range
        self._clock = clock
        self._logger = logger

    def _next_value(self) -> int:
        if len(self._handles) >= self._range:
            msg = "Handle table is full"
            raise OperationFailedError(msg)
        handle = (self._clock() + self._seed_offset) % self._range
        while handle in self._handles:
            handle = (handle + 1) % self._range
        return handle

    def register(self, path: str, flags: OpenFlags) -> int:
        """Add an entry for an already-validated open and return its handle.

        Raises:
            OperationFailedError: If every handle value is in use.

        """
        handle = self._next_value()
        self._handles[handle] = OpenHandle(path=path, flags=flags)
        if self._logger is not None:
            self._logger.debug(f"opened handle {handle}", source="handles", path=path)
        return handle

    def open(
        self,
        path: str,
        flags: OpenFlags,
        *,
        tree: DirectoryTree,
        create: Callable[[str], FileRecord],
    ) -> int:
        """Open the file at canonical *path* and return a new handle.

        A missing file is created through *create* only when ``CREATE``
        is set.  ``CREATE | EXCLUSIVE`` requires that the file not exist.

        Raises:
            FileNotFound: If the file is missing and ``CREATE`` is not set.
            AlreadyExistsError: If ``CREATE | EXCLUSIVE`` finds a file.
            OperationFailedError: If every handle value is in use.

        """
        existing = tree.find_file(path)
        if existing is None:
            if not flags & OpenFlags.CREATE:
                msg = f"File not found: {path}"
                raise FileNotFound(msg)
            create(path)
        elif flags & OpenFlags.CREATE and flags & OpenFlags.EXCLUSIVE:
            msg = f"Already exists: {path}"
            raise AlreadyExistsError(msg)
        return self.register(path, flags)

    def lookup(self, handle: int) -> OpenHandle:
        """Return the table entry for *handle*.

        Raises:
            InvalidHandleError: If the handle is not open.

        """
        entry = self._handles.get(handle)
        if entry is None:
            msg = f"Bad file handle: {handle}"
            raise InvalidHandleError(msg)
        return entry

    def resolve(self, handle: int, tree: DirectoryTree) -> ResolvedHandle:
        """Return the handle's entry with the file record as currently stored.

        Raises:
            InvalidHandleError: If the handle is not open.
            FileNotFound: If the file was removed or renamed away.

        """
        entry = self.lookup(handle)
        return ResolvedHandle(
            handle=handle,
            path=entry.path,
            flags=entry.flags,
            file=tree.get_file(entry.path),
        )

    def close(self, handle: int) -> None:
        """Remove *handle* from the table.

        Raises:
            InvalidHandleError: If the handle is not open.

        """
        entry = self._handles.pop(handle, None)
        if entry is None:
            msg = f"Bad file handle: {handle}"
            raise InvalidHandleError(msg)
        if self._logger is not None:
            self._logger.debug(f"closed handle {handle}", source="handles", path=entry.path)

    def list_handles(self) -> dict[int, OpenHandle]:
        """Return a snapshot of all open handles."""
        return dict(self._handles)

    def clear(self) -> None:
        """Forget every open handle."""
        self._handles.clear()

    def __contains__(self, handle: object) -> bool:
        """Return True if *handle* is open."""
        return handle in self._handles

    def __len__(self) -> int:
        """Return the number of open handles."""
        return len(self._handles)

"""The public filesystem API.

``KvFileSystem`` ties the pieces together.  A request enters through
path resolution, consults the directory tree (and, for handle-based
calls, the handle table), moves bytes through the block store, and
writes changed directory records back to the key-value store::

    fs = KvFileSystem(MemoryStore())
    fs.initialize()
    fd = fs.open("notes.txt", OpenFlags.CREATE | OpenFlags.WRITE)
    fs.write(fd, b"hello")
    fs.close(fd)
    fs.read_whole("notes.txt")          # b"hello"

File paths are relative to a logical root: ``/data`` for ``open``,
``stat`` and friends, ``/assets`` for ``open_asset`` / ``stat_asset``.
Directory operations (``mkdir``, ``readdir``) take absolute paths from
``/``.

A fresh store holds ``/`` with the two logical roots beneath it.  Every
public call validates its arguments before touching the store, and
every call runs under one re-entrant lock, so a single instance may be
shared between threads.  Nothing guards against two instances (or two
processes) sharing one store.
"""

from __future__ import annotations

import contextlib
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from kvfs.blocks import BlockStore
from kvfs.codec import get_codec
from kvfs.config import FsConfig
from kvfs.errors import (
    ArgumentTypeError,
    FsError,
    InvalidArgumentError,
    InvalidOperationError,
    NotInitializedError,
)
from kvfs.handles import HandleTable, OpenFlags, now_ms
from kvfs.io import read_file, replace_content, truncate_file, write_file
from kvfs.logging import Logger
from kvfs.paths import ROOT, parse, resolve_dir_path, resolve_file_path
from kvfs.records import DirectoryRecord, FileRecord, Head
from kvfs.store import MemoryStore
from kvfs.tree import DirectoryTree

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from kvfs.store import KeyValueStore

_ALL_FLAGS = sum(flag.value for flag in OpenFlags)


@dataclass(frozen=True)
class FileStat:
    """Size and modification time of a file (returned by stat)."""

    size: int
    mtime_ms: int


@dataclass(frozen=True)
class ResetReport:
    """How many records a reset deleted."""

    deleted_files: int
    deleted_dirs: int


def _require_str(label: str, value: object) -> str:
    if not isinstance(value, str):
        msg = f"{label} must be a string, got {type(value).__name__}"
        raise ArgumentTypeError(msg)
    return value


def _require_handle(value: object) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        msg = f"handle must be an integer, got {type(value).__name__}"
        raise ArgumentTypeError(msg)
    return value


def _require_flags(value: object) -> OpenFlags:
    if not isinstance(value, int) or isinstance(value, bool):
        msg = f"flags must be an integer, got {type(value).__name__}"
        raise ArgumentTypeError(msg)
    if value & ~_ALL_FLAGS:
        msg = f"Unknown open flags: {value:#x}"
        raise InvalidArgumentError(msg)
    return OpenFlags(value)


def _require_optional_int(label: str, value: object) -> None:
    if value is not None and (not isinstance(value, int) or isinstance(value, bool)):
        msg = f"{label} must be an integer, got {type(value).__name__}"
        raise ArgumentTypeError(msg)


def _encode(data: object, encoding: str | None) -> bytes | bytearray | memoryview:
    if encoding is not None:
        _require_str("encoding", encoding)
    if isinstance(data, str):
        try:
            return data.encode(encoding or "utf-8")
        except LookupError as e:
            msg = f"Unknown encoding: {encoding}"
            raise InvalidArgumentError(msg) from e
    if isinstance(data, bytes | bytearray | memoryview):
        return data
    msg = f"data must be str or bytes-like, got {type(data).__name__}"
    raise ArgumentTypeError(msg)


class KvFileSystem:
    """A hierarchical filesystem stored in a flat key-value store."""

    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        config: FsConfig | None = None,
        logger: Logger | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Create a filesystem over *store* (a fresh ``MemoryStore`` if None).

        Creating the object does not touch the store; call
        ``initialize()`` (or open a file) to lay down the root records.

        Args:
            store: The host key-value store.
            config: Key prefix, logical roots, codec, handle settings.
            logger: Event log; a private one is created if None.
            clock: Returns the current time in epoch milliseconds.

        """
        self._store: KeyValueStore = store if store is not None else MemoryStore()
        self._config = config if config is not None else FsConfig()
        self._logger = logger if logger is not None else Logger()
        self._clock = clock
        self._lock = threading.RLock()
        prefix = self._config.key_prefix
        self._blocks = BlockStore(
            self._store, get_codec(self._config.codec), prefix=prefix, logger=self._logger
        )
        self._tree = DirectoryTree(self._store, prefix=prefix, logger=self._logger)
        self._handles = HandleTable(
            seed_offset=self._config.handle_seed_offset,
            handle_range=self._config.handle_range,
            clock=clock,
            logger=self._logger,
        )

    @property
    def config(self) -> FsConfig:
        """Return the instance configuration."""
        return self._config

    @property
    def logger(self) -> Logger:
        """Return the event log."""
        return self._logger

    @property
    def store(self) -> KeyValueStore:
        """Return the underlying key-value store."""
        return self._store

    @property
    def tree(self) -> DirectoryTree:
        """Return the directory tree."""
        return self._tree

    @property
    def blocks(self) -> BlockStore:
        """Return the block store."""
        return self._blocks

    @property
    def handles(self) -> HandleTable:
        """Return the open handle table."""
        return self._handles

    @contextlib.contextmanager
    def _operation(self, name: str, path: str | None = None) -> Iterator[None]:
        """Serialize a public call and log it if it fails."""
        with self._lock:
            try:
                yield
            except FsError as e:
                self._logger.warning(f"{name} failed: {e}", source="fs", path=path)
                raise

    # -- Lifecycle ----------------------------------------------------------

    def is_initialized(self) -> bool:
        """Return True if the store holds a filesystem head record."""
        with self._lock:
            return self._store.get(self._blocks.head_key) is not None

    def initialize(self) -> bool:
        """Create the root directory and the logical roots.

        Does nothing if the filesystem already exists.

        Returns:
            True if the filesystem was created, False if it already existed.

        """
        with self._operation("initialize"):
            if self.is_initialized():
                return False
            roots = self._config.logical_roots
            self._blocks.save_head(Head(root=ROOT, next_block_id=1))
            self._tree.put_directory(
                DirectoryRecord(path=ROOT, dirs=[r.lstrip("/") for r in roots])
            )
            for root in roots:
                self._tree.put_directory(DirectoryRecord(path=root))
            self._logger.info("initialized filesystem", source="fs", path=ROOT)
            return True

    def _require_initialized(self) -> None:
        if not self.is_initialized():
            msg = "Filesystem is not initialized"
            raise NotInitializedError(msg)

    def reset(self) -> ResetReport:
        """Delete every directory, file and block, then the head record.

        Open handles are forgotten as well.

        Raises:
            NotInitializedError: If there is no filesystem to reset.

        """
        with self._operation("reset"):
            self._require_initialized()
            deleted_files = 0
            deleted_dirs = 0
            for directory in self._tree.walk(ROOT):
                for f in directory.files:
                    self._blocks.free(f.block)
                    deleted_files += 1
                self._tree.delete_directory(directory.path)
                deleted_dirs += 1
            self._blocks.remove_head()
            self._handles.clear()
            self._logger.info(
                f"reset filesystem: {deleted_files} files, {deleted_dirs} directories",
                source="fs",
            )
            return ResetReport(deleted_files=deleted_files, deleted_dirs=deleted_dirs)

    # -- Files --------------------------------------------------------------

    def _create_file(self, path: str) -> FileRecord:
        """Create an empty file at canonical *path*.

        The name is checked before a block is allocated, so a rejected
        create leaves no orphan block behind.
        """
        parsed = parse(path)
        self._tree.ensure_name_free(parsed.dir, parsed.base)
        block = self._blocks.allocate()
        record = FileRecord(name=parsed.base, path=parsed.dir, size=0, utc=self._clock(), block=block)
        try:
            self._tree.insert_file(record)
        except FsError:
            self._blocks.free(block)
            raise
        return record

    def _open(self, root: str, path: object, flags: object) -> int:
        path = _require_str("path", path)
        open_flags = _require_flags(flags)
        with self._operation("open", path):
            if self._config.auto_initialize:
                self.initialize()
            self._require_initialized()
            target = resolve_file_path(root, path)
            handle = self._handles.open(
                target, open_flags, tree=self._tree, create=self._create_file
            )
            if open_flags & OpenFlags.TRUNCATE:
                try:
                    record = self._tree.get_file(target)
                    if record.size:
                        truncate_file(record, 0, self._blocks, self._tree, clock=self._clock)
                except FsError:
                    self._handles.close(handle)
                    raise
            return handle

    def open(self, path: str, flags: int = OpenFlags.READ) -> int:
        """Open a file under the data root and return a handle.

        Raises:
            ArgumentTypeError: If *path* or *flags* has the wrong type.
            FileNotFound: If the file is missing and ``CREATE`` is not set.
            AlreadyExistsError: If ``CREATE | EXCLUSIVE`` finds the file,
                or a directory already uses the name.
            ParentNotFoundError: If the parent directory does not exist.
            InvalidOperationError: If *path* ends in a separator.

        """
        return self._open(self._config.data_root, path, flags)

    def open_asset(self, path: str, flags: int = OpenFlags.READ) -> int:
        """Open a file under the assets root and return a handle."""
        return self._open(self._config.assets_root, path, flags)

    def close(self, handle: int) -> None:
        """Close a handle.

        Raises:
            InvalidHandleError: If the handle is not open.

        """
        handle = _require_handle(handle)
        with self._operation("close"):
            self._handles.close(handle)

    def _stat(self, root: str, path: object) -> FileStat:
        path = _require_str("path", path)
        with self._operation("stat", path):
            self._require_initialized()
            record = self._tree.get_file(resolve_file_path(root, path))
            return FileStat(size=record.size, mtime_ms=record.utc)

    def stat(self, path: str) -> FileStat:
        """Return size and mtime of a file under the data root.

        Raises:
            NotInitializedError: If the filesystem does not exist.
            FileNotFound: If there is no such file.

        """
        return self._stat(self._config.data_root, path)

    def stat_asset(self, path: str) -> FileStat:
        """Return size and mtime of a file under the assets root."""
        return self._stat(self._config.assets_root, path)

    def exists(self, path: str) -> bool:
        """Return True if a file exists at *path* under the data root."""
        path = _require_str("path", path)
        with self._lock:
            if not self.is_initialized() or path.endswith("/"):
                return False
            try:
                target = resolve_file_path(self._config.data_root, path)
            except InvalidOperationError:
                return False
            return self._tree.find_file(target) is not None

    def read(
        self,
        handle: int,
        buffer: bytearray | memoryview,
        *,
        offset: int = 0,
        length: int | None = None,
        position: int = 0,
    ) -> int:
        """Read from an open file into *buffer* and return the byte count.

        Raises:
            ArgumentTypeError: If *buffer* is not writable bytes.
            InvalidHandleError: If the handle is not open.
            FileNotFound: If the file was removed since it was opened.
            InvalidArgumentError: If a number is negative or out of range.

        """
        handle = _require_handle(handle)
        if not isinstance(buffer, bytearray | memoryview) or (
            isinstance(buffer, memoryview) and buffer.readonly
        ):
            msg = f"buffer must be a writable bytearray or memoryview, got {type(buffer).__name__}"
            raise ArgumentTypeError(msg)
        for label, value in (("offset", offset), ("length", length), ("position", position)):
            _require_optional_int(label, value)
        with self._operation("read"):
            resolved = self._handles.resolve(handle, self._tree)
            result = read_file(
                resolved.file,
                self._blocks,
                buffer,
                offset=offset,
                length=length,
                position=position,
            )
            return result.length

    def write(
        self,
        handle: int,
        buffer: bytes | bytearray | memoryview,
        *,
        offset: int = 0,
        length: int | None = None,
        position: int = 0,
    ) -> int:
        """Write from *buffer* into an open file and return the byte count.

        Handles opened with ``APPEND`` always write at the end of the
        file, whatever *position* says.

        Raises:
            ArgumentTypeError: If *buffer* is not bytes-like.
            InvalidHandleError: If the handle is not open.
            FileNotFound: If the file was removed since it was opened.
            InvalidArgumentError: If a number is negative or out of range.

        """
        handle = _require_handle(handle)
        if not isinstance(buffer, bytes | bytearray | memoryview):
            msg = f"buffer must be bytes-like, got {type(buffer).__name__}"
            raise ArgumentTypeError(msg)
        for label, value in (("offset", offset), ("length", length), ("position", position)):
            _require_optional_int(label, value)
        with self._operation("write"):
            resolved = self._handles.resolve(handle, self._tree)
            if resolved.flags & OpenFlags.APPEND:
                position = resolved.file.size
            result = write_file(
                resolved.file,
                buffer,
                self._blocks,
                self._tree,
                clock=self._clock,
                offset=offset,
                length=length,
                position=position,
            )
            return result.length

    def read_whole(self, path: str, encoding: str | None = None) -> bytes | str:
        """Return the full content of a file under the data root.

        Returns:
            The content as bytes, or decoded to ``str`` if *encoding* is given.

        Raises:
            NotInitializedError: If the filesystem does not exist.
            FileNotFound: If there is no such file.
            InvalidArgumentError: If *encoding* is unknown or does not fit the data.

        """
        path = _require_str("path", path)
        if encoding is not None:
            _require_str("encoding", encoding)
        with self._operation("read_whole", path):
            self._require_initialized()
            record = self._tree.get_file(resolve_file_path(self._config.data_root, path))
            result = read_file(record, self._blocks)
            data = bytes(result.buffer[: result.length])
            if encoding is None:
                return data
            try:
                return data.decode(encoding)
            except (LookupError, UnicodeDecodeError) as e:
                msg = f"Cannot decode {path} as {encoding}: {e}"
                raise InvalidArgumentError(msg) from e

    def write_whole(
        self,
        target: str | int,
        data: str | bytes | bytearray | memoryview,
        encoding: str | None = None,
    ) -> int:
        """Replace the full content of a file and return the new size.

        *target* is a path under the data root or an open handle.  A
        missing file named by path is created if its parent exists.
        ``str`` data is encoded with *encoding* (UTF-8 by default).

        Raises:
            ArgumentTypeError: If *target* or *data* has the wrong type.
            NotInitializedError: If the filesystem does not exist.
            ParentNotFoundError: If a new file's parent does not exist.
            InvalidHandleError: If *target* is a handle that is not open.

        """
        if isinstance(target, bool) or not isinstance(target, str | int):
            msg = f"target must be a path or a handle, got {type(target).__name__}"
            raise ArgumentTypeError(msg)
        payload = _encode(data, encoding)
        label = target if isinstance(target, str) else None
        with self._operation("write_whole", label):
            self._require_initialized()
            if isinstance(target, str):
                path = resolve_file_path(self._config.data_root, target)
                record = self._tree.find_file(path)
                if record is None:
                    record = self._create_file(path)
            else:
                record = self._handles.resolve(target, self._tree).file
            updated = replace_content(record, payload, self._blocks, self._tree, clock=self._clock)
            return updated.size

    def remove(self, path: str) -> None:
        """Delete a file under the data root and free its block.

        Open handles on the file are left dangling.

        Raises:
            NotInitializedError: If the filesystem does not exist.
            FileNotFound: If there is no such file.

        """
        path = _require_str("path", path)
        with self._operation("remove", path):
            self._require_initialized()
            target = resolve_file_path(self._config.data_root, path)
            parsed = parse(target)
            removed = self._tree.remove_file(parsed.dir, parsed.base)
            self._blocks.free(removed.block)

    def rename(self, old_path: str, new_path: str) -> None:
        """Move or rename a file within the data root.

        Raises:
            InvalidOperationError: If either path ends in a separator.
            FileNotFound: If *old_path* does not exist.
            AlreadyExistsError: If *new_path* is already taken.
            ParentNotFoundError: If the destination directory does not exist.

        """
        old_path = _require_str("old_path", old_path)
        new_path = _require_str("new_path", new_path)
        with self._operation("rename", old_path):
            self._require_initialized()
            root = self._config.data_root
            source = resolve_file_path(root, old_path)
            destination = resolve_file_path(root, new_path)
            record = self._tree.get_file(source)
            parsed = parse(destination)
            self._tree.move_file(record, parsed.dir, parsed.base)

    # -- Directories ----------------------------------------------------------

    def mkdir(self, path: str) -> None:
        """Create one directory level at absolute *path*.

        Intermediate directories are never created.

        Raises:
            InvalidOperationError: If the parent is ``/`` (or *path* is ``/``).
            ParentNotFoundError: If the parent directory does not exist.
            AlreadyExistsError: If the name is taken by a directory or file.

        """
        path = _require_str("path", path)
        with self._operation("mkdir", path):
            self._require_initialized()
            target = resolve_dir_path(path)
            if target == ROOT:
                msg = "Cannot create the root directory"
                raise InvalidOperationError(msg)
            parsed = parse(target)
            self._tree.create_directory(parsed.dir, parsed.base)

    def readdir(self, path: str) -> list[str]:
        """List a directory at absolute *path*: subdirectories, then files.

        Raises:
            NotInitializedError: If the filesystem does not exist.
            DirNotFoundError: If there is no such directory.

        """
        path = _require_str("path", path)
        with self._operation("readdir", path):
            self._require_initialized()
            return self._tree.get_directory(resolve_dir_path(path)).entry_names()

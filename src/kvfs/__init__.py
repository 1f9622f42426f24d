"""kvfs — a hierarchical filesystem stored in a flat key-value store.

Re-exports public symbols so callers can write::

    from kvfs import KvFileSystem, MemoryStore, OpenFlags
"""

from kvfs.blocks import BlockStore
from kvfs.codec import Base64Codec, BlockCodec, Latin1Codec, get_codec
from kvfs.config import ConfigError, FsConfig, load_config
from kvfs.errors import (
    AlreadyExistsError,
    ArgumentTypeError,
    BlockNotFoundError,
    CorruptRecordError,
    DirNotFoundError,
    ErrorCode,
    FileNotFound,
    FsError,
    InvalidArgumentError,
    InvalidHandleError,
    InvalidOperationError,
    NotFoundError,
    NotInitializedError,
    OperationFailedError,
    ParentNotFoundError,
    SourceMissingError,
    StoreUnavailableError,
)
from kvfs.filesystem import FileStat, KvFileSystem, ResetReport
from kvfs.handles import HandleTable, OpenFlags, OpenHandle, ResolvedHandle
from kvfs.io import (
    MAX_FILE_SIZE,
    ReadResult,
    WriteResult,
    read_file,
    replace_content,
    truncate_file,
    write_file,
)
from kvfs.logging import LogEntry, Logger, LogLevel
from kvfs.records import DirectoryRecord, FileRecord, Head
from kvfs.store import JsonFileStore, KeyValueStore, MemoryStore, RecordKind, make_key
from kvfs.tree import DirectoryTree

__all__ = [
    "MAX_FILE_SIZE",
    "AlreadyExistsError",
    "ArgumentTypeError",
    "Base64Codec",
    "BlockCodec",
    "BlockNotFoundError",
    "BlockStore",
    "ConfigError",
    "CorruptRecordError",
    "DirNotFoundError",
    "DirectoryRecord",
    "DirectoryTree",
    "ErrorCode",
    "FileNotFound",
    "FileRecord",
    "FileStat",
    "FsConfig",
    "FsError",
    "HandleTable",
    "Head",
    "InvalidArgumentError",
    "InvalidHandleError",
    "InvalidOperationError",
    "JsonFileStore",
    "KeyValueStore",
    "KvFileSystem",
    "Latin1Codec",
    "LogEntry",
    "LogLevel",
    "Logger",
    "MemoryStore",
    "NotFoundError",
    "NotInitializedError",
    "OpenFlags",
    "OpenHandle",
    "OperationFailedError",
    "ParentNotFoundError",
    "ReadResult",
    "RecordKind",
    "ResetReport",
    "ResolvedHandle",
    "SourceMissingError",
    "StoreUnavailableError",
    "WriteResult",
    "get_codec",
    "load_config",
    "make_key",
    "read_file",
    "replace_content",
    "truncate_file",
    "write_file",
]

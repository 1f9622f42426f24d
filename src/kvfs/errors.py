"""Error kinds raised by the filesystem.

Every failure is an ``FsError``, which is itself an ``OSError`` so hosts
that already catch ``OSError`` around file access keep working.  The
"not found" and "already exists" kinds additionally subclass the matching
builtins (``FileNotFoundError``, ``FileExistsError``), and argument
errors subclass ``TypeError`` / ``ValueError``, so callers may catch
whichever is most natural.

Each class carries a stable numeric ``code``.  Codes 1-6 are the
historical codes that stores written by older clients already use.
"""

from enum import IntEnum


class ErrorCode(IntEnum):
    """Stable numeric codes for every error kind."""

    ARG_TYPE_ERROR = 0x01
    OPERATION_FAILURE = 0x02
    DIR_NOT_EXIST = 0x03
    FILE_NOT_EXIST = 0x04
    INVALID_HANDLE = 0x05
    ALREADY_EXIST = 0x06
    NOT_INITIALIZED = 0x07
    INVALID_OPERATION = 0x08
    INVALID_ARGUMENT = 0x09


class FsError(OSError):
    """Base class for every filesystem failure."""

    code: ErrorCode = ErrorCode.OPERATION_FAILURE


class ArgumentTypeError(FsError, TypeError):
    """Raise when a public operation receives an argument of the wrong type."""

    code = ErrorCode.ARG_TYPE_ERROR


class InvalidArgumentError(FsError, ValueError):
    """Raise when a numeric argument is negative or out of range."""

    code = ErrorCode.INVALID_ARGUMENT


class NotInitializedError(FsError):
    """Raise when the store holds no filesystem head record."""

    code = ErrorCode.NOT_INITIALIZED


class StoreUnavailableError(NotInitializedError):
    """Raise when a block is allocated before the filesystem exists."""


class NotFoundError(FsError, FileNotFoundError):
    """Raise when a path, record, block, or handle is absent."""

    code = ErrorCode.FILE_NOT_EXIST


class FileNotFound(NotFoundError):  # noqa: N818
    """Raise when no file record exists at a path."""


class SourceMissingError(FileNotFound):
    """Raise when a moved file is not listed in its claimed parent."""


class DirNotFoundError(NotFoundError):
    """Raise when no directory record exists at a path."""

    code = ErrorCode.DIR_NOT_EXIST


class ParentNotFoundError(DirNotFoundError):
    """Raise when the parent directory of a new entry does not exist."""


class BlockNotFoundError(NotFoundError):
    """Raise when a block id has no stored content."""


class InvalidHandleError(NotFoundError):
    """Raise when a handle is not open."""

    code = ErrorCode.INVALID_HANDLE


class AlreadyExistsError(FsError, FileExistsError):
    """Raise when a name is already taken in its directory."""

    code = ErrorCode.ALREADY_EXIST


class InvalidOperationError(FsError):
    """Raise for structurally invalid requests (mutating root, trailing slash on a file)."""

    code = ErrorCode.INVALID_OPERATION


class OperationFailedError(FsError):
    """Raise when the store cannot complete an operation."""

    code = ErrorCode.OPERATION_FAILURE


class CorruptRecordError(OperationFailedError):
    """Raise when a persisted record cannot be decoded or fails validation."""

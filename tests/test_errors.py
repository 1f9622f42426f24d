"""Tests for the error hierarchy.

Callers may catch the package's own classes, or the builtin exception
each one also derives from.
"""

import pytest

from kvfs.errors import (
    AlreadyExistsError,
    ArgumentTypeError,
    BlockNotFoundError,
    DirNotFoundError,
    ErrorCode,
    FileNotFound,
    FsError,
    InvalidArgumentError,
    InvalidHandleError,
    NotFoundError,
    NotInitializedError,
    ParentNotFoundError,
    StoreUnavailableError,
)


class TestHierarchy:
    """Verify base classes."""

    @pytest.mark.parametrize(
        ("error", "builtin"),
        [
            (FileNotFound, FileNotFoundError),
            (DirNotFoundError, FileNotFoundError),
            (BlockNotFoundError, FileNotFoundError),
            (InvalidHandleError, FileNotFoundError),
            (AlreadyExistsError, FileExistsError),
            (ArgumentTypeError, TypeError),
            (InvalidArgumentError, ValueError),
        ],
    )
    def test_builtin_bases(self, error: type[FsError], builtin: type[Exception]) -> None:
        """Each error is also the matching builtin."""
        assert issubclass(error, builtin)
        assert issubclass(error, FsError)

    def test_everything_is_an_os_error(self) -> None:
        """FsError derives from OSError."""
        assert issubclass(FsError, OSError)

    def test_store_unavailable_is_not_initialized(self) -> None:
        """Allocating before init is a not-initialized failure."""
        assert issubclass(StoreUnavailableError, NotInitializedError)

    def test_parent_not_found_is_dir_not_found(self) -> None:
        """A missing parent is a missing directory."""
        assert issubclass(ParentNotFoundError, DirNotFoundError)
        assert issubclass(ParentNotFoundError, NotFoundError)

    def test_message_is_preserved(self) -> None:
        """The message is the exception's string form."""
        with pytest.raises(FsError, match="^File not found: /data/a$"):
            raise FileNotFound("File not found: /data/a")


class TestErrorCodes:
    """Verify numeric codes."""

    def test_historical_codes(self) -> None:
        """Codes 1-6 keep their historical values."""
        assert ArgumentTypeError.code is ErrorCode.ARG_TYPE_ERROR
        assert DirNotFoundError.code == 0x03
        assert FileNotFound.code == 0x04
        assert InvalidHandleError.code == 0x05
        assert AlreadyExistsError.code == 0x06

    def test_subclasses_inherit_codes(self) -> None:
        """Specialized errors keep their family's code."""
        assert ParentNotFoundError.code is ErrorCode.DIR_NOT_EXIST
        assert StoreUnavailableError.code is ErrorCode.NOT_INITIALIZED

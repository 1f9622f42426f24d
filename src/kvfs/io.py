"""Positional reads and writes against a file's block.

Both operations take the same three numbers:

- ``offset`` — where to start in the caller's buffer.
- ``length`` — how many bytes to move at most (None means "as many as fit").
- ``position`` — where to start in the file.

Reads never fail for being out of range: a ``position`` at or past the
end of the file simply copies zero bytes.  Writes past the end grow the
file to exactly ``position + length`` bytes; any gap between the old end
and ``position`` is filled with ``\\x00``.

The whole block is loaded and, for writes, stored again, so cost is
proportional to file size rather than to the bytes moved.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from kvfs.errors import BlockNotFoundError, InvalidArgumentError

if TYPE_CHECKING:
    from collections.abc import Callable

    from kvfs.blocks import BlockStore
    from kvfs.records import FileRecord
    from kvfs.tree import DirectoryTree

MAX_FILE_SIZE = 2**53 - 1
"""Largest size a file may reach; sizes are stored as JSON numbers."""


@dataclass(frozen=True)
class ReadResult:
    """The destination buffer and how many bytes were copied into it."""

    buffer: bytearray | memoryview
    length: int


@dataclass(frozen=True)
class WriteResult:
    """How many bytes were written and the file record after the write."""

    length: int
    file: FileRecord


def check_count(label: str, value: int) -> int:
    """Return *value* if it is a non-negative integer within the size limit.

    Raises:
        InvalidArgumentError: Otherwise.

    """
    if not isinstance(value, int) or isinstance(value, bool):
        msg = f"{label} must be an integer, got {type(value).__name__}"
        raise InvalidArgumentError(msg)
    if value < 0 or value > MAX_FILE_SIZE:
        msg = f"{label} out of range: {value}"
        raise InvalidArgumentError(msg)
    return value


def read_file(
    file: FileRecord,
    blocks: BlockStore,
    buffer: bytearray | memoryview | None = None,
    *,
    offset: int = 0,
    length: int | None = None,
    position: int = 0,
) -> ReadResult:
    """Copy bytes from *file* into *buffer*.

    When *buffer* is None, a new buffer the size of the file is created.
    The number of bytes copied is the smallest of *length*, the bytes
    left in the file after *position*, and the room left in the buffer
    after *offset*.

    Raises:
        InvalidArgumentError: If a number is negative, or *offset* lies
            past the end of *buffer*.
        BlockNotFoundError: If the file's block has no content.

    """
    check_count("offset", offset)
    check_count("position", position)
    if length is not None:
        check_count("length", length)
    content = blocks.read(file.block)
    if buffer is None:
        buffer = bytearray(file.size)
    if offset > len(buffer):
        msg = f"offset {offset} is past the end of a {len(buffer)}-byte buffer"
        raise InvalidArgumentError(msg)

    available = max(len(content) - position, 0)
    count = min(available, len(buffer) - offset)
    if length is not None:
        count = min(count, length)
    buffer[offset : offset + count] = content[position : position + count]
    return ReadResult(buffer=buffer, length=count)


def write_file(
    file: FileRecord,
    source: bytes | bytearray | memoryview,
    blocks: BlockStore,
    tree: DirectoryTree,
    *,
    clock: Callable[[], int],
    offset: int = 0,
    length: int | None = None,
    position: int = 0,
) -> WriteResult:
    """Write ``source[offset:offset + length]`` into *file* at *position*.

    Existing bytes in the written range are overwritten; bytes outside
    it are kept.  The parent directory record is updated with the new
    size and mtime before the block content is stored.

    Raises:
        InvalidArgumentError: If a number is negative, *offset* lies past
            the end of *source*, or the file would exceed MAX_FILE_SIZE.
        BlockNotFoundError: If the file's block has no content.
        SourceMissingError: If the parent no longer lists the file.

    """
    check_count("offset", offset)
    check_count("position", position)
    if length is not None:
        check_count("length", length)
    if offset > len(source):
        msg = f"offset {offset} is past the end of a {len(source)}-byte source"
        raise InvalidArgumentError(msg)
    count = len(source) - offset
    if length is not None:
        count = min(count, length)
    end = position + count
    if end > MAX_FILE_SIZE:
        msg = f"write would grow file past {MAX_FILE_SIZE} bytes"
        raise InvalidArgumentError(msg)

    content = bytearray(blocks.read(file.block))
    if end > len(content):
        content.extend(bytes(end - len(content)))
    content[position:end] = source[offset : offset + count]

    updated = replace(file, size=len(content), utc=clock())
    tree.update_file(updated)
    blocks.write(file.block, bytes(content))
    return WriteResult(length=count, file=updated)


def truncate_file(
    file: FileRecord,
    size: int,
    blocks: BlockStore,
    tree: DirectoryTree,
    *,
    clock: Callable[[], int],
) -> FileRecord:
    """Cut *file* down to *size* bytes, or zero-extend it up to *size*.

    Raises:
        InvalidArgumentError: If *size* is negative or too large.
        BlockNotFoundError: If the file's block has no content.

    """
    check_count("size", size)
    content = blocks.read(file.block)
    if size <= len(content):
        content = content[:size]
    else:
        content += bytes(size - len(content))
    return replace_content(file, content, blocks, tree, clock=clock)


def replace_content(
    file: FileRecord,
    data: bytes,
    blocks: BlockStore,
    tree: DirectoryTree,
    *,
    clock: Callable[[], int],
) -> FileRecord:
    """Make *data* the whole content of *file*.

    The parent directory record and the block are each stored once.

    Raises:
        InvalidArgumentError: If *data* is larger than MAX_FILE_SIZE.
        BlockNotFoundError: If the file's block has no content.

    """
    if len(data) > MAX_FILE_SIZE:
        msg = f"content of {len(data)} bytes exceeds {MAX_FILE_SIZE} bytes"
        raise InvalidArgumentError(msg)
    if not blocks.exists(file.block):
        msg = f"Block not found: {file.block}"
        raise BlockNotFoundError(msg)
    updated = replace(file, size=len(data), utc=clock())
    tree.update_file(updated)
    blocks.write(file.block, bytes(data))
    return updated

"""Tests for positional reads and writes.

Reads clamp to what is available; writes overwrite in place and grow
the file when they run past its end, zero-filling any gap.
"""

import pytest

from kvfs.blocks import BlockStore
from kvfs.codec import Latin1Codec
from kvfs.errors import BlockNotFoundError, InvalidArgumentError
from kvfs.io import MAX_FILE_SIZE, read_file, replace_content, truncate_file, write_file
from kvfs.records import DirectoryRecord, FileRecord, Head
from kvfs.store import MemoryStore
from kvfs.tree import DirectoryTree

WRITE_MS = 5_000


def _clock() -> int:
    return WRITE_MS


def _setup(content: bytes = b"") -> tuple[FileRecord, BlockStore, DirectoryTree]:
    """Create a store with one file ``/data/f`` holding *content*."""
    store = MemoryStore()
    blocks = BlockStore(store, Latin1Codec(), prefix="CBFS")
    blocks.save_head(Head())
    tree = DirectoryTree(store, prefix="CBFS")
    tree.put_directory(DirectoryRecord(path="/", dirs=["data"]))
    tree.put_directory(DirectoryRecord(path="/data"))
    block = blocks.allocate()
    blocks.write(block, content)
    record = FileRecord(name="f", path="/data", size=len(content), utc=0, block=block)
    tree.insert_file(record)
    return record, blocks, tree


class TestRead:
    """Verify read clamping."""

    def test_default_reads_whole_file(self) -> None:
        """With no buffer, a file-sized buffer is filled."""
        record, blocks, _ = _setup(b"hello")
        result = read_file(record, blocks)
        assert bytes(result.buffer) == b"hello"
        expected_length = 5
        assert result.length == expected_length

    def test_position_and_length(self) -> None:
        """Only the requested window is copied."""
        record, blocks, _ = _setup(b"hello world")
        buf = bytearray(5)
        result = read_file(record, blocks, buf, length=5, position=6)
        assert bytes(buf) == b"world"
        expected_length = 5
        assert result.length == expected_length

    def test_offset_into_buffer(self) -> None:
        """Bytes land at the buffer offset; the rest is untouched."""
        record, blocks, _ = _setup(b"ab")
        buf = bytearray(b"....")
        read_file(record, blocks, buf, offset=1)
        assert bytes(buf) == b".ab."

    def test_clamped_by_buffer_room(self) -> None:
        """A small buffer limits the copy."""
        record, blocks, _ = _setup(b"abcdef")
        buf = bytearray(3)
        result = read_file(record, blocks, buf, offset=1)
        assert bytes(buf) == b"\x00ab"
        expected_length = 2
        assert result.length == expected_length

    def test_position_at_end(self) -> None:
        """Reading at the end copies nothing and is not an error."""
        record, blocks, _ = _setup(b"abc")
        result = read_file(record, blocks, bytearray(4), position=3)
        assert result.length == 0

    def test_position_past_end(self) -> None:
        """Reading past the end copies nothing."""
        record, blocks, _ = _setup(b"abc")
        result = read_file(record, blocks, bytearray(4), position=10)
        assert result.length == 0

    def test_negative_position(self) -> None:
        """Negative numbers are invalid."""
        record, blocks, _ = _setup(b"abc")
        with pytest.raises(InvalidArgumentError, match="position"):
            read_file(record, blocks, bytearray(4), position=-1)

    def test_offset_past_buffer(self) -> None:
        """The buffer offset must lie within the buffer."""
        record, blocks, _ = _setup(b"abc")
        with pytest.raises(InvalidArgumentError, match="offset"):
            read_file(record, blocks, bytearray(2), offset=3)


class TestWrite:
    """Verify in-place overwrite and growth."""

    def test_overwrite_in_place(self) -> None:
        """Bytes outside the written range are kept."""
        record, blocks, tree = _setup(b"hello")
        result = write_file(record, b"J", blocks, tree, clock=_clock)
        assert blocks.read(record.block) == b"Jello"
        expected_size = 5
        assert result.file.size == expected_size

    def test_append_at_size(self) -> None:
        """Writing at the end grows by exactly the written length."""
        record, blocks, tree = _setup(b"abc")
        result = write_file(record, b"de", blocks, tree, clock=_clock, position=3)
        assert blocks.read(record.block) == b"abcde"
        expected_size = 5
        assert result.file.size == expected_size

    def test_gap_is_zero_filled(self) -> None:
        """A write past the end zero-fills the gap."""
        record, blocks, tree = _setup(b"ab")
        write_file(record, b"z", blocks, tree, clock=_clock, position=4)
        assert blocks.read(record.block) == b"ab\x00\x00z"

    def test_source_slice(self) -> None:
        """Offset and length select part of the source."""
        record, blocks, tree = _setup()
        result = write_file(record, b"0123456", blocks, tree, clock=_clock, offset=2, length=3)
        assert blocks.read(record.block) == b"234"
        expected_length = 3
        assert result.length == expected_length

    def test_length_clamped_to_source(self) -> None:
        """An oversized length is cut to what the source holds."""
        record, blocks, tree = _setup()
        result = write_file(record, b"abc", blocks, tree, clock=_clock, offset=1, length=100)
        expected_length = 2
        assert result.length == expected_length

    def test_record_is_persisted(self) -> None:
        """The parent directory sees the new size and mtime."""
        record, blocks, tree = _setup()
        write_file(record, b"abc", blocks, tree, clock=_clock)
        stored = tree.get_file("/data/f")
        expected_size = 3
        assert stored.size == expected_size
        assert stored.utc == WRITE_MS

    def test_offset_past_source(self) -> None:
        """The source offset must lie within the source."""
        record, blocks, tree = _setup()
        with pytest.raises(InvalidArgumentError, match="offset"):
            write_file(record, b"ab", blocks, tree, clock=_clock, offset=3)

    def test_too_large(self) -> None:
        """Growing past the size limit is rejected before writing."""
        record, blocks, tree = _setup(b"abc")
        with pytest.raises(InvalidArgumentError, match="grow"):
            write_file(record, b"x", blocks, tree, clock=_clock, position=MAX_FILE_SIZE)
        assert blocks.read(record.block) == b"abc"

    def test_boolean_is_not_a_number(self) -> None:
        """Booleans are rejected as counts."""
        record, blocks, tree = _setup()
        with pytest.raises(InvalidArgumentError):
            write_file(record, b"x", blocks, tree, clock=_clock, position=True)


class TestTruncate:
    """Verify shrinking and zero-extending."""

    def test_shrink(self) -> None:
        """Truncation keeps the prefix."""
        record, blocks, tree = _setup(b"abcdef")
        updated = truncate_file(record, 2, blocks, tree, clock=_clock)
        assert blocks.read(record.block) == b"ab"
        expected_size = 2
        assert updated.size == expected_size

    def test_extend(self) -> None:
        """Extension appends zero bytes."""
        record, blocks, tree = _setup(b"ab")
        truncate_file(record, 4, blocks, tree, clock=_clock)
        assert blocks.read(record.block) == b"ab\x00\x00"
        expected_size = 4
        assert tree.get_file("/data/f").size == expected_size


class TestReplaceContent:
    """Verify whole-content replacement."""

    def test_shorter_content(self) -> None:
        """Old bytes past the new end are gone."""
        record, blocks, tree = _setup(b"hello world")
        updated = replace_content(record, b"hi", blocks, tree, clock=_clock)
        assert blocks.read(record.block) == b"hi"
        assert tree.get_file("/data/f") == updated
        expected_size = 2
        assert updated.size == expected_size
        assert updated.utc == WRITE_MS

    def test_missing_block(self) -> None:
        """A file whose block is gone is left untouched."""
        record, blocks, tree = _setup(b"abc")
        blocks.free(record.block)
        with pytest.raises(BlockNotFoundError):
            replace_content(record, b"x", blocks, tree, clock=_clock)
        assert tree.get_file("/data/f") == record

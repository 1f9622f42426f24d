"""Tests for the block store adapter.

Block ids come from a counter in the head record and are never handed
out twice, even after the block they named has been freed.
"""

import pytest

from kvfs.blocks import BlockStore
from kvfs.codec import Base64Codec, Latin1Codec
from kvfs.errors import BlockNotFoundError, StoreUnavailableError
from kvfs.logging import Logger
from kvfs.records import Head
from kvfs.store import MemoryStore

PREFIX = "CBFS"


def _blocks(store: MemoryStore | None = None) -> BlockStore:
    """Create a block store with a head record already in place."""
    if store is None:
        store = MemoryStore()
    blocks = BlockStore(store, Latin1Codec(), prefix=PREFIX)
    blocks.save_head(Head())
    return blocks


class TestAllocate:
    """Verify block allocation."""

    def test_first_id_is_one(self) -> None:
        """A fresh head hands out id 1."""
        assert _blocks().allocate() == 1

    def test_ids_increase(self) -> None:
        """Consecutive allocations are strictly increasing."""
        blocks = _blocks()
        ids = [blocks.allocate() for _ in range(3)]
        assert ids == [1, 2, 3]

    def test_counter_is_persisted(self) -> None:
        """The head record tracks the next id."""
        blocks = _blocks()
        blocks.allocate()
        head = blocks.load_head()
        assert head is not None
        expected_next = 2
        assert head.next_block_id == expected_next

    def test_new_block_is_empty(self) -> None:
        """An allocated block holds zero bytes."""
        blocks = _blocks()
        assert blocks.read(blocks.allocate()) == b""

    def test_freed_ids_are_not_reused(self) -> None:
        """Freeing a block does not return its id to the pool."""
        blocks = _blocks()
        first = blocks.allocate()
        blocks.free(first)
        assert blocks.allocate() != first

    def test_without_head(self) -> None:
        """Allocation before initialization fails."""
        blocks = BlockStore(MemoryStore(), Latin1Codec(), prefix=PREFIX)
        with pytest.raises(StoreUnavailableError):
            blocks.allocate()

    def test_allocation_is_logged(self) -> None:
        """Allocations emit DEBUG entries."""
        logger = Logger()
        blocks = BlockStore(MemoryStore(), Latin1Codec(), prefix=PREFIX, logger=logger)
        blocks.save_head(Head())
        blocks.allocate()
        assert logger.entries[0].message == "allocated block 1"


class TestReadWriteFree:
    """Verify whole-block access."""

    def test_write_then_read(self) -> None:
        """Written bytes read back unchanged."""
        blocks = _blocks()
        block_id = blocks.allocate()
        blocks.write(block_id, bytes(range(256)))
        assert blocks.read(block_id) == bytes(range(256))

    def test_stored_under_block_key(self) -> None:
        """Content lives under the block namespace."""
        store = MemoryStore()
        blocks = _blocks(store)
        block_id = blocks.allocate()
        blocks.write(block_id, b"hi")
        assert store.get(f"{PREFIX}$block:{block_id}") == "hi"

    def test_base64_codec(self) -> None:
        """The codec decides the stored string form."""
        store = MemoryStore()
        blocks = BlockStore(store, Base64Codec(), prefix=PREFIX)
        blocks.save_head(Head())
        block_id = blocks.allocate()
        blocks.write(block_id, b"hi")
        assert store.get(f"{PREFIX}$block:{block_id}") == "aGk="

    def test_read_freed_block(self) -> None:
        """A freed block can no longer be read."""
        blocks = _blocks()
        block_id = blocks.allocate()
        blocks.free(block_id)
        assert not blocks.exists(block_id)
        with pytest.raises(BlockNotFoundError, match="Block not found"):
            blocks.read(block_id)

    def test_free_is_idempotent(self) -> None:
        """Freeing twice is not an error."""
        blocks = _blocks()
        block_id = blocks.allocate()
        blocks.free(block_id)
        blocks.free(block_id)
        assert not blocks.exists(block_id)

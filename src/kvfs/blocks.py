"""Block store adapter — numbered byte blobs on top of the string store.

Each file's content lives in exactly one **block**: a byte sequence
stored as a single codec-encoded string under ``(block, <id>)``.

Block ids come from the counter in the head record.  Allocation takes
the current value and bumps the counter; freeing deletes the stored
value but never hands the id out again, so a stale reference to a freed
block can only ever find nothing, never somebody else's data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kvfs.errors import BlockNotFoundError, StoreUnavailableError
from kvfs.records import Head, dump_record, load_head
from kvfs.store import RecordKind, make_key

if TYPE_CHECKING:
    from kvfs.codec import BlockCodec
    from kvfs.logging import Logger
    from kvfs.store import KeyValueStore

HEAD_KEY = "head"


class BlockStore:
    """Allocate, free, read and write blocks in a key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        codec: BlockCodec,
        *,
        prefix: str,
        logger: Logger | None = None,
    ) -> None:
        """Wrap *store*, encoding block bytes with *codec*."""
        self._store = store
        self._codec = codec
        self._prefix = prefix
        self._logger = logger

    def _key(self, block_id: int) -> str:
        return make_key(self._prefix, RecordKind.BLOCK, block_id)

    @property
    def head_key(self) -> str:
        """Return the store key of the head record."""
        return make_key(self._prefix, RecordKind.CONFIG, HEAD_KEY)

    def load_head(self) -> Head | None:
        """Return the head record, or None if the filesystem does not exist."""
        raw = self._store.get(self.head_key)
        if raw is None:
            return None
        return load_head(raw)

    def save_head(self, head: Head) -> None:
        """Persist the head record."""
        self._store.set(self.head_key, dump_record(head))

    def remove_head(self) -> None:
        """Delete the head record."""
        self._store.remove(self.head_key)

    def allocate(self) -> int:
        """Reserve a new block id and store an empty block under it.

        Returns:
            The new block id.

        Raises:
            StoreUnavailableError: If the head record is missing.

        """
        head = self.load_head()
        if head is None:
            msg = "Cannot allocate a block: filesystem is not initialized"
            raise StoreUnavailableError(msg)
        block_id = head.next_block_id
        head.next_block_id += 1
        self._store.set(self._key(block_id), self._codec.encode(b""))
        self.save_head(head)
        if self._logger is not None:
            self._logger.debug(f"allocated block {block_id}", source="blocks")
        return block_id

    def free(self, block_id: int) -> None:
        """Delete a block's content.  Freeing an absent block is a no-op."""
        self._store.remove(self._key(block_id))
        if self._logger is not None:
            self._logger.debug(f"freed block {block_id}", source="blocks")

    def exists(self, block_id: int) -> bool:
        """Return True if the block has stored content."""
        return self._store.get(self._key(block_id)) is not None

    def read(self, block_id: int) -> bytes:
        """Return the full content of a block.

        Raises:
            BlockNotFoundError: If nothing is stored under *block_id*.

        """
        raw = self._store.get(self._key(block_id))
        if raw is None:
            msg = f"Block not found: {block_id}"
            raise BlockNotFoundError(msg)
        return self._codec.decode(raw)

    def write(self, block_id: int, data: bytes) -> None:
        """Replace the full content of a block."""
        self._store.set(self._key(block_id), self._codec.encode(data))

"""Tests for key-value store backends and the key scheme."""

import json
from pathlib import Path

import pytest

from kvfs.errors import OperationFailedError
from kvfs.store import JsonFileStore, MemoryStore, RecordKind, make_key


class TestMakeKey:
    """Verify record key construction."""

    def test_key_layout(self) -> None:
        """Keys combine prefix, kind and sub-key."""
        assert make_key("CBFS", RecordKind.DIR, "/data") == "CBFS$dir:/data"

    def test_integer_sub_key(self) -> None:
        """Block ids are formatted as decimal."""
        assert make_key("CBFS", RecordKind.BLOCK, 7) == "CBFS$block:7"

    def test_kinds_do_not_collide(self) -> None:
        """The same sub-key under different kinds gives different keys."""
        keys = {make_key("P", kind, "1") for kind in RecordKind}
        assert len(keys) == len(RecordKind)


class TestMemoryStore:
    """Verify the dict-backed store."""

    def test_get_missing_is_none(self) -> None:
        """An absent key reads as None."""
        assert MemoryStore().get("nope") is None

    def test_set_then_get(self) -> None:
        """A stored value reads back unchanged."""
        store = MemoryStore()
        store.set("k", "v")
        assert store.get("k") == "v"

    def test_remove_missing_is_noop(self) -> None:
        """Removing an absent key does not raise."""
        store = MemoryStore()
        store.remove("nope")
        assert len(store) == 0

    def test_initial_mapping_is_copied(self) -> None:
        """Later changes to the seed dict do not leak in."""
        seed = {"a": "1"}
        store = MemoryStore(seed)
        seed["b"] = "2"
        assert store.keys() == ["a"]


class TestJsonFileStore:
    """Verify the file-mirrored store."""

    def test_set_is_flushed(self, tmp_path: Path) -> None:
        """Each set writes the whole mapping to disk."""
        path = tmp_path / "store.json"
        store = JsonFileStore(path)
        store.set("k", "v")
        assert json.loads(path.read_text()) == {"k": "v"}

    def test_reload(self, tmp_path: Path) -> None:
        """A new store over the same file sees earlier writes."""
        path = tmp_path / "store.json"
        JsonFileStore(path).set("k", "\x00\xff")
        assert JsonFileStore(path).get("k") == "\x00\xff"

    def test_remove_is_flushed(self, tmp_path: Path) -> None:
        """Removals are persisted too."""
        path = tmp_path / "store.json"
        store = JsonFileStore(path)
        store.set("k", "v")
        store.remove("k")
        assert JsonFileStore(path).get("k") is None

    def test_corrupt_file(self, tmp_path: Path) -> None:
        """A file that is not a string mapping is rejected."""
        path = tmp_path / "store.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(OperationFailedError, match="not a string mapping"):
            JsonFileStore(path)

    def test_unparseable_file(self, tmp_path: Path) -> None:
        """Invalid JSON is rejected."""
        path = tmp_path / "store.json"
        path.write_text("{")
        with pytest.raises(OperationFailedError, match="Cannot load"):
            JsonFileStore(path)

"""
Tests for the SQLite document store.
"""
import pytest

from climbing_ticks.storage import (
    CachedDataError,
    DocumentSnapshot,
    DocumentStore,
    Write,
    WriteBatch,
    require_fresh,
)


class TestDocumentStore:
    def test_missing_document(self, store):
        snapshot = store.read("users/a")
        assert not snapshot.exists
        assert snapshot.data is None
        assert not snapshot.from_cache

    def test_write_and_read(self, store):
        assert store.write_batch([Write("users/a/routes/1", {"name": "Route 1", "ticks": {"2": {}}})]) == 1
        snapshot = store.read("users/a/routes/1")
        assert snapshot.exists
        assert snapshot.id == "1"
        assert snapshot.data == {"name": "Route 1", "ticks": {"2": {}}}

    def test_merge_keeps_other_fields(self, store):
        store.write_batch([Write("users/a", {"num_imports": 1, "max_tick_id": 5})])
        store.write_batch([Write("users/a", {"max_tick_id": 9}, merge=True)])
        assert store.read("users/a").data == {"num_imports": 1, "max_tick_id": 9}

        store.write_batch([Write("users/b", {"max_tick_id": 9}, merge=True)])
        assert store.read("users/b").data == {"max_tick_id": 9}

    def test_set_replaces_document(self, store):
        store.write_batch([Write("users/a", {"num_imports": 1})])
        store.write_batch([Write("users/a", {"max_tick_id": 9})])
        assert store.read("users/a").data == {"max_tick_id": 9}

    def test_delete(self, store):
        store.write_batch([Write("users/a", {"x": 1})])
        store.write_batch([Write("users/a", None)])
        assert not store.read("users/a").exists

    def test_list_collection_only_returns_direct_children(self, store):
        store.write_batch(
            [
                Write("users/a/routes/1", {"n": 1}),
                Write("users/a/routes/2", {"n": 2}),
                Write("users/a/routes/2/extra/3", {"n": 3}),
                Write("users/a/routes_x/4", {"n": 4}),
                Write("users/ab/routes/5", {"n": 5}),
            ]
        )
        snapshots = store.list_collection("users/a/routes")
        assert [s.id for s in snapshots] == ["1", "2"]
        assert [s.data for s in snapshots] == [{"n": 1}, {"n": 2}]

    def test_list_collection_escapes_wildcards(self, store):
        store.write_batch([Write("users/a_b/routes/1", {}), Write("users/axb/routes/2", {})])
        assert [s.id for s in store.list_collection("users/a_b/routes")] == ["1"]

    def test_failed_batch_writes_nothing(self, store):
        store.write_batch([Write("users/a", {"x": 1})])
        with pytest.raises(TypeError):
            store.write_batch(
                [
                    Write("users/a", {"x": 2}),
                    Write("users/b", {"x": 3}),
                    Write("users/c", {"bad": object()}),
                ]
            )
        assert store.read("users/a").data == {"x": 1}
        assert not store.read("users/b").exists

    def test_empty_batch(self, store):
        assert store.write_batch([]) == 0

    def test_creates_parent_directory(self, tmp_path):
        store = DocumentStore(tmp_path / "nested" / "dir" / "docs.db")
        store.initialize()
        assert (tmp_path / "nested" / "dir" / "docs.db").exists()


class TestOffline:
    def test_reads_come_from_cache(self, store):
        store.write_batch([Write("users/a", {"x": 1}), Write("users/a/routes/1", {"n": 1})])
        store.read("users/b")
        store.offline = True

        snapshot = store.read("users/a")
        assert snapshot.from_cache
        assert snapshot.data == {"x": 1}
        assert store.read("users/b").from_cache
        assert not store.read("users/b").exists
        assert [(s.id, s.from_cache) for s in store.list_collection("users/a/routes")] == [("1", True)]

    def test_cached_data_is_a_copy(self, store):
        store.write_batch([Write("users/a", {"x": [1]})])
        store.offline = True
        store.read("users/a").data["x"].append(2)
        assert store.read("users/a").data == {"x": [1]}

    def test_writes_are_rejected(self, store):
        store.offline = True
        with pytest.raises(CachedDataError):
            store.write_batch([Write("users/a", {"x": 1})])

    def test_require_fresh(self):
        fresh = DocumentSnapshot("users/a/stats/counts", {})
        assert require_fresh(fresh, "counts") is fresh
        with pytest.raises(CachedDataError, match="Can't update counts using cached data"):
            require_fresh(DocumentSnapshot("users/a/stats/counts", {}, from_cache=True), "counts")


class TestWriteBatch:
    def test_commit_applies_writes_in_order(self, store):
        batch = WriteBatch(store)
        batch.set("users/a", {"x": 1})
        batch.set("users/a", {"y": 2}, merge=True)
        batch.set("users/b", {"x": 1})
        batch.delete("users/b")
        assert batch.commit() == 4
        assert batch.writes == []
        assert store.read("users/a").data == {"x": 1, "y": 2}
        assert not store.read("users/b").exists

    def test_set_copies_data(self, store):
        data = {"x": [1]}
        batch = WriteBatch(store)
        batch.set("users/a", data)
        data["x"].append(2)
        batch.commit()
        assert store.read("users/a").data == {"x": [1]}

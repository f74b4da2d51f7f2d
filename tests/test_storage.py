"""Tests for record store backends."""

import pytest

from semantic_search.core.config import RedisConfig, StoreBackendConfig
from semantic_search.core.errors import (
    CollectionNotFoundError,
    DimensionMismatchError,
    DuplicateIdError,
    PersistenceError,
    RecordNotFoundError,
)
from semantic_search.core.models import VectorRecord
from semantic_search.core.storage import (
    MemoryRecordStore,
    RecordStore,
    RedisRecordStore,
    SQLiteRecordStore,
)
from semantic_search.core.storage.config import create_record_store


def make_redis_store() -> RedisRecordStore:
    fakeredis = pytest.importorskip("fakeredis")
    store = RedisRecordStore(prefix="test:", scan_batch_size=3)
    store._client = fakeredis.FakeRedis(decode_responses=True)
    return store


@pytest.fixture(params=["memory", "sqlite", "redis"])
def store(request, tmp_path) -> RecordStore:
    if request.param == "memory":
        backend: RecordStore = MemoryRecordStore()
    elif request.param == "sqlite":
        backend = SQLiteRecordStore(tmp_path / "records.db", scan_batch_size=3)
    else:
        backend = make_redis_store()
    backend.create_collection("docs", dimension=3)
    yield backend
    backend.close()


def record(record_id: str, payload: str = "text") -> VectorRecord:
    return VectorRecord(id=record_id, vector=[1.0, 0.5, 0.0], payload=payload)


class TestRecordStore:
    """Behaviour shared by every record store."""

    def test_insert_and_get(self, store: RecordStore) -> None:
        store.insert("docs", record("a", "alpha"))
        fetched = store.get("docs", "a")
        assert fetched is not None
        assert fetched.id == "a"
        assert fetched.payload == "alpha"
        assert fetched.vector == [1.0, 0.5, 0.0]

    def test_get_missing(self, store: RecordStore) -> None:
        assert store.get("docs", "nope") is None
        assert store.get("other", "nope") is None

    def test_duplicate_rejected(self, store: RecordStore) -> None:
        store.insert("docs", record("a", "first"))
        with pytest.raises(DuplicateIdError):
            store.insert("docs", record("a", "second"))
        fetched = store.get("docs", "a")
        assert fetched is not None
        assert fetched.payload == "first"
        assert store.count("docs") == 1

    def test_dimension_checked(self, store: RecordStore) -> None:
        with pytest.raises(DimensionMismatchError):
            store.insert("docs", VectorRecord(id="a", vector=[1.0], payload="x"))
        assert store.count("docs") == 0
        assert store.get("docs", "a") is None

    def test_non_finite_rejected(self, store: RecordStore) -> None:
        with pytest.raises(ValueError):
            store.insert(
                "docs", VectorRecord(id="a", vector=[1.0, float("nan"), 0.0], payload="x")
            )
        assert store.count("docs") == 0

    def test_unknown_collection(self, store: RecordStore) -> None:
        with pytest.raises(CollectionNotFoundError):
            store.insert("other", record("a"))
        with pytest.raises(CollectionNotFoundError):
            store.scan("other")
        assert store.count("other") == 0

    def test_delete(self, store: RecordStore) -> None:
        store.insert("docs", record("a"))
        store.delete("docs", "a")
        assert store.get("docs", "a") is None
        assert store.count("docs") == 0
        with pytest.raises(RecordNotFoundError):
            store.delete("docs", "a")

    def test_scan_insertion_order_and_restartable(self, store: RecordStore) -> None:
        ids = ["z", "b", "m", "a", "q", "c", "k"]
        for record_id in ids:
            store.insert("docs", record(record_id))
        store.delete("docs", "m")

        expected = [i for i in ids if i != "m"]
        assert [r.id for r in store.scan("docs")] == expected
        assert [r.id for r in store.scan("docs")] == expected
        assert store.count("docs") == len(expected)

    def test_collections_are_isolated(self, store: RecordStore) -> None:
        store.create_collection("notes", dimension=3)
        store.insert("docs", record("a"))
        store.insert("notes", record("a"))
        assert store.count("docs") == 1
        assert store.count("notes") == 1
        store.delete("notes", "a")
        assert store.get("docs", "a") is not None


class TestCatalog:
    """Collection catalog behaviour."""

    def test_create_is_idempotent(self, store: RecordStore) -> None:
        first = store.get_collection("docs")
        again = store.create_collection("docs", dimension=3)
        assert first is not None
        assert again.name == "docs"
        assert again.created_at == first.created_at

    def test_conflicting_dimension(self, store: RecordStore) -> None:
        with pytest.raises(DimensionMismatchError):
            store.create_collection("docs", dimension=4)

    def test_conflicting_metric(self, store: RecordStore) -> None:
        with pytest.raises(ValueError):
            store.create_collection("docs", dimension=3, metric="euclidean")

    def test_invalid_collection(self, store: RecordStore) -> None:
        with pytest.raises(ValueError):
            store.create_collection("", dimension=3)
        with pytest.raises(ValueError):
            store.create_collection("bad", dimension=0)
        with pytest.raises(ValueError):
            store.create_collection("bad", dimension=3, metric="dot")

    def test_list_collections(self, store: RecordStore) -> None:
        store.create_collection("alpha", dimension=2, metric="euclidean")
        names = [c.name for c in store.list_collections()]
        assert names == ["alpha", "docs"]
        alpha = store.get_collection("alpha")
        assert alpha is not None
        assert alpha.metric == "euclidean"
        assert store.get_collection("missing") is None


class TestSQLiteRecordStore:
    """SQLite-specific behaviour."""

    def test_durable_across_connections(self, tmp_path) -> None:
        path = tmp_path / "durable.db"
        with SQLiteRecordStore(path) as store:
            store.create_collection("docs", dimension=3)
            store.insert("docs", record("a", "kept"))

        with SQLiteRecordStore(path) as store:
            fetched = store.get("docs", "a")
            assert fetched is not None
            assert fetched.payload == "kept"
            assert [c.name for c in store.list_collections()] == ["docs"]

    def test_closed_store_raises(self, tmp_path) -> None:
        store = SQLiteRecordStore(tmp_path / "closed.db")
        store.close()
        with pytest.raises(PersistenceError):
            store.count("docs")


class TestRedisRecordStore:
    """Redis-specific behaviour."""

    def test_connection_error_wrapped(self) -> None:
        store = RedisRecordStore(host="127.0.0.1", port=1)
        with pytest.raises(PersistenceError):
            store.count("docs")

    def test_scan_skips_dangling_ids(self) -> None:
        store = make_redis_store()
        store.create_collection("docs", dimension=3)
        store.insert("docs", record("a"))
        store.insert("docs", record("b"))
        store._client.delete(store._record_key("docs", "a"))
        assert [r.id for r in store.scan("docs")] == ["b"]

    def test_failed_insert_leaves_no_record(self, monkeypatch) -> None:
        import redis

        store = make_redis_store()
        store.create_collection("docs", dimension=3)

        def broken_incr(*args, **kwargs):
            raise redis.ConnectionError("connection lost")

        monkeypatch.setattr(store._client, "incr", broken_incr)
        with pytest.raises(PersistenceError):
            store.insert("docs", record("a"))
        assert store.get("docs", "a") is None
        assert store.count("docs") == 0

        monkeypatch.undo()
        store.insert("docs", record("a"))
        assert [r.id for r in store.scan("docs")] == ["a"]

    def test_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("REDIS_URL", "redis://cache.internal:6380/2")
        store = RedisRecordStore.from_env(prefix="env:")
        assert store._url == "redis://cache.internal:6380/2"
        assert store._prefix == "env:"

        monkeypatch.delenv("REDIS_URL")
        monkeypatch.delenv("REDIS_HOST", raising=False)
        with pytest.raises(ValueError):
            RedisRecordStore.from_env()


class TestStoreFactory:
    def test_create_record_store(self, tmp_path) -> None:
        memory = create_record_store(StoreBackendConfig(backend_type="memory"))
        assert isinstance(memory, MemoryRecordStore)

        sqlite = create_record_store(
            StoreBackendConfig(backend_type="sqlite", sqlite_path=str(tmp_path / "f.db"))
        )
        assert isinstance(sqlite, SQLiteRecordStore)
        sqlite.close()

        redis_store = create_record_store(
            StoreBackendConfig.from_url("redis://localhost:6379/0")
        )
        assert isinstance(redis_store, RedisRecordStore)
        assert redis_store._url == "redis://localhost:6379/0"

        prefixed = create_record_store(
            StoreBackendConfig(
                backend_type="redis",
                redis=RedisConfig(host="redis.internal", port=6390),
                prefix="custom:",
            )
        )
        assert prefixed._host == "redis.internal"
        assert prefixed._port == 6390
        assert prefixed._prefix == "custom:"

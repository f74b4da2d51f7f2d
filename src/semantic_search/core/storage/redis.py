"""Redis record store implementation.

Key-value storage for production deployments with ordered scans.
"""

import json
import logging
from contextlib import contextmanager
from typing import Iterator

import redis

from semantic_search.core.config import RedisConfig, get_redis_config
from semantic_search.core.errors import (
    CollectionNotFoundError,
    DuplicateIdError,
    PersistenceError,
    RecordNotFoundError,
)
from semantic_search.core.models import CollectionInfo, VectorRecord
from semantic_search.core.storage.base import RecordStore

logger = logging.getLogger(__name__)


class RedisRecordStore(RecordStore):
    """Redis record store with ZSET-based insertion order.

    Uses Redis data structures:
    - Hash: Collection catalog (key: {prefix}collections)
    - String: Record JSON (key: {prefix}{collection}:record:{id})
    - ZSET: Record ids scored by insertion sequence (key: {prefix}{collection}:ids)
    - String: Insertion sequence counter (key: {prefix}{collection}:seq)
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: str | None = None,
        url: str | None = None,
        prefix: str = "semantic_search:",
        scan_batch_size: int = 500,
    ) -> None:
        self._host = host
        self._port = port
        self._db = db
        self._password = password
        self._url = url
        self._prefix = prefix
        self._scan_batch_size = scan_batch_size
        self._client: redis.Redis | None = None

    @classmethod
    def from_env(
        cls, config: RedisConfig | None = None, prefix: str = "semantic_search:"
    ) -> "RedisRecordStore":
        """Create store from a RedisConfig, read from the environment if omitted."""
        if config is None:
            config = get_redis_config()
        if config is None:
            raise ValueError(
                "Redis not configured. Set REDIS_URL or REDIS_HOST environment variable."
            )
        if config.is_url_based():
            return cls(url=config.url, prefix=prefix)
        return cls(
            host=config.host or "localhost",
            port=config.port,
            db=config.db,
            password=config.password,
            prefix=prefix,
        )

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            if self._url:
                self._client = redis.from_url(self._url, decode_responses=True)
            else:
                self._client = redis.Redis(
                    host=self._host,
                    port=self._port,
                    db=self._db,
                    password=self._password,
                    decode_responses=True,
                )
        return self._client

    @contextmanager
    def _errors(self) -> Iterator[None]:
        try:
            yield
        except redis.RedisError as exc:
            raise PersistenceError(f"redis error: {exc}") from exc

    def _catalog_key(self) -> str:
        return f"{self._prefix}collections"

    def _record_key(self, collection: str, record_id: str) -> str:
        return f"{self._prefix}{collection}:record:{record_id}"

    def _ids_key(self, collection: str) -> str:
        return f"{self._prefix}{collection}:ids"

    def _seq_key(self, collection: str) -> str:
        return f"{self._prefix}{collection}:seq"

    def create_collection(
        self, name: str, dimension: int, metric: str = "cosine"
    ) -> CollectionInfo:
        existing = self.get_collection(name)
        if existing is not None:
            return self._check_existing(existing, dimension, metric)
        self._check_new(name, dimension, metric)
        info = CollectionInfo(name=name, dimension=dimension, metric=metric)
        with self._errors():
            self._get_client().hsetnx(self._catalog_key(), name, json.dumps(info.to_dict()))
        stored = self.get_collection(name)
        assert stored is not None
        return self._check_existing(stored, dimension, metric)

    def get_collection(self, name: str) -> CollectionInfo | None:
        with self._errors():
            data = self._get_client().hget(self._catalog_key(), name)
        return CollectionInfo.from_dict(json.loads(data)) if data else None

    def list_collections(self) -> list[CollectionInfo]:
        with self._errors():
            entries = self._get_client().hgetall(self._catalog_key())
        infos = [CollectionInfo.from_dict(json.loads(v)) for v in entries.values()]
        return sorted(infos, key=lambda c: c.name)

    def _require(self, collection: str) -> CollectionInfo:
        info = self.get_collection(collection)
        if info is None:
            raise CollectionNotFoundError(collection)
        return info

    def insert(self, collection: str, record: VectorRecord) -> None:
        info = self._require(collection)
        self._check_record(info, record)
        client = self._get_client()
        key = self._record_key(collection, record.id)
        with self._errors():
            if not client.set(key, record.to_json(), nx=True):
                raise DuplicateIdError(record.id)
            try:
                seq = client.incr(self._seq_key(collection))
                client.zadd(self._ids_key(collection), {record.id: seq})
            except redis.RedisError:
                # An unlisted record key is invisible to count and scan
                logger.warning("insert of %s into %s failed, rolling back", record.id, collection)
                client.delete(key)
                raise

    def get(self, collection: str, record_id: str) -> VectorRecord | None:
        with self._errors():
            data = self._get_client().get(self._record_key(collection, record_id))
        return VectorRecord.from_json(data) if data else None

    def delete(self, collection: str, record_id: str) -> None:
        self._require(collection)
        with self._errors():
            pipe = self._get_client().pipeline()
            pipe.delete(self._record_key(collection, record_id))
            pipe.zrem(self._ids_key(collection), record_id)
            results = pipe.execute()
        if results[0] == 0:
            raise RecordNotFoundError(record_id)

    def count(self, collection: str) -> int:
        with self._errors():
            return self._get_client().zcard(self._ids_key(collection))

    def scan(self, collection: str) -> Iterator[VectorRecord]:
        self._require(collection)
        return self._iter_records(collection)

    def _iter_records(self, collection: str) -> Iterator[VectorRecord]:
        client = self._get_client()
        lower = "-inf"
        while True:
            with self._errors():
                batch = client.zrangebyscore(
                    self._ids_key(collection),
                    lower,
                    "+inf",
                    start=0,
                    num=self._scan_batch_size,
                    withscores=True,
                )
                if not batch:
                    return
                keys = [self._record_key(collection, rid) for rid, _ in batch]
                values = client.mget(keys)
            for (record_id, _), data in zip(batch, values):
                if data is None:
                    logger.warning(
                        "record %s listed in %s but missing", record_id, collection
                    )
                    continue
                yield VectorRecord.from_json(data)
            lower = f"({int(batch[-1][1])}"

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

"""In-memory record store implementation.

Simplified implementation for development and testing.
"""

import threading
from dataclasses import replace
from typing import Iterator

from semantic_search.core.errors import (
    CollectionNotFoundError,
    DuplicateIdError,
    RecordNotFoundError,
)
from semantic_search.core.models import CollectionInfo, VectorRecord
from semantic_search.core.storage.base import RecordStore


def _copy(record: VectorRecord) -> VectorRecord:
    return replace(record, vector=list(record.vector))


class MemoryRecordStore(RecordStore):
    """In-memory record store using Python dicts.

    Thread-safe, but nothing survives the process.
    For durable storage, use SQLiteRecordStore or RedisRecordStore.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._collections: dict[str, CollectionInfo] = {}
        self._records: dict[str, dict[str, VectorRecord]] = {}

    def create_collection(
        self, name: str, dimension: int, metric: str = "cosine"
    ) -> CollectionInfo:
        with self._lock:
            existing = self._collections.get(name)
            if existing is not None:
                return self._check_existing(existing, dimension, metric)
            self._check_new(name, dimension, metric)
            info = CollectionInfo(name=name, dimension=dimension, metric=metric)
            self._collections[name] = info
            self._records[name] = {}
            return info

    def get_collection(self, name: str) -> CollectionInfo | None:
        with self._lock:
            return self._collections.get(name)

    def list_collections(self) -> list[CollectionInfo]:
        with self._lock:
            return sorted(self._collections.values(), key=lambda c: c.name)

    def _records_for(self, collection: str) -> dict[str, VectorRecord]:
        records = self._records.get(collection)
        if records is None:
            raise CollectionNotFoundError(collection)
        return records

    def insert(self, collection: str, record: VectorRecord) -> None:
        with self._lock:
            records = self._records_for(collection)
            self._check_record(self._collections[collection], record)
            if record.id in records:
                raise DuplicateIdError(record.id)
            records[record.id] = _copy(record)

    def get(self, collection: str, record_id: str) -> VectorRecord | None:
        with self._lock:
            record = self._records.get(collection, {}).get(record_id)
            return _copy(record) if record else None

    def delete(self, collection: str, record_id: str) -> None:
        with self._lock:
            records = self._records_for(collection)
            if records.pop(record_id, None) is None:
                raise RecordNotFoundError(record_id)

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._records.get(collection, {}))

    def scan(self, collection: str) -> Iterator[VectorRecord]:
        with self._lock:
            snapshot = list(self._records_for(collection).values())
        return (_copy(record) for record in snapshot)

"""SQLite record store implementation.

Relational storage for the records and the collection catalog. All I/O
stays in this module; ``sqlite3`` errors surface as PersistenceError.
"""

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from semantic_search.core.errors import (
    CollectionNotFoundError,
    DuplicateIdError,
    PersistenceError,
    RecordNotFoundError,
)
from semantic_search.core.models import CollectionInfo, VectorRecord
from semantic_search.core.storage.base import RecordStore

logger = logging.getLogger(__name__)


class SQLiteRecordStore(RecordStore):
    """SQLite-backed durable record store.

    One connection is opened at construction and closed by ``close()``.
    Vectors are stored as JSON arrays; the ``seq`` column keeps insertion
    order for ``scan``, which pages through rows with keyset pagination.
    """

    def __init__(
        self, path: str | Path = "semantic_search.db", scan_batch_size: int = 500
    ) -> None:
        self._path = str(path)
        self._scan_batch_size = scan_batch_size
        self._lock = threading.RLock()
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn: sqlite3.Connection | None = sqlite3.connect(
                self._path, check_same_thread=False
            )
        except sqlite3.Error as exc:
            raise PersistenceError(f"cannot open {self._path}: {exc}") from exc
        self._conn.row_factory = sqlite3.Row
        self.init_db()
        logger.debug("opened sqlite record store at %s", self._path)

    @property
    def path(self) -> str:
        return self._path

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            if self._conn is None:
                raise PersistenceError("record store is closed")
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.IntegrityError:
                raise
            except sqlite3.Error as exc:
                raise PersistenceError(f"sqlite error on {self._path}: {exc}") from exc

    def init_db(self) -> None:
        """Create tables if they do not exist."""
        with self._connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS collections (
                    name TEXT PRIMARY KEY,
                    dimension INTEGER NOT NULL,
                    metric TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    collection TEXT NOT NULL REFERENCES collections(name),
                    id TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    vector TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    UNIQUE (collection, id)
                )
                """
            )

    @staticmethod
    def _row_to_info(row: sqlite3.Row) -> CollectionInfo:
        return CollectionInfo(
            name=row["name"],
            dimension=row["dimension"],
            metric=row["metric"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> VectorRecord:
        return VectorRecord(
            id=row["id"],
            vector=json.loads(row["vector"]),
            payload=row["payload"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def create_collection(
        self, name: str, dimension: int, metric: str = "cosine"
    ) -> CollectionInfo:
        existing = self.get_collection(name)
        if existing is not None:
            return self._check_existing(existing, dimension, metric)
        self._check_new(name, dimension, metric)
        with self._connection() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO collections (name, dimension, metric, created_at) "
                "VALUES (?, ?, ?, ?)",
                (name, dimension, metric, datetime.now().isoformat()),
            )
        info = self.get_collection(name)
        assert info is not None
        return self._check_existing(info, dimension, metric)

    def get_collection(self, name: str) -> CollectionInfo | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT name, dimension, metric, created_at FROM collections WHERE name = ?",
                (name,),
            ).fetchone()
        return self._row_to_info(row) if row else None

    def list_collections(self) -> list[CollectionInfo]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT name, dimension, metric, created_at FROM collections ORDER BY name"
            ).fetchall()
        return [self._row_to_info(row) for row in rows]

    def _require(self, collection: str) -> CollectionInfo:
        info = self.get_collection(collection)
        if info is None:
            raise CollectionNotFoundError(collection)
        return info

    def insert(self, collection: str, record: VectorRecord) -> None:
        info = self._require(collection)
        self._check_record(info, record)
        try:
            with self._connection() as conn:
                conn.execute(
                    "INSERT INTO records (collection, id, payload, vector, created_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (
                        collection,
                        record.id,
                        record.payload,
                        json.dumps([float(x) for x in record.vector]),
                        record.created_at.isoformat(),
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateIdError(record.id) from exc

    def get(self, collection: str, record_id: str) -> VectorRecord | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT id, payload, vector, created_at FROM records "
                "WHERE collection = ? AND id = ?",
                (collection, record_id),
            ).fetchone()
        return self._row_to_record(row) if row else None

    def delete(self, collection: str, record_id: str) -> None:
        self._require(collection)
        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM records WHERE collection = ? AND id = ?",
                (collection, record_id),
            )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(record_id)

    def count(self, collection: str) -> int:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM records WHERE collection = ?", (collection,)
            ).fetchone()
        return int(row[0])

    def scan(self, collection: str) -> Iterator[VectorRecord]:
        self._require(collection)
        return self._iter_records(collection)

    def _iter_records(self, collection: str) -> Iterator[VectorRecord]:
        last_seq = 0
        while True:
            with self._connection() as conn:
                rows = conn.execute(
                    "SELECT seq, id, payload, vector, created_at FROM records "
                    "WHERE collection = ? AND seq > ? ORDER BY seq LIMIT ?",
                    (collection, last_seq, self._scan_batch_size),
                ).fetchall()
            if not rows:
                return
            for row in rows:
                yield self._row_to_record(row)
            last_seq = rows[-1]["seq"]

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

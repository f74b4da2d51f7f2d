"""A named collection: record store, similarity index and embedder together."""

from __future__ import annotations

import logging
import threading
from typing import Sequence

from semantic_search.core.cancellation import CancellationToken
from semantic_search.core.config import SearchConfig
from semantic_search.core.engine import QueryEngine
from semantic_search.core.errors import IndexCorruptionError, RecordNotFoundError
from semantic_search.core.index.base import SimilarityIndex
from semantic_search.core.models import (
    CollectionInfo,
    QueryResult,
    RebuildReport,
    VectorRecord,
)
from semantic_search.core.storage.base import RecordStore
from semantic_search.core.utils import check_threshold
from semantic_search.embedding.base import EmbeddingFunction

logger = logging.getLogger(__name__)


class Collection:
    """Semantic search over one collection.

    Writes go to the record store first and to the index second, under a
    per-collection write lock. If the process dies in between, the store
    still holds the record and ``rebuild`` restores the index from it.
    Reads do not take the lock; the index publishes whole snapshots.

    Example:
        collection = service.create_collection("notes")
        collection.add("cats are mammals")
        for hit in collection.search("feline pets", top_k=3):
            print(hit.id, hit.value, hit.payload)
    """

    def __init__(
        self,
        info: CollectionInfo,
        store: RecordStore,
        index: SimilarityIndex,
        embedding_func: EmbeddingFunction | None = None,
        config: SearchConfig | None = None,
    ) -> None:
        if index.dimension != info.dimension or index.metric != info.metric:
            raise ValueError(
                f"index ({index.dimension}, {index.metric}) does not match "
                f"collection {info.name!r} ({info.dimension}, {info.metric})"
            )
        self._info = info
        self._store = store
        self._index = index
        self._embedding_func = embedding_func
        self.config = config or SearchConfig(
            collection_name=info.name, dimension=info.dimension, metric=info.metric
        )
        self._write_lock = threading.RLock()
        self._engine = QueryEngine(info.name, index, store)

    @property
    def name(self) -> str:
        return self._info.name

    @property
    def info(self) -> CollectionInfo:
        return self._info

    @property
    def index(self) -> SimilarityIndex:
        return self._index

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def embedding_func(self) -> EmbeddingFunction:
        if self._embedding_func is None:
            from semantic_search.embedding.default import DefaultEmbedding

            self._embedding_func = DefaultEmbedding(
                self.config.model_name, batch_size=self.config.embed_batch_size
            )
        return self._embedding_func

    def add(self, content: str, record_id: str | None = None) -> VectorRecord:
        """Embed ``content`` and store it as a new record."""
        vector = self.embedding_func.embed(content)
        if record_id is None:
            record = VectorRecord(vector=vector, payload=content)
        else:
            record = VectorRecord(id=record_id, vector=vector, payload=content)
        return self.insert(record)

    def add_batch(self, contents: list[str]) -> list[VectorRecord]:
        """Embed and store several documents; an empty list is a no-op."""
        if not contents:
            return []
        vectors = self.embedding_func.embed_batch(contents)
        return [
            self.insert(VectorRecord(vector=vector, payload=content))
            for content, vector in zip(contents, vectors)
        ]

    def insert(self, record: VectorRecord) -> VectorRecord:
        """Store a pre-embedded record, then index it."""
        with self._write_lock:
            self._store.insert(self.name, record)
            try:
                self._index.add(record.id, record.vector)
            except Exception:
                logger.error(
                    "record %s stored in %s but not indexed; run rebuild",
                    record.id,
                    self.name,
                )
                raise
        logger.debug("inserted %s into %s", record.id, self.name)
        return record

    def get(self, record_id: str) -> VectorRecord | None:
        return self._store.get(self.name, record_id)

    def delete(self, record_id: str) -> None:
        """Delete a record; raises RecordNotFoundError if the store lacks it."""
        with self._write_lock:
            self._store.delete(self.name, record_id)
            try:
                self._index.remove(record_id)
            except RecordNotFoundError:
                logger.warning(
                    "record %s deleted from %s but was not indexed", record_id, self.name
                )

    def count(self) -> int:
        return self._store.count(self.name)

    def search(
        self,
        text: str,
        top_k: int | None = None,
        threshold: float | None = None,
        token: CancellationToken | None = None,
    ) -> QueryResult:
        """Embed ``text`` and return the closest records."""
        vector = self.embedding_func.embed(text)
        return self.search_vector(vector, top_k=top_k, threshold=threshold, token=token)

    def search_vector(
        self,
        vector: Sequence[float],
        top_k: int | None = None,
        threshold: float | None = None,
        token: CancellationToken | None = None,
    ) -> QueryResult:
        """Return the closest records to ``vector``.

        Args:
            vector: Query embedding
            top_k: Maximum hits (defaults to config.top_k)
            threshold: Minimum similarity (cosine) or maximum distance
                (euclidean); defaults to config.threshold
            token: Optional cancellation token
        """
        k = self.config.top_k if top_k is None else top_k
        if threshold is None:
            threshold = self.config.threshold
        check_threshold(threshold, self.info.metric)
        return self._engine.query(vector, k, threshold=threshold, token=token)

    def rebuild(self) -> RebuildReport:
        """Clear the index and replay every stored record into it.

        Records the index rejects are skipped and reported; the replay
        carries on with the rest.
        """
        report = RebuildReport()
        with self._write_lock:
            self._index.clear()
            for record in self._store.scan(self.name):
                try:
                    self._index.add(record.id, record.vector)
                except ValueError as exc:
                    logger.error("cannot index record %s: %s", record.id, exc)
                    report.skipped_ids.append(record.id)
                    report.errors[record.id] = str(exc)
                    continue
                report.indexed += 1

        if report.skipped_ids:
            logger.error(
                "%s",
                IndexCorruptionError(
                    f"rebuild of {self.name} skipped {len(report.skipped_ids)} record(s)",
                    skipped_ids=report.skipped_ids,
                ),
            )
        logger.info("rebuilt index for %s with %d records", self.name, report.indexed)
        return report

    def check_consistency(self) -> None:
        """Raise IndexCorruptionError if index and store sizes differ."""
        stored = self.count()
        indexed = len(self._index)
        if stored != indexed:
            raise IndexCorruptionError(
                f"collection {self.name} has {stored} records but {indexed} index entries"
            )

    def sync_index(self) -> RebuildReport | None:
        """Rebuild the index if it is out of step with the store."""
        if len(self._index) == self.count():
            return None
        return self.rebuild()

    def close(self) -> None:
        self._index.close()

"""Query engine: index lookup followed by payload hydration."""

from __future__ import annotations

import logging
from typing import Sequence

from semantic_search.core.cancellation import CancellationToken
from semantic_search.core.index.base import SimilarityIndex
from semantic_search.core.models import QueryResult, SearchHit
from semantic_search.core.storage.base import RecordStore

logger = logging.getLogger(__name__)


class QueryEngine:
    """Runs a similarity query and attaches payloads from the record store.

    An id the index returns but the store no longer holds is a consistency
    anomaly: it is logged, listed in ``QueryResult.skipped_ids`` and left
    out of the hits, and the rest of the query still succeeds.
    """

    def __init__(
        self, collection: str, index: SimilarityIndex, store: RecordStore
    ) -> None:
        self._collection = collection
        self._index = index
        self._store = store

    def query(
        self,
        vector: Sequence[float],
        k: int,
        threshold: float | None = None,
        token: CancellationToken | None = None,
    ) -> QueryResult:
        neighbors = self._index.query(vector, k=k, threshold=threshold, token=token)

        result = QueryResult(collection=self._collection, partial=neighbors.partial)
        for neighbor in neighbors:
            record = self._store.get(self._collection, neighbor.id)
            if record is None:
                logger.warning(
                    "index entry %s has no record in collection %s; skipping",
                    neighbor.id,
                    self._collection,
                )
                result.skipped_ids.append(neighbor.id)
                continue
            result.hits.append(
                SearchHit(
                    id=neighbor.id,
                    score=neighbor.score,
                    payload=record.payload,
                    metric=self._index.metric,
                )
            )

        if result.partial:
            logger.info(
                "query on %s cancelled; returning %d partial hits",
                self._collection,
                len(result.hits),
            )
        return result

"""ChromaDB-backed similarity index."""

from __future__ import annotations

import logging
import math
from typing import Any, Sequence

import chromadb
from chromadb.api import ClientAPI
from chromadb.config import Settings

from semantic_search.core.cancellation import CancellationToken
from semantic_search.core.config import ChromaConfig, get_chroma_config
from semantic_search.core.errors import RecordNotFoundError
from semantic_search.core.index.base import SimilarityIndex
from semantic_search.core.models import IndexResult
from semantic_search.core.utils import SCORE_DECIMALS, rank_pairs, threshold_to_score

logger = logging.getLogger(__name__)

_SPACES = {"cosine": "cosine", "euclidean": "l2"}


class ChromaIndex(SimilarityIndex):
    """Similarity index delegating to a ChromaDB HNSW collection.

    Chroma's cosine distance is ``1 - similarity`` and its ``l2`` space
    returns squared distances; both are converted to the uniform
    better-is-higher score and re-ranked with the id tie-break. Each query
    fetches ``max(k, num_candidates)`` candidates; ``search_ef`` sets the
    HNSW search breadth. The search is approximate and cannot be cancelled
    part way, so the cancellation token is only checked before the call.
    """

    approximate = True

    def __init__(
        self,
        dimension: int,
        metric: str = "cosine",
        collection_name: str = "search",
        host: str | None = None,
        port: int | None = None,
        path: str | None = None,
        mode: str = "ephemeral",
        num_candidates: int = 100,
        search_ef: int | None = None,
    ) -> None:
        super().__init__(dimension, metric)
        self._collection_name = collection_name
        self._host = host
        self._port = port
        self._path = path
        self._mode = mode
        self._num_candidates = num_candidates
        self._search_ef = search_ef
        self._client: ClientAPI | None = None
        self._collection: chromadb.Collection | None = None

    def get_client(self) -> ClientAPI:
        self._init_client()
        assert self._client is not None
        return self._client

    def get_collection(self) -> chromadb.Collection:
        self._init_client()
        assert self._collection is not None
        return self._collection

    def _collection_metadata(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {"hnsw:space": _SPACES[self.metric]}
        if self._search_ef is not None:
            metadata["hnsw:search_ef"] = self._search_ef
        return metadata

    def _init_client(self) -> None:
        if self._client is not None:
            return

        settings = Settings(anonymized_telemetry=False)

        if self._mode == "client" and self._host:
            self._client = chromadb.HttpClient(
                host=self._host,
                port=self._port or 8000,
                settings=settings,
            )
        elif self._mode == "persistent" and self._path:
            self._client = chromadb.PersistentClient(path=self._path, settings=settings)
        else:
            self._client = chromadb.Client(settings=settings)

        self._collection = self._client.get_or_create_collection(
            name=self._collection_name,
            metadata=self._collection_metadata(),
        )
        space = (self._collection.metadata or {}).get("hnsw:space")
        if space is not None and space != _SPACES[self.metric]:
            raise ValueError(
                f"chroma collection {self._collection_name!r} uses space {space!r}, "
                f"expected {_SPACES[self.metric]!r}"
            )

    def add(self, record_id: str, vector: Sequence[float]) -> None:
        arr = self._check_vector(vector)
        self.get_collection().upsert(ids=[record_id], embeddings=[arr.tolist()])

    def remove(self, record_id: str) -> None:
        collection = self.get_collection()
        found = collection.get(ids=[record_id], include=[])
        if not found["ids"]:
            raise RecordNotFoundError(record_id)
        collection.delete(ids=[record_id])

    def _to_score(self, distance: float) -> float:
        if self.metric == "cosine":
            return round(1.0 - distance, SCORE_DECIMALS)
        return round(-math.sqrt(max(distance, 0.0)), SCORE_DECIMALS)

    def query(
        self,
        vector: Sequence[float],
        k: int = 10,
        threshold: float | None = None,
        token: CancellationToken | None = None,
    ) -> IndexResult:
        self._check_k(k)
        arr = self._check_vector(vector)
        if token is not None and token.cancelled:
            return self._result([], partial=True)

        collection = self.get_collection()
        total = collection.count()
        if total == 0:
            return self._result([])

        results = collection.query(
            query_embeddings=[arr.tolist()],
            n_results=min(total, max(k, self._num_candidates)),
            include=["distances"],
        )
        if not results.get("ids") or not results["ids"][0]:
            return self._result([])

        min_score = threshold_to_score(threshold, self.metric)
        distances = results["distances"][0] if results.get("distances") else []
        pairs = []
        for record_id, distance in zip(results["ids"][0], distances):
            score = self._to_score(float(distance))
            if min_score is not None and score < min_score:
                continue
            pairs.append((record_id, score))
        return self._result(rank_pairs(pairs, k))

    def __contains__(self, record_id: object) -> bool:
        if not isinstance(record_id, str):
            return False
        return bool(self.get_collection().get(ids=[record_id], include=[])["ids"])

    def __len__(self) -> int:
        return self.get_collection().count()

    def ids(self) -> list[str]:
        return list(self.get_collection().get(include=[])["ids"])

    def clear(self) -> None:
        client = self.get_client()
        logger.debug("recreating chroma collection %s", self._collection_name)
        client.delete_collection(self._collection_name)
        self._collection = client.create_collection(
            name=self._collection_name,
            metadata=self._collection_metadata(),
        )

    def close(self) -> None:
        self._client = None
        self._collection = None

    @classmethod
    def from_env(
        cls,
        dimension: int,
        metric: str = "cosine",
        collection_name: str = "search",
        config: ChromaConfig | None = None,
        num_candidates: int = 100,
        search_ef: int | None = None,
    ) -> "ChromaIndex":
        """Create from a ChromaConfig, read from CHROMADB_* variables if omitted."""
        if config is None:
            config = get_chroma_config()
        options: dict[str, Any] = {
            "collection_name": collection_name,
            "num_candidates": num_candidates,
            "search_ef": search_ef,
        }
        if config.is_client_mode():
            return cls(
                dimension,
                metric,
                host=config.host or "localhost",
                port=config.port or 8000,
                mode="client",
                **options,
            )
        if config.is_persistent_mode():
            return cls(dimension, metric, path=config.path, mode="persistent", **options)
        return cls(dimension, metric, mode="ephemeral", **options)

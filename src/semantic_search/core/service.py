"""Search service: owns the store connection, the embedder and open collections."""

from __future__ import annotations

import logging
import threading

from semantic_search.core.cancellation import CancellationToken
from semantic_search.core.collection import Collection
from semantic_search.core.config import SearchConfig
from semantic_search.core.errors import CollectionNotFoundError
from semantic_search.core.models import (
    CollectionInfo,
    QueryResult,
    RebuildReport,
    VectorRecord,
)
from semantic_search.core.storage.base import RecordStore
from semantic_search.embedding.base import EmbeddingFunction

logger = logging.getLogger(__name__)


class SearchService:
    """Semantic search over named collections.

    The record store is created once from ``config.store`` (or passed in) and
    closed by ``close()``. Each opened collection gets its own index, built
    from ``config.index`` and brought in step with the store on open.

    Example:
        # In-memory store, exact index
        from semantic_search.core.config import IndexConfig, SearchConfig, StoreBackendConfig

        config = SearchConfig(store=StoreBackendConfig(backend_type="memory"))
        with SearchService(config=config) as service:
            service.add("cats are small domesticated felines")
            result = service.search("pet cat", top_k=3)

        # SQLite store with the approximate IVF index
        config = SearchConfig(
            store=StoreBackendConfig.from_url("sqlite:///search.db"),
            index=IndexConfig(index_type="ivf", n_lists=32, n_probe=8),
        )
        service = SearchService(config=config)
    """

    def __init__(
        self,
        config: SearchConfig | None = None,
        embedding_func: EmbeddingFunction | None = None,
        store: RecordStore | None = None,
    ) -> None:
        self.config = config or SearchConfig()
        self._embedding_func = embedding_func

        if store is not None:
            self._store = store
        else:
            from semantic_search.core.storage.config import create_record_store

            # config.store is guaranteed to exist due to SearchConfig validation
            assert self.config.store is not None
            self._store = create_record_store(self.config.store)

        self._collections: dict[str, Collection] = {}
        self._lock = threading.RLock()
        self._closed = False

    @property
    def embedding_func(self) -> EmbeddingFunction:
        if self._embedding_func is None:
            from semantic_search.embedding.default import DefaultEmbedding

            self._embedding_func = DefaultEmbedding(
                self.config.model_name, batch_size=self.config.embed_batch_size
            )
        return self._embedding_func

    @property
    def store(self) -> RecordStore:
        return self._store

    def _default_dimension(self) -> int:
        if self._embedding_func is not None:
            return self._embedding_func.dimension
        return self.config.dimension

    def _resolve(self, name: str | None) -> str:
        return name or self.config.collection_name

    def _open(self, info: CollectionInfo) -> Collection:
        from semantic_search.core.storage.config import create_index

        assert self.config.index is not None
        index = create_index(
            self.config.index,
            info.dimension,
            metric=info.metric,
            collection_name=info.name,
        )
        collection = Collection(
            info,
            self._store,
            index,
            embedding_func=self.embedding_func,
            config=self.config,
        )
        report = collection.sync_index()
        if report is not None:
            logger.info("opened %s: %s", info.name, report.to_dict())
        self._collections[info.name] = collection
        return collection

    def create_collection(
        self,
        name: str,
        dimension: int | None = None,
        metric: str | None = None,
    ) -> Collection:
        """Create a collection if it does not exist and return it.

        Raises:
            DimensionMismatchError: If it exists with another dimension
            ValueError: If it exists with another metric
        """
        with self._lock:
            info = self._store.create_collection(
                name,
                dimension or self._default_dimension(),
                metric or self.config.metric,
            )
            cached = self._collections.get(name)
            if cached is not None:
                return cached
            logger.debug("opening collection %s", name)
            return self._open(info)

    def get_collection(self, name: str) -> Collection | None:
        """Return an open collection, or None if the catalog lacks it."""
        with self._lock:
            cached = self._collections.get(name)
            if cached is not None:
                return cached
            info = self._store.get_collection(name)
            if info is None:
                return None
            return self._open(info)

    def collection(
        self, name: str | None = None, create: bool = True
    ) -> Collection | None:
        name = self._resolve(name)
        if create:
            return self.create_collection(name)
        return self.get_collection(name)

    def list_collections(self) -> list[CollectionInfo]:
        return self._store.list_collections()

    def add(self, content: str, collection: str | None = None) -> VectorRecord:
        """Embed and store ``content``, creating the collection on first write."""
        target = self.collection(collection, create=True)
        assert target is not None
        return target.add(content)

    def search(
        self,
        text: str,
        collection: str | None = None,
        top_k: int | None = None,
        threshold: float | None = None,
        token: CancellationToken | None = None,
    ) -> QueryResult:
        """Search a collection by text.

        A collection that does not exist yields an empty result with
        ``collection_found=False`` instead of an error.
        """
        name = self._resolve(collection)
        target = self.get_collection(name)
        if target is None:
            logger.warning("search on missing collection %s", name)
            return QueryResult(collection=name, collection_found=False)
        return target.search(text, top_k=top_k, threshold=threshold, token=token)

    def count(self, collection: str | None = None) -> int:
        return self._store.count(self._resolve(collection))

    def rebuild(self, collection: str | None = None) -> RebuildReport:
        """Rebuild a collection's index from the store.

        Raises:
            CollectionNotFoundError: If the collection does not exist
        """
        name = self._resolve(collection)
        target = self.get_collection(name)
        if target is None:
            raise CollectionNotFoundError(name)
        return target.rebuild()

    def close(self) -> None:
        """Close every open index and the store connection."""
        with self._lock:
            if self._closed:
                return
            for collection in self._collections.values():
                collection.close()
            self._collections.clear()
            self._store.close()
            self._closed = True

    def __enter__(self) -> "SearchService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

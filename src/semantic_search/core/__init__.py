"""Core components for semantic search."""

from semantic_search.core.cancellation import CancellationToken
from semantic_search.core.collection import Collection
from semantic_search.core.config import (
    ChromaConfig,
    IndexConfig,
    RedisConfig,
    SearchConfig,
    StoreBackendConfig,
)
from semantic_search.core.engine import QueryEngine
from semantic_search.core.models import (
    CollectionInfo,
    IndexResult,
    Neighbor,
    QueryResult,
    RebuildReport,
    SearchHit,
    VectorRecord,
)
from semantic_search.core.service import SearchService

__all__ = [
    "CancellationToken",
    "Collection",
    "ChromaConfig",
    "IndexConfig",
    "RedisConfig",
    "SearchConfig",
    "StoreBackendConfig",
    "QueryEngine",
    "CollectionInfo",
    "IndexResult",
    "Neighbor",
    "QueryResult",
    "RebuildReport",
    "SearchHit",
    "VectorRecord",
    "SearchService",
]

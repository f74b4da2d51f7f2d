"""
Semantic Search

Embedding-based semantic search over named collections of text records.

Features:
- Durable record stores: in-memory, SQLite and Redis
- Similarity indexes: exact flat scan, approximate IVF partitions, ChromaDB HNSW
- Cosine and Euclidean metrics with deterministic id tie-breaks
- Lock-free readers over immutable index snapshots, cancellable queries
- Index rebuild from the store with skipped-record reporting
"""

from semantic_search.core.cancellation import CancellationToken
from semantic_search.core.collection import Collection
from semantic_search.core.config import IndexConfig, SearchConfig, StoreBackendConfig
from semantic_search.core.errors import (
    CollectionNotFoundError,
    DimensionMismatchError,
    DuplicateIdError,
    EmbeddingError,
    IndexCorruptionError,
    PersistenceError,
    RecordNotFoundError,
    SemanticSearchError,
)
from semantic_search.core.models import QueryResult, SearchHit, VectorRecord
from semantic_search.core.service import SearchService

__version__ = "0.1.0"
__all__ = [
    "CancellationToken",
    "Collection",
    "IndexConfig",
    "SearchConfig",
    "StoreBackendConfig",
    "CollectionNotFoundError",
    "DimensionMismatchError",
    "DuplicateIdError",
    "EmbeddingError",
    "IndexCorruptionError",
    "PersistenceError",
    "RecordNotFoundError",
    "SemanticSearchError",
    "QueryResult",
    "SearchHit",
    "VectorRecord",
    "SearchService",
]

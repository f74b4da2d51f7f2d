"""Similarity indexes.

- FlatIndex: Exact linear scan (default)
- IVFIndex: Approximate k-means partitions with an n_probe knob
- ChromaIndex: ChromaDB HNSW collection
- SimilarityIndex: Abstract interface shared by all indexes
"""

from semantic_search.core.index.base import SimilarityIndex
from semantic_search.core.index.chroma import ChromaIndex
from semantic_search.core.index.flat import FlatIndex
from semantic_search.core.index.ivf import IVFIndex

__all__ = [
    "SimilarityIndex",
    "FlatIndex",
    "IVFIndex",
    "ChromaIndex",
]

"""Embedding function implementations."""

from semantic_search.embedding.base import EmbeddingFunction
from semantic_search.embedding.default import DefaultEmbedding

__all__ = ["EmbeddingFunction", "DefaultEmbedding"]

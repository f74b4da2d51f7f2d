"""Shared test fixtures."""

import hashlib
import sys
import uuid
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

from semantic_search.core.config import SearchConfig, StoreBackendConfig
from semantic_search.core.service import SearchService
from semantic_search.core.storage.memory import MemoryRecordStore
from semantic_search.embedding.base import EmbeddingFunction


class MockEmbedding(EmbeddingFunction):
    """Mock embedding function for testing with hash-based differentiation."""

    def __init__(self) -> None:
        self.calls = 0

    @property
    def dimension(self) -> int:
        return 16

    def embed(self, text: str) -> list[float]:
        self.calls += 1
        h = hashlib.md5(text.encode()).hexdigest()
        return [int(h[i : i + 2], 16) / 255.0 for i in range(0, 32, 2)]


class FailingEmbedding(MockEmbedding):
    """Embedding function whose model is unavailable."""

    def embed(self, text: str) -> list[float]:
        from semantic_search.core.errors import EmbeddingError

        raise EmbeddingError("model unavailable")


def unique_name(prefix: str = "test") -> str:
    """Collection name that no other test shares."""
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


@pytest.fixture
def embedding() -> MockEmbedding:
    return MockEmbedding()


@pytest.fixture
def memory_service(embedding: MockEmbedding) -> SearchService:
    """SearchService over an in-memory store and the exact index."""
    config = SearchConfig(
        dimension=embedding.dimension,
        store=StoreBackendConfig(backend_type="memory"),
    )
    service = SearchService(
        config=config, embedding_func=embedding, store=MemoryRecordStore()
    )
    yield service
    service.close()


@pytest.fixture
def failing_embedding() -> FailingEmbedding:
    return FailingEmbedding()

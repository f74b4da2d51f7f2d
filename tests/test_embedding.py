"""Tests for embedding functions."""

import pytest

from semantic_search.core.errors import EmbeddingError
from semantic_search.embedding.default import DefaultEmbedding


class TestDefaultEmbedding:
    """Test cases for DefaultEmbedding that need no model."""

    def test_empty_batch_skips_model(self) -> None:
        embedding = DefaultEmbedding(model_name="definitely-not-a-real-model")
        assert embedding.embed_batch([]) == []

    def test_model_name(self) -> None:
        assert DefaultEmbedding().model_name == "all-MiniLM-L6-v2"

    def test_missing_model_raises_embedding_error(self) -> None:
        pytest.importorskip("sentence_transformers")
        embedding = DefaultEmbedding(model_name="/nonexistent/path/to/model")
        with pytest.raises(EmbeddingError):
            embedding.embed("hello")


@pytest.fixture(scope="module")
def real_embedding() -> DefaultEmbedding:
    pytest.importorskip("sentence_transformers")
    embedding = DefaultEmbedding()
    try:
        embedding.dimension
    except EmbeddingError as exc:
        pytest.skip(f"embedding model unavailable: {exc}")
    return embedding


class TestSemanticScenario:
    """End-to-end scenario with the real all-MiniLM-L6-v2 model."""

    def test_dimension(self, real_embedding: DefaultEmbedding) -> None:
        assert real_embedding.dimension == 384
        assert len(real_embedding.embed("hello")) == 384

    def test_batch_matches_single(self, real_embedding: DefaultEmbedding) -> None:
        batch = real_embedding.embed_batch(["first", "second"])
        assert len(batch) == 2
        assert batch[0] == pytest.approx(real_embedding.embed("first"), abs=1e-5)

    def test_animals_before_finance(self, real_embedding: DefaultEmbedding) -> None:
        from semantic_search.core.config import SearchConfig, StoreBackendConfig
        from semantic_search.core.service import SearchService

        config = SearchConfig(store=StoreBackendConfig(backend_type="memory"))
        with SearchService(config=config, embedding_func=real_embedding) as service:
            service.add("Cats are small domesticated carnivorous mammals.")
            service.add("Dogs are loyal companions and popular pets.")
            service.add("The stock market closed higher after strong earnings.")

            result = service.search("my cat", top_k=3)
            payloads = [hit.payload for hit in result]
            assert payloads[-1].startswith("The stock market")
            assert payloads[0].startswith("Cats")

    def test_feline_pets_top_two(self, real_embedding: DefaultEmbedding) -> None:
        from semantic_search.core.config import SearchConfig, StoreBackendConfig
        from semantic_search.core.service import SearchService

        config = SearchConfig(store=StoreBackendConfig(backend_type="memory"))
        with SearchService(config=config, embedding_func=real_embedding) as service:
            cats = service.add("cats are mammals")
            dogs = service.add("dogs are mammals")
            stocks = service.add("stock market fell today")

            result = service.search("feline pets", top_k=2)
            assert set(result.ids) == {cats.id, dogs.id}
            assert stocks.id not in result.ids

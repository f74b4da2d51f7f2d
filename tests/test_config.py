"""Tests for search configuration."""

import pytest
from pydantic import ValidationError

from semantic_search.core.config import (
    ChromaConfig,
    IndexConfig,
    RedisConfig,
    SearchConfig,
    StoreBackendConfig,
    get_redis_config,
)


class TestSearchConfig:
    """Test cases for SearchConfig."""

    def test_default_config(self) -> None:
        """Test default configuration values."""
        config = SearchConfig()
        assert config.collection_name == "search"
        assert config.dimension == 384
        assert config.metric == "cosine"
        assert config.top_k == 10
        assert config.threshold is None
        assert config.model_name == "all-MiniLM-L6-v2"
        assert config.embed_batch_size == 256
        assert config.store is not None
        assert config.store.backend_type == "sqlite"
        assert config.index is not None
        assert config.index.index_type == "flat"

    def test_threshold_validations(self) -> None:
        """Test threshold range per metric."""
        assert SearchConfig(threshold=0.6).threshold == 0.6
        assert SearchConfig(metric="euclidean", threshold=3.5).threshold == 3.5
        # Without an explicit metric the collection's metric decides later
        assert SearchConfig(threshold=1.5).threshold == 1.5

        with pytest.raises(ValidationError):
            SearchConfig(metric="cosine", threshold=1.5)
        with pytest.raises(ValidationError):
            SearchConfig(metric="cosine", threshold=-1.5)
        with pytest.raises(ValidationError):
            SearchConfig(metric="euclidean", threshold=-0.1)

    def test_parameter_validations(self) -> None:
        with pytest.raises(ValidationError):
            SearchConfig(dimension=0)
        with pytest.raises(ValidationError):
            SearchConfig(top_k=0)
        with pytest.raises(ValidationError):
            SearchConfig(metric="dot")
        with pytest.raises(ValidationError):
            SearchConfig(collection_name="")


class TestStoreBackendConfig:
    """Test cases for StoreBackendConfig."""

    def test_from_url(self) -> None:
        assert StoreBackendConfig.from_url("memory://").backend_type == "memory"

        sqlite = StoreBackendConfig.from_url("sqlite:///data/search.db")
        assert sqlite.backend_type == "sqlite"
        assert sqlite.sqlite_path == "data/search.db"

        redis = StoreBackendConfig.from_url("redis://localhost:6379/2")
        assert redis.backend_type == "redis"
        assert redis.redis is not None
        assert redis.redis.is_url_based()

    def test_from_url_rejects_unknown_scheme(self) -> None:
        with pytest.raises(ValueError, match="unsupported database URL"):
            StoreBackendConfig.from_url("postgres://localhost/db")
        with pytest.raises(ValueError):
            StoreBackendConfig.from_url("sqlite://")

    def test_redis_requires_configuration(self, monkeypatch) -> None:
        for var in ("REDIS_URL", "REDIS_HOST"):
            monkeypatch.delenv(var, raising=False)
        with pytest.raises(ValidationError):
            StoreBackendConfig(backend_type="redis")

    def test_redis_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("REDIS_HOST", "cache.local")
        monkeypatch.setenv("REDIS_PORT", "6380")
        config = StoreBackendConfig(backend_type="redis")
        assert config.redis is not None
        assert config.redis.host == "cache.local"
        assert config.redis.port == 6380
        assert not config.redis.is_url_based()

        assert get_redis_config() is not None


class TestIndexConfig:
    """Test cases for IndexConfig."""

    def test_defaults(self) -> None:
        config = IndexConfig()
        assert config.merge_threshold == 1024
        assert config.n_lists == 16
        assert config.n_probe == 4
        assert config.num_candidates == 100
        assert config.chroma is None

    def test_n_probe_bounded_by_n_lists(self) -> None:
        with pytest.raises(ValidationError):
            IndexConfig(n_lists=4, n_probe=8)
        assert IndexConfig(n_lists=4, n_probe=4).n_probe == 4

    def test_chroma_config_filled(self, monkeypatch) -> None:
        monkeypatch.delenv("CHROMADB_MODE", raising=False)
        config = IndexConfig(index_type="chroma")
        assert config.chroma is not None
        assert config.chroma.is_ephemeral_mode()


class TestChromaConfig:
    """Test cases for ChromaConfig."""

    def test_mode_defaults(self) -> None:
        client = ChromaConfig(mode="client")
        assert client.host == "localhost"
        assert client.port == 8000

        persistent = ChromaConfig(mode="persistent")
        assert persistent.path == "./chroma"

    def test_invalid_mode(self) -> None:
        with pytest.raises(ValidationError):
            ChromaConfig(mode="cloud")


class TestRedisConfig:
    def test_is_configured(self) -> None:
        assert RedisConfig(url="redis://localhost:6379/0").is_configured()
        assert RedisConfig(host="localhost").is_configured()

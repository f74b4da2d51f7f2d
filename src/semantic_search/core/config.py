"""Configuration for the search system with pydantic-based settings."""

from __future__ import annotations

from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from semantic_search.core.utils import check_threshold


class SearchConfig(BaseModel):
    """Configuration for a search service.

    Attributes:
        collection_name: Default collection for writes and queries
        dimension: Dimension of embedding vectors
        metric: Distance metric for new collections
        top_k: Default number of results per query
        threshold: Default similarity floor (cosine) or distance ceiling
            (euclidean); None disables filtering
        model_name: sentence-transformers model for the default embedder
        embed_batch_size: Batch size passed to the embedding model
        store: Record store configuration
        index: Similarity index configuration
    """

    collection_name: str = Field(
        default="search", min_length=1, description="Default collection name"
    )
    dimension: int = Field(
        default=384, gt=0, description="Dimension of embedding vectors"
    )
    metric: Literal["cosine", "euclidean"] = Field(
        default="cosine", description="Distance metric for new collections"
    )
    top_k: int = Field(
        default=10, gt=0, description="Default number of results per query"
    )
    threshold: Optional[float] = Field(
        default=None,
        description="Minimum similarity (cosine) or maximum distance (euclidean)",
    )
    model_name: str = Field(
        default="all-MiniLM-L6-v2", description="Embedding model name"
    )
    embed_batch_size: int = Field(
        default=256, gt=0, description="Batch size for embedding generation"
    )
    store: Optional[StoreBackendConfig] = Field(
        default=None, description="Record store configuration"
    )
    index: Optional[IndexConfig] = Field(
        default=None, description="Similarity index configuration"
    )

    @model_validator(mode="after")
    def validate_threshold(self) -> "SearchConfig":
        """Validate the threshold range when the metric is given explicitly.

        Without an explicit metric the threshold is checked against the
        metric of each collection when it is searched.
        """
        if self.threshold is not None and "metric" in self.model_fields_set:
            check_threshold(self.threshold, self.metric)
        # Initialize store config if not provided
        if self.store is None:
            self.store = StoreBackendConfig()
        # Initialize index config if not provided
        if self.index is None:
            self.index = IndexConfig()
        return self


class ChromaConfig(BaseSettings):
    """Configuration for ChromaDB connectivity."""

    model_config = SettingsConfigDict(
        env_prefix="CHROMADB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    mode: str = Field(
        default="ephemeral",
        description="ChromaDB mode: 'client', 'persistent', or 'ephemeral'",
    )
    host: Optional[str] = Field(
        default=None, description="ChromaDB server host (for client mode)"
    )
    port: Optional[int] = Field(
        default=None, description="ChromaDB server port (for client mode)"
    )
    path: Optional[str] = Field(
        default=None, description="Persistent storage path (for persistent mode)"
    )

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        """Validate ChromaDB mode."""
        valid_modes = {"client", "persistent", "ephemeral"}
        if v not in valid_modes:
            raise ValueError(f"mode must be one of {valid_modes}, got {v}")
        return v

    @model_validator(mode="after")
    def validate_mode_requirements(self) -> "ChromaConfig":
        """Validate that required fields are set based on mode."""
        if self.mode == "client":
            if not self.host:
                self.host = "localhost"
            if not self.port:
                self.port = 8000
        if self.mode == "persistent" and not self.path:
            self.path = "./chroma"
        return self

    def is_client_mode(self) -> bool:
        """Check if ChromaDB is configured in client mode."""
        return self.mode == "client"

    def is_persistent_mode(self) -> bool:
        """Check if ChromaDB is configured in persistent mode."""
        return self.mode == "persistent"

    def is_ephemeral_mode(self) -> bool:
        """Check if ChromaDB is configured in ephemeral mode."""
        return self.mode == "ephemeral"


class RedisConfig(BaseSettings):
    """Configuration for Redis connectivity."""

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: Optional[str] = Field(default=None, description="Redis connection URL")
    host: Optional[str] = Field(default=None, description="Redis server host")
    port: int = Field(default=6379, description="Redis server port")
    db: int = Field(default=0, ge=0, description="Redis database number")
    password: Optional[str] = Field(default=None, description="Redis password")

    def is_configured(self) -> bool:
        """Check if Redis is configured."""
        return self.url is not None or self.host is not None

    def is_url_based(self) -> bool:
        """Check if Redis is configured using URL."""
        return self.url is not None


class StoreBackendConfig(BaseModel):
    """Configuration for record store selection and settings.

    Attributes:
        backend_type: Type of record store ('memory', 'sqlite' or 'redis')
        sqlite_path: Database file for the sqlite backend
        redis: Redis connection configuration (required if backend_type='redis')
        prefix: Key prefix for the redis backend
    """

    backend_type: Literal["memory", "sqlite", "redis"] = Field(
        default="sqlite", description="Record store type"
    )
    sqlite_path: str = Field(
        default="semantic_search.db", description="SQLite database file"
    )
    redis: Optional[RedisConfig] = Field(
        default=None,
        description="Redis configuration (required if backend_type='redis')",
    )
    prefix: str = Field(
        default="semantic_search:", description="Key prefix for redis backend"
    )

    @model_validator(mode="after")
    def validate_redis_required(self) -> "StoreBackendConfig":
        """Ensure Redis config is provided when backend_type is redis."""
        if self.backend_type == "redis" and self.redis is None:
            # Auto-create from environment
            self.redis = RedisConfig()
            if not self.redis.is_configured():
                raise ValueError(
                    "Redis configuration required when backend_type='redis'. "
                    "Set REDIS_URL or REDIS_HOST environment variable."
                )
        return self

    @classmethod
    def from_url(cls, url: str) -> "StoreBackendConfig":
        """Build a store config from a database URL.

        Supported schemes: ``sqlite:///path/to.db``, ``redis://host:port/db``
        (also ``rediss://``) and ``memory://``.

        Example:
            >>> StoreBackendConfig.from_url("sqlite:///data/search.db").sqlite_path
            'data/search.db'
        """
        parsed = urlparse(url)
        scheme = parsed.scheme.lower()
        if scheme == "memory":
            return cls(backend_type="memory")
        if scheme == "sqlite":
            path = url[len("sqlite:///"):] if url.startswith("sqlite:///") else ""
            if not path:
                raise ValueError(f"sqlite URL must include a path: {url}")
            return cls(backend_type="sqlite", sqlite_path=path)
        if scheme in ("redis", "rediss"):
            return cls(backend_type="redis", redis=RedisConfig(url=url))
        raise ValueError(
            f"unsupported database URL scheme {scheme!r}; "
            "expected sqlite://, redis:// or memory://"
        )


class IndexConfig(BaseModel):
    """Configuration for the similarity index.

    Attributes:
        index_type: 'flat' (exact scan), 'ivf' (approximate partitions) or
            'chroma' (ChromaDB HNSW)
        merge_threshold: Pending rows before the flat index merges its delta
        block_size: Rows scored per block between cancellation checks
        n_lists: Number of IVF partitions
        n_probe: IVF partitions scanned per query (recall/latency knob)
        train_size: Vectors required before IVF trains (default 8 * n_lists)
        seed: Random seed for IVF k-means
        num_candidates: Chroma candidates fetched per query
        search_ef: Chroma HNSW search breadth (recall/latency knob)
        chroma: ChromaDB configuration (used if index_type='chroma')
    """

    index_type: Literal["flat", "ivf", "chroma"] = Field(
        default="flat", description="Similarity index type"
    )
    merge_threshold: int = Field(
        default=1024, gt=0, description="Pending rows before merging"
    )
    block_size: int = Field(
        default=4096, gt=0, description="Rows scored between cancellation checks"
    )
    n_lists: int = Field(default=16, gt=0, description="Number of IVF partitions")
    n_probe: int = Field(
        default=4, gt=0, description="IVF partitions scanned per query"
    )
    train_size: Optional[int] = Field(
        default=None, gt=0, description="Vectors required before IVF training"
    )
    seed: int = Field(default=0, description="Random seed for IVF k-means")
    num_candidates: int = Field(
        default=100, gt=0, description="Chroma candidates fetched per query"
    )
    search_ef: Optional[int] = Field(
        default=None, gt=0, description="Chroma HNSW search breadth"
    )
    chroma: Optional[ChromaConfig] = Field(
        default=None, description="ChromaDB configuration (used if index_type='chroma')"
    )

    @model_validator(mode="after")
    def validate_index(self) -> "IndexConfig":
        """Validate IVF knobs and fill in Chroma config when needed."""
        if self.n_probe > self.n_lists:
            raise ValueError(
                f"n_probe ({self.n_probe}) must be <= n_lists ({self.n_lists})"
            )
        if self.index_type == "chroma" and self.chroma is None:
            self.chroma = ChromaConfig()
        return self


def get_chroma_config() -> ChromaConfig:
    """Get ChromaDB configuration from environment variables."""
    return ChromaConfig()


def get_redis_config() -> Optional[RedisConfig]:
    """Get Redis configuration from environment variables, or None if not configured."""
    config = RedisConfig()
    if not config.is_configured():
        return None
    return config

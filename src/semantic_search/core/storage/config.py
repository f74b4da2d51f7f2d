"""Factory functions for creating record stores and indexes from config."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from semantic_search.core.config import IndexConfig, StoreBackendConfig
    from semantic_search.core.index.base import SimilarityIndex
    from semantic_search.core.storage.base import RecordStore


def create_record_store(config: "StoreBackendConfig") -> "RecordStore":
    """Create record store instance from config.

    Args:
        config: Store backend configuration

    Returns:
        Record store instance (memory, sqlite or redis)

    Raises:
        ValueError: If redis backend is selected but redis config is missing
    """
    if config.backend_type == "redis":
        from semantic_search.core.storage.redis import RedisRecordStore

        if config.redis is None:
            raise ValueError("Redis config required for redis backend")
        return RedisRecordStore.from_env(config.redis, prefix=config.prefix)
    if config.backend_type == "sqlite":
        from semantic_search.core.storage.sqlite import SQLiteRecordStore

        return SQLiteRecordStore(config.sqlite_path)

    from semantic_search.core.storage.memory import MemoryRecordStore

    return MemoryRecordStore()


def create_index(
    config: "IndexConfig",
    dimension: int,
    metric: str = "cosine",
    collection_name: str = "search",
) -> "SimilarityIndex":
    """Create a similarity index for one collection from config.

    Args:
        config: Index configuration
        dimension: Collection dimension
        metric: Collection metric
        collection_name: Used to name the Chroma collection

    Returns:
        Index instance (FlatIndex, IVFIndex or ChromaIndex)
    """
    if config.index_type == "ivf":
        from semantic_search.core.index.ivf import IVFIndex

        return IVFIndex(
            dimension,
            metric,
            n_lists=config.n_lists,
            n_probe=config.n_probe,
            train_size=config.train_size,
            seed=config.seed,
        )
    if config.index_type == "chroma":
        from semantic_search.core.index.chroma import ChromaIndex

        return ChromaIndex.from_env(
            dimension,
            metric,
            collection_name=collection_name,
            config=config.chroma,
            num_candidates=config.num_candidates,
            search_ef=config.search_ef,
        )

    from semantic_search.core.index.flat import FlatIndex

    return FlatIndex(
        dimension,
        metric,
        merge_threshold=config.merge_threshold,
        block_size=config.block_size,
    )

from semantic_search.core import (
    ChromaConfig,
    IndexConfig,
    RedisConfig,
    SearchConfig,
    SearchService,
    StoreBackendConfig,
)


def example_sqlite_flat():
    """SQLite records with the exact flat index."""
    config = SearchConfig(
        store=StoreBackendConfig.from_url("sqlite:///data/search.db"),
        index=IndexConfig(index_type="flat"),
    )

    with SearchService(config=config) as service:
        service.add("python tutorial for beginners")
        print(service.search("learn python").to_dict())


def example_redis_ivf():
    """Redis records with the approximate IVF index."""
    config = SearchConfig(
        metric="euclidean",
        store=StoreBackendConfig(
            backend_type="redis",
            redis=RedisConfig(host="localhost", port=6379, db=0, password=None),
            prefix="my_app:",
        ),
        index=IndexConfig(index_type="ivf", n_lists=64, n_probe=8),
    )

    with SearchService(config=config) as service:
        collection = service.create_collection("articles")
        collection.add("redis is an in-memory data store")
        collection.index.train()
        print(collection.search("key value database", top_k=5).to_dict())


def example_chroma_client():
    """SQLite records with a ChromaDB server as the index."""
    config = SearchConfig(
        store=StoreBackendConfig(backend_type="sqlite"),
        index=IndexConfig(
            index_type="chroma",
            chroma=ChromaConfig(mode="client", host="localhost", port=8000),
            num_candidates=200,
            search_ef=128,
        ),
    )

    with SearchService(config=config) as service:
        report = service.rebuild()
        print(report.to_dict())


def example_env_based():
    """Read connectivity from environment variables.

    Needs:
    - REDIS_URL=redis://localhost:6379/0
    - CHROMADB_MODE=persistent
    - CHROMADB_PATH=./chroma
    """
    config = SearchConfig(
        store=StoreBackendConfig(backend_type="redis"),
        index=IndexConfig(index_type="chroma"),
    )

    with SearchService(config=config) as service:
        print(service.list_collections())


if __name__ == "__main__":
    example_sqlite_flat()

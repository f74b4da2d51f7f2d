"""
Example: Basic semantic search.

This example stores a few documents in an in-memory collection and
searches them with the default sentence-transformers model.
"""

from semantic_search import SearchConfig, SearchService, StoreBackendConfig


def main():
    config = SearchConfig(
        top_k=3,
        store=StoreBackendConfig(backend_type="memory"),
    )

    with SearchService(config=config) as service:
        print("=== Adding documents ===")
        for text in [
            "Cats are small domesticated carnivorous mammals.",
            "Dogs are loyal companions and popular pets.",
            "The stock market closed higher after strong earnings.",
            "Python is a popular programming language.",
        ]:
            record = service.add(text)
            print(f"{record.id}  {text}")

        print(f"\nrows: {service.count()}")

        print("\n=== Searching ===")
        result = service.search("feline pets")
        for hit in result:
            print(f"{hit.value:.3f}  {hit.payload}")

        print("\n=== Similarity floor ===")
        result = service.search("feline pets", threshold=0.3)
        print(f"{len(result)} matches with similarity >= 0.3")

        print("\n=== Missing collection ===")
        result = service.search("anything", collection="does-not-exist")
        print(result.to_dict())


if __name__ == "__main__":
    main()

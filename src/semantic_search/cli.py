"""Command line interface.

Usage:
    # Store a document in the default collection
    semantic-search -d sqlite:///search.db create "cats are small felines"

    # Query it
    semantic-search -d sqlite:///search.db search "pet cat" --top-k 3

    # DATABASE_URL and INDEX_TYPE may come from the environment or a .env file
    export DATABASE_URL=redis://localhost:6379/0
    semantic-search --index ivf count
"""

import argparse
import json
import logging
import os
import sys

from dotenv import load_dotenv

from semantic_search.core.config import IndexConfig, SearchConfig, StoreBackendConfig
from semantic_search.core.errors import SemanticSearchError
from semantic_search.core.service import SearchService
from semantic_search.embedding.base import EmbeddingFunction

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///semantic_search.db"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="semantic-search", description="Semantic search over text collections"
    )
    parser.add_argument(
        "-d",
        "--database-url",
        default=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        help="sqlite:///path, redis://host:port/db or memory:// (env DATABASE_URL)",
    )
    parser.add_argument(
        "--index",
        choices=["flat", "ivf", "chroma"],
        default=os.getenv("INDEX_TYPE", "flat"),
        help="Similarity index type (env INDEX_TYPE)",
    )
    parser.add_argument(
        "-c", "--collection", default="search", help="Collection name"
    )
    parser.add_argument(
        "--metric",
        choices=["cosine", "euclidean"],
        default=None,
        help="Metric for a new collection (default cosine)",
    )
    parser.add_argument(
        "-t",
        "--threshold",
        type=float,
        default=None,
        help="Minimum similarity (cosine) or maximum distance (euclidean)",
    )
    parser.add_argument(
        "--model", default="all-MiniLM-L6-v2", help="sentence-transformers model"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Embed and store a document")
    create.add_argument("content")

    search = subparsers.add_parser("search", help="Find the closest documents")
    search.add_argument("query")
    search.add_argument("--top-k", type=int, default=10, help="Number of matches")

    subparsers.add_parser("count", help="Count stored documents")
    subparsers.add_parser(
        "list-collections", aliases=["collections"], help="List collections"
    )
    subparsers.add_parser("rebuild", help="Rebuild the index from the store")
    return parser


def build_service(
    args: argparse.Namespace, embedding_func: EmbeddingFunction | None = None
) -> SearchService:
    """Create a SearchService from parsed arguments."""
    config_kwargs = {
        "collection_name": args.collection,
        "threshold": args.threshold,
        "model_name": args.model,
        "store": StoreBackendConfig.from_url(args.database_url),
        "index": IndexConfig(index_type=args.index),
    }
    if args.metric:
        config_kwargs["metric"] = args.metric
    config = SearchConfig(**config_kwargs)

    if embedding_func is None:
        from semantic_search.embedding.default import DefaultEmbedding

        # Loads the model on first use, so `count` never pays for it
        embedding_func = DefaultEmbedding(
            config.model_name, batch_size=config.embed_batch_size
        )
    return SearchService(config=config, embedding_func=embedding_func)


def run(args: argparse.Namespace, service: SearchService) -> int:
    command = args.command
    if command == "create":
        record = service.add(args.content, collection=args.collection)
        print(record.id)
        print("done.")
    elif command == "search":
        result = service.search(
            args.query, collection=args.collection, top_k=args.top_k
        )
        if not result.collection_found:
            print(f"collection not found: {args.collection}")
            return 0
        print(f"matches: {json.dumps(result.to_dict()['matches'], indent=2)}")
        if result.skipped_ids:
            logger.warning("skipped missing records: %s", result.skipped_ids)
    elif command == "count":
        print(f"rows: {service.count(args.collection)}")
    elif command in ("list-collections", "collections"):
        catalog = [info.to_dict() for info in service.list_collections()]
        print(f"collections: {json.dumps(catalog, indent=2)}")
    elif command == "rebuild":
        report = service.rebuild(args.collection)
        print(json.dumps(report.to_dict(), indent=2))
        if not report.ok:
            return 1
    return 0


def main(
    argv: list[str] | None = None, embedding_func: EmbeddingFunction | None = None
) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        service = build_service(args, embedding_func=embedding_func)
    except (SemanticSearchError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    with service:
        try:
            return run(args, service)
        except (SemanticSearchError, ValueError) as exc:
            logger.debug("command %s failed", args.command, exc_info=True)
            print(f"error: {exc}", file=sys.stderr)
            return 1


if __name__ == "__main__":
    sys.exit(main())

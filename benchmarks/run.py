#!/usr/bin/env python3
"""Benchmark command line tool.

Usage:
    python -m benchmarks.run --num-vectors 5000 --n-lists 32
    python -m benchmarks.run --metric euclidean --n-probe 1 4 8 --output-format csv
"""

import argparse
from pathlib import Path

from benchmarks.recall import make_dataset, print_result, run_benchmark, save_result


def main():
    parser = argparse.ArgumentParser(description="IVF recall/latency benchmark")
    parser.add_argument("--num-vectors", type=int, default=2000, help="Indexed vectors")
    parser.add_argument("--num-queries", type=int, default=50, help="Queries")
    parser.add_argument("--dimension", type=int, default=64, help="Vector dimension")
    parser.add_argument("--clusters", type=int, default=32, help="Data clusters")
    parser.add_argument(
        "--metric", choices=["cosine", "euclidean"], default="cosine", help="Metric"
    )
    parser.add_argument("--top-k", type=int, default=10, help="Results per query")
    parser.add_argument("--n-lists", type=int, default=16, help="IVF partitions")
    parser.add_argument(
        "--n-probe", type=int, nargs="+", help="n_probe values to sweep"
    )
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    parser.add_argument(
        "--output-format", choices=["json", "csv"], default="json", help="Output format"
    )
    parser.add_argument("--output", help="Output file path")
    parser.add_argument("--quiet", action="store_true", help="Quiet mode")

    args = parser.parse_args()

    dataset = make_dataset(
        num_vectors=args.num_vectors,
        dimension=args.dimension,
        num_queries=args.num_queries,
        num_clusters=args.clusters,
        seed=args.seed,
    )
    result = run_benchmark(
        dataset,
        k=args.top_k,
        metric=args.metric,
        n_lists=args.n_lists,
        n_probes=args.n_probe,
        seed=args.seed,
        quiet=args.quiet,
    )

    if not args.quiet:
        print_result(result)

    if args.output:
        output_path = Path(args.output)
    else:
        output_path = (
            Path("benchmarks/results")
            / f"ivf_{args.metric}_{args.num_vectors}.{args.output_format}"
        )

    save_result(result, output_path, format=args.output_format)

    if not args.quiet:
        print(f"\nResults saved to: {output_path}")


if __name__ == "__main__":
    main()

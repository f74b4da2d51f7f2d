"""Recall and latency of the approximate IVF index against the exact scan.

Generate data -> build indexes -> query -> report
"""

import json
import time
from pathlib import Path
from typing import Any

import numpy as np

from semantic_search.core.index.flat import FlatIndex
from semantic_search.core.index.ivf import IVFIndex


def make_dataset(
    num_vectors: int = 2000,
    dimension: int = 64,
    num_queries: int = 50,
    num_clusters: int = 32,
    seed: int = 0,
) -> dict[str, Any]:
    """Generate clustered vectors and queries drawn near the same clusters.

    Returns:
        Dict with ``ids``, ``vectors`` and ``queries``
    """
    rng = np.random.default_rng(seed)
    centers = rng.normal(size=(num_clusters, dimension))
    labels = rng.integers(0, num_clusters, size=num_vectors)
    vectors = centers[labels] + 0.3 * rng.normal(size=(num_vectors, dimension))
    query_labels = rng.integers(0, num_clusters, size=num_queries)
    queries = centers[query_labels] + 0.3 * rng.normal(size=(num_queries, dimension))
    ids = [f"doc-{i:06d}" for i in range(num_vectors)]
    return {"ids": ids, "vectors": vectors, "queries": queries}


def recall_at_k(expected: list[str], actual: list[str]) -> float:
    """Fraction of the exact top-k that the approximate top-k recovered."""
    if not expected:
        return 1.0
    return len(set(expected) & set(actual)) / len(expected)


def run_benchmark(
    dataset: dict[str, Any],
    k: int = 10,
    metric: str = "cosine",
    n_lists: int = 16,
    n_probes: list[int] | None = None,
    seed: int = 0,
    quiet: bool = True,
) -> dict[str, Any]:
    """Build both indexes over ``dataset`` and compare their answers.

    Args:
        dataset: Output of make_dataset
        k: Results per query
        metric: 'cosine' or 'euclidean'
        n_lists: IVF partitions
        n_probes: n_probe values to sweep (default 1, 2, 4 and n_lists)
        seed: k-means seed
        quiet: Suppress progress output

    Returns:
        Benchmark statistics, one row per n_probe value
    """
    vectors = dataset["vectors"]
    ids = dataset["ids"]
    queries = dataset["queries"]
    dimension = vectors.shape[1]
    if n_probes is None:
        n_probes = sorted({p for p in (1, 2, 4, n_lists) if p <= n_lists})

    exact = FlatIndex(dimension, metric)
    approx = IVFIndex(dimension, metric, n_lists=n_lists, n_probe=1, seed=seed)

    start = time.time()
    for record_id, vector in zip(ids, vectors):
        exact.add(record_id, vector)
    exact_build_time = time.time() - start

    start = time.time()
    for record_id, vector in zip(ids, vectors):
        approx.add(record_id, vector)
    approx.train()
    ivf_build_time = time.time() - start

    if not quiet:
        print(f"indexed {len(ids)} vectors of dimension {dimension}")

    truth: list[list[str]] = []
    start = time.time()
    for query in queries:
        truth.append(exact.query(query, k=k).ids)
    exact_query_time = (time.time() - start) / max(len(queries), 1)

    sweeps = []
    for n_probe in n_probes:
        recalls = []
        start = time.time()
        for query, expected in zip(queries, truth):
            result = approx.query(query, k=k, n_probe=n_probe)
            recalls.append(recall_at_k(expected, result.ids))
        avg_time = (time.time() - start) / max(len(queries), 1)
        sweeps.append(
            {
                "n_probe": n_probe,
                "recall": float(np.mean(recalls)) if recalls else 1.0,
                "avg_query_time": avg_time,
            }
        )
        if not quiet:
            print(f"n_probe={n_probe}: recall@{k}={sweeps[-1]['recall']:.3f}")

    return {
        "num_vectors": len(ids),
        "num_queries": len(queries),
        "dimension": dimension,
        "metric": metric,
        "k": k,
        "n_lists": n_lists,
        "exact_build_time": exact_build_time,
        "ivf_build_time": ivf_build_time,
        "exact_avg_query_time": exact_query_time,
        "sweeps": sweeps,
    }


def print_result(result: dict[str, Any]) -> None:
    """Print benchmark results."""
    print("=" * 60)
    print(
        f"{result['num_vectors']} vectors, dim {result['dimension']}, "
        f"{result['metric']}, k={result['k']}, n_lists={result['n_lists']}"
    )
    print("=" * 60)
    print(f"exact query:  {result['exact_avg_query_time'] * 1000:.3f} ms")
    for row in result["sweeps"]:
        print(
            f"n_probe={row['n_probe']:<4} recall={row['recall']:.3f}  "
            f"query={row['avg_query_time'] * 1000:.3f} ms"
        )


def save_result(
    result: dict[str, Any], output_path: str | Path, format: str = "json"
) -> None:
    """Save results to a file."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if format == "json":
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(result, f, indent=2)
    elif format == "csv":
        import csv

        rows = [
            {
                "num_vectors": result["num_vectors"],
                "metric": result["metric"],
                "k": result["k"],
                "n_lists": result["n_lists"],
                **row,
            }
            for row in result["sweeps"]
        ]
        file_exists = output_path.exists()
        with open(output_path, "a", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=rows[0].keys())
            if not file_exists:
                writer.writeheader()
            writer.writerows(rows)
    else:
        raise ValueError(f"unsupported format: {format}")

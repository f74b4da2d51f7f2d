"""Benchmark module.

- make_dataset: Generate clustered vectors and queries
- run_benchmark: Compare IVF recall and latency against the exact index
- print_result / save_result: Output results
"""

from benchmarks.recall import (
    make_dataset,
    print_result,
    recall_at_k,
    run_benchmark,
    save_result,
)

__all__ = [
    "make_dataset",
    "recall_at_k",
    "run_benchmark",
    "print_result",
    "save_result",
]

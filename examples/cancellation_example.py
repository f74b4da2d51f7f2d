"""
Example: Cancellable queries over a large exact index.

A query whose deadline expires returns the best matches found so far,
flagged as partial.
"""

import numpy as np

from semantic_search import CancellationToken
from semantic_search.core.index import FlatIndex


def main():
    rng = np.random.default_rng(0)
    index = FlatIndex(dimension=128, block_size=1024)
    for i, vector in enumerate(rng.normal(size=(50_000, 128))):
        index.add(f"doc-{i:06d}", vector)

    query = rng.normal(size=128)
    token = CancellationToken(timeout=0.001)
    result = index.query(query, k=5, token=token)
    print(f"partial={result.partial}  remaining={token.remaining():.3f}s  ids={result.ids}")

    result = index.query(query, k=5)
    print(f"partial={result.partial}  ids={result.ids}")


if __name__ == "__main__":
    main()

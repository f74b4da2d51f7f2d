"""Tests for the approximate IVF index."""

import numpy as np
import pytest

from semantic_search.core.cancellation import CancellationToken
from semantic_search.core.errors import DimensionMismatchError, RecordNotFoundError
from semantic_search.core.index.flat import FlatIndex
from semantic_search.core.index.ivf import IVFIndex


def clustered(n: int, dimension: int = 8, clusters: int = 4, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    centers = rng.normal(size=(clusters, dimension)) * 5
    labels = rng.integers(0, clusters, size=n)
    return centers[labels] + rng.normal(size=(n, dimension)) * 0.2


class TestIVFIndex:
    """Test cases for IVFIndex."""

    @pytest.fixture
    def index(self) -> IVFIndex:
        return IVFIndex(dimension=8, n_lists=4, n_probe=1, train_size=32, seed=0)

    def test_untrained_is_exact(self, index: IVFIndex) -> None:
        vectors = clustered(10)
        exact = FlatIndex(dimension=8)
        for i, vector in enumerate(vectors):
            index.add(str(i), vector)
            exact.add(str(i), vector)

        assert not index.is_trained
        assert index.query(vectors[0], k=5).ids == exact.query(vectors[0], k=5).ids

    def test_trains_at_train_size(self, index: IVFIndex) -> None:
        for i, vector in enumerate(clustered(40)):
            index.add(f"{i:03d}", vector)
        assert index.is_trained
        assert len(index) == 40
        assert sorted(index.ids()) == [f"{i:03d}" for i in range(40)]

    def test_self_match_after_training(self, index: IVFIndex) -> None:
        vectors = clustered(64)
        for i, vector in enumerate(vectors):
            index.add(str(i), vector)

        for i in (0, 17, 63):
            assert index.query(vectors[i], k=1).ids == [str(i)]

    def test_full_probe_matches_exact(self, index: IVFIndex) -> None:
        vectors = clustered(80, seed=3)
        exact = FlatIndex(dimension=8)
        for i, vector in enumerate(vectors):
            index.add(str(i), vector)
            exact.add(str(i), vector)

        query = vectors[5] + 0.1
        approx = index.query(query, k=10, n_probe=index.n_lists)
        assert approx.ids == exact.query(query, k=10).ids

    def test_recall_grows_with_n_probe(self) -> None:
        vectors = clustered(300, clusters=8, seed=1)
        queries = clustered(20, clusters=8, seed=2)
        index = IVFIndex(dimension=8, n_lists=8, n_probe=1, seed=0)
        exact = FlatIndex(dimension=8)
        for i, vector in enumerate(vectors):
            index.add(str(i), vector)
            exact.add(str(i), vector)
        index.train()

        def recall(n_probe: int) -> float:
            hits = 0
            for query in queries:
                truth = set(exact.query(query, k=10).ids)
                hits += len(truth & set(index.query(query, k=10, n_probe=n_probe).ids))
            return hits / (10 * len(queries))

        assert recall(1) <= recall(4) <= recall(8)
        assert recall(8) == 1.0

    def test_remove_and_idempotent_remove(self, index: IVFIndex) -> None:
        vectors = clustered(40)
        for i, vector in enumerate(vectors):
            index.add(str(i), vector)

        index.remove("7")
        assert "7" not in index
        assert "7" not in index.query(vectors[7], k=40, n_probe=4).ids
        with pytest.raises(RecordNotFoundError):
            index.remove("7")
        assert len(index) == 39

    def test_add_upserts_across_partitions(self, index: IVFIndex) -> None:
        vectors = clustered(40)
        for i, vector in enumerate(vectors):
            index.add(str(i), vector)

        index.add("0", -vectors[0])
        assert len(index) == 40
        assert index.query(-vectors[0], k=1, n_probe=4).ids == ["0"]

    def test_tie_broken_by_id(self) -> None:
        index = IVFIndex(dimension=2, n_lists=2, n_probe=2)
        index.add("5", [1.0, 0.0])
        index.add("3", [1.0, 0.0])
        assert index.query([1.0, 0.0], k=2).ids == ["3", "5"]

    def test_threshold(self) -> None:
        index = IVFIndex(dimension=2, metric="euclidean", n_lists=2, n_probe=2)
        index.add("a", [0.0, 0.0])
        index.add("b", [3.0, 4.0])
        assert index.query([0.0, 0.0], k=2, threshold=1.0).ids == ["a"]

    def test_wrong_dimension(self, index: IVFIndex) -> None:
        with pytest.raises(DimensionMismatchError):
            index.add("a", [1.0, 2.0])
        assert len(index) == 0

    def test_invalid_knobs(self) -> None:
        with pytest.raises(ValueError):
            IVFIndex(dimension=4, n_lists=0)
        index = IVFIndex(dimension=4)
        with pytest.raises(ValueError):
            index.n_probe = 0
        with pytest.raises(ValueError):
            index.query([1.0, 0.0, 0.0, 0.0], k=1, n_probe=0)

    def test_cancelled_query_is_partial(self, index: IVFIndex) -> None:
        for i, vector in enumerate(clustered(40)):
            index.add(str(i), vector)
        token = CancellationToken()
        token.cancel()
        result = index.query(clustered(1)[0], k=5, token=token)
        assert result.partial

    def test_clear(self, index: IVFIndex) -> None:
        for i, vector in enumerate(clustered(40)):
            index.add(str(i), vector)
        index.clear()
        assert len(index) == 0
        assert not index.is_trained

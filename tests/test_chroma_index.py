"""Tests for the ChromaDB-backed index (ephemeral client)."""

import pytest

from conftest import unique_name
from semantic_search.core.cancellation import CancellationToken
from semantic_search.core.errors import DimensionMismatchError, RecordNotFoundError
from semantic_search.core.index.chroma import ChromaIndex


def create_test_index(metric: str = "cosine") -> ChromaIndex:
    """Create a ChromaIndex with an isolated collection for testing."""
    return ChromaIndex(
        dimension=4, metric=metric, collection_name=unique_name("test_index")
    )


class TestChromaIndex:
    """Test cases for ChromaIndex."""

    @pytest.fixture
    def index(self) -> ChromaIndex:
        index = create_test_index()
        yield index
        index.close()

    def test_empty_query(self, index: ChromaIndex) -> None:
        result = index.query([1.0, 0.0, 0.0, 0.0], k=3)
        assert len(result) == 0

    def test_add_and_query(self, index: ChromaIndex) -> None:
        index.add("x", [1.0, 0.0, 0.0, 0.0])
        index.add("y", [0.0, 1.0, 0.0, 0.0])
        index.add("xy", [1.0, 1.0, 0.0, 0.0])

        result = index.query([1.0, 0.0, 0.0, 0.0], k=2)
        assert result.ids == ["x", "xy"]
        assert result[0].score == pytest.approx(1.0, abs=1e-5)
        assert len(index) == 3
        assert "y" in index

    def test_threshold(self, index: ChromaIndex) -> None:
        index.add("x", [1.0, 0.0, 0.0, 0.0])
        index.add("y", [0.0, 1.0, 0.0, 0.0])
        result = index.query([1.0, 0.0, 0.0, 0.0], k=5, threshold=0.5)
        assert result.ids == ["x"]

    def test_upsert(self, index: ChromaIndex) -> None:
        index.add("a", [1.0, 0.0, 0.0, 0.0])
        index.add("a", [0.0, 0.0, 1.0, 0.0])
        assert len(index) == 1
        assert index.query([0.0, 0.0, 1.0, 0.0], k=1).ids == ["a"]

    def test_remove_and_idempotent_remove(self, index: ChromaIndex) -> None:
        index.add("a", [1.0, 0.0, 0.0, 0.0])
        index.remove("a")
        assert "a" not in index
        with pytest.raises(RecordNotFoundError):
            index.remove("a")

    def test_wrong_dimension(self, index: ChromaIndex) -> None:
        with pytest.raises(DimensionMismatchError):
            index.add("a", [1.0, 0.0])
        with pytest.raises(DimensionMismatchError):
            index.query([1.0, 0.0], k=1)
        assert len(index) == 0

    def test_cancelled_before_call(self, index: ChromaIndex) -> None:
        index.add("a", [1.0, 0.0, 0.0, 0.0])
        token = CancellationToken()
        token.cancel()
        result = index.query([1.0, 0.0, 0.0, 0.0], k=1, token=token)
        assert result.partial
        assert len(result) == 0

    def test_clear(self, index: ChromaIndex) -> None:
        index.add("a", [1.0, 0.0, 0.0, 0.0])
        index.add("b", [0.0, 1.0, 0.0, 0.0])
        index.clear()
        assert len(index) == 0
        assert index.ids() == []

    def test_euclidean_scores(self) -> None:
        index = create_test_index(metric="euclidean")
        index.add("origin", [0.0, 0.0, 0.0, 0.0])
        index.add("five", [3.0, 4.0, 0.0, 0.0])

        result = index.query([0.0, 0.0, 0.0, 0.0], k=2)
        assert result.ids == ["origin", "five"]
        assert result[1].score == pytest.approx(-5.0, abs=1e-4)


class TestChromaFromEnv:
    """ChromaIndex.from_env picks the client mode from CHROMADB_* settings."""

    def test_persistent_mode_from_environment(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("CHROMADB_MODE", "persistent")
        monkeypatch.setenv("CHROMADB_PATH", str(tmp_path / "chroma"))
        index = ChromaIndex.from_env(4, collection_name=unique_name("env"), search_ef=32)
        assert index._mode == "persistent"
        assert index._path == str(tmp_path / "chroma")

        index.add("a", [1.0, 0.0, 0.0, 0.0])
        assert len(index) == 1
        assert index._search_ef == 32
        index.close()

    def test_explicit_config_wins(self, monkeypatch) -> None:
        from semantic_search.core.config import ChromaConfig

        monkeypatch.setenv("CHROMADB_MODE", "persistent")
        index = ChromaIndex.from_env(
            4,
            collection_name=unique_name("cfg"),
            config=ChromaConfig(mode="client", host="chroma.internal", port=9000),
            num_candidates=7,
        )
        assert index._mode == "client"
        assert index._host == "chroma.internal"
        assert index._port == 9000
        assert index._num_candidates == 7

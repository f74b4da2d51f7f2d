"""Similarity index interface."""

from abc import ABC, abstractmethod
from typing import Iterable, Sequence

import numpy as np

from semantic_search.core.cancellation import CancellationToken
from semantic_search.core.models import IndexResult, Neighbor
from semantic_search.core.utils import as_vector, prepare_rows, validate_metric


class SimilarityIndex(ABC):
    """Abstract interface for top-k similarity indexes.

    Implementations share one contract:

    - ``add`` upserts: adding an id that is already present replaces its vector.
    - ``remove`` raises RecordNotFoundError for an absent id.
    - ``query`` returns at most k neighbours ordered by the uniform
      better-is-higher score, ties broken by id ascending. Ids compare
      as strings, so "10" sorts before "9"; zero-pad numeric ids to keep
      numeric order. A threshold (minimum similarity for cosine, maximum
      distance for Euclidean) is applied before truncation to k.
    - Vectors of the wrong length raise DimensionMismatchError and leave the
      index unchanged.
    """

    #: True for indexes that may trade recall for speed.
    approximate: bool = False

    def __init__(self, dimension: int, metric: str = "cosine") -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self._dimension = dimension
        self._metric = validate_metric(metric)

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def metric(self) -> str:
        return self._metric

    @abstractmethod
    def add(self, record_id: str, vector: Sequence[float]) -> None:
        """Insert or replace the vector stored under ``record_id``."""
        ...

    def add_many(self, items: Iterable[tuple[str, Sequence[float]]]) -> int:
        """Add (id, vector) pairs one by one; returns how many were added."""
        count = 0
        for record_id, vector in items:
            self.add(record_id, vector)
            count += 1
        return count

    @abstractmethod
    def remove(self, record_id: str) -> None:
        """Remove ``record_id`` so it no longer appears in results."""
        ...

    @abstractmethod
    def query(
        self,
        vector: Sequence[float],
        k: int = 10,
        threshold: float | None = None,
        token: CancellationToken | None = None,
    ) -> IndexResult:
        """Return up to ``k`` neighbours of ``vector``, best first."""
        ...

    @abstractmethod
    def __contains__(self, record_id: object) -> bool:
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...

    @abstractmethod
    def ids(self) -> list[str]:
        """Ids of every live entry."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove all entries."""
        ...

    def close(self) -> None:
        """Release resources held by the index."""

    def _check_vector(self, vector: Sequence[float]) -> np.ndarray:
        return as_vector(vector, self._dimension)

    def _prepare_query(self, vector: Sequence[float]) -> np.ndarray:
        return prepare_rows(self._check_vector(vector), self._metric)

    @staticmethod
    def _check_k(k: int) -> None:
        if k <= 0:
            raise ValueError(f"k must be positive, got {k}")

    @staticmethod
    def _result(pairs: list[tuple[str, float]], partial: bool = False) -> IndexResult:
        return IndexResult(
            neighbors=[Neighbor(id=rid, score=score) for rid, score in pairs],
            partial=partial,
        )

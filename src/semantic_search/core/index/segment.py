"""Immutable blocks of vectors shared by the in-process indexes."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from semantic_search.core.utils import prepare_rows, score_matrix


def _freeze(matrix: np.ndarray) -> np.ndarray:
    matrix.setflags(write=False)
    return matrix


@dataclass(frozen=True, eq=False)
class Segment:
    """A read-only block of prepared rows and their ids.

    Segments are never mutated: ``append`` and ``without`` return new
    segments, so a reader holding a reference always sees whole rows.
    """

    dimension: int
    metric: str
    ids: tuple[str, ...] = ()
    rows: np.ndarray = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.rows is None:
            object.__setattr__(
                self, "rows", _freeze(np.empty((0, self.dimension), dtype=np.float64))
            )

    @classmethod
    def build(
        cls,
        dimension: int,
        metric: str,
        ids: tuple[str, ...],
        vectors: np.ndarray,
        prepared: bool = False,
    ) -> "Segment":
        rows = np.array(vectors, dtype=np.float64).reshape(len(ids), dimension)
        if not prepared:
            rows = prepare_rows(rows, metric)
        return cls(dimension, metric, tuple(ids), _freeze(rows))

    def __len__(self) -> int:
        return len(self.ids)

    def append(self, record_id: str, vector: np.ndarray) -> "Segment":
        row = prepare_rows(vector.reshape(1, self.dimension), self.metric)
        rows = np.vstack([self.rows, row])
        return Segment(self.dimension, self.metric, self.ids + (record_id,), _freeze(rows))

    def without(self, record_ids: set[str] | frozenset[str]) -> "Segment":
        keep = [i for i, rid in enumerate(self.ids) if rid not in record_ids]
        if len(keep) == len(self.ids):
            return self
        ids = tuple(self.ids[i] for i in keep)
        return Segment(self.dimension, self.metric, ids, _freeze(self.rows[keep]))

    def concat(self, other: "Segment") -> "Segment":
        if not len(other):
            return self
        if not len(self):
            return other
        rows = np.vstack([self.rows, other.rows])
        return Segment(self.dimension, self.metric, self.ids + other.ids, _freeze(rows))

    def scores(self, query: np.ndarray, start: int = 0, stop: int | None = None) -> np.ndarray:
        """Score rows ``[start, stop)`` against a prepared query."""
        return score_matrix(query, self.rows[start:stop], self.metric)

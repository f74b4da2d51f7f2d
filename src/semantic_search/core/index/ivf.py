"""Approximate inverted-file (IVF) similarity index."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from semantic_search.core.cancellation import CancellationToken
from semantic_search.core.errors import RecordNotFoundError
from semantic_search.core.index.base import SimilarityIndex
from semantic_search.core.index.segment import Segment
from semantic_search.core.models import IndexResult
from semantic_search.core.utils import (
    prepare_rows,
    rank_pairs,
    score_matrix,
    select_top_k,
    threshold_to_score,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class _IVFState:
    """Immutable centroids and partitions published to readers.

    ``centroids`` is None until the index is trained; an untrained index
    keeps every vector in a single partition and is exact.
    """

    centroids: Optional[np.ndarray]
    lists: tuple[Segment, ...]


class IVFIndex(SimilarityIndex):
    """Partition-based approximate index.

    Vectors are grouped around ``n_lists`` k-means centroids (spherical
    k-means for cosine). A query scores the centroids, scans only the
    ``n_probe`` closest partitions and ranks their rows exactly. Raising
    ``n_probe`` improves recall at the cost of latency; ``n_probe >= n_lists``
    makes every query exact.

    The index trains itself once ``train_size`` vectors are present (default
    ``8 * n_lists``) and can be retrained with ``train()`` after heavy
    churn. Each partition is an immutable Segment replaced copy-on-write, so
    readers never block on writers.

    Example:
        index = IVFIndex(dimension=384, n_lists=32, n_probe=8)
        index.add("a", vector)
        result = index.query(vector, k=5)
    """

    approximate = True

    def __init__(
        self,
        dimension: int,
        metric: str = "cosine",
        n_lists: int = 16,
        n_probe: int = 4,
        train_size: int | None = None,
        max_iter: int = 25,
        seed: int = 0,
    ) -> None:
        super().__init__(dimension, metric)
        if n_lists <= 0:
            raise ValueError(f"n_lists must be positive, got {n_lists}")
        self._n_lists = n_lists
        self.n_probe = n_probe
        self._train_size = train_size or n_lists * 8
        self._max_iter = max_iter
        self._seed = seed
        self._write_lock = threading.Lock()
        self._state = self._empty_state()
        # Owned by writers: partition holding each live id.
        self._assignment: dict[str, int] = {}

    def _empty_state(self) -> _IVFState:
        return _IVFState(centroids=None, lists=(Segment(self.dimension, self.metric),))

    @property
    def n_lists(self) -> int:
        return self._n_lists

    @property
    def n_probe(self) -> int:
        return self._n_probe

    @n_probe.setter
    def n_probe(self, value: int) -> None:
        if value <= 0:
            raise ValueError(f"n_probe must be positive, got {value}")
        self._n_probe = value

    @property
    def is_trained(self) -> bool:
        return self._state.centroids is not None

    def add(self, record_id: str, vector: Sequence[float]) -> None:
        arr = self._check_vector(vector)
        with self._write_lock:
            state = self._state
            lists = list(state.lists)

            previous = self._assignment.get(record_id)
            if previous is not None:
                lists[previous] = lists[previous].without({record_id})

            target = 0
            if state.centroids is not None:
                row = prepare_rows(arr, self.metric)
                target = int(np.argmax(score_matrix(row, state.centroids, self.metric)))

            lists[target] = lists[target].append(record_id, arr)
            self._assignment[record_id] = target
            state = _IVFState(centroids=state.centroids, lists=tuple(lists))

            if state.centroids is None and len(self._assignment) >= self._train_size:
                state = self._train(state)
            self._state = state

    def remove(self, record_id: str) -> None:
        with self._write_lock:
            position = self._assignment.pop(record_id, None)
            if position is None:
                raise RecordNotFoundError(record_id)
            lists = list(self._state.lists)
            lists[position] = lists[position].without({record_id})
            self._state = _IVFState(centroids=self._state.centroids, lists=tuple(lists))

    def train(self) -> None:
        """Recompute centroids from every stored vector and repartition."""
        with self._write_lock:
            if self._assignment:
                self._state = self._train(self._state)

    def _train(self, state: _IVFState) -> _IVFState:
        ids: tuple[str, ...] = ()
        blocks = []
        for segment in state.lists:
            ids += segment.ids
            blocks.append(segment.rows)
        rows = np.vstack(blocks)

        centroids, labels = self._kmeans(rows)
        lists = []
        for c in range(centroids.shape[0]):
            members = np.flatnonzero(labels == c)
            lists.append(
                Segment.build(
                    self.dimension,
                    self.metric,
                    tuple(ids[i] for i in members),
                    rows[members],
                    prepared=True,
                )
            )
            for i in members:
                self._assignment[ids[i]] = c

        centroids.setflags(write=False)
        logger.debug(
            "trained %d partitions over %d vectors (sizes %s)",
            len(lists),
            len(ids),
            [len(s) for s in lists],
        )
        return _IVFState(centroids=centroids, lists=tuple(lists))

    def _kmeans(self, rows: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        rng = np.random.default_rng(self._seed)
        n = rows.shape[0]
        k = min(self._n_lists, n)
        centroids = rows[rng.choice(n, size=k, replace=False)].copy()

        labels = np.full(n, -1)
        for _ in range(self._max_iter):
            new_labels = self._centroid_scores(rows, centroids).argmax(axis=1)
            if np.array_equal(new_labels, labels):
                break
            labels = new_labels
            for c in range(k):
                members = rows[labels == c]
                if len(members):
                    centroids[c] = members.mean(axis=0)
                else:
                    # reseed an empty partition
                    centroids[c] = rows[rng.integers(n)]
            centroids = prepare_rows(centroids, self.metric)

        labels = self._centroid_scores(rows, centroids).argmax(axis=1)
        return centroids, labels

    def _centroid_scores(self, rows: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        if self.metric == "cosine":
            return rows @ centroids.T
        sq = (
            np.sum(rows**2, axis=1)[:, None]
            - 2.0 * rows @ centroids.T
            + np.sum(centroids**2, axis=1)[None, :]
        )
        return -sq

    def query(
        self,
        vector: Sequence[float],
        k: int = 10,
        threshold: float | None = None,
        token: CancellationToken | None = None,
        n_probe: int | None = None,
    ) -> IndexResult:
        """Return up to ``k`` neighbours from the closest partitions.

        Args:
            vector: Query vector
            k: Maximum number of neighbours
            threshold: Minimum similarity (cosine) or maximum distance (L2)
            token: Optional cancellation token, checked between partitions
            n_probe: Per-query override of the partitions to scan
        """
        self._check_k(k)
        query = self._prepare_query(vector)
        min_score = threshold_to_score(threshold, self.metric)
        probe = self._n_probe if n_probe is None else n_probe
        if probe < 1:
            raise ValueError(f"n_probe must be at least 1, got {probe}")
        state = self._state

        if state.centroids is None or probe >= len(state.lists):
            order = range(len(state.lists))
        else:
            centroid_scores = score_matrix(query, state.centroids, self.metric)
            order = np.argsort(-centroid_scores, kind="stable")[:probe]

        pairs: list[tuple[str, float]] = []
        for position in order:
            if token is not None and token.cancelled:
                logger.debug("ivf query cancelled with %d candidates", len(pairs))
                return self._result(pairs, partial=True)
            segment = state.lists[int(position)]
            if not len(segment):
                continue
            scores = segment.scores(query)
            pairs = rank_pairs(pairs + select_top_k(segment.ids, scores, k, min_score), k)

        return self._result(pairs)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._assignment

    def __len__(self) -> int:
        return sum(len(segment) for segment in self._state.lists)

    def ids(self) -> list[str]:
        return [rid for segment in self._state.lists for rid in segment.ids]

    def clear(self) -> None:
        with self._write_lock:
            self._assignment.clear()
            self._state = self._empty_state()

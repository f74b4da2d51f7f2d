"""Exact brute-force similarity index."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from semantic_search.core.cancellation import CancellationToken
from semantic_search.core.errors import RecordNotFoundError
from semantic_search.core.index.base import SimilarityIndex
from semantic_search.core.index.segment import Segment
from semantic_search.core.models import IndexResult
from semantic_search.core.utils import rank_pairs, select_top_k, threshold_to_score

logger = logging.getLogger(__name__)

_SEALED = "sealed"
_PENDING = "pending"


@dataclass(frozen=True, eq=False)
class _Snapshot:
    """Immutable view of the index published to readers."""

    sealed: Segment
    pending: Segment
    tombstones: frozenset[str]


class FlatIndex(SimilarityIndex):
    """Exact linear-scan index.

    State is an immutable snapshot made of a sealed segment, a pending
    delta segment and a set of tombstoned sealed ids. Writers serialize on a
    lock, build the next snapshot and publish it by swapping one reference,
    so queries never take the lock and never observe a half-written row.

    The pending delta is merged into the sealed segment once it reaches
    ``merge_threshold`` rows. Tombstoned rows are dropped physically when
    they exceed a quarter of the sealed segment, or on ``compact()``.

    Queries score rows in blocks of ``block_size`` and check the
    cancellation token between blocks.
    """

    def __init__(
        self,
        dimension: int,
        metric: str = "cosine",
        merge_threshold: int = 1024,
        block_size: int = 4096,
    ) -> None:
        super().__init__(dimension, metric)
        if merge_threshold <= 0 or block_size <= 0:
            raise ValueError("merge_threshold and block_size must be positive")
        self._merge_threshold = merge_threshold
        self._block_size = block_size
        self._write_lock = threading.Lock()
        self._snapshot = self._empty_snapshot()
        # Owned by writers: which segment holds the live row for each id.
        self._location: dict[str, str] = {}

    def _empty_snapshot(self) -> _Snapshot:
        empty = Segment(self.dimension, self.metric)
        return _Snapshot(sealed=empty, pending=empty, tombstones=frozenset())

    def add(self, record_id: str, vector: Sequence[float]) -> None:
        arr = self._check_vector(vector)
        with self._write_lock:
            snap = self._snapshot
            sealed, pending, tombstones = snap.sealed, snap.pending, snap.tombstones

            where = self._location.get(record_id)
            if where == _SEALED:
                tombstones = tombstones | {record_id}
            elif where == _PENDING:
                pending = pending.without({record_id})

            pending = pending.append(record_id, arr)
            self._location[record_id] = _PENDING
            self._publish(sealed, pending, tombstones)

    def remove(self, record_id: str) -> None:
        with self._write_lock:
            where = self._location.pop(record_id, None)
            if where is None:
                raise RecordNotFoundError(record_id)

            snap = self._snapshot
            sealed, pending, tombstones = snap.sealed, snap.pending, snap.tombstones
            if where == _SEALED:
                tombstones = tombstones | {record_id}
            else:
                pending = pending.without({record_id})
            self._publish(sealed, pending, tombstones)

    def compact(self) -> None:
        """Merge the pending delta and drop tombstoned rows now."""
        with self._write_lock:
            snap = self._snapshot
            self._snapshot = _Snapshot(
                *self._merge(snap.sealed, snap.pending, snap.tombstones)
            )

    def _publish(
        self, sealed: Segment, pending: Segment, tombstones: frozenset[str]
    ) -> None:
        if len(pending) >= self._merge_threshold or len(tombstones) > len(sealed) // 4:
            sealed, pending, tombstones = self._merge(sealed, pending, tombstones)
        self._snapshot = _Snapshot(sealed=sealed, pending=pending, tombstones=tombstones)

    def _merge(
        self, sealed: Segment, pending: Segment, tombstones: frozenset[str]
    ) -> tuple[Segment, Segment, frozenset[str]]:
        merged = sealed.without(tombstones).concat(pending)
        for record_id in pending.ids:
            self._location[record_id] = _SEALED
        logger.debug(
            "merged %d pending rows, dropped %d tombstones (%d rows sealed)",
            len(pending),
            len(tombstones),
            len(merged),
        )
        return merged, Segment(self.dimension, self.metric), frozenset()

    def query(
        self,
        vector: Sequence[float],
        k: int = 10,
        threshold: float | None = None,
        token: CancellationToken | None = None,
    ) -> IndexResult:
        self._check_k(k)
        query = self._prepare_query(vector)
        min_score = threshold_to_score(threshold, self.metric)
        snap = self._snapshot

        pairs: list[tuple[str, float]] = []
        for segment, tombstones in (
            (snap.sealed, snap.tombstones),
            (snap.pending, frozenset()),
        ):
            for start in range(0, len(segment), self._block_size):
                if token is not None and token.cancelled:
                    logger.debug("flat query cancelled with %d candidates", len(pairs))
                    return self._result(pairs, partial=True)

                stop = start + self._block_size
                ids = segment.ids[start:stop]
                scores = segment.scores(query, start, stop)
                if tombstones:
                    alive = np.fromiter(
                        (rid not in tombstones for rid in ids), dtype=bool, count=len(ids)
                    )
                    if not alive.all():
                        ids = tuple(rid for rid, keep in zip(ids, alive) if keep)
                        scores = scores[alive]
                pairs = rank_pairs(pairs + select_top_k(ids, scores, k, min_score), k)

        return self._result(pairs)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._location

    def __len__(self) -> int:
        snap = self._snapshot
        return len(snap.sealed) - len(snap.tombstones) + len(snap.pending)

    def ids(self) -> list[str]:
        snap = self._snapshot
        live = [rid for rid in snap.sealed.ids if rid not in snap.tombstones]
        return live + list(snap.pending.ids)

    def clear(self) -> None:
        with self._write_lock:
            self._location.clear()
            self._snapshot = self._empty_snapshot()

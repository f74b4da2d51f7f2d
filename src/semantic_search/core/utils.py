"""Utility functions for record ids, vector validation and scoring.

This module contains the metric arithmetic shared by every index
implementation. Scores are always "better is higher": cosine similarity for
cosine collections and negated L2 distance for Euclidean ones, so ranking code
never has to branch on the metric.
"""

from __future__ import annotations

import os
import threading
import time
import uuid
from typing import Iterable, Sequence

import numpy as np

from semantic_search.core.errors import DimensionMismatchError

METRICS = ("cosine", "euclidean")

# Scores are rounded so that identical vectors produce identical scores
# regardless of where their rows sit in a matrix.
SCORE_DECIMALS = 9

_id_lock = threading.Lock()
_id_last_ms = 0
_id_counter = 0


def generate_record_id() -> str:
    """Generate a time-ordered UUIDv7 string.

    The 12-bit ``rand_a`` field carries a counter seeded randomly each
    millisecond, so ids generated in the same process sort in creation order.

    Example:
        >>> a, b = generate_record_id(), generate_record_id()
        >>> a < b
        True
    """
    global _id_last_ms, _id_counter

    with _id_lock:
        now_ms = time.time_ns() // 1_000_000
        if now_ms > _id_last_ms:
            _id_last_ms = now_ms
            _id_counter = int.from_bytes(os.urandom(2), "big") & 0x7FF
        else:
            _id_counter += 1
            if _id_counter > 0xFFF:
                _id_last_ms += 1
                _id_counter = 0
        timestamp = _id_last_ms
        counter = _id_counter

    rand_b = int.from_bytes(os.urandom(8), "big") & ((1 << 62) - 1)
    value = (
        (timestamp & ((1 << 48) - 1)) << 80
        | 0x7 << 76
        | counter << 64
        | 0b10 << 62
        | rand_b
    )
    return str(uuid.UUID(int=value))


def validate_metric(metric: str) -> str:
    """Return ``metric`` if supported, else raise ValueError."""
    if metric not in METRICS:
        raise ValueError(f"metric must be one of {METRICS}, got {metric!r}")
    return metric


def as_vector(vector: Iterable[float], dimension: int | None = None) -> np.ndarray:
    """Convert ``vector`` to a 1-D float64 array and validate it.

    Args:
        vector: Sequence of floats
        dimension: Expected length, if known

    Returns:
        A new contiguous float64 array

    Raises:
        DimensionMismatchError: If the length differs from ``dimension``
        ValueError: If the vector is not 1-D or holds NaN/inf components
    """
    arr = np.array(vector, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"vector must be one-dimensional, got shape {arr.shape}")
    if dimension is not None and arr.shape[0] != dimension:
        raise DimensionMismatchError(dimension, arr.shape[0])
    if not np.all(np.isfinite(arr)):
        raise ValueError("vector contains NaN or infinite components")
    return arr


def prepare_rows(matrix: np.ndarray, metric: str) -> np.ndarray:
    """Return rows in the form the metric scores against.

    Cosine rows are L2-normalized (zero rows stay zero); Euclidean rows are
    returned unchanged.
    """
    if metric == "cosine":
        norms = np.linalg.norm(matrix, axis=-1, keepdims=True)
        norms[norms == 0.0] = 1.0
        return matrix / norms
    return matrix


def score_matrix(query: np.ndarray, rows: np.ndarray, metric: str) -> np.ndarray:
    """Score prepared ``rows`` against a prepared ``query``, better is higher."""
    if rows.shape[0] == 0:
        return np.empty(0, dtype=np.float64)
    if metric == "cosine":
        scores = rows @ query
    else:
        scores = -np.linalg.norm(rows - query, axis=1)
    return np.round(scores, SCORE_DECIMALS)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 if either is all zeros.

    Example:
        >>> cosine_similarity([1.0, 0.0], [1.0, 0.0])
        1.0
        >>> cosine_similarity([1.0, 0.0], [0.0, 1.0])
        0.0
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return round(float(va @ vb) / denom, SCORE_DECIMALS)


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """L2 distance of two vectors.

    Example:
        >>> euclidean_distance([0.0, 0.0], [3.0, 4.0])
        5.0
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    return round(float(np.linalg.norm(va - vb)), SCORE_DECIMALS)


def check_threshold(threshold: float | None, metric: str) -> float | None:
    """Validate a threshold against the range of ``metric``.

    Cosine thresholds are similarities in [-1, 1]; Euclidean thresholds are
    distances and must be non-negative.
    """
    if threshold is None:
        return None
    if metric == "cosine" and not -1.0 <= threshold <= 1.0:
        raise ValueError(f"cosine threshold must be within [-1, 1], got {threshold}")
    if metric == "euclidean" and threshold < 0.0:
        raise ValueError(f"euclidean threshold must be >= 0, got {threshold}")
    return threshold


def threshold_to_score(threshold: float | None, metric: str) -> float | None:
    """Convert a caller threshold in the metric's unit to a minimum score.

    For cosine the threshold is a minimum similarity; for Euclidean it is a
    maximum distance.

    Example:
        >>> threshold_to_score(0.6, "cosine")
        0.6
        >>> threshold_to_score(2.0, "euclidean")
        -2.0
    """
    if threshold is None:
        return None
    if metric == "euclidean":
        return round(-float(threshold), SCORE_DECIMALS)
    return round(float(threshold), SCORE_DECIMALS)


def score_to_native(score: float, metric: str) -> float:
    """Convert a ranking score back to similarity (cosine) or distance (L2)."""
    if metric == "euclidean":
        return -score + 0.0
    return score


def rank_pairs(pairs: Iterable[tuple[str, float]], k: int) -> list[tuple[str, float]]:
    """Sort (id, score) pairs best first, ties by id ascending, and keep k."""
    return sorted(pairs, key=lambda p: (-p[1], p[0]))[:k]


def select_top_k(
    ids: Sequence[str],
    scores: np.ndarray,
    k: int,
    min_score: float | None = None,
) -> list[tuple[str, float]]:
    """Select the k best (id, score) pairs from parallel arrays.

    Threshold filtering is applied before truncation, so fewer than k pairs
    may be returned. Every candidate tied with the k-th best score is kept
    until the final id tie-break, so the result is deterministic.

    Args:
        ids: Candidate ids, parallel to ``scores``
        scores: Better-is-higher scores
        k: Maximum number of pairs to return
        min_score: Optional minimum score

    Returns:
        At most k pairs, best first
    """
    if k <= 0 or len(ids) == 0:
        return []

    positions = np.arange(len(scores))
    if min_score is not None:
        keep = scores >= min_score
        positions = positions[keep]
        scores = scores[keep]

    if len(positions) > k:
        kth = np.partition(scores, len(scores) - k)[len(scores) - k]
        keep = scores >= kth
        positions = positions[keep]
        scores = scores[keep]

    return rank_pairs(
        ((ids[int(p)], float(s)) for p, s in zip(positions, scores)), k
    )


"""Cosine similarity and ranking helpers."""

from typing import Iterable, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


def _safe_float(value: float) -> float:
    if np.isnan(value) or np.isinf(value):
        return 0.0
    return float(value)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between a and b.

    Mismatched lengths and zero-magnitude inputs score 0.0.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0:
        return 0.0
    return _safe_float(np.dot(va, vb) / denom)


def rank_by_similarity(
    query: Sequence[float],
    candidates: Iterable[tuple[T, Sequence[float]]],
    limit: int,
) -> list[tuple[T, float]]:
    """Score every (item, vector) pair against query, best first, truncated to limit.

    The sort is stable, so equal scores keep their iteration order.
    """
    if limit <= 0:
        return []
    scored = [(item, cosine_similarity(query, vector)) for item, vector in candidates]
    scored.sort(key=lambda x: x[1], reverse=True)
    return scored[:limit]

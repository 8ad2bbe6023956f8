"""Vector similarity helpers (numpy)."""

import logging
from typing import List, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class VectorLengthMismatchError(ValueError):
    """Raised when two vectors of different lengths are compared."""


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between ``a`` and ``b``.

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        VectorLengthMismatchError: If the vectors have different lengths
    """
    if len(a) != len(b):
        raise VectorLengthMismatchError(f"Vector length mismatch: {len(a)} != {len(b)}")
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    return float(np.dot(va, vb) / norm)


def top_k_similar(
    query: Sequence[float],
    candidates: Sequence[Sequence[float]],
    k: int,
) -> List[Tuple[int, float]]:
    """Best ``k`` candidates as ``(index, score)`` pairs.

    Sorted by score descending, ties broken by candidate index ascending.

    Raises:
        VectorLengthMismatchError: If any candidate length differs from the query
    """
    if k <= 0:
        return []
    scored = [(idx, cosine_similarity(query, candidate)) for idx, candidate in enumerate(candidates)]
    logger.debug("Scored %d candidates against a %d-dim query", len(scored), len(query))
    scored.sort(key=lambda pair: (-pair[1], pair[0]))
    return scored[:k]

"""Cosine similarity for embedding vectors.

This is the single in-process implementation used wherever stored vectors
are compared outside the database, so category recommendations and test
doubles of the similarity store agree on floating-point behaviour.
"""

from typing import Sequence, Union

import numpy as np

VectorLike = Union[Sequence[float], np.ndarray]


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 when either vector is empty, has zero magnitude, or the
    lengths differ. The result is rounded to 12 decimal places and clamped
    to [-1.0, 1.0].

    Example:
        >>> cosine_similarity([1.0, 0.0], [1.0, 0.0])
        1.0
        >>> cosine_similarity([1.0, 0.0], [0.0, 1.0])
        0.0
    """
    if a is None or b is None:
        return 0.0

    va = np.asarray(a, dtype=np.float64).ravel()
    vb = np.asarray(b, dtype=np.float64).ravel()

    if va.size == 0 or va.size != vb.size:
        return 0.0

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    # Rounded so sim(v, v) is exactly 1.0 despite float error in the norms
    similarity = round(float(np.dot(va, vb) / (norm_a * norm_b)), 12)
    return max(-1.0, min(1.0, similarity))


def cosine_distance(a: VectorLike, b: VectorLike) -> float:
    """Cosine distance (1 - similarity), matching pgvector's <=> operator."""
    return 1.0 - cosine_similarity(a, b)

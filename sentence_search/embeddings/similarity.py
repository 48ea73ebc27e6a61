"""Cosine similarity.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
from collections.abc import Sequence

# Third-party (alphabetical)
import logfire
import numpy as np
from numpy.typing import ArrayLike, NDArray

# Local imports (core first, then alphabetical)
from ..core.exceptions import DimensionMismatchError

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = ("cosine_similarity", "cosine_similarities")


# =============================================================================
# Section 12: Functions
# =============================================================================
def cosine_similarity(left: Sequence[float] | ArrayLike, right: Sequence[float] | ArrayLike) -> float:
    """Cosine similarity between two equal-length vectors.

    A zero-magnitude operand yields ``0.0`` rather than NaN, and a
    ``zero_magnitude_vector`` warning is logged.

    Args:
        left: First vector.
        right: Second vector.

    Returns:
        Similarity in [-1, 1].

    Raises:
        DimensionMismatchError: If the vectors differ in length.
    """
    left_vec = np.asarray(left, dtype=np.float64).ravel()
    right_vec = np.asarray(right, dtype=np.float64).ravel()
    if left_vec.shape[0] != right_vec.shape[0]:
        raise DimensionMismatchError(left_vec.shape[0], right_vec.shape[0], where="cosine_similarity")

    left_norm = float(np.linalg.norm(left_vec))
    right_norm = float(np.linalg.norm(right_vec))
    if left_norm == 0.0 or right_norm == 0.0:
        logfire.warning("zero_magnitude_vector", dimension=int(left_vec.shape[0]))
        return 0.0

    score = float(np.dot(left_vec, right_vec)) / (left_norm * right_norm)
    return min(1.0, max(-1.0, score))


def cosine_similarities(matrix: NDArray[np.floating], query: ArrayLike) -> NDArray[np.float64]:
    """Cosine similarity of ``query`` against every row of ``matrix``.

    Rows (or a query) with zero magnitude score ``0.0``.

    Raises:
        DimensionMismatchError: If the query length differs from the row length.
    """
    rows = np.asarray(matrix, dtype=np.float64)
    query_vec = np.asarray(query, dtype=np.float64).ravel()
    if rows.ndim != 2:
        raise ValueError("matrix must be 2D")
    if rows.shape[0] == 0:
        return np.zeros(0, dtype=np.float64)
    if rows.shape[1] != query_vec.shape[0]:
        raise DimensionMismatchError(rows.shape[1], query_vec.shape[0], where="query embedding")

    query_norm = float(np.linalg.norm(query_vec))
    if query_norm == 0.0:
        logfire.warning("zero_magnitude_vector", dimension=int(query_vec.shape[0]), role="query")
        return np.zeros(rows.shape[0], dtype=np.float64)

    norms = np.linalg.norm(rows, axis=1) * query_norm
    zero_rows = norms == 0.0
    if np.any(zero_rows):
        logfire.warning("zero_magnitude_vector", role="record", count=int(zero_rows.sum()))

    dots = rows @ query_vec
    scores = np.divide(dots, norms, out=np.zeros_like(dots), where=~zero_rows)
    return np.clip(scores, -1.0, 1.0)

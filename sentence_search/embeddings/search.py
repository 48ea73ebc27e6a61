"""Exhaustive cosine-similarity search.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
import time
from collections.abc import Sequence

# Third-party (alphabetical)
import numpy as np

# Local imports (core first, then alphabetical)
from .database import VectorDatabase
from .records import SearchOutcome, SearchResult
from .similarity import cosine_similarities

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = ("SearchEngine", "search")


# =============================================================================
# Section 11: Classes
# =============================================================================
class SearchEngine:
    """Search engine bound to one published database snapshot."""

    def __init__(self, database: VectorDatabase) -> None:
        self.database = database

    def search(self, query_embedding: Sequence[float], top_n: int = 5) -> SearchOutcome:
        """Rank the bound database against a query embedding."""
        return search(query_embedding, self.database, top_n)


# =============================================================================
# Section 12: Functions
# =============================================================================
def search(query_embedding: Sequence[float], database: VectorDatabase, top_n: int) -> SearchOutcome:
    """Return the ``top_n`` records most similar to ``query_embedding``.

    Records are ranked by similarity, highest first; records with equal
    similarity keep their database order.

    Args:
        query_embedding: Query vector with the database's dimension.
        database: Snapshot to scan. It is not modified.
        top_n: Maximum number of results; ``<= 0`` returns none.

    Returns:
        Ranked results and the elapsed scan-and-sort time.

    Raises:
        DimensionMismatchError: If the query dimension differs from the database's.
    """
    started = time.perf_counter_ns()
    if top_n <= 0 or database.is_empty:
        return SearchOutcome(results=(), elapsed_ns=time.perf_counter_ns() - started)

    scores = cosine_similarities(database.matrix, query_embedding)
    order = np.argsort(-scores, kind="stable")[:top_n]
    records = database.records
    results = tuple(
        SearchResult(id=records[i].id, text=records[i].text, similarity=float(scores[i])) for i in order
    )
    return SearchOutcome(results=results, elapsed_ns=time.perf_counter_ns() - started)

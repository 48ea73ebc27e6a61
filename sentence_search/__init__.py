"""sentence-search package initialization.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Local imports (core first, then alphabetical)
from ._version import __version__
from .embeddings import FileSnapshotStore, VectorDatabase, VectorRecord, cosine_similarity, load_or_build, search
from .service import SearchService, SearchState

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = (
    "__version__",
    "FileSnapshotStore",
    "VectorDatabase",
    "VectorRecord",
    "cosine_similarity",
    "load_or_build",
    "search",
    "SearchService",
    "SearchState",
)

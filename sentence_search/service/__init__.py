"""Search service and published state.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# Local imports (core first, then alphabetical)
from .search_service import SearchService
from .state import SearchState, StateChannel

__all__ = ("SearchService", "SearchState", "StateChannel")

"""Configuration loading for sentence-search.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
from functools import lru_cache

# Local imports (core first, then alphabetical)
from ..core.settings import SearchSettings

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = ("load_settings",)


# =============================================================================
# Section 12: Functions
# =============================================================================
@lru_cache(maxsize=1)
def load_settings() -> SearchSettings:
    """Load settings from environment."""
    return SearchSettings()

"""Type aliases for sentence-search.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
from collections.abc import Awaitable, Callable, Sequence
from typing import Literal

# Third-party (alphabetical)
from typing_extensions import TypeAliasType

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = (
    "RecordId",
    "Similarity",
    "Embedding",
    "EmbedFn",
    "ProviderName",
    "ProviderState",
    "ServicePhase",
    "ErrorCategory",
    "RecoveryStrategy",
)

# =============================================================================
# Section 4: Type Aliases
# =============================================================================
RecordId = TypeAliasType("RecordId", int)
Similarity = TypeAliasType("Similarity", float)

Embedding = TypeAliasType("Embedding", Sequence[float])
EmbedFn = TypeAliasType("EmbedFn", Callable[[str], Awaitable[Sequence[float]]])

ProviderName = TypeAliasType("ProviderName", Literal["hash", "pydantic-ai"])
ProviderState = TypeAliasType(
    "ProviderState",
    Literal["uninitialized", "initializing", "ready", "failed"],
)
ServicePhase = TypeAliasType(
    "ServicePhase",
    Literal["idle", "initializing", "ready", "failed"],
)
ErrorCategory = TypeAliasType(
    "ErrorCategory",
    Literal["transient", "recoverable", "fatal"],
)
RecoveryStrategy = TypeAliasType(
    "RecoveryStrategy",
    Literal["retry", "rebuild", "skip", "abort"],
)

"""Vector records and search results.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
from collections.abc import Sequence
from dataclasses import dataclass

# Third-party (alphabetical)
import numpy as np

__all__ = ("VectorRecord", "SearchResult", "SearchOutcome", "to_float32")


def to_float32(values: Sequence[float] | np.ndarray) -> tuple[float, ...]:
    """Round values to 32-bit float precision, the precision snapshots are stored in."""
    return tuple(np.asarray(values, dtype=np.float32).ravel().tolist())


@dataclass(frozen=True, slots=True)
class VectorRecord:
    """Single corpus chunk with its embedding.

    The embedding is coerced to float32 precision on construction, so a record
    compares equal to itself after a save/load round trip.
    """

    id: int
    text: str
    embedding: tuple[float, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "embedding", to_float32(self.embedding))

    @property
    def dimension(self) -> int:
        return len(self.embedding)


@dataclass(frozen=True, slots=True)
class SearchResult:
    """Single ranked search hit."""

    id: int
    text: str
    similarity: float


@dataclass(frozen=True, slots=True)
class SearchOutcome:
    """Ranked results plus the time spent scanning and sorting."""

    results: tuple[SearchResult, ...]
    elapsed_ns: int

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed_ns / 1_000_000

    @property
    def ids(self) -> list[int]:
        return [result.id for result in self.results]

"""In-memory vector database snapshot and its load-or-build path.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
import asyncio
from collections.abc import Iterable, Iterator, Sequence

# Third-party (alphabetical)
import logfire
import numpy as np
from numpy.typing import NDArray

# Local imports (core first, then alphabetical)
from ..core.exceptions import DecodeFailureError, DimensionMismatchError
from ..core.types import EmbedFn
from .ingest import embed_chunks
from .records import VectorRecord
from .store import SnapshotStore

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = ("VectorDatabase", "load_or_build")


# =============================================================================
# Section 11: Classes
# =============================================================================
class VectorDatabase:
    """Immutable, ordered collection of vector records.

    Every record shares one embedding dimension and ids are unique. The
    embedding matrix is built once and marked read-only so a published
    database can be searched concurrently.
    """

    __slots__ = ("_records", "_dimension", "_matrix")

    def __init__(self, records: Iterable[VectorRecord] = ()) -> None:
        self._records: tuple[VectorRecord, ...] = tuple(records)
        self._dimension = self._records[0].dimension if self._records else 0

        seen: set[int] = set()
        for record in self._records:
            if record.dimension != self._dimension:
                raise DimensionMismatchError(self._dimension, record.dimension, where=f"record {record.id}")
            if record.id in seen:
                raise ValueError(f"duplicate record id {record.id}")
            seen.add(record.id)

        if self._records:
            matrix = np.array([record.embedding for record in self._records], dtype=np.float32)
        else:
            matrix = np.zeros((0, 0), dtype=np.float32)
        matrix.setflags(write=False)
        self._matrix = matrix

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[VectorRecord]:
        return iter(self._records)

    def __getitem__(self, index: int) -> VectorRecord:
        return self._records[index]

    def __repr__(self) -> str:
        return f"VectorDatabase(records={len(self)}, dimension={self._dimension})"

    @property
    def records(self) -> tuple[VectorRecord, ...]:
        return self._records

    @property
    def dimension(self) -> int:
        """Embedding dimension shared by all records (0 when empty)."""
        return self._dimension

    @property
    def matrix(self) -> NDArray[np.float32]:
        """Read-only (records x dimension) embedding matrix in record order."""
        return self._matrix

    @property
    def is_empty(self) -> bool:
        return not self._records


# =============================================================================
# Section 12: Functions
# =============================================================================
async def load_or_build(
    raw_corpus: Sequence[str],
    embed_fn: EmbedFn,
    store: SnapshotStore,
    *,
    concurrency: int = 8,
    expected_dimension: int | None = None,
) -> VectorDatabase:
    """Load the stored snapshot, or embed the corpus and persist it.

    A valid snapshot is returned as-is. A missing snapshot, an unparsable one,
    an empty one while ``raw_corpus`` has chunks, or one whose dimension
    differs from ``expected_dimension`` (when given) triggers a fresh build
    that is saved before returning.

    Args:
        raw_corpus: Chunk texts in id order.
        embed_fn: Async text-to-vector function.
        store: Snapshot store to load from and save to.
        concurrency: Maximum concurrent embedding calls during a build.
        expected_dimension: Live provider dimension to validate a snapshot against.

    Returns:
        Published database snapshot.

    Raises:
        EncodingFailureError: If any chunk fails to embed; nothing is saved.
        StoreIOError: If the snapshot cannot be read or written.
    """
    with logfire.span("database.load_or_build", chunks=len(raw_corpus)) as span:
        cached = await _load_snapshot(store)
        if cached is not None:
            database = VectorDatabase(cached)
            if database.is_empty and raw_corpus:
                logfire.warning("empty_snapshot", chunks=len(raw_corpus))
            elif expected_dimension is None or database.is_empty or database.dimension == expected_dimension:
                span.set_attribute("source", "snapshot")
                logfire.info("snapshot_loaded", records=len(database), dimension=database.dimension)
                return database
            else:
                logfire.warning(
                    "stale_snapshot",
                    snapshot_dimension=database.dimension,
                    expected_dimension=expected_dimension,
                )

        span.set_attribute("source", "build")
        records = await embed_chunks(raw_corpus, embed_fn, concurrency=concurrency)
        database = VectorDatabase(records)
        await asyncio.to_thread(store.save, records)
        logfire.info("database_built", records=len(database), dimension=database.dimension)
        return database


async def _load_snapshot(store: SnapshotStore) -> list[VectorRecord] | None:
    """Load a snapshot, treating decode failures and invalid contents as a miss."""
    try:
        records = await asyncio.to_thread(store.load)
    except DecodeFailureError as exc:
        logfire.warning("snapshot_decode_failed", error=str(exc), **exc.context)
        return None
    if records is None:
        logfire.info("snapshot_missing")
    return records

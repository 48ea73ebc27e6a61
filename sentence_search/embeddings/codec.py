"""Binary snapshot codec.

Snapshot layout, little-endian throughout, no version field::

    u32  record_count
    record_count x {
        i32  id
        u32  text_byte_length
        u8[] text (UTF-8)
        u32  dimension
        f32[dimension] embedding
    }

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
import struct
from collections.abc import Iterable
from typing import Final

# Third-party (alphabetical)
import numpy as np

# Local imports (core first, then alphabetical)
from ..core.exceptions import DecodeFailureError
from .records import VectorRecord

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = ("encode_records", "decode_records", "FLOAT_DTYPE")

# =============================================================================
# Section 3: Constants
# =============================================================================
_U32: Final = struct.Struct("<I")
_I32: Final = struct.Struct("<i")
FLOAT_DTYPE: Final = np.dtype("<f4")
_I32_MIN: Final[int] = -(2**31)
_I32_MAX: Final[int] = 2**31 - 1


# =============================================================================
# Section 11: Classes
# =============================================================================
class _Reader:
    """Bounds-checked cursor over a snapshot payload."""

    __slots__ = ("_data", "offset")

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self.offset = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self.offset

    def take(self, size: int, what: str) -> memoryview:
        if size > self.remaining:
            raise DecodeFailureError(
                f"truncated {what}: need {size} bytes, {self.remaining} left",
                offset=self.offset,
            )
        chunk = self._data[self.offset : self.offset + size]
        self.offset += size
        return chunk

    def u32(self, what: str) -> int:
        return _U32.unpack(self.take(_U32.size, what))[0]

    def i32(self, what: str) -> int:
        return _I32.unpack(self.take(_I32.size, what))[0]


# =============================================================================
# Section 12: Functions
# =============================================================================
def encode_records(records: Iterable[VectorRecord]) -> bytes:
    """Serialize records to the snapshot format."""
    records = list(records)
    parts: list[bytes] = [_U32.pack(len(records))]
    for record in records:
        if not _I32_MIN <= record.id <= _I32_MAX:
            raise ValueError(f"record id {record.id} does not fit in a 32-bit integer")
        text = record.text.encode("utf-8")
        parts.append(_I32.pack(record.id))
        parts.append(_U32.pack(len(text)))
        parts.append(text)
        parts.append(_U32.pack(record.dimension))
        parts.append(np.asarray(record.embedding, dtype=FLOAT_DTYPE).tobytes())
    return b"".join(parts)


def decode_records(data: bytes) -> list[VectorRecord]:
    """Parse a snapshot payload into records.

    Raises:
        DecodeFailureError: On truncation, trailing bytes, invalid UTF-8,
            duplicate ids, or records whose dimensions disagree.
    """
    reader = _Reader(data)
    count = reader.u32("record count")

    records: list[VectorRecord] = []
    seen_ids: set[int] = set()
    dimension: int | None = None
    for index in range(count):
        record_id = reader.i32(f"id of record {index}")
        text_len = reader.u32(f"text length of record {index}")
        raw_text = reader.take(text_len, f"text of record {index}")
        try:
            text = bytes(raw_text).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeFailureError(f"record {index} text is not valid UTF-8", offset=reader.offset) from exc

        record_dim = reader.u32(f"dimension of record {index}")
        if dimension is None:
            dimension = record_dim
        elif record_dim != dimension:
            raise DecodeFailureError(
                f"record {index} has dimension {record_dim}, expected {dimension}",
                offset=reader.offset,
            )
        raw_vector = reader.take(record_dim * FLOAT_DTYPE.itemsize, f"embedding of record {index}")

        if record_id in seen_ids:
            raise DecodeFailureError(f"duplicate record id {record_id}", offset=reader.offset)
        seen_ids.add(record_id)

        embedding = np.frombuffer(raw_vector, dtype=FLOAT_DTYPE)
        records.append(VectorRecord(id=record_id, text=text, embedding=embedding))

    if reader.remaining:
        raise DecodeFailureError(f"{reader.remaining} trailing bytes after last record", offset=reader.offset)
    return records

"""Snapshot store abstractions.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

# Local imports (core first, then alphabetical)
from ..core.exceptions import DecodeFailureError, StoreIOError
from ..infra.logging import get_logger
from .codec import decode_records, encode_records
from .records import VectorRecord

__all__ = ("SnapshotStore", "FileSnapshotStore", "InMemorySnapshotStore")

_log = get_logger("store")


@runtime_checkable
class SnapshotStore(Protocol):
    """Protocol for snapshot stores."""

    def save(self, records: Sequence[VectorRecord]) -> None:
        """Replace the stored snapshot with ``records``."""
        ...

    def load(self) -> list[VectorRecord] | None:
        """Return the stored snapshot, or None if there is none."""
        ...

    def exists(self) -> bool:
        """Return whether a snapshot is stored."""
        ...


class FileSnapshotStore:
    """Single-file snapshot store with all-or-nothing writes."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"

    def exists(self) -> bool:
        """Return whether the snapshot file exists."""
        return self.path.is_file()

    def save(self, records: Sequence[VectorRecord]) -> None:
        """Write the snapshot to a temporary file and rename it over the target.

        Raises:
            StoreIOError: If the file cannot be written.
        """
        payload = encode_records(records)
        with _log.span("snapshot.save", path=str(self.path), records=len(records), size=len(payload)):
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
            except OSError as exc:
                raise StoreIOError(self.path, "save", str(exc)) from exc

            tmp_path = Path(tmp_name)
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_path, self.path)
            except OSError as exc:
                raise StoreIOError(self.path, "save", str(exc)) from exc
            finally:
                # no-op once the rename has happened
                tmp_path.unlink(missing_ok=True)

    def load(self) -> list[VectorRecord] | None:
        """Read and decode the snapshot.

        Returns:
            Records in stored order, or None if the file does not exist.

        Raises:
            DecodeFailureError: If the file exists but cannot be parsed.
            StoreIOError: If the file exists but cannot be read.
        """
        with _log.span("snapshot.load", path=str(self.path)) as span:
            try:
                payload = self.path.read_bytes()
            except FileNotFoundError:
                span.set_attribute("hit", False)
                return None
            except OSError as exc:
                raise StoreIOError(self.path, "load", str(exc)) from exc

            try:
                records = decode_records(payload)
            except DecodeFailureError as exc:
                exc.path = self.path
                exc.context["path"] = str(self.path)
                raise
            span.set_attribute("hit", True)
            span.set_attribute("records", len(records))
            return records

    def delete(self) -> bool:
        """Remove the snapshot file. Returns whether a file was removed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StoreIOError(self.path, "delete", str(exc)) from exc
        _log.info("snapshot_deleted", path=str(self.path))
        return True


class InMemorySnapshotStore:
    """Snapshot store that keeps the encoded payload in memory."""

    def __init__(self, payload: bytes | None = None) -> None:
        self.payload = payload
        self.save_count = 0

    def exists(self) -> bool:
        return self.payload is not None

    def save(self, records: Sequence[VectorRecord]) -> None:
        self.payload = encode_records(records)
        self.save_count += 1

    def load(self) -> list[VectorRecord] | None:
        if self.payload is None:
            return None
        return decode_records(self.payload)

    def delete(self) -> bool:
        existed = self.payload is not None
        self.payload = None
        return existed

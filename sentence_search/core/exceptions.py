"""Exception hierarchy for sentence-search.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .types import ErrorCategory, RecoveryStrategy

__all__ = (
    "SentenceSearchError",
    "EmbeddingError",
    "EncodingFailureError",
    "ProviderNotReadyError",
    "StoreError",
    "DecodeFailureError",
    "StoreIOError",
    "DimensionMismatchError",
    "CorpusError",
    "ServiceError",
    "NotReadyError",
    "classify_error",
)


class SentenceSearchError(Exception):
    """Base exception for all sentence-search errors.

    Attributes:
        context: Additional context for debugging.
        recoverable: Whether the error can potentially be recovered.
    """

    def __init__(self, message: str, *, context: dict[str, Any] | None = None, recoverable: bool = True) -> None:
        self.context = context or {}
        self.recoverable = recoverable
        super().__init__(message)


# =============================================================================
# Embedding Exceptions
# =============================================================================
class EmbeddingError(SentenceSearchError):
    """Base exception for embedding provider errors."""


class EncodingFailureError(EmbeddingError):
    """Raised when the embedding provider cannot produce a vector for a text."""

    def __init__(self, text: str, message: str, *, cause: Exception | None = None) -> None:
        self.text = text
        self.cause = cause
        ctx: dict[str, Any] = {"text_preview": text[:80]}
        if cause:
            ctx["cause_type"] = type(cause).__name__
        super().__init__(f"Encoding failed: {message}", context=ctx)


class ProviderNotReadyError(EmbeddingError):
    """Raised when an embedding provider is used before it is ready."""

    def __init__(self, provider: str, state: str) -> None:
        self.provider = provider
        self.state = state
        super().__init__(
            f"Embedding provider {provider} is not ready (state: {state})",
            context={"provider": provider, "state": state},
            recoverable=state != "failed",
        )


# =============================================================================
# Store Exceptions
# =============================================================================
class StoreError(SentenceSearchError):
    """Base exception for snapshot store errors."""


class DecodeFailureError(StoreError):
    """Raised when a snapshot exists but cannot be parsed into records."""

    def __init__(self, message: str, *, offset: int | None = None, path: Path | None = None) -> None:
        self.offset = offset
        self.path = path
        super().__init__(
            f"Snapshot decode failed: {message}",
            context={"offset": offset, "path": str(path) if path else None},
        )


class StoreIOError(StoreError):
    """Raised when reading or writing a snapshot fails for a reason other than absence."""

    def __init__(self, path: Path, operation: str, message: str) -> None:
        self.path = path
        self.operation = operation
        super().__init__(
            f"Snapshot {operation} failed for {path}: {message}",
            context={"path": str(path), "operation": operation},
        )


# =============================================================================
# Vector Exceptions
# =============================================================================
class DimensionMismatchError(SentenceSearchError, ValueError):
    """Raised when vectors of unequal length are compared or combined."""

    def __init__(self, expected: int, actual: int, *, where: str = "vectors") -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Dimension mismatch in {where}: expected {expected}, got {actual}",
            context={"expected": expected, "actual": actual, "where": where},
            recoverable=False,
        )


# =============================================================================
# Corpus Exceptions
# =============================================================================
class CorpusError(SentenceSearchError):
    """Raised when a corpus source cannot be read."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"Corpus {path}: {message}", context={"path": str(path)}, recoverable=False)


# =============================================================================
# Service Exceptions
# =============================================================================
class ServiceError(SentenceSearchError):
    """Base exception for search service lifecycle errors."""


class NotReadyError(ServiceError):
    """Raised when a search is requested before the database is published."""

    def __init__(self, phase: str) -> None:
        self.phase = phase
        super().__init__(f"Search service is not ready (phase: {phase})", context={"phase": phase})


def classify_error(exc: Exception) -> tuple[ErrorCategory, RecoveryStrategy]:
    """Classify errors into recovery categories and strategies."""
    if isinstance(exc, DecodeFailureError):
        return "recoverable", "rebuild"
    if isinstance(exc, DimensionMismatchError):
        return "fatal", "abort"
    if isinstance(exc, NotReadyError):
        return "transient", "retry"
    if isinstance(exc, CorpusError):
        return "fatal", "abort"
    if isinstance(exc, SentenceSearchError):
        return ("recoverable", "retry") if exc.recoverable else ("fatal", "abort")
    return "transient", "retry"

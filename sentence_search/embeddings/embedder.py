"""Embedding providers.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
import asyncio
import hashlib
import re
from functools import lru_cache
from importlib import import_module
from typing import TYPE_CHECKING, Any, Final, Protocol, cast, runtime_checkable

# Third-party (alphabetical)
import logfire
import numpy as np

# Local imports (core first, then alphabetical)
from ..core.exceptions import EncodingFailureError, ProviderNotReadyError
from ..core.settings import DEFAULT_EMBEDDING_MODEL

if TYPE_CHECKING:
    from ..core.settings import SearchSettings
    from ..core.types import ProviderState

__all__ = (
    "DEFAULT_MODEL",
    "EmbeddingProvider",
    "BaseEmbeddingProvider",
    "HashEmbeddingProvider",
    "PydanticAIEmbeddingProvider",
    "create_provider",
    "get_embedder",
)

DEFAULT_MODEL: Final[str] = DEFAULT_EMBEDDING_MODEL

_TOKEN_RE: Final = re.compile(r"\w+", re.UNICODE)


@runtime_checkable
class EmbedQueryResult(Protocol):
    """Protocol for embed_query results."""

    embedding: list[float]


@runtime_checkable
class Embedder(Protocol):
    """Protocol for pydantic_ai embedders."""

    def __init__(self, model: str) -> None: ...

    async def embed_query(self, query: str) -> EmbedQueryResult:
        """Embed a single query string."""
        ...


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for embedding providers."""

    @property
    def name(self) -> str: ...

    @property
    def state(self) -> ProviderState: ...

    @property
    def dimension(self) -> int | None: ...

    async def initialize(self) -> None:
        """Prepare the provider. Idempotent."""
        ...

    async def encode(self, text: str) -> list[float]:
        """Embed a single text."""
        ...


class BaseEmbeddingProvider:
    """Provider base with an explicit initialization state machine.

    ``uninitialized -> initializing -> ready | failed``. Only the first
    ``initialize()`` call runs setup; concurrent callers wait for it. ``encode``
    is rejected until the provider is ready.
    """

    name: str = "base"

    def __init__(self) -> None:
        self._state: ProviderState = "uninitialized"
        self._lock = asyncio.Lock()
        self._failure: BaseException | None = None
        self._dimension: int | None = None

    @property
    def state(self) -> ProviderState:
        return self._state

    @property
    def dimension(self) -> int | None:
        return self._dimension

    async def initialize(self) -> None:
        """Run provider setup once.

        Raises:
            ProviderNotReadyError: If setup failed, now or on an earlier call.
        """
        async with self._lock:
            if self._state == "ready":
                return
            if self._state == "failed":
                raise ProviderNotReadyError(self.name, self._state) from self._failure

            self._state = "initializing"
            with logfire.span("embedder.initialize", provider=self.name):
                try:
                    await self._setup()
                except Exception as exc:
                    self._state = "failed"
                    self._failure = exc
                    logfire.error("embedder_initialize_failed", provider=self.name, error=str(exc))
                    raise ProviderNotReadyError(self.name, self._state) from exc
            self._state = "ready"

    async def encode(self, text: str) -> list[float]:
        """Embed ``text``.

        Raises:
            ProviderNotReadyError: If the provider is not ready.
            EncodingFailureError: If the backend fails or returns no values.
        """
        if self._state != "ready":
            raise ProviderNotReadyError(self.name, self._state)
        try:
            vector = await self._encode(text)
        except EncodingFailureError:
            raise
        except Exception as exc:
            raise EncodingFailureError(text, str(exc), cause=exc) from exc
        if not vector:
            raise EncodingFailureError(text, "provider returned an empty embedding")
        if self._dimension is None:
            self._dimension = len(vector)
        return vector

    async def _setup(self) -> None:
        """Provider-specific setup."""

    async def _encode(self, text: str) -> list[float]:
        raise NotImplementedError


class HashEmbeddingProvider(BaseEmbeddingProvider):
    """Deterministic feature-hashing embeddings.

    Each lower-cased word token is hashed into a bucket with a sign, and the
    bucket counts are L2-normalized. Texts sharing words score as similar,
    which is enough for offline use and tests without model downloads.
    """

    name = "hash"

    def __init__(self, dimension: int = 384) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        super().__init__()
        self._dimension = dimension

    async def _encode(self, text: str) -> list[float]:
        dimension = cast("int", self._dimension)
        vector = np.zeros(dimension, dtype=np.float64)
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            value = int.from_bytes(digest, "little")
            sign = 1.0 if value & 1 else -1.0
            vector[(value >> 1) % dimension] += sign
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.tolist()


class PydanticAIEmbeddingProvider(BaseEmbeddingProvider):
    """Embeddings from a ``pydantic_ai`` embedding model."""

    name = "pydantic-ai"

    def __init__(self, model: str = DEFAULT_MODEL) -> None:
        super().__init__()
        self.model = model
        self._embedder: Embedder | None = None

    async def _setup(self) -> None:
        self._embedder = get_embedder(self.model)

    async def _encode(self, text: str) -> list[float]:
        embedder = cast("Embedder", self._embedder)
        result = await embedder.embed_query(text)
        return _extract_vector(result)


@lru_cache(maxsize=4)
def get_embedder(model: str = DEFAULT_MODEL) -> Embedder:
    """Get cached embedder instance.

    Args:
        model: Embedding model identifier.

    Returns:
        Configured Embedder instance.
    """
    embedder_cls = _resolve_embedder_class()
    return embedder_cls(model)


def create_provider(settings: SearchSettings) -> BaseEmbeddingProvider:
    """Build the embedding provider named in settings."""
    if settings.embedding_provider == "pydantic-ai":
        return PydanticAIEmbeddingProvider(settings.embedding_model)
    return HashEmbeddingProvider(settings.hash_dimension)


def _resolve_embedder_class() -> type[Embedder]:
    """Resolve the Embedder implementation from pydantic_ai."""
    module = import_module("pydantic_ai")
    embedder_cls = getattr(module, "Embedder", None)
    if embedder_cls is None:  # pragma: no cover - optional dependency
        raise RuntimeError("pydantic_ai Embedder is not available")
    return cast("type[Embedder]", embedder_cls)


def _extract_vector(result: Any) -> list[float]:
    embedding = getattr(result, "embedding", None)
    if embedding is None:
        embeddings = getattr(result, "embeddings", None)
        embedding = embeddings[0] if embeddings else None
    if embedding is None:
        raise TypeError(f"unsupported embedding result: {type(result).__name__}")
    return [float(value) for value in embedding]

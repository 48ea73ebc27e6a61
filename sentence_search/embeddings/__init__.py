"""Vector database and similarity search.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# Local imports (core first, then alphabetical)
from .codec import decode_records, encode_records
from .database import VectorDatabase, load_or_build
from .embedder import (
    DEFAULT_MODEL,
    BaseEmbeddingProvider,
    EmbeddingProvider,
    HashEmbeddingProvider,
    PydanticAIEmbeddingProvider,
    create_provider,
    get_embedder,
)
from .ingest import embed_chunks, read_corpus
from .records import SearchOutcome, SearchResult, VectorRecord
from .search import SearchEngine, search
from .similarity import cosine_similarities, cosine_similarity
from .store import FileSnapshotStore, InMemorySnapshotStore, SnapshotStore

__all__ = (
    "DEFAULT_MODEL",
    "decode_records",
    "encode_records",
    "VectorDatabase",
    "load_or_build",
    "BaseEmbeddingProvider",
    "EmbeddingProvider",
    "HashEmbeddingProvider",
    "PydanticAIEmbeddingProvider",
    "create_provider",
    "get_embedder",
    "embed_chunks",
    "read_corpus",
    "SearchOutcome",
    "SearchResult",
    "VectorRecord",
    "SearchEngine",
    "search",
    "cosine_similarities",
    "cosine_similarity",
    "FileSnapshotStore",
    "InMemorySnapshotStore",
    "SnapshotStore",
)

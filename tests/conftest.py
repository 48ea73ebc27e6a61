"""Shared test fixtures and helpers for sentence-search tests.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

import json
import os
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from sentence_search.core.exceptions import StoreIOError
from sentence_search.embeddings.embedder import BaseEmbeddingProvider
from sentence_search.embeddings.records import VectorRecord
from sentence_search.embeddings.store import InMemorySnapshotStore

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = ("TestEnv", "FakeProvider", "UnwritableStore")


class TestEnv:
    """Helper for managing environment variables in tests."""

    __test__ = False  # Prevent pytest from collecting this class

    def __init__(self) -> None:
        self.envars: dict[str, str | None] = {}

    def set(self, name: str, value: str) -> None:
        """Set an environment variable, saving the original value."""
        self.envars.setdefault(name, os.getenv(name))
        os.environ[name] = value

    def remove(self, name: str) -> None:
        """Remove an environment variable, saving the original value."""
        self.envars.setdefault(name, os.getenv(name))
        os.environ.pop(name, None)

    def reset(self) -> None:
        """Reset all modified environment variables to original values."""
        for name, value in self.envars.items():
            if value is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = value


class FakeProvider(BaseEmbeddingProvider):
    """Provider returning fixed vectors per text, counting calls."""

    name = "fake"

    def __init__(
        self,
        vectors: dict[str, Sequence[float]] | None = None,
        *,
        dimension: int = 3,
        fail_on: set[str] | None = None,
        fail_setup: bool = False,
    ) -> None:
        super().__init__()
        self.vectors = dict(vectors or {})
        self.default_dimension = dimension
        self.fail_on = fail_on or set()
        self.fail_setup = fail_setup
        self.setup_calls = 0
        self.encoded: list[str] = []

    async def _setup(self) -> None:
        self.setup_calls += 1
        if self.fail_setup:
            raise RuntimeError("model file missing")

    async def _encode(self, text: str) -> list[float]:
        self.encoded.append(text)
        if text in self.fail_on:
            raise RuntimeError(f"cannot encode {text!r}")
        if text in self.vectors:
            return list(self.vectors[text])
        return [float(len(text) % 7 + 1)] + [1.0] * (self.default_dimension - 1)


class UnwritableStore(InMemorySnapshotStore):
    """In-memory store whose writes fail like a full disk."""

    def save(self, records: Sequence[VectorRecord]) -> None:
        self.save_count += 1
        raise StoreIOError(Path("/snapshots/vector_db.bin"), "save", "No space left on device")


@pytest.fixture
def env() -> Iterator[TestEnv]:
    """Fixture for managing environment variables in tests."""
    test_env = TestEnv()
    yield test_env
    test_env.reset()


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def snapshot_path(tmp_path: Path) -> Path:
    """Provide a temporary snapshot path."""
    return tmp_path / "snapshots" / "vector_db.bin"


@pytest.fixture
def sample_records() -> list[VectorRecord]:
    """Four records with mixed-sign, non-trivial float values."""
    return [
        VectorRecord(id=0, text="Llama 4 uses a mixture-of-experts design.", embedding=[0.1, -0.25, 0.3333]),
        VectorRecord(id=1, text="Qwen3 supports a thinking mode.", embedding=[1e-7, 2.5, -3.75]),
        VectorRecord(id=2, text="ünïcödé passage ✓", embedding=[0.0, 0.0, 1.0]),
        VectorRecord(id=3, text="", embedding=[-1.0, 0.5, 0.125]),
    ]


@pytest.fixture
def write_jsonl(tmp_path: Path):
    """Write JSONL lines to a temporary file and return its path."""

    def _write(name: str, lines: Sequence[object | str]) -> Path:
        path = tmp_path / name
        rendered = [line if isinstance(line, str) else json.dumps(line) for line in lines]
        path.write_text("\n".join(rendered) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_provider():
    """Factory for ``FakeProvider`` instances."""
    return FakeProvider


@pytest.fixture
def unwritable_store() -> UnwritableStore:
    """Store whose ``save`` always raises ``StoreIOError``."""
    return UnwritableStore()

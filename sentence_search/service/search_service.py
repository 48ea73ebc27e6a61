"""Search service lifecycle.

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
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Final

# Third-party (alphabetical)
import logfire

# Local imports (core first, then alphabetical)
from ..core.exceptions import NotReadyError
from ..embeddings.database import VectorDatabase, load_or_build
from ..embeddings.embedder import create_provider
from ..embeddings.ingest import embed_chunks, read_corpus
from ..embeddings.search import SearchEngine
from ..embeddings.store import FileSnapshotStore
from .state import SearchState, StateChannel

if TYPE_CHECKING:
    from ..core.settings import SearchSettings
    from ..core.types import ServicePhase
    from ..embeddings.embedder import EmbeddingProvider
    from ..embeddings.records import SearchOutcome
    from ..embeddings.store import SnapshotStore

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = ("SearchService",)

# =============================================================================
# Section 3: Constants
# =============================================================================
_DIMENSION_PROBE: Final[str] = "dimension probe"


# =============================================================================
# Section 11: Classes
# =============================================================================
class SearchService:
    """Owns the embedding provider, the snapshot store and the published database.

    Lifecycle is ``idle -> initializing -> ready | failed``. Searches are
    rejected until the database is published, and every state change is
    pushed to ``channel``.

    Example:
        >>> async with SearchService.from_settings(load_settings()) as service:
        ...     await service.initialize()
        ...     outcome = await service.search('llama context length', top_n=3)
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        store: SnapshotStore,
        corpus: Sequence[str],
        *,
        concurrency: int = 8,
        default_top_n: int = 5,
        validate_snapshot_dimension: bool = True,
        channel: StateChannel | None = None,
    ) -> None:
        self.provider = provider
        self.store = store
        self.corpus = corpus
        self.concurrency = concurrency
        self.default_top_n = default_top_n
        self.validate_snapshot_dimension = validate_snapshot_dimension
        self.channel = channel or StateChannel()

        self._phase: ServicePhase = "idle"
        self._engine: SearchEngine | None = None
        self._init_lock = asyncio.Lock()
        self._ready = asyncio.Event()
        self._failure: BaseException | None = None
        self._inflight: asyncio.Task[SearchOutcome] | None = None

    @classmethod
    def from_settings(cls, settings: SearchSettings) -> SearchService:
        """Wire a service from settings, reading the configured corpus files."""
        corpus = read_corpus(settings.corpus_paths, text_field=settings.text_field)
        return cls(
            create_provider(settings),
            FileSnapshotStore(settings.snapshot_path),
            corpus,
            concurrency=settings.build_concurrency,
            default_top_n=settings.default_top_n,
            validate_snapshot_dimension=settings.validate_snapshot_dimension,
        )

    async def __aenter__(self) -> SearchService:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @property
    def phase(self) -> ServicePhase:
        return self._phase

    @property
    def ready(self) -> bool:
        return self._phase == "ready"

    @property
    def state(self) -> SearchState:
        return self.channel.current

    @property
    def database(self) -> VectorDatabase:
        """The published database snapshot.

        Raises:
            NotReadyError: If no database has been published yet.
        """
        if self._engine is None:
            raise NotReadyError(self._phase)
        return self._engine.database

    # =========================================================================
    # Lifecycle
    # =========================================================================
    async def initialize(self) -> VectorDatabase:
        """Initialize the provider, load or build the database, then publish readiness.

        Only the first call does work; later calls return the published database
        or re-raise the original failure.
        """
        async with self._init_lock:
            if self._phase == "ready":
                return self.database
            if self._phase == "failed":
                raise NotReadyError(self._phase) from self._failure

            self._set_phase("initializing")
            with logfire.span("service.initialize", corpus=len(self.corpus)):
                try:
                    database = await self._build_database()
                except asyncio.CancelledError:
                    self._set_phase("idle")
                    raise
                except Exception as exc:
                    self._failure = exc
                    self._set_phase("failed", error=str(exc) or type(exc).__name__)
                    self._ready.set()
                    raise

            self._engine = SearchEngine(database)
            self._set_phase("ready")
            self._ready.set()
            logfire.info("service_ready", records=len(database), dimension=database.dimension)
            return database

    async def wait_until_ready(self) -> None:
        """Wait for initialization to finish.

        Raises:
            NotReadyError: If initialization failed.
        """
        await self._ready.wait()
        if self._phase != "ready":
            raise NotReadyError(self._phase) from self._failure

    async def rebuild(self) -> VectorDatabase:
        """Re-embed the corpus, persist it, and swap the new snapshot in.

        The stored snapshot is only replaced once every chunk has embedded.
        Searches already running keep the snapshot they started with.
        Concurrent rebuilds run one after another.
        """
        async with self._init_lock:
            if self._phase != "ready":
                raise NotReadyError(self._phase)
            with logfire.span("service.rebuild", corpus=len(self.corpus)):
                records = await embed_chunks(self.corpus, self.provider.encode, concurrency=self.concurrency)
                database = VectorDatabase(records)
                await asyncio.to_thread(self.store.save, records)
            self._engine = SearchEngine(database)
            self.channel.update(results=(), elapsed_ms=0.0, query=None, error=None)
            return database

    async def close(self) -> None:
        """Cancel any in-flight search and end state subscriptions."""
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            inflight.cancel()
            await asyncio.gather(inflight, return_exceptions=True)
        self.channel.close()

    # =========================================================================
    # Queries
    # =========================================================================
    async def search(self, query: str, top_n: int | None = None) -> SearchOutcome:
        """Encode ``query`` and rank the published database against it.

        The outcome is also published to ``channel``. A failed query publishes
        an empty result list with the error and leaves the database untouched.

        Raises:
            NotReadyError: If the database is not published yet.
            EncodingFailureError: If the query cannot be embedded.
        """
        engine = self._engine
        if engine is None or self._phase != "ready":
            raise NotReadyError(self._phase)
        top_n = self.default_top_n if top_n is None else top_n

        with logfire.span("service.search", query=query[:100], top_n=top_n) as span:
            try:
                embedding = await self.provider.encode(query)
                outcome = await asyncio.to_thread(engine.search, embedding, top_n)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logfire.warning("search_failed", query=query[:100], error=str(exc))
                self.channel.update(results=(), elapsed_ms=0.0, query=query, error=str(exc))
                raise
            span.set_attribute("results", len(outcome.results))
            span.set_attribute("elapsed_ms", outcome.elapsed_ms)

        self.channel.update(results=outcome.results, elapsed_ms=outcome.elapsed_ms, query=query, error=None)
        return outcome

    def submit(self, query: str, top_n: int | None = None) -> asyncio.Task[SearchOutcome]:
        """Start a search that supersedes any search still in flight.

        The superseded search is cancelled and never publishes its results.
        """
        if self._phase != "ready":
            raise NotReadyError(self._phase)
        previous = self._inflight
        if previous is not None and not previous.done():
            previous.cancel()
            logfire.debug("search_superseded", query=query[:100])
        task = asyncio.create_task(self.search(query, top_n))
        task.add_done_callback(_consume_task_result)
        self._inflight = task
        return task

    # =========================================================================
    # Internals
    # =========================================================================
    async def _build_database(self) -> VectorDatabase:
        await self.provider.initialize()
        expected_dimension: int | None = None
        if self.validate_snapshot_dimension:
            expected_dimension = self.provider.dimension
            if expected_dimension is None:
                expected_dimension = len(await self.provider.encode(_DIMENSION_PROBE))
        return await load_or_build(
            self.corpus,
            self.provider.encode,
            self.store,
            concurrency=self.concurrency,
            expected_dimension=expected_dimension,
        )

    def _set_phase(self, phase: ServicePhase, *, error: str | None = None) -> None:
        self._phase = phase
        self.channel.update(phase=phase, error=error)


def _consume_task_result(task: asyncio.Task[Any]) -> None:
    # failures are already published to the channel
    if not task.cancelled():
        task.exception()

"""Tests for the search service lifecycle.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

import asyncio
from pathlib import Path

import pytest
from dirty_equals import IsFloat

from sentence_search.core.exceptions import EncodingFailureError, NotReadyError, ProviderNotReadyError, StoreIOError
from sentence_search.core.settings import SearchSettings
from sentence_search.embeddings.records import VectorRecord
from sentence_search.embeddings.store import FileSnapshotStore, InMemorySnapshotStore
from sentence_search.service import SearchService

__all__ = ()

pytestmark = pytest.mark.anyio

VECTORS = {
    "cats purr": [1.0, 0.0, 0.0],
    "dogs bark": [0.0, 1.0, 0.0],
    "kittens purr softly": [0.9, 0.1, 0.0],
    "query: cat": [1.0, 0.05, 0.0],
}
CORPUS = ["cats purr", "dogs bark", "kittens purr softly"]


@pytest.fixture
def provider(make_provider):
    """Fake provider with fixed vectors."""
    return make_provider(VECTORS)


class TestInitialize:
    """Tests for SearchService.initialize."""

    async def test_builds_and_publishes_ready(self, provider) -> None:
        """Initialization builds the database and publishes readiness."""
        store = InMemorySnapshotStore()
        service = SearchService(provider, store, CORPUS)
        phases: list[str] = []

        async def watch() -> None:
            async for state in service.channel.subscribe():
                phases.append(state.phase)
                if state.phase == "ready":
                    return

        watcher = asyncio.create_task(watch())
        await asyncio.sleep(0)
        database = await service.initialize()
        await asyncio.wait_for(watcher, timeout=1)

        assert service.ready is True
        assert service.state.ready is True
        assert len(database) == 3
        assert store.exists()
        assert phases[0] == "idle"
        assert phases[-1] == "ready"

    async def test_initialize_is_idempotent(self, provider) -> None:
        """Later calls return the published database without rebuilding."""
        store = InMemorySnapshotStore()
        service = SearchService(provider, store, CORPUS)

        first, second = await asyncio.gather(service.initialize(), service.initialize())

        assert first is second
        assert provider.setup_calls == 1
        assert store.save_count == 1

    async def test_loads_existing_snapshot(self, provider, snapshot_path: Path) -> None:
        """A persisted snapshot is reused across service instances."""
        await SearchService(provider, FileSnapshotStore(snapshot_path), CORPUS).initialize()
        payload = snapshot_path.read_bytes()

        fresh = type(provider)(VECTORS)
        service = SearchService(fresh, FileSnapshotStore(snapshot_path), CORPUS, validate_snapshot_dimension=False)
        database = await service.initialize()

        assert [record.text for record in database] == CORPUS
        assert fresh.encoded == []
        assert snapshot_path.read_bytes() == payload

    async def test_stale_snapshot_dimension_rebuilds(self, make_provider) -> None:
        """A snapshot whose dimension differs from the provider's is rebuilt."""
        store = InMemorySnapshotStore()
        store.save([VectorRecord(id=0, text="old", embedding=[1.0, 0.0])])
        provider = make_provider(VECTORS)
        service = SearchService(provider, store, CORPUS)

        database = await service.initialize()

        assert database.dimension == 3
        assert [record.text for record in database] == CORPUS

    async def test_provider_failure_marks_failed(self, make_provider) -> None:
        """A provider that fails to initialize leaves the service failed."""
        service = SearchService(make_provider(fail_setup=True), InMemorySnapshotStore(), CORPUS)

        with pytest.raises(ProviderNotReadyError):
            await service.initialize()

        assert service.phase == "failed"
        assert service.state.error is not None
        with pytest.raises(NotReadyError):
            await service.wait_until_ready()
        with pytest.raises(NotReadyError):
            await service.initialize()

    async def test_build_failure_persists_nothing(self, make_provider) -> None:
        """An encoding failure during build is fatal and nothing is saved."""
        store = InMemorySnapshotStore()
        service = SearchService(make_provider(VECTORS, fail_on={"dogs bark"}), store, CORPUS)

        with pytest.raises(EncodingFailureError):
            await service.initialize()

        assert service.ready is False
        assert store.exists() is False

    async def test_save_failure_marks_failed(self, provider, unwritable_store) -> None:
        """A snapshot that cannot be written fails initialization."""
        service = SearchService(provider, unwritable_store, CORPUS)

        with pytest.raises(StoreIOError):
            await service.initialize()

        assert service.phase == "failed"
        assert service.ready is False
        assert service.state.phase == "failed"
        assert service.state.error
        with pytest.raises(NotReadyError):
            await service.wait_until_ready()
        with pytest.raises(NotReadyError):
            await service.search("query: cat")

    async def test_wait_until_ready(self, provider) -> None:
        """Callers can wait for readiness."""
        service = SearchService(provider, InMemorySnapshotStore(), CORPUS)

        waiter = asyncio.create_task(service.wait_until_ready())
        await asyncio.sleep(0)
        assert not waiter.done()

        await service.initialize()
        await asyncio.wait_for(waiter, timeout=1)


class TestSearch:
    """Tests for SearchService.search."""

    async def test_rejects_before_ready(self, provider) -> None:
        """No search is served before the database is published."""
        service = SearchService(provider, InMemorySnapshotStore(), CORPUS)

        with pytest.raises(NotReadyError):
            await service.search("query: cat")
        with pytest.raises(NotReadyError):
            service.submit("query: cat")
        with pytest.raises(NotReadyError):
            _ = service.database

    async def test_search_publishes_results(self, provider) -> None:
        """Results are returned and published."""
        service = SearchService(provider, InMemorySnapshotStore(), CORPUS, default_top_n=2)
        await service.initialize()

        outcome = await service.search("query: cat")

        assert outcome.ids == [0, 2]
        assert service.state.results == outcome.results
        assert service.state.query == "query: cat"
        assert service.state.elapsed_ms == IsFloat(ge=0.0)
        assert service.state.error is None

    async def test_failed_query_publishes_error(self, make_provider) -> None:
        """A failing query clears results and leaves the database intact."""
        provider = make_provider(VECTORS, fail_on={"broken"})
        service = SearchService(provider, InMemorySnapshotStore(), CORPUS)
        database = await service.initialize()
        await service.search("query: cat", top_n=3)

        with pytest.raises(EncodingFailureError):
            await service.search("broken")

        assert service.state.results == ()
        assert service.state.error is not None
        assert service.database is database
        assert service.ready is True

    async def test_submit_supersedes_in_flight_search(self, make_provider) -> None:
        """A newer submitted search cancels the older one, which never publishes."""
        release = asyncio.Event()

        class SlowProvider(type(make_provider())):
            async def _encode(self, text: str) -> list[float]:
                if text == "slow":
                    await release.wait()
                return await super()._encode(text)

        provider = SlowProvider(VECTORS)
        service = SearchService(provider, InMemorySnapshotStore(), CORPUS)
        await service.initialize()

        slow = service.submit("slow", 3)
        await asyncio.sleep(0)
        fast = service.submit("query: cat", 1)
        outcome = await fast
        await asyncio.gather(slow, return_exceptions=True)

        assert slow.cancelled()
        assert outcome.ids == [0]
        assert service.state.query == "query: cat"

    async def test_rebuild_swaps_snapshot(self, provider) -> None:
        """Rebuild re-embeds the corpus and publishes a new snapshot."""
        store = InMemorySnapshotStore()
        service = SearchService(provider, store, CORPUS)
        first = await service.initialize()

        second = await service.rebuild()

        assert second is not first
        assert list(second) == list(first)
        assert service.database is second
        assert store.save_count == 2

    async def test_concurrent_rebuilds_run_one_at_a_time(self, provider) -> None:
        """A second rebuild starts embedding only after the first has saved."""
        encoded_at_save: list[int] = []

        class RecordingStore(InMemorySnapshotStore):
            def save(self, records) -> None:
                encoded_at_save.append(len(provider.encoded))
                super().save(records)

        service = SearchService(provider, RecordingStore(), CORPUS)
        await service.initialize()

        await asyncio.gather(service.rebuild(), service.rebuild())

        assert len(encoded_at_save) == 3
        assert encoded_at_save[1] - encoded_at_save[0] == len(CORPUS)
        assert encoded_at_save[2] - encoded_at_save[1] == len(CORPUS)

    async def test_close_ends_channel(self, provider) -> None:
        """Closing the service closes its channel."""
        async with SearchService(provider, InMemorySnapshotStore(), CORPUS) as service:
            await service.initialize()

        assert service.channel.closed is True


class TestFromSettings:
    """Tests for SearchService.from_settings."""

    async def test_wires_hash_provider_and_file_store(self, tmp_path: Path, write_jsonl) -> None:
        """Settings produce a working service end to end."""
        corpus = write_jsonl(
            "corpus.jsonl",
            [
                {"page_content": "The context window is 128k tokens."},
                {"page_content": "Experts are routed per token."},
            ],
        )
        settings = SearchSettings(
            _env_file=None,
            snapshot_path=tmp_path / "db.bin",
            corpus_paths=[corpus],
            embedding_provider="hash",
            hash_dimension=384,
        )

        async with SearchService.from_settings(settings) as service:
            await service.initialize()
            outcome = await service.search("context window", top_n=1)

        assert outcome.results[0].text == "The context window is 128k tokens."
        assert (tmp_path / "db.bin").exists()

"""Published search state and its subscription channel.

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
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

# Third-party (alphabetical)
import logfire
from pydantic import BaseModel, ConfigDict

# Local imports (core first, then alphabetical)
from ..core.types import ServicePhase
from ..embeddings.records import SearchResult

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = ("SearchState", "StateChannel")


# =============================================================================
# Section 11: Classes
# =============================================================================
class SearchState(BaseModel):
    """Snapshot of what the presentation layer shows."""

    model_config = ConfigDict(frozen=True)

    phase: ServicePhase = "idle"
    results: tuple[SearchResult, ...] = ()
    elapsed_ms: float = 0.0
    query: str | None = None
    error: str | None = None

    @property
    def ready(self) -> bool:
        return self.phase == "ready"


@dataclass
class StateChannel:
    """Latest-value channel for ``SearchState`` updates.

    Subscribers first receive the current state, then every published update.
    A slow subscriber only ever sees the newest pending state.
    """

    _current: SearchState = field(default_factory=SearchState)
    _subscribers: list[asyncio.Queue[SearchState | None]] = field(default_factory=list)
    _closed: bool = False

    @property
    def current(self) -> SearchState:
        return self._current

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, state: SearchState) -> None:
        """Replace the current state and notify subscribers."""
        if self._closed:
            return
        self._current = state
        logfire.debug("state_published", phase=state.phase, results=len(state.results), error=state.error)
        for queue in self._subscribers:
            _put_latest(queue, state)

    def update(self, **changes: object) -> SearchState:
        """Publish a copy of the current state with ``changes`` applied."""
        state = self._current.model_copy(update=changes)
        self.publish(state)
        return state

    async def subscribe(self) -> AsyncIterator[SearchState]:
        """Yield the current state, then each update until the channel closes."""
        if self._closed:
            yield self._current
            return
        queue: asyncio.Queue[SearchState | None] = asyncio.Queue(maxsize=1)
        queue.put_nowait(self._current)
        self._subscribers.append(queue)
        try:
            while True:
                state = await queue.get()
                if state is None:
                    return
                yield state
        finally:
            self._subscribers.remove(queue)

    def close(self) -> None:
        """End all subscriptions."""
        self._closed = True
        for queue in self._subscribers:
            _put_latest(queue, None)


def _put_latest(queue: asyncio.Queue[SearchState | None], item: SearchState | None) -> None:
    if queue.full():
        queue.get_nowait()
    queue.put_nowait(item)

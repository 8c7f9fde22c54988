"""
In-memory refresh cache with single-flight loading.

Generic cache -- not weather-specific. Stores one immutable Snapshot per
string key until its next_update, and coalesces concurrent refreshes of the
same key into a single loader call.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

from weather_ayah.models import Snapshot

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Snapshot)

Loader = Callable[[], Awaitable[S]]


class RefreshCache:
    """
    Keyed snapshot cache with stale-while-revalidate semantics.

    - ensure(): returns the stored snapshot while fresh, otherwise joins or
      starts the one refresh for that key.
    - peek(): returns the stored snapshot regardless of freshness.
    - clear(): drops stored snapshots.

    Everything between the freshness check and registering a new refresh
    runs without awaiting, so the check/create sequence cannot interleave
    with another caller on the same event loop.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock  # epoch seconds, overridable for testing
        self._entries: dict[str, Snapshot] = {}
        self._pending: dict[str, asyncio.Task] = {}

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def ensure(self, key: str, loader: Loader, ttl: float) -> S:
        """
        Return a fresh snapshot for key, refreshing it through loader if needed.

        Args:
            key: Normalized cache key.
            loader: Zero-argument coroutine function producing an unstamped
                    snapshot. Called at most once per miss, however many
                    callers are waiting.
            ttl: Seconds the new snapshot stays fresh.

        Raises whatever loader raised, to every caller waiting on that refresh.
        """
        current = self._entries.get(key)
        if current is not None and current.next_update > self._now_ms():
            return current

        pending = self._pending.get(key)
        if pending is None:
            logger.debug("Refreshing %r", key)
            pending = asyncio.ensure_future(self._refresh(key, loader, ttl))
            pending.add_done_callback(_retrieve_exception)
            self._pending[key] = pending
        else:
            logger.debug("Joining in-flight refresh of %r", key)

        # A caller that stops waiting must not cancel the shared refresh.
        return await asyncio.shield(pending)

    async def _refresh(self, key: str, loader: Loader, ttl: float) -> S:
        try:
            raw = await loader()
            updated_at = self._now_ms()
            snapshot = raw.model_copy(
                update={
                    "updated_at": updated_at,
                    "next_update": updated_at + int(round(ttl * 1000)),
                }
            )
            self._entries[key] = snapshot
            return snapshot
        finally:
            self._pending.pop(key, None)

    def peek(self, key: str) -> Optional[Snapshot]:
        """Return the stored snapshot for key, fresh or not."""
        return self._entries.get(key)

    def is_refreshing(self, key: str) -> bool:
        """True while a refresh for key is in flight."""
        return key in self._pending

    def clear(self) -> None:
        """Remove all stored snapshots. In-flight refreshes still complete."""
        self._entries.clear()


def _retrieve_exception(task: asyncio.Task) -> None:
    # Marks the failure as seen when every waiter has gone away.
    if not task.cancelled():
        task.exception()

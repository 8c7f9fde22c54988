"""
Background refresh scheduler.

Keeps snapshots warm without client traffic:
  1. One eager refresh per job at start, before the first request arrives
  2. Then one refresh per job every `interval` seconds
  3. A failed refresh is logged and the next tick tries again
  4. Jobs call the services, so they share the cache's single-flight path
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshJob:
    """One snapshot to keep warm."""

    name: str
    refresh: Callable[[], Awaitable[Any]]
    interval: float  # seconds


class RefreshScheduler:
    """Runs each job on its own fixed interval until stopped."""

    def __init__(
        self,
        jobs: list[RefreshJob],
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._jobs = list(jobs)
        self._sleep = sleep  # overridable for testing
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        """Start one background task per job. Must be called inside a running loop."""
        if self._tasks:
            logger.warning("Scheduler already running, ignoring duplicate start")
            return
        for job in self._jobs:
            self._tasks.append(
                asyncio.create_task(self._run(job), name=f"refresh-{job.name}")
            )
        logger.info(
            "Scheduler started: %s",
            ", ".join(f"{job.name} every {job.interval:g}s" for job in self._jobs),
        )

    async def stop(self) -> None:
        """Cancel all job tasks and wait for them to finish."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if tasks:
            logger.info("Scheduler stopped")

    async def _run(self, job: RefreshJob) -> None:
        await self._tick(job, initial=True)
        while True:
            await self._sleep(job.interval)
            await self._tick(job, initial=False)

    async def _tick(self, job: RefreshJob, initial: bool) -> bool:
        try:
            await job.refresh()
        except Exception as exc:
            kind = "Initial" if initial else "Scheduled"
            logger.error("%s %s refresh failed: %s", kind, job.name, exc)
            return False
        logger.debug("%s refresh ok", job.name)
        return True

"""
Maintenance Scheduler - Periodic staleness GC for the crawl database.

The due time of the next run is persisted, so restarts neither reset nor
skip the schedule. Without a stored due time the first run is delayed so a
fresh install does not purge during startup.
Purging is idempotent, so a run that overlaps with a manual purge is harmless.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time

from .reconciler import CrawlReconciler

logger = logging.getLogger(__name__)

__all__ = ["MaintenanceScheduler"]


class MaintenanceScheduler:
    """
    Runs ``purge_stale_entries`` on a fixed schedule.

    Example:
        >>> scheduler = MaintenanceScheduler(reconciler)
        >>> scheduler.ensure_scheduled()
        True
        >>> await scheduler.stop()
    """

    def __init__(
        self,
        reconciler: CrawlReconciler,
        initial_delay: float = 2 * 24 * 3600,
        interval: float = 7 * 24 * 3600,
        item_staleness_days: int = 56,
        crawl_staleness_days: int = 56,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            reconciler: Reconciler whose storage is purged
            initial_delay: Seconds before the first run
            interval: Seconds between runs
            item_staleness_days: Age after which discovered items are purged
            crawl_staleness_days: Age after which crawl records are purged
        """
        self._reconciler = reconciler
        self._initial_delay = initial_delay
        self._interval = interval
        self._item_days = item_staleness_days
        self._crawl_days = crawl_staleness_days
        self._task: asyncio.Task[None] | None = None
        self.runs = 0

    @property
    def is_scheduled(self) -> bool:
        return self._task is not None and not self._task.done()

    def ensure_scheduled(self) -> bool:
        """
        Start the background task unless it is already running.

        Must be called from a running event loop.

        Returns:
            True if a new task was started
        """
        if self.is_scheduled:
            return False

        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(
            "Scheduled crawl database cleanup (first run in %ds, then every %ds)",
            int(self._initial_delay),
            int(self._interval),
        )
        return True

    async def run_once(self) -> None:
        """Purge stale entries now."""
        await self._reconciler.purge_stale_entries(self._item_days, self._crawl_days)
        self.runs += 1

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self._task is None:
            return

        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _first_run_at(self) -> float:
        try:
            stored = await self._reconciler.next_maintenance_at()
        except Exception as e:
            logger.warning("Could not read cleanup schedule, using initial delay: %s", e)
            stored = None

        if stored is not None:
            return float(stored)

        run_at = time.time() + self._initial_delay
        await self._save_run_at(run_at)
        return run_at

    async def _save_run_at(self, run_at: float) -> None:
        try:
            await self._reconciler.schedule_maintenance_at(int(run_at))
        except Exception as e:
            logger.warning("Could not store cleanup schedule: %s", e)

    async def _run(self) -> None:
        run_at = await self._first_run_at()
        while True:
            await asyncio.sleep(max(0.0, run_at - time.time()))
            try:
                await self.run_once()
            except Exception as e:
                logger.exception("Crawl database cleanup failed: %s", e)
            run_at = time.time() + self._interval
            await self._save_run_at(run_at)

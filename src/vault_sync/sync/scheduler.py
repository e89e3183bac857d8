"""Periodic background sync.

``AutoSyncScheduler`` runs ``engine.sync()`` every *interval* minutes
while enabled. A tick is skipped (not queued) when the engine is busy
or not configured, so a slow sync never causes a burst of catch-up runs.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from vault_sync.config import MAX_AUTO_SYNC_INTERVAL, MIN_AUTO_SYNC_INTERVAL

from .engine import SyncEngine
from .models import SyncResult

logger = logging.getLogger(__name__)


class AutoSyncScheduler:
    """Timer that drives periodic sync on the running event loop.

    Args:
        engine: Engine whose ``sync()`` is called on each tick.
        interval_minutes: Minutes between ticks, 5 to 120.
        enabled: Whether ``start()`` actually schedules anything.
        on_result: Optional callback receiving each tick's result.
    """

    def __init__(
        self,
        engine: SyncEngine,
        interval_minutes: int,
        enabled: bool = True,
        on_result: Callable[[SyncResult], None] | None = None,
    ) -> None:
        self._engine = engine
        self._interval = _check_interval(interval_minutes)
        self._enabled = enabled
        self._on_result = on_result
        self._task: asyncio.Task | None = None

    @property
    def interval_minutes(self) -> int:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking if enabled. Must be called from a running loop."""
        if not self._enabled or self.running:
            return
        logger.info("Auto sync every %d minutes", self._interval)
        self._task = asyncio.get_running_loop().create_task(self._loop())

    async def stop(self) -> None:
        """Cancel the timer and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Auto sync stopped")

    async def reconfigure(self, enabled: bool, interval_minutes: int) -> None:
        """Apply new settings, restarting the timer."""
        self._interval = _check_interval(interval_minutes)
        self._enabled = enabled
        await self.stop()
        self.start()

    async def tick(self) -> SyncResult | None:
        """Run one sync unless the engine is busy or unconfigured."""
        if not self._engine.is_configured():
            logger.debug("Auto sync skipped: GitHub not configured")
            return None
        if self._engine.is_busy():
            logger.debug("Auto sync skipped: sync already in progress")
            return None

        result = await self._engine.sync()
        if self._on_result is not None:
            self._on_result(result)
        return result

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval * 60)
            try:
                await self.tick()
            except Exception:
                logger.exception("Auto sync tick failed")


def _check_interval(minutes: int) -> int:
    if not MIN_AUTO_SYNC_INTERVAL <= minutes <= MAX_AUTO_SYNC_INTERVAL:
        raise ValueError(
            f"Auto sync interval must be between {MIN_AUTO_SYNC_INTERVAL} "
            f"and {MAX_AUTO_SYNC_INTERVAL} minutes, got {minutes}"
        )
    return minutes

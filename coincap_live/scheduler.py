"""Background refresh loop bounded by a lifetime call budget."""

from __future__ import annotations

import asyncio
import time
from enum import Enum

import structlog

from coincap_live.client import CoinCapClient
from coincap_live.errors import CoinCapError
from coincap_live.state import SnapshotStore

logger = structlog.get_logger(__name__)


class SchedulerState(str, Enum):
    """Scheduler lifecycle; FROZEN is terminal once the call budget is spent."""

    SCHEDULED = 'scheduled'
    FETCHING = 'fetching'
    FROZEN = 'frozen'


class RefreshScheduler:
    """Refresh the snapshot store every ``interval`` seconds until the budget is spent.

    Each tick makes at most one upstream call. Successful and failed calls
    both count against the store's budget. Once the budget is spent the next
    tick freezes the scheduler without calling upstream, and :meth:`run`
    returns.

    Example:
        >>> store = SnapshotStore(config.max_requests)
        >>> scheduler = RefreshScheduler(client, store, interval=config.refresh_interval)
        >>> scheduler.start()
    """

    def __init__(
        self,
        client: CoinCapClient,
        store: SnapshotStore,
        *,
        interval: float,
    ) -> None:
        self._client = client
        self._store = store
        if interval < 0:
            raise ValueError(f'interval must be non-negative: {interval}')
        self._interval = interval
        self._state = SchedulerState.SCHEDULED
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    async def tick(self) -> bool:
        """Run one refresh attempt.

        Returns:
            False when the budget is spent and no further ticks should run.
        """
        if self._store.limit_reached:
            self._state = SchedulerState.FROZEN
            logger.warning(
                'safety_limit_reached',
                calls=self._store.calls,
                max_requests=self._store.max_requests,
            )
            return False

        self._state = SchedulerState.FETCHING
        attempt = self._store.calls + 1
        logger.info('refresh_started', attempt=attempt)
        started = time.perf_counter()
        try:
            assets = await self._client.fetch_assets()
        except CoinCapError as exc:
            self._store.record_failure(str(exc))
            logger.error(
                'refresh_failed',
                attempt=attempt,
                error=str(exc),
                error_type=type(exc).__name__,
                remaining=self._store.remaining,
            )
        except Exception as exc:
            self._store.record_failure(str(exc) or type(exc).__name__)
            logger.exception(
                'refresh_failed',
                attempt=attempt,
                error=str(exc),
                error_type=type(exc).__name__,
                remaining=self._store.remaining,
            )
        else:
            latency_ms = round((time.perf_counter() - started) * 1000, 1)
            calls = self._store.record_success(assets, latency_ms)
            logger.info(
                'refresh_succeeded',
                attempt=calls,
                assets=len(assets),
                latency_ms=latency_ms,
                remaining=self._store.remaining,
            )
        self._state = SchedulerState.SCHEDULED
        return True

    async def run(self) -> None:
        while await self.tick():
            await asyncio.sleep(self._interval)

    def start(self) -> asyncio.Task[None]:
        """Spawn :meth:`run` as a background task; later calls return the same task."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self.run(), name='coincap-refresh'
            )
            self._task.add_done_callback(self._on_done)
        return self._task

    async def stop(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _on_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                'scheduler_crashed',
                error=str(exc),
                exc_info=(type(exc), exc, exc.__traceback__),
            )

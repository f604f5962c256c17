"""
Token Poll Scheduler

Background service that drives the aggregation cycle on a fixed interval:

    fetch (all sources) -> merge -> diff vs previous projection
        -> publish new_tokens / price_changes -> commit snapshot

States:
    Idle    - no cycle in flight
    Running - one cycle in flight (guarded by an asyncio.Lock)

Scheduling:
    The first cycle runs immediately on start(). Later cycles fire on a fixed
    wall-clock grid (start + n * interval). Ticks that pass while a cycle is
    still running are skipped, never queued, so two cycles can never race on
    commit.

Liveness:
    No error inside a cycle stops the loop; it is logged and the next tick runs.
    When a cycle merges to nothing (every source failed), the previous snapshot
    is kept and nothing is published.
"""

import asyncio
import contextlib
import math
from datetime import datetime
from typing import Optional

from core.diff_engine import compute_diff
from core.logging import get_logger
from core.merge_engine import merge_tokens
from core.schemas import DiffResult, to_payload
from core.source_manager import SourceManager
from core.utils.time import current_utc_datetime
from services.event_bus import EventBus, NEW_TOKENS, PRICE_CHANGES
from storage.snapshot_store import SnapshotStore


class PollScheduler:
    """
    Periodic fetch/merge/diff/publish/commit driver.

    Example:
        >>> scheduler = PollScheduler(manager, store, bus)
        >>> await scheduler.start(30_000)
        >>> ...
        >>> await scheduler.stop()
    """

    def __init__(
        self,
        source_manager: SourceManager,
        store: SnapshotStore,
        bus: EventBus,
        threshold: Optional[float] = None,
        interval_ms: Optional[int] = None,
    ) -> None:
        from core.config import settings

        self._logger = get_logger(__name__)
        self._sources = source_manager
        self._store = store
        self._bus = bus
        self._threshold = settings.price_change_threshold if threshold is None else threshold
        self._interval_ms = settings.poll_interval_ms if interval_ms is None else interval_ms
        self._cycle_lock = asyncio.Lock()
        self._running = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

        self.cycles_completed = 0
        self.cycles_failed = 0
        self.ticks_skipped = 0
        self.last_cycle_at: Optional[datetime] = None

    # ============================================
    # Lifecycle
    # ============================================

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    @property
    def cycle_in_flight(self) -> bool:
        return self._cycle_lock.locked()

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    async def start(self, interval_ms: Optional[int] = None) -> None:
        """
        Start the polling loop. Calling start() on a running scheduler is a no-op.

        Args:
            interval_ms: Poll interval in milliseconds (defaults to settings.poll_interval_ms)
        """
        if self._running.is_set():
            return
        if interval_ms is not None:
            self._interval_ms = interval_ms
        if self._interval_ms <= 0:
            raise ValueError(f"Poll interval must be positive, got {self._interval_ms}ms")

        self._running.set()
        self._logger.info(
            f"Starting poll scheduler (interval={self._interval_ms}ms, threshold={self._threshold:.2%})"
        )
        self._task = asyncio.create_task(self._run(), name="token_poll_scheduler")

    async def stop(self) -> None:
        if not self._running.is_set():
            return
        self._logger.info("Stopping poll scheduler...")
        self._running.clear()
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    # ============================================
    # Core Loop
    # ============================================

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self._interval_ms / 1000.0
        started = loop.time()
        tick = 0

        while self._running.is_set():
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception:
                self.cycles_failed += 1
                self._logger.exception("Poll cycle failed; continuing at next interval")

            # Next grid tick strictly in the future; overrun ticks are skipped
            elapsed_ticks = math.floor((loop.time() - started) / interval)
            next_tick = max(tick + 1, elapsed_ticks + 1)
            if next_tick > tick + 1:
                missed = next_tick - tick - 1
                self.ticks_skipped += missed
                self._logger.warning(f"Cycle overran the interval; skipped {missed} tick(s)")
            tick = next_tick
            await asyncio.sleep(max(0.0, started + tick * interval - loop.time()))

    async def run_cycle(self) -> Optional[DiffResult]:
        """
        Run one fetch -> merge -> diff -> publish -> commit cycle.

        Returns:
            DiffResult of the cycle, or None if another cycle was already running
        """
        if self._cycle_lock.locked():
            self.ticks_skipped += 1
            self._logger.warning("Previous cycle still running; skipping this tick")
            return None

        async with self._cycle_lock:
            loop = asyncio.get_running_loop()
            cycle_start = loop.time()
            self._logger.info("Fetching tokens...")

            records = await self._sources.fetch_all()
            merged = merge_tokens(records)
            self._logger.info(f"Fetched {len(records)} record(s), {len(merged)} merged token(s)")

            if not merged:
                self._logger.warning(
                    f"No tokens from any source; keeping previous snapshot ({len(self._store)} token(s))"
                )
                self._finish(cycle_start)
                return DiffResult()

            diff = compute_diff(merged, self._store.previous_projection(), self._threshold)
            await self._publish(diff)
            self._store.commit(merged)
            self._finish(cycle_start)
            return diff

    def _finish(self, cycle_start: float) -> None:
        self.cycles_completed += 1
        self.last_cycle_at = current_utc_datetime()
        elapsed = asyncio.get_running_loop().time() - cycle_start
        self._logger.info(f"Poll cycle #{self.cycles_completed} finished in {elapsed:.1f}s")

    async def _publish(self, diff: DiffResult) -> None:
        if diff.new_tokens:
            await self._bus.publish(NEW_TOKENS, to_payload(diff.new_tokens))
            self._logger.info(f"📢 Emitted {len(diff.new_tokens)} new tokens")
        if diff.price_changes:
            await self._bus.publish(PRICE_CHANGES, to_payload(diff.price_changes))
            self._logger.info(f"📢 Emitted {len(diff.price_changes)} price changes")

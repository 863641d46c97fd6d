"""APScheduler-based watch poller."""

from __future__ import annotations

import asyncio

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from footy_watch.alerts.queue import AlertQueue
from footy_watch.api.base import SnapshotSource
from footy_watch.engine.movement import MovementDetector
from footy_watch.engine.registry import WatchedEvent, WatchRegistry

log = structlog.get_logger()

JOB_ID = "poll_watches"


class WatchPoller:
    def __init__(
        self,
        source: SnapshotSource,
        registry: WatchRegistry,
        queue: AlertQueue,
        detector: MovementDetector | None = None,
        interval_ms: int = 120_000,
        fetch_timeout_seconds: float = 20.0,
    ) -> None:
        self._source = source
        self._registry = registry
        self._queue = queue
        self._detector = detector or MovementDetector()
        self._interval_ms = interval_ms
        self._fetch_timeout = fetch_timeout_seconds
        self._scheduler: AsyncIOScheduler | None = None
        self._cycle_count = 0

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    def start(self) -> None:
        """Schedule the recurring poll. A no-op when already running.

        Must be called from within a running event loop.
        """
        if self.is_running:
            log.debug("poller_already_running")
            return

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self.poll_cycle,
            "interval",
            seconds=self._interval_ms / 1000,
            id=JOB_ID,
            name="Poll watched events for probability moves",
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        log.info("poller_started", interval_ms=self._interval_ms)

    def stop(self) -> None:
        """Stop scheduling ticks. In-flight fetches are left to finish."""
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        log.info("poller_stopped")

    async def poll_cycle(self) -> int:
        """Run one tick over every watch. Returns the number of alerts queued."""
        self._cycle_count += 1
        watches = self._registry.list()
        log.info("poll_cycle_start", cycle=self._cycle_count, watches=len(watches))

        queued = 0
        for watch in watches:
            try:
                if await self._poll_watch(watch):
                    queued += 1
            except Exception:
                log.exception("watch_poll_failed", event_key=watch.event_key)

        log.info("poll_cycle_complete", cycle=self._cycle_count, alerts=queued)
        return queued

    async def _poll_watch(self, watch: WatchedEvent) -> bool:
        snapshot = await asyncio.wait_for(
            self._source.get_snapshot(watch.event_key), timeout=self._fetch_timeout
        )

        queued = False
        previous = self._registry.get_observation(watch.event_key)
        if previous is not None:
            alert = self._detector.evaluate(watch, previous.home_win_prob, snapshot)
            if alert is not None:
                queued = self._queue.push(alert.text)

        if not self._registry.record_observation(watch.event_key, snapshot.home_win_prob):
            log.debug("observation_dropped_unwatched", event_key=watch.event_key)
        return queued

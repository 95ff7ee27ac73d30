"""Triggers for sync passes.

This module provides:
- SyncScheduler: Runs SyncEngine.sync_all from every trigger

Triggers:
- Periodic: interval job every sync_interval seconds (default 5 minutes)
- Reconnect: one-off job submitted on each "online" transition
- Manual: run_now()
- Background: a best-effort one-shot registration made on going offline;
  nothing depends on it firing

All triggers go through the engine's single-flight guard, so overlapping
triggers share one pass.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from offlinesync.connectivity import ConnectivityEvent

if TYPE_CHECKING:
    from offlinesync.connectivity import ConnectivityMonitor
    from offlinesync.sync.engine import SyncEngine, SyncResult

logger = logging.getLogger(__name__)

BACKGROUND_SYNC_TAG = "sync-offline-queue"


class SyncScheduler:
    """Schedules sync passes from timer, reconnect and manual triggers."""

    def __init__(
        self,
        engine: SyncEngine,
        monitor: ConnectivityMonitor,
        interval: float = 300.0,
        refresh_cache: bool = True,
        run_immediately: bool = True,
        on_result: Callable[[SyncResult], None] | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            engine: Sync engine to drive.
            monitor: Connectivity oracle to subscribe to.
            interval: Seconds between periodic passes.
            refresh_cache: Also refresh critical tables after periodic passes.
            run_immediately: Run the first periodic pass on start().
            on_result: Optional callback receiving every pass result.
        """
        self._engine = engine
        self._monitor = monitor
        self._interval = interval
        self._refresh_cache = refresh_cache
        self._run_immediately = run_immediately
        self._on_result = on_result
        self._scheduler: BackgroundScheduler | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def running(self) -> bool:
        """Check if the scheduler is started."""
        return self._scheduler is not None

    def _report(self, result: SyncResult) -> None:
        if self._on_result is None:
            return
        try:
            self._on_result(result)
        except Exception:
            logger.exception("Sync result callback failed")

    def _periodic_job(self) -> None:
        """Job function for the periodic sync."""
        if not self._monitor.is_online():
            logger.debug("Periodic sync skipped (offline)")
            return
        try:
            result = self._engine.sync_all()
            self._report(result)
            if self._refresh_cache:
                self._engine.fetch_all_critical_data()
        except Exception:
            logger.exception("Error during periodic sync")

    def _reconnect_job(self) -> None:
        """Job function run once per online transition."""
        logger.info("Back online, syncing queued operations")
        self._report(self._engine.sync_all())

    def _background_job(self) -> None:
        self._report(self._engine.sync_all())

    def _on_connectivity(self, event: ConnectivityEvent) -> None:
        if event == ConnectivityEvent.ONLINE:
            if self._scheduler is not None:
                # No trigger: APScheduler runs the job once, immediately
                self._scheduler.add_job(
                    self._reconnect_job,
                    id="reconnect_sync",
                    name="Sync on reconnect",
                    replace_existing=True,
                )
        else:
            self._monitor.register_background_sync(BACKGROUND_SYNC_TAG, self._background_job)

    def start(self) -> None:
        """Start the periodic job and subscribe to connectivity changes."""
        if self._scheduler is not None:
            return  # Already running

        job_options: dict[str, datetime] = {}
        if self._run_immediately:
            job_options["next_run_time"] = datetime.now()

        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self._periodic_job,
            trigger=IntervalTrigger(seconds=self._interval),
            id="periodic_sync",
            name="Periodic offline queue sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **job_options,
        )
        self._scheduler.start()
        self._unsubscribe = self._monitor.subscribe(self._on_connectivity)
        if not self._monitor.is_online():
            self._monitor.register_background_sync(BACKGROUND_SYNC_TAG, self._background_job)
        logger.info("Sync scheduler started (every %.0fs)", self._interval)

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Sync scheduler stopped")

    def run_now(self) -> SyncResult:
        """Run a sync pass immediately (manual trigger)."""
        result = self._engine.sync_all()
        self._report(result)
        return result

"""
Cleanup scheduler for Shorty Platform.

Runs `LinkStore.clean` on a fixed interval in a background thread
(APScheduler `BackgroundScheduler`). A failing pass is logged and the job
stays scheduled; the next tick simply tries again. The scheduler only calls
the Link Store's public `clean`, it never touches storage directly.
"""

import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from ..manager.link_store import LinkStore

logger = logging.getLogger(__name__)

JOB_ID = "shorty-clean-stale-links"


class CleanupScheduler:
    def __init__(self, link_store: LinkStore, interval_seconds: int = 60 * 60):
        self.link_store = link_store
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def run_once(self) -> Optional[int]:
        """
        One guarded cleanup pass.

        Returns:
            Optional[int]: Links removed, or None if the pass failed.
        """
        try:
            removed = self.link_store.clean()
        except Exception:
            logger.exception("Cleaning stale links failed; retrying on next tick")
            return None
        if removed:
            logger.info("Removed %d stale links", removed)
        return removed

    def start(self) -> None:
        if self.running:
            return
        scheduler = BackgroundScheduler()
        # First pass runs at startup; max_instances=1 keeps a slow pass from overlapping the next.
        scheduler.add_job(
            self.run_once,
            "interval",
            seconds=self.interval_seconds,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
            next_run_time=datetime.now(),
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Cleanup scheduled every %d seconds", self.interval_seconds)

    def shutdown(self, wait: bool = False) -> None:
        if not self.running:
            return
        self._scheduler.shutdown(wait=wait)
        self._scheduler = None

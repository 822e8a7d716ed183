"""Background refresh of every partition users currently care about."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from newscache.models.domain import RefreshSummary
from newscache.services.cache import NewsCache
from newscache.services.lease import RefreshLease
from newscache.services.news_service import NewsService
from newscache.services.preferences import PreferenceEnumerator, expand_partitions
from newscache.utils.logging import get_logger

logger = get_logger(__name__)

JOB_ID = "newscache.refresh"


class CacheRefreshScheduler:
    """Periodically pre-warm the cache for all distinct preference partitions.

    One tick runs at a time. A tick requested while another is running is
    dropped, not queued. Ticks fire at a fixed period measured from ``start()``,
    so a slow tick causes the next one to be skipped rather than delayed.
    """

    def __init__(
        self,
        news_service: NewsService,
        cache: NewsCache,
        enumerator: PreferenceEnumerator,
        *,
        interval: timedelta = timedelta(minutes=15),
        pause_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        lease: Optional[RefreshLease] = None,
        scheduler_factory: Callable[[], BackgroundScheduler] = BackgroundScheduler,
    ) -> None:
        self._news_service = news_service
        self._cache = cache
        self._enumerator = enumerator
        self.interval = interval
        self.pause_seconds = pause_seconds
        self._sleep = sleep
        self._lease = lease
        self._scheduler_factory = scheduler_factory
        self._tick_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._tick_lock.locked()

    @property
    def started(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        with self._state_lock:
            if self._scheduler is not None:
                logger.warning("refresh.scheduler.already_started")
                return
            scheduler = self._scheduler_factory()
            scheduler.add_job(
                self.run_tick,
                IntervalTrigger(seconds=self.interval.total_seconds()),
                id=JOB_ID,
                next_run_time=datetime.now(timezone.utc),
                # overlap is rejected by run_tick itself so that it gets logged
                max_instances=2,
                coalesce=True,
            )
            scheduler.start()
            self._scheduler = scheduler
        logger.info("refresh.scheduler.started", extra={"interval_minutes": self.interval.total_seconds() / 60})

    def stop(self) -> None:
        with self._state_lock:
            if self._scheduler is None:
                return
            # a tick already in progress runs to completion
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        logger.info("refresh.scheduler.stopped")

    def run_tick(self) -> Optional[RefreshSummary]:
        """Run one refresh; returns None when the tick was skipped."""
        if not self._tick_lock.acquire(blocking=False):
            logger.info("refresh.tick.skipped", extra={"reason": "already_running"})
            return None
        try:
            if not self._acquire_lease():
                logger.info("refresh.tick.skipped", extra={"reason": "lease_held"})
                return None
            try:
                return self._refresh()
            finally:
                self._release_lease()
        finally:
            self._tick_lock.release()

    def _refresh(self) -> RefreshSummary:
        summary = RefreshSummary(started_at=datetime.now(timezone.utc))
        logger.info("refresh.tick.started")
        try:
            partitions = expand_partitions(self._enumerator.list_preferences())
        except Exception:
            logger.exception("refresh.tick.failed")
            summary.finished_at = datetime.now(timezone.utc)
            return summary

        summary.partitions = len(partitions)
        logger.info("refresh.tick.partitions", extra={"partitions": len(partitions)})

        pause_pending = False
        for partition in partitions:
            if pause_pending:
                self._sleep(self.pause_seconds)
            try:
                result = self._news_service.fetch_partition(partition)
            except Exception as exc:
                summary.failed += 1
                pause_pending = True
                logger.warning("refresh.partition.failed", extra={"partition": partition.key, "error": str(exc)})
                continue
            summary.succeeded += 1
            pause_pending = not result.from_cache
            logger.info(
                "refresh.partition.updated",
                extra={"partition": partition.key, "articles": len(result.articles), "from_cache": result.from_cache},
            )

        summary.expired_removed = self._cache.clear_expired_cache()
        summary.finished_at = datetime.now(timezone.utc)
        logger.info(
            "refresh.tick.completed",
            extra={
                "succeeded": summary.succeeded,
                "failed": summary.failed,
                "expired_removed": summary.expired_removed,
            },
        )
        return summary

    def _acquire_lease(self) -> bool:
        if self._lease is None:
            return True
        try:
            return self._lease.acquire()
        except Exception:
            # lease store unreachable; refresh without it
            logger.warning("refresh.lease.unavailable", exc_info=True)
            return True

    def _release_lease(self) -> None:
        if self._lease is None:
            return
        try:
            self._lease.release()
        except Exception:
            logger.warning("refresh.lease.release_failed", exc_info=True)

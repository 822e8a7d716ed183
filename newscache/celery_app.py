"""Celery application bootstrap."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict

from celery import Celery, signals
from celery.schedules import schedule as celery_schedule

from .settings import Settings, get_settings
from .utils.logging import configure_logging

_CELERY_APP: Celery | None = None

REFRESH_TASK = "newscache.tasks.refresh.refresh_cache"


def create_celery_app(settings: Settings | None = None) -> Celery:
    """Create the Celery instance from settings."""
    config = settings or get_settings()
    configure_logging(config.structlog_level, json_enabled=config.log_json)
    if not config.redis_url:
        raise RuntimeError("NEWSCACHE_REDIS_URL is required to run the Celery worker.")

    app = Celery("newscache", broker=config.redis_url, backend=config.redis_url)
    app.conf.update(
        task_default_queue="newscache.default",
        task_default_exchange="newscache",
        task_default_routing_key="newscache.default",
        task_soft_time_limit=config.celery_task_soft_time_limit,
        # one refresh at a time per worker
        worker_concurrency=1,
        beat_schedule=_build_beat_schedule(config),
        timezone="UTC",
        enable_utc=True,
    )

    app.autodiscover_tasks(["newscache.tasks"], related_name="refresh")
    _install_signal_handlers(app)
    return app


def get_celery_app() -> Celery:
    """Return the process-wide Celery instance."""
    global _CELERY_APP
    if _CELERY_APP is None:
        _CELERY_APP = create_celery_app()
    return _CELERY_APP


def _build_beat_schedule(settings: Settings) -> Dict[str, Dict[str, Any]]:
    run_every = celery_schedule(timedelta(minutes=settings.refresh_interval_minutes))
    return {
        "refresh.cache": {
            "task": REFRESH_TASK,
            "schedule": run_every,
            "options": {"queue": "newscache.refresh", "expires": run_every.run_every.total_seconds()},
        }
    }


def _install_signal_handlers(app: Celery) -> None:
    logger = logging.getLogger("newscache.worker")

    @signals.worker_shutdown.connect(weak=False)  # type: ignore[attr-defined]
    def _on_worker_shutdown(sender=None, **kwargs):  # noqa: ANN001
        logger.info("Celery worker shutdown detected", extra={"sender": str(sender)})

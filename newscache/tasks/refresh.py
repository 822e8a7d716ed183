"""Celery tasks for the cache refresh workflow."""

from __future__ import annotations

from typing import Callable, Optional

from celery import shared_task

from newscache.connectors.news_api import ProviderFn
from newscache.models.domain import RefreshSummary
from newscache.runtime import NewsCacheRuntime
from newscache.utils.logging import get_logger

# Provider factory injection point for tests (returns provider fn or None for real HTTP)
PROVIDER_FACTORY: Callable[[], Optional[ProviderFn]] | None = None


def _build_runtime() -> NewsCacheRuntime:
    provider = PROVIDER_FACTORY() if PROVIDER_FACTORY else None
    # the worker configured logging when the Celery app was created
    return NewsCacheRuntime(provider=provider, configure_logs=False)


def refresh_core() -> Optional[RefreshSummary]:
    """Run one refresh tick; test-friendly body of the Celery task."""
    runtime = _build_runtime()
    runtime.prepare()
    return runtime.scheduler.run_tick()


def clear_expired_core() -> int:
    runtime = _build_runtime()
    runtime.prepare()
    return runtime.cache.clear_expired_cache()


@shared_task(name="newscache.tasks.refresh.refresh_cache")
def refresh_cache() -> dict:  # pragma: no cover - thin wrapper
    summary = refresh_core()
    if summary is None:
        get_logger(__name__).info("refresh.task.skipped")
        return {"skipped": True}
    return summary.model_dump(mode="json")


@shared_task(name="newscache.tasks.refresh.clear_expired")
def clear_expired() -> int:  # pragma: no cover - thin wrapper
    return clear_expired_core()

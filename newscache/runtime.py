"""Component wiring for a process hosting the news cache."""

from __future__ import annotations

import time
from functools import partial
from typing import Callable, Optional

from newscache.connectors.news_api import NewsAPIClient, ProviderFn
from newscache.db.session import ensure_schema, session_scope
from newscache.scheduler import CacheRefreshScheduler
from newscache.services.cache import NewsCache
from newscache.services.lease import RefreshLease, redis_lease_from_url
from newscache.services.news_service import NewsService
from newscache.services.preferences import PreferenceEnumerator
from newscache.settings import Settings, get_settings
from newscache.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


class NewsCacheRuntime:
    """Owns the cache, the upstream client and the refresh scheduler.

    Built once at process startup; ``start``/``stop`` belong to the host's
    startup and shutdown sequences.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        provider: Optional[ProviderFn] = None,
        lease: Optional[RefreshLease] = None,
        sleep: Callable[[float], None] = time.sleep,
        configure_logs: bool = True,
    ) -> None:
        self.settings = settings or get_settings()
        if configure_logs:
            configure_logging(self.settings.structlog_level, json_enabled=self.settings.log_json)

        session_factory = partial(session_scope, self.settings)
        self.cache = NewsCache(
            session_factory,
            ttl=self.settings.cache_ttl,
            search_limit=self.settings.search_limit,
        )
        self.client = NewsAPIClient(self.settings, provider=provider)
        self.news_service = NewsService(self.cache, self.client)
        self.enumerator = PreferenceEnumerator(session_factory)
        if lease is None and self.settings.redis_url:
            lease = redis_lease_from_url(
                self.settings.redis_url,
                ttl_seconds=int(self.settings.refresh_interval.total_seconds()),
            )
        self.scheduler = CacheRefreshScheduler(
            self.news_service,
            self.cache,
            self.enumerator,
            interval=self.settings.refresh_interval,
            pause_seconds=self.settings.refresh_pause_seconds,
            sleep=sleep,
            lease=lease,
        )

    def prepare(self) -> None:
        ensure_schema(self.settings)

    def start(self) -> None:
        self.prepare()
        self.scheduler.start()
        logger.info("runtime.started")

    def stop(self) -> None:
        self.scheduler.stop()
        logger.info("runtime.stopped")

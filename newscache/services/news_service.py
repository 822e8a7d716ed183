"""Fetch and search orchestration in front of the news cache."""

from __future__ import annotations

from typing import Mapping, Optional, Union

from newscache.connectors.base import ConnectorError
from newscache.connectors.news_api import NewsAPIClient
from newscache.models.domain import (
    DEFAULT_LANGUAGE,
    NewsResult,
    PartitionKey,
    PreferenceRecord,
    SearchResult,
)
from newscache.utils.logging import get_logger

from .cache import NewsCache

logger = get_logger(__name__)

PreferencesLike = Union[PreferenceRecord, Mapping[str, object], None]


def _as_preferences(preferences: PreferencesLike) -> PreferenceRecord:
    if preferences is None:
        return PreferenceRecord()
    if isinstance(preferences, PreferenceRecord):
        return preferences
    return PreferenceRecord.model_validate(dict(preferences))


class NewsService:
    """Cache-first access to headlines and keyword search.

    Upstream failures surface as the typed errors from
    :mod:`newscache.connectors.base`; nothing is cached when the upstream fails.
    """

    def __init__(self, cache: NewsCache, client: NewsAPIClient) -> None:
        self.cache = cache
        self.client = client

    def fetch_news(self, preferences: PreferencesLike = None) -> NewsResult:
        """Return headlines for the first category of ``preferences``."""
        partition = _as_preferences(preferences).primary_partition()
        return self.fetch_partition(partition)

    def fetch_partition(self, partition: PartitionKey) -> NewsResult:
        self.client.ensure_configured()

        cached = self.cache.get_cached_news(partition.category, partition.country, partition.language)
        if cached:
            return NewsResult(
                total_results=len(cached),
                articles=cached,
                from_cache=True,
                partition=partition,
            )

        try:
            response = self.client.top_headlines(partition)
        except ConnectorError as exc:
            logger.warning("news.fetch_failed", extra={"partition": partition.key, "error": str(exc)})
            raise

        # best effort; the fetched articles are returned even if caching fails
        if not self.cache.set_cached_news(response.articles, partition.category, partition.country, partition.language):
            logger.warning("news.cache_write_skipped", extra={"partition": partition.key})

        return NewsResult(
            status=response.status,
            total_results=response.total_results,
            articles=response.articles,
            from_cache=False,
            partition=partition,
        )

    def search_news(self, query: str, language: Optional[str] = None) -> SearchResult:
        """Search cached articles first, then the upstream; results are never cached."""
        self.client.ensure_configured()
        if not query or not query.strip():
            raise ValueError("Search query is required")

        keyword = query.strip()
        lang = (language or DEFAULT_LANGUAGE).strip().lower()

        cached = self.cache.search_cached_news(keyword, lang)
        if cached:
            return SearchResult(total_results=len(cached), articles=cached, query=keyword, from_cache=True)

        try:
            response = self.client.everything(keyword, lang)
        except ConnectorError as exc:
            logger.warning("news.search_failed", extra={"query": keyword, "language": lang, "error": str(exc)})
            raise

        return SearchResult(
            status=response.status,
            total_results=response.total_results,
            articles=response.articles,
            query=keyword,
            from_cache=False,
        )

"""Time-windowed article cache backed by the relational store."""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from newscache.db.session import session_scope
from newscache.models.domain import Article, Category, PartitionKey
from newscache.repositories import articles as store
from newscache.utils.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]
SessionFactory = Callable[[], AbstractContextManager[Session]]

DEFAULT_TTL = timedelta(minutes=15)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NewsCache:
    """Serve freshness-bounded article lists per partition key.

    Entries are considered fresh while ``fetched_at > now - ttl``. A refresh
    replaces the whole partition; an empty partition reads as a miss, so a
    partition with no upstream articles is fetched again on every request.
    """

    def __init__(
        self,
        session_factory: SessionFactory = session_scope,
        *,
        ttl: timedelta = DEFAULT_TTL,
        search_limit: int = 20,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self.ttl = ttl
        self.search_limit = search_limit
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def get_cached_news(self, category: str | Category, country: str, language: str) -> Optional[List[Article]]:
        partition = PartitionKey(category=category, country=country, language=language)
        cutoff = self.now() - self.ttl
        try:
            with self._session_factory() as session:
                rows = store.find_fresh(session, partition, cutoff)
                articles = [store.to_article(r) for r in rows]
        except SQLAlchemyError:
            logger.exception("cache.read_failed", extra={"partition": partition.key})
            return None

        if articles:
            logger.info("cache.hit", extra={"partition": partition.key, "articles": len(articles)})
            return articles
        logger.info("cache.miss", extra={"partition": partition.key})
        return None

    def set_cached_news(
        self,
        articles: Sequence[Article],
        category: str | Category,
        country: str,
        language: str,
    ) -> bool:
        partition = PartitionKey(category=category, country=country, language=language)
        fetched_at = self.now()
        expires_at = fetched_at + self.ttl
        try:
            with self._session_factory() as session:
                stored = store.replace_partition(
                    session,
                    partition,
                    articles,
                    fetched_at=fetched_at,
                    expires_at=expires_at,
                )
        except SQLAlchemyError:
            logger.exception("cache.write_failed", extra={"partition": partition.key})
            return False

        logger.info(
            "cache.stored",
            extra={
                "partition": partition.key,
                "articles": len(articles),
                "stored": stored,
                "duplicates": len(articles) - stored,
            },
        )
        return True

    def search_cached_news(self, query: str, language: str) -> Optional[List[Article]]:
        cutoff = self.now() - self.ttl
        try:
            with self._session_factory() as session:
                rows = store.search_fresh(session, query, language, cutoff, limit=self.search_limit)
                articles = [store.to_article(r) for r in rows]
        except SQLAlchemyError:
            logger.exception("cache.search_failed", extra={"query": query, "language": language})
            return None

        if articles:
            logger.info("cache.search_hit", extra={"query": query, "language": language, "articles": len(articles)})
            return articles
        return None

    def clear_expired_cache(self) -> int:
        try:
            with self._session_factory() as session:
                removed = store.delete_expired(session, self.now())
        except SQLAlchemyError:
            logger.exception("cache.cleanup_failed")
            return 0
        logger.info("cache.expired_cleared", extra={"removed": removed})
        return removed

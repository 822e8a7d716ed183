from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from newscache.db.models import CachedArticle
from newscache.models.domain import Article, PartitionKey
from newscache.repositories.articles import count_partition
from newscache.services.cache import NewsCache


def _articles(prefix: str, n: int = 2, *, base: str = "https://ex.com") -> List[Article]:
    return [
        Article(
            source={"id": "wire", "name": "Wire"},
            title=f"{prefix} headline {i}",
            description=f"{prefix} description {i}",
            url=f"{base}/{prefix}/{i}",
            publishedAt=datetime(2025, 3, 1, 8, tzinfo=timezone.utc) + timedelta(minutes=i),
            content=f"{prefix} body {i}",
        )
        for i in range(n)
    ]


@pytest.fixture()
def cache(session_factory, clock) -> NewsCache:
    return NewsCache(session_factory, ttl=timedelta(minutes=15), clock=clock)


def test_read_after_write_is_hit_and_newest_first(cache: NewsCache):
    assert cache.get_cached_news("technology", "us", "en") is None

    assert cache.set_cached_news(_articles("tech", 3), "technology", "us", "en") is True
    cached = cache.get_cached_news("technology", "us", "en")

    assert cached is not None
    assert [a.title for a in cached] == ["tech headline 2", "tech headline 1", "tech headline 0"]
    assert cached[0].source.name == "Wire"


def test_entry_becomes_stale_once_ttl_has_elapsed(cache: NewsCache, clock):
    cache.set_cached_news(_articles("tech"), "technology", "us", "en")

    clock.advance(minutes=14, seconds=59)
    assert cache.get_cached_news("technology", "us", "en") is not None

    clock.advance(seconds=1)
    assert cache.get_cached_news("technology", "us", "en") is None


def test_second_write_replaces_first_batch(cache: NewsCache, session_factory):
    cache.set_cached_news(_articles("first", 3), "sports", "gb", "en")
    cache.set_cached_news(_articles("second", 2), "sports", "gb", "en")

    cached = cache.get_cached_news("sports", "gb", "en")
    assert cached is not None
    assert {a.title for a in cached} == {"second headline 0", "second headline 1"}
    with session_factory() as session:
        assert count_partition(session, PartitionKey(category="sports", country="gb", language="en")) == 2


def test_partitions_are_isolated(cache: NewsCache):
    same_titles = _articles("same", 1)
    cache.set_cached_news(same_titles, "business", "us", "en")

    assert cache.get_cached_news("business", "us", "en") is not None
    assert cache.get_cached_news("business", "gb", "en") is None
    assert cache.get_cached_news("business", "us", "fr") is None
    assert cache.get_cached_news("health", "us", "en") is None

    # identical titles under another partition stay separate rows
    cache.set_cached_news(_articles("same", 1, base="https://other.com"), "health", "us", "en")
    health = cache.get_cached_news("health", "us", "en")
    assert health is not None and health[0].url.startswith("https://other.com")
    business = cache.get_cached_news("business", "us", "en")
    assert business is not None and business[0].url.startswith("https://ex.com")


def test_duplicate_urls_within_batch_are_dropped(cache: NewsCache, session_factory):
    batch = _articles("dup", 1) + [
        Article(title="Another title", url="https://ex.com/dup/0", publishedAt=datetime(2025, 3, 1, tzinfo=timezone.utc))
    ]

    assert cache.set_cached_news(batch, "science", "us", "en") is True

    with session_factory() as session:
        rows = session.execute(select(CachedArticle).where(CachedArticle.url == "https://ex.com/dup/0")).scalars().all()
        assert len(rows) == 1
        assert rows[0].title == "dup headline 0"


def test_url_held_fresh_by_another_partition_is_skipped_not_fatal(cache: NewsCache, session_factory):
    shared = _articles("shared", 1)
    cache.set_cached_news(shared, "general", "us", "en")

    assert cache.set_cached_news(shared + _articles("tech", 1), "technology", "us", "en") is True

    tech = cache.get_cached_news("technology", "us", "en")
    assert tech is not None
    assert [a.url for a in tech] == ["https://ex.com/tech/0"]
    general = cache.get_cached_news("general", "us", "en")
    assert general is not None and general[0].url == shared[0].url


def test_stale_copy_in_another_partition_does_not_shadow_new_batch(cache: NewsCache, clock, session_factory):
    shared = _articles("shared", 1)
    cache.set_cached_news(shared, "general", "us", "en")
    clock.advance(minutes=20)

    assert cache.set_cached_news(shared, "technology", "us", "en") is True

    tech = cache.get_cached_news("technology", "us", "en")
    assert tech is not None and tech[0].url == shared[0].url
    with session_factory() as session:
        assert count_partition(session, PartitionKey(category="general", country="us", language="en")) == 0


def test_clear_expired_removes_only_expired_entries(cache: NewsCache, clock):
    cache.set_cached_news(_articles("old"), "general", "us", "en")
    clock.advance(minutes=10)
    cache.set_cached_news(_articles("new"), "general", "de", "de")

    clock.advance(minutes=6)
    removed = cache.clear_expired_cache()

    assert removed == 2
    assert cache.get_cached_news("general", "us", "en") is None
    assert cache.get_cached_news("general", "de", "de") is not None


def test_search_is_case_insensitive_and_language_bound(cache: NewsCache, clock):
    cache.set_cached_news(_articles("Climate", 2), "science", "us", "en")
    cache.set_cached_news(_articles("climate-fr", 1), "science", "fr", "fr")

    hits = cache.search_cached_news("CLIMATE", "en")
    assert hits is not None
    assert len(hits) == 2
    assert all("Climate" in a.title for a in hits)

    assert cache.search_cached_news("nothing-like-this", "en") is None

    clock.advance(minutes=15)
    assert cache.search_cached_news("climate", "en") is None


def test_search_is_capped(session_factory, clock):
    cache = NewsCache(session_factory, clock=clock, search_limit=20)
    cache.set_cached_news(_articles("market", 25), "business", "us", "en")

    hits = cache.search_cached_news("market", "en")

    assert hits is not None and len(hits) == 20


def test_storage_errors_degrade_gracefully(clock):
    class _Broken:
        def __enter__(self):
            raise OperationalError("SELECT 1", {}, Exception("db down"))

        def __exit__(self, *exc):
            return False

    cache = NewsCache(lambda: _Broken(), clock=clock)

    assert cache.get_cached_news("general", "us", "en") is None
    assert cache.search_cached_news("x", "en") is None
    assert cache.set_cached_news(_articles("a"), "general", "us", "en") is False
    assert cache.clear_expired_cache() == 0

"""Repository functions for the cached article store."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Sequence

from sqlalchemy import delete, func, insert, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from newscache.db.models import CachedArticle
from newscache.models.domain import Article, ArticleSource, PartitionKey


def _partition_filter(partition: PartitionKey):
    return (
        CachedArticle.category == partition.category.value,
        CachedArticle.country == partition.country,
        CachedArticle.language == partition.language,
    )


def delete_stale_urls(session: Session, urls: Iterable[str], now: datetime) -> int:
    """Remove rows for ``urls`` that are no longer fresh, whatever their partition."""
    stmt = delete(CachedArticle).where(CachedArticle.url.in_(list(urls)), CachedArticle.expires_at <= now)
    result = session.execute(stmt)
    return int(result.rowcount or 0)


def delete_partition(session: Session, partition: PartitionKey) -> int:
    result = session.execute(delete(CachedArticle).where(*_partition_filter(partition)))
    return int(result.rowcount or 0)


def _insert_ignoring_url_conflict(session: Session, values: Dict[str, Any]) -> bool:
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(CachedArticle).values(**values).on_conflict_do_nothing(index_elements=["url"])
    elif dialect == "sqlite":
        stmt = sqlite_insert(CachedArticle).values(**values).on_conflict_do_nothing(index_elements=["url"])
    else:
        try:
            with session.begin_nested():
                session.execute(insert(CachedArticle).values(**values))
        except IntegrityError:
            return False
        return True
    return bool(session.execute(stmt).rowcount)


def insert_articles(
    session: Session,
    partition: PartitionKey,
    articles: Sequence[Article],
    *,
    fetched_at: datetime,
    expires_at: datetime,
) -> int:
    """Insert a batch, skipping URLs already stored or repeated within the batch.

    Conflicts are resolved per row by the database, so a URL committed by a
    concurrent writer only drops that row and never the rest of the batch.
    """
    seen: set[str] = set()
    count = 0
    for article in articles:
        if article.url in seen:
            continue
        seen.add(article.url)
        values = dict(
            id=uuid.uuid4(),
            source_id=article.source.id,
            source_name=article.source.name,
            author=article.author,
            title=article.title,
            description=article.description,
            url=article.url,
            url_to_image=article.url_to_image,
            published_at=article.published_at,
            content=article.content,
            category=partition.category.value,
            country=partition.country,
            language=partition.language,
            fetched_at=fetched_at,
            expires_at=expires_at,
        )
        if _insert_ignoring_url_conflict(session, values):
            count += 1
    return count


def replace_partition(
    session: Session,
    partition: PartitionKey,
    articles: Sequence[Article],
    *,
    fetched_at: datetime,
    expires_at: datetime,
) -> int:
    """Drop every stored row of ``partition`` and insert ``articles`` in its place.

    Expired copies of the batch's URLs held by other partitions are dropped
    first so they cannot shadow the fresh batch.
    """
    delete_partition(session, partition)
    delete_stale_urls(session, (a.url for a in articles), fetched_at)
    return insert_articles(session, partition, articles, fetched_at=fetched_at, expires_at=expires_at)


def find_fresh(session: Session, partition: PartitionKey, cutoff: datetime) -> List[CachedArticle]:
    stmt = (
        select(CachedArticle)
        .where(*_partition_filter(partition), CachedArticle.fetched_at > cutoff)
        .order_by(CachedArticle.published_at.desc())
    )
    return list(session.execute(stmt).scalars().all())


def search_fresh(
    session: Session,
    query: str,
    language: str,
    cutoff: datetime,
    *,
    limit: int = 20,
) -> List[CachedArticle]:
    pattern = f"%{_escape_like(query.lower())}%"
    stmt = (
        select(CachedArticle)
        .where(
            CachedArticle.language == language,
            CachedArticle.fetched_at > cutoff,
            or_(
                func.lower(CachedArticle.title).like(pattern, escape="\\"),
                func.lower(CachedArticle.description).like(pattern, escape="\\"),
                func.lower(CachedArticle.content).like(pattern, escape="\\"),
            ),
        )
        .order_by(CachedArticle.published_at.desc())
        .limit(limit)
    )
    return list(session.execute(stmt).scalars().all())


def delete_expired(session: Session, now: datetime) -> int:
    result = session.execute(delete(CachedArticle).where(CachedArticle.expires_at < now))
    return int(result.rowcount or 0)


def count_partition(session: Session, partition: PartitionKey) -> int:
    stmt = select(func.count()).select_from(CachedArticle).where(*_partition_filter(partition))
    return int(session.execute(stmt).scalar_one())


def to_article(row: CachedArticle) -> Article:
    return Article(
        source=ArticleSource(id=row.source_id, name=row.source_name),
        author=row.author,
        title=row.title,
        description=row.description,
        url=row.url,
        url_to_image=row.url_to_image,
        published_at=row.published_at,
        content=row.content,
    )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

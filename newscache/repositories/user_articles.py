"""Per-user read and favorite tracking."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from newscache.db.models import UserArticle


class ArticleRef(BaseModel):
    url: str
    title: Optional[str] = None
    source: Optional[str] = None
    image: Optional[str] = None


class UserArticleView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    article_url: str
    article_title: Optional[str] = None
    article_source: Optional[str] = None
    article_image: Optional[str] = None
    is_read: bool
    is_favorite: bool
    read_at: Optional[datetime] = None
    favorited_at: Optional[datetime] = None


class Page(BaseModel):
    items: List[UserArticleView]
    current_page: int
    total_pages: int
    total_items: int
    has_more: bool


def _require_url(url: Optional[str]) -> str:
    if not url or not url.strip():
        raise ValueError("Article URL is required")
    return url.strip()


def _get_entry(session: Session, user_id: str, url: str) -> Optional[UserArticle]:
    stmt = select(UserArticle).where(UserArticle.user_id == user_id, UserArticle.article_url == url)
    return session.execute(stmt).scalars().first()


def _upsert(session: Session, user_id: str, article: ArticleRef) -> UserArticle:
    url = _require_url(article.url)
    entry = _get_entry(session, user_id, url)
    if entry is None:
        entry = UserArticle(user_id=user_id, article_url=url, is_read=False, is_favorite=False)
        session.add(entry)
    if article.title is not None:
        entry.article_title = article.title
    if article.source is not None:
        entry.article_source = article.source
    if article.image is not None:
        entry.article_image = article.image
    return entry


def mark_as_read(session: Session, user_id: str, article: ArticleRef) -> UserArticle:
    entry = _upsert(session, user_id, article)
    entry.is_read = True
    entry.read_at = datetime.now(timezone.utc)
    session.flush()
    return entry


def mark_as_favorite(session: Session, user_id: str, article: ArticleRef) -> UserArticle:
    entry = _upsert(session, user_id, article)
    entry.is_favorite = True
    entry.favorited_at = datetime.now(timezone.utc)
    session.flush()
    return entry


def remove_favorite(session: Session, user_id: str, url: str) -> UserArticle:
    entry = _get_entry(session, user_id, _require_url(url))
    if entry is None:
        raise LookupError("Article not found in your collection")
    entry.is_favorite = False
    entry.favorited_at = None
    session.flush()
    return entry


def _paginate(session: Session, user_id: str, flag, order_col, page: int, limit: int) -> Page:
    page = max(page, 1)
    limit = max(limit, 1)
    offset = (page - 1) * limit
    where = (UserArticle.user_id == user_id, flag.is_(True))
    rows = (
        session.execute(select(UserArticle).where(*where).order_by(order_col.desc()).offset(offset).limit(limit))
        .scalars()
        .all()
    )
    total = int(session.execute(select(func.count()).select_from(UserArticle).where(*where)).scalar_one())
    return Page(
        items=[UserArticleView.model_validate(r) for r in rows],
        current_page=page,
        total_pages=math.ceil(total / limit),
        total_items=total,
        has_more=offset + len(rows) < total,
    )


def list_read(session: Session, user_id: str, page: int = 1, limit: int = 20) -> Page:
    return _paginate(session, user_id, UserArticle.is_read, UserArticle.read_at, page, limit)


def list_favorites(session: Session, user_id: str, page: int = 1, limit: int = 20) -> Page:
    return _paginate(session, user_id, UserArticle.is_favorite, UserArticle.favorited_at, page, limit)

"""Database utilities for the news cache."""

from .models import Base, CachedArticle, UserArticle, UserPreference  # noqa: F401
from .session import ensure_schema, get_engine, get_sessionmaker, session_scope  # noqa: F401

__all__ = [
    "Base",
    "CachedArticle",
    "UserArticle",
    "UserPreference",
    "ensure_schema",
    "get_engine",
    "get_sessionmaker",
    "session_scope",
]

"""Domain DTOs for the news cache."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(str, Enum):
    BUSINESS = "business"
    ENTERTAINMENT = "entertainment"
    GENERAL = "general"
    HEALTH = "health"
    SCIENCE = "science"
    SPORTS = "sports"
    TECHNOLOGY = "technology"


DEFAULT_CATEGORY = Category.GENERAL.value
DEFAULT_COUNTRY = "us"
DEFAULT_LANGUAGE = "en"


def _normalize_code(value: str) -> str:
    code = value.strip().lower()
    if len(code) != 2 or not code.isalpha():
        raise ValueError(f"expected a 2-letter code, got {value!r}")
    return code


class PartitionKey(BaseModel):
    """The (category, country, language) triple a headline query is keyed by."""

    model_config = ConfigDict(frozen=True)

    category: Category
    country: str
    language: str

    @field_validator("country", "language")
    @classmethod
    def _code(cls, value: str) -> str:
        return _normalize_code(value)

    @property
    def key(self) -> str:
        return f"{self.category.value}-{self.country}-{self.language}"

    def __str__(self) -> str:  # pragma: no cover - logging helper
        return self.key


class ArticleSource(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None


class Article(BaseModel):
    """A headline as returned by the upstream and served from the cache.

    Field aliases follow the upstream's camelCase payload so raw items can be
    validated directly.
    """

    model_config = ConfigDict(populate_by_name=True)

    source: ArticleSource = Field(default_factory=ArticleSource)
    author: Optional[str] = None
    title: str
    description: Optional[str] = None
    url: str
    url_to_image: Optional[str] = Field(None, alias="urlToImage")
    published_at: Optional[datetime] = Field(None, alias="publishedAt")
    content: Optional[str] = None

    @field_validator("source", mode="before")
    @classmethod
    def _source(cls, value):
        if value is None:
            return ArticleSource()
        if isinstance(value, str):
            return ArticleSource(name=value)
        return value

    @field_validator("title")
    @classmethod
    def _title(cls, value: str) -> str:
        return value.strip()

    @field_validator("url")
    @classmethod
    def _url(cls, value: str) -> str:
        url = value.strip()
        if not url:
            raise ValueError("article url must not be blank")
        return url


class PreferenceRecord(BaseModel):
    """A user's news preferences; omitted fields fall back to the defaults."""

    categories: List[Category] = Field(default_factory=lambda: [Category.GENERAL])
    country: str = DEFAULT_COUNTRY
    language: str = DEFAULT_LANGUAGE

    @field_validator("categories", mode="before")
    @classmethod
    def _categories(cls, value):
        if not value:
            return [Category.GENERAL]
        return value

    @field_validator("country", mode="before")
    @classmethod
    def _country(cls, value):
        return _normalize_code(value) if value else DEFAULT_COUNTRY

    @field_validator("language", mode="before")
    @classmethod
    def _language(cls, value):
        return _normalize_code(value) if value else DEFAULT_LANGUAGE

    def primary_partition(self) -> PartitionKey:
        return PartitionKey(category=self.categories[0], country=self.country, language=self.language)


class NewsResult(BaseModel):
    status: str = "ok"
    total_results: int
    articles: List[Article]
    from_cache: bool
    partition: PartitionKey


class SearchResult(BaseModel):
    status: str = "ok"
    total_results: int
    articles: List[Article]
    query: str
    from_cache: bool


class RefreshSummary(BaseModel):
    """Outcome of one refresh tick."""

    partitions: int = 0
    succeeded: int = 0
    failed: int = 0
    expired_removed: int = 0
    started_at: datetime
    finished_at: Optional[datetime] = None

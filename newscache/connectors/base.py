"""Upstream connector errors and response model."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from newscache.models.domain import Article
from newscache.utils.logging import get_logger

logger = get_logger(__name__)


class ConnectorError(Exception):
    """Base connector error."""


class TransientError(ConnectorError):
    """Retryable error (e.g., rate limit, network hiccup)."""


class PermanentError(ConnectorError):
    """Non-retryable error (e.g., 4xx semantics)."""


class ConfigurationError(PermanentError):
    """The upstream credential is not configured."""

    def __init__(self, message: str = "News API key is not configured") -> None:
        super().__init__(message)


class InvalidCredentialError(PermanentError):
    """The upstream rejected the credential (401)."""

    def __init__(self, message: str = "Invalid News API key. Please check your configuration.") -> None:
        super().__init__(message)


class RateLimitedError(TransientError):
    """The upstream rate limit was hit (429); try again later."""

    def __init__(self, message: str = "News API rate limit exceeded. Please try again later.") -> None:
        super().__init__(message)


class NoResponseError(TransientError):
    """Network failure or timeout before the upstream answered."""

    def __init__(self, message: str = "No response from News API. Please check your internet connection.") -> None:
        super().__init__(message)


class UpstreamError(ConnectorError):
    """Any other upstream failure, including a ``status: "error"`` payload."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NewsAPIResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "ok"
    total_results: int = Field(0, alias="totalResults")
    articles: List[Article] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "NewsAPIResponse":
        """Build a response, dropping upstream items that fail validation."""
        items = data.get("articles") or []
        if not isinstance(items, list):
            raise UpstreamError("News API Error: unexpected response payload")
        articles: List[Article] = []
        for item in items:
            try:
                articles.append(Article.model_validate(item))
            except ValidationError:
                logger.debug("news_api.article_skipped", extra={"url": item.get("url") if isinstance(item, dict) else None})
        total = data.get("totalResults")
        if not isinstance(total, int):
            total = None
        return cls(
            status=str(data.get("status") or "ok"),
            total_results=int(total) if total is not None else len(articles),
            articles=articles,
        )

"""News API client (provider-injected for tests/offline)."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import httpx

from newscache.models.domain import PartitionKey
from newscache.settings import Settings, get_settings
from newscache.utils.logging import get_logger

from .base import (
    ConfigurationError,
    InvalidCredentialError,
    NewsAPIResponse,
    NoResponseError,
    RateLimitedError,
    UpstreamError,
)

logger = get_logger(__name__)

# (endpoint name, query params) -> raw JSON payload
ProviderFn = Callable[[str, Dict[str, Any]], Dict[str, Any]]

TOP_HEADLINES = "top-headlines"
EVERYTHING = "everything"


class NewsAPIClient:
    """Client for the NewsAPI ``top-headlines`` and ``everything`` endpoints.

    - with a provider: offline mode, the provider returns the JSON payload
    - without one: real HTTP call through httpx
    """

    source = "news_api"

    def __init__(self, settings: Settings | None = None, provider: Optional[ProviderFn] = None):
        self._settings = settings
        self._provider = provider

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    @property
    def configured(self) -> bool:
        return self._provider is not None or bool(self.settings.news_api_key)

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError()

    def top_headlines(self, partition: PartitionKey) -> NewsAPIResponse:
        params = {
            "country": partition.country,
            "language": partition.language,
            "category": partition.category.value,
            "pageSize": int(self.settings.news_api_page_size),
        }
        return self._request(TOP_HEADLINES, params)

    def everything(self, query: str, language: str) -> NewsAPIResponse:
        params = {
            "q": query,
            "language": language,
            "sortBy": "publishedAt",
            "pageSize": int(self.settings.news_api_page_size),
        }
        return self._request(EVERYTHING, params)

    def _request(self, endpoint: str, params: Dict[str, Any]) -> NewsAPIResponse:
        self.ensure_configured()
        if self._provider is not None:
            data = self._provider(endpoint, params)
        else:
            data = self._get(endpoint, params)

        if not isinstance(data, dict):
            raise UpstreamError("News API Error: unexpected response payload")
        if data.get("status") == "error":
            raise UpstreamError(f"News API Error: {data.get('message') or 'News API returned an error'}")
        response = NewsAPIResponse.from_payload(data)
        logger.debug(
            "news_api.fetched",
            extra={"endpoint": endpoint, "articles": len(response.articles), "total": response.total_results},
        )
        return response

    def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        cfg = self.settings
        if cfg.news_api_key is None:
            raise ConfigurationError()
        headers = {"X-Api-Key": cfg.news_api_key.get_secret_value()}
        url = f"{cfg.news_api_base_url.rstrip('/')}/{endpoint}"
        try:
            resp = httpx.get(
                url,
                headers=headers,
                params=params,
                timeout=float(cfg.news_api_timeout_seconds),
            )
        except httpx.TimeoutException as exc:
            raise NoResponseError() from exc
        except httpx.HTTPError as exc:
            raise NoResponseError() from exc

        if resp.status_code == 401:
            raise InvalidCredentialError()
        if resp.status_code == 429:
            raise RateLimitedError()
        if resp.status_code >= 400:
            raise UpstreamError(f"News API Error: {_error_message(resp)}", status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError("News API Error: response is not valid JSON", status_code=resp.status_code) from exc


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return "Failed to fetch news"
    return str(data.get("message") or "Failed to fetch news") if isinstance(data, dict) else "Failed to fetch news"

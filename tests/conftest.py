"""
Shared fixtures and helpers for the Newsdesk tests.

NewsAPI is never contacted: the client is given an httpx.MockTransport whose
handler answers from the test.
"""
from typing import Callable, List, Optional

import httpx
import pytest

from newsdesk.core.config import Settings
from newsdesk.services.news import NewsService
from newsdesk.services.newsapi_client import NewsApiClient
from newsdesk.utils.cache import CacheService, MemoryCache


def raw_article(title: Optional[str] = "Sample headline", **overrides) -> dict:
    """A NewsAPI article record as it appears on the wire."""
    record = {
        "source": {"id": "sample-source", "name": "Sample Source"},
        "author": "Jane Reporter",
        "title": title,
        "description": "A short description.",
        "url": f"https://example.com/{(title or 'untitled').replace(' ', '-').lower()}",
        "urlToImage": "https://example.com/image.jpg",
        "publishedAt": "2024-05-01T12:00:00Z",
        "content": "Body text",
    }
    record.update(overrides)
    return record


def articles_body(titles: List[str], total: Optional[int] = None) -> dict:
    return {
        "status": "ok",
        "totalResults": len(titles) if total is None else total,
        "articles": [raw_article(t) for t in titles],
    }


def error_body(code: str, message: str = "error") -> dict:
    return {"status": "error", "code": code, "message": message}


class FakeNewsApi:
    """
    Records every request and answers with the handler's response.

    handler(request) -> httpx.Response
    """

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def params(self, index: int) -> dict:
        return dict(self.requests[index].url.params)

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


class RecordingSleep:
    """Stand-in for asyncio.sleep that only records the delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        NEWSAPI_KEY="test-key",
        NEWSAPI_BASE_URL="https://newsapi.test/v2/",
        LOG_FILE="",
        REDIS_URL=None,
        CACHE_DURATION_MINUTES=5,
        SOURCES_CACHE_MULTIPLIER=6,
        RETRY_COUNT=3,
        RETRY_DELAY_SECONDS=2.0,
        CIRCUIT_BREAKER_FAILURE_THRESHOLD=5,
        CIRCUIT_BREAKER_RESET_SECONDS=30.0,
        HEADLINE_MIN_RESULTS_TOP=3,
        HEADLINE_MIN_RESULTS_SOURCES=1,
    )


@pytest.fixture
def make_service(test_settings):
    """
    Factory: make_service(handler) -> (NewsService, FakeNewsApi)

    The service uses a private in-process cache and a recording sleep.
    """

    def factory(handler, settings: Optional[Settings] = None, **client_kwargs):
        settings = settings or test_settings
        upstream = FakeNewsApi(handler)
        client_kwargs.setdefault("sleep", RecordingSleep())
        client = NewsApiClient.from_settings(settings, transport=upstream.transport, **client_kwargs)
        service = NewsService(
            client=client,
            cache=CacheService(memory=MemoryCache(), use_redis=False),
            settings=settings,
        )
        return service, upstream

    return factory

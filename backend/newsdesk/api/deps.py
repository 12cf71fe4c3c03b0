"""
Dependency injection

The NewsService (and the httpx pool behind it) is created once in the
application lifespan and stored on app.state.
"""
from fastapi import Request

from newsdesk.core.config import get_settings
from newsdesk.services.news import NewsService
from newsdesk.services.newsapi_client import NewsApiClient
from newsdesk.utils.cache import CacheService


def build_news_service() -> NewsService:
    settings = get_settings()
    return NewsService(
        client=NewsApiClient.from_settings(settings),
        cache=CacheService(),
        settings=settings,
    )


def get_news_service(request: Request) -> NewsService:
    """
    NewsService dependency

    Falls back to creating one when the lifespan did not run (e.g. a bare
    TestClient without a `with` block).
    """
    service = getattr(request.app.state, "news_service", None)
    if service is None:
        service = build_news_service()
        request.app.state.news_service = service
    return service

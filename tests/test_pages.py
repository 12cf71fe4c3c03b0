"""
Route tests for the HTML pages, the JSON API and the error handlers.

The news service is replaced through dependency_overrides; the lifespan is
not run (no `with TestClient(...)` block).
"""
import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from newsdesk.api.deps import get_news_service
from newsdesk.core.config import settings
from newsdesk.core.exceptions import (
    InvalidApiKeyError,
    NewsApiError,
    RateLimitExceededError,
    UpstreamUnavailableError,
)
from newsdesk.main import app, describe_error
from newsdesk.schemas.news import Article, ArticlePage, SourceDto, SourceList


def article(title="Breaking story", **kwargs):
    kwargs.setdefault("url", "https://example.com/story")
    kwargs.setdefault("source_name", "Example News")
    kwargs.setdefault("published_at", datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
    return Article(title=title, **kwargs)


@pytest.fixture
def service():
    mock = MagicMock()
    mock.get_headlines_by_country = AsyncMock(return_value=ArticlePage(
        articles=[article("Headline one"), article("Headline two")],
        total_results=30,
        strategy="top-headlines",
    ))
    mock.search_everything = AsyncMock(return_value=ArticlePage(articles=[article("Search hit")], total_results=1))
    mock.get_sources = AsyncMock(return_value=SourceList(sources=[
        SourceDto(id="bbc-news", name="BBC News", category="general", language="en", country="gb"),
    ]))
    mock.get_related_articles = AsyncMock(return_value=[article("Related piece")])
    mock.get_top_headlines = AsyncMock(return_value=ArticlePage(articles=[article()], total_results=1))
    return mock


@pytest.fixture
def client(service):
    app.dependency_overrides[get_news_service] = lambda: service
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


class TestHeadlinesPage:
    """Test /news."""

    def test_root_redirects(self, client):
        response = client.get("/", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/news"

    def test_renders_articles(self, client, service):
        response = client.get("/news?country=fr&category=technology&page=2")

        assert response.status_code == 200
        assert "Headline one" in response.text
        assert "France" in response.text
        service.get_headlines_by_country.assert_awaited_once_with("fr", "technology", 2, 12)

    def test_page_is_clamped(self, client, service):
        client.get("/news?page=0")
        assert service.get_headlines_by_country.await_args.args[2] == 1

    def test_unknown_country_shows_code(self, client):
        response = client.get("/news?country=zz")
        assert "ZZ" in response.text

    def test_error_is_shown_inline(self, client, service):
        service.get_headlines_by_country.side_effect = RuntimeError("boom")

        response = client.get("/news")

        assert response.status_code == 200
        assert "Could not load headlines right now. Please try again shortly." in response.text

    def test_pagination_link(self, client):
        response = client.get("/news?country=us")
        assert "page=2" in response.text


class TestSearchPage:
    """Test /news/search."""

    def test_empty_query_renders_form_only(self, client, service):
        response = client.get("/news/search")

        assert response.status_code == 200
        service.search_everything.assert_not_awaited()
        assert "BBC News" in response.text

    def test_search_passes_parameters(self, client, service):
        response = client.get(
            "/news/search?q=climate&sort_by=relevancy&language=en&source=bbc-news&from=2024-05-01&to=2024-05-09"
        )

        assert response.status_code == 200
        assert "Search hit" in response.text
        query = service.search_everything.await_args.args[0]
        assert query.query == "climate"
        assert query.sources == "bbc-news"
        assert query.from_date == "2024-05-01"
        assert query.to_date == "2024-05-09"

    def test_source_dropdown_failure_does_not_break_search(self, client, service):
        service.get_sources.side_effect = RateLimitExceededError()

        response = client.get("/news/search?q=climate")

        assert response.status_code == 200
        assert "Search hit" in response.text

    def test_search_error_inline(self, client, service):
        service.search_everything.side_effect = NewsApiError("bad")

        response = client.get("/news/search?q=climate")

        assert "Search failed. Please try different keywords." in response.text


class TestDetailPage:
    """Test /news/detail."""

    def test_blank_url_redirects(self, client):
        response = client.get("/news/detail", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/news"

    def test_renders_article_and_related(self, client, service):
        response = client.get("/news/detail", params={
            "url": "https://example.com/a",
            "title": "Markets rally today",
            "source": "Reuters",
            "published_at": "2024-05-01T12:00:00Z",
        })

        assert response.status_code == 200
        assert "Markets rally today" in response.text
        assert "Reuters" in response.text
        assert "Related piece" in response.text
        service.get_related_articles.assert_awaited_once_with("Markets rally today")


class TestSourcesPage:
    """Test /news/sources."""

    def test_lists_sources(self, client, service):
        response = client.get("/news/sources?category=general&language=")

        assert response.status_code == 200
        assert "BBC News" in response.text
        service.get_sources.assert_awaited_once_with("general", None, None)

    def test_error_inline(self, client, service):
        service.get_sources.side_effect = UpstreamUnavailableError()

        response = client.get("/news/sources")

        assert "Could not load sources right now." in response.text


class TestJsonApi:
    """Test /api/v1/news."""

    def test_headlines(self, client):
        response = client.get("/api/v1/news/headlines?country=us")

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["meta"]["strategy"] == "top-headlines"
        assert body["meta"]["total"] == 30
        assert [a["title"] for a in body["data"]] == ["Headline one", "Headline two"]

    def test_page_size_validation(self, client):
        assert client.get("/api/v1/news/search?q=a&page_size=500").status_code == 422
        assert client.get("/api/v1/news/search?q=a&page=0").status_code == 422

    def test_sources(self, client):
        body = client.get("/api/v1/news/sources").json()
        assert body["data"][0]["id"] == "bbc-news"

    def test_api_error_is_json(self, client, service):
        service.get_top_headlines.side_effect = RateLimitExceededError()

        response = client.get("/api/v1/news/top-headlines")

        assert response.status_code == 429
        assert response.json()["detail"]["title"] == "Rate Limit Exceeded"
        assert response.headers["X-Request-ID"]


class TestErrorPages:
    """Test the application-level error handlers."""

    def test_invalid_key_page(self, client, service):
        service.get_related_articles.side_effect = InvalidApiKeyError()

        response = client.get("/news/detail?url=https://example.com/a&title=Something")

        assert response.status_code == 401
        assert "Invalid API Key" in response.text
        assert "Request ID" in response.text

    def test_unexpected_error_hides_details(self, client, service):
        service.get_related_articles.side_effect = ValueError("secret internals")

        response = client.get("/news/detail?url=https://example.com/a&title=Something")

        assert response.status_code == 500
        assert "Unexpected Error" in response.text
        assert "secret internals" not in response.text

    def test_not_found_page(self, client):
        response = client.get("/no-such-page")
        assert response.status_code == 404
        assert "Page Not Found" in response.text

    @pytest.mark.parametrize("exc,status,title", [
        (InvalidApiKeyError(), 401, "Invalid API Key"),
        (RateLimitExceededError(), 429, "Rate Limit Exceeded"),
        (NewsApiError("upstream said no", status_code=400), 400, "News API Error"),
        (NewsApiError("no status"), 500, "News API Error"),
        (UpstreamUnavailableError(), 503, "News API Error"),
        (KeyError("x"), 500, "Unexpected Error"),
    ])
    def test_describe_error(self, exc, status, title):
        assert describe_error(exc)[:2] == (status, title)


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


class TestRequestTimeout:
    """Test the 504 answer of the request timeout."""

    @pytest.fixture
    def slow_service(self, service, monkeypatch):
        monkeypatch.setattr(settings, "REQUEST_TIMEOUT", 0.05)

        async def stall(*args, **kwargs):
            await asyncio.sleep(5)

        service.get_headlines_by_country.side_effect = stall
        service.get_top_headlines.side_effect = stall
        return service

    def test_page_timeout_renders_error_page(self, client, slow_service):
        response = client.get("/news")

        assert response.status_code == 504
        assert "Gateway Timeout" in response.text
        assert response.headers["content-type"].startswith("text/html")
        assert response.headers["X-Request-ID"]

    def test_api_timeout_is_json(self, client, slow_service):
        response = client.get("/api/v1/news/top-headlines")

        assert response.status_code == 504
        assert response.json()["detail"]["title"] == "Gateway Timeout"

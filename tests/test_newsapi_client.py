"""
Unit tests for the NewsAPI client: error mapping, retries and the breaker.
"""
import asyncio

import httpx
import pytest

from conftest import FakeNewsApi, RecordingSleep, articles_body, error_body
from newsdesk.core.exceptions import (
    BadResponseError,
    CircuitOpenError,
    InvalidApiKeyError,
    NewsApiError,
    RateLimitExceededError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from newsdesk.core.resilience import CircuitBreaker, CircuitState
from newsdesk.schemas.news import NewsApiResponse, SourcesApiResponse
from newsdesk.services.newsapi_client import NewsApiClient


def make_client(handler, retry_count=3, breaker=None):
    upstream = FakeNewsApi(handler)
    sleep = RecordingSleep()
    client = NewsApiClient(
        base_url="https://newsapi.test/v2/",
        api_key="test-key",
        retry_count=retry_count,
        retry_delay=2.0,
        breaker=breaker or CircuitBreaker(failure_threshold=5, reset_timeout=30),
        transport=upstream.transport,
        sleep=sleep,
    )
    return client, upstream, sleep


def fetch(client, path="top-headlines", params=None, model=NewsApiResponse):
    async def scenario():
        try:
            return await client.fetch(path, params or {"country": "us"}, model)
        finally:
            await client.close()

    return asyncio.run(scenario())


class TestSuccess:
    """Test successful responses."""

    def test_parses_articles(self):
        client, upstream, _ = make_client(lambda r: httpx.Response(200, json=articles_body(["A", "B"], total=40)))

        result = fetch(client)

        assert result.total_results == 40
        assert [a.title for a in result.articles] == ["A", "B"]
        assert result.articles[0].url_to_image == "https://example.com/image.jpg"

    def test_sends_key_header_and_params(self):
        client, upstream, _ = make_client(lambda r: httpx.Response(200, json=articles_body([])))

        fetch(client, params={"country": "fr", "category": "technology"})

        request = upstream.requests[0]
        assert request.headers["X-Api-Key"] == "test-key"
        assert request.url.path == "/v2/top-headlines"
        assert upstream.params(0) == {"country": "fr", "category": "technology"}

    def test_null_articles_become_empty_list(self):
        body = {"status": "ok", "totalResults": 0, "articles": None}
        client, _, _ = make_client(lambda r: httpx.Response(200, json=body))

        assert fetch(client).articles == []

    def test_garbage_published_at_is_tolerated(self):
        body = articles_body(["A"])
        body["articles"][0]["publishedAt"] = "not a date"
        client, _, _ = make_client(lambda r: httpx.Response(200, json=body))

        assert fetch(client).articles[0].published_at is None

    def test_sources_model(self):
        body = {"status": "ok", "sources": [{"id": "bbc-news", "name": "BBC News", "country": "gb"}]}
        client, _, _ = make_client(lambda r: httpx.Response(200, json=body))

        result = fetch(client, path="top-headlines/sources", params={}, model=SourcesApiResponse)

        assert result.sources[0].name == "BBC News"


class TestErrorMapping:
    """Test mapping of upstream failures to typed errors."""

    def test_401_is_invalid_key(self):
        client, upstream, _ = make_client(lambda r: httpx.Response(401, json=error_body("apiKeyInvalid")))

        with pytest.raises(InvalidApiKeyError):
            fetch(client)
        assert len(upstream.requests) == 1

    def test_429_is_rate_limited_after_retries(self):
        client, upstream, sleep = make_client(lambda r: httpx.Response(429, json=error_body("rateLimited")))

        with pytest.raises(RateLimitExceededError) as exc_info:
            fetch(client)

        assert exc_info.value.status_code == 429
        assert len(upstream.requests) == 4
        assert sleep.delays == [2.0, 4.0, 8.0]

    def test_other_status_carries_upstream_message(self):
        client, _, _ = make_client(
            lambda r: httpx.Response(400, json=error_body("parameterInvalid", "bad country"))
        )

        with pytest.raises(NewsApiError) as exc_info:
            fetch(client)

        assert exc_info.value.status_code == 400
        assert exc_info.value.api_code == "parameterInvalid"
        assert "bad country" in exc_info.value.message

    def test_non_json_error_body(self):
        client, _, _ = make_client(lambda r: httpx.Response(404, text="<html>not found</html>"))

        with pytest.raises(NewsApiError) as exc_info:
            fetch(client)

        assert "Unknown API error" in exc_info.value.message

    def test_ok_status_with_error_envelope(self):
        client, _, _ = make_client(lambda r: httpx.Response(200, json=error_body("apiKeyMissing")))

        with pytest.raises(InvalidApiKeyError):
            fetch(client)

    def test_ok_status_with_rate_limit_envelope(self):
        client, _, _ = make_client(lambda r: httpx.Response(200, json=error_body("rateLimited")))

        with pytest.raises(RateLimitExceededError):
            fetch(client)

    def test_unparseable_body(self):
        client, _, _ = make_client(lambda r: httpx.Response(200, text="{not json"))

        with pytest.raises(BadResponseError):
            fetch(client)

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client, upstream, _ = make_client(handler, retry_count=1)

        with pytest.raises(UpstreamTimeoutError):
            fetch(client)
        assert len(upstream.requests) == 2

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client, _, _ = make_client(handler, retry_count=0)

        with pytest.raises(UpstreamUnavailableError):
            fetch(client)


class TestRetry:
    """Test retry behavior."""

    def test_recovers_after_transient_failure(self):
        responses = iter([
            httpx.Response(503),
            httpx.Response(200, json=articles_body(["Back"])),
        ])
        client, upstream, sleep = make_client(lambda r: next(responses))

        result = fetch(client)

        assert [a.title for a in result.articles] == ["Back"]
        assert len(upstream.requests) == 2
        assert sleep.delays == [2.0]

    def test_client_errors_are_not_retried(self):
        client, upstream, sleep = make_client(lambda r: httpx.Response(400, json=error_body("parametersMissing")))

        with pytest.raises(NewsApiError):
            fetch(client)
        assert len(upstream.requests) == 1
        assert sleep.delays == []


class TestCircuitBreaker:
    """Test breaker integration."""

    def test_breaker_opens_and_short_circuits(self):
        breaker = CircuitBreaker(failure_threshold=2, reset_timeout=30)
        client, upstream, _ = make_client(lambda r: httpx.Response(500), retry_count=0, breaker=breaker)

        for _ in range(2):
            with pytest.raises(NewsApiError):
                fetch(client)
        assert breaker.state == CircuitState.OPEN

        with pytest.raises(CircuitOpenError):
            fetch(client)
        assert len(upstream.requests) == 2

    def test_circuit_open_is_not_retried(self):
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout=30)
        breaker.record_failure()
        client, upstream, sleep = make_client(lambda r: httpx.Response(200), breaker=breaker)

        with pytest.raises(CircuitOpenError):
            fetch(client)
        assert upstream.requests == []
        assert sleep.delays == []

    def test_rate_limit_does_not_open_breaker(self):
        breaker = CircuitBreaker(failure_threshold=2, reset_timeout=30)
        client, _, _ = make_client(lambda r: httpx.Response(429), retry_count=3, breaker=breaker)

        with pytest.raises(RateLimitExceededError):
            fetch(client)
        assert breaker.state == CircuitState.CLOSED

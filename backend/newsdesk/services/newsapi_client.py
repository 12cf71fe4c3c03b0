"""
NewsAPI HTTP client

Owns the shared httpx connection pool and turns every way a call can go wrong
into a typed NewsApiError:

- timeout                      -> UpstreamTimeoutError
- connection / transport error -> UpstreamUnavailableError
- HTTP 401 / 429 / other       -> InvalidApiKeyError / RateLimitExceededError / NewsApiError
- HTTP 200 with status="error" -> same mapping, driven by the embedded code
- unparseable body             -> BadResponseError

Transient failures are retried with exponential backoff behind a circuit
breaker. Nothing is cached here.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Type, TypeVar
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from newsdesk.core.config import Settings
from newsdesk.core.exceptions import (
    BadResponseError,
    CircuitOpenError,
    InvalidApiKeyError,
    NewsApiError,
    RateLimitExceededError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from newsdesk.core.resilience import (
    CircuitBreaker,
    backoff_delay,
    is_breaker_failure_status,
    is_transient_status,
)
from newsdesk.schemas.news import ApiEnvelope

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=ApiEnvelope)

USER_AGENT = "Newsdesk/1.0"
HTTP_CONNECT_TIMEOUT = 5.0

INVALID_KEY_CODES = frozenset({"apiKeyInvalid", "apiKeyMissing"})
RATE_LIMIT_CODES = frozenset({"rateLimited"})


class NewsApiClient:
    """
    Async NewsAPI client

    One instance (and one connection pool) per application; call `close()` on
    shutdown.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 15.0,
        retry_count: int = 3,
        retry_delay: float = 2.0,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = httpx.Timeout(timeout, connect=min(timeout, HTTP_CONNECT_TIMEOUT))
        self.retry_count = max(0, retry_count)
        self.retry_delay = retry_delay
        self.breaker = breaker or CircuitBreaker()
        self._transport = transport
        self._sleep = sleep
        self._http_client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "NewsApiClient":
        breaker = CircuitBreaker(
            failure_threshold=settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
            reset_timeout=settings.CIRCUIT_BREAKER_RESET_SECONDS,
        )
        return cls(
            base_url=settings.NEWSAPI_BASE_URL,
            api_key=settings.NEWSAPI_KEY,
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
            retry_count=settings.RETRY_COUNT,
            retry_delay=settings.RETRY_DELAY_SECONDS,
            breaker=breaker,
            **kwargs,
        )

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Accept": "application/json",
                    "User-Agent": USER_AGENT,
                    "X-Api-Key": self.api_key,
                },
            )
        return self._http_client

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ------------------------------------------------------------
    # Public
    # ------------------------------------------------------------

    async def fetch(self, path: str, params: Dict[str, str], model: Type[T]) -> T:
        """
        GET a NewsAPI endpoint and validate the response envelope.

        Args:
            path: path relative to the base URL (e.g. "top-headlines")
            params: query parameters, empty values already removed
            model: envelope model to validate the body into

        Returns:
            the validated envelope with status "ok"

        Raises:
            NewsApiError: or one of its subclasses
        """
        logger.info(f"NewsAPI request: {path}?{urlencode(params)}")

        response = await self._send_with_retry(path, params)

        if not response.is_success:
            raise self._error_from_response(response)

        try:
            result = model.model_validate_json(response.content)
        except ValidationError as e:
            logger.error(f"NewsAPI returned an unreadable body for {path}: {e.error_count()} error(s)")
            raise BadResponseError() from e

        if not result.is_success:
            raise self._error_from_code(result.code, result.message)

        return result

    # ------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------

    async def _send_with_retry(self, path: str, params: Dict[str, str]) -> httpx.Response:
        attempt = 0
        while True:
            try:
                response = await self._send_once(path, params)
            except CircuitOpenError:
                raise
            except (UpstreamTimeoutError, UpstreamUnavailableError) as e:
                if attempt >= self.retry_count:
                    raise
                reason = type(e).__name__
            else:
                if attempt >= self.retry_count or not is_transient_status(response.status_code):
                    return response
                reason = f"HTTP {response.status_code}"

            delay = backoff_delay(attempt, self.retry_delay)
            logger.warning(
                f"NewsAPI retry {attempt + 1}/{self.retry_count} for {path} "
                f"after {delay:.1f}s due to: {reason}"
            )
            await self._sleep(delay)
            attempt += 1

    async def _send_once(self, path: str, params: Dict[str, str]) -> httpx.Response:
        if not self.breaker.allow_request():
            logger.warning(f"NewsAPI circuit open, skipping request: {path}")
            raise CircuitOpenError()

        try:
            response = await self._get_http_client().get(path, params=params)
        except httpx.TimeoutException as e:
            self.breaker.record_failure()
            logger.error(f"NewsAPI request timed out: {path}")
            raise UpstreamTimeoutError() from e
        except httpx.RequestError as e:
            self.breaker.record_failure()
            logger.error(f"NewsAPI connection error: {path} ({type(e).__name__})")
            raise UpstreamUnavailableError() from e
        except BaseException:
            # cancelled or unexpected: no outcome to report, free the half-open slot
            self.breaker.release_probe()
            raise

        if is_breaker_failure_status(response.status_code):
            self.breaker.record_failure()
        else:
            self.breaker.record_success()
        return response

    # ------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------

    @staticmethod
    def _error_from_response(response: httpx.Response) -> NewsApiError:
        try:
            envelope = ApiEnvelope.model_validate_json(response.content)
        except ValidationError:
            envelope = None

        api_message = (envelope.message if envelope else None) or "Unknown API error"
        api_code = (envelope.code if envelope else None) or ""
        status_code = response.status_code

        logger.warning(f"NewsAPI error {status_code}: {api_message}")

        if status_code == 401:
            return InvalidApiKeyError()
        if status_code == 429:
            return RateLimitExceededError()
        return NewsApiError(
            f"NewsAPI returned {status_code}: {api_message}",
            status_code=status_code,
            api_code=api_code,
        )

    @staticmethod
    def _error_from_code(code: Optional[str], message: Optional[str]) -> NewsApiError:
        logger.warning(f"NewsAPI reported an error: code={code}, message={message}")
        if code in INVALID_KEY_CODES:
            return InvalidApiKeyError()
        if code in RATE_LIMIT_CODES:
            return RateLimitExceededError()
        return NewsApiError(message or "NewsAPI error", api_code=code)

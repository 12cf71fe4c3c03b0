"""
Newsdesk error types

Every failure talking to NewsAPI surfaces as one of these, never as a raw
httpx or JSON exception.
"""
from typing import Optional


class NewsAppError(Exception):
    """Base class for all Newsdesk errors."""


class NewsApiError(NewsAppError):
    """NewsAPI answered with an error (or could not be used at all)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        api_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.api_code = api_code


class InvalidApiKeyError(NewsApiError):
    def __init__(self):
        super().__init__(
            "NewsAPI key is missing or invalid. Set NEWSAPI_KEY in the environment or .env file.",
            status_code=401,
            api_code="apiKeyInvalid",
        )


class RateLimitExceededError(NewsApiError):
    def __init__(self):
        super().__init__(
            "NewsAPI rate limit exceeded. Please wait before making more requests.",
            status_code=429,
            api_code="rateLimited",
        )


class UpstreamTimeoutError(NewsApiError):
    def __init__(self, message: str = "The request to NewsAPI timed out. Please try again."):
        super().__init__(message, status_code=504)


class UpstreamUnavailableError(NewsApiError):
    def __init__(self, message: str = "Could not connect to NewsAPI. Check your internet connection."):
        super().__init__(message, status_code=503)


class CircuitOpenError(UpstreamUnavailableError):
    """Raised without calling NewsAPI while the circuit breaker is open."""

    def __init__(self):
        super().__init__("NewsAPI is temporarily unavailable. Please try again shortly.")


class BadResponseError(NewsApiError):
    def __init__(self, message: str = "Failed to deserialize NewsAPI response."):
        super().__init__(message, status_code=502)

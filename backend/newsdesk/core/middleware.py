"""
HTTP middleware

- PerformanceMiddleware: request timing, slow request logging, request timeout
- CacheHeaderMiddleware: Cache-Control per path family
"""
import asyncio
import logging
import time
from typing import Callable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from newsdesk.core.config import settings

perf_logger = logging.getLogger("performance")

UNMONITORED_PATHS = ("/metrics", "/health", "/docs", "/redoc", "/openapi.json")

# ===== Cache-Control values =====
STATIC_MAX_AGE = 86400
PAGE_MAX_AGE = 60


class PerformanceMiddleware(BaseHTTPMiddleware):
    """
    Performance monitoring middleware

    - measures request duration (X-Response-Time header)
    - logs requests slower than SLOW_REQUEST_THRESHOLD
    - answers 504 when a request exceeds REQUEST_TIMEOUT, through
      `on_timeout(request, timeout)` when given, plain JSON otherwise
    """

    def __init__(
        self,
        app,
        on_timeout: Optional[Callable[[Request, float], Response]] = None,
    ):
        super().__init__(app)
        self.on_timeout = on_timeout

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        path = request.url.path
        method = request.method

        if path in UNMONITORED_PATHS or path.startswith("/static"):
            return await call_next(request)

        timeout = settings.REQUEST_TIMEOUT
        try:
            response = await asyncio.wait_for(call_next(request), timeout=timeout)
        except asyncio.TimeoutError:
            duration = time.time() - start_time
            perf_logger.error(
                f"Request timed out: {method} {path} - {duration:.2f}s (limit: {timeout}s)"
            )
            if self.on_timeout is not None:
                return self.on_timeout(request, timeout)
            return JSONResponse(
                status_code=504,
                content={
                    "detail": {
                        "code": "GATEWAY_TIMEOUT",
                        "message": f"Request took longer than {timeout:g}s",
                    }
                },
            )

        duration = time.time() - start_time
        if duration > settings.SLOW_REQUEST_THRESHOLD:
            perf_logger.warning(f"Slow request: {method} {path} - {duration:.2f}s")

        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response


class CacheHeaderMiddleware(BaseHTTPMiddleware):
    """Adds Cache-Control headers to GET responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        if request.method != "GET" or response.status_code >= 400:
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
            return response

        path = request.url.path
        if path.startswith("/static/"):
            max_age = STATIC_MAX_AGE
        elif path.startswith(settings.API_V1_STR):
            # matches the server-side article cache
            max_age = settings.cache_ttl_seconds
        elif path.startswith("/news"):
            max_age = PAGE_MAX_AGE
        else:
            return response

        response.headers["Cache-Control"] = f"public, max-age={max_age}"
        response.headers["Vary"] = "Accept-Encoding"
        return response

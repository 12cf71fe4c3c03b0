# ============================================================
#  FastAPI application entry point
# ============================================================
"""
Newsdesk application

HTML pages (/news...), a JSON API (/api/v1/news...), static assets and
Prometheus metrics, on top of a shared NewsService created in the lifespan.

Run with:
    uvicorn newsdesk.main:app --reload
"""
import asyncio
import logging
import traceback
import uuid
from contextlib import asynccontextmanager
from typing import Tuple

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from newsdesk.api.deps import build_news_service
from newsdesk.api.v1.router import api_router
from newsdesk.api.web import pages
from newsdesk.api.web.templating import STATIC_DIR, templates
from newsdesk.core.config import settings
from newsdesk.core.exceptions import (
    InvalidApiKeyError,
    NewsApiError,
    NewsAppError,
    RateLimitExceededError,
)
from newsdesk.core.logging_config import configure_logging
from newsdesk.core.middleware import CacheHeaderMiddleware, PerformanceMiddleware
from newsdesk.core.redis import close_redis_client, get_redis_client, is_redis_configured
from newsdesk.schemas.views import ErrorViewModel

logger = logging.getLogger(__name__)

# ===== Error page texts =====
INVALID_KEY_MESSAGE = (
    "Your NewsAPI key is missing or invalid. Set NEWSAPI_KEY in the environment "
    "or in .env. You can get a free key at https://newsapi.org/register"
)
RATE_LIMIT_MESSAGE = (
    "You've made too many requests to NewsAPI. Please wait a moment and try again. "
    "Free plans allow 100 requests/day."
)
UNEXPECTED_MESSAGE = "An unexpected error occurred. Please try again later."
TIMEOUT_MESSAGE = "The request took longer than {timeout:g}s. Please try again shortly."


# ============================================================
# Error responses
# ============================================================
def describe_error(exc: Exception) -> Tuple[int, str, str]:
    """
    Map an exception to (status code, title, message).

    Args:
        exc: the escaped exception

    Returns:
        Tuple[int, str, str]: HTTP status, page title, user-facing message
    """
    if isinstance(exc, InvalidApiKeyError):
        return 401, "Invalid API Key", INVALID_KEY_MESSAGE
    if isinstance(exc, RateLimitExceededError):
        return 429, "Rate Limit Exceeded", RATE_LIMIT_MESSAGE
    if isinstance(exc, NewsApiError):
        return exc.status_code or 500, "News API Error", exc.message
    if settings.DEBUG:
        detail = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return 500, "Unexpected Error", detail
    return 500, "Unexpected Error", UNEXPECTED_MESSAGE


def _is_api_request(request: Request) -> bool:
    return request.url.path.startswith(settings.API_V1_STR)


def _error_response(request: Request, status_code: int, title: str, message: str):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex

    if _is_api_request(request):
        response = JSONResponse(
            status_code=status_code,
            content={
                "success": False,
                "detail": {"title": title, "message": message, "request_id": request_id},
            },
        )
    else:
        vm = ErrorViewModel(
            title=title,
            message=message,
            status_code=status_code,
            request_id=request_id,
        )
        response = templates.TemplateResponse(
            request, "shared/error.html", {"vm": vm}, status_code=status_code
        )

    response.headers["X-Request-ID"] = request_id
    return response


def gateway_timeout_response(request: Request, timeout: float):
    """504 answer used by PerformanceMiddleware."""
    return _error_response(request, 504, "Gateway Timeout", TIMEOUT_MESSAGE.format(timeout=timeout))


# ============================================================
# Lifespan (startup / shutdown)
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings)

    if not settings.NEWSAPI_KEY:
        logger.warning("NEWSAPI_KEY is not set; every NewsAPI call will fail with 401")

    if is_redis_configured():
        try:
            await asyncio.wait_for(get_redis_client(), timeout=10.0)
            logger.info("Redis connection initialized")
        except asyncio.TimeoutError:
            logger.warning("Redis connection timed out, using the in-process cache")
        except Exception as e:
            logger.warning(f"Redis connection failed, using the in-process cache: {e}")

    app.state.news_service = build_news_service()
    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started")

    yield

    try:
        await app.state.news_service.client.close()
    except Exception as e:
        logger.warning(f"Error closing the NewsAPI client: {e}")

    try:
        await close_redis_client()
    except Exception as e:
        logger.warning(f"Error closing the Redis connection: {e}")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="News headlines, search and sources on top of NewsAPI",
    docs_url="/docs",
    redoc_url="/redoc",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

# ============================================================
# Middleware
# ============================================================
app.add_middleware(GZipMiddleware, minimum_size=500)

if settings.ALLOWED_ORIGINS:
    origins = [origin.strip() for origin in settings.ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,  # must be False with a wildcard origin
        allow_methods=["GET"],
        allow_headers=["*"],
    )

app.add_middleware(PerformanceMiddleware, on_timeout=gateway_timeout_response)
app.add_middleware(CacheHeaderMiddleware)

# ============================================================
#  Prometheus metrics
# ============================================================
instrumentator = Instrumentator(
    excluded_handlers=["/metrics", "/health", "/docs", "/redoc", "/static.*"],
)
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


# ============================================================
# Exception handlers
# ============================================================
@app.exception_handler(NewsAppError)
async def news_app_exception_handler(request: Request, exc: NewsAppError):
    status_code, title, message = describe_error(exc)
    if status_code >= 500:
        logger.error(f"NewsAPI exception on {request.url.path}: {exc}")
    else:
        logger.warning(f"{title} on {request.url.path}")
    return _error_response(request, status_code, title, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if _is_api_request(request):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    title = "Page Not Found" if exc.status_code == 404 else "Request Error"
    return _error_response(request, exc.status_code, title, str(exc.detail))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    if settings.DEBUG:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")
    else:
        logger.error(f"Unhandled exception: {exc}")
    status_code, title, message = describe_error(exc)
    return _error_response(request, status_code, title, message)


# ============================================================
# Routers
# ============================================================
app.include_router(api_router, prefix=settings.API_V1_STR)
app.include_router(pages.router)
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


@app.get("/health")
async def health_check():
    """Health check"""
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "cache": "redis" if is_redis_configured() else "memory",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("newsdesk.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)

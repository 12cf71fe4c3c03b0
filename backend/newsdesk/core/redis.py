"""
Redis client management

Redis is optional: when REDIS_URL is not set the response cache stays in
process. When it is set but unreachable, callers get None and fall back to the
in-process cache; a reconnect is attempted after REDIS_RETRY_INTERVAL.
"""
import asyncio
import logging
import time
from typing import Optional

from redis import asyncio as aioredis
from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff

from newsdesk.core.config import settings

logger = logging.getLogger(__name__)

# Fail fast: a slow cache is worse than no cache
MAX_CONNECTIONS = 10
SOCKET_TIMEOUT = 1.0
CONNECT_TIMEOUT = 1.0
HEALTH_CHECK_INTERVAL = 60
REDIS_RETRY_INTERVAL = 60.0

_redis_client: Optional[Redis] = None
_redis_available: bool = True
_redis_unavailable_since: float = 0.0


def is_redis_configured() -> bool:
    return bool(settings.REDIS_URL)


async def get_redis_client() -> Optional[Redis]:
    """
    Return the shared Redis client, connecting on first use.

    Returns:
        Redis client, or None when Redis is not configured or unavailable
    """
    global _redis_client, _redis_available, _redis_unavailable_since

    if not is_redis_configured():
        return None

    current_time = time.time()

    if not _redis_available:
        if current_time - _redis_unavailable_since < REDIS_RETRY_INTERVAL:
            return None
        _redis_available = True
        logger.info("Retrying Redis connection")

    if _redis_client is None:
        try:
            retry = Retry(ExponentialBackoff(cap=0.5, base=0.1), retries=0)
            _redis_client = aioredis.Redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                max_connections=MAX_CONNECTIONS,
                retry_on_timeout=False,
                retry=retry,
                socket_timeout=SOCKET_TIMEOUT,
                socket_connect_timeout=CONNECT_TIMEOUT,
                socket_keepalive=True,
                health_check_interval=HEALTH_CHECK_INTERVAL,
            )
            await asyncio.wait_for(_redis_client.ping(), timeout=CONNECT_TIMEOUT)
            logger.info(f"Redis connected (timeout: {CONNECT_TIMEOUT}s)")
        except Exception as e:
            logger.warning(
                f"Redis connection failed, using in-process cache "
                f"(retry in {REDIS_RETRY_INTERVAL:.0f}s): {type(e).__name__}"
            )
            _redis_available = False
            _redis_unavailable_since = current_time
            await _discard_client()
            return None

    return _redis_client


def mark_redis_unavailable() -> None:
    """Called after a failed command so the next REDIS_RETRY_INTERVAL skips Redis."""
    global _redis_available, _redis_unavailable_since
    _redis_available = False
    _redis_unavailable_since = time.time()


async def _discard_client() -> None:
    global _redis_client
    if _redis_client is not None:
        try:
            await _redis_client.aclose()
        except Exception as e:
            logger.debug(f"Ignoring error while closing Redis client: {e}")
    _redis_client = None


async def close_redis_client() -> None:
    """Close the Redis connection on application shutdown."""
    global _redis_client

    if _redis_client is not None:
        try:
            await _redis_client.aclose()
            logger.info("Redis client closed")
        except Exception as e:
            logger.error(f"Failed to close Redis client: {e}")
        finally:
            _redis_client = None

"""
Response cache

- Deterministic cache keys for every NewsAPI query family
- Thread-safe in-process TTL store
- CacheService: Redis when REDIS_URL is configured and reachable, in-process
  store otherwise. Cache failures never fail a request.
"""
import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import quote

from newsdesk.core.redis import get_redis_client, mark_redis_unavailable

logger = logging.getLogger(__name__)

# Cache key namespace
CACHE_NAMESPACE = "newsdesk"

# Key families
TOP_HEADLINES_PREFIX = "top"
EVERYTHING_PREFIX = "all"
SOURCES_PREFIX = "sources"
HEADLINE_TIER_PREFIX = "headlines"


def build_cache_key(*parts: str) -> str:
    """
    Join key parts under the namespace.

    e.g. "newsdesk:top:c=us|cat=general|src=|q=|p=1|ps=12"
    """
    key_parts = [CACHE_NAMESPACE] + [str(part) for part in parts]
    return ":".join(key_parts)


def _segment(value: Any) -> str:
    # lower-cased and percent-encoded so "|" or "=" inside a value cannot
    # shift segment boundaries; None becomes an empty segment
    if value is None:
        return ""
    return quote(str(value).strip().lower(), safe="")


def _segments(*pairs: Tuple[str, Any]) -> str:
    return "|".join(f"{name}={_segment(value)}" for name, value in pairs)


def top_headlines_cache_key(
    country: Optional[str],
    category: Optional[str],
    sources: Optional[str],
    query: Optional[str],
    page: int,
    page_size: int,
) -> str:
    return build_cache_key(
        TOP_HEADLINES_PREFIX,
        _segments(
            ("c", country),
            ("cat", category),
            ("src", sources),
            ("q", query),
            ("p", page),
            ("ps", page_size),
        ),
    )


def everything_cache_key(
    query: str,
    sources: Optional[str],
    language: Optional[str],
    sort_by: Optional[str],
    from_date: Optional[str],
    to_date: Optional[str],
    page: int,
    page_size: int,
) -> str:
    return build_cache_key(
        EVERYTHING_PREFIX,
        _segments(
            ("q", query),
            ("src", sources),
            ("lang", language),
            ("sort", sort_by),
            ("from", from_date),
            ("to", to_date),
            ("p", page),
            ("ps", page_size),
        ),
    )


def sources_cache_key(
    category: Optional[str],
    language: Optional[str],
    country: Optional[str],
) -> str:
    return build_cache_key(
        SOURCES_PREFIX,
        _segments(("cat", category), ("lang", language), ("c", country)),
    )


def headline_tier_cache_key(
    tier: str,
    country: str,
    category: Optional[str],
    page: int,
    page_size: int,
) -> str:
    """Cache slot of one headline fallback tier ("top-headlines", "sources", "search")."""
    return build_cache_key(
        HEADLINE_TIER_PREFIX,
        _segment(tier),
        _segments(("c", country), ("cat", category), ("p", page), ("ps", page_size)),
    )


class MemoryCache:
    """
    Thread-safe key/value store with per-entry expiry

    Expired entries are dropped when read, and swept on every `set` so keys
    that are never read again do not accumulate.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            now = self._clock()
            expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
            for expired_key in expired:
                del self._entries[expired_key]
            self._entries[key] = (now + ttl, value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class CacheService:
    """
    Async cache facade used by the news service

    Values must be JSON serialisable (they may end up in Redis).
    """

    def __init__(self, memory: Optional[MemoryCache] = None, use_redis: bool = True):
        self.memory = memory or MemoryCache()
        self.use_redis = use_redis

    async def get(self, key: str) -> Optional[Any]:
        if self.use_redis:
            redis_client = await get_redis_client()
            if redis_client is not None:
                try:
                    cached_value = await redis_client.get(key)
                    if cached_value is not None:
                        logger.debug(f"Cache HIT (redis): {key}")
                        return json.loads(cached_value)
                    return None
                except json.JSONDecodeError as e:
                    logger.warning(f"Cached value is not valid JSON (key: {key}): {e}")
                    return None
                except Exception as e:
                    logger.warning(f"Redis read failed, falling back to memory (key: {key}): {e}")
                    mark_redis_unavailable()

        value = self.memory.get(key)
        if value is not None:
            logger.debug(f"Cache HIT: {key}")
        return value

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        if self.use_redis:
            redis_client = await get_redis_client()
            if redis_client is not None:
                try:
                    serialized_value = json.dumps(value, ensure_ascii=False, default=str)
                    await redis_client.setex(key, ttl, serialized_value)
                    logger.debug(f"Cache SET (redis): {key} (TTL: {ttl}s)")
                    return True
                except Exception as e:
                    logger.warning(f"Redis write failed, falling back to memory (key: {key}): {e}")
                    mark_redis_unavailable()

        self.memory.set(key, value, ttl)
        logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
        return True

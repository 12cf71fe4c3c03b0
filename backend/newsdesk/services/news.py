"""
News service

Business logic on top of NewsApiClient:

- top headlines / full-text search / source listing, each cached
- country headlines with a three-tier fallback
    1. top-headlines?country=..&category=..   accepted with >= 3 articles
    2. top-headlines?sources=<curated list>   accepted with >= 1 article
    3. everything?q=<category> <country name>  always accepted
- related articles for the detail page
"""
import asyncio
import logging
from typing import Dict, List, Optional

from newsdesk.core.config import Settings
from newsdesk.schemas.news import (
    Article,
    ArticlePage,
    NewsApiResponse,
    NewsSearchQuery,
    SourceList,
    SourcesApiResponse,
    TopHeadlinesQuery,
)
from newsdesk.services.constants import (
    EVERYTHING_PATH,
    SOURCES_PATH,
    STRATEGY_FAILED,
    STRATEGY_SEARCH,
    STRATEGY_SOURCES,
    STRATEGY_TOP_HEADLINES,
    TOP_HEADLINES_PATH,
    get_country_name,
    get_language_for_country,
    get_sources_for_country,
)
from newsdesk.services.newsapi_client import NewsApiClient
from newsdesk.utils.cache import (
    CacheService,
    everything_cache_key,
    headline_tier_cache_key,
    sources_cache_key,
    top_headlines_cache_key,
)
from newsdesk.utils.news import extract_related_keywords, normalize_articles

logger = logging.getLogger(__name__)

GENERAL_CATEGORY = "general"
GENERAL_CATEGORY_KEYWORD = "news"
RELATED_LANGUAGE = "en"
RELATED_SORT = "relevancy"
FALLBACK_SORT = "publishedAt"


def _compact(params: Dict[str, Optional[object]]) -> Dict[str, str]:
    """Drop empty parameters and stringify the rest."""
    return {
        key: str(value)
        for key, value in params.items()
        if value is not None and str(value).strip() != ""
    }


class NewsService:
    """NewsAPI-backed article and source lookups with caching."""

    def __init__(self, client: NewsApiClient, cache: CacheService, settings: Settings):
        self.client = client
        self.cache = cache
        self.settings = settings

    @property
    def article_ttl(self) -> int:
        return self.settings.cache_ttl_seconds

    @property
    def sources_ttl(self) -> int:
        return self.settings.sources_cache_ttl_seconds

    # ------------------------------------------------------------
    # Cache helpers
    # ------------------------------------------------------------

    async def _get_cached_page(self, key: str) -> Optional[ArticlePage]:
        cached = await self.cache.get(key)
        if cached is None:
            return None
        page = ArticlePage.model_validate(cached)
        page.from_cache = True
        return page

    async def _cache_page(self, key: str, page: ArticlePage) -> None:
        await self.cache.set(
            key,
            page.model_dump(mode="json", exclude={"from_cache"}),
            ttl=self.article_ttl,
        )

    async def _fetch_page(self, path: str, params: Dict[str, str]) -> ArticlePage:
        response = await self.client.fetch(path, params, NewsApiResponse)
        return ArticlePage(
            articles=normalize_articles(response.articles),
            total_results=response.total_results,
        )

    async def _fetch_tier(self, path: str, params: Dict[str, str]) -> ArticlePage:
        # bounds one fallback tier, retries and backoff included
        return await asyncio.wait_for(
            self._fetch_page(path, params),
            timeout=self.settings.HEADLINE_TIER_TIMEOUT_SECONDS,
        )

    # ------------------------------------------------------------
    # Top headlines / search / sources
    # ------------------------------------------------------------

    async def get_top_headlines(self, query: TopHeadlinesQuery) -> ArticlePage:
        """
        Top headlines with optional country/category/sources/query filters.

        NewsAPI rejects "sources" combined with "country" or "category", so a
        sources filter wins and the other two are dropped.
        """
        has_sources = bool(query.sources and query.sources.strip())
        country = "" if has_sources else (query.country or self.settings.DEFAULT_COUNTRY)
        category = "" if has_sources else (query.category or self.settings.DEFAULT_CATEGORY)

        cache_key = top_headlines_cache_key(
            country, category, query.sources, query.query, query.page, query.page_size
        )
        cached = await self._get_cached_page(cache_key)
        if cached is not None:
            return cached

        params = _compact({
            "sources": query.sources if has_sources else None,
            "country": country,
            "category": category,
            "q": query.query,
            "page": query.page,
            "pageSize": query.page_size,
        })
        page = await self._fetch_page(TOP_HEADLINES_PATH, params)
        await self._cache_page(cache_key, page)
        return page

    async def search_everything(self, query: NewsSearchQuery) -> ArticlePage:
        """Full-text search; a blank query returns an empty page without calling NewsAPI."""
        if not query.query or not query.query.strip():
            return ArticlePage()

        cache_key = everything_cache_key(
            query.query,
            query.sources,
            query.language,
            query.sort_by,
            query.from_date,
            query.to_date,
            query.page,
            query.page_size,
        )
        cached = await self._get_cached_page(cache_key)
        if cached is not None:
            return cached

        params = _compact({
            "q": query.query,
            "sources": query.sources,
            "language": query.language,
            "sortBy": query.sort_by,
            "from": query.from_date,
            "to": query.to_date,
            "page": query.page,
            "pageSize": query.page_size,
        })
        page = await self._fetch_page(EVERYTHING_PATH, params)
        await self._cache_page(cache_key, page)
        return page

    async def get_sources(
        self,
        category: Optional[str] = None,
        language: Optional[str] = None,
        country: Optional[str] = None,
    ) -> SourceList:
        """Publishers known to NewsAPI, cached for SOURCES_CACHE_MULTIPLIER x the article TTL."""
        cache_key = sources_cache_key(category, language, country)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            result = SourceList.model_validate(cached)
            result.from_cache = True
            return result

        params = _compact({"category": category, "language": language, "country": country})
        response = await self.client.fetch(SOURCES_PATH, params, SourcesApiResponse)
        result = SourceList(sources=response.sources)
        await self.cache.set(
            cache_key,
            result.model_dump(mode="json", exclude={"from_cache"}),
            ttl=self.sources_ttl,
        )
        return result

    # ------------------------------------------------------------
    # Country headlines (three-tier fallback)
    # ------------------------------------------------------------

    async def get_headlines_by_country(
        self,
        country: str,
        category: str,
        page: int,
        page_size: int,
    ) -> ArticlePage:
        """
        Headlines for a country, falling back tier by tier.

        Tier 1 and tier 2 errors are logged and skipped. Tier 3 always
        answers; if it fails too, the result is an empty page tagged "failed".
        Each tier gets at most HEADLINE_TIER_TIMEOUT_SECONDS; running out
        counts as a failure of that tier.
        A cache hit on any tier returns immediately.

        Args:
            country: ISO country code (any case, surrounding spaces ignored)
            category: NewsAPI category
            page: 1-based page number
            page_size: articles per page

        Returns:
            ArticlePage: with `strategy` set to the tier that produced it
        """
        country = (country or self.settings.DEFAULT_COUNTRY).strip().lower()
        category = category or self.settings.DEFAULT_CATEGORY

        # ── Tier 1: top-headlines filtered by country ──
        tier1_key = headline_tier_cache_key(STRATEGY_TOP_HEADLINES, country, category, page, page_size)
        cached = await self._get_cached_page(tier1_key)
        if cached is not None:
            return cached

        try:
            logger.info(f"[Headlines T1] top-headlines?country={country}&category={category}")
            params = _compact({
                "country": country,
                "category": category,
                "page": page,
                "pageSize": page_size,
            })
            result = await self._fetch_tier(TOP_HEADLINES_PATH, params)
            if len(result.articles) >= self.settings.HEADLINE_MIN_RESULTS_TOP:
                result.strategy = STRATEGY_TOP_HEADLINES
                await self._cache_page(tier1_key, result)
                return result
            logger.info(
                f"[Headlines T1] Only {len(result.articles)} results for {country}, trying curated sources"
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"[Headlines T1] Timed out for {country} after {self.settings.HEADLINE_TIER_TIMEOUT_SECONDS:g}s"
            )
        except Exception as e:
            logger.warning(f"[Headlines T1] Failed for {country}: {e}")

        # ── Tier 2: top-headlines filtered by curated sources ──
        mapped_sources = get_sources_for_country(country)
        if mapped_sources:
            tier2_key = headline_tier_cache_key(STRATEGY_SOURCES, country, category, page, page_size)
            cached = await self._get_cached_page(tier2_key)
            if cached is not None:
                return cached

            try:
                # NewsAPI cannot combine "sources" with "category"
                logger.info(f"[Headlines T2] top-headlines?sources={mapped_sources[:40]}")
                params = _compact({
                    "sources": mapped_sources,
                    "page": page,
                    "pageSize": page_size,
                })
                result = await self._fetch_tier(TOP_HEADLINES_PATH, params)
                if len(result.articles) >= self.settings.HEADLINE_MIN_RESULTS_SOURCES:
                    result.strategy = STRATEGY_SOURCES
                    await self._cache_page(tier2_key, result)
                    return result
                logger.info(f"[Headlines T2] No results for {country}, trying keyword search")
            except asyncio.TimeoutError:
                logger.warning(
                    f"[Headlines T2] Timed out for {country} after {self.settings.HEADLINE_TIER_TIMEOUT_SECONDS:g}s"
                )
            except Exception as e:
                logger.warning(f"[Headlines T2] Failed for {country}: {e}")

        # ── Tier 3: keyword search on category + country name ──
        tier3_key = headline_tier_cache_key(STRATEGY_SEARCH, country, category, page, page_size)
        cached = await self._get_cached_page(tier3_key)
        if cached is not None:
            return cached

        try:
            keyword = GENERAL_CATEGORY_KEYWORD if category == GENERAL_CATEGORY else category
            search_query = f"{keyword} {get_country_name(country)}"
            language = get_language_for_country(country)

            logger.info(f"[Headlines T3] everything?q={search_query}&language={language}")
            params = _compact({
                "q": search_query,
                "language": language,
                "sortBy": FALLBACK_SORT,
                "page": page,
                "pageSize": page_size,
            })
            result = await self._fetch_tier(EVERYTHING_PATH, params)
            result.strategy = STRATEGY_SEARCH
            await self._cache_page(tier3_key, result)
            return result
        except asyncio.TimeoutError:
            logger.error(
                f"[Headlines T3] Timed out for {country} after {self.settings.HEADLINE_TIER_TIMEOUT_SECONDS:g}s"
            )
            return ArticlePage(articles=[], total_results=0, strategy=STRATEGY_FAILED)
        except Exception as e:
            logger.error(f"[Headlines T3] Failed for {country}: {e}", exc_info=True)
            return ArticlePage(articles=[], total_results=0, strategy=STRATEGY_FAILED)

    # ------------------------------------------------------------
    # Related articles
    # ------------------------------------------------------------

    async def get_related_articles(self, title: str, count: int = 6) -> List[Article]:
        """
        Articles sharing keywords with `title`, excluding the article itself.

        Failures are logged and yield an empty list.
        """
        try:
            keywords = extract_related_keywords(title)
            if not keywords:
                return []

            page = await self.search_everything(NewsSearchQuery(
                query=" OR ".join(keywords),
                language=RELATED_LANGUAGE,
                sort_by=RELATED_SORT,
                page=1,
                page_size=count + 1,
            ))
            original = (title or "").lower()
            return [a for a in page.articles if a.title.lower() != original][:count]
        except Exception as e:
            logger.warning(f"Could not fetch related articles: {e}")
            return []

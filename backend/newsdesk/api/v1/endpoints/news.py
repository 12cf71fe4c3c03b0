"""
News JSON API endpoints

The same data the HTML pages render, as JSON. NewsAPI errors are not caught
here; the application error handlers turn them into JSON error bodies.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from newsdesk.api.deps import get_news_service
from newsdesk.core.config import settings
from newsdesk.schemas.news import (
    ArticleListResponse,
    ArticlePage,
    NewsSearchQuery,
    SourceListResponse,
    TopHeadlinesQuery,
)
from newsdesk.services.news import NewsService

logger = logging.getLogger(__name__)

router = APIRouter()

TAG = "📰 News"


def _article_list(result: ArticlePage, page: int, page_size: int, **extra) -> ArticleListResponse:
    meta = {
        "total": result.total_results,
        "page": page,
        "page_size": page_size,
        "from_cache": result.from_cache,
    }
    meta.update(extra)
    return ArticleListResponse(success=True, data=result.articles, meta=meta)


@router.get(
    "/headlines",
    response_model=ArticleListResponse,
    status_code=status.HTTP_200_OK,
    tags=[TAG],
    summary="Country headlines with fallback",
    description="""
    Headlines for a country and category.

    - tier 1: top-headlines by country and category
    - tier 2: top-headlines from curated sources for the country
    - tier 3: keyword search on "<category> <country name>"

    `meta.strategy` names the tier that answered ("failed" when none did).
    """,
)
async def get_headlines(
    country: str = Query(settings.DEFAULT_COUNTRY, min_length=2, max_length=2, description="ISO country code"),
    category: str = Query(settings.DEFAULT_CATEGORY, description="NewsAPI category"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    service: NewsService = Depends(get_news_service),
):
    result = await service.get_headlines_by_country(country, category, page, page_size)
    return _article_list(result, page, page_size, strategy=result.strategy)


@router.get(
    "/top-headlines",
    response_model=ArticleListResponse,
    status_code=status.HTTP_200_OK,
    tags=[TAG],
    summary="Raw top headlines",
    description="Top headlines without fallback. `sources` cannot be combined with country or category; it wins.",
    responses={
        401: {"description": "Invalid API key"},
        429: {"description": "Rate limit exceeded"},
        503: {"description": "NewsAPI unavailable"},
    },
)
async def get_top_headlines(
    country: Optional[str] = Query(None, description="ISO country code"),
    category: Optional[str] = Query(None),
    sources: Optional[str] = Query(None, description="Comma-separated source ids"),
    q: Optional[str] = Query(None, description="Keyword filter"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    service: NewsService = Depends(get_news_service),
):
    result = await service.get_top_headlines(TopHeadlinesQuery(
        country=country,
        category=category,
        sources=sources,
        query=q,
        page=page,
        page_size=page_size,
    ))
    return _article_list(result, page, page_size)


@router.get(
    "/search",
    response_model=ArticleListResponse,
    status_code=status.HTTP_200_OK,
    tags=[TAG],
    summary="Full-text search",
    description="Searches /everything. A blank `q` returns an empty list without calling NewsAPI.",
)
async def search_news(
    q: str = Query("", description="Search keywords"),
    sources: Optional[str] = Query(None),
    language: Optional[str] = Query(settings.DEFAULT_LANGUAGE),
    sort_by: str = Query("publishedAt", description="publishedAt | relevancy | popularity"),
    from_date: Optional[str] = Query(None, alias="from", description="ISO date"),
    to_date: Optional[str] = Query(None, alias="to", description="ISO date"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    service: NewsService = Depends(get_news_service),
):
    result = await service.search_everything(NewsSearchQuery(
        query=q,
        sources=sources,
        language=language,
        sort_by=sort_by,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    ))
    return _article_list(result, page, page_size, query=q)


@router.get(
    "/sources",
    response_model=SourceListResponse,
    status_code=status.HTTP_200_OK,
    tags=[TAG],
    summary="Publisher listing",
)
async def list_sources(
    category: Optional[str] = Query(None),
    language: Optional[str] = Query(None),
    country: Optional[str] = Query(None),
    service: NewsService = Depends(get_news_service),
):
    result = await service.get_sources(category, language, country)
    return SourceListResponse(
        success=True,
        data=result.sources,
        meta={"total": len(result.sources), "from_cache": result.from_cache},
    )


@router.get(
    "/related",
    response_model=ArticleListResponse,
    status_code=status.HTTP_200_OK,
    tags=[TAG],
    summary="Related articles",
    description="Articles sharing keywords with the given title. Never fails; errors yield an empty list.",
)
async def related_articles(
    title: str = Query(..., min_length=1),
    count: int = Query(6, ge=1, le=20),
    service: NewsService = Depends(get_news_service),
):
    articles = await service.get_related_articles(title, count)
    return ArticleListResponse(
        success=True,
        data=articles,
        meta={"total": len(articles), "page": 1, "page_size": count},
    )

"""
HTML page routes

- GET /                -> redirect to /news
- GET /news            headlines (country fallback)
- GET /news/search     full-text search
- GET /news/detail     article detail + related articles
- GET /news/sources    publisher listing

Upstream failures are shown inline on the page; only errors that escape a
handler reach the application-level error page.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from newsdesk.api.deps import get_news_service
from newsdesk.api.web.templating import templates
from newsdesk.core.config import settings
from newsdesk.schemas.news import Article, NewsSearchQuery, parse_timestamp
from newsdesk.schemas.views import (
    ArticleDetailViewModel,
    HeadlinesViewModel,
    PaginationInfo,
    SearchViewModel,
    SourceItem,
    SourcesViewModel,
)
from newsdesk.services.constants import get_country_name
from newsdesk.services.news import NewsService

logger = logging.getLogger(__name__)

router = APIRouter()

MSG_HEADLINES_FAILED = "Could not load headlines right now. Please try again shortly."
MSG_SEARCH_FAILED = "Search failed. Please try different keywords."
MSG_SOURCES_FAILED = "Could not load sources right now."
DETAIL_UNKNOWN_SOURCE = "Unknown"


def _page_size() -> int:
    return max(1, min(settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE))


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value if value and value.strip() else None


@router.get("/", include_in_schema=False)
async def home():
    return RedirectResponse(url="/news", status_code=302)


@router.get("/news", response_class=HTMLResponse, include_in_schema=False)
async def headlines_page(
    request: Request,
    category: str = settings.DEFAULT_CATEGORY,
    country: str = settings.DEFAULT_COUNTRY,
    page: int = 1,
    service: NewsService = Depends(get_news_service),
):
    """Top headlines for a country and category."""
    page = max(1, page)
    page_size = _page_size()
    country_display = get_country_name(country.lower())
    if country_display == country.lower():
        country_display = country.upper()

    vm = HeadlinesViewModel(
        selected_category=category,
        selected_country=country,
        country_display_name=country_display,
        pagination=PaginationInfo(current_page=page, page_size=page_size),
    )

    try:
        result = await service.get_headlines_by_country(country, category, page, page_size)
        vm.articles = result.articles
        vm.pagination.total_results = result.total_results
        vm.is_from_cache = result.from_cache
        vm.fetch_strategy = result.strategy or vm.fetch_strategy

        logger.info(
            f"Headlines loaded: country={country} category={category} "
            f"strategy={result.strategy} count={len(result.articles)}"
        )
    except Exception as e:
        logger.error(f"Error loading headlines for country={country}: {e}", exc_info=True)
        vm.error_message = MSG_HEADLINES_FAILED

    return templates.TemplateResponse(request, "news/headlines.html", {"vm": vm})


@router.get("/news/search", response_class=HTMLResponse, include_in_schema=False)
async def search_page(
    request: Request,
    q: str = "",
    sort_by: str = "publishedAt",
    language: str = settings.DEFAULT_LANGUAGE,
    source: Optional[str] = None,
    from_date: Optional[str] = Query(None, alias="from"),
    to_date: Optional[str] = Query(None, alias="to"),
    page: int = 1,
    service: NewsService = Depends(get_news_service),
):
    """Search form and results."""
    page = max(1, page)
    page_size = _page_size()
    source = _blank_to_none(source)
    from_date = _blank_to_none(from_date)
    to_date = _blank_to_none(to_date)

    vm = SearchViewModel(
        query=q,
        sort_by=sort_by,
        language=language,
        selected_source=source,
        from_date=from_date,
        to_date=to_date,
        pagination=PaginationInfo(current_page=page, page_size=page_size),
    )

    # Source dropdown; the search still works without it
    try:
        source_list = await service.get_sources(language=language)
        vm.sources = [SourceItem(id=s.id, name=s.name) for s in source_list.sources]
    except Exception as e:
        logger.warning(f"Could not load sources for the search form: {e}")

    if not q.strip():
        return templates.TemplateResponse(request, "news/search.html", {"vm": vm})

    try:
        result = await service.search_everything(NewsSearchQuery(
            query=q,
            sources=source,
            language=language,
            sort_by=sort_by,
            from_date=from_date,
            to_date=to_date,
            page=page,
            page_size=page_size,
        ))
        vm.articles = result.articles
        vm.pagination.total_results = result.total_results
        vm.is_from_cache = result.from_cache
    except Exception as e:
        logger.error(f"Error searching: {q}: {e}", exc_info=True)
        vm.error_message = MSG_SEARCH_FAILED

    return templates.TemplateResponse(request, "news/search.html", {"vm": vm})


@router.get("/news/detail", response_class=HTMLResponse, include_in_schema=False)
async def detail_page(
    request: Request,
    url: str = "",
    title: str = "",
    description: Optional[str] = None,
    image: Optional[str] = None,
    author: Optional[str] = None,
    source: Optional[str] = None,
    published_at: Optional[str] = None,
    service: NewsService = Depends(get_news_service),
):
    """Article detail; the article travels in the query string."""
    if not url.strip():
        return RedirectResponse(url="/news", status_code=302)

    article = Article(
        url=url,
        title=title.strip() or url,
        description=description,
        image_url=image,
        author=author,
        source_name=source or DETAIL_UNKNOWN_SOURCE,
        published_at=parse_timestamp(published_at),
    )
    vm = ArticleDetailViewModel(article=article)
    vm.related_articles = await service.get_related_articles(title)

    return templates.TemplateResponse(request, "news/detail.html", {"vm": vm})


@router.get("/news/sources", response_class=HTMLResponse, include_in_schema=False)
async def sources_page(
    request: Request,
    category: Optional[str] = None,
    language: Optional[str] = None,
    country: Optional[str] = None,
    service: NewsService = Depends(get_news_service),
):
    """Publisher listing with optional filters."""
    category = _blank_to_none(category)
    language = _blank_to_none(language)
    country = _blank_to_none(country)

    vm = SourcesViewModel(
        filter_category=category,
        filter_language=language,
        filter_country=country,
    )

    try:
        result = await service.get_sources(category, language, country)
        vm.sources = result.sources
    except Exception as e:
        logger.error(f"Error loading sources: {e}", exc_info=True)
        vm.error_message = MSG_SOURCES_FAILED

    return templates.TemplateResponse(request, "news/sources.html", {"vm": vm})

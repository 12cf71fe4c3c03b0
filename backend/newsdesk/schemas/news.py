"""
News Pydantic schemas

1. Upstream DTOs (ArticleDto, NewsApiResponse, SourceDto, SourcesApiResponse)
   - mirror the NewsAPI JSON envelopes, camelCase aliases included
2. Article
   - display-ready article produced by normalization, with view helpers
3. Query objects (TopHeadlinesQuery, NewsSearchQuery)
   - immutable parameter bundles handed to the news service
4. Result objects (ArticlePage, SourceList)
   - what the service returns and what gets cached
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUCCESS_STATUS = "ok"
REMOVED_IMAGE_MARKER = "removed.png"
SHORT_DESCRIPTION_LIMIT = 160


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp, returning None instead of raising.

    NewsAPI sends "2024-05-01T12:00:00Z"; a few sources send garbage, which
    should not invalidate the whole page.
    """
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def format_time_ago(published_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Relative age of an article ("5m ago", "3h ago", "2d ago" or a date).

    Args:
        published_at: publication time (naive values are treated as UTC)
        now: reference time, defaults to the current UTC time

    Returns:
        str: human readable age
    """
    if published_at is None:
        return "Unknown time"
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    minutes = (now - published_at).total_seconds() / 60
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{int(minutes)}m ago"
    if minutes < 60 * 24:
        return f"{int(minutes // 60)}h ago"
    if minutes < 60 * 24 * 7:
        return f"{int(minutes // (60 * 24))}d ago"
    return f"{published_at:%b} {published_at.day}, {published_at.year}"


# ============================================================
# Upstream DTOs
# ============================================================

class ArticleSourceDto(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None


class ArticleDto(BaseModel):
    """Raw article record as returned by NewsAPI."""
    model_config = ConfigDict(populate_by_name=True)

    source: Optional[ArticleSourceDto] = None
    author: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    url_to_image: Optional[str] = Field(None, alias="urlToImage")
    published_at: Optional[datetime] = Field(None, alias="publishedAt")
    content: Optional[str] = None

    @field_validator("published_at", mode="before")
    @classmethod
    def _lenient_timestamp(cls, value):
        return parse_timestamp(value)


class ApiEnvelope(BaseModel):
    """Fields every NewsAPI response carries; code/message only on errors."""
    status: str = ""
    code: Optional[str] = None
    message: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status == SUCCESS_STATUS


class NewsApiResponse(ApiEnvelope):
    model_config = ConfigDict(populate_by_name=True)

    total_results: int = Field(0, alias="totalResults")
    articles: List[ArticleDto] = Field(default_factory=list)

    @field_validator("articles", mode="before")
    @classmethod
    def _null_articles(cls, value):
        return value if value is not None else []


class SourceDto(BaseModel):
    """A NewsAPI publisher."""
    id: str = ""
    name: str = ""
    description: Optional[str] = None
    url: Optional[str] = None
    category: Optional[str] = None
    language: Optional[str] = None
    country: Optional[str] = None


class SourcesApiResponse(ApiEnvelope):
    sources: List[SourceDto] = Field(default_factory=list)

    @field_validator("sources", mode="before")
    @classmethod
    def _null_sources(cls, value):
        return value if value is not None else []


# ============================================================
# Display article
# ============================================================

class Article(BaseModel):
    """
    Display-ready article

    Only built by normalization (or from detail page parameters); a blank or
    "[Removed]" title never makes it this far.
    """
    source_id: Optional[str] = Field(None, description="NewsAPI source id")
    source_name: str = Field("", description="Publisher display name")
    author: Optional[str] = None
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    url: str = Field("", description="Canonical article URL")
    image_url: Optional[str] = None
    published_at: Optional[datetime] = None
    content: Optional[str] = None

    @property
    def display_author(self) -> str:
        return self.author if self.author and self.author.strip() else self.source_name

    @property
    def time_ago(self) -> str:
        return format_time_ago(self.published_at)

    @property
    def short_description(self) -> str:
        if not self.description or not self.description.strip():
            return "No description available."
        if len(self.description) > SHORT_DESCRIPTION_LIMIT:
            return self.description[:SHORT_DESCRIPTION_LIMIT - 3] + "…"
        return self.description

    @property
    def has_image(self) -> bool:
        return bool(
            self.image_url
            and self.image_url.strip()
            and REMOVED_IMAGE_MARKER not in self.image_url.lower()
        )


# ============================================================
# Query objects
# ============================================================

class TopHeadlinesQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    country: Optional[str] = "us"
    category: Optional[str] = "general"
    sources: Optional[str] = None
    query: Optional[str] = None
    page: int = 1
    page_size: int = 12


class NewsSearchQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str = ""
    sources: Optional[str] = None
    language: Optional[str] = None
    sort_by: Optional[str] = "publishedAt"
    from_date: Optional[str] = None
    to_date: Optional[str] = None
    page: int = 1
    page_size: int = 12


# ============================================================
# Results
# ============================================================

class ArticlePage(BaseModel):
    """One page of normalized articles."""
    articles: List[Article] = Field(default_factory=list)
    total_results: int = 0
    from_cache: bool = False
    strategy: Optional[str] = Field(
        None,
        description='Headline fallback tier that produced the page: '
                    '"top-headlines" | "sources" | "search" | "failed"',
    )


class SourceList(BaseModel):
    sources: List[SourceDto] = Field(default_factory=list)
    from_cache: bool = False


# ============================================================
# JSON API responses
# ============================================================

class ArticleListResponse(BaseModel):
    """
    Article list response

    `meta` carries pagination plus cache/strategy information.
    """
    success: bool = True
    data: List[Article] = Field(..., description="Articles")
    meta: dict = Field(
        default_factory=lambda: {"total": 0, "page": 1, "page_size": 12},
        description="Pagination and cache metadata",
    )


class SourceListResponse(BaseModel):
    success: bool = True
    data: List[SourceDto] = Field(..., description="Publishers")
    meta: dict = Field(default_factory=dict)

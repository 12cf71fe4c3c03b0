"""
View models for the HTML pages
"""
import math
from typing import List, Optional

from pydantic import BaseModel, Field

from newsdesk.schemas.news import Article, SourceDto
from newsdesk.services.constants import CATEGORIES, COUNTRIES, LANGUAGES, SORT_OPTIONS


class PaginationInfo(BaseModel):
    current_page: int = 1
    page_size: int = 12
    total_results: int = 0

    @property
    def total_pages(self) -> int:
        if self.total_results == 0 or self.page_size <= 0:
            return 1
        return math.ceil(self.total_results / self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def start_index(self) -> int:
        return (self.current_page - 1) * self.page_size + 1

    @property
    def end_index(self) -> int:
        return min(self.current_page * self.page_size, self.total_results)


class SourceItem(BaseModel):
    id: str = ""
    name: str = ""


class HeadlinesViewModel(BaseModel):
    articles: List[Article] = Field(default_factory=list)
    pagination: PaginationInfo = Field(default_factory=PaginationInfo)
    selected_category: str = "general"
    selected_country: str = "us"
    country_display_name: str = "United States"
    error_message: Optional[str] = None
    is_from_cache: bool = False
    fetch_strategy: str = "top-headlines"
    available_categories: List[str] = Field(default_factory=lambda: list(CATEGORIES))
    available_countries: dict = Field(default_factory=lambda: dict(COUNTRIES))


class SearchViewModel(BaseModel):
    articles: List[Article] = Field(default_factory=list)
    pagination: PaginationInfo = Field(default_factory=PaginationInfo)
    query: str = ""
    sort_by: str = "publishedAt"
    language: str = "en"
    from_date: Optional[str] = None
    to_date: Optional[str] = None
    selected_source: Optional[str] = None
    error_message: Optional[str] = None
    is_from_cache: bool = False
    sources: List[SourceItem] = Field(default_factory=list)
    sort_options: dict = Field(default_factory=lambda: dict(SORT_OPTIONS))
    languages: dict = Field(default_factory=lambda: dict(LANGUAGES))


class ArticleDetailViewModel(BaseModel):
    article: Article
    related_articles: List[Article] = Field(default_factory=list)
    error_message: Optional[str] = None


class SourcesViewModel(BaseModel):
    sources: List[SourceDto] = Field(default_factory=list)
    filter_category: Optional[str] = None
    filter_language: Optional[str] = None
    filter_country: Optional[str] = None
    error_message: Optional[str] = None
    available_categories: List[str] = Field(default_factory=lambda: list(CATEGORIES))
    languages: dict = Field(default_factory=lambda: dict(LANGUAGES))
    countries: dict = Field(default_factory=lambda: dict(COUNTRIES))


class ErrorViewModel(BaseModel):
    title: str = "An error occurred"
    message: str = "Something went wrong."
    status_code: Optional[int] = None
    request_id: Optional[str] = None

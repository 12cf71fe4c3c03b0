"""
Article normalization and small view helpers
"""
from typing import Iterable, List, Optional
from urllib.parse import urlencode

from bs4 import BeautifulSoup

from newsdesk.schemas.news import Article, ArticleDto
from newsdesk.services.constants import REMOVED_TITLE, UNKNOWN_SOURCE_NAME

DETAIL_PATH = "/news/detail"
RELATED_KEYWORD_MIN_LENGTH = 4
RELATED_KEYWORD_COUNT = 3


def strip_html(text: Optional[str]) -> Optional[str]:
    """
    Remove markup some publishers leave in description/content.

    Plain text is returned untouched.
    """
    if not text or "<" not in text:
        return text
    cleaned = BeautifulSoup(text, "html.parser").get_text(separator=" ", strip=True)
    return cleaned or None


def is_displayable(dto: ArticleDto) -> bool:
    """Whether a raw record can become an Article (non-blank, not removed title)."""
    title = dto.title
    return bool(title and title.strip()) and title != REMOVED_TITLE


def to_article(dto: ArticleDto) -> Article:
    """Map a raw NewsAPI record to the display Article."""
    source = dto.source
    return Article(
        source_id=source.id if source else None,
        source_name=(source.name if source and source.name else UNKNOWN_SOURCE_NAME),
        author=dto.author,
        title=dto.title,
        description=strip_html(dto.description),
        url=dto.url or "",
        image_url=dto.url_to_image,
        published_at=dto.published_at,
        content=strip_html(dto.content),
    )


def normalize_articles(records: Iterable[ArticleDto]) -> List[Article]:
    """
    Turn raw records into display articles.

    Records with a blank or "[Removed]" title are dropped; order is kept and
    duplicates are not removed.

    Args:
        records: raw NewsAPI article records

    Returns:
        List[Article]: display articles in upstream order
    """
    return [to_article(dto) for dto in records if is_displayable(dto)]


def extract_related_keywords(title: str) -> List[str]:
    """First three words of a title longer than three characters."""
    words = [w for w in (title or "").split() if len(w) >= RELATED_KEYWORD_MIN_LENGTH]
    return words[:RELATED_KEYWORD_COUNT]


def build_detail_url(article: Article) -> str:
    """
    Detail page link for an article.

    Articles have no stored id, so every field the page needs travels in the
    query string.
    """
    params = {"url": article.url, "title": article.title}
    if article.description:
        params["description"] = article.description
    if article.image_url:
        params["image"] = article.image_url
    if article.author:
        params["author"] = article.author
    if article.source_name:
        params["source"] = article.source_name
    if article.published_at:
        params["published_at"] = article.published_at.isoformat()
    return f"{DETAIL_PATH}?{urlencode(params)}"

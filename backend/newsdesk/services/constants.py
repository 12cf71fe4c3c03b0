"""
News lookup tables

Static reference data loaded once at import time. Mappings are wrapped in
MappingProxyType so nothing can mutate them at runtime.
"""
from types import MappingProxyType
from typing import Optional

# NewsAPI path segments
TOP_HEADLINES_PATH = "top-headlines"
EVERYTHING_PATH = "everything"
SOURCES_PATH = "top-headlines/sources"

# NewsAPI caps the "sources" parameter at 20 ids
MAX_SOURCES_PER_REQUEST = 20

# Title NewsAPI puts on articles that were taken down
REMOVED_TITLE = "[Removed]"
UNKNOWN_SOURCE_NAME = "Unknown Source"

# Strategy labels reported by the headline fallback
STRATEGY_TOP_HEADLINES = "top-headlines"
STRATEGY_SOURCES = "sources"
STRATEGY_SEARCH = "search"
STRATEGY_FAILED = "failed"

CATEGORIES = (
    "general",
    "business",
    "entertainment",
    "health",
    "science",
    "sports",
    "technology",
)

COUNTRIES = MappingProxyType({
    "us": "United States",
    "gb": "United Kingdom",
    "au": "Australia",
    "ca": "Canada",
    "in": "India",
    "de": "Germany",
    "fr": "France",
    "it": "Italy",
    "jp": "Japan",
    "br": "Brazil",
    "mx": "Mexico",
    "za": "South Africa",
    "ae": "UAE",
    "sg": "Singapore",
    "nz": "New Zealand",
})

SORT_OPTIONS = MappingProxyType({
    "publishedAt": "Newest First",
    "relevancy": "Most Relevant",
    "popularity": "Most Popular",
})

LANGUAGES = MappingProxyType({
    "en": "English",
    "ar": "Arabic",
    "de": "German",
    "es": "Spanish",
    "fr": "French",
    "he": "Hebrew",
    "it": "Italian",
    "nl": "Dutch",
    "no": "Norwegian",
    "pt": "Portuguese",
    "ru": "Russian",
    "sv": "Swedish",
    "zh": "Chinese",
})

CATEGORY_ICONS = MappingProxyType({
    "general": "fa-newspaper",
    "business": "fa-briefcase",
    "entertainment": "fa-film",
    "health": "fa-heart-pulse",
    "science": "fa-flask",
    "sports": "fa-trophy",
    "technology": "fa-microchip",
})

# Dominant language per country, used by the keyword-search fallback
COUNTRY_LANGUAGE = MappingProxyType({
    "us": "en", "gb": "en", "au": "en", "ca": "en",
    "nz": "en", "sg": "en", "za": "en",
    "in": "en",
    "de": "de", "at": "de",
    "fr": "fr",
    "it": "it",
    "br": "pt", "pt": "pt",
    "mx": "es", "ar": "es",
    "jp": "ja",
    "ae": "ar", "sa": "ar",
    "ru": "ru",
    "cn": "zh",
})

# Hand-picked NewsAPI source ids per country, used when the country filter
# returns too little
COUNTRY_SOURCES = MappingProxyType({
    "us": ("associated-press", "reuters", "the-washington-post",
           "the-new-york-times", "cnn", "fox-news", "usa-today",
           "abc-news", "nbc-news", "cbs-news", "axios", "politico"),
    "gb": ("bbc-news", "the-guardian-uk", "the-telegraph",
           "independent", "mirror", "the-sun", "sky-news",
           "the-times", "financial-times"),
    "au": ("abc-news-au", "australian-financial-review",
           "news-com-au", "the-sydney-morning-herald"),
    "ca": ("cbc-news", "financial-post", "the-globe-and-mail",
           "national-post"),
    "in": ("the-times-of-india", "the-hindu", "india-today",
           "ndtv", "economic-times"),
    "de": ("der-tagesspiegel", "die-zeit", "focus",
           "handelsblatt", "spiegel-online", "t3n", "wired-de"),
    "fr": ("le-monde", "liberation", "les-echos"),
    "it": ("ansa", "il-sole-24-ore", "la-repubblica"),
    "jp": ("asahi-shimbun",),
    "br": ("globo", "ig-news", "infodinero"),
    "mx": ("la-jornada", "proceso"),
    "za": ("news24", "the-citizen-za"),
    "ae": ("the-national",),
    "sg": ("channel-news-asia",),
    "nz": ("news-com-au",),  # closest available
})


def get_category_icon(category: str) -> str:
    return CATEGORY_ICONS.get((category or "").lower(), "fa-newspaper")


def get_country_name(country_code: str) -> str:
    """Display name for a country code; the code itself when unknown."""
    return COUNTRIES.get((country_code or "").lower(), country_code)


def get_language_for_country(country_code: str) -> str:
    """Dominant language for a country code, "en" when unmapped."""
    return COUNTRY_LANGUAGE.get((country_code or "").lower(), "en")


def get_sources_for_country(country_code: str) -> Optional[str]:
    """
    Comma-separated curated source ids for a country.

    Args:
        country_code: ISO 3166-1 alpha-2 code (any case)

    Returns:
        At most MAX_SOURCES_PER_REQUEST ids joined by commas, or None when the
        country has no curated list
    """
    sources = COUNTRY_SOURCES.get((country_code or "").lower())
    if not sources:
        return None
    return ",".join(sources[:MAX_SOURCES_PER_REQUEST])

"""
Application settings

Every value is read from the environment or from a `.env` file in the
working directory. Access the shared instance through `settings` or
`get_settings()`.
"""
from functools import lru_cache
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

HEADLINE_TIER_COUNT = 3


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===== Application =====
    PROJECT_NAME: str = "Newsdesk"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "newsdesk.log"  # empty string disables the file handler
    ALLOWED_ORIGINS: str = ""       # comma separated, empty allows all
    API_V1_STR: str = "/api/v1"
    REQUEST_TIMEOUT: float = 60.0   # whole-request budget enforced by middleware
    SLOW_REQUEST_THRESHOLD: float = 5.0

    # ===== NewsAPI =====
    NEWSAPI_BASE_URL: str = "https://newsapi.org/v2/"
    NEWSAPI_KEY: str = ""

    # ===== Cache =====
    CACHE_DURATION_MINUTES: int = 5
    SOURCES_CACHE_MULTIPLIER: int = 6  # sources change rarely
    REDIS_URL: Optional[str] = None    # None keeps the cache in process

    # ===== Paging =====
    DEFAULT_PAGE_SIZE: int = 12
    MAX_PAGE_SIZE: int = 100

    # ===== HTTP resilience =====
    REQUEST_TIMEOUT_SECONDS: float = 15.0
    RETRY_COUNT: int = 3
    RETRY_DELAY_SECONDS: float = 2.0
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = 5
    CIRCUIT_BREAKER_RESET_SECONDS: float = 30.0

    # ===== Headline fallback thresholds =====
    HEADLINE_MIN_RESULTS_TOP: int = 3
    HEADLINE_MIN_RESULTS_SOURCES: int = 1
    # wall-clock cap per tier, retries included; all three tiers must fit in REQUEST_TIMEOUT
    HEADLINE_TIER_TIMEOUT_SECONDS: float = 18.0

    # ===== Page defaults =====
    DEFAULT_CATEGORY: str = "general"
    DEFAULT_COUNTRY: str = "us"
    DEFAULT_LANGUAGE: str = "en"

    @model_validator(mode="after")
    def check_headline_budget(self) -> "Settings":
        if HEADLINE_TIER_COUNT * self.HEADLINE_TIER_TIMEOUT_SECONDS >= self.REQUEST_TIMEOUT:
            raise ValueError(
                f"HEADLINE_TIER_TIMEOUT_SECONDS ({self.HEADLINE_TIER_TIMEOUT_SECONDS:g}) x "
                f"{HEADLINE_TIER_COUNT} tiers must stay below REQUEST_TIMEOUT ({self.REQUEST_TIMEOUT:g})"
            )
        return self

    @property
    def cache_ttl_seconds(self) -> int:
        return self.CACHE_DURATION_MINUTES * 60

    @property
    def sources_cache_ttl_seconds(self) -> int:
        return self.cache_ttl_seconds * self.SOURCES_CACHE_MULTIPLIER


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

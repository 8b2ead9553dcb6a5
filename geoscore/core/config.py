"""
Configuration system with environment-based settings.
Uses pydantic-settings for validation and type safety.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_VERSION: str = "1.0.0"
    ENV: Literal["development", "staging", "production"] = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Fetcher
    USER_AGENT: str = "CheckGEOScoreBot/1.0 (+https://checkgeoscore.com)"
    DOCUMENT_TIMEOUT_MS: int = Field(15_000, gt=0)
    ARTIFACT_TIMEOUT_MS: int = Field(10_000, gt=0)

    # Page discovery
    MAX_PAGES: int = Field(20, ge=1)
    MAX_CRAWL_PAGES: int = Field(15, ge=1)
    SITEMAP_INDEX_FOLLOW: int = Field(2, ge=1)
    INTER_PAGE_DELAY_MS: int = Field(300, ge=0)
    SITEMAP_FALLBACK_CRAWL: bool = True
    SITEMAP_REMEDIATION_URL: str = "https://www.sitemaps.org/protocol.html"

    # Aggregation
    PROBLEM_PAGE_THRESHOLD: int = 40
    PROBLEM_PAGE_LIMIT: int = 5
    POTENTIAL_SCORE_GAIN: int = 30
    SCORE_LEVEL_CRITICAL: int = 30
    SCORE_LEVEL_POOR: int = 50
    SCORE_LEVEL_AVERAGE: int = 70
    GLOBAL_RECOMMENDATION_LIMIT: int = 5
    ACTION_PLAN_TIER_LIMIT: int = 5

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors(cls, v: str | list) -> list:
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @property
    def document_timeout(self) -> float:
        """Primary document budget in seconds."""
        return self.DOCUMENT_TIMEOUT_MS / 1000

    @property
    def artifact_timeout(self) -> float:
        """robots.txt / llms.txt / sitemap budget in seconds."""
        return self.ARTIFACT_TIMEOUT_MS / 1000


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance - created once per process."""
    return Settings()

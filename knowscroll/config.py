from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from knowscroll.core.exceptions import ConfigError

ALL_PROVIDERS = ["wikipedia", "blogs", "books", "textbooks", "github", "arxiv"]


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Keys
    github_token: str = Field(default="")
    pexels_api_key: str = Field(default="")

    # Application
    base_url: str = Field(default="http://localhost:5173")
    user_agent: str = Field(default="Knowscroll/1.0 (content discovery feed)")
    debug: bool = Field(default=False)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)


class RateLimitConfig:
    """Outbound request budget shared by every provider call."""

    def __init__(self, data: dict[str, Any]) -> None:
        self.max_requests: int = data.get("max_requests", 2)
        self.per_ms: int = data.get("per_ms", 1000)

        if self.max_requests < 1:
            raise ConfigError("provider_rate_limit.max_requests must be >= 1")
        if self.per_ms < 1:
            raise ConfigError("provider_rate_limit.per_ms must be >= 1")

    @property
    def per_seconds(self) -> float:
        return self.per_ms / 1000


class AggregationConfig:
    """Aggregation pipeline configuration from config.yml."""

    def __init__(self, data: dict[str, Any]) -> None:
        self.max_retries: int = data.get("max_retries", 3)
        self.retry_delay_ms: int = data.get("retry_delay_ms", 1000)
        self.request_timeout_ms: int = data.get("request_timeout_ms", 10000)
        self.min_excerpt_length: int = data.get("min_excerpt_length", 50)
        self.max_result_items: int = data.get("max_result_items", 50)
        self.thumbnail_concurrency: int = data.get("thumbnail_concurrency", 5)
        self.page_size: int = data.get("page_size", 10)
        self.excerpt_exempt_providers: list[str] = data.get(
            "excerpt_exempt_providers", ["books", "github"]
        )
        self.provider_rate_limit = RateLimitConfig(data.get("provider_rate_limit", {}))

        self._validate()

    def _validate(self) -> None:
        if self.max_retries < 0:
            raise ConfigError("max_retries must be >= 0")
        if self.retry_delay_ms < 0:
            raise ConfigError("retry_delay_ms must be >= 0")
        for name in (
            "request_timeout_ms",
            "max_result_items",
            "thumbnail_concurrency",
            "page_size",
        ):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be >= 1")
        if self.min_excerpt_length < 0:
            raise ConfigError("min_excerpt_length must be >= 0")

        unknown = set(self.excerpt_exempt_providers) - set(ALL_PROVIDERS)
        if unknown:
            raise ConfigError(f"Unknown excerpt_exempt_providers: {sorted(unknown)}")

    @property
    def request_timeout_seconds(self) -> float:
        return self.request_timeout_ms / 1000

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000


class ProvidersConfig:
    """Per-provider request knobs from config.yml."""

    def __init__(self, data: dict[str, Any]) -> None:
        self.enabled: list[str] = data.get("enabled", list(ALL_PROVIDERS))
        self.page_size: int = data.get("page_size", 10)
        self.book_subjects: list[str] = data.get(
            "book_subjects", ["science", "programming", "technology", "fiction"]
        )
        self.github_topics: list[str] = data.get(
            "github_topics",
            ["machine-learning", "web-development", "data-science", "mobile-apps"],
        )
        self.arxiv_categories: list[str] = data.get("arxiv_categories", ["cs.AI", "cs.LG"])

        unknown = set(self.enabled) - set(ALL_PROVIDERS)
        if unknown:
            raise ConfigError(f"Unknown providers enabled: {sorted(unknown)}")
        if self.page_size < 1:
            raise ConfigError("providers.page_size must be >= 1")


class AppConfig:
    """Combined application configuration from .env and config.yml."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.settings = Settings()
        if data is None:
            data = self._load_yaml()

        self.aggregation = AggregationConfig(data.get("aggregation", {}))
        self.providers = ProvidersConfig(data.get("providers", {}))

    @staticmethod
    def _load_yaml() -> dict[str, Any]:
        config_path = Path("config.yml")
        if not config_path.exists():
            return {}
        with open(config_path) as f:
            return yaml.safe_load(f) or {}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


@lru_cache
def get_config() -> AppConfig:
    """Get cached full config instance."""
    return AppConfig()

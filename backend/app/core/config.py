"""
Newsdesk Editorial Core - Configuration Module
==============================================
All configuration is loaded from environment variables.
Secrets never live in code.
"""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env."""

    # App
    app_name: str = "Newsdesk Editorial Core"
    app_env: str = "development"
    app_debug: bool = True
    app_secret_key: str = Field(..., min_length=32)
    app_port: int = 8000

    @property
    def secret_key(self) -> str:
        return self.app_secret_key

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "newsdesk_db"
    postgres_user: str = "newsdesk"
    postgres_password: str = Field(..., min_length=8)

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def database_url_sync(self) -> str:
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str = ""
    redis_db: int = 0

    @property
    def redis_url(self) -> str:
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # AI Providers
    ai_provider: str = ""  # gemini | openai | "" (first configured)
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    openai_fallback_model: str = "gpt-4o-mini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_fallback_model: str = "gemini-2.5-flash"
    ai_timeout_ms: int = 12000
    ai_temperature: float = 0.6
    ai_max_output_tokens: int = 2048

    # Composition
    article_min_words: int = 600
    article_max_words: int = 1200
    short_news_max_words: int = 60
    short_news_title_max_chars: int = 35
    newspaper_daily_limit: int = 2
    local_day_offset_minutes: int = 330  # fixed +05:30
    language_strict_mode: bool = False
    language_min_script_ratio: float = 0.6
    default_language_code: str = "te"

    # Prompts
    prompt_cache_ttl_seconds: int = 60

    # Read progress
    read_complete_min_time_ms: int = 8000
    read_complete_scroll_percent: int = 85
    read_max_delta_ms: int = 300000

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def ai_timeout_seconds(self) -> float:
        return max(0.1, self.ai_timeout_ms / 1000.0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_prefix = "NEWSDESK_"


def _load_dotenv_pairs(dotenv_path: str = ".env") -> dict[str, str]:
    path = Path(dotenv_path)
    if not path.exists():
        return {}

    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            values[key] = value
    return values


def _bootstrap_prefixed_env() -> None:
    """Populate NEWSDESK_ vars from unprefixed keys (AI_TIMEOUT_MS, OPENAI_API_KEY...)."""
    legacy_pairs = _load_dotenv_pairs(".env")
    prefix = "NEWSDESK_"

    for field_name in Settings.model_fields.keys():
        legacy_key = field_name.upper()
        prefixed_key = f"{prefix}{legacy_key}"

        if os.getenv(prefixed_key):
            continue

        legacy_value = os.getenv(legacy_key)
        if legacy_value is not None:
            os.environ[prefixed_key] = legacy_value
            continue

        if legacy_key in legacy_pairs:
            os.environ[prefixed_key] = legacy_pairs[legacy_key]


_bootstrap_prefixed_env()


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()

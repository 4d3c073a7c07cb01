"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the action dispatcher and
the operational scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


_SETTINGS_CONFIG = SettingsConfigDict(populate_by_name=True, extra="ignore")


class TwitterSettings(BaseSettings):
    """Configuration required for the Twitter OAuth2 app and API calls."""

    model_config = _SETTINGS_CONFIG

    client_id: str = Field(..., validation_alias="TWITTER_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="TWITTER_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="TWITTER_REDIRECT_URI")
    scopes: str = Field(
        "tweet.read tweet.write users.read offline.access",
        validation_alias="TWITTER_SCOPES",
        description="Space separated OAuth scopes requested at authorization.",
    )
    search_max_results: int = Field(
        10,
        validation_alias="TWITTER_SEARCH_MAX_RESULTS",
        description="Number of candidates requested when harvesting relevant posts.",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _normalize_scopes(cls, value: str | list[str] | tuple[str, ...]) -> str:
        """Accept comma or space separated scopes, or a sequence of scopes."""
        if isinstance(value, (list, tuple)):
            return " ".join(value)
        parts = value.replace(",", " ").split()
        return " ".join(parts)


class OpenAISettings(BaseSettings):
    """Configuration for OpenAI chat completion access."""

    model_config = _SETTINGS_CONFIG

    api_key: str = Field(..., validation_alias="OPENAI_API_KEY")
    model_name: str = Field("gpt-4o-mini", validation_alias="OPENAI_MODEL_NAME")
    max_tokens: int = Field(100, validation_alias="OPENAI_MAX_TOKENS")
    temperature: float = Field(0.7, validation_alias="OPENAI_TEMPERATURE")


class ContentGeneratorSettings(BaseSettings):
    """Settings for the external bulk content generation service."""

    model_config = _SETTINGS_CONFIG

    url: str = Field(
        "https://backend-smqp.onrender.com/generate-content",
        validation_alias="CONTENT_GENERATOR_URL",
    )
    timeout_seconds: float = Field(60.0, validation_alias="CONTENT_GENERATOR_TIMEOUT")


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = _SETTINGS_CONFIG

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = _SETTINGS_CONFIG

    session_ttl_seconds: int = Field(900, validation_alias="OAUTH_SESSION_TTL")


class RateLimitSettings(BaseSettings):
    """Local admission control for Twitter search calls."""

    model_config = _SETTINGS_CONFIG

    window_seconds: int = Field(900, validation_alias="RATE_LIMIT_WINDOW_SECONDS")
    quota: int = Field(300, validation_alias="RATE_LIMIT_QUOTA")
    backend: Literal["memory", "redis"] = Field(
        "memory", validation_alias="RATE_LIMIT_BACKEND"
    )
    redis_url: str = Field("redis://localhost:6379/0", validation_alias="REDIS_URL")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = _SETTINGS_CONFIG

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: str = Field(
        "http://localhost:8080",
        validation_alias="FRONTEND_BASE_URL",
        description="Front-end origin users are redirected to after connecting.",
    )
    database_path: str = Field("data/brandpilot.db", validation_alias="DATABASE_PATH")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    twitter: TwitterSettings = Field(default_factory=TwitterSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    content_generator: ContentGeneratorSettings = Field(
        default_factory=ContentGeneratorSettings
    )


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "ContentGeneratorSettings",
    "OAuthSettings",
    "OpenAISettings",
    "RateLimitSettings",
    "SecuritySettings",
    "TwitterSettings",
    "get_settings",
]

"""Application configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings validated at startup."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    database_path: Path = Field(default=Path("cellar.db"), alias="DATABASE_PATH")
    # Service-wide credential for the first-party gateway; per-user keys are stored on connections.
    lovable_api_key: str | None = Field(default=None, alias="LOVABLE_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    anthropic_base_url: str = Field(default="https://api.anthropic.com", alias="ANTHROPIC_BASE_URL")
    anthropic_version: str = Field(default="2023-06-01", alias="ANTHROPIC_VERSION")
    anthropic_max_tokens: int = Field(default=1024, alias="ANTHROPIC_MAX_TOKENS")
    google_base_url: str = Field(
        default="https://generativelanguage.googleapis.com",
        alias="GOOGLE_BASE_URL",
    )
    lovable_base_url: str = Field(default="https://ai.gateway.lovable.dev/v1", alias="LOVABLE_BASE_URL")
    request_timeout_seconds: float = Field(default=30.0, alias="REQUEST_TIMEOUT_SECONDS")
    # When unset, bearer tokens are checked against the local auth_sessions table.
    auth_url: str | None = Field(default=None, alias="AUTH_URL")
    auth_api_key: str | None = Field(default=None, alias="AUTH_API_KEY")
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


def load_settings() -> Settings:
    """Load and validate settings."""

    return Settings()

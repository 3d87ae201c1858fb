"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_key: str
    bridge_url: str = "http://127.0.0.1:8080"
    bridge_token: str | None = None
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000
    log_level: str = "INFO"
    headless: bool = True
    browser_args: str = "--no-sandbox,--disable-setuid-sandbox"
    auth_data_path: str | None = None
    chat_id_suffix: str = "@c.us"
    initialize_timeout_seconds: float | None = None
    cors_allow_origins: str = "*"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_csv(raw: str | None) -> list[str]:
    """Split a comma-separated setting into its non-empty values."""
    if raw is None:
        return []
    return [chunk.strip() for chunk in raw.split(",") if chunk.strip()]

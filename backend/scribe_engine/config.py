"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_BACKEND_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Scribe Engine API"
    scribe_api_url: str = "http://localhost:8080/api"
    provider_id: str = ""
    schema_definition_path: str = str(_BACKEND_DIR / "schemas.json")
    default_strategy: str = "sequential"
    api_timeout_seconds: int = 60
    initial_chunks: list[str] = []

    model_config = SettingsConfigDict(
        env_file=str(_BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()

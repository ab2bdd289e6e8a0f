"""
Chef Fuori-Sede - Configuration and settings.

Everything comes from the environment (or a local .env file).
Only OPENAI_API_KEY is required.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI
    openai_api_key: str

    # Models per capability
    text_model: str = "gpt-4.1-mini"
    vision_model: str = "gpt-4.1-mini"
    image_model: str = "gpt-image-1"
    image_size: str = "1024x1024"

    # Max image requests in flight during batch generation
    image_concurrency: int = Field(default=5, ge=1)

    # Durable key-value store (pantry, exclusions, favorites)
    storage_path: Path = Path(".fuorisede/storage.json")

    # Application
    fuorisede_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # FUORISEDE_LOG_PROMPTS=1 - log prompts to local files (dev only)
    fuorisede_log_prompts: bool = False

    @property
    def is_development(self) -> bool:
        return self.fuorisede_env == "development"

    @property
    def is_production(self) -> bool:
        return self.fuorisede_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()

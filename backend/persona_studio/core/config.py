"""Configuration management using pydantic-settings."""
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Build-time Gemini credential (API_KEY). Empty or '""' means "not set".
    api_key: str = ""

    # User-supplied credential, persisted across restarts
    credential_store_path: Path = Path("data/credentials.json")
    credential_key_name: str = "GEMINI_API_KEY"

    # Gemini models
    text_model: str = "gemini-2.5-flash"
    image_model: str = "gemini-3-pro-image-preview"
    image_aspect_ratio: str = "1:1"
    image_size: str = "2K"
    persona_language: str = "Korean"

    # Seconds the session stays in SUCCESS before falling back to IDLE
    success_reset_seconds: float = 1.0

    # Application settings
    app_name: str = "persona-studio"

    # Server settings
    backend_host: str = "localhost"
    backend_port: int = 8000
    frontend_port: int = 3000


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

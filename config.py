"""
Configuration and settings for the business card service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Base used when building shareable card links and QR codes
    public_base_url: str = Field(default="http://localhost:8000")

    # Firebase / Firestore
    firebase_project_id: Optional[str] = Field(default=None)
    cards_collection: str = Field(default="businessCards")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    qr_logo_path: str = Field(default="logo.png")
    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

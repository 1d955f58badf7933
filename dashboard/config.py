"""Application configuration loaded from config.yaml and environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent
CONFIG_YAML_PATH = PROJECT_ROOT / "config.yaml"


# --- YAML sub-models ---


class GeminiConfig(BaseModel):
    """Gemini model configuration."""

    model: str = "gemini-2.5-flash"


class StorageConfig(BaseModel):
    """Digest persistence settings."""

    table: str = "digest_records"


class UploadConfig(BaseModel):
    """Limits for datasets used by the data chat."""

    max_bytes: int = 2 * 1024 * 1024
    max_chat_rows: int = 500
    summary_sample_rows: int = 10
    session_ttl_seconds: int = 3600
    assets_dir: str = "assets"


# --- Main settings ---


class Settings(BaseSettings):
    """Application settings combining .env secrets and config.yaml values."""

    # App config
    env: str = Field(default="dev")
    log_format: str = Field(default="text")
    cors_origins: str = Field(default="http://localhost:5173")
    timezone: str = Field(default="UTC")

    # Secrets from .env
    gemini_api_key: str = Field(default="")
    supabase_url: str = Field(default="")
    supabase_secret_key: str = Field(default="")
    supabase_service_role_key: str = Field(default="")

    # YAML-sourced config
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    uploads: UploadConfig = Field(default_factory=UploadConfig)

    model_config = {
        "env_file": str(PROJECT_ROOT / ".env"),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def __init__(self, **kwargs: Any) -> None:
        yaml_data = _load_yaml_config()
        merged = {**yaml_data, **kwargs}
        super().__init__(**merged)

    @property
    def effective_supabase_secret_key(self) -> str:
        """Return the secret key, preferring the new format over the legacy one."""
        return self.supabase_secret_key or self.supabase_service_role_key

    @property
    def cors_origin_list(self) -> list[str]:
        """Return configured CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def assets_path(self) -> Path:
        """Return the directory holding bundled chat datasets."""
        path = Path(self.uploads.assets_dir)
        return path if path.is_absolute() else PROJECT_ROOT / path


def _load_yaml_config() -> dict[str, Any]:
    """Read and parse config.yaml, returning an empty dict on failure."""
    if not CONFIG_YAML_PATH.exists():
        return {}
    with CONFIG_YAML_PATH.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings singleton."""
    return Settings()

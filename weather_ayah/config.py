"""
Configuration loading for weather-ayah.

Loads non-secret settings from config.yaml, secrets from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_RECITATION_BASE_URL = (
    "https://cdn.islamic.network/quran/audio-surah/128/ar.alafasy"
)


class AppConfig(BaseModel):
    """Application configuration. Secrets come from env vars, rest from YAML."""

    # Secrets (from environment only)
    openai_api_key: Optional[str] = None

    # Generator settings
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    generator_timeout: float = Field(default=30.0, gt=0)

    # Snapshot settings
    default_location: str = "Arlington,VA,US"
    weather_ttl_minutes: int = Field(default=60, ge=1)
    ayah_ttl_minutes: int = Field(default=120, ge=1)
    recitation_base_url: str = DEFAULT_RECITATION_BASE_URL

    # Keep snapshots warm in the background
    scheduler_enabled: bool = True

    @field_validator("default_location")
    @classmethod
    def validate_default_location(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("default_location must not be blank")
        return value.strip()

    @property
    def generator_configured(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def weather_ttl_seconds(self) -> int:
        return self.weather_ttl_minutes * 60

    @property
    def ayah_ttl_seconds(self) -> int:
        return self.ayah_ttl_minutes * 60


def load_config(config_path: str | None = None) -> AppConfig:
    """
    Load configuration from YAML file + environment variables.

    Args:
        config_path: Path to config.yaml. If None, reads CONFIG_PATH env var
                     (default: config.yaml in current directory).

    Returns:
        Validated AppConfig instance.
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config.yaml")

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}

    # Inject secrets from environment (never from YAML)
    config_data = {
        **raw,
        "openai_api_key": os.environ.get("OPENAI_API_KEY") or None,
    }

    return AppConfig(**config_data)

"""
Application configuration utilities.

This module defines the ``Settings`` class used throughout the service for
environment variables and provides a helper to load YAML files containing
planning defaults such as the driver settings.
"""

from __future__ import annotations

import os
from functools import lru_cache

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # API server configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # GEMINI API key (optional; required for simulated forecasts and insights)
    gemini_api_key: str | None = None
    gemini_forecast_model: str = "gemini-1.5-pro"
    gemini_insight_model: str = "gemini-1.5-flash"

    # BigQuery REST endpoint used by the warehouse bridge
    bigquery_api_url: str = "https://bigquery.googleapis.com/bigquery/v2"
    warehouse_row_limit: int = 1000
    warehouse_timeout_seconds: float = 30.0

    # YAML configuration directory (drivers.yaml)
    config_dir: str = "configs"


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return a cached instance of ``Settings``.

    Using a cache ensures that environment variables are only read once.
    """
    return Settings()


def load_yaml(file_path: str) -> dict:
    """Load a YAML file from the given path and return its contents.

    If the file does not exist, an empty dictionary is returned.
    """
    if not os.path.exists(file_path):
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

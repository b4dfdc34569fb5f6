"""
Application configuration utilities.

This module defines the ``Settings`` class used by the API host for
environment variables and provides helpers to load the YAML file holding
the default forecast settings.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Dict, Tuple

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models.schemas import AggregationPeriod, ForecastConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_FORECAST_SETTINGS: Dict[str, Any] = {
    "method": "wma",
    "timeframe": "4_weeks",
    "periods": 4,
    "safety_stock_percent": 20,
    "lead_time_days": 7,
    "confidence_level": 0.95,
    "aggregation_period": "weekly",
}


class Settings(BaseSettings):
    """Configuration loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # API server configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Directory holding settings.yaml
    config_dir: str = "configs"

    log_level: str = "INFO"

    # Comma separated list; empty means allow all origins
    cors_origins: str = ""


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


def _field_is_valid(key: str, value: Any) -> bool:
    if key == "aggregation_period":
        try:
            AggregationPeriod(value)
        except ValueError:
            return False
        return True
    try:
        ForecastConfig(**{key: value})
    except ValidationError:
        return False
    return True


def load_forecast_defaults(config_dir: str | None = None) -> Tuple[ForecastConfig, AggregationPeriod]:
    """Return the default ``ForecastConfig`` and aggregation period.

    Values under the ``forecast`` key of ``settings.yaml`` override the
    built-in defaults. Missing, null or invalid entries keep the built-in
    value; invalid ones are logged.
    """

    config_dir = config_dir or get_settings().config_dir
    settings_path = os.path.join(config_dir, "settings.yaml")
    loaded = load_yaml(settings_path).get("forecast") or {}

    merged = DEFAULT_FORECAST_SETTINGS.copy()
    if isinstance(loaded, dict):
        for key, value in loaded.items():
            if key not in merged or value is None:
                continue
            if not _field_is_valid(key, value):
                LOGGER.warning("Ignoring invalid forecast setting %s=%r in %s", key, value, settings_path)
                continue
            merged[key] = value
    else:
        LOGGER.warning("Forecast settings at %s are not a mapping; using defaults.", settings_path)

    period = AggregationPeriod(merged.pop("aggregation_period"))
    return ForecastConfig(**merged), period

"""
Application configuration with environment variable support.
"""
from __future__ import annotations

import os
from typing import Dict

from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_env_float(key: str, default: float) -> float:
    """Get float value from environment variable with fallback."""
    try:
        return float(os.getenv(key, default))
    except (ValueError, TypeError):
        return default


def _get_env_int(key: str, default: int) -> int:
    """Get integer value from environment variable with fallback."""
    try:
        return int(os.getenv(key, default))
    except (ValueError, TypeError):
        return default


def _get_env_list(key: str, default: list[str], separator: str = ",") -> list[str]:
    """Get list value from environment variable with fallback."""
    value = os.getenv(key)
    if not value:
        return default
    return [item.strip() for item in value.split(separator) if item.strip()]


class Settings(BaseSettings):
    """Secrets and model selection, read from the environment or `.env`."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    # "openai" or "local"; empty picks openai when a key is present
    CLASSIFIER_BACKEND: str = ""
    LOCAL_MODEL: str = "facebook/bart-large-mnli"
    PORT: int = 8000


settings = Settings()


# Source phases, in descending order of significance
WATCH_HISTORY = "watch_history"
SEARCH = "search"
RECOMMENDED = "recommended"
HOME_FEED = "home_feed"
SUBSCRIPTIONS = "subscriptions"

SOURCE_PHASES = (WATCH_HISTORY, SEARCH, RECOMMENDED, HOME_FEED, SUBSCRIPTIONS)
DEFAULT_SOURCE_PHASE = HOME_FEED

# Significance Weights (0 to 100)
# How strongly a video's place of collection counts toward aggregate metrics.
# Each entry can be overridden with WEIGHT_<PHASE>, e.g. WEIGHT_SEARCH=80.
SIGNIFICANCE_WEIGHTS: Dict[str, int] = {
    WATCH_HISTORY: _get_env_int("WEIGHT_WATCH_HISTORY", 100),
    SEARCH: _get_env_int("WEIGHT_SEARCH", 75),
    RECOMMENDED: _get_env_int("WEIGHT_RECOMMENDED", 60),
    HOME_FEED: _get_env_int("WEIGHT_HOME_FEED", 50),
    SUBSCRIPTIONS: _get_env_int("WEIGHT_SUBSCRIPTIONS", 40),
}

# Stance Analysis Settings
DISTRIBUTION_TOLERANCE: float = 1e-6
CONFIDENCE_FLOOR: float = _get_env_float("CONFIDENCE_FLOOR", 0.5)
# Percentage points a bucket may sit under an even split and still count as balanced
BALANCE_TOLERANCE: float = _get_env_float("BALANCE_TOLERANCE", 0.5)
DEFAULT_RECOMMENDATION_LIMIT: int = _get_env_int("RECOMMENDATION_LIMIT", 6)
TOP_TOPICS_LIMIT: int = _get_env_int("TOP_TOPICS_LIMIT", 5)

# Echo-chamber overlay
MIN_POLITICAL_FOR_DOMINANCE: int = _get_env_int("MIN_POLITICAL_FOR_DOMINANCE", 5)
DOMINANCE_SHARE: float = _get_env_float("DOMINANCE_SHARE", 0.5)

# Classification Settings
CLASSIFIER_CONCURRENCY: int = _get_env_int("CLASSIFIER_CONCURRENCY", 4)
CLASSIFIER_TIMEOUT: float = _get_env_float("CLASSIFIER_TIMEOUT", 30.0)
CLASSIFIER_MAX_RETRIES: int = _get_env_int("CLASSIFIER_MAX_RETRIES", 2)
INITIAL_RETRY_DELAY: float = _get_env_float("INITIAL_RETRY_DELAY", 0.5)
MAX_FAILURE_FRACTION: float = _get_env_float("MAX_FAILURE_FRACTION", 0.5)

# CORS Configuration
CORS_ALLOW_ORIGINS: list[str] = _get_env_list("CORS_ALLOW_ORIGINS", ["*"])

# Logging Configuration
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT: str = os.getenv(
    "LOG_FORMAT",
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

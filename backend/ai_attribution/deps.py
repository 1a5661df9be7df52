"""Dependency providers and settings management."""

from functools import lru_cache
from typing import Dict, List, Optional

from fastapi import Depends
from pydantic_settings import BaseSettings, SettingsConfigDict

from .services.attribution.rules import DetectionConfig, build_detection_config


class Settings(BaseSettings):
    """Application settings loaded from environment or .env."""

    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"

    # Aggregation
    PRIMARY_CURRENCY: Optional[str] = None  # None = first observed currency
    GMV_METRIC: str = "current_total_price"  # or subtotal_price / gross-total / subtotal
    DISPLAY_LANGUAGE: str = "English"  # "English" or "中文"
    DISPLAY_TIMEZONE: str = "UTC"
    MAX_DASHBOARD_ORDERS: int = 5000

    # Attribution rules (JSON objects in env, e.g. {"chat.example.ai": "Other-AI"})
    ORDER_TAG_PREFIX: str = "AI-Source"
    CUSTOM_AI_DOMAINS: Dict[str, str] = {}
    CUSTOM_UTM_SOURCES: Dict[str, str] = {}
    UTM_MEDIUM_KEYWORDS: Optional[List[str]] = None  # None = built-in keyword list

    # Observability
    SENTRY_DSN: Optional[str] = None
    ENVIRONMENT: str = "development"
    RELEASE_VERSION: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # type: ignore[call-arg]


def get_detection_config(settings: Settings = Depends(get_settings)) -> DetectionConfig:
    """Merchant rules merged ahead of the built-in tables."""
    return build_detection_config(
        custom_domains=settings.CUSTOM_AI_DOMAINS,
        custom_utm_sources=settings.CUSTOM_UTM_SOURCES,
        utm_medium_keywords=settings.UTM_MEDIUM_KEYWORDS,
        tag_prefix=settings.ORDER_TAG_PREFIX,
        language=settings.DISPLAY_LANGUAGE,
    )

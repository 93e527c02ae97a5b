"""
Configuration Settings

Centralized configuration management using Pydantic and environment variables.
"""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All sensitive values should be stored in .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Open-Meteo endpoints (no API key required)
    open_meteo_marine_url: str = "https://marine-api.open-meteo.com/v1/marine"
    open_meteo_forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    storm_track_url: Optional[str] = None
    provider_timeout_seconds: float = 10.0
    provider_user_agent: str = "Tidewatch/0.2"

    # Reference data (weights, thresholds, defaults, regional multipliers)
    reference_tables_path: Optional[str] = None
    coastline_segments_path: Optional[str] = None

    # Default location used by scripts and the API when none is supplied
    default_latitude: float = -20.2
    default_longitude: float = 57.5

    # Redis settings (response cache)
    redis_url: Optional[str] = "redis://localhost:6379/0"
    cache_ttl_seconds: int = 1800
    cache_time_bucket_seconds: int = 1800

    # Alert settings
    alert_slack_webhook: Optional[str] = None
    alert_enable_slack: bool = False
    alert_min_level: str = "high"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "json"

    # Application settings
    environment: str = "development"
    debug: bool = False

    # Parallel domain assessments
    engine_max_workers: int = 5


# Singleton instance
settings = Settings()

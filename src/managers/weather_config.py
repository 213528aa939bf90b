"""
Weather configuration management for the HK Travel Planner.

This module holds the settings for the OpenWeatherMap integration and the
mock weather source used when no API key is configured.
"""

import logging
import os
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from version import (
    __weather_version__,
    __weather_api_provider__,
    __weather_api_url__,
)

logger = logging.getLogger(__name__)

API_KEY_ENV_VAR = "OPENWEATHERMAP_API_KEY"

# Mong Kok, the default point for Hong Kong weather
HONG_KONG_LATITUDE = 22.3193
HONG_KONG_LONGITUDE = 114.1694


class WeatherConfig(BaseModel):
    """
    Configuration for weather data integration.

    Coordinates default to central Kowloon; units and language match the
    OpenWeatherMap query parameters.
    """

    enabled: bool = Field(default=True, description="Enable weather integration")
    api_key: Optional[str] = Field(default=None, description="OpenWeatherMap API key")
    use_mock: bool = Field(default=False, description="Use generated weather instead of the API")

    location_latitude: float = Field(default=HONG_KONG_LATITUDE, description="Location latitude")
    location_longitude: float = Field(default=HONG_KONG_LONGITUDE, description="Location longitude")
    location_name: str = Field(default="Hong Kong", description="Location display name")

    units: str = Field(default="metric", description="OpenWeatherMap unit system")
    language: str = Field(default="zh_tw", description="Condition description language")

    refresh_interval_minutes: int = Field(
        default=30,
        ge=5,
        le=120,
        description="Weather refresh interval in minutes"
    )
    cache_duration_minutes: int = Field(
        default=10,
        ge=1,
        le=60,
        description="Weather data cache duration"
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum API retry attempts"
    )
    retry_backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Initial delay between retries, doubled on each attempt"
    )
    timeout_seconds: int = Field(
        default=10,
        ge=1,
        le=60,
        description="API request timeout"
    )

    api_provider: str = Field(default=__weather_api_provider__, description="Weather API provider name")
    api_url: str = Field(default=__weather_api_url__, description="Weather API endpoint")
    config_version: str = Field(default=__weather_version__, description="Weather configuration version")

    @field_validator('location_latitude')
    @classmethod
    def validate_latitude(cls, v):
        """Validate latitude range."""
        if not (-90 <= v <= 90):
            raise ValueError('Latitude must be between -90 and 90')
        return v

    @field_validator('location_longitude')
    @classmethod
    def validate_longitude(cls, v):
        """Validate longitude range."""
        if not (-180 <= v <= 180):
            raise ValueError('Longitude must be between -180 and 180')
        return v

    @field_validator('units')
    @classmethod
    def validate_units(cls, v):
        """Validate unit system."""
        if v not in ['metric', 'imperial', 'standard']:
            raise ValueError('Units must be metric, imperial or standard')
        return v

    @field_validator('api_key')
    @classmethod
    def validate_api_key(cls, v):
        """Treat blank keys as missing."""
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v

    def get_coordinates(self) -> tuple[float, float]:
        """Get location coordinates as tuple."""
        return (self.location_latitude, self.location_longitude)

    def has_api_key(self) -> bool:
        """Check if an API key is configured."""
        return bool(self.api_key)

    def should_use_mock(self) -> bool:
        """Check if the mock source should serve weather."""
        return self.use_mock or not self.has_api_key()

    def get_cache_duration_seconds(self) -> int:
        """Get cache duration in seconds."""
        return self.cache_duration_minutes * 60

    def get_refresh_interval_seconds(self) -> int:
        """Get refresh interval in seconds."""
        return self.refresh_interval_minutes * 60

    def with_env_overrides(self) -> "WeatherConfig":
        """Return a copy with the API key taken from the environment when set."""
        env_key = os.environ.get(API_KEY_ENV_VAR)
        if env_key and env_key.strip():
            logger.debug(f"Using weather API key from {API_KEY_ENV_VAR}")
            return self.model_copy(update={"api_key": env_key.strip()})
        return self

    def to_summary_dict(self) -> dict:
        """Get configuration summary for display."""
        return {
            "enabled": self.enabled,
            "location": self.location_name,
            "coordinates": f"{self.location_latitude:.4f}, {self.location_longitude:.4f}",
            "source": "mock" if self.should_use_mock() else self.api_provider,
            "refresh_interval": f"{self.refresh_interval_minutes} minutes",
            "cache_duration": f"{self.cache_duration_minutes} minutes",
            "config_version": self.config_version,
        }


class WeatherConfigFactory:
    """Factory for creating weather configurations."""

    @staticmethod
    def create_default_config() -> WeatherConfig:
        """Create default Hong Kong weather configuration."""
        logger.info("Creating default weather configuration")
        return WeatherConfig()

    @staticmethod
    def create_mock_config() -> WeatherConfig:
        """Create configuration that always uses generated weather."""
        return WeatherConfig(use_mock=True)

    @staticmethod
    def create_from_dict(config_dict: dict) -> WeatherConfig:
        """Create configuration from dictionary."""
        try:
            config = WeatherConfig(**config_dict)
            logger.info("Weather configuration created from dictionary")
            return config
        except ValueError as e:
            logger.error(f"Failed to create weather config from dict: {e}")
            raise

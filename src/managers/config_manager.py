"""
Configuration management for the HK Travel Planner.

This module handles loading, saving, and validating application configuration
using Pydantic models for type safety and validation.
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator

from version import __version__, __app_name__
from .weather_config import WeatherConfig

logger = logging.getLogger(__name__)

KNOWN_TRANSPORT_MODES = ["MTR", "Bus", "Minibus", "Tram", "Ferry", "Taxi", "Walk", "Light Rail"]


class TransportConfig(BaseModel):
    """Configuration for the simulated transport data source."""

    latency_scale: float = Field(
        default=1.0,
        ge=0.0,
        le=10.0,
        description="Multiplier applied to simulated network latency"
    )
    arrival_jitter_seconds: int = Field(
        default=0,
        ge=0,
        le=600,
        description="Upper bound of random delay added to arrival estimates"
    )
    rate_limit_per_minute: int = Field(default=120, ge=1, le=10000)
    rate_limit_max_wait_seconds: float = Field(
        default=5.0,
        ge=0.0,
        le=60.0,
        description="Longest wait for a rate limit slot before the call is refused"
    )
    cache_ttl_seconds: int = Field(default=300, ge=0, le=86400)
    cache_max_size: int = Field(default=256, ge=1, le=10000)


class RouteConfig(BaseModel):
    """Default route-planning preferences."""

    transport_modes: List[str] = Field(default_factory=lambda: ["MTR", "Bus", "Walk"])
    max_walking_distance_km: float = Field(default=2.0, ge=0.0, le=20.0)
    max_transfers: int = Field(default=3, ge=0, le=10)

    @field_validator('transport_modes')
    @classmethod
    def validate_transport_modes(cls, v):
        """Validate transport mode names."""
        unknown = [mode for mode in v if mode not in KNOWN_TRANSPORT_MODES]
        if unknown:
            raise ValueError(f"Unknown transport modes: {', '.join(unknown)}")
        return v


class AppSettings(BaseModel):
    """User-facing application settings."""

    save_history: bool = True
    max_recent_routes: int = Field(default=10, ge=1, le=100)
    nearby_radius_km: float = Field(default=5.0, gt=0.0, le=50.0)
    nearby_bus_radius_km: float = Field(default=0.5, gt=0.0, le=10.0)
    language: str = "zh-HK"


class ConfigData(BaseModel):
    """Main configuration data model."""

    weather: WeatherConfig = Field(default_factory=WeatherConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    routes: RouteConfig = Field(default_factory=RouteConfig)
    app: AppSettings = Field(default_factory=AppSettings)


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""

    pass


class ConfigManager:
    """
    Manages application configuration with file persistence.

    Handles loading configuration from JSON files, creating default
    configurations, and saving changes back to disk.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file. If None, uses the
                per-platform config directory
        """
        if config_path is None:
            self.config_path = self.get_default_config_path()
        else:
            self.config_path = Path(config_path)
        self.config: Optional[ConfigData] = None

        logger.debug(f"ConfigManager initialized with path: {self.config_path}")

    @staticmethod
    def get_config_dir() -> Path:
        """
        Get the per-platform configuration directory.

        On Windows, uses %APPDATA%/HKTravel
        On Linux, uses $XDG_CONFIG_HOME/HKTravel or ~/.config/HKTravel
        """
        if os.name == "nt":
            appdata = os.environ.get("APPDATA")
            if appdata:
                return Path(appdata) / __app_name__
            return Path.home() / __app_name__

        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / __app_name__
        return Path.home() / ".config" / __app_name__

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Get the default configuration file path."""
        return cls.get_config_dir() / "config.json"

    def load_config(self) -> ConfigData:
        """
        Load configuration from file.

        If the configuration file doesn't exist, creates a default one.

        Returns:
            ConfigData: The loaded configuration

        Raises:
            ConfigurationError: If the configuration file is invalid
        """
        logger.debug(f"Loading config from: {self.config_path}")

        if not self.config_path.exists():
            logger.info(f"Config file doesn't exist, creating default at: {self.config_path}")
            self.create_default_config()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self.config = ConfigData(**data)
            logger.debug(f"Successfully loaded config from: {self.config_path}")
            return self.config
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in config file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration values: {e}")
        except (OSError, TypeError) as e:
            raise ConfigurationError(f"Failed to load config: {e}")

    def save_config(self, config: ConfigData) -> bool:
        """
        Save configuration to file.

        Returns:
            bool: True if saved successfully, False otherwise
        """
        logger.info(f"Saving config to: {self.config_path}")

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(config.model_dump(), f, indent=2, ensure_ascii=False)
            self.config = config
            return True
        except OSError as e:
            logger.error(f"Failed to save config to {self.config_path}: {e}")
            return False

    def create_default_config(self) -> None:
        """Create a default configuration file."""
        self.save_config(ConfigData())

    def _ensure_loaded(self) -> ConfigData:
        if self.config is None:
            self.load_config()
        assert self.config is not None
        return self.config

    def get_weather_config(self) -> WeatherConfig:
        """
        Get current weather configuration.

        The OPENWEATHERMAP_API_KEY environment variable overrides the
        stored key.
        """
        return self._ensure_loaded().weather.with_env_overrides()

    def get_transport_config(self) -> TransportConfig:
        """Get transport data source configuration."""
        return self._ensure_loaded().transport

    def get_route_config(self) -> RouteConfig:
        """Get route-planning preferences."""
        return self._ensure_loaded().routes

    def get_app_settings(self) -> AppSettings:
        """Get application settings."""
        return self._ensure_loaded().app

    def update_weather_config(self, **kwargs) -> None:
        """
        Update weather configuration settings.

        Raises:
            ConfigurationError: If the new values are invalid
        """
        config = self._ensure_loaded()
        updated = config.weather.model_dump()
        updated.update(kwargs)

        try:
            config.weather = WeatherConfig(**updated)
        except ValidationError as e:
            logger.error(f"Failed to update weather config: {e}")
            raise ConfigurationError(f"Invalid weather configuration: {e}")

        self.save_config(config)
        logger.info(f"Weather configuration updated: {sorted(kwargs)}")

    def update_app_settings(self, **kwargs) -> None:
        """
        Update application settings.

        Raises:
            ConfigurationError: If the new values are invalid
        """
        config = self._ensure_loaded()
        updated = config.app.model_dump()
        updated.update(kwargs)

        try:
            config.app = AppSettings(**updated)
        except ValidationError as e:
            logger.error(f"Failed to update app settings: {e}")
            raise ConfigurationError(f"Invalid application settings: {e}")

        self.save_config(config)
        logger.info(f"Application settings updated: {kwargs}")

    def get_config_summary(self) -> dict:
        """
        Get a summary of current configuration for display.

        Returns:
            dict: Configuration summary
        """
        config = self._ensure_loaded()
        weather_summary = self.get_weather_config().to_summary_dict()

        return {
            "app_version": __version__,
            "config_path": str(self.config_path),
            "save_history": "Enabled" if config.app.save_history else "Disabled",
            "max_recent_routes": config.app.max_recent_routes,
            "route_modes": ", ".join(config.routes.transport_modes),
            "max_walking_distance": f"{config.routes.max_walking_distance_km} km",
            "max_transfers": config.routes.max_transfers,
            "weather_enabled": weather_summary["enabled"],
            "weather_location": weather_summary["location"],
            "weather_source": weather_summary["source"],
        }

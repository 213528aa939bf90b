"""
Weather data models for the HK Travel Planner.

This module contains the immutable current-weather record shown next to
route suggestions, the icon mapping from OpenWeatherMap icon codes to
system symbol names, and a validator for incoming readings.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from version import __weather_api_provider__

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_ICON = "sun.max"


class ConditionCategory(Enum):
    """Coarse weather condition buckets used for route advice."""
    RAIN = "rain"
    CLOUD = "cloud"
    FOG = "fog"
    CLEAR = "clear"


class WeatherIconStrategy(ABC):
    """Abstract strategy for mapping icon codes to display icons."""

    @abstractmethod
    def get_icon(self, icon_code: Optional[str]) -> str:
        """Get icon for an OpenWeatherMap icon code."""
        pass

    @abstractmethod
    def get_strategy_name(self) -> str:
        """Get name of the icon strategy."""
        pass


class SystemSymbolIconStrategy(WeatherIconStrategy):
    """Strategy mapping icon codes to system symbol names."""

    # Day and night variants share a symbol.
    SYMBOLS = {
        "01": "sun.max",
        "02": "cloud.sun",
        "03": "cloud",
        "04": "smoke",
        "09": "cloud.rain",
        "10": "cloud.sun.rain",
        "11": "cloud.bolt",
        "13": "snow",
        "50": "cloud.fog",
    }

    def get_icon(self, icon_code: Optional[str]) -> str:
        """Get symbol name for icon code, e.g. "10n" -> "cloud.sun.rain"."""
        if not icon_code:
            return DEFAULT_SYSTEM_ICON
        return self.SYMBOLS.get(icon_code[:2], DEFAULT_SYSTEM_ICON)

    def get_strategy_name(self) -> str:
        """Get strategy name."""
        return "system_symbol"


class EmojiWeatherIconStrategy(WeatherIconStrategy):
    """Strategy using emoji icons for terminal output."""

    EMOJI = {
        "01": "☀️",
        "02": "🌤️",
        "03": "☁️",
        "04": "☁️",
        "09": "🌧️",
        "10": "🌦️",
        "11": "⛈️",
        "13": "❄️",
        "50": "🌫️",
    }

    def get_icon(self, icon_code: Optional[str]) -> str:
        """Get emoji for icon code."""
        if not icon_code:
            return "☀️"
        return self.EMOJI.get(icon_code[:2], "☀️")

    def get_strategy_name(self) -> str:
        """Get strategy name."""
        return "emoji"


_system_symbols = SystemSymbolIconStrategy()


def categorize_condition(condition: str) -> ConditionCategory:
    """
    Bucket a localized condition description.

    Rain and thunder win over cloud, which wins over fog or haze.
    """
    if "雨" in condition or "雷" in condition:
        return ConditionCategory.RAIN
    if "雲" in condition or "陰" in condition:
        return ConditionCategory.CLOUD
    if "霧" in condition or "煙" in condition:
        return ConditionCategory.FOG
    return ConditionCategory.CLEAR


@dataclass(frozen=True)
class WeatherData:
    """
    Immutable current weather reading.

    Wind speed is in km/h and rainfall is the millimetres recorded in the
    last hour.
    """
    temperature: float  # Celsius
    feels_like: float  # Celsius
    humidity: int  # Percentage (0-100)
    condition: str
    wind_speed: float  # km/h
    rainfall: float  # mm
    update_time: datetime = field(default_factory=datetime.now)
    icon: Optional[str] = None
    data_source: str = field(default=__weather_api_provider__)

    def __post_init__(self):
        """Validate weather data on creation."""
        if not (0 <= self.humidity <= 100):
            raise ValueError(f"Invalid humidity: {self.humidity}")
        if self.wind_speed < 0:
            raise ValueError(f"Invalid wind speed: {self.wind_speed}")
        if self.rainfall < 0:
            raise ValueError(f"Invalid rainfall: {self.rainfall}")

    @property
    def system_icon_name(self) -> str:
        """Get system symbol name for the icon code."""
        return _system_symbols.get_icon(self.icon)

    @property
    def condition_category(self) -> ConditionCategory:
        """Get coarse category of the condition text."""
        return categorize_condition(self.condition)

    @property
    def is_rainy(self) -> bool:
        """Check if the condition involves rain or thunder."""
        return self.condition_category == ConditionCategory.RAIN

    @property
    def temperature_display(self) -> str:
        """Get formatted temperature display."""
        return f"{self.temperature:.1f}°C"

    @property
    def humidity_display(self) -> str:
        """Get formatted humidity display."""
        return f"{self.humidity}%"

    def is_stale(self, max_age: timedelta, now: Optional[datetime] = None) -> bool:
        """Check if the reading is older than max_age."""
        if now is None:
            now = datetime.now()
        return (now - self.update_time) > max_age

    def to_dict(self) -> Dict[str, Any]:
        """Convert weather data to dictionary representation."""
        return {
            "temperature": self.temperature,
            "feels_like": self.feels_like,
            "humidity": self.humidity,
            "condition": self.condition,
            "wind_speed": self.wind_speed,
            "rainfall": self.rainfall,
            "update_time": self.update_time.isoformat(),
            "icon": self.icon,
            "system_icon_name": self.system_icon_name,
            "condition_category": self.condition_category.value,
            "data_source": self.data_source,
        }


class WeatherDataValidator:
    """Validator for weather reading plausibility."""

    @staticmethod
    def validate_temperature(temperature: float) -> bool:
        """Validate temperature is within reasonable range."""
        return -100.0 <= temperature <= 60.0  # Celsius

    @staticmethod
    def validate_humidity(humidity: int) -> bool:
        """Validate humidity percentage."""
        return 0 <= humidity <= 100

    @staticmethod
    def validate_wind_speed(wind_speed: float) -> bool:
        """Validate wind speed in km/h."""
        return 0.0 <= wind_speed <= 400.0

    @staticmethod
    def validate_update_time(update_time: datetime) -> bool:
        """Validate timestamp is reasonable."""
        now = datetime.now()
        # Allow readings from 1 day ago up to 1 hour ahead
        return (now - timedelta(days=1)) <= update_time <= (now + timedelta(hours=1))

    @classmethod
    def validate_weather_data(cls, weather_data: WeatherData) -> bool:
        """Validate complete weather data object."""
        return (
            cls.validate_temperature(weather_data.temperature)
            and cls.validate_temperature(weather_data.feels_like)
            and cls.validate_humidity(weather_data.humidity)
            and cls.validate_wind_speed(weather_data.wind_speed)
            and cls.validate_update_time(weather_data.update_time)
        )

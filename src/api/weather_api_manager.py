"""
Weather API manager for fetching current Hong Kong weather.

This module handles communication with the OpenWeatherMap current weather
endpoint, a generated-data source for offline use, and a caching manager
that falls back to stale data when a refresh fails.
"""

import asyncio
import aiohttp
import logging
import random
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

from pydantic import BaseModel, Field, ValidationError

from version import __version__, __app_name__
from ..models.weather_data import WeatherData, WeatherDataValidator
from ..managers.weather_config import WeatherConfig

logger = logging.getLogger(__name__)

UNKNOWN_CONDITION = "未知"
METRES_PER_SECOND_TO_KMH = 3.6


class WeatherAPIException(Exception):
    """Base exception for weather API-related errors."""

    pass


class WeatherNetworkException(WeatherAPIException):
    """Exception for network-related errors."""

    pass


class WeatherDataException(WeatherAPIException):
    """Exception for weather data processing errors."""

    pass


class WeatherRateLimitException(WeatherAPIException):
    """Exception for rate limit exceeded errors."""

    pass


class WeatherAuthenticationException(WeatherAPIException):
    """Exception for a missing or rejected API key."""

    pass


@dataclass
class WeatherAPIResponse:
    """Container for raw weather API response data."""

    status_code: int
    data: Optional[Dict[str, Any]]
    timestamp: datetime


class _MainReadings(BaseModel):
    temp: float
    feels_like: float
    humidity: int


class _ConditionEntry(BaseModel):
    description: str
    icon: str


class _Wind(BaseModel):
    speed: float


class _Rain(BaseModel):
    one_hour: Optional[float] = Field(default=None, alias="1h")


class OpenWeatherResponse(BaseModel):
    """The subset of the current weather payload this app reads."""

    main: _MainReadings
    weather: List[_ConditionEntry] = Field(default_factory=list)
    wind: _Wind
    rain: Optional[_Rain] = None

    def to_weather_data(self, update_time: Optional[datetime] = None) -> WeatherData:
        """Map the payload to a WeatherData reading."""
        first = self.weather[0] if self.weather else None
        rainfall = 0.0
        if self.rain is not None and self.rain.one_hour is not None:
            rainfall = self.rain.one_hour

        return WeatherData(
            temperature=self.main.temp,
            feels_like=self.main.feels_like,
            humidity=self.main.humidity,
            condition=first.description if first else UNKNOWN_CONDITION,
            wind_speed=self.wind.speed * METRES_PER_SECOND_TO_KMH,
            rainfall=rainfall,
            update_time=update_time or datetime.now(),
            icon=first.icon if first else None,
        )


class WeatherDataSource(ABC):
    """Abstract base class for weather data sources."""

    @abstractmethod
    async def fetch_current_weather(self) -> WeatherData:
        """Fetch the current weather reading."""
        pass

    @abstractmethod
    def get_source_name(self) -> str:
        """Get the name of the weather data source."""
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """Shutdown the weather data source and cleanup resources."""
        pass


class HTTPClient(ABC):
    """Abstract HTTP client interface for dependency injection."""

    @abstractmethod
    async def get(self, url: str, params: Dict[str, Any]) -> WeatherAPIResponse:
        """Make HTTP GET request."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close HTTP client."""
        pass


class AioHttpClient(HTTPClient):
    """HTTP client implementation using aiohttp."""

    def __init__(self, timeout_seconds: int = 10):
        """Initialize HTTP client with timeout."""
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session is created."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"User-Agent": f"{__app_name__}/{__version__}"},
            )
        return self._session

    async def get(self, url: str, params: Dict[str, Any]) -> WeatherAPIResponse:
        """
        Make HTTP GET request.

        Error responses may carry a non-JSON body, in which case ``data``
        is None.
        """
        session = await self._ensure_session()

        try:
            async with session.get(url, params=params) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = None
                return WeatherAPIResponse(
                    status_code=response.status,
                    data=data,
                    timestamp=datetime.now(),
                )
        except aiohttp.ClientError as e:
            raise WeatherNetworkException(f"Network error: {e}")
        except asyncio.TimeoutError:
            raise WeatherNetworkException("Request timed out")

    async def close(self) -> None:
        """Close HTTP client."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None


class OpenWeatherMapSource(WeatherDataSource):
    """
    OpenWeatherMap current weather source.

    Network failures are retried up to ``max_retries`` attempts with
    exponential backoff; HTTP error statuses are not retried.
    """

    def __init__(self, http_client: HTTPClient, config: WeatherConfig):
        """Initialize with HTTP client and configuration."""
        if not config.has_api_key():
            raise WeatherAuthenticationException("OpenWeatherMap API key is not configured")

        self._http_client = http_client
        self._config = config
        self._validator = WeatherDataValidator()
        logger.debug(f"OpenWeatherMapSource initialized for {config.location_name}")

    def get_source_name(self) -> str:
        """Get source name."""
        return self._config.api_provider

    def build_params(self) -> Dict[str, Any]:
        """Build API request parameters."""
        return {
            "lat": self._config.location_latitude,
            "lon": self._config.location_longitude,
            "appid": self._config.api_key,
            "units": self._config.units,
            "lang": self._config.language,
        }

    async def fetch_current_weather(self) -> WeatherData:
        """
        Fetch current weather from OpenWeatherMap.

        Raises:
            WeatherAuthenticationException: On HTTP 401
            WeatherRateLimitException: On HTTP 429
            WeatherNetworkException: When every attempt fails to connect
            WeatherDataException: When the body cannot be mapped
            WeatherAPIException: On any other non-200 status
        """
        params = self.build_params()
        attempts = self._config.max_retries

        for attempt in range(attempts):
            try:
                logger.debug(f"Fetching weather (attempt {attempt + 1}/{attempts})")
                response = await self._http_client.get(self._config.api_url, params)
                return self._handle_response(response)
            except WeatherNetworkException as e:
                if attempt == attempts - 1:
                    raise

                wait_time = self._config.retry_backoff_seconds * (2 ** attempt)
                logger.warning(
                    f"Network error on attempt {attempt + 1}, retrying in {wait_time}s: {e}"
                )
                await asyncio.sleep(wait_time)

        raise WeatherNetworkException("Weather request was not attempted")

    def _handle_response(self, response: WeatherAPIResponse) -> WeatherData:
        """Translate an HTTP response into a reading or an exception."""
        if response.status_code == 401:
            raise WeatherAuthenticationException("Invalid OpenWeatherMap API key")
        if response.status_code == 429:
            raise WeatherRateLimitException("OpenWeatherMap rate limit exceeded")
        if response.status_code != 200:
            raise WeatherAPIException(f"API returned status {response.status_code}")

        return self.parse_response(response.data, response.timestamp)

    def parse_response(
        self, data: Optional[Dict[str, Any]], timestamp: Optional[datetime] = None
    ) -> WeatherData:
        """Parse a current weather payload."""
        if not isinstance(data, dict):
            raise WeatherDataException("Weather response body is not a JSON object")

        try:
            weather = OpenWeatherResponse.model_validate(data).to_weather_data(timestamp)
        except (ValidationError, ValueError) as e:
            logger.error(f"Failed to parse weather data: {e}")
            raise WeatherDataException(f"Weather data parsing failed: {e}")

        if not self._validator.validate_weather_data(weather):
            raise WeatherDataException("Implausible weather data received")

        logger.info(f"Parsed weather: {weather.temperature_display}, {weather.condition}")
        return weather

    async def shutdown(self) -> None:
        """Shutdown the weather data source and cleanup resources."""
        await self._http_client.close()
        logger.info("OpenWeatherMapSource shutdown complete")


class MockWeatherSource(WeatherDataSource):
    """Generated weather for development and offline use."""

    CONDITIONS = ["晴朗", "多雲", "有雨", "雷暴"]
    ICONS = ["01d", "02d", "03d", "04d", "09d", "10d", "11d"]

    def __init__(self, rng: Optional[random.Random] = None, delay_seconds: float = 1.0):
        """
        Initialize mock source.

        Args:
            rng: Random generator, seeded in tests
            delay_seconds: Simulated response time
        """
        self._rng = rng or random.Random()
        self._delay_seconds = delay_seconds

    def get_source_name(self) -> str:
        """Get source name."""
        return "Mock"

    async def fetch_current_weather(self) -> WeatherData:
        """Generate a plausible Hong Kong reading."""
        if self._delay_seconds > 0:
            await asyncio.sleep(self._delay_seconds)

        rng = self._rng
        return WeatherData(
            temperature=rng.uniform(20, 30),
            feels_like=rng.uniform(22, 32),
            humidity=rng.randint(60, 90),
            condition=rng.choice(self.CONDITIONS),
            wind_speed=rng.uniform(5, 25),
            rainfall=rng.uniform(0, 10),
            update_time=datetime.now(),
            icon=rng.choice(self.ICONS),
            data_source=self.get_source_name(),
        )

    async def shutdown(self) -> None:
        """Nothing to release."""
        pass


class WeatherAPIManager:
    """
    High-level weather API manager.

    Serves cached readings while they are fresh and falls back to a stale
    reading when a refresh fails.
    """

    def __init__(self, weather_source: WeatherDataSource, config: WeatherConfig):
        """
        Initialize weather API manager.

        Args:
            weather_source: Weather data source implementation
            config: Weather configuration
        """
        self._weather_source = weather_source
        self._config = config
        self._last_fetch_time: Optional[datetime] = None
        self._cached_data: Optional[WeatherData] = None
        logger.info(f"WeatherAPIManager initialized with {weather_source.get_source_name()}")

    @property
    def source_name(self) -> str:
        """Name of the underlying source."""
        return self._weather_source.get_source_name()

    async def get_current_weather(self) -> WeatherData:
        """
        Get the current weather reading.

        Raises:
            WeatherAPIException: When the fetch fails and nothing is cached
        """
        if self._is_cache_valid() and self._cached_data is not None:
            logger.debug("Returning cached weather data")
            return self._cached_data

        try:
            weather = await self._weather_source.fetch_current_weather()
        except WeatherAPIException as e:
            logger.error(f"Failed to fetch weather data: {e}")

            if self._cached_data is not None:
                logger.warning("Returning stale cached data due to fetch failure")
                return self._cached_data
            raise

        self._cached_data = weather
        self._last_fetch_time = datetime.now()
        return weather

    def _is_cache_valid(self) -> bool:
        """Check if cached data is still valid."""
        if not self._cached_data or not self._last_fetch_time:
            return False

        cache_age = datetime.now() - self._last_fetch_time
        return cache_age < timedelta(seconds=self._config.get_cache_duration_seconds())

    def clear_cache(self) -> None:
        """Clear cached weather data."""
        self._cached_data = None
        self._last_fetch_time = None
        logger.debug("Weather cache cleared")

    def get_cache_info(self) -> Dict[str, Any]:
        """Get information about current cache state."""
        return {
            "has_cached_data": self._cached_data is not None,
            "last_fetch_time": self._last_fetch_time,
            "cache_valid": self._is_cache_valid(),
            "cache_duration_seconds": self._config.get_cache_duration_seconds(),
        }

    async def shutdown(self) -> None:
        """Shutdown the weather API manager and cleanup resources."""
        await self._weather_source.shutdown()
        self.clear_cache()
        logger.info("WeatherAPIManager shutdown complete")


class WeatherAPIFactory:
    """Factory for creating weather API managers."""

    @staticmethod
    def create_openweathermap_manager(config: WeatherConfig) -> WeatherAPIManager:
        """Create weather manager using OpenWeatherMap."""
        http_client = AioHttpClient(timeout_seconds=config.timeout_seconds)
        weather_source = OpenWeatherMapSource(http_client, config)
        return WeatherAPIManager(weather_source, config)

    @staticmethod
    def create_mock_manager(
        config: WeatherConfig, rng: Optional[random.Random] = None, delay_seconds: float = 1.0
    ) -> WeatherAPIManager:
        """Create weather manager serving generated data."""
        return WeatherAPIManager(MockWeatherSource(rng, delay_seconds), config)

    @staticmethod
    def create_manager_from_config(config: WeatherConfig) -> WeatherAPIManager:
        """Create weather manager based on configuration."""
        if config.should_use_mock():
            logger.info("No weather API key configured or mock requested, using mock weather")
            return WeatherAPIFactory.create_mock_manager(config)
        return WeatherAPIFactory.create_openweathermap_manager(config)

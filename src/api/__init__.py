"""
API integration for the HK Travel Planner.

This package holds the simulated Hong Kong transport service and the
OpenWeatherMap client, with their rate limiting, caching and error types.
"""

from .transport_api import (
    HongKongTransportAPI,
    TransportationError,
    TransportNetworkError,
    InvalidResponseError,
    InvalidDataError,
    RateLimitedError,
    ServiceUnavailableError,
    NoRouteFoundError,
)
from .weather_api_manager import (
    WeatherAPIManager,
    WeatherAPIFactory,
    WeatherAPIException,
)

__all__ = [
    "HongKongTransportAPI",
    "TransportationError",
    "TransportNetworkError",
    "InvalidResponseError",
    "InvalidDataError",
    "RateLimitedError",
    "ServiceUnavailableError",
    "NoRouteFoundError",
    "WeatherAPIManager",
    "WeatherAPIFactory",
    "WeatherAPIException",
]

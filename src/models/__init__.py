"""
Data models for the HK Travel Planner.

This module contains the data structures used throughout the application:
locations, travel routes, weather readings and public transport data.
"""

from .location import Location
from .transport_data import (
    BusCompany,
    BusRoute,
    BusServiceType,
    BusStop,
    MTRStation,
    RealTimeArrival,
    RouteSegment,
    ServiceStatus,
    ServiceType,
    Status,
    TransportationRoute,
    TransportLocation,
    TransportMode,
    TransportType,
)
from .travel_route import STEP_FARES, RouteStep, TravelRoute, calculate_cost
from .weather_data import ConditionCategory, WeatherData

__all__ = [
    "Location",
    "RouteStep",
    "TravelRoute",
    "STEP_FARES",
    "calculate_cost",
    "WeatherData",
    "ConditionCategory",
    "MTRStation",
    "BusRoute",
    "BusCompany",
    "BusServiceType",
    "BusStop",
    "RealTimeArrival",
    "TransportationRoute",
    "RouteSegment",
    "TransportMode",
    "ServiceStatus",
    "ServiceType",
    "Status",
    "TransportLocation",
    "TransportType",
]

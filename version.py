"""
Version information for HK Travel Planner.
Author: HK Travel Planner developers

Centralized version management for the application including
weather integration and mock transport data information.
"""

# Core application information
__version__ = "1.2.0"
__version_info__ = (1, 2, 0)
__app_name__ = "HKTravel"
__app_display_name__ = "HK Travel Planner - Routes, Transport & Weather for Hong Kong"
__author__ = "HK Travel Planner developers"
__description__ = "Hong Kong travel planning with MTR/bus data, route options and live weather"

# Feature information
__features__ = [
    "Location search across Hong Kong landmarks",
    "Current Hong Kong weather",
    "MTR stations, bus routes and service status",
    "Route options with fare and duration estimates",
    "Favourite locations and recent routes",
]

# Weather integration information
__weather_version__ = "1.1.0"
__weather_api_provider__ = "OpenWeatherMap"
__weather_api_url__ = "https://api.openweathermap.org/data/2.5/weather"

# Transport data information
__transport_version__ = "1.0.0"
__transport_api_provider__ = "Hong Kong Transport (simulated)"
__transport_bus_api_url__ = "https://data.etabus.gov.hk"
__transport_mtr_api_url__ = "https://rt.data.gov.hk/v1/transport/mtr"

# License information
__license__ = "MIT"


def get_version_string() -> str:
    """Get formatted version string."""
    return f"{__app_name__} v{__version__}"


def get_full_version_info() -> str:
    """Get comprehensive version information."""
    return f"""
{__app_display_name__}
Version: {__version__}
Weather Integration: v{__weather_version__} ({__weather_api_provider__})
Transport Data: v{__transport_version__} ({__transport_api_provider__})
Author: {__author__}
"""


def get_weather_info() -> dict:
    """Get weather integration information."""
    return {
        "version": __weather_version__,
        "provider": __weather_api_provider__,
        "api_url": __weather_api_url__,
        "api_key_required": True,
    }


def get_transport_info() -> dict:
    """Get transport data information."""
    return {
        "version": __transport_version__,
        "provider": __transport_api_provider__,
        "bus_api_url": __transport_bus_api_url__,
        "mtr_api_url": __transport_mtr_api_url__,
        "simulated": True,
    }

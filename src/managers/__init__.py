"""
Business logic managers for the HK Travel Planner.

This module contains configuration management and the observable data
managers for travel planning and public transport.
"""

from .config_manager import ConfigManager, ConfigData, ConfigurationError
# Note: data managers are not imported here to avoid circular imports with src.api

__all__ = [
    "ConfigManager",
    "ConfigData",
    "ConfigurationError",
]

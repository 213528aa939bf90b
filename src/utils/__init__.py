"""
Utility functions for the HK Travel Planner.

This module contains helper functions and utilities used throughout
the application.
"""

from .helpers import (
    format_time,
    format_duration,
    format_fare,
    distance_km,
    matches_query,
)

__all__ = ["format_time", "format_duration", "format_fare", "distance_km", "matches_query"]

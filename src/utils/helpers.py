"""
Helper utility functions for the HK Travel Planner.

This module contains formatting helpers for times, durations and fares,
the great-circle distance used by the nearby lookups, and the text
matching used by the search operations.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

EARTH_RADIUS_KM = 6371.0088


def format_time(dt: datetime) -> str:
    """
    Format datetime to HH:MM string.

    Args:
        dt: Datetime object to format

    Returns:
        str: Formatted time string
    """
    return dt.strftime("%H:%M")


def format_duration(minutes: int) -> str:
    """
    Format a duration in minutes to human-readable text.

    Args:
        minutes: Duration in whole minutes

    Returns:
        str: Formatted duration string (e.g., "1h 30m", "45m")
    """
    hours = minutes // 60
    remainder = minutes % 60

    if hours > 0:
        return f"{hours}h {remainder}m"
    else:
        return f"{remainder}m"


def format_fare(amount: float) -> str:
    """
    Format a fare in Hong Kong dollars.

    Whole amounts drop the decimals, so 8 becomes "8 HKD" and
    12.5 becomes "12.5 HKD".
    """
    if float(amount).is_integer():
        return f"{int(amount)} HKD"
    return f"{amount:.1f} HKD"


def format_distance(distance_km: Optional[float]) -> str:
    """Format a distance in kilometres for display."""
    if distance_km is None:
        return "Unknown"

    if distance_km < 1:
        return f"{int(round(distance_km * 1000))}m"
    else:
        return f"{distance_km:.1f}km"


def get_arrival_time(
    duration_minutes: int, departure: Optional[datetime] = None
) -> str:
    """
    Get the HH:MM arrival time for a journey leaving at departure.

    Args:
        duration_minutes: Journey length in minutes
        departure: Departure time (defaults to datetime.now())

    Returns:
        str: Arrival time as HH:MM
    """
    if departure is None:
        departure = datetime.now()
    return format_time(departure + timedelta(minutes=duration_minutes))


def format_relative_time(dt: datetime, now: Optional[datetime] = None) -> str:
    """
    Format datetime as relative time (e.g., "in 15 minutes", "2 hours ago").

    Args:
        dt: Target datetime
        now: Current time (defaults to datetime.now())

    Returns:
        str: Relative time string
    """
    if now is None:
        now = datetime.now()

    diff = dt - now
    total_seconds = diff.total_seconds()

    if total_seconds < 0:
        total_seconds = abs(total_seconds)
        suffix = "ago"
    else:
        suffix = "from now"

    if total_seconds < 60:
        return f"{int(total_seconds)} seconds {suffix}"
    elif total_seconds < 3600:
        minutes = int(total_seconds / 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''} {suffix}"
    elif total_seconds < 86400:
        hours = int(total_seconds / 3600)
        return f"{hours} hour{'s' if hours != 1 else ''} {suffix}"
    else:
        days = int(total_seconds / 86400)
        return f"{days} day{'s' if days != 1 else ''} {suffix}"


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two coordinates.

    Args:
        lat1: Latitude of the first point in degrees
        lon1: Longitude of the first point in degrees
        lat2: Latitude of the second point in degrees
        lon2: Longitude of the second point in degrees

    Returns:
        float: Distance in kilometres
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def matches_query(query: str, *fields: Optional[str]) -> bool:
    """
    Case-insensitive substring match of query against any of the fields.

    An empty query matches everything.
    """
    needle = query.strip().casefold()
    if not needle:
        return True
    return any(field is not None and needle in field.casefold() for field in fields)

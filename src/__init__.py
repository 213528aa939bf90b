"""
HK Travel Planner

Hong Kong travel planning backend with a command-line front end.

Features:
- Search across well-known Hong Kong places
- Current Hong Kong weather from OpenWeatherMap (or generated offline)
- MTR stations, bus routes, arrivals and service notices
- Route suggestions with fare and duration estimates
- Favourite places and recent route history
"""

__version__ = "1.2.0"
__author__ = "HK Travel Planner developers"
__description__ = "Hong Kong travel planner"

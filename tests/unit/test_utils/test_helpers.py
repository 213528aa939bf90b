"""
Unit tests for utility helper functions.

Tests the formatting helpers, the great-circle distance and the text
matching used by the search operations.
"""

import pytest
from datetime import datetime, timedelta
from src.utils.helpers import (
    distance_km,
    format_distance,
    format_duration,
    format_fare,
    format_relative_time,
    format_time,
    get_arrival_time,
    matches_query,
)


class TestTimeFormatting:
    """Test time formatting utilities."""

    def test_format_time_basic(self):
        """Test basic time formatting."""
        assert format_time(datetime(2024, 6, 1, 20, 45, 30)) == "20:45"

    def test_format_time_midnight(self):
        """Test formatting midnight."""
        assert format_time(datetime(2024, 6, 1, 0, 0, 0)) == "00:00"

    @pytest.mark.parametrize(
        "minutes,expected",
        [(0, "0m"), (45, "45m"), (60, "1h 0m"), (90, "1h 30m"), (135, "2h 15m")],
    )
    def test_format_duration(self, minutes, expected):
        """Test duration formatting."""
        assert format_duration(minutes) == expected

    def test_get_arrival_time(self):
        """Test arrival time from a departure."""
        departure = datetime(2024, 6, 1, 23, 40)

        assert get_arrival_time(30, departure) == "00:10"
        assert get_arrival_time(0, departure) == "23:40"


class TestFareAndDistance:
    """Test fare and distance formatting."""

    @pytest.mark.parametrize(
        "amount,expected",
        [(8, "8 HKD"), (0, "0 HKD"), (12.5, "12.5 HKD"), (10.4, "10.4 HKD"), (50.0, "50 HKD")],
    )
    def test_format_fare(self, amount, expected):
        """Test whole and fractional fares."""
        assert format_fare(amount) == expected

    @pytest.mark.parametrize(
        "km,expected",
        [(None, "Unknown"), (0.3, "300m"), (0.8, "800m"), (1.0, "1.0km"), (8.54, "8.5km")],
    )
    def test_format_distance(self, km, expected):
        """Test metre and kilometre formatting."""
        assert format_distance(km) == expected


class TestRelativeTime:
    """Test relative time formatting."""

    @pytest.fixture
    def now(self):
        return datetime(2024, 6, 1, 12, 0, 0)

    def test_seconds_from_now(self, now):
        assert format_relative_time(now + timedelta(seconds=30), now) == "30 seconds from now"

    def test_single_minute(self, now):
        assert format_relative_time(now + timedelta(minutes=1), now) == "1 minute from now"

    def test_hours_ago(self, now):
        assert format_relative_time(now - timedelta(hours=2), now) == "2 hours ago"

    def test_days_ago(self, now):
        assert format_relative_time(now - timedelta(days=3), now) == "3 days ago"


class TestDistance:
    """Test great-circle distance."""

    def test_same_point(self):
        assert distance_km(22.2819, 114.1586, 22.2819, 114.1586) == 0.0

    def test_central_to_mong_kok(self):
        """Test a cross-harbour distance of a few kilometres."""
        km = distance_km(22.2819, 114.1586, 22.3175, 114.1694)

        assert 3.9 < km < 4.2

    def test_symmetric(self):
        forward = distance_km(22.2819, 114.1586, 22.3080, 113.9185)
        backward = distance_km(22.3080, 113.9185, 22.2819, 114.1586)

        assert forward == pytest.approx(backward)

    def test_one_degree_of_latitude(self):
        assert distance_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.19, abs=0.01)


class TestMatchesQuery:
    """Test search matching."""

    def test_case_insensitive(self):
        assert matches_query("central", "Central MTR Station")

    def test_any_field(self):
        assert matches_query("shopping", "Times Square", "Causeway Bay", "Shopping")

    def test_chinese_text(self):
        assert matches_query("旺角", "旺角中心", None)

    def test_no_match(self):
        assert not matches_query("airport", "Central", None, "Transport Hub")

    def test_empty_query_matches_everything(self):
        assert matches_query("  ", "anything")

"""
Tests for the travel data manager.

Weather comes from the generated source with no delay, so every test runs
offline.
"""

import json
import random
import pytest
from datetime import timedelta
from dataclasses import replace
from unittest.mock import AsyncMock
from uuid import uuid4

from src.api.weather_api_manager import WeatherAPIFactory, WeatherAuthenticationException
from src.managers.config_manager import AppSettings, ConfigData, ConfigManager
from src.managers.travel_data_manager import (
    CLEAR_IMPACT,
    RAIN_IMPACT,
    TRAFFIC_IMPACT,
    TravelDataManager,
    create_sample_locations,
    placeholder_weather,
)
from src.managers.weather_manager import WeatherManager
from src.models.location import Location
from src.models.travel_route import RouteStep, TravelRoute


@pytest.fixture
def weather_manager(mock_weather_config):
    api_manager = WeatherAPIFactory.create_mock_manager(
        mock_weather_config, rng=random.Random(5), delay_seconds=0
    )
    return WeatherManager(mock_weather_config, api_manager=api_manager, auto_refresh=False)


@pytest.fixture
def travel(weather_manager, fixed_now):
    return TravelDataManager(weather_manager=weather_manager, clock=lambda: fixed_now)


def make_route(start, end, departure, minutes=20):
    return TravelRoute(
        start_location=start,
        end_location=end,
        departure_time=departure,
        estimated_arrival_time=departure + timedelta(minutes=minutes),
        duration=minutes,
        steps=[RouteStep("Take MTR", "MTR", minutes)],
    )


class TestInitialState:
    """Test the state of a new manager."""

    def test_catalogue_and_history(self, travel):
        assert len(travel.locations) == len(create_sample_locations()) == 14
        assert len(travel.recent_routes) == 2
        assert travel.get_favorite_locations() == []

    def test_placeholder_weather(self, travel, fixed_now):
        assert travel.current_weather.condition == "加載中..."
        assert travel.current_weather.data_source == "Placeholder"
        assert travel.current_weather.update_time == fixed_now
        assert travel.is_loading_weather is False
        assert travel.weather_error is None

    def test_sample_history_newest_first(self, travel, fixed_now):
        routes = travel.get_recent_routes()

        assert routes[0].connects("Tsim Sha Tsui", "Central")
        assert routes[0].departure_time == fixed_now - timedelta(hours=1)
        assert routes[1].connects("Causeway Bay", "Mong Kok")
        assert routes[1].estimated_cost == 16


class TestHistory:
    """Test recent route history."""

    def test_add_route_at_front(self, travel, central, mong_kok, fixed_now):
        emitted = []
        travel.recent_routes_changed.connect(lambda: emitted.append(True))
        route = make_route(central, mong_kok, fixed_now)

        travel.add_recent_route(route)

        assert travel.recent_routes[0] is route
        assert len(travel.recent_routes) == 3
        assert emitted == [True]

    def test_same_endpoints_replaced(self, travel, fixed_now):
        existing = travel.get_recent_routes()[0]
        replacement = make_route(existing.start_location, existing.end_location, fixed_now)

        travel.add_recent_route(replacement)

        assert len(travel.recent_routes) == 2
        assert travel.recent_routes[0] is replacement
        assert sum(r.connects("Tsim Sha Tsui", "Central") for r in travel.recent_routes) == 1

    def test_history_capped(self, tmp_path, weather_manager, fixed_now, mong_kok):
        path = tmp_path / "config.json"
        config = ConfigData(app=AppSettings(max_recent_routes=3))
        path.write_text(json.dumps(config.model_dump()), encoding="utf-8")
        travel = TravelDataManager(ConfigManager(str(path)), weather_manager, clock=lambda: fixed_now)

        for hours in range(4):
            start = Location(f"Stop {hours}", "Somewhere", 22.28, 114.16)
            travel.add_recent_route(make_route(start, mong_kok, fixed_now + timedelta(hours=hours)))

        assert len(travel.recent_routes) == 3
        assert travel.recent_routes[0].start_location.name == "Stop 3"

    def test_history_disabled(self, travel, central, mong_kok, fixed_now):
        travel.set_save_history(False)

        travel.add_recent_route(make_route(central, mong_kok, fixed_now))

        assert travel.should_save_history() is False
        assert len(travel.recent_routes) == 2

    def test_set_save_history_persists(self, temp_config_file, weather_manager):
        manager = ConfigManager(temp_config_file)
        travel = TravelDataManager(manager, weather_manager)

        travel.set_save_history(False)

        assert travel.should_save_history() is False
        assert ConfigManager(temp_config_file).load_config().app.save_history is False

    def test_clear_history(self, travel):
        travel.clear_history()

        assert travel.get_recent_routes() == []


class TestFavorites:
    """Test favourite locations."""

    def test_mark_favorite(self, travel):
        emitted = []
        travel.favorites_changed.connect(lambda: emitted.append(True))
        target = travel.locations[3]

        travel.update_favorite_status(target.id, True)

        favorites = travel.get_favorite_locations()
        assert favorites == [target]
        assert favorites[0].is_favorite is True
        assert travel.locations[3].is_favorite is True
        assert emitted == [True]

    def test_unmark_favorite(self, travel):
        target = travel.locations[0]
        travel.update_favorite_status(target.id, True)

        travel.update_favorite_status(target.id, False)

        assert travel.get_favorite_locations() == []
        assert travel.locations[0].is_favorite is False

    def test_unknown_id_ignored(self, travel):
        emitted = []
        travel.favorites_changed.connect(lambda: emitted.append(True))

        travel.update_favorite_status(uuid4(), True)

        assert travel.get_favorite_locations() == []
        assert emitted == []

    def test_favorites_in_catalogue_order(self, travel):
        travel.update_favorite_status(travel.locations[5].id, True)
        travel.update_favorite_status(travel.locations[1].id, True)

        assert travel.get_favorite_locations() == [travel.locations[1], travel.locations[5]]

    def test_clear_favorites(self, travel):
        travel.update_favorite_status(travel.locations[0].id, True)

        travel.clear_favorites()

        assert travel.get_favorite_locations() == []
        assert not any(location.is_favorite for location in travel.locations)


class TestWeather:
    """Test weather refresh through the weather manager."""

    @pytest.mark.asyncio
    async def test_fetch_success(self, travel):
        updates, loading = [], []
        travel.weather_updated.connect(lambda weather: updates.append(weather))
        travel.loading_state_changed.connect(lambda value: loading.append(value))

        weather = await travel.fetch_real_time_weather()

        assert weather is not None
        assert weather.data_source == "Mock"
        assert travel.current_weather is weather
        assert updates == [weather]
        assert loading == [True, False]
        assert travel.weather_error is None

    @pytest.mark.asyncio
    async def test_fetch_failure_sets_error(self, mock_weather_config, fixed_now):
        api_manager = AsyncMock()
        api_manager.source_name = "Broken"
        api_manager.get_current_weather.side_effect = WeatherAuthenticationException("401")
        weather_manager = WeatherManager(mock_weather_config, api_manager=api_manager, auto_refresh=False)
        travel = TravelDataManager(weather_manager=weather_manager, clock=lambda: fixed_now)

        result = await travel.fetch_real_time_weather()

        assert result is None
        assert travel.weather_error == "天氣服務認證失敗，請檢查 API 金鑰"
        assert travel.current_weather.data_source == "Placeholder"
        assert travel.is_loading_weather is False

    @pytest.mark.asyncio
    async def test_error_cleared_on_next_fetch(self, travel):
        travel._set_weather_error("old error")

        await travel.fetch_real_time_weather()

        assert travel.weather_error is None

    def test_weather_impact(self, travel, fixed_now):
        assert travel.weather_impact() == CLEAR_IMPACT

        travel.current_weather = replace(placeholder_weather(fixed_now), condition="大雨")

        assert travel.weather_impact() == RAIN_IMPACT


class TestRoutesAndPlaces:
    """Test route suggestions and place lookups."""

    def test_get_routes(self, travel, central, mong_kok, fixed_now):
        mtr, bus = travel.get_routes(central, mong_kok)

        assert mtr.start_location == central
        assert mtr.end_location == mong_kok
        assert mtr.departure_time == fixed_now
        assert mtr.estimated_arrival_time == fixed_now + timedelta(minutes=45)
        assert mtr.duration == 45
        assert mtr.transportation_modes == ["MTR", "Walk"]
        assert mtr.estimated_cost == 8
        assert mtr.weather_impact == CLEAR_IMPACT
        assert bus.duration == 60
        assert bus.estimated_cost == 6
        assert bus.weather_impact == TRAFFIC_IMPACT
        assert bus.steps[1].line_number == "101"

    def test_nearby_default_radius(self, travel):
        names = [location.name for location in travel.get_nearby_locations(22.2819, 114.1586)]

        assert "Central MTR Station" in names
        assert "Hong Kong International Airport" not in names
        assert "Hong Kong Science Park" not in names

    def test_nearby_small_radius(self, travel):
        nearby = travel.get_nearby_locations(22.2819, 114.1586, radius=0.1)

        assert [location.name for location in nearby] == ["Central MTR Station"]

    def test_search_locations(self, travel):
        assert [l.name for l in travel.search_locations("airport")] == ["Hong Kong International Airport"]
        assert len(travel.search_locations("shopping")) == 3
        assert len(travel.search_locations("")) == 14

    def test_find_location(self, travel):
        assert travel.find_location("central mtr station").name == "Central MTR Station"
        assert travel.find_location("Ocean").name == "Ocean Park"
        assert travel.find_location("Atlantis") is None

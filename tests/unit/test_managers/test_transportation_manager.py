"""
Tests for the transportation manager.

Uses the transport API with latency disabled and a fixed clock.
"""

import pytest
from unittest.mock import AsyncMock, patch

from src.api.transport_api import (
    InvalidDataError,
    NoRouteFoundError,
    ServiceUnavailableError,
)
from src.cache.memory_cache import CacheKey
from src.managers.config_manager import AppSettings, RouteConfig
from src.managers.transportation_manager import TransportationManager
from src.models.transport_data import BusCompany, ServiceType, TransportMode, TransportType

CENTRAL = (22.2819, 114.1586)
MONG_KOK = (22.3175, 114.1694)


@pytest.fixture
def manager(transport_api):
    return TransportationManager(transport_api)


class TestFetching:
    """Test fetch operations update state and emit signals."""

    @pytest.mark.asyncio
    async def test_fetch_mtr_stations(self, manager):
        emitted, loading = [], []
        manager.mtr_stations_changed.connect(lambda stations: emitted.append(stations))
        manager.loading_state_changed.connect(lambda value: loading.append(value))

        stations = await manager.fetch_mtr_stations()

        assert len(stations) == 5
        assert manager.mtr_stations == stations
        assert emitted == [stations]
        assert loading == [True, False]
        assert manager.is_loading is False

    @pytest.mark.asyncio
    async def test_fetch_bus_routes_for_company(self, manager):
        routes = await manager.fetch_bus_routes(BusCompany.CTB)

        assert [r.route_number for r in manager.bus_routes] == ["A21"]
        assert routes == manager.bus_routes

    @pytest.mark.asyncio
    async def test_fetch_bus_stops(self, manager):
        emitted = []
        manager.bus_stops_changed.connect(lambda stops: emitted.append(stops))

        await manager.fetch_bus_stops("101")

        assert [s.stop_id for s in manager.bus_stops] == ["001234"]
        assert len(emitted) == 1

    @pytest.mark.asyncio
    async def test_fetch_service_status(self, manager):
        await manager.fetch_service_status()

        assert manager.get_service_status_messages() == [
            "MTR: 港鐵服務正常",
            "Bus: 彌敦道交通擠塞，巴士服務可能延誤",
        ]
        assert manager.has_service_disruption()
        assert manager.has_service_disruption(ServiceType.BUS)
        assert not manager.has_service_disruption(ServiceType.MTR)
        assert len(manager.get_service_disruptions()) == 1

    @pytest.mark.asyncio
    async def test_arrivals(self, manager):
        trains = await manager.fetch_mtr_real_time_arrival("MOK", "TWL")
        buses = await manager.fetch_bus_real_time_arrival("002345", "1A")

        assert [a.destination for a in trains] == ["中環", "荃灣"]
        assert all(a.route_id == "1A" for a in buses)

    @pytest.mark.asyncio
    async def test_fetch_nearby_default_radius(self, manager):
        emitted = []
        manager.nearby_transport_changed.connect(lambda nearby: emitted.append(nearby))

        nearby = await manager.fetch_nearby_transport(CENTRAL)

        assert [n.type for n in nearby] == [TransportType.MTR_STATION, TransportType.BUS_STOP]
        assert manager.nearby_transport == nearby
        assert emitted == [nearby]

    @pytest.mark.asyncio
    async def test_fetch_nearby_radius_from_settings(self, transport_api):
        manager = TransportationManager(transport_api, app_settings=AppSettings(nearby_bus_radius_km=0.1))

        nearby = await manager.fetch_nearby_transport(CENTRAL)

        assert [n.name for n in nearby] == ["中環"]


class TestErrors:
    """Test error bookkeeping."""

    @pytest.mark.asyncio
    async def test_error_recorded_and_raised(self, manager):
        errors = []
        manager.error_changed.connect(lambda error: errors.append(error))

        with pytest.raises(InvalidDataError):
            await manager.fetch_mtr_real_time_arrival("", "IL")

        assert isinstance(manager.error, InvalidDataError)
        assert manager.error_message == "數據格式錯誤"
        assert errors == [manager.error]
        assert manager.is_loading is False

    @pytest.mark.asyncio
    async def test_clear_error(self, manager):
        with pytest.raises(InvalidDataError):
            await manager.fetch_bus_real_time_arrival("", "")

        manager.clear_error()

        assert manager.error is None
        assert manager.error_message is None

    @pytest.mark.asyncio
    async def test_shutdown_makes_service_unavailable(self, manager):
        await manager.shutdown()

        with pytest.raises(ServiceUnavailableError):
            await manager.fetch_service_status()

        assert manager.error_message == "服務暫時不可用"


class TestPlanRoute:
    """Test route planning defaults."""

    @pytest.mark.asyncio
    async def test_defaults_from_route_config(self, manager):
        routes = await manager.plan_route(CENTRAL, MONG_KOK)

        assert len(routes) == 2

    @pytest.mark.asyncio
    async def test_configured_modes(self, transport_api):
        manager = TransportationManager(transport_api, route_config=RouteConfig(transport_modes=["MTR", "Walk"]))

        routes = await manager.plan_route(CENTRAL, MONG_KOK)

        assert len(routes) == 1
        assert TransportMode.MTR in routes[0].transport_modes

    @pytest.mark.asyncio
    async def test_explicit_arguments_override_config(self, transport_api):
        manager = TransportationManager(transport_api, route_config=RouteConfig(max_walking_distance_km=0.1))

        routes = await manager.plan_route(
            CENTRAL, MONG_KOK, transport_modes=[TransportMode.BUS], max_walking_distance=1.0
        )

        assert [r.total_fare for r in routes] == [10.4]

    @pytest.mark.asyncio
    async def test_no_route_found(self, transport_api):
        manager = TransportationManager(transport_api, route_config=RouteConfig(max_walking_distance_km=0.3))

        with pytest.raises(NoRouteFoundError):
            await manager.plan_route(CENTRAL, MONG_KOK)

        assert manager.error_message == "未找到可行路線"


class TestRefresh:
    """Test bulk refresh."""

    @pytest.mark.asyncio
    async def test_refresh_all(self, manager):
        assert await manager.refresh_all_data() is True

        assert len(manager.mtr_stations) == 5
        assert len(manager.bus_routes) == 3
        assert len(manager.bus_stops) == 2
        assert len(manager.service_status) == 2
        assert manager.error is None

    @pytest.mark.asyncio
    async def test_refresh_partial(self, manager):
        assert await manager.refresh_mtr_data() is True
        assert manager.bus_routes == []

        assert await manager.refresh_bus_data() is True
        assert len(manager.bus_routes) == 3

    @pytest.mark.asyncio
    async def test_refresh_reloads_cached_reference_data(self, manager):
        """Test that a refresh bypasses station and route lists already cached."""
        await manager.fetch_mtr_stations()
        await manager.fetch_bus_routes()
        calls = len(manager.api.rate_limiter.calls)

        await manager.refresh_mtr_data()
        assert len(manager.api.rate_limiter.calls) == calls + 2

        await manager.refresh_bus_data()
        assert len(manager.api.rate_limiter.calls) == calls + 4

    @pytest.mark.asyncio
    async def test_refresh_failure_reported(self, manager):
        await manager.shutdown()

        assert await manager.refresh_all_data() is False
        assert isinstance(manager.error, ServiceUnavailableError)

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self, manager):
        with patch.object(manager.api, "fetch_mtr_stations", AsyncMock(side_effect=RuntimeError("bug"))):
            with pytest.raises(RuntimeError):
                await manager.refresh_mtr_data()


class TestLocalLookups:
    """Test lookups over loaded state."""

    def test_nearest_station_without_data(self, manager):
        assert manager.find_nearest_mtr_station(*CENTRAL) is None

    @pytest.mark.asyncio
    async def test_nearest_station(self, manager):
        await manager.refresh_all_data()

        assert manager.find_nearest_mtr_station(22.2975, 114.1720).station_code == "TST"
        assert manager.find_nearest_mtr_station(*MONG_KOK).station_code == "MOK"

    @pytest.mark.asyncio
    async def test_bus_routes_nearby(self, manager):
        await manager.refresh_all_data()

        near_central = manager.find_bus_routes_nearby(22.2833, 114.1589)
        near_mong_kok = manager.find_bus_routes_nearby(22.3190, 114.1690)

        assert [r.route_number for r in near_central] == ["101"]
        assert near_mong_kok == []

    @pytest.mark.asyncio
    async def test_search(self, manager):
        await manager.refresh_all_data()

        assert [s.station_code for s in manager.search_mtr_stations("central")] == ["CEN"]
        assert [s.station_code for s in manager.search_mtr_stations("旺角")] == ["MOK"]
        assert [r.route_number for r in manager.search_bus_routes("airport")] == ["A21"]
        assert [r.route_number for r in manager.search_bus_routes("觀塘")] == ["101"]

    @pytest.mark.asyncio
    async def test_filters(self, manager):
        await manager.refresh_all_data()

        assert [s.station_code for s in manager.get_mtr_stations_for_line("TWL")] == ["TST", "MOK"]
        assert [r.route_number for r in manager.get_bus_routes_for_company(BusCompany.KMB)] == ["101", "968"]


class TestSnapshot:
    """Test saving and restoring loaded data."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, manager):
        assert manager.load_from_cache() is False

        await manager.refresh_all_data()
        snapshot = manager.save_to_cache()
        manager.mtr_stations = []
        manager.bus_routes = []

        assert manager.load_from_cache() is True
        assert len(manager.mtr_stations) == 5
        assert len(manager.bus_routes) == 3
        assert "saved_at" in snapshot

    @pytest.mark.asyncio
    async def test_snapshot_held_in_api_cache(self, manager):
        """Test that the snapshot lives in the transport cache and survives a refresh."""
        await manager.fetch_mtr_stations()
        manager.save_to_cache()

        assert CacheKey.snapshot_key() in manager.api.cache

        await manager.refresh_all_data()
        assert manager.load_from_cache() is True

        manager.api.cache.delete(CacheKey.snapshot_key())
        assert manager.load_from_cache() is False

"""
Transportation manager for the HK Travel Planner.

Keeps the latest MTR, bus and service status data fetched from the
transport API, publishes changes through Qt signals and answers local
lookups (nearest station, nearby routes, search) from that state.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from PySide6.QtCore import QObject, Signal

from ..api.transport_api import (
    HongKongTransportAPI,
    TransportationError,
)
from ..cache.memory_cache import CacheKey
from ..models.transport_data import (
    BusCompany,
    BusRoute,
    BusStop,
    MTRStation,
    RealTimeArrival,
    ServiceStatus,
    ServiceType,
    TransportationRoute,
    TransportLocation,
    TransportMode,
)
from ..utils.helpers import distance_km, matches_query
from .config_manager import AppSettings, RouteConfig

logger = logging.getLogger(__name__)

Coordinate = Tuple[float, float]


class TransportationManager(QObject):
    """
    Observable public transport state.

    Fetch operations update state and emit the matching signal. On failure
    they record ``error`` and ``error_message`` and re-raise to the caller.
    """

    mtr_stations_changed = Signal(object)  # list
    bus_routes_changed = Signal(object)  # list
    bus_stops_changed = Signal(object)  # list
    service_status_changed = Signal(object)  # list
    nearby_transport_changed = Signal(object)  # list
    loading_state_changed = Signal(bool)
    error_changed = Signal(object)  # Optional[TransportationError]

    def __init__(
        self,
        api: Optional[HongKongTransportAPI] = None,
        route_config: Optional[RouteConfig] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        """
        Initialize transportation manager.

        Args:
            api: Transport API (default settings when None)
            route_config: Default route-planning preferences
            app_settings: Application settings for lookup radii
        """
        super().__init__()

        self._api = api or HongKongTransportAPI()
        self._route_config = route_config or RouteConfig()
        self._app_settings = app_settings or AppSettings()

        self.mtr_stations: List[MTRStation] = []
        self.bus_routes: List[BusRoute] = []
        self.bus_stops: List[BusStop] = []
        self.service_status: List[ServiceStatus] = []
        self.nearby_transport: List[TransportLocation] = []
        self.is_loading = False
        self.error: Optional[TransportationError] = None
        self.error_message: Optional[str] = None

        self._pending = 0

        logger.debug("TransportationManager initialized")

    @property
    def api(self) -> HongKongTransportAPI:
        """Underlying transport API."""
        return self._api

    # State helpers

    def _begin(self) -> None:
        self._pending += 1
        if not self.is_loading:
            self.is_loading = True
            self.loading_state_changed.emit(True)

    def _end(self) -> None:
        self._pending = max(0, self._pending - 1)
        if self._pending == 0 and self.is_loading:
            self.is_loading = False
            self.loading_state_changed.emit(False)

    def _record_error(self, error: Optional[TransportationError]) -> None:
        self.error = error
        self.error_message = error.user_message if error else None
        self.error_changed.emit(error)

    def clear_error(self) -> None:
        """Forget the last error."""
        if self.error is not None:
            self._record_error(None)

    async def _tracked(self, description: str, coro):
        """Await an API call with loading and error bookkeeping."""
        self._begin()
        try:
            return await coro
        except TransportationError as e:
            logger.error(f"Failed to {description}: {e}")
            self._record_error(e)
            raise
        finally:
            self._end()

    # Fetching

    async def fetch_mtr_stations(self) -> List[MTRStation]:
        """Fetch MTR stations into state."""
        stations = await self._tracked("fetch MTR stations", self._api.fetch_mtr_stations())
        self.mtr_stations = stations
        self.mtr_stations_changed.emit(stations)
        return stations

    async def fetch_bus_routes(self, company: Optional[BusCompany] = None) -> List[BusRoute]:
        """Fetch bus routes into state, optionally for one operator."""
        routes = await self._tracked("fetch bus routes", self._api.fetch_bus_routes(company))
        self.bus_routes = routes
        self.bus_routes_changed.emit(routes)
        return routes

    async def fetch_bus_stops(self, route_number: Optional[str] = None) -> List[BusStop]:
        """Fetch bus stops into state, optionally for one route."""
        stops = await self._tracked("fetch bus stops", self._api.fetch_bus_stops(route_number))
        self.bus_stops = stops
        self.bus_stops_changed.emit(stops)
        return stops

    async def fetch_service_status(self) -> List[ServiceStatus]:
        """Fetch service notices into state."""
        status = await self._tracked("fetch service status", self._api.fetch_mtr_service_status())
        self.service_status = status
        self.service_status_changed.emit(status)
        return status

    async def fetch_mtr_real_time_arrival(
        self, station_code: str, line_code: str
    ) -> List[RealTimeArrival]:
        """Next trains at a station on a line."""
        return await self._tracked(
            "fetch MTR arrivals",
            self._api.fetch_mtr_real_time_arrival(station_code, line_code),
        )

    async def fetch_bus_real_time_arrival(
        self, stop_id: str, route_number: str
    ) -> List[RealTimeArrival]:
        """Next buses of a route at a stop."""
        return await self._tracked(
            "fetch bus arrivals",
            self._api.fetch_bus_real_time_arrival(stop_id, route_number),
        )

    async def plan_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        departure_time: Optional[datetime] = None,
        transport_modes: Optional[Sequence[TransportMode]] = None,
        max_walking_distance: Optional[float] = None,
        max_transfers: Optional[int] = None,
    ) -> List[TransportationRoute]:
        """
        Plan routes between two coordinates.

        Unspecified preferences come from the route configuration.
        """
        if transport_modes is None:
            transport_modes = [TransportMode(mode) for mode in self._route_config.transport_modes]
        if max_walking_distance is None:
            max_walking_distance = self._route_config.max_walking_distance_km
        if max_transfers is None:
            max_transfers = self._route_config.max_transfers

        return await self._tracked(
            "plan route",
            self._api.plan_route(
                origin,
                destination,
                departure_time=departure_time,
                transport_modes=transport_modes,
                max_walking_distance=max_walking_distance,
                max_transfers=max_transfers,
            ),
        )

    async def fetch_nearby_transport(
        self, coordinate: Coordinate, radius: Optional[float] = None
    ) -> List[TransportLocation]:
        """Boarding points near a coordinate, stored in state."""
        if radius is None:
            radius = self._app_settings.nearby_bus_radius_km
        nearby = await self._tracked(
            "fetch nearby transport", self._api.fetch_nearby_transport(coordinate, radius)
        )
        self.nearby_transport = nearby
        self.nearby_transport_changed.emit(nearby)
        return nearby

    async def _refresh(self, *coros) -> bool:
        results = await asyncio.gather(*coros, return_exceptions=True)
        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures:
            if not isinstance(failure, TransportationError):
                raise failure
        if failures:
            logger.warning(f"Refresh finished with {len(failures)} failed request(s)")
        return not failures

    async def refresh_all_data(self) -> bool:
        """Reload stations, bus routes, bus stops and service status."""
        self.clear_error()
        self._api.invalidate_cache(CacheKey.MTR_PREFIX)
        self._api.invalidate_cache(CacheKey.BUS_PREFIX)
        return await self._refresh(
            self.fetch_mtr_stations(),
            self.fetch_bus_routes(),
            self.fetch_bus_stops(),
            self.fetch_service_status(),
        )

    async def refresh_mtr_data(self) -> bool:
        """Reload MTR stations and service status."""
        self.clear_error()
        self._api.invalidate_cache(CacheKey.MTR_PREFIX)
        return await self._refresh(self.fetch_mtr_stations(), self.fetch_service_status())

    async def refresh_bus_data(self) -> bool:
        """Reload bus routes and stops."""
        self.clear_error()
        self._api.invalidate_cache(CacheKey.BUS_PREFIX)
        return await self._refresh(self.fetch_bus_routes(), self.fetch_bus_stops())

    # Local lookups

    def find_nearest_mtr_station(self, latitude: float, longitude: float) -> Optional[MTRStation]:
        """Closest loaded MTR station, or None when none are loaded."""
        if not self.mtr_stations:
            return None
        return min(
            self.mtr_stations,
            key=lambda s: distance_km(latitude, longitude, s.latitude, s.longitude),
        )

    def find_bus_routes_nearby(
        self, latitude: float, longitude: float, radius: Optional[float] = None
    ) -> List[BusRoute]:
        """Loaded bus routes calling at a loaded stop within radius km."""
        if radius is None:
            radius = self._app_settings.nearby_bus_radius_km

        route_numbers = set()
        for stop in self.bus_stops:
            if distance_km(latitude, longitude, stop.latitude, stop.longitude) <= radius:
                route_numbers.update(stop.routes)

        return [route for route in self.bus_routes if route.route_number in route_numbers]

    def search_mtr_stations(self, query: str) -> List[MTRStation]:
        """Stations matching by Chinese name, English name or code."""
        return [
            s
            for s in self.mtr_stations
            if matches_query(query, s.chinese_name, s.english_name, s.station_code)
        ]

    def search_bus_routes(self, query: str) -> List[BusRoute]:
        """Routes matching by number, names, origin or destination."""
        return [
            r
            for r in self.bus_routes
            if matches_query(
                query, r.route_number, r.chinese_name, r.english_name, r.origin, r.destination
            )
        ]

    def get_mtr_stations_for_line(self, line_code: str) -> List[MTRStation]:
        """Loaded stations on a line."""
        return [s for s in self.mtr_stations if s.line_code == line_code]

    def get_bus_routes_for_company(self, company: BusCompany) -> List[BusRoute]:
        """Loaded routes run by an operator."""
        return [r for r in self.bus_routes if r.company == company]

    def get_service_status_messages(self) -> List[str]:
        """Notices formatted as "<service>: <message>"."""
        return [f"{s.service_type.value}: {s.message}" for s in self.service_status]

    def has_service_disruption(self, service_type: Optional[ServiceType] = None) -> bool:
        """Check for any abnormal notice, optionally for one service."""
        return bool(self.get_service_disruptions(service_type))

    def get_service_disruptions(
        self, service_type: Optional[ServiceType] = None
    ) -> List[ServiceStatus]:
        """Abnormal notices, optionally for one service."""
        return [
            s
            for s in self.service_status
            if s.is_disrupted and (service_type is None or s.service_type == service_type)
        ]

    # Snapshot

    def save_to_cache(self) -> Dict[str, Any]:
        """Keep a copy of the loaded stations and bus routes in the API cache."""
        snapshot = {
            "mtr_stations": list(self.mtr_stations),
            "bus_routes": list(self.bus_routes),
            "saved_at": datetime.now(),
        }
        self._api.cache.put(CacheKey.snapshot_key(), snapshot)
        logger.debug(
            f"Saved {len(self.mtr_stations)} stations and {len(self.bus_routes)} routes to cache"
        )
        return snapshot

    def load_from_cache(self) -> bool:
        """Restore stations and bus routes from the last unexpired snapshot."""
        snapshot = self._api.cache.get(CacheKey.snapshot_key())
        if snapshot is None:
            logger.debug("No cached transport snapshot to load")
            return False

        self.mtr_stations = list(snapshot["mtr_stations"])
        self.bus_routes = list(snapshot["bus_routes"])
        self.mtr_stations_changed.emit(self.mtr_stations)
        self.bus_routes_changed.emit(self.bus_routes)
        return True

    async def shutdown(self) -> None:
        """Close the transport API."""
        await self._api.close()

"""
Travel data manager for the HK Travel Planner.

Holds the observable application state: the place catalogue, favourites,
recent routes and the current weather. Changes are published through Qt
signals.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional
from uuid import UUID
from PySide6.QtCore import QObject, Signal

from ..models.location import Location
from ..models.travel_route import RouteStep, TravelRoute
from ..models.weather_data import WeatherData
from ..api.weather_api_manager import WeatherAPIException
from ..utils.helpers import distance_km, matches_query
from .config_manager import ConfigData, ConfigManager
from .weather_manager import WeatherManager

logger = logging.getLogger(__name__)

RAIN_IMPACT = "Light rain expected, bring umbrella"
CLEAR_IMPACT = "Good weather, recommended walking"
TRAFFIC_IMPACT = "Heavy traffic, longer travel time expected"


def placeholder_weather(now: Optional[datetime] = None) -> WeatherData:
    """Reading shown until the first fetch completes."""
    return WeatherData(
        temperature=25.0,
        feels_like=27.0,
        humidity=70,
        condition="加載中...",
        wind_speed=12.0,
        rainfall=0.0,
        update_time=now or datetime.now(),
        icon=None,
        data_source="Placeholder",
    )


def create_sample_locations() -> List[Location]:
    """Well-known Hong Kong places offered for search and favourites."""
    return [
        # Hong Kong Island
        Location("Central MTR Station", "Central, Hong Kong Island", 22.2819, 114.1586, category="Transport Hub"),
        Location("Times Square, Causeway Bay", "1 Matheson Street, Causeway Bay, Hong Kong", 22.2804, 114.1830, category="Shopping"),
        Location("Hong Kong Convention Centre", "1 Expo Drive, Wan Chai, Hong Kong", 22.2815, 114.1741, category="Entertainment"),
        Location("Victoria Peak Tram", "33 Garden Road, Central, Hong Kong", 22.2744, 114.1528, category="Entertainment"),
        Location("Ocean Park", "Wong Chuk Hang, Hong Kong Island", 22.2456, 114.1744, category="Entertainment"),
        # Kowloon
        Location("Tsim Sha Tsui MTR Station", "Tsim Sha Tsui, Kowloon", 22.2970, 114.1715, category="Transport Hub"),
        Location("Langham Place, Mong Kok", "8 Argyle Street, Mong Kok, Kowloon", 22.3175, 114.1694, category="Shopping"),
        Location("Star Ferry Pier, Tsim Sha Tsui", "Tsim Sha Tsui, Kowloon", 22.2935, 114.1689, category="Transport Hub"),
        Location("Kowloon Park", "22 Austin Road, Tsim Sha Tsui, Kowloon", 22.3008, 114.1705, category="Entertainment"),
        # New Territories
        Location("Shatin New Town Plaza", "18 Sha Tin Centre Street, Sha Tin, New Territories", 22.3792, 114.1869, category="Shopping"),
        Location("Hong Kong Science Park", "Science Park East Avenue, Sha Tin, New Territories", 22.4264, 114.2125, category="Entertainment"),
        # Airport
        Location("Hong Kong International Airport", "Chek Lap Kok, Lantau Island", 22.3080, 113.9185, category="Transport Hub"),
        # Dining
        Location("Maxim's Palace Chinese Restaurant", "2/F, City Hall Low Block, Central, Hong Kong", 22.2820, 114.1600, category="Dining"),
        Location("Tim Ho Wan (Dim Sum)", "Shop 12A, Hong Kong Station, Central", 22.2847, 114.1592, category="Dining"),
    ]


def create_sample_recent_routes(now: datetime) -> List[TravelRoute]:
    """Two example journeys shown in the history on first start."""
    return [
        TravelRoute(
            start_location=Location("Tsim Sha Tsui", "Tsim Sha Tsui MTR Station", 22.2970, 114.1715, category="Transport Hub"),
            end_location=Location("Central", "Central MTR Station", 22.2819, 114.1586, category="Transport Hub"),
            departure_time=now - timedelta(seconds=3600),
            estimated_arrival_time=now - timedelta(seconds=3300),
            duration=30,
            transportation_modes=["MTR", "Walk"],
            steps=[
                RouteStep(
                    instruction="Take Tsuen Wan Line from Tsim Sha Tsui Station",
                    transport_mode="MTR",
                    duration=8,
                    line_number="Tsuen Wan Line",
                    stop_name="Tsim Sha Tsui Station",
                    platform="Platform 2",
                ),
                RouteStep(instruction="Walk to Exit A", transport_mode="Walk", duration=5, distance=0.3),
            ],
            weather_impact=CLEAR_IMPACT,
            notes="Avoid rush hours",
        ),
        TravelRoute(
            start_location=Location("Causeway Bay", "Times Square, Causeway Bay", 22.2804, 114.1830, category="Shopping"),
            end_location=Location("Mong Kok", "Langham Place, Mong Kok", 22.3175, 114.1694, category="Shopping"),
            departure_time=now - timedelta(seconds=7200),
            estimated_arrival_time=now - timedelta(seconds=6600),
            duration=45,
            transportation_modes=["MTR", "Walk"],
            steps=[
                RouteStep(instruction="Walk to Causeway Bay Station", transport_mode="Walk", duration=8, distance=0.5),
                RouteStep(
                    instruction="Take Island Line to Admiralty",
                    transport_mode="MTR",
                    duration=5,
                    distance=2.0,
                    line_number="Island Line",
                    stop_name="Admiralty Station",
                    platform="Platform 3",
                ),
                RouteStep(
                    instruction="Transfer to Tsuen Wan Line to Mong Kok",
                    transport_mode="MTR",
                    duration=15,
                    distance=6.5,
                    line_number="Tsuen Wan Line",
                    stop_name="Mong Kok Station",
                    platform="Platform 1",
                ),
            ],
            weather_impact=RAIN_IMPACT,
            notes="Use Octopus card for discount",
        ),
    ]


class TravelDataManager(QObject):
    """
    Observable travel planning state.

    Favourites and history live in memory for the lifetime of the manager;
    only the save-history preference is written to the configuration file.
    """

    weather_updated = Signal(object)  # WeatherData
    weather_error_changed = Signal(object)  # Optional[str]
    loading_state_changed = Signal(bool)
    recent_routes_changed = Signal()
    favorites_changed = Signal()

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        weather_manager: Optional[WeatherManager] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize travel data manager.

        Args:
            config_manager: Persistent settings; defaults are used in memory when None
            weather_manager: Weather source (built from configuration when None)
            clock: Source of the current time
        """
        super().__init__()

        self._config_manager = config_manager
        self._config: ConfigData = config_manager.load_config() if config_manager else ConfigData()
        self._clock = clock

        if weather_manager is None:
            weather_config = (
                config_manager.get_weather_config()
                if config_manager
                else self._config.weather.with_env_overrides()
            )
            weather_manager = WeatherManager(weather_config)
        self._weather_manager = weather_manager
        self._weather_manager.weather_updated.connect(self._on_weather_updated)
        self._weather_manager.weather_error.connect(self._on_weather_error)

        self.current_weather: WeatherData = placeholder_weather(clock())
        self.is_loading_weather = False
        self.weather_error: Optional[str] = None

        self.locations: List[Location] = create_sample_locations()
        self.recent_routes: List[TravelRoute] = create_sample_recent_routes(clock())
        self._favorite_ids: set[UUID] = set()

        logger.info(
            f"TravelDataManager initialized with {len(self.locations)} locations "
            f"and {len(self.recent_routes)} recent routes"
        )

    @property
    def weather_manager(self) -> WeatherManager:
        """Underlying weather manager."""
        return self._weather_manager

    # History

    def add_recent_route(self, route: TravelRoute) -> None:
        """
        Record a route at the front of the history.

        Older entries between the same start and end names are replaced and
        the history is capped at ``max_recent_routes``.
        """
        if not self.should_save_history():
            logger.debug("History saving disabled, route not recorded")
            return

        self.recent_routes = [
            existing
            for existing in self.recent_routes
            if not existing.connects(route.start_location.name, route.end_location.name)
        ]
        self.recent_routes.insert(0, route)

        limit = self._config.app.max_recent_routes
        if len(self.recent_routes) > limit:
            self.recent_routes = self.recent_routes[:limit]

        logger.debug(f"Recorded route {route.start_location.name} -> {route.end_location.name}")
        self.recent_routes_changed.emit()

    def get_recent_routes(self) -> List[TravelRoute]:
        """Recent routes, latest departure first."""
        return sorted(self.recent_routes, key=lambda r: r.departure_time, reverse=True)

    def clear_history(self) -> None:
        """Forget all recent routes."""
        self.recent_routes = []
        logger.info("Route history cleared")
        self.recent_routes_changed.emit()

    def should_save_history(self) -> bool:
        """Check if new routes are recorded."""
        return self._config.app.save_history

    def set_save_history(self, save: bool) -> None:
        """Turn route history on or off, persisting the choice when possible."""
        if self._config_manager is not None:
            self._config_manager.update_app_settings(save_history=save)
            self._config = self._config_manager.config or self._config
        else:
            self._config.app.save_history = save
        logger.info(f"Save history set to {save}")

    # Favourites

    def update_favorite_status(self, location_id: UUID, is_favorite: bool) -> None:
        """Mark a catalogue location as favourite or not; unknown ids are ignored."""
        for index, location in enumerate(self.locations):
            if location.id == location_id:
                self.locations[index] = location.with_favorite(is_favorite)
                if is_favorite:
                    self._favorite_ids.add(location_id)
                else:
                    self._favorite_ids.discard(location_id)
                self.favorites_changed.emit()
                return

        logger.debug(f"Ignoring favourite update for unknown location {location_id}")

    def get_favorite_locations(self) -> List[Location]:
        """Favourite locations in catalogue order."""
        return [location for location in self.locations if location.id in self._favorite_ids]

    def clear_favorites(self) -> None:
        """Unmark every favourite."""
        self._favorite_ids.clear()
        self.locations = [location.with_favorite(False) for location in self.locations]
        logger.info("Favourites cleared")
        self.favorites_changed.emit()

    # Weather

    async def fetch_real_time_weather(self) -> Optional[WeatherData]:
        """
        Refresh the current weather.

        Returns:
            The new reading, or None when the fetch failed and
            ``weather_error`` holds the reason
        """
        self._set_loading(True)
        self._set_weather_error(None)

        try:
            return await self._weather_manager.refresh_weather()
        except WeatherAPIException as e:
            logger.warning(f"Keeping previous weather after failed refresh: {e}")
            return None
        finally:
            self._set_loading(False)

    def _on_weather_updated(self, weather: WeatherData) -> None:
        self.current_weather = weather
        self.weather_updated.emit(weather)

    def _on_weather_error(self, message: str) -> None:
        self._set_weather_error(message)

    def _set_loading(self, is_loading: bool) -> None:
        if self.is_loading_weather != is_loading:
            self.is_loading_weather = is_loading
            self.loading_state_changed.emit(is_loading)

    def _set_weather_error(self, message: Optional[str]) -> None:
        if self.weather_error != message:
            self.weather_error = message
            self.weather_error_changed.emit(message)

    def weather_impact(self) -> str:
        """Walking advice for the current weather."""
        if self.current_weather.is_rainy:
            return RAIN_IMPACT
        return CLEAR_IMPACT

    # Routes and places

    def get_routes(self, start: Location, end: Location) -> List[TravelRoute]:
        """Suggest an MTR route and a bus route between two places, leaving now."""
        now = self._clock()

        mtr_route = TravelRoute(
            start_location=start,
            end_location=end,
            departure_time=now,
            estimated_arrival_time=now + timedelta(minutes=45),
            duration=45,
            transportation_modes=["MTR", "Walk"],
            steps=[
                RouteStep(instruction="Walk to MTR Station", transport_mode="Walk", duration=8, distance=0.6),
                RouteStep(
                    instruction="Take Island Line to Central",
                    transport_mode="MTR",
                    duration=15,
                    distance=5.2,
                    line_number="Island Line",
                    stop_name="Central Station",
                    platform="Platform 1",
                ),
            ],
            weather_impact=self.weather_impact(),
            notes="Use Octopus card for convenience",
        )

        bus_route = TravelRoute(
            start_location=start,
            end_location=end,
            departure_time=now,
            estimated_arrival_time=now + timedelta(minutes=60),
            duration=60,
            transportation_modes=["Bus", "Walk"],
            steps=[
                RouteStep(instruction="Walk to Bus Stop", transport_mode="Walk", duration=5, distance=0.4),
                RouteStep(instruction="Take Bus 101", transport_mode="Bus", duration=40, line_number="101"),
            ],
            weather_impact=TRAFFIC_IMPACT,
        )

        return [mtr_route, bus_route]

    def get_nearby_locations(
        self, latitude: float, longitude: float, radius: Optional[float] = None
    ) -> List[Location]:
        """Catalogue locations within radius km (default from settings)."""
        if radius is None:
            radius = self._config.app.nearby_radius_km
        return [
            location
            for location in self.locations
            if distance_km(latitude, longitude, location.latitude, location.longitude) <= radius
        ]

    def search_locations(self, query: str) -> List[Location]:
        """Locations whose name, address or category contains query."""
        return [
            location
            for location in self.locations
            if matches_query(query, location.name, location.address, location.category)
        ]

    def find_location(self, name: str) -> Optional[Location]:
        """Exact-then-partial lookup of a catalogue location by name."""
        wanted = name.strip().casefold()
        for location in self.locations:
            if location.name.casefold() == wanted:
                return location
        matches = self.search_locations(name)
        return matches[0] if matches else None

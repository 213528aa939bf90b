"""
Hong Kong public transport API.

This module serves MTR, bus, service status and route planning data for the
travel planner. Responses are simulated: every call waits for a realistic
latency, passes through a rate limiter and returns canned Hong Kong data.
"""

import asyncio
import logging
import random
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..cache.memory_cache import CacheKey, MemoryCache
from ..managers.config_manager import TransportConfig
from ..models.transport_data import (
    BusCompany,
    BusRoute,
    BusServiceType,
    BusStop,
    MTRStation,
    RealTimeArrival,
    RouteSegment,
    ServiceStatus,
    ServiceType,
    Status,
    TransportationRoute,
    TransportLocation,
    TransportMode,
    TransportType,
)
from ..utils.helpers import distance_km

logger = logging.getLogger(__name__)

Coordinate = Tuple[float, float]

# Simulated round-trip time per operation, in seconds
LATENCY_SECONDS = {
    "mtr_stations": 0.5,
    "mtr_arrivals": 0.3,
    "service_status": 0.2,
    "bus_routes": 0.5,
    "bus_stops": 0.5,
    "bus_arrivals": 0.3,
    "plan_route": 1.0,
    "nearby": 0.3,
}

DEFAULT_ROUTE_MODES = (TransportMode.MTR, TransportMode.BUS, TransportMode.WALK)
DEFAULT_MAX_WALKING_KM = 2.0
DEFAULT_MAX_TRANSFERS = 3
DEFAULT_NEARBY_RADIUS_KM = 0.5


class TransportationError(Exception):
    """Base exception for transport data errors, carrying a user-facing message."""

    message = "交通數據錯誤"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(self.message if detail is None else f"{self.message} ({detail})")

    @property
    def user_message(self) -> str:
        """Localized message for display."""
        return self.message


class TransportNetworkError(TransportationError):
    """Exception for network failures, wrapping the underlying cause."""

    message = "網絡錯誤"

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(str(cause))

    @property
    def user_message(self) -> str:
        return f"{self.message}: {self.cause}"


class InvalidResponseError(TransportationError):
    """Exception for responses that are not understood."""

    message = "服務器返回無效響應"


class InvalidDataError(TransportationError):
    """Exception for malformed data or request arguments."""

    message = "數據格式錯誤"


class RateLimitedError(TransportationError):
    """Exception for calls refused by the rate limiter."""

    message = "請求過於頻繁，請稍後再試"


class ServiceUnavailableError(TransportationError):
    """Exception for calls made while the service is not available."""

    message = "服務暫時不可用"


class NoRouteFoundError(TransportationError):
    """Exception for route searches with no acceptable result."""

    message = "未找到可行路線"


class RateLimiter:
    """Sliding-window rate limiter for transport calls."""

    def __init__(self, calls_per_minute: int, max_wait_seconds: Optional[float] = None):
        """
        Initialize rate limiter.

        Args:
            calls_per_minute: Maximum calls allowed per minute
            max_wait_seconds: Longest acceptable wait for a slot; None waits
                as long as needed
        """
        self.calls_per_minute = calls_per_minute
        self.max_wait_seconds = max_wait_seconds
        self.calls: List[datetime] = []
        self.lock = asyncio.Lock()

    async def wait_if_needed(self):
        """
        Wait if rate limit would be exceeded.

        Raises:
            RateLimitedError: If the wait would exceed max_wait_seconds
        """
        async with self.lock:
            now = datetime.now()
            self.calls = [
                call_time
                for call_time in self.calls
                if now - call_time < timedelta(minutes=1)
            ]

            if len(self.calls) >= self.calls_per_minute:
                oldest_call = min(self.calls)
                wait_time = 60 - (now - oldest_call).total_seconds()
                if wait_time > 0:
                    if self.max_wait_seconds is not None and wait_time > self.max_wait_seconds:
                        logger.warning(f"Rate limit reached, refusing call ({wait_time:.1f}s wait)")
                        raise RateLimitedError(f"retry in {wait_time:.0f}s")
                    logger.info(f"Rate limit reached, waiting {wait_time:.1f} seconds")
                    await asyncio.sleep(wait_time)
                    now = datetime.now()

            self.calls.append(now)


class HongKongTransportAPI:
    """
    Simulated Hong Kong transport data service.

    Reference data (stations, bus routes and stops) is cached for
    ``cache_ttl_seconds``. Arrival estimates are shifted by a random delay
    of up to ``arrival_jitter_seconds``.
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        cache: Optional[MemoryCache] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the transport API.

        Args:
            config: Transport settings (defaults when None)
            cache: Cache for reference data
            rng: Random generator used for arrival jitter
            clock: Source of the current time
        """
        self.config = config or TransportConfig()
        self.cache = cache or MemoryCache(
            max_size=self.config.cache_max_size,
            default_ttl=self.config.cache_ttl_seconds,
        )
        self.rate_limiter = RateLimiter(
            self.config.rate_limit_per_minute,
            max_wait_seconds=self.config.rate_limit_max_wait_seconds,
        )
        self._rng = rng or random.Random()
        self._clock = clock
        self._closed = False
        logger.debug(f"HongKongTransportAPI initialized (latency x{self.config.latency_scale})")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Stop serving requests and drop cached data."""
        self._closed = True
        self.cache.clear()
        logger.debug("HongKongTransportAPI closed")

    def invalidate_cache(self, prefix: str) -> int:
        """Drop cached reference data whose key starts with prefix."""
        removed = self.cache.delete_by_prefix(prefix)
        logger.debug(f"Invalidated {removed} cached entries under {prefix}")
        return removed

    def get_cache_info(self) -> Dict[str, Any]:
        """Live cache keys and hit statistics, after purging expired entries."""
        self.cache.cleanup_expired()
        info = self.cache.get_stats()
        info["keys"] = self.cache.keys()
        info["ttl_seconds"] = self.cache.default_ttl
        return info

    async def _request(self, operation: str) -> None:
        """Apply availability check, rate limiting and simulated latency."""
        if self._closed:
            raise ServiceUnavailableError(f"{operation} requested after close")

        await self.rate_limiter.wait_if_needed()

        delay = LATENCY_SECONDS[operation] * self.config.latency_scale
        if delay > 0:
            await asyncio.sleep(delay)

    # MTR

    async def fetch_mtr_stations(self) -> List[MTRStation]:
        """Fetch all MTR stations."""
        key = CacheKey.mtr_stations_key()
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Returning cached MTR stations")
            return list(cached)

        await self._request("mtr_stations")
        stations = self._create_mock_mtr_stations()
        self.cache.put(key, stations)
        logger.info(f"Fetched {len(stations)} MTR stations")
        return list(stations)

    async def fetch_mtr_real_time_arrival(
        self, station_code: str, line_code: str
    ) -> List[RealTimeArrival]:
        """Fetch the next trains for a station on a line."""
        if not station_code or not line_code:
            raise InvalidDataError("station code and line code are required")

        await self._request("mtr_arrivals")
        arrivals = self._create_mock_mtr_arrivals(station_code, line_code)
        logger.debug(f"Fetched {len(arrivals)} MTR arrivals for {station_code}/{line_code}")
        return arrivals

    async def fetch_mtr_service_status(self) -> List[ServiceStatus]:
        """Fetch current service notices."""
        await self._request("service_status")
        return self._create_mock_service_status()

    # Bus

    async def fetch_bus_routes(self, company: Optional[BusCompany] = None) -> List[BusRoute]:
        """Fetch bus routes, optionally only those run by company."""
        key = CacheKey.bus_routes_key(company.value if company else None)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Returning cached bus routes for {key}")
            return list(cached)

        await self._request("bus_routes")
        routes = self._create_mock_bus_routes()
        if company is not None:
            routes = [route for route in routes if route.company == company]

        self.cache.put(key, routes)
        logger.info(f"Fetched {len(routes)} bus routes")
        return list(routes)

    async def fetch_bus_stops(self, route_number: Optional[str] = None) -> List[BusStop]:
        """Fetch bus stops, optionally only those served by route_number."""
        key = CacheKey.bus_stops_key(route_number)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Returning cached bus stops for {key}")
            return list(cached)

        await self._request("bus_stops")
        stops = self._create_mock_bus_stops()
        if route_number is not None:
            stops = [stop for stop in stops if stop.serves(route_number)]

        self.cache.put(key, stops)
        logger.info(f"Fetched {len(stops)} bus stops")
        return list(stops)

    async def fetch_bus_real_time_arrival(
        self, stop_id: str, route_number: str
    ) -> List[RealTimeArrival]:
        """Fetch the next buses of a route at a stop."""
        if not stop_id or not route_number:
            raise InvalidDataError("stop id and route number are required")

        await self._request("bus_arrivals")
        return self._create_mock_bus_arrivals(stop_id, route_number)

    # Routing

    async def plan_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        departure_time: Optional[datetime] = None,
        transport_modes: Optional[Sequence[TransportMode]] = None,
        max_walking_distance: float = DEFAULT_MAX_WALKING_KM,
        max_transfers: int = DEFAULT_MAX_TRANSFERS,
    ) -> List[TransportationRoute]:
        """
        Plan public transport routes between two coordinates.

        Candidates are dropped when they ride a mode outside transport_modes,
        walk further than max_walking_distance (km) or change vehicles more
        than max_transfers times.

        Raises:
            InvalidDataError: For out-of-range coordinates
            NoRouteFoundError: When no candidate survives the filters
        """
        self._validate_coordinate(origin)
        self._validate_coordinate(destination)

        await self._request("plan_route")

        departure = departure_time or self._clock()
        allowed = set(transport_modes or DEFAULT_ROUTE_MODES)

        candidates = self._create_mock_routes(departure)
        routes = [
            route
            for route in candidates
            if all(s.transport_mode in allowed for s in route.transit_segments)
            and route.walking_distance <= max_walking_distance
            and route.transfers <= max_transfers
        ]

        if not routes:
            logger.info(
                f"No route found ({len(candidates)} candidates, modes="
                f"{sorted(m.value for m in allowed)}, walk<={max_walking_distance}km, "
                f"transfers<={max_transfers})"
            )
            raise NoRouteFoundError()

        logger.info(f"Planned {len(routes)} routes")
        return routes

    async def fetch_nearby_transport(
        self, coordinate: Coordinate, radius: float = DEFAULT_NEARBY_RADIUS_KM
    ) -> List[TransportLocation]:
        """
        Find MTR stations and bus stops within radius km, nearest first.

        Raises:
            InvalidDataError: For an out-of-range coordinate or negative radius
        """
        self._validate_coordinate(coordinate)
        if radius < 0:
            raise InvalidDataError(f"negative radius {radius}")

        await self._request("nearby")

        latitude, longitude = coordinate
        found: List[TransportLocation] = []

        for station in self._create_mock_mtr_stations():
            km = distance_km(latitude, longitude, station.latitude, station.longitude)
            if km <= radius:
                found.append(
                    TransportLocation(
                        name=station.chinese_name,
                        type=TransportType.MTR_STATION,
                        latitude=station.latitude,
                        longitude=station.longitude,
                        distance=km * 1000,
                        services=[station.line_name],
                    )
                )

        for stop in self._create_mock_bus_stops():
            km = distance_km(latitude, longitude, stop.latitude, stop.longitude)
            if km <= radius:
                found.append(
                    TransportLocation(
                        name=stop.chinese_name,
                        type=TransportType.BUS_STOP,
                        latitude=stop.latitude,
                        longitude=stop.longitude,
                        distance=km * 1000,
                        services=list(stop.routes),
                    )
                )

        found.sort(key=lambda location: location.distance)
        return found

    @staticmethod
    def _validate_coordinate(coordinate: Coordinate) -> None:
        try:
            latitude, longitude = coordinate
        except (TypeError, ValueError):
            raise InvalidDataError(f"not a coordinate: {coordinate!r}")
        if not (-90 <= latitude <= 90) or not (-180 <= longitude <= 180):
            raise InvalidDataError(f"coordinate out of range: {coordinate!r}")

    def _jitter(self) -> int:
        """Random extra delay in seconds."""
        limit = self.config.arrival_jitter_seconds
        if limit <= 0:
            return 0
        return self._rng.randint(0, limit)

    def _arrival(
        self,
        station_id: str,
        route_id: str,
        destination: str,
        offset_seconds: int,
        delay_seconds: int,
        platform: Optional[str],
        is_estimated: bool,
        now: datetime,
    ) -> RealTimeArrival:
        scheduled = now + timedelta(seconds=offset_seconds)
        jitter = self._jitter()
        return RealTimeArrival(
            station_id=station_id,
            route_id=route_id,
            destination=destination,
            estimated_arrival_time=scheduled + timedelta(seconds=jitter),
            scheduled_arrival_time=scheduled,
            delay_in_seconds=delay_seconds + jitter,
            platform=platform,
            is_estimated=is_estimated,
        )

    # Canned data

    def _create_mock_mtr_stations(self) -> List[MTRStation]:
        return [
            MTRStation("CEN", "中環", "Central", "IL", "港島線", 22.2819, 114.1586, "中西區"),
            MTRStation("ADM", "金鐘", "Admiralty", "IL", "港島線", 22.2790, 114.1659, "中西區"),
            MTRStation("TST", "尖沙咀", "Tsim Sha Tsui", "TWL", "荃灣線", 22.2970, 114.1715, "油尖旺區"),
            MTRStation("MOK", "旺角", "Mong Kok", "TWL", "荃灣線", 22.3175, 114.1694, "油尖旺區"),
            MTRStation("KOW", "九龍塘", "Kowloon Tong", "EAL", "東鐵線", 22.3371, 114.1755, "九龍城區"),
        ]

    def _create_mock_mtr_arrivals(self, station_code: str, line_code: str) -> List[RealTimeArrival]:
        now = self._clock()
        return [
            self._arrival(station_code, line_code, "中環", 120, 0, "1", True, now),
            self._arrival(station_code, line_code, "荃灣", 240, 15, "2", True, now),
        ]

    def _create_mock_service_status(self) -> List[ServiceStatus]:
        now = self._clock()
        return [
            ServiceStatus(
                service_type=ServiceType.MTR,
                status=Status.NORMAL,
                message="港鐵服務正常",
                affected_lines=[],
                start_time=now - timedelta(hours=1),
                expected_resume_time=None,
            ),
            ServiceStatus(
                service_type=ServiceType.BUS,
                status=Status.DELAY,
                message="彌敦道交通擠塞，巴士服務可能延誤",
                affected_lines=["1", "1A", "2", "6", "970X"],
                start_time=now - timedelta(minutes=30),
                expected_resume_time=now + timedelta(hours=1),
            ),
        ]

    def _create_mock_bus_routes(self) -> List[BusRoute]:
        return [
            BusRoute(
                route_number="101",
                chinese_name="堅尼地城 ↔ 觀塘（裕民坊）",
                english_name="Kennedy Town ↔ Kwun Tong (Yue Man Square)",
                company=BusCompany.KMB,
                service_type=BusServiceType.NORMAL,
                origin="堅尼地城",
                destination="觀塘（裕民坊）",
                fare=10.4,
                journey_time=85,
                is_circular=False,
            ),
            BusRoute(
                route_number="968",
                chinese_name="元朗（西） ↔ 銅鑼灣（天后）",
                english_name="Yuen Long (West) ↔ Causeway Bay (Tin Hau)",
                company=BusCompany.KMB,
                service_type=BusServiceType.EXPRESS,
                origin="元朗（西）",
                destination="銅鑼灣（天后）",
                fare=24.7,
                journey_time=95,
                is_circular=False,
            ),
            BusRoute(
                route_number="A21",
                chinese_name="紅磡站 ↔ 機場",
                english_name="Hung Hom Station ↔ Airport",
                company=BusCompany.CTB,
                service_type=BusServiceType.SPECIAL,
                origin="紅磡站",
                destination="機場",
                fare=33.0,
                journey_time=75,
                is_circular=False,
            ),
        ]

    def _create_mock_bus_stops(self) -> List[BusStop]:
        return [
            BusStop(
                stop_id="001234",
                chinese_name="中環（交易廣場）",
                english_name="Central (Exchange Square)",
                latitude=22.2833,
                longitude=114.1589,
                district="中西區",
                routes=["101", "104", "111", "115"],
            ),
            BusStop(
                stop_id="002345",
                chinese_name="旺角中心",
                english_name="Mong Kok Centre",
                latitude=22.3190,
                longitude=114.1690,
                district="油尖旺區",
                routes=["1", "1A", "2", "6"],
            ),
        ]

    def _create_mock_bus_arrivals(self, stop_id: str, route_number: str) -> List[RealTimeArrival]:
        now = self._clock()
        return [
            self._arrival(stop_id, route_number, "觀塘", 180, 30, "A", True, now),
            self._arrival(stop_id, route_number, "觀塘", 420, 0, "A", False, now),
        ]

    def _create_mock_routes(self, departure: datetime) -> List[TransportationRoute]:
        mtr_route = TransportationRoute(
            origin="中環站",
            destination="旺角站",
            total_duration=30,
            total_fare=12.5,
            last_updated=departure,
            segments=[
                RouteSegment(
                    transport_mode=TransportMode.WALK,
                    origin_stop="起點",
                    destination_stop="中環站",
                    duration=5,
                    fare=0,
                    instructions="步行到中環站",
                    distance=0.3,
                    is_walking=True,
                ),
                RouteSegment(
                    transport_mode=TransportMode.MTR,
                    line_code="TWL",
                    origin_stop="中環站",
                    destination_stop="旺角站",
                    duration=20,
                    fare=12.5,
                    instructions="乘坐荃灣線到旺角站",
                    distance=8.5,
                    platform="3號月台",
                ),
                RouteSegment(
                    transport_mode=TransportMode.WALK,
                    origin_stop="旺角站",
                    destination_stop="目的地",
                    duration=5,
                    fare=0,
                    instructions="步行到目的地",
                    distance=0.2,
                    is_walking=True,
                ),
            ],
        )

        bus_route = TransportationRoute(
            origin="中環",
            destination="旺角",
            total_duration=45,
            total_fare=10.4,
            last_updated=departure,
            segments=[
                RouteSegment(
                    transport_mode=TransportMode.WALK,
                    origin_stop="起點",
                    destination_stop="中環（交易廣場）巴士站",
                    duration=8,
                    fare=0,
                    instructions="步行到巴士站",
                    distance=0.5,
                    is_walking=True,
                ),
                RouteSegment(
                    transport_mode=TransportMode.BUS,
                    route_number="101",
                    origin_stop="中環（交易廣場）",
                    destination_stop="旺角中心",
                    duration=32,
                    fare=10.4,
                    instructions="乘坐101號巴士到旺角中心",
                    distance=9.2,
                ),
                RouteSegment(
                    transport_mode=TransportMode.WALK,
                    origin_stop="旺角中心",
                    destination_stop="目的地",
                    duration=5,
                    fare=0,
                    instructions="步行到目的地",
                    distance=0.3,
                    is_walking=True,
                ),
            ],
        )

        return [mtr_route, bus_route]

"""
Public transport data models and enums.

This module defines the structures for MTR stations, bus routes and stops,
real-time arrivals, planned transport routes and service status notices.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4


class BusCompany(Enum):
    """Franchised bus and minibus operators."""

    KMB = "KMB"
    CTB = "CTB"
    NWFB = "NWFB"
    LWB = "LWB"
    NLB = "NLB"
    GMB = "GMB"


class BusServiceType(Enum):
    """Enumeration of bus service types."""

    NORMAL = "Normal"
    EXPRESS = "Express"
    OVERNIGHT = "Overnight"
    SPECIAL = "Special"


class TransportMode(Enum):
    """Ways of covering a route segment."""

    MTR = "MTR"
    BUS = "Bus"
    MINIBUS = "Minibus"
    TRAM = "Tram"
    FERRY = "Ferry"
    TAXI = "Taxi"
    WALK = "Walk"
    LIGHT_RAIL = "Light Rail"


class ServiceType(Enum):
    """Services covered by a status notice."""

    MTR = "MTR"
    BUS = "Bus"
    TRAM = "Tram"
    FERRY = "Ferry"
    ALL = "All"


class Status(Enum):
    """Operating status of a service."""

    NORMAL = "Normal"
    DELAY = "Delay"
    SUSPENDED = "Suspended"
    DIVERTED = "Diverted"
    SPECIAL = "Special"


class TransportType(Enum):
    """Kinds of boarding point near a location."""

    MTR_STATION = "MTR Station"
    BUS_STOP = "Bus Stop"
    MINIBUS_STOP = "Minibus Stop"
    TRAM_STOP = "Tram Stop"
    FERRY_PIER = "Ferry Pier"
    TAXI_STAND = "Taxi Stand"


def _validate_coordinate(latitude: float, longitude: float) -> None:
    if not (-90 <= latitude <= 90):
        raise ValueError(f"Invalid latitude: {latitude}")
    if not (-180 <= longitude <= 180):
        raise ValueError(f"Invalid longitude: {longitude}")


@dataclass(frozen=True, eq=False)
class MTRStation:
    """
    An MTR station on a single line.

    Stations compare equal when their station codes match.
    """

    station_code: str
    chinese_name: str
    english_name: str
    line_code: str
    line_name: str
    latitude: float
    longitude: float
    district: str

    def __post_init__(self):
        """Validate station data."""
        if not self.station_code:
            raise ValueError("Station code cannot be empty")
        _validate_coordinate(self.latitude, self.longitude)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MTRStation):
            return NotImplemented
        return self.station_code == other.station_code

    def __hash__(self) -> int:
        return hash(self.station_code)

    @property
    def coordinate(self) -> Tuple[float, float]:
        """Get (latitude, longitude) pair."""
        return (self.latitude, self.longitude)

    @property
    def display_name(self) -> str:
        """Get bilingual display name."""
        return f"{self.chinese_name} {self.english_name}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert station to dictionary representation."""
        return {
            "station_code": self.station_code,
            "chinese_name": self.chinese_name,
            "english_name": self.english_name,
            "line_code": self.line_code,
            "line_name": self.line_name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "district": self.district,
        }


@dataclass(frozen=True)
class BusRoute:
    """A bus route run by a single operator."""

    route_number: str
    chinese_name: str
    english_name: str
    company: BusCompany
    service_type: BusServiceType
    origin: str
    destination: str
    fare: Optional[float] = None  # HKD
    journey_time: Optional[int] = None  # minutes
    is_circular: bool = False
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        """Validate route data."""
        if not self.route_number:
            raise ValueError("Route number cannot be empty")
        if self.fare is not None and self.fare < 0:
            raise ValueError(f"Invalid fare: {self.fare}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert bus route to dictionary representation."""
        return {
            "route_number": self.route_number,
            "chinese_name": self.chinese_name,
            "english_name": self.english_name,
            "company": self.company.value,
            "service_type": self.service_type.value,
            "origin": self.origin,
            "destination": self.destination,
            "fare": self.fare,
            "journey_time": self.journey_time,
            "is_circular": self.is_circular,
        }


@dataclass(frozen=True, eq=False)
class BusStop:
    """A bus stop and the route numbers calling there."""

    stop_id: str
    chinese_name: str
    english_name: str
    latitude: float
    longitude: float
    district: str
    routes: List[str] = field(default_factory=list)
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        """Validate stop data."""
        if not self.stop_id:
            raise ValueError("Stop id cannot be empty")
        _validate_coordinate(self.latitude, self.longitude)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BusStop):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def coordinate(self) -> Tuple[float, float]:
        """Get (latitude, longitude) pair."""
        return (self.latitude, self.longitude)

    def serves(self, route_number: str) -> bool:
        """Check if a route calls at this stop."""
        return route_number in self.routes

    def to_dict(self) -> Dict[str, Any]:
        """Convert bus stop to dictionary representation."""
        return {
            "stop_id": self.stop_id,
            "chinese_name": self.chinese_name,
            "english_name": self.english_name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "district": self.district,
            "routes": list(self.routes),
        }


@dataclass(frozen=True)
class RealTimeArrival:
    """A predicted arrival of a train or bus at a station or stop."""

    station_id: str
    route_id: str
    destination: str
    estimated_arrival_time: datetime
    scheduled_arrival_time: datetime
    delay_in_seconds: int = 0
    platform: Optional[str] = None
    is_estimated: bool = True
    id: UUID = field(default_factory=uuid4)

    @property
    def is_delayed(self) -> bool:
        """Check if the arrival is running late."""
        return self.delay_in_seconds > 0

    def minutes_away(self, now: Optional[datetime] = None) -> int:
        """Whole minutes until the estimated arrival, never negative."""
        if now is None:
            now = datetime.now()
        seconds = (self.estimated_arrival_time - now).total_seconds()
        return max(0, int(seconds // 60))

    def format_arrival_time(self) -> str:
        """Format estimated arrival for display."""
        return self.estimated_arrival_time.strftime("%H:%M")

    def to_dict(self) -> Dict[str, Any]:
        """Convert arrival to dictionary representation."""
        return {
            "station_id": self.station_id,
            "route_id": self.route_id,
            "destination": self.destination,
            "estimated_arrival_time": self.estimated_arrival_time.isoformat(),
            "scheduled_arrival_time": self.scheduled_arrival_time.isoformat(),
            "delay_in_seconds": self.delay_in_seconds,
            "platform": self.platform,
            "is_estimated": self.is_estimated,
        }


@dataclass(frozen=True)
class RouteSegment:
    """One leg of a planned transport route."""

    transport_mode: TransportMode
    origin_stop: str
    destination_stop: str
    duration: int  # minutes
    fare: float  # HKD
    instructions: str
    line_code: Optional[str] = None
    route_number: Optional[str] = None
    distance: Optional[float] = None  # kilometres
    platform: Optional[str] = None
    is_walking: bool = False
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        """Validate segment data."""
        if self.duration < 0:
            raise ValueError(f"Invalid segment duration: {self.duration}")
        if self.fare < 0:
            raise ValueError(f"Invalid segment fare: {self.fare}")
        if self.transport_mode == TransportMode.WALK and not self.is_walking:
            object.__setattr__(self, "is_walking", True)

    @property
    def line_label(self) -> Optional[str]:
        """Line code or route number, whichever identifies the service."""
        return self.line_code or self.route_number

    def to_dict(self) -> Dict[str, Any]:
        """Convert segment to dictionary representation."""
        return {
            "transport_mode": self.transport_mode.value,
            "line_code": self.line_code,
            "route_number": self.route_number,
            "origin_stop": self.origin_stop,
            "destination_stop": self.destination_stop,
            "duration": self.duration,
            "fare": self.fare,
            "instructions": self.instructions,
            "distance": self.distance,
            "platform": self.platform,
            "is_walking": self.is_walking,
        }


@dataclass(frozen=True, eq=False)
class TransportationRoute:
    """
    A planned route made of transport segments.

    ``total_duration`` and ``total_fare`` default to the sums over the
    segments when they are not given explicitly.
    """

    origin: str
    destination: str
    segments: List[RouteSegment] = field(default_factory=list)
    total_duration: Optional[int] = None  # minutes
    total_fare: Optional[float] = None  # HKD
    last_updated: datetime = field(default_factory=datetime.now)
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        """Fill in totals from segments."""
        if self.total_duration is None:
            object.__setattr__(
                self, "total_duration", sum(s.duration for s in self.segments)
            )
        if self.total_fare is None:
            object.__setattr__(
                self, "total_fare", round(sum(s.fare for s in self.segments), 2)
            )
        if self.total_duration < 0:
            raise ValueError(f"Invalid total duration: {self.total_duration}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransportationRoute):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def walking_distance(self) -> float:
        """Total walking distance in kilometres."""
        return sum(
            s.distance for s in self.segments if s.is_walking and s.distance is not None
        )

    @property
    def transit_segments(self) -> List[RouteSegment]:
        """Segments ridden on a vehicle."""
        return [s for s in self.segments if not s.is_walking]

    @property
    def transfers(self) -> int:
        """Number of changes between vehicles."""
        return max(0, len(self.transit_segments) - 1)

    @property
    def transport_modes(self) -> List[TransportMode]:
        """Distinct modes used, in travel order."""
        modes: List[TransportMode] = []
        for segment in self.segments:
            if segment.transport_mode not in modes:
                modes.append(segment.transport_mode)
        return modes

    def to_dict(self) -> Dict[str, Any]:
        """Convert route to dictionary representation."""
        return {
            "origin": self.origin,
            "destination": self.destination,
            "total_duration": self.total_duration,
            "total_fare": self.total_fare,
            "walking_distance": round(self.walking_distance, 2),
            "transfers": self.transfers,
            "segments": [s.to_dict() for s in self.segments],
            "last_updated": self.last_updated.isoformat(),
        }


@dataclass(frozen=True, eq=False)
class ServiceStatus:
    """A service notice for a transport operator."""

    service_type: ServiceType
    status: Status
    message: str
    affected_lines: List[str] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.now)
    expected_resume_time: Optional[datetime] = None
    id: UUID = field(default_factory=uuid4)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ServiceStatus):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def is_disrupted(self) -> bool:
        """Check if the service is running abnormally."""
        return self.status != Status.NORMAL

    def affects(self, line: str) -> bool:
        """Check if a line or route number is named in the notice."""
        return line in self.affected_lines

    def to_dict(self) -> Dict[str, Any]:
        """Convert status to dictionary representation."""
        return {
            "service_type": self.service_type.value,
            "status": self.status.value,
            "message": self.message,
            "affected_lines": list(self.affected_lines),
            "start_time": self.start_time.isoformat(),
            "expected_resume_time": (
                self.expected_resume_time.isoformat()
                if self.expected_resume_time
                else None
            ),
        }


@dataclass(frozen=True, eq=False)
class TransportLocation:
    """A boarding point found near a coordinate."""

    name: str
    type: TransportType
    latitude: float
    longitude: float
    distance: float  # metres
    services: List[str] = field(default_factory=list)
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        """Validate location data."""
        _validate_coordinate(self.latitude, self.longitude)
        if self.distance < 0:
            raise ValueError(f"Invalid distance: {self.distance}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransportLocation):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert transport location to dictionary representation."""
        return {
            "name": self.name,
            "type": self.type.value,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "distance": round(self.distance, 1),
            "services": list(self.services),
        }

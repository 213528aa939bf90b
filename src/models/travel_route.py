"""
Travel route models

Data model for suggested journeys between two locations, together with
the per-step fare table used to estimate what a journey costs.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from .location import Location
from .transport_data import TransportMode

# Flat HKD fare charged per step, by transport mode. Unlisted modes are free.
STEP_FARES: Dict[str, int] = {
    TransportMode.MTR.value: 8,
    TransportMode.BUS.value: 6,
    TransportMode.MINIBUS.value: 7,
    TransportMode.TRAM.value: 3,
    TransportMode.FERRY.value: 5,
    TransportMode.TAXI.value: 50,
}


def fare_for_mode(transport_mode: str) -> int:
    """Get the flat step fare for a transport mode name."""
    return STEP_FARES.get(transport_mode, 0)


@dataclass(frozen=True)
class RouteStep:
    """A single leg of a travel route."""

    instruction: str
    transport_mode: str
    duration: int  # minutes
    distance: Optional[float] = None  # kilometres
    line_number: Optional[str] = None
    stop_name: Optional[str] = None
    platform: Optional[str] = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        """Validate route step data."""
        if not self.transport_mode:
            raise ValueError("Transport mode cannot be empty")
        if self.duration < 0:
            raise ValueError(f"Invalid step duration: {self.duration}")
        if self.distance is not None and self.distance < 0:
            raise ValueError(f"Invalid step distance: {self.distance}")

    @property
    def fare(self) -> int:
        """Flat fare for this step."""
        return fare_for_mode(self.transport_mode)

    @property
    def is_walking(self) -> bool:
        """Check if this step is on foot."""
        return self.transport_mode == TransportMode.WALK.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert step to dictionary representation."""
        return {
            "id": str(self.id),
            "instruction": self.instruction,
            "transport_mode": self.transport_mode,
            "duration": self.duration,
            "distance": self.distance,
            "line_number": self.line_number,
            "stop_name": self.stop_name,
            "platform": self.platform,
        }


@dataclass(frozen=True, eq=False)
class TravelRoute:
    """
    A suggested journey between two locations.

    ``duration`` is the advertised journey time, which may include waiting
    and interchange time; ``steps_duration`` is the plain sum over steps.
    When ``transportation_modes`` is not given it is filled from the steps.
    """

    start_location: Location
    end_location: Location
    departure_time: datetime
    estimated_arrival_time: datetime
    duration: int  # minutes
    transportation_modes: List[str] = field(default_factory=list)
    steps: List[RouteStep] = field(default_factory=list)
    weather_impact: Optional[str] = None
    notes: Optional[str] = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        """Validate and complete route data."""
        if self.duration < 0:
            raise ValueError(f"Invalid route duration: {self.duration}")

        if not self.transportation_modes and self.steps:
            object.__setattr__(self, "transportation_modes", self.transport_modes_used)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TravelRoute):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def transport_modes_used(self) -> List[str]:
        """Distinct transport modes used by the steps, in travel order."""
        modes: List[str] = []
        for step in self.steps:
            if step.transport_mode not in modes:
                modes.append(step.transport_mode)
        return modes

    @property
    def steps_duration(self) -> int:
        """Sum of step durations in minutes."""
        return sum(step.duration for step in self.steps)

    @property
    def total_distance(self) -> float:
        """Sum of known step distances in kilometres."""
        return sum(step.distance for step in self.steps if step.distance is not None)

    @property
    def estimated_cost(self) -> int:
        """Estimated fare in HKD."""
        return calculate_cost(self)

    def connects(self, start_name: str, end_name: str) -> bool:
        """Check if this route runs between the two named locations."""
        return (
            self.start_location.name == start_name
            and self.end_location.name == end_name
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert route to dictionary representation."""
        return {
            "id": str(self.id),
            "start_location": self.start_location.to_dict(),
            "end_location": self.end_location.to_dict(),
            "departure_time": self.departure_time.isoformat(),
            "estimated_arrival_time": self.estimated_arrival_time.isoformat(),
            "duration": self.duration,
            "transportation_modes": list(self.transportation_modes),
            "steps": [step.to_dict() for step in self.steps],
            "weather_impact": self.weather_impact,
            "notes": self.notes,
            "estimated_cost": self.estimated_cost,
        }


def calculate_cost(route: TravelRoute) -> int:
    """
    Estimate the fare of a travel route.

    Args:
        route: Route whose steps are priced

    Returns:
        int: Sum of the flat per-step fares in HKD
    """
    return sum(fare_for_mode(step.transport_mode) for step in route.steps)

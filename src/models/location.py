"""
Location model

Immutable data class for places a traveller can start from or head to.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Tuple
from uuid import UUID, uuid4


@dataclass(frozen=True, eq=False)
class Location:
    """
    Immutable location data.

    Two locations are the same location when their ids match, regardless
    of the rest of their fields.
    """
    name: str
    address: str
    latitude: float = 0.0
    longitude: float = 0.0
    is_favorite: bool = False
    category: str = "Other"
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        """Validate location data."""
        if not self.name or not self.name.strip():
            raise ValueError("Location name cannot be empty")
        if not (-90 <= self.latitude <= 90):
            raise ValueError(f"Invalid latitude: {self.latitude}")
        if not (-180 <= self.longitude <= 180):
            raise ValueError(f"Invalid longitude: {self.longitude}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Location):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def coordinate(self) -> Tuple[float, float]:
        """Get (latitude, longitude) pair."""
        return (self.latitude, self.longitude)

    def with_favorite(self, is_favorite: bool) -> "Location":
        """Return a copy with the favourite flag changed."""
        return replace(self, is_favorite=is_favorite)

    def to_dict(self) -> Dict[str, Any]:
        """Convert location to dictionary representation."""
        return {
            "id": str(self.id),
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "is_favorite": self.is_favorite,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Location":
        """Create a location from its dictionary representation."""
        kwargs = {
            "name": data["name"],
            "address": data.get("address", ""),
            "latitude": float(data.get("latitude", 0.0)),
            "longitude": float(data.get("longitude", 0.0)),
            "is_favorite": bool(data.get("is_favorite", False)),
            "category": data.get("category", "Other"),
        }
        if data.get("id"):
            kwargs["id"] = UUID(str(data["id"]))
        return cls(**kwargs)

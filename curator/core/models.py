"""Core data models shared by the curation pipeline."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Sparse patch keyed by the backend's wire names; a present key replaces the field.
UpdateRequest = Dict[str, Any]


class PlaceCategory(str, enum.Enum):
    ATTRACTION = "ATTRACTION"
    RESTAURANT = "RESTAURANT"
    SHOPPING = "SHOPPING"
    HOTEL = "HOTEL"
    TRANSIT_HUB = "TRANSIT_HUB"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class ItemOutcome(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class CoordinatePair:
    lat: float
    lng: float

    def as_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(slots=True)
class LocationRecord:
    """Snapshot of a place as returned by the catalog admin API."""

    id: int
    name_local: Optional[str] = None
    name_english: Optional[str] = None
    category: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    address: Optional[str] = None
    description: Optional[str] = None
    rating: Optional[float] = None
    uuid: Optional[str] = None
    city_id: Optional[int] = None
    country_code: Optional[str] = None
    metadata: Any = None
    physical_metadata: Any = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def display_name(self) -> str:
        return self.name_local or self.name_english or "未知地点"

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "LocationRecord":
        location = payload.get("location")
        if not isinstance(location, dict):
            location = {}
        city = payload.get("city")
        if not isinstance(city, dict):
            city = {}

        return cls(
            id=int(payload["id"]),
            name_local=payload.get("nameCN"),
            name_english=payload.get("nameEN"),
            category=payload.get("category"),
            lat=_safe_float(location.get("lat")),
            lng=_safe_float(location.get("lng")),
            address=payload.get("address"),
            description=payload.get("description"),
            rating=_safe_float(payload.get("rating")),
            uuid=payload.get("uuid"),
            city_id=city.get("id") or payload.get("cityId"),
            country_code=payload.get("countryCode") or city.get("countryCode"),
            metadata=payload.get("metadata"),
            physical_metadata=payload.get("physicalMetadata"),
            raw=payload,
        )

    def to_context(self) -> Dict[str, Any]:
        """Wire-shaped view of the record used as model context."""
        if self.raw:
            return self.raw
        context: Dict[str, Any] = {"id": self.id, "nameCN": self.name_local}
        if self.name_english is not None:
            context["nameEN"] = self.name_english
        if self.category is not None:
            context["category"] = self.category
        if self.has_coordinates:
            context["location"] = {"lat": self.lat, "lng": self.lng}
        if self.address is not None:
            context["address"] = self.address
        if self.description is not None:
            context["description"] = self.description
        if self.rating is not None:
            context["rating"] = self.rating
        if self.metadata is not None:
            context["metadata"] = self.metadata
        if self.physical_metadata is not None:
            context["physicalMetadata"] = self.physical_metadata
        return context


@dataclass(slots=True)
class DuplicateGroup:
    key: str
    lat: float
    lng: float
    places: List[LocationRecord] = field(default_factory=list)

    @property
    def ids(self) -> List[int]:
        return [place.id for place in self.places]


@dataclass(slots=True)
class BatchRunState:
    """Running counters and pagination cursor for one batch run."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    page: int = 0
    page_size: int = 0
    total_known: Optional[int] = None

    def record(self, outcome: ItemOutcome) -> None:
        if outcome is ItemOutcome.SUCCEEDED:
            self.succeeded += 1
        elif outcome is ItemOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
        self.processed += 1

    def summary(self) -> Dict[str, int]:
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
        }


def _safe_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None

"""Map loosely typed enhancement payloads onto the catalog update schema."""

import logging
from typing import Any, Dict, Mapping, Optional

from curator.core.geo import extract_coordinates, to_number
from curator.core.models import PlaceCategory, UpdateRequest

logger = logging.getLogger(__name__)

_SCALAR_FIELDS = (
    "nameLocal",
    "nameEnglish",
    "nameCN",
    "nameEN",
    "category",
    "address",
    "description",
    "rating",
    "cityId",
    "googlePlaceId",
)
_BAG_FIELDS = ("metadata", "physicalMetadata")


class UpdateValidationError(ValueError):
    """Raised when an update would be rejected by the catalog."""


def normalize_place_data(data: Any, source_metadata: Any = None) -> UpdateRequest:
    """Build a sparse update from an AI response or form payload.

    Only keys present (and not null) in ``data`` appear in the result. When
    the payload carries no coordinates at all, the source record's metadata
    is searched so existing coordinates are preserved.
    """
    if not isinstance(data, Mapping):
        return {}

    normalized: UpdateRequest = {}

    for key in _SCALAR_FIELDS:
        if data.get(key) is not None:
            normalized[key] = data[key]

    normalized.update(_supplied_coordinates(data))

    if "lat" not in normalized and "lng" not in normalized:
        fallback = extract_coordinates(source_metadata)
        if fallback is not None:
            logger.debug("No coordinates supplied, using source metadata: %s", fallback)
            normalized["lat"] = fallback.lat
            normalized["lng"] = fallback.lng

    for key in _BAG_FIELDS:
        if data.get(key) is not None:
            normalized[key] = data[key]

    return normalized


def _supplied_coordinates(data: Mapping) -> Dict[str, float]:
    location = data.get("location")
    if isinstance(location, Mapping):
        coords = _present_axes(location)
        if coords:
            return coords
    return _present_axes(data)


def _present_axes(source: Mapping) -> Dict[str, float]:
    coords: Dict[str, float] = {}
    for axis in ("lat", "lng"):
        value = to_number(source.get(axis))
        if value is not None:
            coords[axis] = value
    return coords


def validate_update(update: UpdateRequest, require_coordinates: bool = False) -> None:
    """Reject updates the catalog would refuse, before any network call."""
    lat: Optional[float] = update.get("lat")
    lng: Optional[float] = update.get("lng")

    if require_coordinates and (lat is None or lng is None):
        raise UpdateValidationError("update must carry both lat and lng")
    if lat is not None and abs(lat) > 90:
        raise UpdateValidationError(f"lat {lat} is outside [-90, 90]")
    if lng is not None and abs(lng) > 180:
        raise UpdateValidationError(f"lng {lng} is outside [-180, 180]")

    category = update.get("category")
    if category is not None and category not in PlaceCategory.values():
        raise UpdateValidationError(
            f"category {category!r} is not one of {', '.join(PlaceCategory.values())}"
        )

    rating = update.get("rating")
    if rating is not None:
        rating_value = to_number(rating)
        if rating_value is None or not 0 <= rating_value <= 5:
            raise UpdateValidationError(f"rating {rating!r} must be a number between 0 and 5")

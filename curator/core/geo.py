"""Coordinate helpers: extraction from loose metadata and great-circle distance."""

import math
from typing import Any, Mapping, Optional

from curator.core.models import CoordinatePair

EARTH_RADIUS_METERS = 6371000.0
COORD_KEY_PRECISION = 6


def extract_coordinates(obj: Any) -> Optional[CoordinatePair]:
    """Pull a lat/lng pair out of an arbitrarily shaped metadata object.

    Shapes are tried in order: flat ``lat``/``lng``, nested ``location``, then a
    ``coordinates`` array. The first shape that yields an in-range pair wins.
    Anything malformed returns ``None``.
    """
    if not isinstance(obj, Mapping):
        return None

    pair = _pair_from_fields(obj)
    if pair is not None:
        return pair

    location = obj.get("location")
    if isinstance(location, Mapping):
        pair = _pair_from_fields(location)
        if pair is not None:
            return pair

    return _pair_from_array(obj.get("coordinates"))


def _pair_from_fields(obj: Mapping) -> Optional[CoordinatePair]:
    lat = to_number(obj.get("lat"))
    lng = to_number(obj.get("lng"))
    if lat is None or lng is None:
        return None
    if not is_valid_pair(lat, lng):
        return None
    return CoordinatePair(lat=lat, lng=lng)


def _pair_from_array(values: Any) -> Optional[CoordinatePair]:
    if not isinstance(values, (list, tuple)) or len(values) < 2:
        return None
    first = to_number(values[0])
    second = to_number(values[1])
    if first is None or second is None:
        return None
    # Listed order wins when both assignments are in range.
    if is_valid_pair(first, second):
        return CoordinatePair(lat=first, lng=second)
    if is_valid_pair(second, first):
        return CoordinatePair(lat=second, lng=first)
    return None


def to_number(value: Any) -> Optional[float]:
    """Coerce ints, floats and numeric strings to a finite float."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def is_valid_pair(lat: float, lng: float) -> bool:
    return abs(lat) <= 90 and abs(lng) <= 180


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def coordinate_key(lat: float, lng: float, precision: int = COORD_KEY_PRECISION) -> str:
    return f"{lat:.{precision}f}_{lng:.{precision}f}"

"""Client utilities for the catalog admin API."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from curator.core.models import LocationRecord, UpdateRequest

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_TIMEOUT = 10


class CatalogError(RuntimeError):
    """Raised when the catalog API returns a non-successful response."""


@dataclass
class CatalogPage:
    records: List[LocationRecord] = field(default_factory=list)
    total: int = 0
    total_pages: int = 0


def list_places(
    base_url: str,
    *,
    page: int,
    limit: int,
    country_code: Optional[str] = None,
    city_id: Optional[int] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
) -> CatalogPage:
    params: Dict[str, Any] = {"page": page, "limit": limit}
    if country_code:
        params["countryCode"] = country_code
    if city_id is not None:
        params["cityId"] = city_id
    if search:
        params["search"] = search
    if category:
        params["category"] = category

    response = _SESSION.get(f"{base_url}/places/admin", params=params, timeout=_TIMEOUT)
    data = _unwrap(response, "list_places") or {}

    raw_places = data.get("places")
    if raw_places is None:
        raw_places = data.get("records") or []

    records: List[LocationRecord] = []
    for raw in raw_places:
        if not isinstance(raw, dict) or raw.get("id") is None:
            logger.debug("Skipping catalog entry without id: %s", raw)
            continue
        records.append(LocationRecord.from_api(raw))

    return CatalogPage(
        records=records,
        total=int(data.get("total") or 0),
        total_pages=int(data.get("totalPages") or 0),
    )


def get_place(base_url: str, place_id: int) -> LocationRecord:
    response = _SESSION.get(f"{base_url}/places/admin/{place_id}", timeout=_TIMEOUT)
    data = _unwrap(response, "get_place")
    if not isinstance(data, dict):
        raise CatalogError(f"place {place_id} not found")
    return LocationRecord.from_api(data)


def update_place(base_url: str, place_id: int, update: UpdateRequest) -> Dict[str, Any]:
    response = _SESSION.put(f"{base_url}/places/admin/{place_id}", json=update, timeout=_TIMEOUT)
    return _unwrap(response, "update_place") or {}


def delete_place(base_url: str, place_id: int) -> bool:
    """Delete a place; an already removed place reports ``False`` instead of raising."""
    response = _SESSION.delete(f"{base_url}/places/admin/{place_id}", timeout=_TIMEOUT)
    if response.status_code == 404:
        logger.warning("delete_place: place %s no longer exists", place_id)
        return False
    try:
        _unwrap(response, "delete_place")
    except CatalogError as exc:
        logger.warning("delete_place failed for %s: %s", place_id, exc)
        return False
    return True


def _unwrap(response: Any, operation: str) -> Any:
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    if not (200 <= response.status_code < 300) or payload.get("success") is False:
        error = payload.get("error") or {}
        message = error.get("message") if isinstance(error, dict) else None
        logger.error("%s failed: status=%s, error_message=%s", operation, response.status_code, message)
        raise CatalogError(message or f"HTTP {response.status_code}")

    if "data" in payload:
        return payload["data"]
    return payload

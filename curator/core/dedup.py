"""Duplicate place detection by coordinate clustering."""

from __future__ import annotations

import enum
import logging
from typing import Callable, Dict, Iterable, List, Optional, Set

from curator.core.batch import iter_pages, run_batch
from curator.core.geo import coordinate_key, haversine_meters
from curator.core.models import BatchRunState, DuplicateGroup, ItemOutcome, LocationRecord
from curator.vendors.catalog import CatalogPage

logger = logging.getLogger(__name__)

MAX_TOLERANCE_METERS = 1000.0


class ScanStatus(str, enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    GROUPING = "grouping"
    DONE = "done"
    ERROR = "error"


def group_duplicates(records: Iterable[LocationRecord], tolerance_m: float = 0.0) -> List[DuplicateGroup]:
    """Group records whose coordinates coincide within ``tolerance_m`` metres.

    With a zero tolerance records are bucketed by their coordinates rounded to
    six decimals. Otherwise each record joins the first existing bucket whose
    representative lies within the tolerance, or opens a new one. The
    representative of a bucket is its first member and is never recomputed,
    so the result depends on scan order.
    """
    buckets: Dict[str, DuplicateGroup] = {}

    for record in records:
        if not record.has_coordinates:
            continue

        if tolerance_m <= 0:
            key = coordinate_key(record.lat, record.lng)
            bucket = buckets.get(key)
            if bucket is None:
                bucket = buckets[key] = _new_group(key)
            bucket.places.append(record)
            continue

        for bucket in buckets.values():
            distance = haversine_meters(record.lat, record.lng, bucket.lat, bucket.lng)
            if distance <= tolerance_m:
                bucket.places.append(record)
                break
        else:
            key = coordinate_key(record.lat, record.lng)
            bucket = buckets.get(key)
            if bucket is None:
                bucket = buckets[key] = _new_group(key)
            bucket.places.append(record)

    groups = [bucket for bucket in buckets.values() if len(bucket.places) > 1]
    for group in groups:
        group.places.sort(key=lambda place: place.id)
    groups.sort(key=lambda group: len(group.places), reverse=True)
    return groups


def _new_group(key: str) -> DuplicateGroup:
    lat_text, lng_text = key.split("_")
    return DuplicateGroup(key=key, lat=float(lat_text), lng=float(lng_text))


class DuplicateScan:
    """Page through the catalog, then group the fetched records.

    Lifecycle: ``IDLE -> SCANNING -> GROUPING -> DONE``; any exception moves
    the scan to ``ERROR`` and is re-raised to the caller.
    """

    def __init__(
        self,
        fetch_page: Callable[[int, int], CatalogPage],
        tolerance_m: float = 0.0,
        *,
        page_size: int = 100,
        max_pages: Optional[int] = None,
    ) -> None:
        if not 0 <= tolerance_m <= MAX_TOLERANCE_METERS:
            raise ValueError(f"tolerance must be between 0 and {MAX_TOLERANCE_METERS:g} metres")
        self._fetch_page = fetch_page
        self.tolerance_m = tolerance_m
        self.page_size = page_size
        self.max_pages = max_pages
        self.status = ScanStatus.IDLE
        self.scanned = 0
        self.total: Optional[int] = None
        self.groups: List[DuplicateGroup] = []
        self.error: Optional[str] = None

    def run(self) -> List[DuplicateGroup]:
        self.status = ScanStatus.SCANNING
        self.scanned = 0
        self.total = None
        self.groups = []
        self.error = None

        try:
            records: List[LocationRecord] = []
            cursor = BatchRunState(page_size=self.page_size)
            for page in iter_pages(self._fetch_page, cursor, max_pages=self.max_pages):
                records.extend(page.records)
                self.scanned = len(records)
                self.total = page.total

            self.status = ScanStatus.GROUPING
            self.groups = group_duplicates(records, self.tolerance_m)
        except Exception as exc:
            self.status = ScanStatus.ERROR
            self.error = str(exc)
            logger.error("Duplicate scan failed after %d records: %s", self.scanned, exc)
            raise

        self.status = ScanStatus.DONE
        logger.info(
            "Scanned %d places, found %d duplicate groups (%d extra records)",
            self.scanned,
            len(self.groups),
            count_extras(self.groups),
        )
        return self.groups


def count_extras(groups: Iterable[DuplicateGroup]) -> int:
    return sum(len(group.places) - 1 for group in groups)


def select_all_but_first(group: DuplicateGroup, selected: Set[int]) -> Set[int]:
    """Mark every member except the lowest id for deletion."""
    updated = set(selected)
    for place in group.places[1:]:
        updated.add(place.id)
    return updated


def deselect_all(group: DuplicateGroup, selected: Set[int]) -> Set[int]:
    updated = set(selected)
    for place in group.places:
        updated.discard(place.id)
    return updated


def prune_deleted(groups: Iterable[DuplicateGroup], deleted_id: int) -> List[DuplicateGroup]:
    """Drop a deleted place and discard groups that no longer hold duplicates."""
    remaining: List[DuplicateGroup] = []
    for group in groups:
        places = [place for place in group.places if place.id != deleted_id]
        if len(places) > 1:
            remaining.append(DuplicateGroup(key=group.key, lat=group.lat, lng=group.lng, places=places))
    return remaining


def delete_places(
    place_ids: Iterable[int],
    delete_fn: Callable[[int], bool],
    state: BatchRunState,
    *,
    dry_run: bool = False,
    on_deleted: Optional[Callable[[int], None]] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> BatchRunState:
    """Delete places one at a time; a missing place counts as failed, not fatal."""

    def _delete(place_id: int) -> ItemOutcome:
        if dry_run:
            logger.info("[dry-run] would delete place %s", place_id)
            return ItemOutcome.SKIPPED
        if not delete_fn(place_id):
            logger.warning("Place %s was not deleted", place_id)
            return ItemOutcome.FAILED
        logger.info("Deleted place %s", place_id)
        if on_deleted is not None:
            on_deleted(place_id)
        return ItemOutcome.SUCCEEDED

    return run_batch(sorted(set(place_ids)), _delete, state, should_stop=should_stop)

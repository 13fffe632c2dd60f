"""CLI job that scans the catalog for places sharing the same coordinates."""

import argparse
import logging
from functools import partial
from typing import List, Optional

from curator.core.config import Settings, get_settings
from curator.core.dedup import (
    MAX_TOLERANCE_METERS,
    DuplicateScan,
    count_extras,
    delete_places,
    select_all_but_first,
)
from curator.core.models import BatchRunState, DuplicateGroup, PlaceCategory
from curator.vendors import catalog

logger = logging.getLogger(__name__)


def run_duplicate_scan(
    *,
    tolerance_m: float = 0.0,
    country_code: Optional[str] = None,
    city_id: Optional[int] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
    page_size: Optional[int] = None,
    max_pages: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> List[DuplicateGroup]:
    settings = settings or get_settings()
    fetch_page = partial(
        _fetch_page,
        settings.catalog_api_url,
        country_code=country_code,
        city_id=city_id,
        search=search,
        category=category,
    )
    scan = DuplicateScan(
        fetch_page,
        tolerance_m,
        page_size=page_size or settings.scan_page_size,
        max_pages=max_pages,
    )
    return scan.run()


def _fetch_page(base_url: str, page: int, limit: int, **filters) -> catalog.CatalogPage:
    return catalog.list_places(base_url, page=page, limit=limit, **filters)


def delete_extras(
    groups: List[DuplicateGroup],
    *,
    dry_run: bool = False,
    settings: Optional[Settings] = None,
) -> BatchRunState:
    """Keep the lowest id of every group and delete the rest."""
    settings = settings or get_settings()
    selected = set()
    for group in groups:
        selected = select_all_but_first(group, selected)

    logger.info("Deleting %d duplicate places (dry_run=%s)", len(selected), dry_run)
    state = delete_places(
        selected,
        partial(catalog.delete_place, settings.catalog_api_url),
        BatchRunState(),
        dry_run=dry_run,
    )
    logger.info(
        "Deletion finished: succeeded=%d failed=%d skipped=%d",
        state.succeeded,
        state.failed,
        state.skipped,
    )
    return state


def log_groups(groups: List[DuplicateGroup]) -> None:
    for group in groups:
        logger.info("%s (%d places)", group.key, len(group.places))
        for index, place in enumerate(group.places):
            marker = "keep" if index == 0 else "dup "
            logger.info("  [%s] %s %s (%s)", marker, place.id, place.display_name, place.category or "-")
    logger.info("%d duplicate groups, %d extra places", len(groups), count_extras(groups))


def _tolerance(value: str) -> float:
    tolerance = float(value)
    if not 0 <= tolerance <= MAX_TOLERANCE_METERS:
        raise argparse.ArgumentTypeError(f"tolerance must be between 0 and {MAX_TOLERANCE_METERS:g}")
    return tolerance


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Find places that share coordinates")
    parser.add_argument(
        "--tolerance",
        dest="tolerance_m",
        type=_tolerance,
        default=0.0,
        help="Distance in metres under which places count as duplicates (0 = identical)",
    )
    parser.add_argument("--country", dest="country_code", help="Country code filter")
    parser.add_argument("--city-id", dest="city_id", type=int, help="City id filter")
    parser.add_argument("--search", dest="search", help="Free-text search filter")
    parser.add_argument("--category", dest="category", choices=PlaceCategory.values(), help="Category filter")
    parser.add_argument("--page-size", dest="page_size", type=int, default=settings.scan_page_size)
    parser.add_argument("--max-pages", dest="max_pages", type=int, default=settings.max_pages)
    parser.add_argument(
        "--delete-extras",
        dest="delete_extras",
        action="store_true",
        help="Delete every duplicate except the lowest id of each group",
    )
    parser.add_argument("--dry-run", dest="dry_run", action="store_true", help="Log deletions without running them")
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args()

    try:
        groups = run_duplicate_scan(
            tolerance_m=args.tolerance_m,
            country_code=args.country_code,
            city_id=args.city_id,
            search=args.search,
            category=args.category,
            page_size=args.page_size,
            max_pages=args.max_pages,
        )
    except Exception as exc:  # pragma: no cover - CLI fallback
        logger.error("Duplicate scan failed: %s", exc, exc_info=True)
        raise SystemExit(1) from exc

    log_groups(groups)
    if args.delete_extras and groups:
        delete_extras(groups, dry_run=args.dry_run)


if __name__ == "__main__":
    main()

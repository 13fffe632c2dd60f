"""CLI job that enriches catalog places with DeepSeek and writes the updates back."""

import argparse
import json
import logging
import time
from functools import partial
from pathlib import Path
from typing import Any, Dict, Optional

from curator.core.batch import iter_pages, run_batch
from curator.core.config import ConfigError, Settings, get_settings, require_deepseek_key
from curator.core.enrichment import STATUS_FAILED, STATUS_SKIPPED, PlaceEnricher
from curator.core.models import BatchRunState, ItemOutcome, LocationRecord, PlaceCategory
from curator.etl.normalize import UpdateValidationError, validate_update
from curator.vendors import catalog

logger = logging.getLogger(__name__)


def run_enhance_job(
    *,
    country_code: Optional[str] = None,
    city_id: Optional[int] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
    page_size: Optional[int] = None,
    max_pages: Optional[int] = None,
    delay_seconds: Optional[float] = None,
    require_coordinates: bool = False,
    process_all: bool = False,
    dry_run: bool = False,
    settings: Optional[Settings] = None,
) -> BatchRunState:
    settings = settings or get_settings()
    require_deepseek_key(settings)
    if not process_all and not any((country_code, city_id, search, category)):
        raise ConfigError("Provide --country, --city-id, --search or --category (or --all to process every place).")

    state = BatchRunState(page_size=page_size or settings.enrich_page_size)
    delay = settings.enrich_delay_seconds if delay_seconds is None else delay_seconds
    enricher = PlaceEnricher(settings)
    fetch_page = partial(
        _fetch_page,
        settings.catalog_api_url,
        country_code=country_code,
        city_id=city_id,
        search=search,
        category=category,
    )

    logger.info(
        "Starting enrichment run country=%s city_id=%s search=%s category=%s dry_run=%s",
        country_code,
        city_id,
        search,
        category,
        dry_run,
    )

    def _enhance(record: LocationRecord) -> ItemOutcome:
        logger.info(
            "[%d/%s] Enriching place %s (ID: %s)",
            state.processed + 1,
            state.total_known if state.total_known is not None else "?",
            record.display_name,
            record.id,
        )
        result = enricher.enrich(record)
        if result.status == STATUS_FAILED:
            return ItemOutcome.FAILED
        if result.status == STATUS_SKIPPED:
            logger.warning("Skipping place %s: AI returned no usable data", record.id)
            return ItemOutcome.SKIPPED

        try:
            validate_update(result.update, require_coordinates=require_coordinates)
        except UpdateValidationError as exc:
            logger.error("Rejected update for place %s: %s", record.id, exc)
            return ItemOutcome.FAILED

        if dry_run:
            logger.info(
                "[dry-run] would update place %s with %s",
                record.id,
                json.dumps(result.update, ensure_ascii=False),
            )
            return ItemOutcome.SUCCEEDED

        try:
            catalog.update_place(settings.catalog_api_url, record.id, result.update)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to update place %s: %s", record.id, exc)
            save_failed_update(settings.failed_updates_dir, record.id, result.update, str(exc))
            return ItemOutcome.FAILED

        logger.info("Updated place %s", record.id)
        return ItemOutcome.SUCCEEDED

    # The delay also spaces the last item of one page from the first of the next.
    first_page = True
    for page in iter_pages(fetch_page, state, max_pages=max_pages):
        if not first_page and delay > 0:
            time.sleep(delay)
        first_page = False
        run_batch(page.records, _enhance, state, delay_seconds=delay)

    logger.info(
        "Completed run: processed=%d succeeded=%d failed=%d skipped=%d",
        state.processed,
        state.succeeded,
        state.failed,
        state.skipped,
    )
    return state


def _fetch_page(base_url: str, page: int, limit: int, **filters: Any) -> catalog.CatalogPage:
    return catalog.list_places(base_url, page=page, limit=limit, **filters)


def save_failed_update(directory: str, place_id: int, update: Dict[str, Any], error: str) -> Optional[Path]:
    """Persist an update that could not be applied so it can be replayed later."""
    failed_dir = Path(directory)
    try:
        failed_dir.mkdir(parents=True, exist_ok=True)
        fname = failed_dir.joinpath(f"failed-{place_id}-{int(time.time())}.json")
        with fname.open("w", encoding="utf-8") as fh:
            json.dump({"id": place_id, "payload": update, "error": error}, fh, ensure_ascii=False, indent=2)
    except OSError as exc:
        logger.error("Failed to save failed update for place %s: %s", place_id, exc)
        return None
    logger.info("Saved failed update to %s", fname)
    return fname


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Enrich catalog places with DeepSeek")
    parser.add_argument("--country", dest="country_code", help="Country code filter, e.g. IS")
    parser.add_argument("--city-id", dest="city_id", type=int, help="City id filter")
    parser.add_argument("--search", dest="search", help="Free-text search filter")
    parser.add_argument("--category", dest="category", choices=PlaceCategory.values(), help="Category filter")
    parser.add_argument(
        "--page-size",
        dest="page_size",
        type=int,
        default=settings.enrich_page_size,
        help="Places fetched per page",
    )
    parser.add_argument(
        "--max-pages",
        dest="max_pages",
        type=int,
        default=settings.max_pages,
        help="Stop after this many pages (default: all)",
    )
    parser.add_argument(
        "--delay",
        dest="delay_seconds",
        type=float,
        default=settings.enrich_delay_seconds,
        help="Seconds to wait between places",
    )
    parser.add_argument(
        "--require-coordinates",
        dest="require_coordinates",
        action="store_true",
        help="Reject updates that do not carry lat and lng",
    )
    parser.add_argument("--all", dest="process_all", action="store_true", help="Process every place")
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Do everything except writing updates; log the payloads instead",
    )
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    try:
        run_enhance_job(**vars(args))
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    except Exception as exc:  # pragma: no cover - CLI fallback
        logger.error("Enrichment run failed: %s", exc, exc_info=True)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()

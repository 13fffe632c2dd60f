"""HTTP entrypoint that triggers duplicate scans, deletions and enrichment jobs."""

from __future__ import annotations

import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request

from curator.core.config import ConfigError, get_settings
from curator.core.dedup import MAX_TOLERANCE_METERS, DuplicateScan, count_extras, delete_places
from curator.core.enrichment import PlaceEnricher
from curator.core.models import BatchRunState, DuplicateGroup
from curator.etl.normalize import UpdateValidationError, validate_update
from curator.jobs.enhance_places import run_enhance_job
from curator.vendors import catalog

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & executor ----------
app = Flask(__name__)
# One worker: queued enrichment batches never hit the model endpoint concurrently.
_executor = ThreadPoolExecutor(max_workers=1)

_FILTER_FIELDS = ("country_code", "city_id", "search", "category")

# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "catalog_api_url": settings.catalog_api_url,
                "enrichment_configured": bool(settings.deepseek_api_key),
            }
        ),
        200,
    )


@app.post("/duplicates/scan")
def scan_duplicates() -> Any:
    """
    Scan the catalog for duplicate coordinates and return the groups.
    Optional JSON fields: tolerance_m, page_size, max_pages, country_code, city_id, search, category
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    settings = get_settings()

    try:
        tolerance_m = float(payload.get("tolerance_m") or 0)
    except (TypeError, ValueError):
        return jsonify({"error": "tolerance_m must be numeric"}), 400
    if not 0 <= tolerance_m <= MAX_TOLERANCE_METERS:
        return jsonify({"error": f"tolerance_m must be between 0 and {MAX_TOLERANCE_METERS:g}"}), 400

    try:
        page_size = _optional_positive_int(payload, "page_size") or settings.scan_page_size
        max_pages = _optional_positive_int(payload, "max_pages")
        filters = _filters(payload)
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    scan = DuplicateScan(
        partial(_fetch_page, settings.catalog_api_url, **filters),
        tolerance_m,
        page_size=page_size,
        max_pages=max_pages,
    )
    try:
        groups = scan.run()
    except Exception as exc:  # noqa: BLE001
        return jsonify({"error": f"scan failed: {exc}", "scanned": scan.scanned}), 502

    return (
        jsonify(
            {
                "data": {
                    "status": scan.status.value,
                    "scanned": scan.scanned,
                    "total": scan.total,
                    "duplicates": count_extras(groups),
                    "groups": [_serialize_group(group) for group in groups],
                }
            }
        ),
        200,
    )


@app.post("/places/delete")
def delete_selected() -> Any:
    """Delete the given place ids one at a time. Required JSON field: ids (list of int)."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    raw_ids = payload.get("ids")
    if not isinstance(raw_ids, list) or not raw_ids:
        return jsonify({"error": "ids must be a non-empty list"}), 400
    try:
        ids = [int(value) for value in raw_ids]
    except (TypeError, ValueError):
        return jsonify({"error": "ids must be integers"}), 400

    settings = get_settings()
    deleted: List[int] = []
    state = delete_places(
        ids,
        partial(catalog.delete_place, settings.catalog_api_url),
        BatchRunState(),
        dry_run=bool(payload.get("dry_run", False)),
        on_deleted=deleted.append,
    )
    return jsonify({"data": {**state.summary(), "deleted": deleted}}), 200


@app.post("/places/<int:place_id>/enrich")
def enrich_place(place_id: int) -> Any:
    """Enrich one place; with dry_run the update is returned without being applied."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    dry_run = bool(payload.get("dry_run", False))
    settings = get_settings()

    try:
        record = catalog.get_place(settings.catalog_api_url, place_id)
        result = PlaceEnricher(settings).enrich(record)
    except ConfigError as exc:
        return jsonify({"error": str(exc)}), 503
    except Exception as exc:  # noqa: BLE001
        logger.exception("Enrichment failed for place %s: %s", place_id, exc)
        return jsonify({"error": "enrichment failed"}), 502

    if not result.ok:
        return jsonify({"data": {"id": place_id, "status": result.status, "error": result.error}}), 200

    try:
        validate_update(result.update)
    except UpdateValidationError as exc:
        return jsonify({"data": {"id": place_id, "status": "failed", "error": str(exc)}}), 200

    applied = False
    if dry_run:
        logger.info("[dry-run] would update place %s with %s", place_id, json.dumps(result.update, ensure_ascii=False))
    else:
        try:
            catalog.update_place(settings.catalog_api_url, place_id, result.update)
            applied = True
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to update place %s: %s", place_id, exc)
            return jsonify({"data": {"id": place_id, "status": "failed", "error": str(exc), "update": result.update}}), 200

    return jsonify({"data": {"id": place_id, "status": result.status, "update": result.update, "applied": applied}}), 200


@app.post("/enrich")
def enqueue_enrichment() -> Any:
    """
    Queue a batch enrichment job.
    Requires at least one filter (country_code, city_id, search, category) or all=true.
    Optional: page_size, max_pages, dry_run
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    settings = get_settings()
    if not settings.deepseek_api_key:
        return jsonify({"error": "DEEPSEEK_API_KEY is not configured"}), 503

    try:
        filters = _filters(payload)
        page_size = _optional_positive_int(payload, "page_size")
        max_pages = _optional_positive_int(payload, "max_pages")
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    process_all = bool(payload.get("all", False))
    if not process_all and not filters:
        return jsonify({"error": "at least one filter or all=true is required"}), 400

    job_args = dict(
        **filters,
        page_size=page_size,
        max_pages=max_pages,
        process_all=process_all,
        dry_run=bool(payload.get("dry_run", False)),
    )

    logger.info("Queueing enrichment job: %s", job_args)
    _executor.submit(_run_job_safe, job_args)

    return jsonify({"data": {"status": "queued"}}), 202


# ---------- Internals ----------


def _fetch_page(base_url: str, page: int, limit: int, **filters: Any) -> catalog.CatalogPage:
    return catalog.list_places(base_url, page=page, limit=limit, **filters)


def _filters(payload: Dict[str, Any]) -> Dict[str, Any]:
    filters: Dict[str, Any] = {}
    for name in _FILTER_FIELDS:
        value = payload.get(name)
        if value in (None, ""):
            continue
        if name == "city_id":
            try:
                value = int(value)
            except (TypeError, ValueError) as exc:
                raise ValueError("city_id must be numeric") from exc
        filters[name] = value
    return filters


def _optional_positive_int(payload: Dict[str, Any], name: str) -> Optional[int]:
    raw = payload.get(name)
    if raw is None:
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be numeric") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def _serialize_group(group: DuplicateGroup) -> Dict[str, Any]:
    return {
        "key": group.key,
        "lat": group.lat,
        "lng": group.lng,
        "places": [
            {
                "id": place.id,
                "nameCN": place.name_local,
                "nameEN": place.name_english,
                "category": place.category,
                "address": place.address,
            }
            for place in group.places
        ],
    }


def _run_job_safe(job_args: Dict[str, Any]) -> None:
    try:
        run_enhance_job(**job_args)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Enrichment job failed: %s", exc)


def main() -> None:
    port = int(os.getenv("PORT") or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()

"""Locate and parse the structured payload embedded in a model completion."""

import json
import logging
import re
from typing import Any, Optional

from curator.core.models import UpdateRequest
from curator.etl.normalize import normalize_place_data

logger = logging.getLogger(__name__)

FENCED_OBJECT_REGEX = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")
BARE_OBJECT_REGEX = re.compile(r"\{[\s\S]{20,}\}")


def extract_place_data(text: Any, source_metadata: Any = None) -> Optional[UpdateRequest]:
    """Return a normalized update from ``text`` or ``None`` when nothing usable is found.

    A fenced code block is preferred; otherwise the widest brace-delimited
    region is tried. Parse failures are logged and turned into ``None`` so a
    batch can skip one bad response.
    """
    if not isinstance(text, str) or not text:
        return None

    try:
        payload = _locate_payload(text)
    except (ValueError, RecursionError) as exc:
        logger.debug("Model response did not contain valid JSON: %s", exc)
        return None

    if payload is None:
        return None
    if not isinstance(payload, dict):
        logger.debug("Model response JSON is a %s, expected an object", type(payload).__name__)
        return None

    return normalize_place_data(payload, source_metadata)


def _locate_payload(text: str) -> Any:
    match = FENCED_OBJECT_REGEX.search(text)
    if match:
        return json.loads(match.group(1))

    match = BARE_OBJECT_REGEX.search(text)
    if match:
        return json.loads(match.group(0))

    return None

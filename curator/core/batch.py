"""Sequential batch execution with rate limiting and running counters."""

import logging
import time
from typing import Callable, Iterable, Iterator, Optional, TypeVar

from curator.core.models import BatchRunState, ItemOutcome
from curator.vendors.catalog import CatalogPage

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_batch(
    targets: Iterable[T],
    action: Callable[[T], ItemOutcome],
    state: BatchRunState,
    *,
    delay_seconds: float = 0.0,
    should_stop: Optional[Callable[[], bool]] = None,
    on_progress: Optional[Callable[[BatchRunState], None]] = None,
) -> BatchRunState:
    """Run ``action`` over ``targets`` one at a time, in order.

    A raised exception counts as a failed item; the loop always moves on to
    the next target. ``should_stop`` is consulted between items only, and
    ``delay_seconds`` is waited between items, never after the last one.
    """
    first = True
    for target in targets:
        if should_stop is not None and should_stop():
            logger.info("Stop requested; ending batch after %d items", state.processed)
            break

        if not first and delay_seconds > 0:
            time.sleep(delay_seconds)
        first = False

        try:
            outcome = action(target)
        except Exception as exc:  # noqa: BLE001
            logger.error("Batch item %r failed: %s", target, exc)
            outcome = ItemOutcome.FAILED

        state.record(outcome)
        if on_progress is not None:
            on_progress(state)

    return state


def iter_pages(
    fetch_page: Callable[[int, int], CatalogPage],
    state: BatchRunState,
    *,
    max_pages: Optional[int] = None,
) -> Iterator[CatalogPage]:
    """Yield catalog pages until the listing is exhausted or ``max_pages`` is hit."""
    fetched = 0
    seen = 0
    page_number = 1

    while max_pages is None or fetched < max_pages:
        state.page = page_number
        page = fetch_page(page_number, state.page_size)
        fetched += 1
        state.total_known = page.total
        logger.info(
            "Fetched %d records on page %d (total=%s)", len(page.records), page_number, page.total
        )

        if not page.records:
            break

        seen += len(page.records)
        yield page

        if page.total and seen >= page.total:
            break
        if page.total_pages and page_number >= page.total_pages:
            break
        if len(page.records) < state.page_size:
            break
        page_number += 1

import pytest

from curator.core import batch
from curator.core.models import BatchRunState, ItemOutcome, LocationRecord
from curator.vendors.catalog import CatalogPage


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    sleeps = []
    monkeypatch.setattr(batch.time, "sleep", sleeps.append)
    return sleeps


def _assert_balanced(state):
    assert state.processed == state.succeeded + state.failed + state.skipped


def test_empty_batch_keeps_all_counters_zero(no_sleep):
    state = batch.run_batch([], lambda item: ItemOutcome.SUCCEEDED, BatchRunState(), delay_seconds=1.0)
    assert state.summary() == {"processed": 0, "succeeded": 0, "failed": 0, "skipped": 0}
    assert no_sleep == []


def test_counters_stay_balanced_after_every_item(no_sleep):
    outcomes = {1: ItemOutcome.SUCCEEDED, 2: ItemOutcome.SKIPPED, 3: ItemOutcome.FAILED}
    order = []

    def action(item):
        order.append(item)
        if item == 4:
            raise RuntimeError("backend unreachable")
        return outcomes[item]

    snapshots = []
    state = batch.run_batch(
        [1, 2, 3, 4, 1],
        action,
        BatchRunState(),
        delay_seconds=1.0,
        on_progress=lambda s: snapshots.append(s.summary()),
    )

    assert order == [1, 2, 3, 4, 1]
    assert len(snapshots) == 5
    for snapshot in snapshots:
        assert snapshot["processed"] == snapshot["succeeded"] + snapshot["failed"] + snapshot["skipped"]
    assert state.summary() == {"processed": 5, "succeeded": 2, "failed": 2, "skipped": 1}
    # Delays only between items.
    assert no_sleep == [1.0, 1.0, 1.0, 1.0]


def test_stop_flag_checked_between_items():
    seen = []
    state = batch.run_batch(
        range(10),
        lambda item: seen.append(item) or ItemOutcome.SUCCEEDED,
        BatchRunState(),
        should_stop=lambda: len(seen) >= 3,
    )
    assert seen == [0, 1, 2]
    assert state.processed == 3
    _assert_balanced(state)


def test_state_accumulates_across_calls():
    state = BatchRunState()
    batch.run_batch([1, 2], lambda item: ItemOutcome.SUCCEEDED, state)
    batch.run_batch([3], lambda item: ItemOutcome.SKIPPED, state)
    assert state.summary() == {"processed": 3, "succeeded": 2, "failed": 0, "skipped": 1}


def _pages(*sizes, total=None, total_pages=None):
    total = sum(sizes) if total is None else total
    total_pages = len(sizes) if total_pages is None else total_pages
    pages = []
    next_id = 1
    for size in sizes:
        records = [LocationRecord(id=next_id + offset) for offset in range(size)]
        next_id += size
        pages.append(CatalogPage(records=records, total=total, total_pages=total_pages))
    return pages


def _fetcher(pages, calls):
    def fetch(page, limit):
        calls.append((page, limit))
        if page > len(pages):
            return CatalogPage(records=[], total=pages[0].total if pages else 0, total_pages=len(pages))
        return pages[page - 1]

    return fetch


def test_iter_pages_stops_at_total_pages():
    calls = []
    state = BatchRunState(page_size=2)
    pages = list(batch.iter_pages(_fetcher(_pages(2, 2, 1), calls), state))
    assert [len(page.records) for page in pages] == [2, 2, 1]
    assert calls == [(1, 2), (2, 2), (3, 2)]
    assert state.page == 3
    assert state.total_known == 5


def test_iter_pages_stops_on_empty_page():
    calls = []
    pages = list(batch.iter_pages(_fetcher(_pages(2, 2, total=10, total_pages=0), calls), BatchRunState(page_size=2)))
    assert len(pages) == 2
    assert calls == [(1, 2), (2, 2), (3, 2)]


def test_iter_pages_respects_max_pages():
    calls = []
    pages = list(batch.iter_pages(_fetcher(_pages(2, 2, 2), calls), BatchRunState(page_size=2), max_pages=2))
    assert len(pages) == 2
    assert calls == [(1, 2), (2, 2)]

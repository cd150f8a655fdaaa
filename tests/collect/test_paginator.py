"""Tests for PaginatedCollector stop conditions and partial results."""
import pytest

from polywatch.collect.paginator import PaginatedCollector
from polywatch.errors import RateLimitOrServerError


def pager(page_sizes, fail_at=None):
    """fetch_page stub serving pages of the given sizes; records offsets."""
    offsets = []

    def fetch_page(offset, limit):
        offsets.append(offset)
        idx = len(offsets) - 1
        if fail_at is not None and idx == fail_at:
            raise RateLimitOrServerError("HTTP 503", status_code=503)
        size = page_sizes[idx] if idx < len(page_sizes) else 0
        return [f"row-{offset + i}" for i in range(size)]

    return fetch_page, offsets


def test_declining_pages_end_on_short_page():
    fetch_page, offsets = pager([50, 50, 20])
    result = PaginatedCollector(fetch_page, page_size=50).collect()
    assert len(result.rows) == 120
    assert result.pages_fetched == 3
    assert result.stop_reason == "short_page"
    assert result.complete
    assert offsets == [0, 50, 100]


def test_exact_multiple_ends_on_empty_page():
    fetch_page, offsets = pager([50, 50, 0])
    result = PaginatedCollector(fetch_page, page_size=50).collect()
    assert len(result.rows) == 100
    assert result.pages_fetched == 2
    assert result.stop_reason == "empty_page"
    assert result.complete
    assert offsets == [0, 50, 100]


def test_first_page_empty():
    fetch_page, _ = pager([])
    result = PaginatedCollector(fetch_page, page_size=50).collect()
    assert result.rows == []
    assert result.stop_reason == "empty_page"


def test_page_cap_bounds_runaway_upstream():
    fetch_page, offsets = pager([10] * 100)
    result = PaginatedCollector(fetch_page, page_size=10, max_pages=10).collect()
    assert len(offsets) == 10
    assert len(result.rows) == 100
    assert result.stop_reason == "page_cap"
    assert result.truncated


def test_failed_page_keeps_earlier_pages():
    fetch_page, _ = pager([50, 50, 50], fail_at=2)
    result = PaginatedCollector(fetch_page, page_size=50).collect()
    assert len(result.rows) == 100
    assert result.stop_reason == "error"
    assert isinstance(result.error, RateLimitOrServerError)
    assert not result.complete


def test_rows_keep_upstream_order():
    fetch_page, _ = pager([3, 1])
    result = PaginatedCollector(fetch_page, page_size=3).collect()
    assert result.rows == ["row-0", "row-1", "row-2", "row-3"]


def test_iter_pages_is_lazy():
    fetch_page, offsets = pager([5, 5, 5])
    pages = PaginatedCollector(fetch_page, page_size=5).iter_pages()
    assert next(pages) == [f"row-{i}" for i in range(5)]
    assert offsets == [0]


@pytest.mark.parametrize("page_size,max_pages", [(0, 10), (10, 0)])
def test_invalid_bounds(page_size, max_pages):
    with pytest.raises(ValueError):
        PaginatedCollector(lambda o, l: [], page_size=page_size, max_pages=max_pages)

"""Offset pagination over data API list endpoints."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterator, List, Literal, Optional, TypeVar

from polywatch.errors import FetchError

log = logging.getLogger("polywatch.collect")

T = TypeVar("T")

StopReason = Literal["empty_page", "short_page", "page_cap", "error"]

DEFAULT_MAX_PAGES = 10


@dataclass
class CollectionResult(Generic[T]):
    rows: List[T] = field(default_factory=list)
    pages_fetched: int = 0
    stop_reason: Optional[StopReason] = None
    error: Optional[FetchError] = None

    @property
    def complete(self) -> bool:
        """True only when upstream signalled the last page.

        Hitting the page cap or a failed page means ``rows`` may be missing data.
        """
        return self.stop_reason in ("empty_page", "short_page")

    @property
    def truncated(self) -> bool:
        return not self.complete


class PaginatedCollector(Generic[T]):
    """Drain an offset-paged endpoint.

    ``fetch_page(offset, limit)`` returns one page of rows and raises
    FetchError when the page could not be fetched. Stops at the first empty
    page, the first page shorter than ``page_size``, or after ``max_pages``
    pages. A failed page ends collection but keeps the pages already gathered.
    """

    def __init__(
        self,
        fetch_page: Callable[[int, int], List[T]],
        page_size: int = 50,
        max_pages: int = DEFAULT_MAX_PAGES,
        name: str = "rows",
    ):
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        if max_pages <= 0:
            raise ValueError("max_pages must be positive")
        self.fetch_page = fetch_page
        self.page_size = page_size
        self.max_pages = max_pages
        self.name = name

    def iter_pages(self, result: Optional[CollectionResult[T]] = None) -> Iterator[List[T]]:
        """Yield non-empty pages lazily; progress is recorded on ``result``."""
        state = result if result is not None else CollectionResult()
        offset = 0

        for _ in range(self.max_pages):
            try:
                page = self.fetch_page(offset, self.page_size)
            except FetchError as e:
                log.warning(
                    f"{self.name}: page at offset={offset} failed ({e}); "
                    f"keeping {len(state.rows)} rows from {state.pages_fetched} pages"
                )
                state.stop_reason = "error"
                state.error = e
                return

            if not page:
                state.stop_reason = "empty_page"
                return

            state.pages_fetched += 1
            state.rows.extend(page)
            yield page

            if len(page) < self.page_size:
                state.stop_reason = "short_page"
                return

            offset += self.page_size

        state.stop_reason = "page_cap"
        log.warning(f"{self.name}: stopped at page cap ({self.max_pages} pages, {len(state.rows)} rows)")

    def collect(self) -> CollectionResult[T]:
        result: CollectionResult[T] = CollectionResult()
        for _ in self.iter_pages(result):
            pass
        log.debug(
            f"{self.name}: collected {len(result.rows)} rows in {result.pages_fetched} pages "
            f"({result.stop_reason})"
        )
        return result

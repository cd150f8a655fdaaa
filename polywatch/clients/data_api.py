"""Data API client for positions, closed positions, trades, activity and leaderboard.

Every ``fetch_*`` method raises FetchError subclasses on failure. Aggregators
usually go through ``source()``, which folds the outcome into a SourceResult
so a failed source shows up as ``status="error"`` with no rows instead of
aborting the whole summary.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import ValidationError as PydanticValidationError

from polywatch.clients.fetch import ResilientFetchClient
from polywatch.collect.paginator import CollectionResult, PaginatedCollector
from polywatch.config import DataAPIConfig
from polywatch.errors import FetchError, ParseError
from polywatch.models import (
    ActivityRow,
    ClosedPositionRow,
    LeaderboardRow,
    PositionRow,
    SourceResult,
    TradeRow,
    UpstreamRow,
)

log = logging.getLogger("polywatch.data_api")

R = TypeVar("R", bound=UpstreamRow)
T = TypeVar("T")


class DataAPIClient:
    """Client for https://data-api.polymarket.com."""

    def __init__(self, fetch: ResilientFetchClient, config: DataAPIConfig | None = None):
        self.fetch = fetch
        self.config = config or DataAPIConfig()

    def _url(self, endpoint: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    def _get_rows(self, endpoint: str, params: Dict[str, Any], model: Type[R]) -> List[R]:
        url = self._url(endpoint)
        payload = self.fetch.get_json(url, params=_clean_params(params))
        if not isinstance(payload, list):
            raise ParseError(f"expected a JSON array from {url}, got {type(payload).__name__}", url=url)

        rows: List[R] = []
        for item in payload:
            try:
                rows.append(model.model_validate(item))
            except PydanticValidationError as e:
                log.error(f"Failed to parse {model.__name__}: {e.error_count()} errors")
                log.debug(f"{model.__name__} data: {item}")
        return rows

    # ── Endpoints ─────────────────────────────────────────

    def fetch_positions(
        self,
        user: str,
        limit: int | None = None,
        sort_by: str | None = "CURRENT",
    ) -> List[PositionRow]:
        """Open positions, largest current value first (single page)."""
        return self._get_rows(
            "/positions",
            {
                "user": user,
                "limit": limit or self.config.positions_limit,
                "sortBy": sort_by,
                "sortDirection": "DESC" if sort_by else None,
            },
            PositionRow,
        )

    def fetch_closed_positions(
        self,
        user: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> List[ClosedPositionRow]:
        """One page of closed positions."""
        return self._get_rows(
            "/closed-positions",
            {
                "user": user,
                "limit": limit or self.config.closed_page_size,
                "offset": offset,
            },
            ClosedPositionRow,
        )

    def collect_closed_positions(self, user: str) -> CollectionResult[ClosedPositionRow]:
        """All closed positions, bounded by the configured page cap."""
        collector = PaginatedCollector(
            lambda offset, limit: self.fetch_closed_positions(user, limit=limit, offset=offset),
            page_size=self.config.closed_page_size,
            max_pages=self.config.closed_max_pages,
            name=f"closed-positions[{user[:10]}]",
        )
        return collector.collect()

    def fetch_leaderboard(
        self,
        user: str | None = None,
        time_period: str = "ALL",
        order_by: str = "PNL",
        limit: int | None = None,
        category: str = "OVERALL",
    ) -> List[LeaderboardRow]:
        return self._get_rows(
            "/v1/leaderboard",
            {
                "user": user,
                "category": category,
                "timePeriod": time_period,
                "orderBy": order_by,
                "limit": limit or self.config.leaderboard_limit,
            },
            LeaderboardRow,
        )

    def fetch_trades(
        self,
        user: str | None = None,
        since: int | None = None,
        limit: int | None = None,
        offset: int | None = None,
        taker_only: bool | None = None,
        min_cash_amount: float | None = None,
    ) -> List[TradeRow]:
        """Trades, newest first.

        Args:
            user: Restrict to one wallet; None for the global stream.
            since: Unix seconds lower bound (``from``).
            min_cash_amount: Upstream-side CASH filter. Approximate, callers
                still re-check notional locally.
        """
        params: Dict[str, Any] = {
            "user": user,
            "from": since,
            "limit": limit or self.config.trades_limit,
            "offset": offset,
        }
        if user is not None:
            params["sortBy"] = "TIMESTAMP"
            params["sortDirection"] = "DESC"
        if taker_only is not None:
            params["takerOnly"] = str(taker_only).lower()
        if min_cash_amount is not None:
            params["filterType"] = "CASH"
            params["filterAmount"] = _format_amount(min_cash_amount)
        return self._get_rows("/trades", params, TradeRow)

    def fetch_activity(
        self,
        user: str,
        limit: int | None = None,
        activity_type: str | None = None,
        start: int | None = None,
    ) -> List[ActivityRow]:
        return self._get_rows(
            "/activity",
            {
                "user": user,
                "limit": limit or self.config.activity_limit,
                "type": activity_type,
                "start": start,
            },
            ActivityRow,
        )

    # ── Fail-soft wrapper ─────────────────────────────────

    def source(self, name: str, call: Callable[[], List[T]]) -> SourceResult[T]:
        """Run ``call`` and fold the outcome into a SourceResult."""
        try:
            rows = call()
        except FetchError as e:
            log.warning(f"Source '{name}' failed, treating as empty: {e}")
            return SourceResult.failed(name, e)
        return SourceResult.of(name, rows)

    def closed_positions_source(self, user: str) -> SourceResult[ClosedPositionRow]:
        """Closed positions as a SourceResult; partial pages survive a failure."""
        result = self.collect_closed_positions(user)
        if result.error is not None:
            return SourceResult.failed("closed_positions", result.error, rows=result.rows)
        return SourceResult.of("closed_positions", result.rows, complete=result.complete)


def _clean_params(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


def _format_amount(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else str(amount)

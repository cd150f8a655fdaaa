"""Ranked leaderboard listing."""
from __future__ import annotations

import logging
from typing import List

from polywatch.clients.data_api import DataAPIClient
from polywatch.models import LeaderboardEntry, LeaderboardRow
from polywatch.shared.address import short_address

log = logging.getLogger("polywatch.leaderboard")

# Presentation period -> API timePeriod
TIME_PERIODS = {
    "TODAY": "DAY",
    "WEEKLY": "WEEK",
    "MONTHLY": "MONTH",
    "ALL": "ALL",
}

METRIC_ORDER_BY = {
    "PNL": "PNL",
    "VOLUME": "VOL",
}

DEFAULT_LIMIT = 100
MAX_LIMIT = 200


def resolve_query(time_period: str | None, metric: str | None, limit: int | None) -> tuple[str, str, int]:
    """Map presentation inputs onto API parameters; unknown values fall back to defaults."""
    api_period = TIME_PERIODS.get((time_period or "ALL").upper(), "ALL")
    order_by = METRIC_ORDER_BY.get((metric or "PNL").upper(), "PNL")
    if not isinstance(limit, int) or isinstance(limit, bool) or not 0 < limit <= MAX_LIMIT:
        limit = DEFAULT_LIMIT
    return api_period, order_by, limit


def display_name(row: LeaderboardRow) -> str:
    if row.user_name:
        return row.user_name
    return short_address(row.proxy_wallet)


def rank_rows(rows: List[LeaderboardRow]) -> List[LeaderboardEntry]:
    """Upstream order is the ranking; ranks start at 1."""
    return [
        LeaderboardEntry(
            rank=i,
            address=row.proxy_wallet,
            name=display_name(row),
            pnl_usd=row.pnl or 0.0,
            volume_usd=row.vol or 0.0,
        )
        for i, row in enumerate(rows, start=1)
    ]


class LeaderboardService:
    def __init__(self, data_api: DataAPIClient):
        self.data_api = data_api

    def top(
        self,
        time_period: str | None = "ALL",
        metric: str | None = "PNL",
        limit: int | None = DEFAULT_LIMIT,
    ) -> List[LeaderboardEntry]:
        """Raises FetchError when the leaderboard is unreachable."""
        api_period, order_by, limit = resolve_query(time_period, metric, limit)
        rows = self.data_api.fetch_leaderboard(
            time_period=api_period, order_by=order_by, limit=limit,
        )
        log.info(f"Leaderboard {api_period}/{order_by}: {len(rows)} rows")
        return rank_rows(rows)

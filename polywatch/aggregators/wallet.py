"""Wallet P&L reconciliation.

Combines open positions, closed positions, the leaderboard row and recent
trades for one address into a WalletFinancialSummary. Each of the four
sources is fetched independently and may fail on its own; a failed source
contributes nothing and the summary is built from whatever remains.
"""
from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from polywatch.clients.data_api import DataAPIClient
from polywatch.config import WalletConfig
from polywatch.models import (
    ActivityRow,
    ClosedPositionRow,
    LeaderboardRow,
    PositionRow,
    SourceResult,
    TradeRow,
    WalletFinancialSummary,
    WalletSnapshot,
)
from polywatch.shared.address import require_address
from polywatch.shared.time_utils import now_ts

log = logging.getLogger("polywatch.wallet")

DAY_SECONDS = 24 * 60 * 60

SNAPSHOT_POSITIONS_LIMIT = 500
SNAPSHOT_ACTIVITY_LIMIT = 1000

# Profile labels, in evaluation order.
LABEL_NEW = "new explorer"
LABEL_DISCIPLINED = "disciplined profitable trader"
LABEL_AGGRESSIVE = "aggressive high-risk trader"
LABEL_ACCURATE = "consistently high accuracy"
LABEL_POWER_USER = "active power user"


@dataclass
class WalletSources:
    positions: SourceResult[PositionRow]
    closed_positions: SourceResult[ClosedPositionRow]
    leaderboard: SourceResult[LeaderboardRow]
    trades: SourceResult[TradeRow]

    def all(self) -> List[SourceResult]:
        return [self.positions, self.closed_positions, self.leaderboard, self.trades]

    @property
    def failed(self) -> List[str]:
        return [s.source for s in self.all() if not s.ok]


@dataclass(frozen=True)
class ActivityWindow:
    volume_usd: float = 0.0
    trades_count: int = 0
    first_trade_ts: Optional[int] = None
    last_trade_ts: Optional[int] = None


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_win_rate(closed: Iterable[ClosedPositionRow]) -> Tuple[int, int, int]:
    """(wins, losses, win_rate). Washes (realized == 0) are left out entirely."""
    wins = 0
    losses = 0
    for p in closed:
        if p.realized_pnl > 0:
            wins += 1
        elif p.realized_pnl < 0:
            losses += 1
    decided = wins + losses
    win_rate = round_half_up(100 * wins / decided) if decided > 0 else 0
    return wins, losses, win_rate


def _in_window(ts: float, since: int, until: int) -> bool:
    return ts > 0 and since <= ts <= until


def compute_activity_window(trades: Iterable[TradeRow], since: int, until: int) -> ActivityWindow:
    """Volume, trade count and first/last timestamps for trades in [since, until]."""
    trades = list(trades)
    volume = 0.0
    first: Optional[int] = None
    last: Optional[int] = None

    for t in trades:
        if not _in_window(t.timestamp, since, until):
            continue
        volume += abs(t.size * t.price)
        ts = int(t.timestamp)
        if first is None or ts < first:
            first = ts
        if last is None or ts > last:
            last = ts

    count = sum(1 for t in trades if _in_window(t.timestamp, since, until))
    return ActivityWindow(volume, count, first, last)


def classify_profile(
    realized_pnl_usd: float,
    win_rate: int,
    trades_count: int,
    volume_usd: float,
) -> str:
    """Ordered rules, first match wins.

    The ranges overlap (a profitable 65% trader with $3k volume matches both
    the accuracy and power-user rules), so order is what makes them exclusive.
    """
    if trades_count < 10 or volume_usd < 500:
        return LABEL_NEW
    if realized_pnl_usd > 0 and win_rate >= 55 and volume_usd > 5000:
        return LABEL_DISCIPLINED
    if realized_pnl_usd < 0 and volume_usd > 5000:
        return LABEL_AGGRESSIVE
    if win_rate >= 60:
        return LABEL_ACCURATE
    return LABEL_POWER_USER


def leaderboard_pnl(address: str, rows: Iterable[LeaderboardRow]) -> Optional[float]:
    """All-time P&L from the leaderboard row for ``address``, if it has one.

    Rows without a wallet are trusted to be the user-filtered answer; rows for
    a different wallet are ignored.
    """
    for row in rows:
        if row.proxy_wallet and row.proxy_wallet != address:
            continue
        if row.pnl is not None:
            return row.pnl
    return None


def build_summary(
    address: str,
    sources: WalletSources,
    since: int,
    until: int,
) -> WalletFinancialSummary:
    positions = sources.positions.rows
    closed = sources.closed_positions.rows

    open_pnl = sum(p.cash_pnl for p in positions)
    realized_from_open = sum(p.realized_pnl for p in positions)
    realized_from_closed = sum(p.realized_pnl for p in closed)
    realized_combined = realized_from_open + realized_from_closed

    lb_pnl = leaderboard_pnl(address, sources.leaderboard.rows)
    realized = lb_pnl if lb_pnl is not None else realized_combined

    _, _, win_rate = compute_win_rate(closed)
    window = compute_activity_window(sources.trades.rows, since, until)

    return WalletFinancialSummary(
        address=address,
        realized_pnl_usd=realized,
        open_pnl_usd=open_pnl,
        volume_usd=window.volume_usd,
        trades_count=window.trades_count,
        win_rate=win_rate,
        first_trade_ts=window.first_trade_ts,
        last_trade_ts=window.last_trade_ts,
        profile_label=classify_profile(
            realized, win_rate, window.trades_count, window.volume_usd,
        ),
    )


class WalletReconciler:
    """Builds per-wallet P&L summaries from the data API.

    Usage:
        reconciler = WalletReconciler(data_api)
        summary = reconciler.summarize("0xabc...", window_days=30)
    """

    def __init__(
        self,
        data_api: DataAPIClient,
        config: WalletConfig | None = None,
        clock: Callable[[], int] = now_ts,
        max_workers: int = 4,
    ):
        self.data_api = data_api
        self.config = config or WalletConfig()
        self.clock = clock
        self.max_workers = max_workers

    def clamp_days(self, days: float | None) -> int:
        if days is None:
            return self.config.default_window_days
        return int(min(max(days, self.config.min_window_days), self.config.max_window_days))

    def gather(self, address: str, since: int) -> WalletSources:
        """Fetch the four independent sources, concurrently when max_workers > 1."""
        api = self.data_api
        calls = {
            "positions": lambda: api.source(
                "positions", lambda: api.fetch_positions(address)
            ),
            "closed_positions": lambda: api.closed_positions_source(address),
            "leaderboard": lambda: api.source(
                "leaderboard",
                lambda: api.fetch_leaderboard(
                    user=address, time_period="ALL", order_by="PNL", limit=1,
                ),
            ),
            "trades": lambda: api.source(
                "trades", lambda: api.fetch_trades(user=address, since=since)
            ),
        }

        if self.max_workers <= 1:
            results = {name: call() for name, call in calls.items()}
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                futures = {name: pool.submit(call) for name, call in calls.items()}
                results = {name: fut.result() for name, fut in futures.items()}

        return WalletSources(**results)

    def summarize(self, address: str, window_days: float | None = None) -> WalletFinancialSummary:
        """P&L card for ``address`` over the last ``window_days`` days.

        Raises:
            ValidationError: malformed address (before any network call).
        """
        address = require_address(address)
        days = self.clamp_days(window_days)
        now = self.clock()
        since = now - days * DAY_SECONDS

        sources = self.gather(address, since)
        if sources.failed:
            log.warning(f"{address}: degraded summary, failed sources: {', '.join(sources.failed)}")
        if not sources.closed_positions.complete:
            log.info(f"{address}: closed positions truncated at {len(sources.closed_positions.rows)} rows")

        summary = build_summary(address, sources, since, now)
        log.info(
            f"{address}: realized={summary.realized_pnl_usd:.2f} open={summary.open_pnl_usd:.2f} "
            f"vol={summary.volume_usd:.2f} trades={summary.trades_count} "
            f"win={summary.win_rate}% [{summary.profile_label}]"
        )
        return summary

    def snapshot(self, address: str) -> WalletSnapshot:
        """Quick view from open positions plus 24h activity volume."""
        address = require_address(address)
        day_ago = self.clock() - DAY_SECONDS
        api = self.data_api

        positions = api.source(
            "positions",
            lambda: api.fetch_positions(address, limit=SNAPSHOT_POSITIONS_LIMIT, sort_by=None),
        )
        activity = api.source(
            "activity",
            lambda: api.fetch_activity(address, limit=SNAPSHOT_ACTIVITY_LIMIT),
        )
        return build_snapshot(address, positions.rows, activity.rows, day_ago)


def build_snapshot(
    address: str,
    positions: List[PositionRow],
    activity: List[ActivityRow],
    day_ago: int,
) -> WalletSnapshot:
    wins = 0
    with_realized = 0
    for p in positions:
        if p.realized_pnl != 0:
            with_realized += 1
            if p.realized_pnl > 0:
                wins += 1

    volume = 0.0
    for ev in activity:
        if ev.timestamp is None or ev.timestamp < day_ago:
            continue
        if not ev.is_trade or ev.usdc_size is None:
            continue
        volume += ev.usdc_size

    return WalletSnapshot(
        address=address,
        equity_usd=sum(p.current_value for p in positions),
        open_pnl_usd=sum(p.cash_pnl for p in positions),
        realized_pnl_usd=sum(p.realized_pnl for p in positions),
        volume_24h_usd=volume,
        win_rate=round_half_up(100 * wins / with_realized) if with_realized else 0,
        positions_open=len(positions),
    )

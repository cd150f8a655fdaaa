"""Large-trade ("whale") detection over the global trade stream."""
from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, List, Optional

from polywatch.clients.data_api import DataAPIClient
from polywatch.config import WhaleConfig
from polywatch.errors import FetchError
from polywatch.models import TradeRow, WhaleAlert, WhaleScan
from polywatch.shared.time_utils import ts_to_iso

log = logging.getLogger("polywatch.whales")

EVENT_URL = "https://polymarket.com/event/{slug}"
UNKNOWN_MARKET = "Unknown market"

# Maps a trade to "yes" / "no". Swappable: outcome labels on multi-outcome
# markets ("Over", "Lakers") carry no yes/no meaning.
SideClassifier = Callable[[TradeRow], str]


def outcome_text_side(trade: TradeRow) -> str:
    """Substring heuristic over the outcome label.

    "no" in the label wins over "yes"; with neither, a SELL counts as "no" and
    everything else as "yes". Labels such as "Nottingham" therefore read as
    "no".
    """
    outcome = (trade.outcome or "").lower()
    if "no" in outcome:
        return "no"
    if "yes" in outcome:
        return "yes"
    if (trade.side or "").upper() == "SELL":
        return "no"
    return "yes"


def slugify(text: str) -> str:
    return re.sub(r"\s+", "-", text.strip().lower())


def market_url(trade: TradeRow) -> Optional[str]:
    """Event slug, then market slug, then slugified title; None if none exist."""
    slug = trade.event_slug or trade.slug or (slugify(trade.title) if trade.title else None)
    return EVENT_URL.format(slug=slug) if slug else None


def to_alert(trade: TradeRow, classify: SideClassifier = outcome_text_side) -> WhaleAlert:
    return WhaleAlert(
        market_id=trade.condition_id,
        market_question=trade.title or trade.slug or trade.event_slug or UNKNOWN_MARKET,
        side=classify(trade),
        amount_usd=trade.notional_usd,
        price=trade.price,
        timestamp=ts_to_iso(trade.timestamp),
        url=market_url(trade),
    )


def select_whales(
    trades: Iterable[TradeRow],
    threshold_usd: float,
    cap_count: int,
    classify: SideClassifier = outcome_text_side,
) -> List[WhaleAlert]:
    """Trades with local notional >= threshold, newest first, at most cap_count."""
    big = [t for t in trades if t.notional_usd >= threshold_usd]
    big.sort(key=lambda t: t.timestamp, reverse=True)
    return [to_alert(t, classify) for t in big[:max(cap_count, 0)]]


class WhaleDetector:
    """Scans the most recent trades for large notional.

    Usage:
        detector = WhaleDetector(data_api)
        alerts = detector.detect_whales(threshold_usd=5000, cap_count=100)
    """

    def __init__(
        self,
        data_api: DataAPIClient,
        config: WhaleConfig | None = None,
        classify: SideClassifier = outcome_text_side,
        upstream_prefilter: bool = True,
    ):
        self.data_api = data_api
        self.config = config or WhaleConfig()
        self.classify = classify
        self.upstream_prefilter = upstream_prefilter

    def detect_whales(
        self,
        threshold_usd: float | None = None,
        cap_count: int | None = None,
    ) -> List[WhaleAlert]:
        """Raises FetchError if the trades page could not be fetched."""
        threshold = self.config.threshold_usd if threshold_usd is None else threshold_usd
        cap = self.config.cap_count if cap_count is None else cap_count

        trades = self.data_api.fetch_trades(
            limit=self.config.page_limit,
            offset=0,
            taker_only=True,
            min_cash_amount=threshold if self.upstream_prefilter else None,
        )
        alerts = select_whales(trades, threshold, cap, self.classify)
        log.info(f"Whales: {len(alerts)}/{len(trades)} trades >= ${threshold:,.0f}")
        return alerts

    def scan(self, threshold_usd: float | None = None, cap_count: int | None = None) -> WhaleScan:
        """detect_whales wrapped with the window/threshold envelope.

        A failed upstream call yields an empty whale list rather than raising.
        """
        threshold = self.config.threshold_usd if threshold_usd is None else threshold_usd
        try:
            whales = self.detect_whales(threshold, cap_count)
        except FetchError as e:
            log.warning(f"Whales: trade stream unavailable ({e})")
            whales = []
        return WhaleScan(
            window_minutes=self.config.window_minutes,
            threshold_usd=threshold,
            whales=whales,
        )

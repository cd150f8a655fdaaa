"""Recently created markets, minus sports and short-horizon up/down series."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from polywatch.clients.gamma import GammaClient
from polywatch.config import NewMarketsConfig
from polywatch.models import GammaEvent, NewMarket
from polywatch.shared.time_utils import parse_iso

log = logging.getLogger("polywatch.new_markets")

EVENT_URL = "https://polymarket.com/event/{ref}"

UP_DOWN_TITLE_MARKERS = ("up or down", "up/down", "15 minute up", "15-minute up")
UP_DOWN_TAG_MARKERS = ("up/down", "up or down", "updown", "up-down")
SPORTS_TITLE_MARKERS = ("nfl", "nba", "premier league")
SPORTS_TAG_MARKERS = ("sports", "football", "soccer")


def _text(event: GammaEvent) -> str:
    return (event.title or event.question or "").lower()


def is_up_down_event(event: GammaEvent) -> bool:
    text = _text(event)
    if any(m in text for m in UP_DOWN_TITLE_MARKERS):
        return True
    return any(m in tag for tag in event.tag_strings() for m in UP_DOWN_TAG_MARKERS)


def is_sports_event(event: GammaEvent) -> bool:
    text = _text(event)
    if any(m in text for m in SPORTS_TITLE_MARKERS):
        return True
    return any(m in tag for tag in event.tag_strings() for m in SPORTS_TAG_MARKERS)


def to_new_market(event: GammaEvent) -> NewMarket:
    return NewMarket(
        id=event.id,
        slug=event.slug,
        title=event.title or event.question or f"Event {event.id}",
        created_at=event.created_at or "",
        volume_usd=event.volume,
        liquidity_usd=event.liquidity,
        url=EVENT_URL.format(ref=event.slug or event.id),
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def select_new_markets(
    events: List[GammaEvent],
    now: datetime,
    max_age: timedelta,
    cap_count: int,
) -> List[NewMarket]:
    fresh: List[NewMarket] = []
    for ev in events:
        created: Optional[datetime] = parse_iso(ev.created_at)
        if created is None or now - created > max_age:
            continue
        if is_sports_event(ev) or is_up_down_event(ev):
            continue
        fresh.append(to_new_market(ev))
        if len(fresh) >= cap_count:
            break
    return fresh


class NewMarketScanner:
    def __init__(
        self,
        gamma: GammaClient,
        config: NewMarketsConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.gamma = gamma
        self.config = config or NewMarketsConfig()
        self.clock = clock

    def scan(self) -> List[NewMarket]:
        """Raises FetchError when Gamma is unreachable."""
        events = self.gamma.get_recent_events()
        markets = select_new_markets(
            events,
            now=self.clock(),
            max_age=timedelta(hours=self.config.max_age_hours),
            cap_count=self.config.cap_count,
        )
        log.info(f"New markets: {len(markets)} of {len(events)} events")
        return markets

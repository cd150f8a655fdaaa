"""Fixed-interval poller for whale alerts and tracked-wallet feeds.

Each poll is an independent call into the aggregators. The monitor only
remembers which alerts it already printed, so a trade is announced once.
"""
from __future__ import annotations

import logging
import signal
import time
from typing import Callable, Dict, List, Sequence

from polywatch.aggregators.feed import WalletInput
from polywatch.app import Polywatch
from polywatch.models import FeedEntry, WhaleAlert

log = logging.getLogger("polywatch.monitor")

MAX_SEEN = 5000


def whale_key(alert: WhaleAlert) -> str:
    return f"{alert.market_id}-{alert.timestamp}-{alert.side}-{alert.amount_usd:.2f}"


class PollingMonitor:
    def __init__(
        self,
        app: Polywatch,
        wallets: Sequence[WalletInput] = (),
        on_whale: Callable[[WhaleAlert], None] | None = None,
        on_trade: Callable[[FeedEntry], None] | None = None,
    ):
        self.app = app
        self.wallets = list(wallets)
        self.on_whale = on_whale or (lambda a: log.info(
            f"🐋 ${a.amount_usd:,.0f} {a.side.upper()} @ {a.price:.2f} | {a.market_question[:60]}"
        ))
        self.on_trade = on_trade or (lambda e: log.info(
            f"{e.emoji or '•'} {e.label} {e.side} ${e.size_usd:,.0f} | {e.market_text[:60]}"
        ))
        self._seen_whales: Dict[str, None] = {}
        self._seen_trades: Dict[str, None] = {}
        self.stats = {"whale_polls": 0, "feed_polls": 0, "whales_announced": 0, "trades_announced": 0}

    def poll_whales(self) -> List[WhaleAlert]:
        """One whale scan; returns (and announces) alerts not seen before, oldest first."""
        self.stats["whale_polls"] += 1
        scan = self.app.whales.scan()
        fresh = [a for a in scan.whales if whale_key(a) not in self._seen_whales]
        for alert in reversed(fresh):
            self._seen_whales[whale_key(alert)] = None
            self.on_whale(alert)
        self.stats["whales_announced"] += len(fresh)
        _trim(self._seen_whales)
        return fresh

    def poll_feed(self) -> List[FeedEntry]:
        """One feed build; returns (and announces) entries not seen before."""
        if not self.wallets:
            return []
        self.stats["feed_polls"] += 1
        entries = self.app.feed.build_feed(self.wallets)
        fresh = [e for e in entries if e.dedupe_key not in self._seen_trades]
        for entry in reversed(fresh):
            self._seen_trades[entry.dedupe_key] = None
            self.on_trade(entry)
        self.stats["trades_announced"] += len(fresh)
        _trim(self._seen_trades)
        return fresh

    def run(self) -> None:
        whale_interval = self.app.config.whales.poll_interval
        feed_interval = self.app.config.feed.poll_interval

        log.info("=" * 60)
        log.info(f"Polymarket monitor starting: whales every {whale_interval}s, "
                 f"{len(self.wallets)} wallets every {feed_interval}s")
        log.info("=" * 60)

        shutdown = False

        def _signal_handler(sig, frame):
            nonlocal shutdown
            log.info("Shutdown signal received...")
            shutdown = True

        signal.signal(signal.SIGINT, _signal_handler)
        signal.signal(signal.SIGTERM, _signal_handler)

        last_whales = 0.0
        last_feed = 0.0
        while not shutdown:
            now = time.time()

            if now - last_whales >= whale_interval:
                try:
                    self.poll_whales()
                except Exception as e:
                    log.error(f"Whale poll failed: {e}")
                last_whales = now

            if self.wallets and now - last_feed >= feed_interval:
                try:
                    self.poll_feed()
                except Exception as e:
                    log.error(f"Feed poll failed: {e}")
                last_feed = now

            time.sleep(1)

        log.info(f"Monitor stopped: {self.stats}")


def _trim(seen: Dict[str, None]) -> None:
    # insertion-ordered: evict the oldest announcements first
    while len(seen) > MAX_SEEN:
        del seen[next(iter(seen))]

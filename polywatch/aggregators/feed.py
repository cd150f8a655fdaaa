"""Live trade feed across a list of tracked wallets.

Per-wallet activity queries run on a bounded thread pool; the merge, dedupe
and sort happen only once every wallet has answered (or failed), so the
output order does not depend on which request finished first.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from polywatch.clients.data_api import DataAPIClient
from polywatch.config import FeedConfig
from polywatch.errors import FetchError
from polywatch.models import ActivityRow, FeedEntry, TrackedWallet
from polywatch.shared.address import normalize_address, short_address
from polywatch.shared.time_utils import now_ts

log = logging.getLogger("polywatch.feed")

UNKNOWN_MARKET = "Unknown Polymarket market"
OUTCOME_SEPARATOR = " · "

WalletInput = Union[str, TrackedWallet, Dict[str, str]]


@dataclass
class FeedResult:
    entries: List[FeedEntry] = field(default_factory=list)
    wallets_queried: int = 0
    wallets_failed: List[str] = field(default_factory=list)
    wallets_rejected: List[str] = field(default_factory=list)
    duplicates_dropped: int = 0


def _slug_to_text(slug: str) -> str:
    return slug.replace("-", " ")


def market_label(ev: ActivityRow) -> str:
    """Title, else event slug, else market slug, plus ``· outcome`` when known."""
    if ev.title:
        base = ev.title
    elif ev.event_slug:
        base = _slug_to_text(ev.event_slug)
    elif ev.slug:
        base = _slug_to_text(ev.slug)
    else:
        base = ""

    if base and ev.outcome:
        return f"{base}{OUTCOME_SEPARATOR}{ev.outcome}"
    return base or UNKNOWN_MARKET


def normalize_side(side: Optional[str]) -> str:
    return "SELL" if side and side.upper() == "SELL" else "BUY"


def _format_size(size: float) -> str:
    return str(int(size)) if size.is_integer() else repr(size)


def dedupe_key(address: str, timestamp: int, market: str, side: str, size_usd: float) -> str:
    return f"{address}-{timestamp}-{market}-{side}-{_format_size(size_usd)}"


def coerce_wallet(raw: WalletInput) -> Optional[TrackedWallet]:
    """TrackedWallet with a normalized address, or None if the address is invalid."""
    if isinstance(raw, TrackedWallet):
        address, label, emoji = raw.address, raw.label, raw.emoji
    elif isinstance(raw, dict):
        address, label, emoji = raw.get("address"), raw.get("label") or "", raw.get("emoji") or ""
    else:
        address, label, emoji = raw, "", ""

    normalized = normalize_address(address)
    if normalized is None:
        return None
    return TrackedWallet(address=normalized, label=label or short_address(normalized), emoji=emoji)


def entries_for_wallet(
    wallet: TrackedWallet,
    activity: Iterable[ActivityRow],
    cutoff: int,
) -> List[FeedEntry]:
    """Filter one wallet's activity down to recent trades with a USD size."""
    entries: List[FeedEntry] = []
    for ev in activity:
        if ev.timestamp is None or ev.timestamp < cutoff:
            continue
        if ev.usdc_size is None:
            continue
        if not ev.is_trade:
            continue

        market = market_label(ev)
        side = normalize_side(ev.side)
        ts = int(ev.timestamp)
        entries.append(FeedEntry(
            dedupe_key=dedupe_key(wallet.address, ts, market, side, ev.usdc_size),
            address=wallet.address,
            label=wallet.label,
            emoji=wallet.emoji,
            market_text=market,
            side=side,
            size_usd=ev.usdc_size,
            timestamp=ts,
        ))
    return entries


def merge_entries(batches: Iterable[List[FeedEntry]]) -> tuple[List[FeedEntry], int]:
    """Union of all batches, first occurrence per dedupe key, newest first."""
    seen: set[str] = set()
    merged: List[FeedEntry] = []
    dropped = 0
    for batch in batches:
        for entry in batch:
            if entry.dedupe_key in seen:
                dropped += 1
                continue
            seen.add(entry.dedupe_key)
            merged.append(entry)
    merged.sort(key=lambda e: e.timestamp, reverse=True)
    return merged, dropped


class FeedAggregator:
    """Merged trade feed for tracked wallets.

    Usage:
        feed = FeedAggregator(data_api)
        result = feed.build(["0xabc...", {"address": "0xdef...", "label": "whale", "emoji": "🐋"}])
    """

    def __init__(
        self,
        data_api: DataAPIClient,
        config: FeedConfig | None = None,
        clock: Callable[[], int] = now_ts,
    ):
        self.data_api = data_api
        self.config = config or FeedConfig()
        self.clock = clock

    def _fetch_wallet(self, wallet: TrackedWallet) -> List[ActivityRow]:
        return self.data_api.fetch_activity(wallet.address)

    def build(
        self,
        tracked_wallets: Sequence[WalletInput],
        lookback_minutes: int | None = None,
    ) -> FeedResult:
        lookback = lookback_minutes if lookback_minutes is not None else self.config.lookback_minutes
        result = FeedResult()

        wallets: List[TrackedWallet] = []
        for raw in tracked_wallets:
            wallet = coerce_wallet(raw)
            if wallet is None:
                result.wallets_rejected.append(str(raw))
                continue
            wallets.append(wallet)

        if result.wallets_rejected:
            log.debug(f"Dropped {len(result.wallets_rejected)} invalid wallet entries")
        if not wallets:
            return result

        cutoff = self.clock() - lookback * 60
        result.wallets_queried = len(wallets)
        batches: Dict[int, List[FeedEntry]] = {}

        workers = max(1, min(self.config.max_workers, len(wallets)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(self._fetch_wallet, w): i for i, w in enumerate(wallets)}
            for fut in as_completed(futures):
                idx = futures[fut]
                wallet = wallets[idx]
                try:
                    activity = fut.result()
                except FetchError as e:
                    log.warning(f"Feed: skipping {wallet.address} ({e})")
                    result.wallets_failed.append(wallet.address)
                    continue
                batches[idx] = entries_for_wallet(wallet, activity, cutoff)

        # merge in input order so dedupe keeps the same survivor every poll
        ordered = [batches[i] for i in sorted(batches)]
        result.entries, result.duplicates_dropped = merge_entries(ordered)

        log.info(
            f"Feed: {len(result.entries)} trades from {len(batches)}/{len(wallets)} wallets "
            f"(failed={len(result.wallets_failed)}, dupes={result.duplicates_dropped})"
        )
        return result

    def build_feed(
        self,
        tracked_wallets: Sequence[WalletInput],
        lookback_minutes: int | None = None,
    ) -> List[FeedEntry]:
        """Just the entries, newest first."""
        return self.build(tracked_wallets, lookback_minutes).entries

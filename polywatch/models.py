"""Pydantic models for data API rows and the summaries built from them.

Upstream rows are parsed fail-soft: monetary fields that are missing or not
numeric become 0.0, so a single odd row never poisons an aggregate. Fields
whose *presence* matters to a rule (leaderboard pnl, activity usdcSize and
timestamp) stay Optional instead.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from polywatch.shared.numbers import safe_num, to_number


def _clean_str(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


class UpstreamRow(BaseModel):
    """Base for rows returned by the data API."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


# ── Upstream rows ─────────────────────────────────────────


class PositionRow(UpstreamRow):
    """Open position from /positions."""
    proxy_wallet: Optional[str] = Field(None, alias="proxyWallet")
    title: Optional[str] = None
    slug: Optional[str] = None
    outcome: Optional[str] = None
    current_value: float = Field(0.0, alias="currentValue")
    cash_pnl: float = Field(0.0, alias="cashPnl")
    realized_pnl: float = Field(0.0, alias="realizedPnl")

    @field_validator("current_value", "cash_pnl", "realized_pnl", mode="before")
    @classmethod
    def _money(cls, v: Any) -> float:
        return safe_num(v)

    @field_validator("proxy_wallet", "title", "slug", "outcome", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _clean_str(v)


class ClosedPositionRow(UpstreamRow):
    """Fully settled position from /closed-positions."""
    title: Optional[str] = None
    slug: Optional[str] = None
    realized_pnl: float = Field(0.0, alias="realizedPnl")
    timestamp: float = 0.0

    @field_validator("realized_pnl", "timestamp", mode="before")
    @classmethod
    def _money(cls, v: Any) -> float:
        return safe_num(v)

    @field_validator("title", "slug", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _clean_str(v)


class LeaderboardRow(UpstreamRow):
    """Row from /v1/leaderboard. ``pnl`` is None when upstream omitted it."""
    proxy_wallet: str = Field("", alias="proxyWallet")
    user_name: Optional[str] = Field(None, alias="userName")
    pnl: Optional[float] = None
    vol: Optional[float] = None

    @field_validator("pnl", "vol", mode="before")
    @classmethod
    def _optional_money(cls, v: Any) -> Optional[float]:
        return to_number(v)

    @field_validator("proxy_wallet", mode="before")
    @classmethod
    def _wallet(cls, v: Any) -> str:
        return v.strip().lower() if isinstance(v, str) else ""

    @field_validator("user_name", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _clean_str(v)


class TradeRow(UpstreamRow):
    """Trade from /trades."""
    proxy_wallet: Optional[str] = Field(None, alias="proxyWallet")
    condition_id: Optional[str] = Field(None, alias="conditionId")
    transaction_hash: Optional[str] = Field(None, alias="transactionHash")
    side: Optional[str] = None
    size: float = 0.0
    price: float = 0.0
    timestamp: float = 0.0
    title: Optional[str] = None
    slug: Optional[str] = None
    event_slug: Optional[str] = Field(None, alias="eventSlug")
    outcome: Optional[str] = None

    @field_validator("size", "price", "timestamp", mode="before")
    @classmethod
    def _number(cls, v: Any) -> float:
        return safe_num(v)

    @field_validator(
        "proxy_wallet", "condition_id", "transaction_hash", "side",
        "title", "slug", "event_slug", "outcome",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _clean_str(v)

    @property
    def notional_usd(self) -> float:
        """size x price, always recomputed locally."""
        return self.size * self.price


class ActivityRow(UpstreamRow):
    """Event from /activity (TRADE, SPLIT, MERGE, REDEEM, ...)."""
    proxy_wallet: Optional[str] = Field(None, alias="proxyWallet")
    type: Optional[str] = None
    timestamp: Optional[float] = None
    usdc_size: Optional[float] = Field(None, alias="usdcSize")
    size: float = 0.0
    price: float = 0.0
    side: Optional[str] = None
    title: Optional[str] = None
    slug: Optional[str] = None
    event_slug: Optional[str] = Field(None, alias="eventSlug")
    outcome: Optional[str] = None

    @field_validator("timestamp", "usdc_size", mode="before")
    @classmethod
    def _optional_number(cls, v: Any) -> Optional[float]:
        return to_number(v)

    @field_validator("size", "price", mode="before")
    @classmethod
    def _number(cls, v: Any) -> float:
        return safe_num(v)

    @field_validator(
        "proxy_wallet", "type", "side", "title", "slug", "event_slug", "outcome",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return _clean_str(v)

    @property
    def is_trade(self) -> bool:
        """Untyped events count as trades."""
        return self.type is None or self.type.upper() == "TRADE"


class GammaEvent(UpstreamRow):
    """Event from the Gamma /events endpoint."""
    id: Any = None
    slug: Optional[str] = None
    title: Optional[str] = None
    question: Optional[str] = None
    created_at: Optional[str] = Field(None, alias="createdAt")
    tags: List[Any] = Field(default_factory=list)
    tag_slugs: List[Any] = Field(default_factory=list, alias="tagSlugs")
    tag_labels: List[Any] = Field(default_factory=list)
    volume: float = 0.0
    liquidity: float = 0.0

    @field_validator("volume", "liquidity", mode="before")
    @classmethod
    def _number(cls, v: Any) -> float:
        return safe_num(v)

    @field_validator("tags", "tag_slugs", "tag_labels", mode="before")
    @classmethod
    def _list(cls, v: Any) -> List[Any]:
        return v if isinstance(v, list) else []

    def tag_strings(self) -> List[str]:
        """All tag labels/slugs lowercased; dict tags contribute label and slug."""
        out: List[str] = []
        for tag in [*self.tags, *self.tag_slugs, *self.tag_labels]:
            if isinstance(tag, dict):
                for key in ("label", "slug"):
                    if tag.get(key):
                        out.append(str(tag[key]).lower())
            elif tag:
                out.append(str(tag).lower())
        return out


# ── Outputs ───────────────────────────────────────────────


class OutputModel(BaseModel):
    """Summaries serialize with camelCase keys for presentation callers."""

    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class WalletFinancialSummary(OutputModel):
    address: str
    realized_pnl_usd: float = Field(0.0, alias="realizedPnlUsd")
    open_pnl_usd: float = Field(0.0, alias="openPnlUsd")
    volume_usd: float = Field(0.0, alias="volumeUsd")
    trades_count: int = Field(0, alias="tradesCount")
    win_rate: int = Field(0, alias="winRate")
    first_trade_ts: Optional[int] = Field(None, alias="firstTradeTs")
    last_trade_ts: Optional[int] = Field(None, alias="lastTradeTs")
    profile_label: str = Field("", alias="profileLabel")


class WalletSnapshot(OutputModel):
    address: str
    equity_usd: float = Field(0.0, alias="equityUsd")
    open_pnl_usd: float = Field(0.0, alias="openPnlUsd")
    realized_pnl_usd: float = Field(0.0, alias="realizedPnlUsd")
    volume_24h_usd: float = Field(0.0, alias="volume24hUsd")
    win_rate: int = Field(0, alias="winRate")
    positions_open: int = Field(0, alias="positionsOpen")


class TrackedWallet(OutputModel):
    address: str
    label: str = ""
    emoji: str = ""


class FeedEntry(OutputModel):
    dedupe_key: str = Field(alias="id")
    address: str
    label: str = ""
    emoji: str = ""
    market_text: str = Field(alias="market")
    side: Literal["BUY", "SELL"]
    size_usd: float = Field(alias="sizeUsd")
    timestamp: int


class WhaleAlert(OutputModel):
    market_id: Optional[str] = Field(None, alias="marketId")
    market_question: str = Field(alias="marketQuestion")
    side: Literal["yes", "no"]
    amount_usd: float = Field(alias="amountUsd")
    price: float
    timestamp: str
    url: Optional[str] = None


class WhaleScan(OutputModel):
    window_minutes: int = Field(alias="windowMinutes")
    threshold_usd: float = Field(alias="thresholdUsd")
    whales: List[WhaleAlert] = Field(default_factory=list)


class LeaderboardEntry(OutputModel):
    rank: int
    address: str
    name: str
    pnl_usd: float = Field(0.0, alias="pnlUsd")
    volume_usd: float = Field(0.0, alias="volumeUsd")


class NewMarket(OutputModel):
    id: Any = None
    slug: Optional[str] = None
    title: str
    created_at: str = Field(alias="createdAt")
    volume_usd: float = Field(0.0, alias="volumeUsd")
    liquidity_usd: float = Field(0.0, alias="liquidityUsd")
    url: str


# ── Per-source results ────────────────────────────────────

T = TypeVar("T")

SourceStatus = Literal["ok", "empty", "error"]


@dataclass
class SourceResult(Generic[T]):
    """Outcome of one upstream data source.

    ``empty`` means upstream answered with no rows; ``error`` means the call
    failed and ``rows`` is a stand-in empty list. ``complete`` is False when a
    paginated source stopped early and ``rows`` is a partial collection.
    """
    source: str
    status: SourceStatus
    rows: List[T] = field(default_factory=list)
    error: Optional[Exception] = None
    complete: bool = True

    @classmethod
    def of(cls, source: str, rows: List[T], complete: bool = True) -> "SourceResult[T]":
        return cls(source, "ok" if rows else "empty", list(rows), complete=complete)

    @classmethod
    def failed(cls, source: str, error: Exception, rows: Optional[List[T]] = None) -> "SourceResult[T]":
        return cls(source, "error", list(rows or []), error=error, complete=False)

    @property
    def ok(self) -> bool:
        return self.status != "error"

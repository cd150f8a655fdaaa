"""Central configuration for polywatch.

Upstream URLs, retry policy, page sizes and thresholds live in frozen
dataclasses; a handful can be overridden from the environment or a .env file.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class FetchConfig:
    timeout: float = 30.0
    max_retries: int = 3
    initial_delay: float = 1.0
    backoff_multiplier: float = 2.0
    max_delay: float = 10.0
    max_connections: int = 50
    max_keepalive_connections: int = 10
    keepalive_expiry: float = 1.0
    referer: str = "https://polymarket.com/"


@dataclass(frozen=True)
class DataAPIConfig:
    base_url: str = "https://data-api.polymarket.com"
    positions_limit: int = 200
    closed_page_size: int = 50
    closed_max_pages: int = 10
    trades_limit: int = 500
    activity_limit: int = 200
    leaderboard_limit: int = 100


@dataclass(frozen=True)
class GammaConfig:
    base_url: str = "https://gamma-api.polymarket.com"
    events_limit: int = 100


@dataclass(frozen=True)
class WalletConfig:
    default_window_days: int = 30
    min_window_days: int = 1
    max_window_days: int = 3650


@dataclass(frozen=True)
class FeedConfig:
    lookback_minutes: int = 60
    max_workers: int = 8
    poll_interval: int = 30


@dataclass(frozen=True)
class WhaleConfig:
    threshold_usd: float = 5000.0
    cap_count: int = 100
    page_limit: int = 200
    window_minutes: int = 60
    poll_interval: int = 60


@dataclass(frozen=True)
class NewMarketsConfig:
    max_age_hours: int = 6
    cap_count: int = 20


@dataclass
class AppConfig:
    fetch: FetchConfig = field(default_factory=FetchConfig)
    data_api: DataAPIConfig = field(default_factory=DataAPIConfig)
    gamma: GammaConfig = field(default_factory=GammaConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    feed: FeedConfig = field(default_factory=FeedConfig)
    whales: WhaleConfig = field(default_factory=WhaleConfig)
    new_markets: NewMarketsConfig = field(default_factory=NewMarketsConfig)
    log_level: str = "INFO"


def load_config(env_file: Path | None = None) -> AppConfig:
    """Load configuration from environment variables + defaults.

    Args:
        env_file: Path to .env file. If None, searches project root.
    """
    if env_file and env_file.exists():
        load_dotenv(env_file)
    else:
        for candidate in [Path(".env"), Path(__file__).parent.parent / ".env"]:
            if candidate.exists():
                load_dotenv(candidate)
                break

    fetch = FetchConfig(
        timeout=float(os.environ.get("POLYWATCH_TIMEOUT", FetchConfig.timeout)),
        max_retries=int(os.environ.get("POLYWATCH_MAX_RETRIES", FetchConfig.max_retries)),
    )
    data_api = DataAPIConfig(
        base_url=os.environ.get("POLYWATCH_DATA_API_URL", DataAPIConfig.base_url),
    )
    gamma = GammaConfig(
        base_url=os.environ.get("POLYWATCH_GAMMA_URL", GammaConfig.base_url),
    )
    feed = FeedConfig(
        max_workers=int(os.environ.get("POLYWATCH_FEED_WORKERS", FeedConfig.max_workers)),
    )
    whales = WhaleConfig(
        threshold_usd=float(
            os.environ.get("POLYWATCH_WHALE_THRESHOLD", WhaleConfig.threshold_usd)
        ),
    )

    return AppConfig(
        fetch=fetch,
        data_api=data_api,
        gamma=gamma,
        feed=feed,
        whales=whales,
        log_level=os.environ.get("POLYWATCH_LOG_LEVEL", "INFO").upper(),
    )

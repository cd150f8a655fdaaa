"""Wires the shared fetch client into every service.

One Polywatch instance owns one keep-alive connection pool; close it (or use
it as a context manager) when the process is done.
"""
from __future__ import annotations

import time
from typing import Callable

import httpx

from polywatch.aggregators.feed import FeedAggregator
from polywatch.aggregators.leaderboard import LeaderboardService
from polywatch.aggregators.new_markets import NewMarketScanner
from polywatch.aggregators.wallet import WalletReconciler
from polywatch.aggregators.whales import WhaleDetector
from polywatch.clients.data_api import DataAPIClient
from polywatch.clients.fetch import ResilientFetchClient
from polywatch.clients.gamma import GammaClient
from polywatch.config import AppConfig, load_config


class Polywatch:
    def __init__(
        self,
        config: AppConfig | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or load_config()
        self.fetch = ResilientFetchClient(self.config.fetch, transport=transport, sleep=sleep)
        self.data_api = DataAPIClient(self.fetch, self.config.data_api)
        self.gamma = GammaClient(self.fetch, self.config.gamma)

        self.wallets = WalletReconciler(self.data_api, self.config.wallet)
        self.feed = FeedAggregator(self.data_api, self.config.feed)
        self.whales = WhaleDetector(self.data_api, self.config.whales)
        self.leaderboard = LeaderboardService(self.data_api)
        self.new_markets = NewMarketScanner(self.gamma, self.config.new_markets)

    def __enter__(self) -> "Polywatch":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self.fetch.close()

"""Summaries built on top of the data API clients."""
from .wallet import WalletReconciler
from .feed import FeedAggregator
from .whales import WhaleDetector
from .leaderboard import LeaderboardService
from .new_markets import NewMarketScanner

__all__ = [
    "WalletReconciler",
    "FeedAggregator",
    "WhaleDetector",
    "LeaderboardService",
    "NewMarketScanner",
]

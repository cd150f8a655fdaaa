"""Polymarket wallet P&L, tracked-wallet feeds and whale alerts."""

__version__ = "1.0.0"

from .app import Polywatch
from .config import AppConfig, load_config
from .errors import FetchError, ValidationError

__all__ = [
    "Polywatch",
    "AppConfig",
    "load_config",
    "FetchError",
    "ValidationError",
]

"""API clients for Polymarket."""
from .fetch import ResilientFetchClient
from .data_api import DataAPIClient
from .gamma import GammaClient

__all__ = ["ResilientFetchClient", "DataAPIClient", "GammaClient"]

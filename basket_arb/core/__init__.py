"""Arbitrage core: assets, fixed-point math, oracle reads and trade sizing"""

from .assets import Asset, AssetInfo, AssetKind, Coin
from .errors import (
    ArbitrageError, ArithmeticOverflow, ConfigError, DivisionByZero, InsufficientProfit,
    NoArbitrageOpportunity, PairNotFound, Unauthorized, VenueRejected,
)
from .estimator import estimate_arbitrage, query_estimate_arbitrage, select_strategy
from .oracle import BasketState, PoolReserves, Querier

__all__ = [
    "Asset", "AssetInfo", "AssetKind", "Coin",
    "ArbitrageError", "ArithmeticOverflow", "ConfigError", "DivisionByZero",
    "InsufficientProfit", "NoArbitrageOpportunity", "PairNotFound", "Unauthorized",
    "VenueRejected",
    "estimate_arbitrage", "query_estimate_arbitrage", "select_strategy",
    "BasketState", "PoolReserves", "Querier",
]

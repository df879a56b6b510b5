"""
Basket Flash-Loan Arbitrage Agent

Borrows base stablecoin through a flash loan, trades between a basket's
index token and its constant-product pool, repays with a fixed margin and
forwards the profit. Ships a local message-driven host with simulated venues
to drive cycles end to end.
"""

__version__ = "1.0.0"

# Core components
from .core.assets import Asset, AssetInfo, AssetKind, Coin
from .core.errors import ArbitrageError
from .core.estimator import estimate_arbitrage, query_estimate_arbitrage, select_strategy
from .core.messages import ArbitrageEstimate, LoanContext, Strategy

# Configuration
from .engine.config import ArbitrageConfig, create_default_config, load_config

# Agents
from .agents.orchestrator import ArbitrageOrchestrator

# Engine
from .engine.host import LocalChain
from .engine.factory import MarketFactory, ScenarioConfig

__all__ = [
    # Core
    "Asset", "AssetInfo", "AssetKind", "Coin", "ArbitrageError",
    "estimate_arbitrage", "query_estimate_arbitrage", "select_strategy",
    "ArbitrageEstimate", "LoanContext", "Strategy",

    # Configuration
    "ArbitrageConfig", "create_default_config", "load_config",

    # Agents
    "ArbitrageOrchestrator",

    # Engine
    "LocalChain", "MarketFactory", "ScenarioConfig",
]

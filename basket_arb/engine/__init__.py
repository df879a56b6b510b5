"""Configuration, local host and simulated venues"""

from .config import ArbitrageConfig, ConfigUpdate, create_default_config, load_config
from .host import LocalChain, TransactionResult
from .factory import LocalMarket, MarketFactory, ScenarioConfig

__all__ = [
    "ArbitrageConfig", "ConfigUpdate", "create_default_config", "load_config",
    "LocalChain", "TransactionResult",
    "LocalMarket", "MarketFactory", "ScenarioConfig",
]

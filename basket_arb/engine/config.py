#!/usr/bin/env python3
"""
Configuration schemas for the arbitrage agent.

The configuration is injected into the orchestrator and read-only to the
arbitrage core. Only the owner can change it, through the update path.
Slippage and minimum-output fields are opt-in; their defaults keep the
reference behaviour of unbounded constituent swaps.
"""

from decimal import Decimal
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.errors import ConfigError


class ArbitrageConfig(BaseModel):
    """Addresses and trading parameters of one arbitrage agent"""
    model_config = ConfigDict(frozen=True)

    # Collaborator addresses
    vault_address: str = Field(description="Flash-loan vault")
    incentives_address: str = Field(description="Venue executing arb mint/redeem against the pool")
    pair_factory_address: str = Field(description="AMM pair factory")
    yield_token_address: str = Field(description="Yield-wrapper token routed through the lending market")
    lending_market_address: str = Field(description="Lending market issuing the yield-wrapper token")
    owner_address: str = Field(description="Only address allowed to update this configuration")

    # Trading parameters
    base_denom: str = Field(default="uusd", description="Native denomination of the base stablecoin")
    repay_margin_divisor: int = Field(default=999, gt=0, description="repay = loan + ceil(loan / divisor)")
    min_index_out: Optional[int] = Field(default=1, ge=0, description="Floor on index tokens bought in redeem path")
    min_base_out: Optional[int] = Field(default=1, ge=0, description="Floor on base received in create path")
    max_spread: Optional[Decimal] = Field(default=None, ge=0, le=1, description="Opt-in per-swap spread limit")
    belief_price: Optional[Decimal] = Field(default=None, gt=0, description="Opt-in belief price for pool swaps")

    @field_validator(
        "vault_address", "incentives_address", "pair_factory_address",
        "yield_token_address", "lending_market_address", "owner_address", "base_denom",
    )
    @classmethod
    def not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError("address fields cannot be empty")
        return v


class ConfigUpdate(BaseModel):
    """Partial update applied by the owner"""
    vault_address: Optional[str] = None
    incentives_address: Optional[str] = None
    pair_factory_address: Optional[str] = None
    owner_address: Optional[str] = None


def apply_update(config: ArbitrageConfig, update: ConfigUpdate) -> ArbitrageConfig:
    """Return a new configuration with the non-empty update fields applied"""
    changes = {k: v for k, v in update.model_dump().items() if v is not None}
    try:
        return ArbitrageConfig(**{**config.model_dump(), **changes})
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration update: {e}") from e


def create_default_config() -> ArbitrageConfig:
    """Configuration matching the addresses used by the local market factory"""
    return ArbitrageConfig(
        vault_address="vault",
        incentives_address="incentives",
        pair_factory_address="pair_factory",
        yield_token_address="yield_token",
        lending_market_address="lending_market",
        owner_address="owner",
    )


def load_config(path: Union[str, Path]) -> ArbitrageConfig:
    """Load a configuration from a JSON file"""
    path = Path(path)
    try:
        return ArbitrageConfig.model_validate_json(path.read_text())
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

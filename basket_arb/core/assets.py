#!/usr/bin/env python3
"""
Asset References

Closed set of asset variants the arbitrage agent can hold or trade:
native denominations held in the host's bank ledger and transferable
tokens held in a token contract's own ledger.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, field_validator


class AssetKind(str, Enum):
    """Asset variants"""
    NATIVE = "native"
    TOKEN = "token"


class AssetInfo(BaseModel):
    """Reference to an asset: a native denomination or a token contract"""
    model_config = ConfigDict(frozen=True)

    kind: AssetKind
    identifier: str

    @field_validator("identifier")
    @classmethod
    def identifier_not_empty(cls, v):
        if not v:
            raise ValueError("asset identifier cannot be empty")
        return v

    @classmethod
    def native(cls, denom: str) -> "AssetInfo":
        return cls(kind=AssetKind.NATIVE, identifier=denom)

    @classmethod
    def token(cls, contract_addr: str) -> "AssetInfo":
        return cls(kind=AssetKind.TOKEN, identifier=contract_addr)

    @property
    def is_native(self) -> bool:
        return self.kind == AssetKind.NATIVE

    def is_native_denom(self, denom: str) -> bool:
        return self.kind == AssetKind.NATIVE and self.identifier == denom

    def __str__(self) -> str:
        return self.identifier


class Asset(BaseModel):
    """An amount of an asset, in the asset's minimal unit"""
    model_config = ConfigDict(frozen=True)

    info: AssetInfo
    amount: int

    @field_validator("amount")
    @classmethod
    def amount_non_negative(cls, v):
        if v < 0:
            raise ValueError(f"asset amount must be non-negative, got {v}")
        return v

    def to_coin(self) -> "Coin":
        if not self.info.is_native:
            raise ValueError(f"{self.info} is not a native denomination")
        return Coin(self.info.identifier, self.amount)


@dataclass(frozen=True)
class Coin:
    """Native funds attached to a message"""
    denom: str
    amount: int


def sorted_coins(coins: List[Coin]) -> List[Coin]:
    """Funds are attached in denomination order"""
    return sorted(coins, key=lambda c: c.denom)

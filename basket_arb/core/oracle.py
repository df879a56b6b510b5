#!/usr/bin/env python3
"""
Price/Value Oracle Adapter

Read-only access to the basket contract's reported state and to the
pool's two-sided reserves. Nothing here mutates caller or venue state, so
reading twice without an intervening transaction returns identical results.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Tuple, Type, TypeVar

from pydantic import BaseModel

from .assets import Asset, AssetInfo
from .messages import (
    ClusterStateQuery, ClusterStateResponse, PairInfoResponse, PairQuery,
    PoolQuery, PoolResponse, TokenBalanceQuery, TokenBalanceResponse,
)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


class Querier(ABC):
    """Read-only view of the host environment"""

    @abstractmethod
    def query_balance(self, address: str, denom: str) -> int:
        """Native balance of an account"""

    @abstractmethod
    def query_wasm_smart(self, contract_addr: str, msg: BaseModel,
                         response_model: Type[ResponseT]) -> ResponseT:
        """Contract query decoded into the expected response schema"""

    def query_token_balance(self, token_addr: str, address: str) -> int:
        response = self.query_wasm_smart(
            token_addr, TokenBalanceQuery(address=address), TokenBalanceResponse
        )
        return response.balance

    def query_asset_balance(self, info: AssetInfo, address: str) -> int:
        if info.is_native:
            return self.query_balance(address, info.identifier)
        return self.query_token_balance(info.identifier, address)


@dataclass(frozen=True)
class BasketState:
    """Basket inventory snapshot, all sequences parallel-indexed"""
    basket_address: str
    index_token: str
    outstanding_supply: int
    inventory: Tuple[int, ...]
    prices: Tuple[Decimal, ...]
    target_weights: Tuple[Asset, ...]
    active: bool = True

    def __post_init__(self):
        if not len(self.inventory) == len(self.prices) == len(self.target_weights):
            raise ValueError(
                f"Basket sequences must be parallel: inventory={len(self.inventory)}, "
                f"prices={len(self.prices)}, target={len(self.target_weights)}"
            )
        if self.outstanding_supply < 0 or any(amount < 0 for amount in self.inventory):
            raise ValueError("Basket amounts must be non-negative")


@dataclass(frozen=True)
class PoolReserves:
    """Two-sided reserves of the base/index constant-product pool"""
    base_reserve: int
    index_reserve: int
    pair_address: str = ""

    def __post_init__(self):
        if self.base_reserve < 0 or self.index_reserve < 0:
            raise ValueError("Pool reserves must be non-negative")


def get_basket_state(querier: Querier, basket_address: str) -> BasketState:
    """Read inventory, prices, targets and supply from the basket contract"""
    state = querier.query_wasm_smart(basket_address, ClusterStateQuery(), ClusterStateResponse)
    return BasketState(
        basket_address=state.cluster_contract_address,
        index_token=state.cluster_token,
        outstanding_supply=state.outstanding_balance_tokens,
        inventory=tuple(state.inv),
        prices=tuple(state.prices),
        target_weights=tuple(state.target),
        active=state.active,
    )


def query_pair_info(querier: Querier, factory_address: str,
                    asset_infos: List[AssetInfo]) -> PairInfoResponse:
    """Resolve the pair for two assets; the factory raises PairNotFound if absent"""
    return querier.query_wasm_smart(
        factory_address, PairQuery(asset_infos=tuple(asset_infos)), PairInfoResponse
    )


def query_pool_reserves(querier: Querier, factory_address: str, base_denom: str,
                        index_token: str) -> PoolReserves:
    """Read the pool's reserves, ordered base side first"""
    base_info = AssetInfo.native(base_denom)
    pair = query_pair_info(querier, factory_address, [base_info, AssetInfo.token(index_token)])
    pool = querier.query_wasm_smart(pair.contract_addr, PoolQuery(), PoolResponse)

    first, second = pool.assets
    if first.info == base_info:
        base_amount, index_amount = first.amount, second.amount
    else:
        base_amount, index_amount = second.amount, first.amount

    return PoolReserves(
        base_reserve=base_amount,
        index_reserve=index_amount,
        pair_address=pair.contract_addr,
    )

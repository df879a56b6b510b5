"""Shared fixtures for the arbitrage test suite"""

from decimal import Decimal
from typing import Dict, Tuple

import pytest

from basket_arb.core.assets import AssetInfo
from basket_arb.core.errors import PairNotFound
from basket_arb.core.messages import (
    PairInfoResponse, PairQuery, TokenBalanceQuery, TokenBalanceResponse,
)
from basket_arb.core.oracle import Querier
from basket_arb.engine.config import create_default_config
from basket_arb.engine.factory import MarketFactory


class StaticQuerier(Querier):
    """Querier over fixed balances and pairs, for tests that need no host"""

    def __init__(self):
        self.native: Dict[Tuple[str, str], int] = {}
        self.tokens: Dict[Tuple[str, str], int] = {}
        self.pairs: Dict[frozenset, str] = {}

    def add_pair(self, first: AssetInfo, second: AssetInfo, address: str):
        self.pairs[frozenset([first, second])] = address

    def query_balance(self, address, denom):
        return self.native.get((address, denom), 0)

    def query_wasm_smart(self, contract_addr, msg, response_model):
        if isinstance(msg, PairQuery):
            first, second = msg.asset_infos
            address = self.pairs.get(frozenset([first, second]))
            if address is None:
                raise PairNotFound(str(first), str(second))
            return PairInfoResponse(asset_infos=msg.asset_infos, contract_addr=address)
        if isinstance(msg, TokenBalanceQuery):
            return TokenBalanceResponse(balance=self.tokens.get((contract_addr, msg.address), 0))
        raise AssertionError(f"Unexpected query {msg!r} to {contract_addr}")


@pytest.fixture
def config():
    return create_default_config()


@pytest.fixture
def querier():
    return StaticQuerier()


@pytest.fixture
def factory(config):
    return MarketFactory(config)


@pytest.fixture
def redeem_market(factory):
    """Index token 20% below intrinsic"""
    return factory.create_redeem_scenario(Decimal("0.8"))


@pytest.fixture
def create_market(factory):
    """Index token 25% above intrinsic"""
    return factory.create_create_scenario(Decimal("1.25"))

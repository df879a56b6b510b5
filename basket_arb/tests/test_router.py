#!/usr/bin/env python3
"""
Swap Router Tests

Venue selection per asset variant and the shape of each trade instruction.
"""

from decimal import Decimal

import pytest

from basket_arb.core.assets import Asset, AssetInfo, Coin
from basket_arb.core.errors import PairNotFound
from basket_arb.core.messages import (
    DepositStableMsg, NativeSwap, PairSwapHook, PairSwapMsg, RedeemStableHook,
    TokenSendMsg, WasmExecute,
)
from basket_arb.core.router import SwapRouter


class TestSwapRouter:
    """One instruction per (offer, desired) pair"""

    @pytest.fixture(autouse=True)
    def setup(self, config, querier):
        self.config = config
        self.querier = querier
        self.base = AssetInfo.native(config.base_denom)
        self.yield_token = AssetInfo.token(config.yield_token_address)
        self.token = AssetInfo.token("asset_a")
        querier.add_pair(self.base, self.token, "pair_asset_a")
        self.router = SwapRouter(querier, config)

    def test_yield_token_to_base_redeems_on_lending_market(self):
        msg = self.router.route(Asset(info=self.yield_token, amount=500), self.base)

        assert isinstance(msg, WasmExecute)
        assert msg.contract_addr == self.config.yield_token_address
        assert msg.funds == ()
        send = TokenSendMsg.model_validate_json(msg.msg)
        assert send.contract == self.config.lending_market_address
        assert send.amount == 500
        assert RedeemStableHook.model_validate_json(send.msg) == RedeemStableHook()

    def test_base_to_yield_token_deposits_on_lending_market(self):
        msg = self.router.route(Asset(info=self.base, amount=700), self.yield_token)

        assert msg.contract_addr == self.config.lending_market_address
        assert msg.funds == (Coin(self.config.base_denom, 700),)
        assert DepositStableMsg.model_validate_json(msg.msg) == DepositStableMsg()

    def test_yield_token_against_other_asset_has_no_venue(self):
        with pytest.raises(PairNotFound):
            self.router.route(Asset(info=self.yield_token, amount=1), self.token)
        with pytest.raises(PairNotFound):
            self.router.route(Asset(info=self.token, amount=1), self.yield_token)

    def test_native_to_native_uses_market_module(self):
        msg = self.router.route(Asset(info=AssetInfo.native("ueur"), amount=42), self.base)

        assert msg == NativeSwap(offer_coin=Coin("ueur", 42), ask_denom=self.config.base_denom)

    def test_native_offer_swaps_directly_on_pair(self):
        msg = self.router.route(Asset(info=self.base, amount=1000), self.token)

        assert msg.contract_addr == "pair_asset_a"
        assert msg.funds == (Coin(self.config.base_denom, 1000),)
        swap = PairSwapMsg.model_validate_json(msg.msg)
        assert swap.offer_asset == Asset(info=self.base, amount=1000)
        assert swap.max_spread is None
        assert swap.belief_price is None

    def test_token_offer_sends_with_swap_hook(self):
        msg = self.router.route(Asset(info=self.token, amount=250), self.base)

        assert msg.contract_addr == "asset_a"
        assert msg.funds == ()
        send = TokenSendMsg.model_validate_json(msg.msg)
        assert send.contract == "pair_asset_a"
        assert send.amount == 250
        assert PairSwapHook.model_validate_json(send.msg).max_spread is None

    def test_missing_pair(self):
        with pytest.raises(PairNotFound):
            self.router.route(Asset(info=self.base, amount=1), AssetInfo.token("unknown"))

    def test_opt_in_slippage_is_passed_through(self):
        config = self.config.model_copy(update={"max_spread": Decimal("0.01")})
        router = SwapRouter(self.querier, config)

        msg = router.route(Asset(info=self.base, amount=1000), self.token)

        assert PairSwapMsg.model_validate_json(msg.msg).max_spread == Decimal("0.01")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

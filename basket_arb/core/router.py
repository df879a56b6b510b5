#!/usr/bin/env python3
"""
Swap Router

Builds one trade instruction for an (offer asset, desired asset) pair. The
venue is chosen from the asset variants:

    yield-wrapper token on either side  -> lending market deposit / redeem
    native -> native                    -> host market-module swap
    anything else                       -> constant-product pair from the factory

The only side effect is the read-only pair lookup.
"""

from .assets import Asset, AssetInfo
from .errors import PairNotFound
from .messages import (
    DepositStableMsg, NativeSwap, OutboundMsg, PairSwapHook, PairSwapMsg,
    RedeemStableHook, TokenSendMsg, WasmExecute, encode,
)
from .oracle import Querier, query_pair_info
from ..engine.config import ArbitrageConfig


class SwapRouter:
    """Trade instruction builder for a single hop"""

    def __init__(self, querier: Querier, config: ArbitrageConfig):
        self.querier = querier
        self.config = config
        self.yield_token = AssetInfo.token(config.yield_token_address)
        self.base = AssetInfo.native(config.base_denom)

    def route(self, offer: Asset, desired: AssetInfo) -> OutboundMsg:
        """
        Build the instruction swapping `offer` into `desired`

        Raises:
            PairNotFound: no venue can trade this pair
        """
        if offer.info == self.yield_token or desired == self.yield_token:
            return self._lending_market_msg(offer, desired)

        if offer.info.is_native and desired.is_native:
            return NativeSwap(offer_coin=offer.to_coin(), ask_denom=desired.identifier)

        return self._pair_swap_msg(offer, desired)

    def _lending_market_msg(self, offer: Asset, desired: AssetInfo) -> OutboundMsg:
        market = self.config.lending_market_address

        if offer.info == self.yield_token and desired == self.base:
            return WasmExecute(
                contract_addr=self.yield_token.identifier,
                msg=encode(TokenSendMsg(
                    contract=market,
                    amount=offer.amount,
                    msg=encode(RedeemStableHook()),
                )),
            )
        if offer.info == self.base and desired == self.yield_token:
            return WasmExecute.build(market, DepositStableMsg(), [offer.to_coin()])

        raise PairNotFound(str(offer.info), str(desired))

    def _pair_swap_msg(self, offer: Asset, desired: AssetInfo) -> OutboundMsg:
        # Factory queries fail with PairNotFound for unknown pairs
        pair_addr = query_pair_info(
            self.querier, self.config.pair_factory_address, [desired, offer.info]
        ).contract_addr

        belief_price = self.config.belief_price
        max_spread = self.config.max_spread

        if offer.info.is_native:
            return WasmExecute.build(
                pair_addr,
                PairSwapMsg(offer_asset=offer, belief_price=belief_price, max_spread=max_spread),
                [offer.to_coin()],
            )

        return WasmExecute(
            contract_addr=offer.info.identifier,
            msg=encode(TokenSendMsg(
                contract=pair_addr,
                amount=offer.amount,
                msg=encode(PairSwapHook(belief_price=belief_price, max_spread=max_spread)),
            )),
        )

#!/usr/bin/env python3
"""
Loan Orchestrator

Continuation state machine for one flash-loan arbitrage cycle:

    Idle -> AwaitingLoan -> RebalancingAssets -> AwaitingVenueSettlement -> Repaying -> Done
                                   (create path)          |        (redeem path)
                                                           +-> liquidation of redeemed assets

Every step after the first is a fresh invocation triggered by an external
message. A step ends by emitting outbound messages; the loan context it needs
next travels inside the continuation message it emits. The callbacks are only
accepted from the flash-loan vault, the self-continuations only from this
contract's own address. Any error aborts the whole cycle.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List

from pydantic import BaseModel

from .base_agent import BaseContract, ExecutionContext
from ..core.assets import Asset, AssetInfo, Coin, sorted_coins
from ..core.errors import DivisionByZero, InsufficientProfit
from ..core.estimator import query_estimate_arbitrage
from ..core.fixed_point import ceil_div, mul_floor
from ..core.messages import (
    ArbClusterCreateMsg, ArbClusterRedeemMsg, ArbCreateMsg, BankSend,
    CallbackCreateMsg, CallbackRedeemMsg, ConfigQuery, EstimateArbitrageQuery,
    FlashLoanMsg, FlashLoanPayload, LoanContext, OutboundMsg, Response, Strategy,
    SwapToBaseAndTakeProfitMsg, TokenIncreaseAllowanceMsg, UpdateConfigMsg,
    UserProfitMsg, VaultFlashLoanMsg, WasmExecute, encode, execute_msg_adapter,
    query_msg_adapter,
)
from ..core.oracle import Querier
from ..core.router import SwapRouter
from ..engine.config import ArbitrageConfig, ConfigUpdate, apply_update

logger = logging.getLogger(__name__)


class CycleStage(str, Enum):
    """Stage a cycle enters when the corresponding step completes"""
    IDLE = "idle"
    AWAITING_LOAN = "awaiting_loan"
    REBALANCING_ASSETS = "rebalancing_assets"
    AWAITING_VENUE_SETTLEMENT = "awaiting_venue_settlement"
    REPAYING = "repaying"
    DONE = "done"


@dataclass
class OrchestratorState:
    """Persistent contract storage: configuration only, never loan data"""
    config: ArbitrageConfig


def compute_repay_amount(loan_amount: int, margin_divisor: int = 999) -> int:
    """Principal plus a fixed ~0.1% margin, rounded up"""
    return loan_amount + ceil_div(loan_amount, margin_divisor)


def compute_value_weights(target_weights: List[Asset], prices: List) -> List[int]:
    """Target amount times price for each basket asset"""
    return [mul_floor(asset.amount, price) for asset, price in zip(target_weights, prices)]


def split_loan_by_value(loan_amount: int, value_weights: List[int]) -> List[int]:
    """
    Pro-rata split of the loan over the basket's value weights.

    Each share is floored, so the shares sum to at most loan_amount and fall
    short of it by less than one unit per asset.
    """
    total = sum(value_weights)
    if total == 0:
        raise DivisionByZero("basket target has no value weight")
    return [loan_amount * weight // total for weight in value_weights]


class ArbitrageOrchestrator(BaseContract):
    """Flash-loan arbitrage between a basket issuer and its AMM pool"""

    def __init__(self, address: str, config: ArbitrageConfig):
        super().__init__(address)
        self.state = OrchestratorState(config=config)

    @property
    def config(self) -> ArbitrageConfig:
        return self.state.config

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def execute(self, ctx: ExecutionContext, msg: bytes) -> Response:
        message = execute_msg_adapter.validate_json(msg)

        if isinstance(message, FlashLoanMsg):
            return self.try_flash_loan(ctx, message)
        elif isinstance(message, CallbackCreateMsg):
            return self.try_callback_create(ctx, message.context)
        elif isinstance(message, ArbCreateMsg):
            return self.try_arb_create(ctx, message.context)
        elif isinstance(message, CallbackRedeemMsg):
            return self.try_callback_redeem(ctx, message.context)
        elif isinstance(message, SwapToBaseAndTakeProfitMsg):
            return self.try_swap_to_base_and_take_profit(ctx, message.context)
        elif isinstance(message, UserProfitMsg):
            return self.try_user_profit(ctx, message)
        elif isinstance(message, UpdateConfigMsg):
            return self.try_update_config(ctx, message)

        raise ValueError(f"Unhandled message {type(message).__name__}")

    def query(self, querier: Querier, msg: bytes) -> BaseModel:
        message = query_msg_adapter.validate_json(msg)

        if isinstance(message, ConfigQuery):
            return self.config
        elif isinstance(message, EstimateArbitrageQuery):
            return query_estimate_arbitrage(
                querier, message.basket_address,
                self.config.pair_factory_address, self.config.base_denom,
            )

        raise ValueError(f"Unhandled query {type(message).__name__}")

    # =========================================================================
    # IDLE -> AWAITING LOAN
    # =========================================================================

    def try_flash_loan(self, ctx: ExecutionContext, msg: FlashLoanMsg) -> Response:
        """Estimate, pick the path and request the loan with its continuation"""
        if not msg.basket_address:
            raise ValueError("basket address cannot be empty")
        beneficiary = msg.beneficiary or ctx.sender

        estimate = query_estimate_arbitrage(
            ctx.querier, msg.basket_address,
            self.config.pair_factory_address, self.config.base_denom,
        )

        context = LoanContext(
            basket_address=msg.basket_address,
            beneficiary=beneficiary,
            loan_amount=estimate.trade_size,
            target_weights=estimate.target_weights,
            prices=estimate.prices if estimate.strategy == Strategy.CREATE else None,
            profit_threshold=msg.profit_threshold,
        )
        if estimate.strategy == Strategy.REDEEM:
            # buy index on the pool and redeem
            callback = CallbackRedeemMsg(context=context)
        else:
            # mint index and sell it on the pool
            callback = CallbackCreateMsg(context=context)

        requested_asset = Asset(info=self._base_info(), amount=estimate.trade_size)
        loan_request = VaultFlashLoanMsg(
            payload=FlashLoanPayload(requested_asset=requested_asset, callback=encode(callback))
        )

        logger.info(
            "Requesting flash loan of %s %s on %s (%s path, market %s, intrinsic %s)",
            estimate.trade_size, self.config.base_denom, msg.basket_address,
            estimate.strategy.value, estimate.market_price, estimate.intrinsic_price,
        )

        return (
            Response()
            .add_message(WasmExecute.build(self.config.vault_address, loan_request))
            .add_attribute("action", "flash_loan")
            .add_attribute("stage", CycleStage.AWAITING_LOAN.value)
            .add_attribute("strategy", estimate.strategy.value)
            .add_attribute("market", estimate.market_price)
            .add_attribute("intrinsic", estimate.intrinsic_price)
            .add_attribute("loan_amount", estimate.trade_size)
        )

    # =========================================================================
    # CREATE PATH
    # =========================================================================

    def try_callback_create(self, ctx: ExecutionContext, context: LoanContext) -> Response:
        """Swap the loan into the basket's assets, split by value weight"""
        self.ensure_sender(ctx, self.config.vault_address, "callback_create")
        if context.prices is None:
            raise ValueError("create continuation requires basket prices")

        shares = split_loan_by_value(
            context.loan_amount, compute_value_weights(context.target_weights, context.prices)
        )

        router = SwapRouter(ctx.querier, self.config)
        base_info = self._base_info()
        messages: List[OutboundMsg] = []
        for asset, share in zip(context.target_weights, shares):
            if share == 0 or asset.info == base_info:
                continue
            messages.append(router.route(Asset(info=base_info, amount=share), asset.info))

        messages.append(self._continue_with(ArbCreateMsg(context=context)))

        logger.info("Rebalancing loan of %s into %d basket assets",
                    context.loan_amount, len(messages) - 1)

        return (
            Response()
            .add_messages(messages)
            .add_attribute("action", "callback_create")
            .add_attribute("stage", CycleStage.REBALANCING_ASSETS.value)
        )

    def try_arb_create(self, ctx: ExecutionContext, context: LoanContext) -> Response:
        """Mint with the balances actually held, sell on the pool, repay"""
        self.ensure_sender(ctx, self.address, "arb_create")

        # Measured balances, not the estimated ones: the swaps may have slipped
        assets = [
            Asset(info=target.info,
                  amount=ctx.querier.query_asset_balance(target.info, self.address))
            for target in context.target_weights
        ]

        funds: List[Coin] = []
        messages: List[OutboundMsg] = []
        for asset in assets:
            if asset.amount == 0:
                continue
            if asset.info.is_native:
                funds.append(asset.to_coin())
            else:
                messages.append(WasmExecute.build(
                    asset.info.identifier,
                    TokenIncreaseAllowanceMsg(
                        spender=self.config.incentives_address, amount=asset.amount
                    ),
                ))

        messages.append(WasmExecute.build(
            self.config.incentives_address,
            ArbClusterCreateMsg(
                cluster_contract=context.basket_address,
                assets=assets,
                min_base_out=self.config.min_base_out,
            ),
            sorted_coins(funds),
        ))
        messages.extend(self._repay_and_take_profit(context))

        logger.info("Minting on %s with %d measured assets",
                    context.basket_address, len(assets))

        return (
            Response()
            .add_messages(messages)
            .add_attribute("action", "arb_create")
            .add_attribute("stage", CycleStage.AWAITING_VENUE_SETTLEMENT.value)
        )

    # =========================================================================
    # REDEEM PATH
    # =========================================================================

    def try_callback_redeem(self, ctx: ExecutionContext, context: LoanContext) -> Response:
        """Buy index tokens with the whole loan and redeem them"""
        self.ensure_sender(ctx, self.config.vault_address, "callback_redeem")

        offer = Asset(info=self._base_info(), amount=context.loan_amount)
        messages = [
            WasmExecute.build(
                self.config.incentives_address,
                ArbClusterRedeemMsg(
                    cluster_contract=context.basket_address,
                    asset=offer,
                    min_index_out=self.config.min_index_out,
                ),
                [offer.to_coin()],
            ),
            self._continue_with(SwapToBaseAndTakeProfitMsg(context=context)),
        ]

        logger.info("Buying and redeeming on %s with %s", context.basket_address, offer.amount)

        return (
            Response()
            .add_messages(messages)
            .add_attribute("action", "callback_redeem")
            .add_attribute("stage", CycleStage.AWAITING_VENUE_SETTLEMENT.value)
        )

    def try_swap_to_base_and_take_profit(self, ctx: ExecutionContext,
                                         context: LoanContext) -> Response:
        """Liquidate every redeemed asset back into base, then repay"""
        self.ensure_sender(ctx, self.address, "swap_to_base_and_take_profit")

        router = SwapRouter(ctx.querier, self.config)
        base_info = self._base_info()
        messages: List[OutboundMsg] = []
        for target in context.target_weights:
            if target.info == base_info:
                continue
            balance = ctx.querier.query_asset_balance(target.info, self.address)
            if balance == 0:
                continue
            messages.append(router.route(Asset(info=target.info, amount=balance), base_info))

        logger.info("Liquidating %d redeemed assets", len(messages))
        messages.extend(self._repay_and_take_profit(context))

        return (
            Response()
            .add_messages(messages)
            .add_attribute("action", "swap_to_base_and_take_profit")
            .add_attribute("stage", CycleStage.REPAYING.value)
        )

    # =========================================================================
    # REPAYING -> DONE
    # =========================================================================

    def _repay_and_take_profit(self, context: LoanContext) -> List[OutboundMsg]:
        repay_amount = compute_repay_amount(
            context.loan_amount, self.config.repay_margin_divisor
        )
        return [
            BankSend(
                to_address=self.config.vault_address,
                amount=(Coin(self.config.base_denom, repay_amount),),
            ),
            self._continue_with(UserProfitMsg(
                beneficiary=context.beneficiary,
                profit_threshold=context.profit_threshold,
            )),
        ]

    def try_user_profit(self, ctx: ExecutionContext, msg: UserProfitMsg) -> Response:
        """Send the whole remaining base balance to the beneficiary"""
        self.ensure_sender(ctx, self.address, "user_profit")

        profit = ctx.querier.query_balance(self.address, self.config.base_denom)
        if profit < msg.profit_threshold:
            raise InsufficientProfit(profit, msg.profit_threshold)

        response = Response()
        if profit > 0:
            response.add_message(BankSend(
                to_address=msg.beneficiary,
                amount=(Coin(self.config.base_denom, profit),),
            ))

        logger.info("Cycle done, %s %s profit to %s",
                    profit, self.config.base_denom, msg.beneficiary)

        return (
            response
            .add_attribute("action", "user_profit")
            .add_attribute("stage", CycleStage.DONE.value)
            .add_attribute("profit", profit)
        )

    # =========================================================================
    # ADMIN
    # =========================================================================

    def try_update_config(self, ctx: ExecutionContext, msg: UpdateConfigMsg) -> Response:
        self.ensure_sender(ctx, self.config.owner_address, "update_config")

        update = ConfigUpdate(**msg.model_dump(exclude={"kind"}))
        self.state.config = apply_update(self.config, update)
        logger.info("Configuration updated by %s", ctx.sender)

        return Response().add_attribute("action", "update_config")

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _base_info(self) -> AssetInfo:
        return AssetInfo.native(self.config.base_denom)

    def _continue_with(self, msg: BaseModel) -> WasmExecute:
        """Self-addressed continuation"""
        return WasmExecute.build(self.address, msg)

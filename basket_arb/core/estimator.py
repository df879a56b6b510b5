#!/usr/bin/env python3
"""
Arbitrage Estimator and Strategy Selector

Closed-form sizing of the single trade that moves a constant-product
base/index pool to the basket's intrinsic price:

    front = sqrt(intrinsic * index_reserve * base_reserve)

    market < intrinsic:  trade = front - base_reserve              (base spent buying index)
    otherwise:           trade = front - index_reserve * intrinsic (index minted and sold,
                                                                    valued at intrinsic)

Each square root is taken with a 10^4 multiplier so the product of the three
carries 10^12 of extra precision before the final descale.
"""

from decimal import Decimal

from .errors import DivisionByZero, NoArbitrageOpportunity
from .fixed_point import checked_amount, decimal_from_ratio, mul_floor, scaled_sqrt
from .messages import ArbitrageEstimate, Strategy
from .oracle import BasketState, PoolReserves, Querier, get_basket_state, query_pool_reserves


MULTIPLIER = 10_000
# MULTIPLIER ** 3
MULTIPLIER_3 = 1_000_000_000_000


def compute_net_asset_value(state: BasketState) -> int:
    """Inventory dotted with prices, each term floored"""
    return sum(mul_floor(amount, price) for amount, price in zip(state.inventory, state.prices))


def compute_intrinsic_price(state: BasketState) -> Decimal:
    if state.outstanding_supply == 0:
        raise DivisionByZero(f"basket {state.basket_address} has no outstanding supply")
    return decimal_from_ratio(compute_net_asset_value(state), state.outstanding_supply)


def compute_market_price(reserves: PoolReserves) -> Decimal:
    if reserves.index_reserve == 0 or reserves.base_reserve == 0:
        raise DivisionByZero(
            f"pool {reserves.pair_address or '?'} has an empty reserve "
            f"(base={reserves.base_reserve}, index={reserves.index_reserve})"
        )
    return decimal_from_ratio(reserves.base_reserve, reserves.index_reserve)


def select_strategy(market_price: Decimal, intrinsic_price: Decimal) -> Strategy:
    """Pool underprices the index token -> redeem path; ties go to create"""
    if market_price < intrinsic_price:
        return Strategy.REDEEM
    return Strategy.CREATE


def compute_trade_size(intrinsic_price: Decimal, market_price: Decimal,
                       base_reserve: int, index_reserve: int) -> int:
    """
    Loan amount, in base units, that brings the pool price to intrinsic.

    Raises:
        NoArbitrageOpportunity: the optimal trade is zero or negative
        ArithmeticOverflow: the trade does not fit a venue amount
    """
    front = (
        scaled_sqrt(intrinsic_price, MULTIPLIER)
        * scaled_sqrt(index_reserve, MULTIPLIER)
        * scaled_sqrt(base_reserve, MULTIPLIER)
    )

    if select_strategy(market_price, intrinsic_price) == Strategy.REDEEM:
        trade_size = front // MULTIPLIER_3 - base_reserve
    else:
        back = mul_floor(index_reserve * MULTIPLIER_3, intrinsic_price)
        trade_size = (front - back) // MULTIPLIER_3

    if trade_size <= 0:
        raise NoArbitrageOpportunity(
            f"trade size {trade_size} at market {market_price} / intrinsic {intrinsic_price}"
        )
    return checked_amount(trade_size)


def estimate_arbitrage(state: BasketState, reserves: PoolReserves) -> ArbitrageEstimate:
    """Pure estimate from a basket snapshot and pool reserves"""
    intrinsic_price = compute_intrinsic_price(state)
    market_price = compute_market_price(reserves)
    trade_size = compute_trade_size(
        intrinsic_price, market_price, reserves.base_reserve, reserves.index_reserve
    )

    return ArbitrageEstimate(
        market_price=market_price,
        intrinsic_price=intrinsic_price,
        trade_size=trade_size,
        strategy=select_strategy(market_price, intrinsic_price),
        inventory=list(state.inventory),
        target_weights=list(state.target_weights),
        prices=list(state.prices),
    )


def query_estimate_arbitrage(querier: Querier, basket_address: str, pair_factory_address: str,
                             base_denom: str) -> ArbitrageEstimate:
    """Read the basket and its pool, then estimate"""
    state = get_basket_state(querier, basket_address)
    reserves = query_pool_reserves(querier, pair_factory_address, base_denom, state.index_token)
    return estimate_arbitrage(state, reserves)

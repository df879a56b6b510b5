#!/usr/bin/env python3
"""
Trade Sizing Analysis

Sweeps pool mispricing and checks how well the closed-form trade size moves
a constant-product pool back to the basket's intrinsic price, and how much a
full cycle earns on the local host at each mispricing.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from ..core.errors import ArbitrageError
from ..core.estimator import compute_market_price, compute_trade_size, select_strategy
from ..core.fixed_point import (
    DECIMAL_FRACTIONAL, ceil_div, decimal_from_ratio, mul_floor, to_atomics,
)
from ..core.messages import Strategy
from ..core.oracle import PoolReserves
from ..engine.factory import MarketFactory, ScenarioConfig

logger = logging.getLogger(__name__)


def default_ratios(low: float = 0.5, high: float = 1.5, points: int = 41) -> np.ndarray:
    """Grid of market/intrinsic ratios"""
    return np.round(np.linspace(low, high, points), 6)


def post_trade_price(strategy: Strategy, trade_size: int, intrinsic_price: Decimal,
                     reserves: PoolReserves) -> Decimal:
    """
    Pool price after the sized trade on a fee-less constant-product pool.

    Redeem path: trade_size base is swapped in for index tokens.
    Create path: trade_size base worth of index tokens, valued at intrinsic, is sold.
    """
    invariant = reserves.base_reserve * reserves.index_reserve

    if strategy == Strategy.REDEEM:
        base_after = reserves.base_reserve + trade_size
        index_after = ceil_div(invariant, base_after)
    else:
        index_sold = trade_size * DECIMAL_FRACTIONAL // to_atomics(intrinsic_price)
        index_after = reserves.index_reserve + index_sold
        base_after = ceil_div(invariant, index_after)

    return decimal_from_ratio(base_after, index_after)


def sweep_mispricing(ratios: Optional[Iterable[float]] = None,
                     intrinsic_price: Decimal = Decimal("4.35"),
                     index_reserve: int = 200_000_000) -> pd.DataFrame:
    """
    Size the trade over a grid of market/intrinsic ratios.

    Args:
        ratios: Market price as a fraction of intrinsic price
        intrinsic_price: Basket intrinsic price held fixed across the sweep
        index_reserve: Pool index-token reserve held fixed across the sweep

    Returns:
        One row per ratio; rows without an opportunity have a zero trade size
    """
    if ratios is None:
        ratios = default_ratios()

    rows = []
    for ratio in ratios:
        ratio = Decimal(str(ratio))
        reserves = PoolReserves(
            base_reserve=mul_floor(index_reserve, intrinsic_price * ratio),
            index_reserve=index_reserve,
        )
        market_price = compute_market_price(reserves)
        strategy = select_strategy(market_price, intrinsic_price)

        try:
            trade_size = compute_trade_size(
                intrinsic_price, market_price, reserves.base_reserve, reserves.index_reserve
            )
        except ArbitrageError as e:
            logger.debug("No trade at ratio %s: %s", ratio, e)
            rows.append({
                "ratio": float(ratio),
                "market_price": float(market_price),
                "strategy": None,
                "trade_size": 0,
                "post_trade_price": float(market_price),
                "price_error": np.nan,
            })
            continue

        after = post_trade_price(strategy, trade_size, intrinsic_price, reserves)
        rows.append({
            "ratio": float(ratio),
            "market_price": float(market_price),
            "strategy": strategy.value,
            "trade_size": trade_size,
            "post_trade_price": float(after),
            "price_error": float(abs(after - intrinsic_price) / intrinsic_price),
        })

    df = pd.DataFrame(rows)
    df["intrinsic_price"] = float(intrinsic_price)
    return df


def profit_sweep(ratios: Optional[Iterable[float]] = None,
                 factory: Optional[MarketFactory] = None) -> pd.DataFrame:
    """
    Run one full cycle on a fresh local market per ratio.

    Cycles that abort (no opportunity, unprofitable after fees) are kept as
    rows with `completed` False and the reason.
    """
    if ratios is None:
        ratios = default_ratios(points=21)
    factory = factory or MarketFactory()
    beneficiary = "beneficiary"

    rows = []
    for ratio in ratios:
        market = factory.build(ScenarioConfig(market_to_intrinsic=Decimal(str(ratio))))
        intrinsic_price = market.intrinsic_price()
        row = {
            "ratio": float(ratio),
            "intrinsic_price": float(intrinsic_price),
            "market_before": float(market.market_price()),
        }

        try:
            result = market.run_cycle(beneficiary=beneficiary)
        except ArbitrageError as e:
            row.update({
                "completed": False,
                "strategy": None,
                "loan_amount": 0,
                "profit": 0,
                "market_after": row["market_before"],
                "reason": type(e).__name__,
            })
        else:
            row.update({
                "completed": True,
                "strategy": result.attribute("strategy"),
                "loan_amount": int(result.attribute("loan_amount")),
                "profit": market.base_balance(beneficiary),
                "market_after": float(market.market_price()),
                "reason": "",
            })
        rows.append(row)

    df = pd.DataFrame(rows)
    df["profit_bps"] = np.where(
        df["loan_amount"] > 0,
        df["profit"] / df["loan_amount"].replace(0, np.nan) * 10_000,
        0.0,
    )
    return df

#!/usr/bin/env python3
"""
Error taxonomy for the arbitrage agent.

Every error aborts the whole in-flight cycle. Nothing is retried internally;
the host rolls back the transaction and the caller decides whether to try
again on a later transaction.
"""


class ArbitrageError(Exception):
    """Base class for all arbitrage cycle failures"""


class Unauthorized(ArbitrageError):
    """Caller is not allowed to invoke this entry point"""

    def __init__(self, sender: str = "", entry_point: str = ""):
        self.sender = sender
        self.entry_point = entry_point
        detail = f"{sender} may not call {entry_point}" if entry_point else sender
        super().__init__(f"Unauthorized: {detail}" if detail else "Unauthorized")


class DivisionByZero(ArbitrageError):
    """Degenerate market state (empty supply or empty reserve)"""


class ArithmeticOverflow(ArbitrageError):
    """Result does not fit the venue's amount range"""


class PairNotFound(ArbitrageError):
    """No pool exists for the requested asset pair"""

    def __init__(self, offer: str, ask: str):
        self.offer = offer
        self.ask = ask
        super().__init__(f"No pair found for {offer} -> {ask}")


class NoArbitrageOpportunity(ArbitrageError):
    """Estimator produced a non-positive trade size"""


class VenueRejected(ArbitrageError):
    """An external swap, mint, redeem or loan call failed"""


class InsufficientProfit(ArbitrageError):
    """Swept profit is below the caller's opt-in threshold"""

    def __init__(self, profit: int, threshold: int):
        self.profit = profit
        self.threshold = threshold
        super().__init__(f"Profit {profit} is below threshold {threshold}")


class ConfigError(ArbitrageError):
    """Configuration could not be loaded or applied"""

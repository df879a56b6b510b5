#!/usr/bin/env python3
"""
Cycle Reports

Tabular views of what one arbitrage transaction dispatched on the local host.
"""

from typing import Any, Dict, List

import pandas as pd

from ..engine.factory import LocalMarket
from ..engine.host import ExecutionRecord, TransactionResult

ORCHESTRATOR_STEPS = [
    "flash_loan",
    "callback_create",
    "callback_redeem",
    "arb_create",
    "swap_to_base_and_take_profit",
    "user_profit",
]


def cycle_report(records: List[ExecutionRecord]) -> pd.DataFrame:
    """One row per dispatched message, in dispatch order"""
    rows = []
    for step, record in enumerate(records):
        rows.append({
            "step": step,
            "depth": record.depth,
            "sender": record.sender,
            "target": record.target,
            "kind": record.kind,
            "stage": record.attributes.get("stage", ""),
            "attributes": ", ".join(
                f"{k}={v}" for k, v in record.attributes.items() if k not in ("action", "stage")
            ),
        })
    return pd.DataFrame(rows, columns=["step", "depth", "sender", "target", "kind", "stage", "attributes"])


def orchestrator_steps(records: List[ExecutionRecord], orchestrator_address: str) -> List[str]:
    """Continuation steps the orchestrator executed, in order"""
    return [r.kind for r in records if r.target == orchestrator_address and r.kind in ORCHESTRATOR_STEPS]


def summarize_cycle(market: LocalMarket, result: TransactionResult,
                    beneficiary: str) -> Dict[str, Any]:
    """Headline numbers of a completed cycle"""
    loan_amount = int(result.attribute("loan_amount") or 0)
    profit = int(result.attribute("profit") or 0)
    return {
        "strategy": result.attribute("strategy"),
        "market_before": result.attribute("market"),
        "intrinsic": result.attribute("intrinsic"),
        "market_after": str(market.market_price()),
        "loan_amount": loan_amount,
        "profit": profit,
        "beneficiary_balance": market.base_balance(beneficiary),
        "messages_dispatched": len(result.records),
        "steps": " -> ".join(orchestrator_steps(result.records, market.orchestrator.address)),
    }

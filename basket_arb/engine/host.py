#!/usr/bin/env python3
"""
Local Message-Driven Host

In-memory chain that owns the native bank ledger, routes messages to
registered contracts and answers their queries. Emitted messages are
dispatched depth-first in emission order: a message's own sub-messages
complete before its next sibling runs. A top-level transaction is atomic;
if any step raises, every ledger and contract state is restored and the
error propagates to the caller.
"""

import copy
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple, Type, Union

from pydantic import BaseModel

from ..agents.base_agent import BaseContract, ExecutionContext
from ..core.assets import Coin
from ..core.errors import VenueRejected
from ..core.fixed_point import mul_floor
from ..core.messages import (
    BankSend, NativeSwap, OutboundMsg, WasmExecute, decode_kind, encode,
)
from ..core.oracle import Querier, ResponseT

logger = logging.getLogger(__name__)


@dataclass
class ExecutionRecord:
    """One dispatched message, in dispatch order"""
    depth: int
    sender: str
    target: str
    kind: str
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass
class TransactionResult:
    """Everything a successful transaction dispatched"""
    records: List[ExecutionRecord]

    def kinds(self) -> List[str]:
        return [record.kind for record in self.records]

    def attribute(self, key: str) -> Optional[str]:
        """Last value emitted for an attribute key"""
        value = None
        for record in self.records:
            if key in record.attributes:
                value = record.attributes[key]
        return value


class LocalChain(Querier):
    """Bank ledger, contract registry and message dispatcher"""

    def __init__(self):
        self.bank: Dict[str, Dict[str, int]] = {}
        self.contracts: Dict[str, BaseContract] = {}
        self.native_rates: Dict[Tuple[str, str], Decimal] = {}
        self.execution_log: List[ExecutionRecord] = []
        self._depth = 0

    # =========================================================================
    # SETUP
    # =========================================================================

    def register(self, contract: BaseContract) -> BaseContract:
        if contract.address in self.contracts:
            raise ValueError(f"Address {contract.address} is already registered")
        self.contracts[contract.address] = contract
        return contract

    def mint_native(self, address: str, denom: str, amount: int):
        """Genesis balance, outside any transaction"""
        if amount < 0:
            raise ValueError("Cannot mint a negative amount")
        balances = self.bank.setdefault(address, {})
        balances[denom] = balances.get(denom, 0) + amount

    def set_native_rate(self, offer_denom: str, ask_denom: str, rate: Decimal):
        """Market-module exchange rate, in ask units per offer unit"""
        if rate <= 0:
            raise ValueError("Native exchange rate must be positive")
        self.native_rates[(offer_denom, ask_denom)] = rate

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def execute(self, sender: str, contract_addr: str, msg: Union[BaseModel, bytes],
                funds: List[Coin] = None) -> TransactionResult:
        """Run one atomic top-level transaction"""
        raw = msg if isinstance(msg, bytes) else encode(msg)
        snapshot = self._snapshot()
        first_record = len(self.execution_log)

        try:
            self.dispatch(sender, WasmExecute(contract_addr, raw, tuple(funds or ())))
        except Exception as e:
            logger.info("Transaction from %s to %s reverted: %s", sender, contract_addr, e)
            self._restore(snapshot)
            raise

        return TransactionResult(records=self.execution_log[first_record:])

    def dispatch(self, sender: str, msg: OutboundMsg):
        """Deliver one message and, depth-first, everything it emits"""
        if isinstance(msg, WasmExecute):
            self._dispatch_wasm(sender, msg)
        elif isinstance(msg, BankSend):
            self.transfer(sender, msg.to_address, msg.amount)
            self._record(sender, msg.to_address, "bank_send",
                         {"amount": ",".join(f"{c.amount}{c.denom}" for c in msg.amount)})
        elif isinstance(msg, NativeSwap):
            self._native_swap(sender, msg)
        else:
            raise ValueError(f"Unknown message type {type(msg).__name__}")

    def _dispatch_wasm(self, sender: str, msg: WasmExecute):
        contract = self._contract(msg.contract_addr)
        self.transfer(sender, msg.contract_addr, msg.funds)

        ctx = ExecutionContext(
            querier=self,
            contract_address=msg.contract_addr,
            sender=sender,
            funds=tuple(msg.funds),
        )
        kind = decode_kind(msg.msg)
        logger.debug("%s%s -> %s: %s", "  " * self._depth, sender, msg.contract_addr, kind)

        response = contract.execute(ctx, msg.msg)
        self._record(sender, msg.contract_addr, kind, dict(response.attributes))

        self._depth += 1
        try:
            for sub_msg in response.messages:
                self.dispatch(msg.contract_addr, sub_msg)
        finally:
            self._depth -= 1

    def _native_swap(self, sender: str, msg: NativeSwap):
        offer = msg.offer_coin
        rate = self.native_rates.get((offer.denom, msg.ask_denom))
        if rate is None:
            raise VenueRejected(f"No native market for {offer.denom} -> {msg.ask_denom}")

        ask_amount = mul_floor(offer.amount, rate)
        self._debit(sender, offer.denom, offer.amount)
        self.mint_native(sender, msg.ask_denom, ask_amount)
        self._record(sender, "market_module", "native_swap", {
            "offer": f"{offer.amount}{offer.denom}",
            "return": f"{ask_amount}{msg.ask_denom}",
        })

    # =========================================================================
    # BANK
    # =========================================================================

    def transfer(self, sender: str, recipient: str, coins):
        for coin in coins:
            if coin.amount == 0:
                continue
            self._debit(sender, coin.denom, coin.amount)
            self.mint_native(recipient, coin.denom, coin.amount)

    def _debit(self, address: str, denom: str, amount: int):
        balance = self.query_balance(address, denom)
        if amount < 0 or balance < amount:
            raise VenueRejected(
                f"Insufficient funds: {address} has {balance}{denom}, needs {amount}{denom}"
            )
        self.bank.setdefault(address, {})[denom] = balance - amount

    # =========================================================================
    # QUERIER
    # =========================================================================

    def query_balance(self, address: str, denom: str) -> int:
        return self.bank.get(address, {}).get(denom, 0)

    def query_wasm_smart(self, contract_addr: str, msg: BaseModel,
                         response_model: Type[ResponseT]) -> ResponseT:
        result = self._contract(contract_addr).query(self, encode(msg))
        # Round-trip through the wire format, as a real query would
        return response_model.model_validate_json(result.model_dump_json())

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _contract(self, address: str) -> BaseContract:
        contract = self.contracts.get(address)
        if contract is None:
            raise VenueRejected(f"No contract at {address}")
        return contract

    def _record(self, sender: str, target: str, kind: str, attributes: Dict[str, str]):
        self.execution_log.append(ExecutionRecord(
            depth=self._depth, sender=sender, target=target, kind=kind, attributes=attributes,
        ))

    def _snapshot(self):
        return (
            copy.deepcopy(self.bank),
            {address: copy.deepcopy(c.state) for address, c in self.contracts.items()},
            len(self.execution_log),
        )

    def _restore(self, snapshot):
        bank, states, log_length = snapshot
        self.bank = bank
        for address, state in states.items():
            self.contracts[address].state = state
        del self.execution_log[log_length:]
        self._depth = 0

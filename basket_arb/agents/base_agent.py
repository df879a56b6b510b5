#!/usr/bin/env python3
"""
Minimal Contract Interface

Base class for every contract the host can address: the arbitrage
orchestrator and the simulated collaborator venues. A contract keeps all
of its mutable data in `self.state`, which is what the host snapshots and
restores around a transaction.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Tuple

from pydantic import BaseModel

from ..core.assets import Coin
from ..core.errors import Unauthorized, VenueRejected
from ..core.messages import Response
from ..core.oracle import Querier


@dataclass(frozen=True)
class ExecutionContext:
    """Everything a contract step is allowed to see about its invocation"""
    querier: Querier
    contract_address: str
    sender: str
    funds: Tuple[Coin, ...] = ()

    def funds_of(self, denom: str) -> int:
        return sum(coin.amount for coin in self.funds if coin.denom == denom)


class BaseContract(ABC):
    """Addressable message handler"""

    def __init__(self, address: str):
        self.address = address
        self.state: Any = None

    @abstractmethod
    def execute(self, ctx: ExecutionContext, msg: bytes) -> Response:
        """Handle one encoded execute message"""

    def query(self, querier: Querier, msg: bytes) -> BaseModel:
        raise VenueRejected(f"{self.address} does not answer queries")

    @staticmethod
    def ensure_sender(ctx: ExecutionContext, allowed: str, entry_point: str):
        if ctx.sender != allowed:
            raise Unauthorized(ctx.sender, entry_point)

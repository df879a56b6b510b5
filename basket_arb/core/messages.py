#!/usr/bin/env python3
"""
Message Schemas

Every message crossing a contract boundary is a pydantic model serialized to
JSON bytes, so a step can only see what the previous step explicitly put on
the wire. The loan context travels inside each continuation message; nothing
about an in-flight cycle is kept in contract storage.
"""

import json
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from .assets import Asset, AssetInfo, Coin


class Strategy(str, Enum):
    """Execution path chosen for one arbitrage cycle"""
    REDEEM = "redeem"   # buy index on the pool, redeem for underlying, sell underlying
    CREATE = "create"   # buy underlying, mint index, sell index on the pool


class LoanContext(BaseModel):
    """Per-loan parameters carried from step to step"""
    model_config = ConfigDict(frozen=True)

    basket_address: str
    beneficiary: str
    loan_amount: int = Field(gt=0)
    target_weights: List[Asset]
    prices: Optional[List[Decimal]] = None
    profit_threshold: int = Field(default=0, ge=0)

    @field_validator("prices")
    @classmethod
    def prices_match_targets(cls, v, info):
        targets = info.data.get("target_weights")
        if v is not None and targets is not None and len(v) != len(targets):
            raise ValueError(
                f"prices ({len(v)}) and target weights ({len(targets)}) must be parallel"
            )
        return v


# =============================================================================
# ORCHESTRATOR EXECUTE MESSAGES
# =============================================================================

class FlashLoanMsg(BaseModel):
    """Public entry point: estimate, choose a path and borrow"""
    kind: Literal["flash_loan"] = "flash_loan"
    basket_address: str
    beneficiary: Optional[str] = None
    profit_threshold: int = Field(default=0, ge=0)


class CallbackCreateMsg(BaseModel):
    """Loan arrived, create path: buy the underlying assets"""
    kind: Literal["callback_create"] = "callback_create"
    context: LoanContext


class ArbCreateMsg(BaseModel):
    """Mint with measured balances, sell, repay"""
    kind: Literal["arb_create"] = "arb_create"
    context: LoanContext


class CallbackRedeemMsg(BaseModel):
    """Loan arrived, redeem path: buy index tokens and redeem them"""
    kind: Literal["callback_redeem"] = "callback_redeem"
    context: LoanContext


class SwapToBaseAndTakeProfitMsg(BaseModel):
    """Liquidate redeemed assets, repay"""
    kind: Literal["swap_to_base_and_take_profit"] = "swap_to_base_and_take_profit"
    context: LoanContext


class UserProfitMsg(BaseModel):
    """Sweep the remaining base balance to the beneficiary"""
    kind: Literal["user_profit"] = "user_profit"
    beneficiary: str
    profit_threshold: int = Field(default=0, ge=0)


class UpdateConfigMsg(BaseModel):
    """Owner-only configuration update"""
    kind: Literal["update_config"] = "update_config"
    vault_address: Optional[str] = None
    incentives_address: Optional[str] = None
    pair_factory_address: Optional[str] = None
    owner_address: Optional[str] = None


ExecuteMsg = Annotated[
    Union[
        FlashLoanMsg,
        CallbackCreateMsg,
        ArbCreateMsg,
        CallbackRedeemMsg,
        SwapToBaseAndTakeProfitMsg,
        UserProfitMsg,
        UpdateConfigMsg,
    ],
    Field(discriminator="kind"),
]
execute_msg_adapter = TypeAdapter(ExecuteMsg)


class ConfigQuery(BaseModel):
    kind: Literal["config"] = "config"


class EstimateArbitrageQuery(BaseModel):
    kind: Literal["estimate_arbitrage"] = "estimate_arbitrage"
    basket_address: str


QueryMsg = Annotated[
    Union[ConfigQuery, EstimateArbitrageQuery], Field(discriminator="kind")
]
query_msg_adapter = TypeAdapter(QueryMsg)


class ArbitrageEstimate(BaseModel):
    """Estimator result, carrying the snapshot the continuation is built from"""
    model_config = ConfigDict(frozen=True)

    market_price: Decimal
    intrinsic_price: Decimal
    trade_size: int
    strategy: Strategy
    inventory: List[int]
    target_weights: List[Asset]
    prices: List[Decimal]


# =============================================================================
# COLLABORATOR MESSAGES
# =============================================================================

class ArbClusterCreateMsg(BaseModel):
    """Mint index tokens from the offered basket and sell them on the pool"""
    kind: Literal["arb_cluster_create"] = "arb_cluster_create"
    cluster_contract: str
    assets: List[Asset]
    min_base_out: Optional[int] = None


class ArbClusterRedeemMsg(BaseModel):
    """Buy index tokens on the pool with base funds and redeem them"""
    kind: Literal["arb_cluster_redeem"] = "arb_cluster_redeem"
    cluster_contract: str
    asset: Asset
    min_index_out: Optional[int] = None


class PairSwapMsg(BaseModel):
    """Native-offer swap executed directly on a pair"""
    kind: Literal["swap"] = "swap"
    offer_asset: Asset
    belief_price: Optional[Decimal] = None
    max_spread: Optional[Decimal] = None
    to: Optional[str] = None


class PairSwapHook(BaseModel):
    """Token-offer swap, delivered through a token send"""
    kind: Literal["swap"] = "swap"
    belief_price: Optional[Decimal] = None
    max_spread: Optional[Decimal] = None
    to: Optional[str] = None


class DepositStableMsg(BaseModel):
    kind: Literal["deposit_stable"] = "deposit_stable"


class RedeemStableHook(BaseModel):
    kind: Literal["redeem_stable"] = "redeem_stable"


class FlashLoanPayload(BaseModel):
    requested_asset: Asset
    callback: bytes


class VaultFlashLoanMsg(BaseModel):
    kind: Literal["flash_loan"] = "flash_loan"
    payload: FlashLoanPayload


class TokenSendMsg(BaseModel):
    """Move tokens to a contract and invoke its receive hook"""
    kind: Literal["send"] = "send"
    contract: str
    amount: int
    msg: bytes


class TokenTransferMsg(BaseModel):
    kind: Literal["transfer"] = "transfer"
    recipient: str
    amount: int


class TokenIncreaseAllowanceMsg(BaseModel):
    kind: Literal["increase_allowance"] = "increase_allowance"
    spender: str
    amount: int


class TokenTransferFromMsg(BaseModel):
    kind: Literal["transfer_from"] = "transfer_from"
    owner: str
    recipient: str
    amount: int


class TokenMintMsg(BaseModel):
    kind: Literal["mint"] = "mint"
    recipient: str
    amount: int


class TokenBurnMsg(BaseModel):
    kind: Literal["burn"] = "burn"
    amount: int


class TokenReceiveMsg(BaseModel):
    """Delivered to the receiving contract of a token send"""
    kind: Literal["receive"] = "receive"
    sender: str
    amount: int
    msg: bytes


# Queries against collaborators

class ClusterStateQuery(BaseModel):
    kind: Literal["cluster_state"] = "cluster_state"


class ClusterStateResponse(BaseModel):
    outstanding_balance_tokens: int
    prices: List[Decimal]
    inv: List[int]
    cluster_token: str
    target: List[Asset]
    cluster_contract_address: str
    active: bool = True


class PairQuery(BaseModel):
    kind: Literal["pair"] = "pair"
    asset_infos: Tuple[AssetInfo, AssetInfo]


class PairInfoResponse(BaseModel):
    asset_infos: Tuple[AssetInfo, AssetInfo]
    contract_addr: str


class PoolQuery(BaseModel):
    kind: Literal["pool"] = "pool"


class PoolResponse(BaseModel):
    assets: Tuple[Asset, Asset]
    total_share: int = 0


class TokenBalanceQuery(BaseModel):
    kind: Literal["balance"] = "balance"
    address: str


class TokenBalanceResponse(BaseModel):
    balance: int


# =============================================================================
# OUTBOUND MESSAGES
# =============================================================================

@dataclass(frozen=True)
class WasmExecute:
    """Execute a contract with an encoded message and attached funds"""
    contract_addr: str
    msg: bytes
    funds: Tuple[Coin, ...] = ()

    @classmethod
    def build(cls, contract_addr: str, msg: BaseModel, funds: List[Coin] = None) -> "WasmExecute":
        return cls(contract_addr, encode(msg), tuple(funds or ()))


@dataclass(frozen=True)
class BankSend:
    """Native transfer"""
    to_address: str
    amount: Tuple[Coin, ...]


@dataclass(frozen=True)
class NativeSwap:
    """Swap between two native denominations through the host market module"""
    offer_coin: Coin
    ask_denom: str


OutboundMsg = Union[WasmExecute, BankSend, NativeSwap]


@dataclass
class Response:
    """Result of one contract step: messages to dispatch plus attributes"""
    messages: List[OutboundMsg] = field(default_factory=list)
    attributes: List[Tuple[str, str]] = field(default_factory=list)
    data: Optional[Any] = None

    def add_message(self, msg: OutboundMsg) -> "Response":
        self.messages.append(msg)
        return self

    def add_messages(self, msgs: List[OutboundMsg]) -> "Response":
        self.messages.extend(msgs)
        return self

    def add_attribute(self, key: str, value: Any) -> "Response":
        self.attributes.append((key, str(value)))
        return self


def encode(msg: BaseModel) -> bytes:
    return msg.model_dump_json().encode("utf-8")


def decode_kind(raw: bytes) -> str:
    """Peek at a message's discriminator without validating it"""
    return json.loads(raw).get("kind", "")

#!/usr/bin/env python3
"""
Simulated Collaborator Venues

Just enough of each external venue to drive arbitrage cycles on the local
host: a token ledger, a pair factory with constant-product pairs, the basket
issuer, the arbitrage-incentives venue that wraps mint/redeem against the
pool, a lending market issuing the yield-wrapper token and a flash-loan vault.
Every venue speaks the same encoded messages a deployed venue would.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from math import isqrt
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, TypeAdapter

from ..agents.base_agent import BaseContract, ExecutionContext
from ..core.assets import Asset, AssetInfo, Coin, sorted_coins
from ..core.errors import PairNotFound, VenueRejected
from ..core.fixed_point import (
    DECIMAL_FRACTIONAL, ceil_div, decimal_from_ratio, mul_floor, to_atomics,
)
from ..core.messages import (
    ArbClusterCreateMsg, ArbClusterRedeemMsg, BankSend, ClusterStateQuery,
    ClusterStateResponse, DepositStableMsg, OutboundMsg, PairInfoResponse, PairQuery,
    PairSwapHook, PairSwapMsg, PoolQuery, PoolResponse, RedeemStableHook, Response,
    TokenBalanceQuery, TokenBalanceResponse, TokenBurnMsg, TokenIncreaseAllowanceMsg,
    TokenMintMsg, TokenReceiveMsg, TokenSendMsg, TokenTransferFromMsg, TokenTransferMsg,
    VaultFlashLoanMsg, WasmExecute, encode,
)
from ..core.oracle import Querier, get_basket_state, query_pair_info


DEFAULT_POOL_FEE = Decimal("0.003")
VAULT_FEE_DIVISOR = 1000


# =============================================================================
# VENUE-INTERNAL MESSAGES
# =============================================================================

class ClusterMintMsg(BaseModel):
    kind: Literal["mint"] = "mint"
    assets: List[Asset]


class ClusterBurnHook(BaseModel):
    kind: Literal["burn"] = "burn"


class IncentivesRedeemAllMsg(BaseModel):
    kind: Literal["_redeem_all"] = "_redeem_all"
    cluster_contract: str
    min_index_out: Optional[int] = None


class IncentivesSellAllMsg(BaseModel):
    kind: Literal["_sell_all"] = "_sell_all"
    cluster_contract: str


class IncentivesForwardMsg(BaseModel):
    """Forward the venue's balances to the original caller; the minimum applies to the first asset"""
    kind: Literal["_forward"] = "_forward"
    recipient: str
    assets: List[AssetInfo]
    min_amount: Optional[int] = None


class VaultCheckRepaymentMsg(BaseModel):
    kind: Literal["_check_repayment"] = "_check_repayment"
    denom: str
    minimum_balance: int


def _adapter(*models):
    return TypeAdapter(Annotated[Union[models], Field(discriminator="kind")])


token_msg_adapter = _adapter(
    TokenTransferMsg, TokenSendMsg, TokenIncreaseAllowanceMsg,
    TokenTransferFromMsg, TokenMintMsg, TokenBurnMsg,
)
pair_msg_adapter = _adapter(PairSwapMsg, TokenReceiveMsg)
basket_msg_adapter = _adapter(ClusterMintMsg, TokenReceiveMsg)
incentives_msg_adapter = _adapter(
    ArbClusterCreateMsg, ArbClusterRedeemMsg,
    IncentivesRedeemAllMsg, IncentivesSellAllMsg, IncentivesForwardMsg,
)
lending_msg_adapter = _adapter(DepositStableMsg, TokenReceiveMsg)
vault_msg_adapter = _adapter(VaultFlashLoanMsg, VaultCheckRepaymentMsg)


def transfer_msg(info: AssetInfo, recipient: str, amount: int) -> OutboundMsg:
    """Payout instruction for either asset variant"""
    if info.is_native:
        return BankSend(to_address=recipient, amount=(Coin(info.identifier, amount),))
    return WasmExecute.build(info.identifier, TokenTransferMsg(recipient=recipient, amount=amount))


def _require_native_funds(ctx: ExecutionContext, asset: Asset):
    attached = ctx.funds_of(asset.info.identifier)
    if attached < asset.amount:
        raise VenueRejected(
            f"{asset.amount}{asset.info.identifier} declared but {attached} attached"
        )


# =============================================================================
# TOKEN LEDGER
# =============================================================================

@dataclass
class TokenLedger:
    minter: str
    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[str, Dict[str, int]] = field(default_factory=dict)
    total_supply: int = 0


class Cw20Token(BaseContract):
    """Fungible token with allowances and a send-with-hook transfer"""

    def __init__(self, address: str, minter: str):
        super().__init__(address)
        self.state = TokenLedger(minter=minter)

    def balance_of(self, address: str) -> int:
        return self.state.balances.get(address, 0)

    def mint_to(self, address: str, amount: int):
        """Genesis mint, outside any transaction"""
        self._credit(address, amount)
        self.state.total_supply += amount

    def execute(self, ctx: ExecutionContext, msg: bytes) -> Response:
        message = token_msg_adapter.validate_json(msg)
        response = Response().add_attribute("action", message.kind)

        if isinstance(message, TokenTransferMsg):
            self._move(ctx.sender, message.recipient, message.amount)
        elif isinstance(message, TokenSendMsg):
            self._move(ctx.sender, message.contract, message.amount)
            response.add_message(WasmExecute.build(
                message.contract,
                TokenReceiveMsg(sender=ctx.sender, amount=message.amount, msg=message.msg),
            ))
        elif isinstance(message, TokenIncreaseAllowanceMsg):
            allowances = self.state.allowances.setdefault(ctx.sender, {})
            allowances[message.spender] = allowances.get(message.spender, 0) + message.amount
        elif isinstance(message, TokenTransferFromMsg):
            allowances = self.state.allowances.get(message.owner, {})
            allowed = allowances.get(ctx.sender, 0)
            if allowed < message.amount:
                raise VenueRejected(
                    f"{ctx.sender} may move {allowed} of {message.owner}'s tokens, "
                    f"not {message.amount}"
                )
            allowances[ctx.sender] = allowed - message.amount
            self._move(message.owner, message.recipient, message.amount)
        elif isinstance(message, TokenMintMsg):
            self.ensure_sender(ctx, self.state.minter, "mint")
            self.mint_to(message.recipient, message.amount)
        elif isinstance(message, TokenBurnMsg):
            self._debit(ctx.sender, message.amount)
            self.state.total_supply -= message.amount

        return response.add_attribute("amount", message.amount)

    def query(self, querier: Querier, msg: bytes) -> BaseModel:
        message = TokenBalanceQuery.model_validate_json(msg)
        return TokenBalanceResponse(balance=self.balance_of(message.address))

    def _move(self, owner: str, recipient: str, amount: int):
        self._debit(owner, amount)
        self._credit(recipient, amount)

    def _credit(self, address: str, amount: int):
        if amount < 0:
            raise VenueRejected(f"negative token amount {amount}")
        self.state.balances[address] = self.balance_of(address) + amount

    def _debit(self, address: str, amount: int):
        balance = self.balance_of(address)
        if amount < 0 or balance < amount:
            raise VenueRejected(
                f"{address} holds {balance} of {self.address}, cannot move {amount}"
            )
        self.state.balances[address] = balance - amount


# =============================================================================
# PAIR FACTORY AND CONSTANT-PRODUCT PAIRS
# =============================================================================

def _pair_key(asset_infos) -> Tuple[str, ...]:
    return tuple(sorted(f"{info.kind.value}:{info.identifier}" for info in asset_infos))


def compute_swap(offer_pool: int, ask_pool: int, offer_amount: int,
                 fee_rate: Decimal) -> Tuple[int, int, int]:
    """
    Constant-product swap output.

    Returns:
        (return_amount, spread_amount, commission_amount); return_amount is
        net of the commission, which stays in the pool
    """
    if offer_pool == 0 or ask_pool == 0:
        raise VenueRejected("pool has no liquidity")

    invariant = offer_pool * ask_pool
    gross_return = ask_pool - ceil_div(invariant, offer_pool + offer_amount)
    spread_amount = max(offer_amount * ask_pool // offer_pool - gross_return, 0)
    commission_amount = mul_floor(gross_return, fee_rate)
    return gross_return - commission_amount, spread_amount, commission_amount


def assert_max_spread(belief_price: Optional[Decimal], max_spread: Optional[Decimal],
                      offer_amount: int, return_amount: int, spread_amount: int):
    """Opt-in slippage guard; no limit when max_spread is unset"""
    if max_spread is None:
        return

    if belief_price is not None:
        expected_return = offer_amount * DECIMAL_FRACTIONAL // to_atomics(belief_price)
        spread_amount = max(expected_return - return_amount, 0)
        if expected_return > 0 and decimal_from_ratio(spread_amount, expected_return) > max_spread:
            raise VenueRejected(f"max spread {max_spread} exceeded against belief price")
    elif return_amount + spread_amount > 0:
        if decimal_from_ratio(spread_amount, return_amount + spread_amount) > max_spread:
            raise VenueRejected(f"max spread {max_spread} exceeded")


@dataclass
class FactoryRegistry:
    pairs: Dict[Tuple[str, ...], str] = field(default_factory=dict)
    asset_infos: Dict[str, Tuple[AssetInfo, AssetInfo]] = field(default_factory=dict)


class PairFactory(BaseContract):
    """Pair registry answering pair lookups"""

    def __init__(self, address: str):
        super().__init__(address)
        self.state = FactoryRegistry()

    def register_pair(self, pair: "ConstantProductPair"):
        key = _pair_key(pair.asset_infos)
        if key in self.state.pairs:
            raise ValueError(f"Pair {key} already exists")
        self.state.pairs[key] = pair.address
        self.state.asset_infos[pair.address] = pair.asset_infos

    def execute(self, ctx: ExecutionContext, msg: bytes) -> Response:
        raise VenueRejected("pair factory accepts no execute messages in this host")

    def query(self, querier: Querier, msg: bytes) -> BaseModel:
        message = PairQuery.model_validate_json(msg)
        pair_addr = self.state.pairs.get(_pair_key(message.asset_infos))
        if pair_addr is None:
            offer, ask = message.asset_infos
            raise PairNotFound(str(offer), str(ask))
        return PairInfoResponse(
            asset_infos=self.state.asset_infos[pair_addr], contract_addr=pair_addr
        )


@dataclass
class PoolState:
    reserves: List[int]
    total_share: int = 0


class ConstantProductPair(BaseContract):
    """x*y=k pool with a proportional commission kept in the pool"""

    def __init__(self, address: str, asset_infos: Tuple[AssetInfo, AssetInfo],
                 fee_rate: Decimal = DEFAULT_POOL_FEE):
        super().__init__(address)
        self.asset_infos = tuple(asset_infos)
        self.fee_rate = fee_rate
        self.state = PoolState(reserves=[0, 0])

    def seed(self, amounts: Tuple[int, int]):
        """Set reserves; the caller funds the pair's holdings to match"""
        self.state.reserves = list(amounts)
        self.state.total_share = isqrt(amounts[0] * amounts[1])

    def reserve_of(self, info: AssetInfo) -> int:
        return self.state.reserves[self._index_of(info)]

    def execute(self, ctx: ExecutionContext, msg: bytes) -> Response:
        message = pair_msg_adapter.validate_json(msg)

        if isinstance(message, PairSwapMsg):
            offer = message.offer_asset
            if not offer.info.is_native:
                raise VenueRejected("token offers must arrive through a token send")
            _require_native_funds(ctx, offer)
            return self._swap(offer, message.to or ctx.sender,
                              message.belief_price, message.max_spread)

        hook = PairSwapHook.model_validate_json(message.msg)
        offer = Asset(info=AssetInfo.token(ctx.sender), amount=message.amount)
        return self._swap(offer, hook.to or message.sender, hook.belief_price, hook.max_spread)

    def query(self, querier: Querier, msg: bytes) -> BaseModel:
        PoolQuery.model_validate_json(msg)
        first, second = self.asset_infos
        return PoolResponse(
            assets=(
                Asset(info=first, amount=self.state.reserves[0]),
                Asset(info=second, amount=self.state.reserves[1]),
            ),
            total_share=self.state.total_share,
        )

    def _swap(self, offer: Asset, recipient: str, belief_price, max_spread) -> Response:
        offer_index = self._index_of(offer.info)
        ask_index = 1 - offer_index
        offer_pool = self.state.reserves[offer_index]
        ask_pool = self.state.reserves[ask_index]

        return_amount, spread_amount, commission_amount = compute_swap(
            offer_pool, ask_pool, offer.amount, self.fee_rate
        )
        assert_max_spread(belief_price, max_spread, offer.amount,
                          return_amount + commission_amount, spread_amount)

        self.state.reserves[offer_index] = offer_pool + offer.amount
        self.state.reserves[ask_index] = ask_pool - return_amount

        ask_info = self.asset_infos[ask_index]
        response = (
            Response()
            .add_attribute("action", "swap")
            .add_attribute("offer_asset", offer.info)
            .add_attribute("ask_asset", ask_info)
            .add_attribute("offer_amount", offer.amount)
            .add_attribute("return_amount", return_amount)
            .add_attribute("spread_amount", spread_amount)
            .add_attribute("commission_amount", commission_amount)
        )
        if return_amount > 0:
            response.add_message(transfer_msg(ask_info, recipient, return_amount))
        return response

    def _index_of(self, info: AssetInfo) -> int:
        for i, pool_info in enumerate(self.asset_infos):
            if pool_info == info:
                return i
        raise VenueRejected(f"{info} is not traded by pair {self.address}")


# =============================================================================
# BASKET ISSUER
# =============================================================================

@dataclass
class BasketLedger:
    outstanding_supply: int
    inventory: List[int]
    prices: List[Decimal]
    target: List[Asset]
    active: bool = True


class BasketContract(BaseContract):
    """
    Index-token issuer.

    Mints against the oracle value of the offered assets (any composition is
    accepted) and redeems pro rata to the current inventory.
    """

    def __init__(self, address: str, index_token: str, target: List[Asset],
                 prices: List[Decimal], inventory: List[int], outstanding_supply: int):
        super().__init__(address)
        if not len(target) == len(prices) == len(inventory):
            raise ValueError("Basket target, prices and inventory must be parallel")
        self.index_token = index_token
        self.state = BasketLedger(
            outstanding_supply=outstanding_supply,
            inventory=list(inventory),
            prices=list(prices),
            target=list(target),
        )

    def set_prices(self, prices: List[Decimal]):
        """Oracle feed update"""
        if len(prices) != len(self.state.prices):
            raise ValueError("Price feed must cover every basket asset")
        self.state.prices = list(prices)

    def net_asset_value(self) -> int:
        return sum(mul_floor(amount, price)
                   for amount, price in zip(self.state.inventory, self.state.prices))

    def execute(self, ctx: ExecutionContext, msg: bytes) -> Response:
        message = basket_msg_adapter.validate_json(msg)
        if isinstance(message, ClusterMintMsg):
            return self._mint(ctx, message)
        return self._burn(ctx, message)

    def query(self, querier: Querier, msg: bytes) -> BaseModel:
        ClusterStateQuery.model_validate_json(msg)
        return ClusterStateResponse(
            outstanding_balance_tokens=self.state.outstanding_supply,
            prices=self.state.prices,
            inv=self.state.inventory,
            cluster_token=self.index_token,
            target=self.state.target,
            cluster_contract_address=self.address,
            active=self.state.active,
        )

    def _mint(self, ctx: ExecutionContext, message: ClusterMintMsg) -> Response:
        if not self.state.active:
            raise VenueRejected(f"basket {self.address} is inactive")

        offered = [0] * len(self.state.target)
        response = Response().add_attribute("action", "mint")
        for asset in message.assets:
            index = self._index_of(asset.info)
            offered[index] += asset.amount
            if asset.amount == 0:
                continue
            if asset.info.is_native:
                _require_native_funds(ctx, asset)
            else:
                response.add_message(WasmExecute.build(
                    asset.info.identifier,
                    TokenTransferFromMsg(owner=ctx.sender, recipient=self.address,
                                         amount=asset.amount),
                ))

        offered_value = sum(mul_floor(amount, price)
                            for amount, price in zip(offered, self.state.prices))
        nav = self.net_asset_value()
        if self.state.outstanding_supply == 0 or nav == 0:
            mint_amount = offered_value
        else:
            mint_amount = self.state.outstanding_supply * offered_value // nav
        if mint_amount == 0:
            raise VenueRejected("offered assets are worth less than one index token")

        self.state.inventory = [held + add for held, add in zip(self.state.inventory, offered)]
        self.state.outstanding_supply += mint_amount

        return (
            response
            .add_message(WasmExecute.build(
                self.index_token, TokenMintMsg(recipient=ctx.sender, amount=mint_amount)
            ))
            .add_attribute("mint_amount", mint_amount)
        )

    def _burn(self, ctx: ExecutionContext, message: TokenReceiveMsg) -> Response:
        if ctx.sender != self.index_token:
            raise VenueRejected(f"basket only redeems its own index token, got {ctx.sender}")
        ClusterBurnHook.model_validate_json(message.msg)

        supply = self.state.outstanding_supply
        if message.amount == 0 or message.amount > supply:
            raise VenueRejected(f"cannot redeem {message.amount} of {supply} index tokens")

        payouts = [held * message.amount // supply for held in self.state.inventory]
        self.state.inventory = [held - out for held, out in zip(self.state.inventory, payouts)]
        self.state.outstanding_supply = supply - message.amount

        response = (
            Response()
            .add_message(WasmExecute.build(self.index_token, TokenBurnMsg(amount=message.amount)))
            .add_attribute("action", "burn")
            .add_attribute("burn_amount", message.amount)
        )
        for asset, amount in zip(self.state.target, payouts):
            if amount > 0:
                response.add_message(transfer_msg(asset.info, message.sender, amount))
        return response

    def _index_of(self, info: AssetInfo) -> int:
        for i, asset in enumerate(self.state.target):
            if asset.info == info:
                return i
        raise VenueRejected(f"{info} is not part of basket {self.address}")


# =============================================================================
# ARBITRAGE-INCENTIVES VENUE
# =============================================================================

class IncentivesContract(BaseContract):
    """Runs mint-and-sell or buy-and-redeem against a basket's pool for a caller"""

    def __init__(self, address: str, pair_factory_address: str, base_denom: str):
        super().__init__(address)
        self.pair_factory_address = pair_factory_address
        self.base = AssetInfo.native(base_denom)

    def execute(self, ctx: ExecutionContext, msg: bytes) -> Response:
        message = incentives_msg_adapter.validate_json(msg)

        if isinstance(message, ArbClusterRedeemMsg):
            return self._arb_redeem(ctx, message)
        elif isinstance(message, ArbClusterCreateMsg):
            return self._arb_create(ctx, message)
        elif isinstance(message, IncentivesRedeemAllMsg):
            return self._redeem_all(ctx, message)
        elif isinstance(message, IncentivesSellAllMsg):
            return self._sell_all(ctx, message)
        return self._forward(ctx, message)

    def _arb_redeem(self, ctx: ExecutionContext, message: ArbClusterRedeemMsg) -> Response:
        offer = message.asset
        if offer.info != self.base:
            raise VenueRejected(f"arb redeem must offer {self.base}, got {offer.info}")
        _require_native_funds(ctx, offer)

        basket = get_basket_state(ctx.querier, message.cluster_contract)
        pair = self._index_pair(ctx.querier, basket.index_token)

        return (
            Response()
            .add_message(WasmExecute.build(
                pair, PairSwapMsg(offer_asset=offer), [offer.to_coin()]
            ))
            .add_message(WasmExecute.build(self.address, IncentivesRedeemAllMsg(
                cluster_contract=message.cluster_contract,
                min_index_out=message.min_index_out,
            )))
            .add_message(WasmExecute.build(self.address, IncentivesForwardMsg(
                recipient=ctx.sender,
                assets=[asset.info for asset in basket.target_weights],
            )))
            .add_attribute("action", "arb_cluster_redeem")
        )

    def _arb_create(self, ctx: ExecutionContext, message: ArbClusterCreateMsg) -> Response:
        response = Response().add_attribute("action", "arb_cluster_create")
        funds = []
        offered = []
        for asset in message.assets:
            if asset.amount == 0:
                continue
            offered.append(asset)
            if asset.info.is_native:
                _require_native_funds(ctx, asset)
                funds.append(asset.to_coin())
                continue
            token = asset.info.identifier
            response.add_messages([
                WasmExecute.build(token, TokenTransferFromMsg(
                    owner=ctx.sender, recipient=self.address, amount=asset.amount
                )),
                WasmExecute.build(token, TokenIncreaseAllowanceMsg(
                    spender=message.cluster_contract, amount=asset.amount
                )),
            ])

        return response.add_messages([
            WasmExecute.build(message.cluster_contract, ClusterMintMsg(assets=offered),
                              sorted_coins(funds)),
            WasmExecute.build(self.address, IncentivesSellAllMsg(
                cluster_contract=message.cluster_contract
            )),
            WasmExecute.build(self.address, IncentivesForwardMsg(
                recipient=ctx.sender, assets=[self.base], min_amount=message.min_base_out,
            )),
        ])

    def _redeem_all(self, ctx: ExecutionContext, message: IncentivesRedeemAllMsg) -> Response:
        self.ensure_sender(ctx, self.address, "_redeem_all")
        basket = get_basket_state(ctx.querier, message.cluster_contract)
        bought = ctx.querier.query_token_balance(basket.index_token, self.address)
        if message.min_index_out is not None and bought < message.min_index_out:
            raise VenueRejected(
                f"bought {bought} index tokens, below minimum {message.min_index_out}"
            )

        return (
            Response()
            .add_message(WasmExecute.build(basket.index_token, TokenSendMsg(
                contract=message.cluster_contract, amount=bought, msg=encode(ClusterBurnHook()),
            )))
            .add_attribute("index_bought", bought)
        )

    def _sell_all(self, ctx: ExecutionContext, message: IncentivesSellAllMsg) -> Response:
        self.ensure_sender(ctx, self.address, "_sell_all")
        basket = get_basket_state(ctx.querier, message.cluster_contract)
        minted = ctx.querier.query_token_balance(basket.index_token, self.address)
        if minted == 0:
            raise VenueRejected("nothing was minted")
        pair = self._index_pair(ctx.querier, basket.index_token)

        return (
            Response()
            .add_message(WasmExecute.build(basket.index_token, TokenSendMsg(
                contract=pair, amount=minted, msg=encode(PairSwapHook()),
            )))
            .add_attribute("index_sold", minted)
        )

    def _forward(self, ctx: ExecutionContext, message: IncentivesForwardMsg) -> Response:
        self.ensure_sender(ctx, self.address, "_forward")
        response = Response()
        for i, info in enumerate(message.assets):
            balance = ctx.querier.query_asset_balance(info, self.address)
            if i == 0 and message.min_amount is not None and balance < message.min_amount:
                raise VenueRejected(
                    f"received {balance} {info}, below minimum {message.min_amount}"
                )
            if balance > 0:
                response.add_message(transfer_msg(info, message.recipient, balance))
        return response

    def _index_pair(self, querier: Querier, index_token: str) -> str:
        return query_pair_info(
            querier, self.pair_factory_address, [self.base, AssetInfo.token(index_token)]
        ).contract_addr


# =============================================================================
# LENDING MARKET
# =============================================================================

@dataclass
class MarketState:
    exchange_rate: Decimal


class LendingMarket(BaseContract):
    """Issues the yield-wrapper token against base deposits at an exchange rate"""

    def __init__(self, address: str, yield_token: str, base_denom: str,
                 exchange_rate: Decimal = Decimal(1)):
        super().__init__(address)
        self.yield_token = yield_token
        self.base_denom = base_denom
        self.state = MarketState(exchange_rate=exchange_rate)

    def execute(self, ctx: ExecutionContext, msg: bytes) -> Response:
        message = lending_msg_adapter.validate_json(msg)
        rate = self.state.exchange_rate

        if isinstance(message, DepositStableMsg):
            deposit = ctx.funds_of(self.base_denom)
            if deposit == 0:
                raise VenueRejected(f"deposit requires {self.base_denom} funds")
            minted = deposit * DECIMAL_FRACTIONAL // to_atomics(rate)
            return (
                Response()
                .add_message(WasmExecute.build(
                    self.yield_token, TokenMintMsg(recipient=ctx.sender, amount=minted)
                ))
                .add_attribute("action", "deposit_stable")
                .add_attribute("mint_amount", minted)
            )

        if ctx.sender != self.yield_token:
            raise VenueRejected(f"lending market cannot redeem {ctx.sender}")
        RedeemStableHook.model_validate_json(message.msg)
        payout = mul_floor(message.amount, rate)
        return (
            Response()
            .add_message(WasmExecute.build(self.yield_token, TokenBurnMsg(amount=message.amount)))
            .add_message(BankSend(
                to_address=message.sender, amount=(Coin(self.base_denom, payout),)
            ))
            .add_attribute("action", "redeem_stable")
            .add_attribute("redeem_amount", payout)
        )


# =============================================================================
# FLASH-LOAN VAULT
# =============================================================================

@dataclass
class VaultState:
    loans_served: int = 0


class FlashLoanVault(BaseContract):
    """Lends its native balance for the span of one transaction"""

    def __init__(self, address: str):
        super().__init__(address)
        self.state = VaultState()

    def execute(self, ctx: ExecutionContext, msg: bytes) -> Response:
        message = vault_msg_adapter.validate_json(msg)

        if isinstance(message, VaultCheckRepaymentMsg):
            self.ensure_sender(ctx, self.address, "_check_repayment")
            balance = ctx.querier.query_balance(self.address, message.denom)
            if balance < message.minimum_balance:
                raise VenueRejected(
                    f"flash loan not repaid: balance {balance}, "
                    f"expected at least {message.minimum_balance}"
                )
            self.state.loans_served += 1
            return Response().add_attribute("action", "repayment_checked")

        requested = message.payload.requested_asset
        if not requested.info.is_native or requested.amount == 0:
            raise VenueRejected(f"cannot lend {requested.amount} {requested.info}")
        denom = requested.info.identifier
        available = ctx.querier.query_balance(self.address, denom)
        if available < requested.amount:
            raise VenueRejected(f"vault holds {available}{denom}, {requested.amount} requested")

        minimum_balance = available + ceil_div(requested.amount, VAULT_FEE_DIVISOR)
        return (
            Response()
            .add_message(BankSend(to_address=ctx.sender, amount=(requested.to_coin(),)))
            .add_message(WasmExecute(contract_addr=ctx.sender, msg=message.payload.callback))
            .add_message(WasmExecute.build(self.address, VaultCheckRepaymentMsg(
                denom=denom, minimum_balance=minimum_balance,
            )))
            .add_attribute("action", "flash_loan")
            .add_attribute("loan_amount", requested.amount)
        )

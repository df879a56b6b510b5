#!/usr/bin/env python3
"""
Market Factory

Builds a local chain wired with the orchestrator and every collaborator it
talks to, seeded so the basket's index token trades at a chosen ratio of its
intrinsic value. The basket holds three assets, one per routing venue:

    asset_a      token traded on its own constant-product pair
    yield_token  yield-wrapper token issued by the lending market
    ueur         second native denomination, swapped by the market module
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from pydantic import BaseModel, Field

from .config import ArbitrageConfig, create_default_config
from .host import LocalChain, TransactionResult
from .venues import (
    DEFAULT_POOL_FEE, BasketContract, ConstantProductPair, Cw20Token, FlashLoanVault,
    IncentivesContract, LendingMarket, PairFactory,
)
from ..agents.orchestrator import ArbitrageOrchestrator
from ..core.assets import Asset, AssetInfo
from ..core.estimator import (
    compute_intrinsic_price, compute_market_price, query_estimate_arbitrage,
)
from ..core.fixed_point import (
    DECIMAL_FRACTIONAL, decimal_from_ratio, mul_floor, to_atomics, to_decimal,
)
from ..core.messages import ArbitrageEstimate, FlashLoanMsg
from ..core.oracle import get_basket_state, query_pool_reserves

ORCHESTRATOR_ADDRESS = "orchestrator"
BASKET_ADDRESS = "basket"
INDEX_TOKEN_ADDRESS = "index_token"
INDEX_PAIR_ADDRESS = "pair_index"
ASSET_A_ADDRESS = "asset_a"
ASSET_A_PAIR_ADDRESS = "pair_asset_a"
NATIVE_ASSET_DENOM = "ueur"
LIQUIDITY_PROVIDER = "liquidity_provider"


class ScenarioConfig(BaseModel):
    """Market parameters for one scenario"""

    # Mispricing
    market_to_intrinsic: Decimal = Field(default=Decimal("0.8"), gt=0,
                                         description="Pool price as a fraction of intrinsic price")

    # Basket composition
    outstanding_supply: int = Field(default=1_000_000_000, gt=0)
    asset_a_inventory: int = Field(default=1_000_000_000, ge=0)
    asset_a_price: Decimal = Field(default=Decimal("2"), gt=0)
    yield_inventory: int = Field(default=1_500_000_000, ge=0)
    yield_exchange_rate: Decimal = Field(default=Decimal("1.2"), gt=0)
    native_inventory: int = Field(default=500_000_000, ge=0)
    native_price: Decimal = Field(default=Decimal("1.1"), gt=0)

    # Venues
    index_reserve: int = Field(default=200_000_000, gt=0)
    pool_fee: Decimal = Field(default=DEFAULT_POOL_FEE, ge=0, lt=1)
    asset_pair_depth: int = Field(default=100, gt=0,
                                  description="asset_a pair reserve as a multiple of the basket inventory")
    vault_liquidity: int = Field(default=10_000_000_000_000, gt=0)
    lending_liquidity: int = Field(default=100_000_000_000, gt=0)


@dataclass
class LocalMarket:
    """A wired local chain plus handles on the contracts tests care about"""
    chain: LocalChain
    config: ArbitrageConfig
    orchestrator: ArbitrageOrchestrator
    basket: BasketContract
    index_token: Cw20Token
    index_pair: ConstantProductPair
    vault: FlashLoanVault
    tokens: Dict[str, Cw20Token]

    def run_cycle(self, trader: str = "trader", beneficiary: Optional[str] = None,
                  profit_threshold: int = 0) -> TransactionResult:
        """Submit one flash_loan transaction to the orchestrator"""
        return self.chain.execute(trader, self.orchestrator.address, FlashLoanMsg(
            basket_address=self.basket.address,
            beneficiary=beneficiary,
            profit_threshold=profit_threshold,
        ))

    def estimate(self) -> ArbitrageEstimate:
        return query_estimate_arbitrage(
            self.chain, self.basket.address,
            self.config.pair_factory_address, self.config.base_denom,
        )

    def market_price(self) -> Decimal:
        return compute_market_price(query_pool_reserves(
            self.chain, self.config.pair_factory_address,
            self.config.base_denom, self.index_token.address,
        ))

    def intrinsic_price(self) -> Decimal:
        return compute_intrinsic_price(get_basket_state(self.chain, self.basket.address))

    def base_balance(self, address: str) -> int:
        return self.chain.query_balance(address, self.config.base_denom)


class MarketFactory:
    """Scenario builder for local arbitrage cycles"""

    def __init__(self, config: Optional[ArbitrageConfig] = None):
        self.config = config or create_default_config()

    def build(self, scenario: Optional[ScenarioConfig] = None) -> LocalMarket:
        scenario = scenario or ScenarioConfig()
        config = self.config
        base_denom = config.base_denom
        base_info = AssetInfo.native(base_denom)

        chain = LocalChain()

        # Tokens
        index_token = chain.register(Cw20Token(INDEX_TOKEN_ADDRESS, minter=BASKET_ADDRESS))
        asset_a = chain.register(Cw20Token(ASSET_A_ADDRESS, minter=LIQUIDITY_PROVIDER))
        yield_token = chain.register(
            Cw20Token(config.yield_token_address, minter=config.lending_market_address)
        )

        # Basket
        prices = [
            to_decimal(scenario.asset_a_price),
            to_decimal(scenario.yield_exchange_rate),
            to_decimal(scenario.native_price),
        ]
        inventory = [scenario.asset_a_inventory, scenario.yield_inventory, scenario.native_inventory]
        target = [
            Asset(info=AssetInfo.token(asset_a.address), amount=scenario.asset_a_inventory),
            Asset(info=AssetInfo.token(yield_token.address), amount=scenario.yield_inventory),
            Asset(info=AssetInfo.native(NATIVE_ASSET_DENOM), amount=scenario.native_inventory),
        ]
        basket = chain.register(BasketContract(
            BASKET_ADDRESS, index_token.address, target, prices, inventory,
            scenario.outstanding_supply,
        ))
        asset_a.mint_to(basket.address, scenario.asset_a_inventory)
        yield_token.mint_to(basket.address, scenario.yield_inventory)
        chain.mint_native(basket.address, NATIVE_ASSET_DENOM, scenario.native_inventory)

        # Pairs
        factory = chain.register(PairFactory(config.pair_factory_address))

        intrinsic = decimal_from_ratio(basket.net_asset_value(), scenario.outstanding_supply)
        base_reserve = mul_floor(scenario.index_reserve, intrinsic * scenario.market_to_intrinsic)
        if scenario.index_reserve > scenario.outstanding_supply or base_reserve == 0:
            raise ValueError("Index pool must hold part of a non-empty supply and some base")
        index_pair = self._create_pair(
            chain, factory, INDEX_PAIR_ADDRESS, base_info, index_token,
            base_reserve, scenario.index_reserve, scenario.pool_fee,
        )
        index_token.mint_to(LIQUIDITY_PROVIDER, scenario.outstanding_supply - scenario.index_reserve)

        asset_a_reserve = max(scenario.asset_a_inventory, 1) * scenario.asset_pair_depth
        self._create_pair(
            chain, factory, ASSET_A_PAIR_ADDRESS, base_info, asset_a,
            mul_floor(asset_a_reserve, prices[0]), asset_a_reserve, scenario.pool_fee,
        )

        # Lending market
        chain.register(LendingMarket(
            config.lending_market_address, yield_token.address, base_denom, prices[1]
        ))
        chain.mint_native(config.lending_market_address, base_denom, scenario.lending_liquidity)

        # Native market module
        chain.set_native_rate(NATIVE_ASSET_DENOM, base_denom, prices[2])
        chain.set_native_rate(
            base_denom, NATIVE_ASSET_DENOM,
            decimal_from_ratio(DECIMAL_FRACTIONAL, to_atomics(prices[2])),
        )

        # Vault, incentives, orchestrator
        vault = chain.register(FlashLoanVault(config.vault_address))
        chain.mint_native(vault.address, base_denom, scenario.vault_liquidity)
        chain.register(IncentivesContract(
            config.incentives_address, config.pair_factory_address, base_denom
        ))
        orchestrator = chain.register(ArbitrageOrchestrator(ORCHESTRATOR_ADDRESS, config))

        return LocalMarket(
            chain=chain,
            config=config,
            orchestrator=orchestrator,
            basket=basket,
            index_token=index_token,
            index_pair=index_pair,
            vault=vault,
            tokens={t.address: t for t in (index_token, asset_a, yield_token)},
        )

    def create_redeem_scenario(self, market_to_intrinsic: Decimal = Decimal("0.8")) -> LocalMarket:
        """Index token trades below intrinsic value"""
        return self.build(ScenarioConfig(market_to_intrinsic=market_to_intrinsic))

    def create_create_scenario(self, market_to_intrinsic: Decimal = Decimal("1.25")) -> LocalMarket:
        """Index token trades above intrinsic value"""
        return self.build(ScenarioConfig(market_to_intrinsic=market_to_intrinsic))

    @staticmethod
    def _create_pair(chain: LocalChain, factory: PairFactory, address: str,
                     base_info: AssetInfo, token: Cw20Token, base_reserve: int,
                     token_reserve: int, fee: Decimal) -> ConstantProductPair:
        pair = chain.register(ConstantProductPair(
            address, (base_info, AssetInfo.token(token.address)), fee_rate=fee
        ))
        pair.seed((base_reserve, token_reserve))
        factory.register_pair(pair)
        chain.mint_native(address, base_info.identifier, base_reserve)
        token.mint_to(address, token_reserve)
        return pair

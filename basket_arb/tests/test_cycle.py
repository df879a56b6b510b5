#!/usr/bin/env python3
"""
End-to-End Cycle Tests

Full flash-loan cycles on the local host: both paths complete, repay the
vault, pay the beneficiary and move the pool toward intrinsic; any failure
leaves every ledger exactly as it was.
"""

import copy
from decimal import Decimal

import pytest

from basket_arb.analysis.reports import cycle_report, orchestrator_steps, summarize_cycle
from basket_arb.core.errors import (
    ArbitrageError, InsufficientProfit, NoArbitrageOpportunity, Unauthorized, VenueRejected,
)
from basket_arb.core.fixed_point import ceil_div
from basket_arb.core.messages import (
    ArbitrageEstimate, CallbackRedeemMsg, EstimateArbitrageQuery, LoanContext, Strategy,
)
from basket_arb.engine.factory import MarketFactory, ScenarioConfig


def ledger_snapshot(market):
    return (
        copy.deepcopy(market.chain.bank),
        {address: copy.deepcopy(c.state) for address, c in market.chain.contracts.items()},
        len(market.chain.execution_log),
    )


class TestRedeemCycle:
    """Index token below intrinsic: buy on the pool, redeem, sell the underlying"""

    def test_cycle_completes_with_profit(self, redeem_market):
        market = redeem_market
        vault_before = market.base_balance(market.config.vault_address)
        estimate = market.estimate()

        result = market.run_cycle(beneficiary="alice")

        assert orchestrator_steps(result.records, market.orchestrator.address) == [
            "flash_loan", "callback_redeem", "swap_to_base_and_take_profit", "user_profit",
        ]
        assert result.attribute("strategy") == Strategy.REDEEM.value

        profit = int(result.attribute("profit"))
        assert profit > 0
        assert market.base_balance("alice") == profit
        assert market.base_balance(market.orchestrator.address) == 0

        vault_after = market.base_balance(market.config.vault_address)
        assert vault_after - vault_before == ceil_div(estimate.trade_size, 999)
        assert market.vault.state.loans_served == 1

    def test_pool_moves_to_intrinsic(self, redeem_market):
        intrinsic = redeem_market.intrinsic_price()
        before = redeem_market.market_price()

        redeem_market.run_cycle()

        after = redeem_market.market_price()
        assert abs(after - intrinsic) < abs(before - intrinsic)
        assert abs(after - intrinsic) / intrinsic < Decimal("0.01")

    def test_no_assets_left_behind(self, redeem_market):
        redeem_market.run_cycle()

        orchestrator = redeem_market.orchestrator.address
        for token in redeem_market.tokens.values():
            assert token.balance_of(orchestrator) == 0
            assert token.balance_of(redeem_market.config.incentives_address) == 0
        assert redeem_market.chain.query_balance(orchestrator, "ueur") == 0

    def test_beneficiary_defaults_to_sender(self, redeem_market):
        result = redeem_market.run_cycle(trader="carol")
        assert redeem_market.base_balance("carol") == int(result.attribute("profit"))


class TestCreateCycle:
    """Index token above intrinsic: buy the underlying, mint, sell on the pool"""

    def test_cycle_completes_with_profit(self, create_market):
        market = create_market
        supply_before = market.basket.state.outstanding_supply

        result = market.run_cycle(beneficiary="alice")

        assert orchestrator_steps(result.records, market.orchestrator.address) == [
            "flash_loan", "callback_create", "arb_create", "user_profit",
        ]
        assert result.attribute("strategy") == Strategy.CREATE.value
        profit = int(result.attribute("profit"))
        assert profit > 0
        assert market.base_balance("alice") == profit
        assert market.basket.state.outstanding_supply > supply_before

    def test_pool_moves_to_intrinsic(self, create_market):
        intrinsic = create_market.intrinsic_price()
        before = create_market.market_price()

        create_market.run_cycle()

        after = create_market.market_price()
        assert abs(after - intrinsic) < abs(before - intrinsic)

    def test_every_routing_venue_is_used(self, create_market):
        result = create_market.run_cycle()

        kinds = result.kinds()
        assert "native_swap" in kinds
        assert "deposit_stable" in kinds
        assert "swap" in kinds
        assert "arb_cluster_create" in kinds

    def test_cycle_report(self, create_market):
        result = create_market.run_cycle(beneficiary="alice")

        report = cycle_report(result.records)
        summary = summarize_cycle(create_market, result, "alice")

        assert len(report) == len(result.records)
        assert list(report["step"]) == list(range(len(report)))
        assert report.iloc[0]["kind"] == "flash_loan"
        assert summary["profit"] == summary["beneficiary_balance"]
        assert summary["steps"].startswith("flash_loan -> callback_create")


class TestAbortedCycles:
    """Any failure rolls back the whole transaction"""

    def test_profit_threshold_rolls_back(self, redeem_market):
        before = ledger_snapshot(redeem_market)

        with pytest.raises(InsufficientProfit):
            redeem_market.run_cycle(beneficiary="alice", profit_threshold=10 ** 15)

        assert ledger_snapshot(redeem_market) == before
        assert redeem_market.base_balance("alice") == 0

    def test_no_opportunity_at_fair_price(self, factory):
        market = factory.build(ScenarioConfig(market_to_intrinsic=Decimal("1")))
        before = ledger_snapshot(market)

        with pytest.raises(NoArbitrageOpportunity):
            market.run_cycle()

        assert ledger_snapshot(market) == before

    def test_second_cycle_on_corrected_market_aborts(self, redeem_market):
        redeem_market.run_cycle(beneficiary="alice")
        before = ledger_snapshot(redeem_market)

        with pytest.raises(ArbitrageError):
            redeem_market.run_cycle(beneficiary="alice")

        assert ledger_snapshot(redeem_market) == before

    def test_outsider_cannot_drive_a_continuation(self, redeem_market):
        estimate = redeem_market.estimate()
        forged = CallbackRedeemMsg(context=LoanContext(
            basket_address=redeem_market.basket.address,
            beneficiary="mallory",
            loan_amount=estimate.trade_size,
            target_weights=estimate.target_weights,
        ))
        before = ledger_snapshot(redeem_market)

        with pytest.raises(Unauthorized):
            redeem_market.chain.execute("mallory", redeem_market.orchestrator.address, forged)

        assert ledger_snapshot(redeem_market) == before

    def test_minimum_index_out_rejects(self, config):
        market = MarketFactory(config.model_copy(update={"min_index_out": 10 ** 20})) \
            .create_redeem_scenario()

        with pytest.raises(VenueRejected):
            market.run_cycle()

    def test_opt_in_max_spread(self, config):
        tight = MarketFactory(config.model_copy(update={"max_spread": Decimal("0.0001")}))
        loose = MarketFactory(config.model_copy(update={"max_spread": Decimal("0.05")}))

        with pytest.raises(VenueRejected):
            tight.create_redeem_scenario().run_cycle()
        assert int(loose.create_redeem_scenario().run_cycle().attribute("profit")) > 0


class TestQueries:
    """Estimates are read-only"""

    def test_estimate_query_is_idempotent(self, redeem_market):
        chain = redeem_market.chain
        before = ledger_snapshot(redeem_market)
        query = EstimateArbitrageQuery(basket_address=redeem_market.basket.address)

        first = chain.query_wasm_smart(redeem_market.orchestrator.address, query, ArbitrageEstimate)
        second = chain.query_wasm_smart(redeem_market.orchestrator.address, query, ArbitrageEstimate)

        assert first == second
        assert first.trade_size == redeem_market.estimate().trade_size
        assert ledger_snapshot(redeem_market) == before


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

#!/usr/bin/env python3
"""
Local Host and Venue Tests

Dispatch order, rollback and the venue rules the orchestrator relies on.
"""

from decimal import Decimal

import pytest

from basket_arb.agents.base_agent import BaseContract
from basket_arb.core.assets import Asset, AssetInfo, Coin
from basket_arb.core.errors import Unauthorized, VenueRejected
from basket_arb.core.messages import (
    BankSend, FlashLoanPayload, NativeSwap, Response, TokenMintMsg, TokenSendMsg,
    TokenTransferFromMsg, TokenTransferMsg, VaultFlashLoanMsg, WasmExecute, encode,
)
from basket_arb.engine.host import LocalChain
from basket_arb.engine.venues import (
    BasketContract, ClusterBurnHook, Cw20Token, FlashLoanVault, assert_max_spread,
    compute_swap,
)


class Relay(BaseContract):
    """Answers its n-th call with the messages scripted for that call"""

    def __init__(self, address, script):
        super().__init__(address)
        self.state = {"calls": 0}
        self.script = script

    def execute(self, ctx, msg):
        self.state["calls"] += 1
        return Response(messages=list(self.script.get(self.state["calls"], [])))


class TestLocalChain:
    """Depth-first dispatch and atomic transactions"""

    def setup_method(self):
        self.chain = LocalChain()
        self.chain.mint_native("alice", "uusd", 1000)

    def test_sub_messages_complete_before_siblings(self):
        inner = self.chain.register(Relay("inner", {1: [BankSend("bob", (Coin("uusd", 1),))]}))
        outer = self.chain.register(Relay("outer", {1: [
            WasmExecute("inner", b'{"kind": "a"}'),
            BankSend("carol", (Coin("uusd", 2),)),
        ]}))
        self.chain.mint_native("outer", "uusd", 10)
        self.chain.mint_native("inner", "uusd", 10)

        result = self.chain.execute("alice", outer.address, b'{"kind": "start"}')

        assert [(r.target, r.kind) for r in result.records] == [
            ("outer", "start"), ("inner", "a"), ("bob", "bank_send"), ("carol", "bank_send"),
        ]
        assert [r.depth for r in result.records] == [0, 1, 2, 1]
        assert inner.state["calls"] == 1

    def test_failure_restores_everything(self):
        relay = self.chain.register(Relay("relay", {1: [
            BankSend("bob", (Coin("uusd", 5),)),
            BankSend("bob", (Coin("uusd", 10 ** 9),)),
        ]}))
        self.chain.mint_native("relay", "uusd", 100)

        with pytest.raises(VenueRejected):
            self.chain.execute("alice", relay.address, b'{"kind": "start"}', [Coin("uusd", 50)])

        assert self.chain.query_balance("alice", "uusd") == 1000
        assert self.chain.query_balance("relay", "uusd") == 100
        assert self.chain.query_balance("bob", "uusd") == 0
        assert relay.state["calls"] == 0
        assert self.chain.execution_log == []

    def test_unknown_contract(self):
        with pytest.raises(VenueRejected):
            self.chain.execute("alice", "nobody", b'{"kind": "x"}')

    def test_missing_native_market(self):
        relay = self.chain.register(Relay("relay", {1: [NativeSwap(Coin("uusd", 1), "ukrw")]}))
        with pytest.raises(VenueRejected):
            self.chain.execute("alice", relay.address, b'{"kind": "start"}', [Coin("uusd", 1)])


class TestTokenLedger:
    """Allowances gate transfer_from; only the minter mints"""

    def setup_method(self):
        self.chain = LocalChain()
        self.token = self.chain.register(Cw20Token("token", minter="minter"))
        self.token.mint_to("alice", 100)

    def test_transfer_from_needs_allowance(self):
        with pytest.raises(VenueRejected):
            self.chain.execute("bob", "token", TokenTransferFromMsg(owner="alice", recipient="bob", amount=1))

    def test_transfer(self):
        self.chain.execute("alice", "token", TokenTransferMsg(recipient="bob", amount=40))
        assert self.token.balance_of("alice") == 60
        assert self.token.balance_of("bob") == 40

    def test_only_minter_mints(self):
        with pytest.raises(Unauthorized):
            self.chain.execute("alice", "token", TokenMintMsg(recipient="alice", amount=1))
        self.chain.execute("minter", "token", TokenMintMsg(recipient="alice", amount=1))
        assert self.token.state.total_supply == 101


class TestConstantProduct:
    """Swap math and the opt-in spread guard"""

    def test_invariant_never_decreases(self):
        for offer in [1, 10, 1000, 10 ** 6]:
            out, _, commission = compute_swap(10 ** 6, 2 * 10 ** 6, offer, Decimal("0.003"))
            assert (10 ** 6 + offer) * (2 * 10 ** 6 - out) >= 2 * 10 ** 12
            assert commission >= 0

    def test_fee_is_deducted(self):
        out, spread, commission = compute_swap(1000, 1000, 1000, Decimal("0.003"))
        assert out + commission == 500
        assert commission == 1
        assert spread == 500

    def test_empty_pool(self):
        with pytest.raises(VenueRejected):
            compute_swap(0, 1000, 10, Decimal("0"))

    def test_max_spread_is_opt_in(self):
        assert_max_spread(None, None, 1000, 500, 500)
        with pytest.raises(VenueRejected):
            assert_max_spread(None, Decimal("0.1"), 1000, 500, 500)
        with pytest.raises(VenueRejected):
            assert_max_spread(Decimal("1"), Decimal("0.1"), 1000, 500, 500)
        assert_max_spread(Decimal("2"), Decimal("0.1"), 1000, 500, 0)


class TestBasket:
    """Value-based mint, pro-rata redeem"""

    def setup_method(self):
        self.chain = LocalChain()
        self.index = self.chain.register(Cw20Token("index", minter="basket"))
        self.asset = self.chain.register(Cw20Token("asset", minter="genesis"))
        self.basket = self.chain.register(BasketContract(
            "basket", "index",
            target=[Asset(info=AssetInfo.token("asset"), amount=100),
                    Asset(info=AssetInfo.native("ueur"), amount=100)],
            prices=[Decimal("2"), Decimal("1")],
            inventory=[1000, 1000],
            outstanding_supply=300,
        ))
        self.asset.mint_to("basket", 1000)
        self.chain.mint_native("basket", "ueur", 1000)
        self.index.mint_to("alice", 300)

    def test_redeem_is_pro_rata(self):
        self.chain.execute("alice", "index", TokenSendMsg(
            contract="basket", amount=30, msg=encode(ClusterBurnHook())
        ))

        assert self.asset.balance_of("alice") == 100
        assert self.chain.query_balance("alice", "ueur") == 100
        assert self.basket.state.outstanding_supply == 270
        assert self.index.state.total_supply == 270

    def test_only_index_token_is_redeemed(self):
        self.asset.mint_to("alice", 10)
        with pytest.raises(VenueRejected):
            self.chain.execute("alice", "asset", TokenSendMsg(
                contract="basket", amount=10, msg=encode(ClusterBurnHook())
            ))


class TestFlashLoanVault:
    """The loan must come back with the fee inside the same transaction"""

    def setup_method(self):
        self.chain = LocalChain()
        self.vault = self.chain.register(FlashLoanVault("vault"))
        self.chain.mint_native("vault", "uusd", 10_000)

    def _borrow(self, borrower, amount):
        return self.chain.execute(borrower, "vault", VaultFlashLoanMsg(payload=FlashLoanPayload(
            requested_asset=Asset(info=AssetInfo.native("uusd"), amount=amount),
            callback=b'{"kind": "callback"}',
        )))

    def test_unrepaid_loan_reverts(self):
        self.chain.register(Relay("borrower", {}))

        with pytest.raises(VenueRejected):
            self._borrow("borrower", 1000)
        assert self.chain.query_balance("vault", "uusd") == 10_000

    def test_repaid_loan(self):
        self.chain.register(Relay("borrower", {1: [BankSend("vault", (Coin("uusd", 1001),))]}))
        self.chain.mint_native("borrower", "uusd", 1)

        self._borrow("borrower", 1000)

        assert self.chain.query_balance("vault", "uusd") == 10_001
        assert self.vault.state.loans_served == 1

    def test_loan_larger_than_vault(self):
        self.chain.register(Relay("borrower", {}))
        with pytest.raises(VenueRejected):
            self._borrow("borrower", 10 ** 6)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

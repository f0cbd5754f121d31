"""
Tests for the in-memory token ledger and the engine-facing LedgerAccount.
"""

import pytest

from tokenlock_core.errors import (
    InsufficientFunds,
    InsufficientReserve,
    InvalidAmount,
    NotApproved,
)
from tokenlock_core.token_ledger import LedgerAccount, TokenLedger


@pytest.fixture
def led():
    return TokenLedger(total_supply=1_000, genesis_account="genesis", symbol="CLC")


class TestTokenLedger:
    def test_genesis_holds_supply(self, led):
        assert led.balance_of("genesis") == 1_000
        assert led.total_supply == 1_000
        assert led.balance_of("nobody") == 0

    def test_empty_ledger(self):
        led = TokenLedger()
        assert led.balances == {}
        assert led.total_supply == 0

    def test_negative_supply_rejected(self):
        with pytest.raises(ValueError):
            TokenLedger(total_supply=-1)

    def test_transfer(self, led):
        led.transfer("genesis", "alice", 300)
        assert led.balance_of("genesis") == 700
        assert led.balance_of("alice") == 300

    def test_transfer_insufficient(self, led):
        with pytest.raises(InsufficientFunds):
            led.transfer("alice", "bob", 1)
        assert led.balance_of("bob") == 0

    @pytest.mark.parametrize("bad", [0, -5, 1.0, True])
    def test_transfer_bad_amount(self, led, bad):
        with pytest.raises(InvalidAmount):
            led.transfer("genesis", "alice", bad)

    def test_mint(self, led):
        led.mint("alice", 50)
        assert led.balance_of("alice") == 50
        assert led.total_supply == 1_050

    def test_approve_and_transfer_from(self, led):
        led.approve("genesis", "pool", 400)
        assert led.allowance("genesis", "pool") == 400
        led.transfer_from("pool", "genesis", "pool", 150)
        assert led.allowance("genesis", "pool") == 250
        assert led.balance_of("pool") == 150
        assert led.balance_of("genesis") == 850

    def test_transfer_from_without_allowance(self, led):
        with pytest.raises(NotApproved):
            led.transfer_from("pool", "genesis", "pool", 1)

    def test_transfer_from_beyond_balance_keeps_allowance(self, led):
        led.transfer("genesis", "alice", 10)
        led.approve("alice", "pool", 100)
        with pytest.raises(InsufficientFunds):
            led.transfer_from("pool", "alice", "pool", 11)
        assert led.allowance("alice", "pool") == 100
        assert led.balance_of("alice") == 10

    def test_approve_overwrites(self, led):
        led.approve("genesis", "pool", 10)
        led.approve("genesis", "pool", 0)
        assert led.allowance("genesis", "pool") == 0

    def test_approve_negative(self, led):
        with pytest.raises(InvalidAmount):
            led.approve("genesis", "pool", -1)

    def test_supply_conserved(self, led):
        led.transfer("genesis", "alice", 100)
        led.approve("alice", "pool", 100)
        led.transfer_from("pool", "alice", "bob", 60)
        assert sum(led.balances.values()) == led.total_supply


class TestLedgerAccount:
    def test_requires_holder(self, led):
        with pytest.raises(ValueError):
            LedgerAccount(led, "")

    def test_transfer_in_uses_allowance_to_holder(self, led):
        acct = LedgerAccount(led, "pool")
        led.approve("genesis", "pool", 100)
        acct.transfer_in("genesis", 40)
        assert acct.balance() == 40
        assert led.allowance("genesis", "pool") == 60

    def test_transfer_in_needs_approval(self, led):
        acct = LedgerAccount(led, "pool")
        with pytest.raises(NotApproved):
            acct.transfer_in("genesis", 1)

    def test_transfer_out(self, led):
        acct = LedgerAccount(led, "pool")
        led.transfer("genesis", "pool", 100)
        acct.transfer_out("alice", 30)
        assert acct.balance() == 70
        assert led.balance_of("alice") == 30

    def test_transfer_out_shortfall(self, led):
        acct = LedgerAccount(led, "pool")
        led.transfer("genesis", "pool", 10)
        with pytest.raises(InsufficientReserve):
            acct.transfer_out("alice", 11)
        assert acct.balance() == 10

"""
In-memory fungible token ledger for TokenLock.

The staking and vesting engines never own balances themselves: every
token movement goes through this ledger.  It models a single token
denomination with the usual balance / allowance semantics:

  - ``transfer``: sender moves its own funds
  - ``approve``: owner lets a spender pull up to an allowance
  - ``transfer_from``: spender pulls from owner within the allowance

``LedgerAccount`` is the narrow view an engine gets: one holder address
with ``transfer_in`` / ``transfer_out`` / ``balance``.

A failed call never changes state.
"""

from __future__ import annotations

import logging

from tokenlock_core.errors import (
    InsufficientFunds,
    InsufficientReserve,
    InvalidAmount,
    NotApproved,
)

logger = logging.getLogger("tokenlock.ledger")


def _require_positive(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(f"amount must be a positive integer, got {amount!r}")


class TokenLedger:
    """Balances and allowances for one token."""

    def __init__(
        self,
        total_supply: int = 0,
        genesis_account: str = "genesis",
        symbol: str = "TKN",
    ):
        if total_supply < 0:
            raise ValueError("total_supply must be non-negative")
        self.symbol = symbol
        self.genesis_account = genesis_account
        self.total_supply: int = total_supply
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}
        if total_supply:
            self.balances[genesis_account] = total_supply

    # ── queries ─────────────────────────────────────────────────────

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    # ── mutations ───────────────────────────────────────────────────

    def mint(self, to: str, amount: int) -> None:
        _require_positive(amount)
        self.balances[to] = self.balance_of(to) + amount
        self.total_supply += amount
        logger.debug("mint %d to %s", amount, to)

    def transfer(self, sender: str, to: str, amount: int) -> None:
        _require_positive(amount)
        have = self.balance_of(sender)
        if have < amount:
            raise InsufficientFunds(
                f"{sender} holds {have}, needs {amount}"
            )
        self._move(sender, to, amount)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise InvalidAmount(f"allowance must be a non-negative integer, got {amount!r}")
        self.allowances[(owner, spender)] = amount
        logger.debug("approve %s -> %s: %d", owner, spender, amount)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        _require_positive(amount)
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise NotApproved(
                f"{spender} may pull {allowed} from {owner}, needs {amount}"
            )
        have = self.balance_of(owner)
        if have < amount:
            raise InsufficientFunds(f"{owner} holds {have}, needs {amount}")
        self.allowances[(owner, spender)] = allowed - amount
        self._move(owner, to, amount)

    def _move(self, sender: str, to: str, amount: int) -> None:
        self.balances[sender] = self.balance_of(sender) - amount
        self.balances[to] = self.balance_of(to) + amount
        logger.debug("transfer %d %s -> %s", amount, sender, to)


class LedgerAccount:
    """
    An engine's handle on the ledger: one holder address.

    ``transfer_in`` pulls from a payer via the allowance the payer granted
    to ``holder``; ``transfer_out`` pays from ``holder``'s own balance and
    reports a shortfall as ``InsufficientReserve``.
    """

    def __init__(self, ledger: TokenLedger, holder: str):
        if not holder:
            raise ValueError("holder address required")
        self.ledger = ledger
        self.holder = holder

    def transfer_in(self, payer: str, amount: int) -> None:
        self.ledger.transfer_from(self.holder, payer, self.holder, amount)

    def transfer_out(self, payee: str, amount: int) -> None:
        _require_positive(amount)
        have = self.ledger.balance_of(self.holder)
        if have < amount:
            raise InsufficientReserve(
                f"{self.holder} holds {have}, cannot pay {amount}"
            )
        self.ledger.transfer(self.holder, payee, amount)

    def balance(self) -> int:
        return self.ledger.balance_of(self.holder)

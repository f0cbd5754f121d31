"""
Periodic token vesting for a single beneficiary.

A schedule releases its token pool in ``releases_count`` equal tranches,
one every ``duration`` seconds starting at ``start``:

    finish          = start + duration × releases_count
    elapsed         = (now − start) // duration
    total_allocated = ledger balance + released
    vested          = total_allocated × elapsed // releases_count
    available       = vested − released

Once every tranche has elapsed ``vested`` is ``total_allocated`` itself,
so the final tranche absorbs whatever the per-tranche truncation left
over.

The schedule is self-funding: ``total_allocated`` is re-read from the
ledger on every call.  Tokens deposited mid-schedule are spread across
all tranches, the elapsed ones included.

Revocation
──────────
The owner of a revocable schedule may revoke it once.  The amount vested
at that moment but not yet released stays with the schedule for the
beneficiary; everything else is refunded.  From then on the vested total
is frozen, so time passing no longer makes more tokens available.

Two independent axes compose:

  Active ──revoke()──▶ Revoked
  Open ──release()*──▶ Fully released
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from tokenlock_core.clock import SystemClock
from tokenlock_core.errors import (
    AlreadyRevoked,
    InvalidSchedule,
    NothingDue,
    NotRevocable,
    Unauthorized,
)
from tokenlock_core.events import (
    EventBus,
    OwnershipTransferred,
    TokensReleased,
    VestingRevoked,
)
from tokenlock_core.token_ledger import LedgerAccount

logger = logging.getLogger("tokenlock.vesting")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class VestingSchedule:
    """Release schedule for the tokens held by ``ledger_account``."""

    def __init__(
        self,
        ledger_account: LedgerAccount,
        beneficiary: str,
        start: int,
        duration: int,
        releases_count: int,
        revocable: bool = True,
        owner: str = "",
        clock=None,
        events: Optional[EventBus] = None,
    ) -> None:
        if not beneficiary:
            raise InvalidSchedule("beneficiary required")
        if not owner:
            raise InvalidSchedule("owner required")
        if not _is_int(start) or start < 0:
            raise InvalidSchedule("start must be a non-negative integer timestamp")
        if not _is_int(duration) or duration <= 0:
            raise InvalidSchedule("duration must be a positive number of seconds")
        if not _is_int(releases_count) or releases_count <= 0:
            raise InvalidSchedule("releases_count must be a positive integer")

        self.ledger_account = ledger_account
        self.clock = clock if clock is not None else SystemClock()
        self.events = events if events is not None else EventBus()

        self._beneficiary = beneficiary
        self._owner = owner
        self._start = start
        self._duration = duration
        self._releases_count = releases_count
        self._revocable = bool(revocable)
        self._released: int = 0
        self._revoked = False
        self._revoked_at: int = 0
        self._frozen_vested: int = 0
        self._lock = threading.RLock()

    # ── accrual ─────────────────────────────────────────────────────

    def vested_amount(self, now: Optional[int] = None) -> int:
        """Cumulative amount vested at ``now`` (released or not)."""
        if self._revoked:
            return self._frozen_vested
        if now is None:
            now = self.clock.now()
        if now < self._start:
            return 0
        total_allocated = self.ledger_account.balance() + self._released
        elapsed = (now - self._start) // self._duration
        if elapsed >= self._releases_count:
            return total_allocated
        return total_allocated * elapsed // self._releases_count

    def available(self, now: Optional[int] = None) -> int:
        """Amount the beneficiary could release at ``now``."""
        due = self.vested_amount(now) - self._released
        return max(0, min(due, self.ledger_account.balance()))

    def get_available_tokens(self) -> int:
        return self.available()

    # ── operations ──────────────────────────────────────────────────

    def release(self, caller: str) -> int:
        """Transfer everything currently available to the beneficiary."""
        with self._lock:
            if caller != self._beneficiary:
                raise Unauthorized("release: unauthorized sender!")
            amount = self.available()
            if amount <= 0:
                raise NothingDue("release: No tokens are due!")

            self.ledger_account.transfer_out(self._beneficiary, amount)
            self._released += amount
            released = self._released

            logger.info(
                "released %d to %s (total released %d)", amount, self._beneficiary, released
            )
            self.events.emit(TokensReleased(self._beneficiary, amount))
        return amount

    def revoke(self, caller: str, refund_to: str) -> int:
        """
        Stop vesting and refund the unvested balance to ``refund_to``.

        Returns the refunded amount.  The vested-but-unreleased remainder
        stays releasable by the beneficiary.
        """
        with self._lock:
            if caller != self._owner:
                raise Unauthorized("revoke: unauthorized sender!")
            if not self._revocable:
                raise NotRevocable("revoke: schedule is not revocable")
            if self._revoked:
                raise AlreadyRevoked("revoke: schedule already revoked")
            if not refund_to:
                raise ValueError("refund_to required")

            now = self.clock.now()
            owed = self.available(now)
            refund = self.ledger_account.balance() - owed
            if refund > 0:
                self.ledger_account.transfer_out(refund_to, refund)
            else:
                refund = 0

            self._revoked = True
            self._revoked_at = now
            self._frozen_vested = self._released + owed

            logger.info(
                "schedule revoked by %s: refunded %d to %s, %d still owed to %s",
                caller, refund, refund_to, owed, self._beneficiary,
            )
            self.events.emit(VestingRevoked(caller, refund_to, refund))
        return refund

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self._lock:
            if caller != self._owner:
                raise Unauthorized("transfer_ownership: unauthorized sender!")
            if not new_owner:
                raise ValueError("new owner required")
            previous = self._owner
            self._owner = new_owner
            logger.info("ownership transferred %s -> %s", previous, new_owner)
            self.events.emit(OwnershipTransferred(previous, new_owner))

    # ── queries ─────────────────────────────────────────────────────

    @property
    def address(self) -> str:
        return self.ledger_account.holder

    @property
    def beneficiary(self) -> str:
        return self._beneficiary

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def start(self) -> int:
        return self._start

    @property
    def duration(self) -> int:
        return self._duration

    @property
    def releases_count(self) -> int:
        return self._releases_count

    @property
    def finish(self) -> int:
        return self._start + self._duration * self._releases_count

    @property
    def revocable(self) -> bool:
        return self._revocable

    @property
    def revoked(self) -> bool:
        return self._revoked

    @property
    def revoked_at(self) -> int:
        return self._revoked_at

    @property
    def released(self) -> int:
        return self._released

    def to_dict(self, now: Optional[int] = None) -> dict:
        if now is None:
            now = self.clock.now()
        return {
            "address": self.address,
            "beneficiary": self._beneficiary,
            "owner": self._owner,
            "start": self._start,
            "finish": self.finish,
            "duration": self._duration,
            "releases_count": self._releases_count,
            "revocable": self._revocable,
            "revoked": self._revoked,
            "revoked_at": self._revoked_at,
            "released": self._released,
            "balance": self.ledger_account.balance(),
            "vested": self.vested_amount(now),
            "available": self.available(now),
        }

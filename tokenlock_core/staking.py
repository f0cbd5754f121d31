"""
Tiered staking engine for TokenLock.

An account stakes tokens into one of the catalog packages.  The stake is
locked for the package's ``lock_days``; once that period has elapsed the
owner withdraws principal plus a flat interest:

    interest = amount × interest_percent // 100      (rounds down)

Stake lifecycle
───────────────
  Open ──withdraw_stake()──▶ Withdrawn   (terminal)

Stakes are append-only: a withdrawn stake keeps its slot (and index) with
``withdrawn_timestamp`` set, so each account has an auditable history.

Interest funding
────────────────
Interest is paid from a reserve that reward providers top up through
``fund_rewards()``.  The engine's ledger balance therefore splits into

    balance == total_staked_funds + reward_reserve

A withdrawal whose interest exceeds the reserve is rejected whole with
``InsufficientReserve``; the engine never under-pays.

Pausing stops new stakes only.  Withdrawals are never gated.

Every public operation runs under one re-entrant lock, validates all of
its preconditions first, then performs its single ledger transfer, and
only then mutates engine state.  A rejected call leaves nothing behind.
The notification is emitted before the lock is released, so the event
history lists operations in commit order.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from tokenlock_core.access import RoleRegistry
from tokenlock_core.clock import SystemClock
from tokenlock_core.errors import (
    InsufficientReserve,
    InvalidAmount,
    StakeAlreadyWithdrawn,
    StakeLocked,
    StakeNotFound,
    StakingPaused,
)
from tokenlock_core.events import (
    EventBus,
    RewardsFunded,
    StakeAdded,
    StakeWithdrawn,
    StakingPausedChanged,
)
from tokenlock_core.packages import Package, PackageCatalog
from tokenlock_core.token_ledger import LedgerAccount

logger = logging.getLogger("tokenlock.staking")


def _require_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount("You need to stake a positive number of tokens.")


# ── StakeRecord ─────────────────────────────────────────────────────────

@dataclass
class StakeRecord:
    """
    One deposit by one account.

    ``withdrawn_timestamp == 0`` while the stake is open.
    """
    account: str
    index: int
    amount: int
    timestamp: int
    package_name: str
    withdrawn_timestamp: int = 0

    @property
    def is_open(self) -> bool:
        return self.withdrawn_timestamp == 0

    def maturity_time(self, package: Package) -> int:
        return package.maturity_time(self.timestamp)

    def is_mature(self, package: Package, now: int) -> bool:
        return now >= self.maturity_time(package)

    def to_dict(self, package: Optional[Package] = None, now: Optional[int] = None) -> dict:
        data = {
            "account": self.account,
            "index": self.index,
            "amount": self.amount,
            "timestamp": self.timestamp,
            "package_name": self.package_name,
            "withdrawn_timestamp": self.withdrawn_timestamp,
        }
        if package is not None:
            data["maturity_time"] = self.maturity_time(package)
            data["interest"] = package.interest_for(self.amount)
            if not self.is_open:
                status = "Withdrawn"
            elif now is not None and self.is_mature(package, now):
                status = "Ready"
            else:
                status = "Locked"
            data["status"] = status
        return data


# ── StakingEngine ───────────────────────────────────────────────────────

class StakingEngine:
    """
    Owns every stake and the aggregate balances derived from them.

    Entry points (``caller`` is the account issuing the call):
      ``stake_tokens()``: deposit into a package
      ``withdraw_stake()``: close a matured stake
      ``pause_staking()`` / ``unpause_staking()``: admin only
      ``fund_rewards()``: reward providers top up the interest reserve
    """

    def __init__(
        self,
        ledger_account: LedgerAccount,
        roles: RoleRegistry,
        catalog: Optional[PackageCatalog] = None,
        clock=None,
        events: Optional[EventBus] = None,
        paused: bool = False,
    ) -> None:
        self.ledger_account = ledger_account
        self.roles = roles
        self.catalog = catalog if catalog is not None else PackageCatalog()
        self.clock = clock if clock is not None else SystemClock()
        self.events = events if events is not None else EventBus()

        self._stakes: dict[str, list[StakeRecord]] = {}
        self._balances: dict[str, int] = {}
        self._has_staked: set[str] = set()
        self._total_staked_funds: int = 0
        self._reward_reserve: int = 0
        self._total_interest_paid: int = 0
        self._paused = paused
        self._lock = threading.RLock()

    @property
    def address(self) -> str:
        return self.ledger_account.holder

    # ── core operations ─────────────────────────────────────────────

    def stake_tokens(self, caller: str, amount: int, package_name: str) -> StakeRecord:
        """
        Lock ``amount`` of the caller's tokens in ``package_name``.

        The caller must have approved the engine for at least ``amount``.
        Returns the new stake; its ``index`` is the caller's stake count
        before the call.
        """
        with self._lock:
            if self._paused:
                raise StakingPaused("The staking is paused.")
            _require_amount(amount)
            self.catalog.get(package_name)

            self.ledger_account.transfer_in(caller, amount)

            now = self.clock.now()
            stakes = self._stakes.setdefault(caller, [])
            record = StakeRecord(
                account=caller,
                index=len(stakes),
                amount=amount,
                timestamp=now,
                package_name=package_name,
            )
            stakes.append(record)
            self._balances[caller] = self._balances.get(caller, 0) + amount
            self._total_staked_funds += amount
            self._has_staked.add(caller)

            logger.info(
                "stake #%d by %s: %d into %s", record.index, caller, amount, package_name
            )
            self.events.emit(StakeAdded(caller, package_name, amount, record.index))
        return record

    def withdraw_stake(self, caller: str, index: int) -> tuple[int, int]:
        """
        Close the caller's stake at ``index`` and pay principal + interest.

        Returns ``(principal, interest)``.
        """
        with self._lock:
            record = self._get_record(caller, index)
            if not record.is_open:
                raise StakeAlreadyWithdrawn(
                    f"Stake {index} of {caller} was withdrawn at "
                    f"{record.withdrawn_timestamp}"
                )
            package = self.catalog.get(record.package_name)
            now = self.clock.now()
            maturity = record.maturity_time(package)
            if now < maturity:
                raise StakeLocked(
                    f"Stake {index} of {caller} is locked until {maturity}"
                )
            interest = package.interest_for(record.amount)
            if interest > self._reward_reserve:
                raise InsufficientReserve(
                    f"Interest {interest} exceeds reward reserve {self._reward_reserve}"
                )

            self.ledger_account.transfer_out(caller, record.amount + interest)

            record.withdrawn_timestamp = now
            self._balances[caller] -= record.amount
            self._total_staked_funds -= record.amount
            self._reward_reserve -= interest
            self._total_interest_paid += interest

            logger.info(
                "withdraw #%d by %s: principal %d, interest %d",
                index, caller, record.amount, interest,
            )
            self.events.emit(StakeWithdrawn(caller, index, record.amount, interest))
        return record.amount, interest

    def fund_rewards(self, caller: str, amount: int) -> int:
        """Move ``amount`` from a reward provider into the interest reserve."""
        with self._lock:
            self.roles.require_reward_provider(caller)
            if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
                raise InvalidAmount("Reward amount must be a positive integer.")
            self.ledger_account.transfer_in(caller, amount)
            self._reward_reserve += amount
            reserve = self._reward_reserve

            logger.info("reward reserve +%d by %s (now %d)", amount, caller, reserve)
            self.events.emit(RewardsFunded(caller, amount))
        return reserve

    # ── pause control ───────────────────────────────────────────────

    def pause_staking(self, caller: str) -> None:
        self._set_paused(caller, True)

    def unpause_staking(self, caller: str) -> None:
        self._set_paused(caller, False)

    def _set_paused(self, caller: str, paused: bool) -> None:
        with self._lock:
            self.roles.require_admin(caller)
            self._paused = paused
            logger.info("staking %s by %s", "paused" if paused else "unpaused", caller)
            self.events.emit(StakingPausedChanged(caller, paused))

    # ── queries ─────────────────────────────────────────────────────

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def total_staked_funds(self) -> int:
        return self._total_staked_funds

    @property
    def reward_reserve(self) -> int:
        return self._reward_reserve

    @property
    def total_interest_paid(self) -> int:
        return self._total_interest_paid

    def packages(self, name: str) -> Package:
        return self.catalog.get(name)

    def total_staked_balance(self, account: str) -> int:
        return self._balances.get(account, 0)

    def has_staked(self, account: str) -> bool:
        return account in self._has_staked

    def stakes(self, account: str, index: int) -> StakeRecord:
        return self._get_record(account, index)

    def stake_count(self, account: str) -> int:
        return len(self._stakes.get(account, ()))

    def accounts(self) -> list[str]:
        return list(self._stakes)

    def get_all_stakes(self, account: str) -> list[StakeRecord]:
        return list(self._stakes.get(account, ()))

    def get_open_stakes(self, account: str) -> list[StakeRecord]:
        return [s for s in self._stakes.get(account, ()) if s.is_open]

    def pending_interest(self) -> int:
        """Interest owed to every open stake once it matures."""
        total = 0
        for stakes in self._stakes.values():
            for s in stakes:
                if s.is_open:
                    total += self.catalog.get(s.package_name).interest_for(s.amount)
        return total

    def get_staking_summary(self, account: str, now: Optional[int] = None) -> dict:
        if now is None:
            now = self.clock.now()
        return {
            "address": account,
            "has_staked": self.has_staked(account),
            "total_staked_balance": self.total_staked_balance(account),
            "stakes": [
                s.to_dict(self.catalog.get(s.package_name), now)
                for s in self.get_all_stakes(account)
            ],
        }

    def get_pool_summary(self) -> dict:
        all_stakes = [s for stakes in self._stakes.values() for s in stakes]
        return {
            "address": self.address,
            "paused": self._paused,
            "total_staked_funds": self._total_staked_funds,
            "reward_reserve": self._reward_reserve,
            "pending_interest": self.pending_interest(),
            "total_interest_paid": self._total_interest_paid,
            "open_stakes": sum(1 for s in all_stakes if s.is_open),
            "total_stakes": len(all_stakes),
            "stakers": len(self._has_staked),
            "packages": self.catalog.to_list(),
        }

    def _get_record(self, account: str, index: int) -> StakeRecord:
        stakes = self._stakes.get(account, [])
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(stakes):
            raise StakeNotFound(f"Stake {index!r} not found for {account}")
        return stakes[index]

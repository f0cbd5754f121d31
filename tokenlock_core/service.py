"""
Composition root: builds the ledger, roles, catalog and engines from a
``TokenLockConfig`` and keeps them together for the API and the runner.
"""

from __future__ import annotations

import logging
from typing import Optional

from tokenlock_core.access import REWARD_PROVIDER_ROLE, RoleRegistry
from tokenlock_core.clock import SystemClock
from tokenlock_core.config import TokenLockConfig
from tokenlock_core.events import EventBus
from tokenlock_core.invariants import InvariantChecker
from tokenlock_core.packages import PackageCatalog
from tokenlock_core.precision import format_amount, to_base_units
from tokenlock_core.staking import StakingEngine
from tokenlock_core.token_ledger import LedgerAccount, TokenLedger
from tokenlock_core.vesting import VestingSchedule

logger = logging.getLogger("tokenlock.service")


class TokenLockService:
    """One deployment: a token ledger with a staking engine and an optional vesting schedule."""

    def __init__(self, config: Optional[TokenLockConfig] = None, clock=None):
        self.config = config or TokenLockConfig()
        self.clock = clock if clock is not None else SystemClock()
        self.events = EventBus(history_limit=self.config.events.history_limit)
        self.invariants = InvariantChecker()

        token_cfg = self.config.token
        self.ledger = TokenLedger(
            total_supply=to_base_units(token_cfg.total_supply),
            genesis_account=token_cfg.genesis_account,
            symbol=token_cfg.symbol,
        )

        staking_cfg = self.config.staking
        self.roles = RoleRegistry(staking_cfg.admin)
        for provider in staking_cfg.reward_providers:
            self.roles.grant_role(staking_cfg.admin, REWARD_PROVIDER_ROLE, provider)

        catalog = (
            PackageCatalog.from_dicts(staking_cfg.packages)
            if staking_cfg.packages else PackageCatalog()
        )
        self.staking = StakingEngine(
            LedgerAccount(self.ledger, staking_cfg.address),
            self.roles,
            catalog=catalog,
            clock=self.clock,
            events=self.events,
            paused=staking_cfg.paused,
        )

        self.vesting: Optional[VestingSchedule] = None
        vesting_cfg = self.config.vesting
        if vesting_cfg.enabled:
            self.vesting = VestingSchedule(
                LedgerAccount(self.ledger, vesting_cfg.address),
                beneficiary=vesting_cfg.beneficiary,
                start=vesting_cfg.start,
                duration=vesting_cfg.duration,
                releases_count=vesting_cfg.releases_count,
                revocable=vesting_cfg.revocable,
                owner=vesting_cfg.owner,
                clock=self.clock,
                events=self.events,
            )
            funding = to_base_units(vesting_cfg.initial_funding)
            if funding > 0:
                self.ledger.transfer(token_cfg.genesis_account, vesting_cfg.address, funding)
                logger.info(
                    "vesting vault %s funded with %s",
                    vesting_cfg.address, format_amount(funding, token_cfg.symbol),
                )

        logger.info(
            "service ready: staking at %s (%d packages), vesting %s",
            self.staking.address, len(catalog),
            self.vesting.address if self.vesting else "disabled",
        )

    def check_invariants(self) -> tuple[bool, str]:
        return self.invariants.verify_all(self)

    def status(self) -> dict:
        return {
            "token": self.ledger.symbol,
            "total_supply": self.ledger.total_supply,
            "now": self.clock.now(),
            "staking": self.staking.get_pool_summary(),
            "vesting": self.vesting.to_dict() if self.vesting else None,
            "events": len(self.events.history),
        }

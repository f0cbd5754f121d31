"""
Shared pytest fixtures for the TokenLock test suite.
"""

import pytest

from tokenlock_core.access import RoleRegistry
from tokenlock_core.clock import ManualClock
from tokenlock_core.events import EventBus
from tokenlock_core.precision import to_base_units
from tokenlock_core.staking import StakingEngine
from tokenlock_core.token_ledger import LedgerAccount, TokenLedger
from tokenlock_core.vesting import VestingSchedule

START_TIME = 1_700_000_000
STAKING_ADDR = "staking-pool"
VESTING_ADDR = "vesting-vault"


@pytest.fixture
def clock():
    """Deterministic clock starting at a fixed timestamp."""
    return ManualClock(START_TIME)


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def ledger():
    """Ledger with 29bn tokens on the owner, 2m on each user."""
    led = TokenLedger(total_supply=to_base_units(29_000_000_000), genesis_account="owner")
    for user in ("user1", "user2", "user3"):
        led.transfer("owner", user, to_base_units(2_000_000))
    return led


@pytest.fixture
def roles():
    return RoleRegistry("owner")


@pytest.fixture
def engine(ledger, roles, clock, events):
    """Staking engine with a 1,000-token interest reserve."""
    eng = StakingEngine(
        LedgerAccount(ledger, STAKING_ADDR), roles, clock=clock, events=events,
    )
    ledger.approve("owner", STAKING_ADDR, to_base_units(1_000))
    eng.fund_rewards("owner", to_base_units(1_000))
    ledger.approve("user1", STAKING_ADDR, to_base_units(200))
    ledger.approve("user2", STAKING_ADDR, to_base_units(200))
    return eng


@pytest.fixture
def vesting(ledger, clock, events):
    """
    Schedule starting 100 s from now: 4 releases, one every 10 weeks,
    funded with 100 tokens.
    """
    schedule = VestingSchedule(
        LedgerAccount(ledger, VESTING_ADDR),
        beneficiary="beneficiary",
        start=clock.now() + 100,
        duration=10 * 7 * 86_400,
        releases_count=4,
        revocable=True,
        owner="owner",
        clock=clock,
        events=events,
    )
    ledger.transfer("owner", VESTING_ADDR, to_base_units(100))
    return schedule

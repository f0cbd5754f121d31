"""
Tests for TokenLockService: wiring the ledger, roles, catalog and engines
from configuration.
"""

import pytest

from tokenlock_core.clock import ManualClock
from tokenlock_core.config import TokenLockConfig
from tokenlock_core.errors import InvalidPackage, InvalidSchedule
from tokenlock_core.precision import SECONDS_PER_DAY, to_base_units
from tokenlock_core.service import TokenLockService

T = to_base_units
START = 1_700_000_000


def _config(**vesting):
    cfg = TokenLockConfig()
    cfg.token.total_supply = "1000000"
    cfg.staking.reward_providers = ["funder"]
    if vesting:
        cfg.vesting.enabled = True
        cfg.vesting.beneficiary = "team"
        cfg.vesting.start = START
        cfg.vesting.duration = 100
        cfg.vesting.releases_count = 4
        for key, value in vesting.items():
            setattr(cfg.vesting, key, value)
    return cfg


class TestWiring:
    def test_defaults(self):
        svc = TokenLockService(clock=ManualClock(START))
        assert svc.ledger.symbol == "CLC"
        assert svc.ledger.balance_of("treasury") == T(29_000_000_000)
        assert svc.staking.catalog.names() == ["silver", "gold", "platinum"]
        assert svc.vesting is None
        assert svc.roles.has_admin_role("treasury")

    def test_reward_providers_granted(self):
        svc = TokenLockService(_config(), clock=ManualClock(START))
        assert svc.roles.has_reward_provider_role("funder")
        assert not svc.roles.has_admin_role("funder")

    def test_event_history_limit_from_config(self):
        cfg = _config()
        cfg.events.history_limit = 3
        svc = TokenLockService(cfg, clock=ManualClock(START))
        assert svc.events.history.maxlen == 3
        for _ in range(5):
            svc.staking.pause_staking("treasury")
            svc.staking.unpause_staking("treasury")
        assert len(svc.events.history) == 3
        assert svc.status()["events"] == 3

    def test_custom_packages(self):
        cfg = _config()
        cfg.staking.packages = [{"name": "bronze", "lock_days": 1, "interest_percent": 1}]
        svc = TokenLockService(cfg, clock=ManualClock(START))
        assert svc.staking.catalog.names() == ["bronze"]

    def test_bad_packages(self):
        cfg = _config()
        cfg.staking.packages = [{"name": "bronze", "lock_days": 0, "interest_percent": 1}]
        with pytest.raises(InvalidPackage):
            TokenLockService(cfg)

    def test_paused_at_start(self):
        cfg = _config()
        cfg.staking.paused = True
        svc = TokenLockService(cfg, clock=ManualClock(START))
        assert svc.staking.paused

    def test_vesting_funded_from_genesis(self):
        svc = TokenLockService(_config(initial_funding="100"), clock=ManualClock(START))
        assert svc.vesting is not None
        assert svc.ledger.balance_of("vesting-vault") == T(100)
        assert svc.ledger.balance_of("treasury") == T(1_000_000) - T(100)

    def test_vesting_needs_beneficiary(self):
        with pytest.raises(InvalidSchedule):
            TokenLockService(_config(beneficiary=""))


class TestEndToEnd:
    def test_stake_and_vest(self):
        clock = ManualClock(START)
        svc = TokenLockService(_config(initial_funding="100"), clock=clock)
        led = svc.ledger
        pool = svc.staking.address

        led.transfer("treasury", "funder", T(10))
        led.approve("funder", pool, T(10))
        svc.staking.fund_rewards("funder", T(10))

        led.transfer("treasury", "alice", T(10))
        led.approve("alice", pool, T(10))
        svc.staking.stake_tokens("alice", T(10), "silver")

        clock.advance(7 * SECONDS_PER_DAY)
        svc.staking.withdraw_stake("alice", 0)
        assert led.balance_of("alice") == T("10.8")

        svc.vesting.release("team")
        assert led.balance_of("team") == T(100)

        ok, msg = svc.check_invariants()
        assert ok, msg

    def test_status(self):
        svc = TokenLockService(_config(initial_funding="40"), clock=ManualClock(START + 100))
        status = svc.status()
        assert status["token"] == "CLC"
        assert status["total_supply"] == T(1_000_000)
        assert status["now"] == START + 100
        assert status["staking"]["paused"] is False
        assert status["vesting"]["available"] == T(10)
        assert status["events"] == 0

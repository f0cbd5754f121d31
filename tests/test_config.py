"""
Tests for tokenlock_core.config: TOML configuration and environment overrides.

Covers:
  - Default values for all dataclass sections
  - TOML parsing and section merging, including package tables
  - Environment variable overrides (precedence over TOML)
  - _merge helper edge cases
  - Missing TOML files
"""

from __future__ import annotations

import os
import tempfile
import textwrap
import unittest
from unittest.mock import patch

from tokenlock_core.config import (
    APIConfig,
    EventsConfig,
    LoggingConfig,
    StakingConfig,
    TokenConfig,
    TokenLockConfig,
    VestingConfig,
    _env_bool,
    _merge,
    load_config,
)

# ═══════════════════════════════════════════════════════════════════
#  Defaults
# ═══════════════════════════════════════════════════════════════════

class TestDefaults(unittest.TestCase):

    def test_token_defaults(self):
        t = TokenConfig()
        self.assertEqual(t.symbol, "CLC")
        self.assertEqual(t.total_supply, "29000000000")
        self.assertEqual(t.genesis_account, "treasury")

    def test_staking_defaults(self):
        s = StakingConfig()
        self.assertEqual(s.address, "staking-pool")
        self.assertEqual(s.admin, "treasury")
        self.assertFalse(s.paused)
        self.assertEqual(s.reward_providers, [])
        self.assertEqual(s.packages, [])

    def test_vesting_defaults(self):
        v = VestingConfig()
        self.assertFalse(v.enabled)
        self.assertEqual(v.duration, 6_048_000)
        self.assertEqual(v.releases_count, 4)
        self.assertTrue(v.revocable)

    def test_api_defaults(self):
        a = APIConfig()
        self.assertFalse(a.enabled)
        self.assertEqual(a.host, "127.0.0.1")
        self.assertEqual(a.port, 8080)
        self.assertEqual(a.api_key, "")
        self.assertEqual(a.rate_limit_rpm, 120)
        self.assertEqual(a.cors_origins, [])

    def test_logging_defaults(self):
        lg = LoggingConfig()
        self.assertEqual(lg.level, "INFO")
        self.assertEqual(lg.format, "human")
        self.assertIsNone(lg.file)

    def test_events_defaults(self):
        self.assertEqual(EventsConfig().history_limit, 10_000)

    def test_lists_are_not_shared(self):
        a, b = TokenLockConfig(), TokenLockConfig()
        a.staking.reward_providers.append("x")
        self.assertEqual(b.staking.reward_providers, [])


# ═══════════════════════════════════════════════════════════════════
#  _merge helper
# ═══════════════════════════════════════════════════════════════════

class TestMerge(unittest.TestCase):

    def test_sets_known_keys(self):
        s = StakingConfig()
        _merge(s, {"address": "pool-2", "paused": True})
        self.assertEqual(s.address, "pool-2")
        self.assertTrue(s.paused)

    def test_ignores_unknown_keys(self):
        s = StakingConfig()
        _merge(s, {"bogus": 1})
        self.assertFalse(hasattr(s, "bogus"))

    def test_hyphenated_keys(self):
        a = APIConfig()
        _merge(a, {"rate-limit-rpm": 10, "api-key": "k"})
        self.assertEqual(a.rate_limit_rpm, 10)
        self.assertEqual(a.api_key, "k")

    def test_env_bool(self):
        for text in ("1", "true", "YES", " on "):
            self.assertTrue(_env_bool(text))
        for text in ("0", "false", "no", ""):
            self.assertFalse(_env_bool(text))


# ═══════════════════════════════════════════════════════════════════
#  TOML loading
# ═══════════════════════════════════════════════════════════════════

_TOML = textwrap.dedent("""
    [token]
    symbol = "TST"
    total_supply = "1000000"
    genesis_account = "bank"

    [staking]
    address = "pool"
    admin = "bank"
    reward_providers = ["funder"]

    [[staking.packages]]
    name = "bronze"
    lock_days = 3
    interest_percent = 2

    [[staking.packages]]
    name = "diamond"
    lock_days = 90
    blocked_days = 30
    interest_percent = 20

    [vesting]
    enabled = true
    beneficiary = "team"
    owner = "bank"
    start = 1767225600
    releases_count = 5
    initial_funding = "500"

    [api]
    enabled = true
    port = 9090
    cors-origins = ["https://example.org"]

    [logging]
    level = "DEBUG"
    format = "json"

    [events]
    history_limit = 500
""")


class TestTomlLoading(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmp.name, "tokenlock.toml")
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(_TOML)

    def tearDown(self):
        self._tmp.cleanup()

    @patch.dict(os.environ, {}, clear=True)
    def test_sections_merged(self):
        cfg = load_config(self.path)
        self.assertEqual(cfg.token.symbol, "TST")
        self.assertEqual(cfg.token.genesis_account, "bank")
        self.assertEqual(cfg.staking.address, "pool")
        self.assertEqual(cfg.staking.reward_providers, ["funder"])
        self.assertEqual([p["name"] for p in cfg.staking.packages], ["bronze", "diamond"])
        self.assertTrue(cfg.vesting.enabled)
        self.assertEqual(cfg.vesting.beneficiary, "team")
        self.assertEqual(cfg.vesting.releases_count, 5)
        self.assertEqual(cfg.vesting.duration, 6_048_000)
        self.assertTrue(cfg.api.enabled)
        self.assertEqual(cfg.api.port, 9090)
        self.assertEqual(cfg.api.cors_origins, ["https://example.org"])
        self.assertEqual(cfg.logging.level, "DEBUG")
        self.assertEqual(cfg.events.history_limit, 500)

    @patch.dict(os.environ, {}, clear=True)
    def test_missing_file_gives_defaults(self):
        cfg = load_config(os.path.join(self._tmp.name, "nope.toml"))
        self.assertEqual(cfg, TokenLockConfig())

    @patch.dict(os.environ, {}, clear=True)
    def test_no_path_gives_defaults(self):
        self.assertEqual(load_config(), TokenLockConfig())

    @patch.dict(os.environ, {"TOKENLOCK_API_PORT": "7000", "TOKENLOCK_LOG_LEVEL": "warning"}, clear=True)
    def test_env_wins_over_file(self):
        cfg = load_config(self.path)
        self.assertEqual(cfg.api.port, 7000)
        self.assertEqual(cfg.logging.level, "WARNING")


# ═══════════════════════════════════════════════════════════════════
#  Environment overrides
# ═══════════════════════════════════════════════════════════════════

class TestEnvOverrides(unittest.TestCase):

    @patch.dict(os.environ, {
        "TOKENLOCK_API_HOST": "0.0.0.0",
        "TOKENLOCK_API_PORT": "8181",
        "TOKENLOCK_API_KEY": "s3cret",
        "TOKENLOCK_CORS_ORIGINS": "https://a.io, https://b.io,",
    }, clear=True)
    def test_api_overrides(self):
        cfg = load_config()
        self.assertEqual(cfg.api.host, "0.0.0.0")
        self.assertEqual(cfg.api.port, 8181)
        self.assertTrue(cfg.api.enabled)
        self.assertEqual(cfg.api.api_key, "s3cret")
        self.assertEqual(cfg.api.cors_origins, ["https://a.io", "https://b.io"])

    @patch.dict(os.environ, {
        "TOKENLOCK_STAKING_ADMIN": "ops",
        "TOKENLOCK_STAKING_PAUSED": "true",
        "TOKENLOCK_VESTING_BENEFICIARY": "alice",
        "TOKENLOCK_LOG_FMT": "json",
    }, clear=True)
    def test_engine_overrides(self):
        cfg = load_config()
        self.assertEqual(cfg.staking.admin, "ops")
        self.assertTrue(cfg.staking.paused)
        self.assertEqual(cfg.vesting.beneficiary, "alice")
        self.assertTrue(cfg.vesting.enabled)
        self.assertEqual(cfg.logging.format, "json")

    @patch.dict(os.environ, {"TOKENLOCK_EVENT_HISTORY": "0"}, clear=True)
    def test_event_history_override(self):
        self.assertEqual(load_config().events.history_limit, 0)

    @patch.dict(os.environ, {"TOKENLOCK_API_PORT": "not-a-port"}, clear=True)
    def test_bad_port(self):
        with self.assertRaises(ValueError):
            load_config()


if __name__ == "__main__":
    unittest.main()

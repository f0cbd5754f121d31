"""
TOML-based configuration for TokenLock services.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values.

Example ``tokenlock.toml``::

    [token]
    symbol = "CLC"
    total_supply = "29000000000"
    genesis_account = "treasury"

    [staking]
    address = "staking-pool"
    admin = "treasury"

    [[staking.packages]]
    name = "silver"
    lock_days = 7
    blocked_days = 3
    interest_percent = 8

    [vesting]
    enabled = true
    beneficiary = "team"
    owner = "treasury"
    start = 1767225600
    duration = 6048000
    releases_count = 4
    initial_funding = "100"

Token amounts in the file are whole tokens (strings or integers); they are
converted to base units when the service is built.

Usage:
    from tokenlock_core.config import load_config
    cfg = load_config("tokenlock.toml")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


@dataclass
class TokenConfig:
    """The token the engines account in."""
    symbol: str = "CLC"
    total_supply: str = "29000000000"
    genesis_account: str = "treasury"


@dataclass
class StakingConfig:
    """Staking engine deployment.

    ``packages`` replaces the default silver/gold/platinum tiers when
    non-empty.  Each entry needs ``name``, ``lock_days`` and
    ``interest_percent``; ``blocked_days`` defaults to 0.
    """
    address: str = "staking-pool"
    admin: str = "treasury"
    paused: bool = False
    reward_providers: list[str] = field(default_factory=list)
    packages: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class VestingConfig:
    """Single-beneficiary vesting schedule (disabled by default)."""
    enabled: bool = False
    address: str = "vesting-vault"
    beneficiary: str = ""
    owner: str = "treasury"
    start: int = 0
    duration: int = 10 * 7 * 86_400
    releases_count: int = 4
    revocable: bool = True
    initial_funding: str = "0"


@dataclass
class APIConfig:
    """REST API settings."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8080
    api_key: str = ""                  # required on POST endpoints when set
    rate_limit_rpm: int = 120          # per IP; 0 = unlimited
    cors_origins: list[str] = field(default_factory=list)
    max_body_bytes: int = 65_536


@dataclass
class EventsConfig:
    """In-memory event history kept by the service."""
    history_limit: int = 10_000     # most recent events kept; 0 = unlimited


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class TokenLockConfig:
    """Top-level configuration container."""
    token: TokenConfig = field(default_factory=TokenConfig)
    staking: StakingConfig = field(default_factory=StakingConfig)
    vesting: VestingConfig = field(default_factory=VestingConfig)
    api: APIConfig = field(default_factory=APIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    events: EventsConfig = field(default_factory=EventsConfig)


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Merge a raw dict into a dataclass instance (in-place)."""
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if hasattr(dc, key_under):
            setattr(dc, key_under, value)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(path: str | None = None) -> TokenLockConfig:
    """
    Load configuration from a TOML file, then overlay environment variables.

    Env-var mapping:
        TOKENLOCK_API_HOST             -> api.host
        TOKENLOCK_API_PORT             -> api.port (also enables the API)
        TOKENLOCK_API_KEY              -> api.api_key
        TOKENLOCK_CORS_ORIGINS         -> api.cors_origins (comma-separated)
        TOKENLOCK_LOG_LEVEL            -> logging.level
        TOKENLOCK_LOG_FMT              -> logging.format
        TOKENLOCK_STAKING_ADMIN        -> staking.admin
        TOKENLOCK_STAKING_PAUSED       -> staking.paused
        TOKENLOCK_VESTING_BENEFICIARY  -> vesting.beneficiary (also enables vesting)
        TOKENLOCK_EVENT_HISTORY        -> events.history_limit
    """
    cfg = TokenLockConfig()

    # ── TOML file ────────────────────────────────────────────────
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            for section_name, section_dc in [
                ("token", cfg.token),
                ("staking", cfg.staking),
                ("vesting", cfg.vesting),
                ("api", cfg.api),
                ("logging", cfg.logging),
                ("events", cfg.events),
            ]:
                if section_name in data:
                    _merge(section_dc, data[section_name])

    # ── Environment variable overrides ───────────────────────────
    if v := os.environ.get("TOKENLOCK_API_HOST"):
        cfg.api.host = v
    if v := os.environ.get("TOKENLOCK_API_PORT"):
        cfg.api.port = int(v)
        cfg.api.enabled = True
    if v := os.environ.get("TOKENLOCK_API_KEY"):
        cfg.api.api_key = v
    if v := os.environ.get("TOKENLOCK_CORS_ORIGINS"):
        cfg.api.cors_origins = [o.strip() for o in v.split(",") if o.strip()]
    if v := os.environ.get("TOKENLOCK_LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := os.environ.get("TOKENLOCK_LOG_FMT"):
        cfg.logging.format = v
    if v := os.environ.get("TOKENLOCK_STAKING_ADMIN"):
        cfg.staking.admin = v
    if v := os.environ.get("TOKENLOCK_STAKING_PAUSED"):
        cfg.staking.paused = _env_bool(v)
    if v := os.environ.get("TOKENLOCK_VESTING_BENEFICIARY"):
        cfg.vesting.beneficiary = v
        cfg.vesting.enabled = True
    if v := os.environ.get("TOKENLOCK_EVENT_HISTORY"):
        cfg.events.history_limit = int(v)

    return cfg

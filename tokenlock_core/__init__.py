"""
TokenLock - staking and vesting ledgers for a single fungible token.

Key features:
- Tiered staking packages with fixed lock periods and flat interest
- Interest paid from a reserve topped up by reward providers
- Periodic vesting for one beneficiary, self-funded and revocable
- Integer base-unit accounting with explicit truncation
- Synchronous notifications and accounting invariant checks
- aiohttp REST API and TOML configuration
"""

__version__ = "1.0.0"
__all__ = [
    "precision",
    "errors",
    "clock",
    "token_ledger",
    "access",
    "events",
    "packages",
    "staking",
    "vesting",
    "invariants",
    "config",
    "logging_config",
    "service",
    "api",
]

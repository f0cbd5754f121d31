"""
Error taxonomy for the staking and vesting engines.

Every rejection is raised synchronously to the caller and leaves engine
and ledger state untouched.  ``code`` is a stable identifier surfaced by
the HTTP API.
"""

from __future__ import annotations


class TokenLockError(Exception):
    code = "TokenLockError"


# ── amounts / catalog ───────────────────────────────────────────────────

class InvalidAmount(TokenLockError, ValueError):
    code = "InvalidAmount"


class UnknownPackage(TokenLockError, LookupError):
    code = "UnknownPackage"

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else self.code


class InvalidPackage(TokenLockError, ValueError):
    code = "InvalidPackage"


# ── staking ─────────────────────────────────────────────────────────────

class StakingPaused(TokenLockError):
    code = "StakingPaused"


class StakeLocked(TokenLockError):
    code = "StakeLocked"


class StakeAlreadyWithdrawn(TokenLockError):
    code = "StakeAlreadyWithdrawn"


class StakeNotFound(TokenLockError, LookupError):
    code = "StakeNotFound"

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else self.code


# ── authorization ───────────────────────────────────────────────────────

class Unauthorized(TokenLockError, PermissionError):
    code = "Unauthorized"


# ── vesting ─────────────────────────────────────────────────────────────

class NothingDue(TokenLockError):
    code = "NothingDue"


class NotRevocable(TokenLockError):
    code = "NotRevocable"


class AlreadyRevoked(TokenLockError):
    code = "AlreadyRevoked"


class InvalidSchedule(TokenLockError, ValueError):
    code = "InvalidSchedule"


# ── ledger ──────────────────────────────────────────────────────────────

class InsufficientFunds(TokenLockError):
    code = "InsufficientFunds"


class NotApproved(TokenLockError):
    code = "NotApproved"


class InsufficientReserve(TokenLockError):
    code = "InsufficientReserve"

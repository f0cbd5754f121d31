"""
Role-based access control for TokenLock.

Two roles gate the administrative surface of the staking engine:

  - ``ADMIN_ROLE``: pause / unpause, grant and revoke roles
  - ``REWARD_PROVIDER_ROLE``: top up the interest reserve

The deploying admin holds both roles from the start.
"""

from __future__ import annotations

import logging

from tokenlock_core.errors import Unauthorized

logger = logging.getLogger("tokenlock.access")

ADMIN_ROLE = "DEFAULT_ADMIN_ROLE"
REWARD_PROVIDER_ROLE = "REWARD_PROVIDER_ROLE"

KNOWN_ROLES = frozenset({ADMIN_ROLE, REWARD_PROVIDER_ROLE})


class RoleRegistry:
    """Maps role → set of member accounts."""

    def __init__(self, admin: str):
        if not admin:
            raise ValueError("admin address required")
        self.members: dict[str, set[str]] = {role: set() for role in KNOWN_ROLES}
        self.members[ADMIN_ROLE].add(admin)
        self.members[REWARD_PROVIDER_ROLE].add(admin)

    def has_role(self, role: str, account: str) -> bool:
        return account in self.members.get(role, ())

    def has_admin_role(self, account: str) -> bool:
        return self.has_role(ADMIN_ROLE, account)

    def has_reward_provider_role(self, account: str) -> bool:
        return self.has_role(REWARD_PROVIDER_ROLE, account)

    def require_admin(self, caller: str) -> None:
        if not self.has_admin_role(caller):
            raise Unauthorized(f"{caller} lacks {ADMIN_ROLE}")

    def require_reward_provider(self, caller: str) -> None:
        if not self.has_reward_provider_role(caller):
            raise Unauthorized(f"{caller} lacks {REWARD_PROVIDER_ROLE}")

    def grant_role(self, caller: str, role: str, account: str) -> None:
        self.require_admin(caller)
        if role not in KNOWN_ROLES:
            raise ValueError(f"Unknown role: {role}")
        if not account:
            raise ValueError("account required")
        self.members[role].add(account)
        logger.info("%s granted %s to %s", caller, role, account)

    def revoke_role(self, caller: str, role: str, account: str) -> None:
        self.require_admin(caller)
        if role not in KNOWN_ROLES:
            raise ValueError(f"Unknown role: {role}")
        self.members[role].discard(account)
        logger.info("%s revoked %s from %s", caller, role, account)

    def to_dict(self) -> dict:
        return {role: sorted(accounts) for role, accounts in self.members.items()}

"""
Accounting invariant checks for TokenLock.

  - Per account: total staked balance equals the sum of open stakes
  - Engine-wide: total staked funds equals the sum of account balances
  - The staking engine's ledger balance covers principal + interest reserve
  - A stake is withdrawn at most once (withdrawn timestamp set, never reset)
  - Vesting: released never exceeds the vested total, and what is available
    is backed by the schedule's ledger balance

Checks return ``(passed, message)`` instead of raising so they can be
reported by the health endpoint as well as asserted in tests.
"""

from __future__ import annotations


class InvariantChecker:
    """Stateless verifier over a staking engine and/or a vesting schedule."""

    def check_staking(self, engine) -> tuple[bool, str]:
        errors: list[str] = []

        summed_balances = 0
        for account in engine.accounts():
            open_sum = sum(s.amount for s in engine.get_open_stakes(account))
            balance = engine.total_staked_balance(account)
            if balance != open_sum:
                errors.append(
                    f"{account}: staked balance {balance} != open stakes {open_sum}"
                )
            summed_balances += balance
            for s in engine.get_all_stakes(account):
                if s.withdrawn_timestamp and s.withdrawn_timestamp < s.timestamp:
                    errors.append(
                        f"{account}#{s.index}: withdrawn before it was created"
                    )

        if engine.total_staked_funds != summed_balances:
            errors.append(
                f"total staked funds {engine.total_staked_funds} != "
                f"sum of balances {summed_balances}"
            )

        held = engine.ledger_account.balance()
        required = engine.total_staked_funds + engine.reward_reserve
        if held < required:
            errors.append(
                f"ledger holds {held}, engine owes {required} "
                f"(principal {engine.total_staked_funds} + reserve {engine.reward_reserve})"
            )

        if engine.reward_reserve < 0:
            errors.append(f"negative reward reserve {engine.reward_reserve}")

        return (not errors), "; ".join(errors)

    def check_vesting(self, schedule, now: int | None = None) -> tuple[bool, str]:
        errors: list[str] = []

        balance = schedule.ledger_account.balance()
        vested = schedule.vested_amount(now)
        if schedule.released > vested:
            errors.append(
                f"released {schedule.released} exceeds vested {vested}"
            )
        if vested > schedule.released + balance:
            errors.append(
                f"vested {vested} exceeds allocation {schedule.released + balance}"
            )
        available = schedule.available(now)
        if available > balance:
            errors.append(f"available {available} exceeds balance {balance}")
        if schedule.revoked and not schedule.revocable:
            errors.append("irrevocable schedule is marked revoked")

        return (not errors), "; ".join(errors)

    def verify_all(self, service) -> tuple[bool, str]:
        """Run every applicable check against a ``TokenLockService``."""
        messages: list[str] = []
        ok, msg = self.check_staking(service.staking)
        if not ok:
            messages.append(f"staking: {msg}")
        if service.vesting is not None:
            ok, msg = self.check_vesting(service.vesting)
            if not ok:
                messages.append(f"vesting: {msg}")
        return (not messages), "; ".join(messages)

"""
Notifications emitted by the staking and vesting engines.

Events are delivered synchronously, after the mutation that produced
them has been committed and while the emitting engine still holds its
lock, so a subscriber always observes the post-operation state and the
history is in commit order.  They are for observability only: nothing inside
the engines reacts to them.

Subscribers can either register a callback or poll ``EventBus.history``.
The history keeps the most recent ``history_limit`` events only (pass
``0`` for no limit), so a long-running service does not grow without
bound.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import asdict, dataclass
from typing import Callable

logger = logging.getLogger("tokenlock.events")

DEFAULT_HISTORY_LIMIT = 10_000


@dataclass(frozen=True)
class StakeAdded:
    account: str
    package_name: str
    amount: int
    index: int


@dataclass(frozen=True)
class StakeWithdrawn:
    account: str
    index: int
    principal: int
    interest: int


@dataclass(frozen=True)
class StakingPausedChanged:
    account: str
    paused: bool


@dataclass(frozen=True)
class RewardsFunded:
    provider: str
    amount: int


@dataclass(frozen=True)
class TokensReleased:
    beneficiary: str
    amount: int


@dataclass(frozen=True)
class VestingRevoked:
    owner: str
    refund_to: str
    refunded_amount: int


@dataclass(frozen=True)
class OwnershipTransferred:
    previous_owner: str
    new_owner: str


def event_to_dict(event) -> dict:
    data = asdict(event)
    data["event"] = type(event).__name__
    return data


class EventBus:
    """Fan-out of engine events to subscribers, plus a bounded history."""

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self._subscribers: list[Callable] = []
        self.history: deque = deque(maxlen=history_limit if history_limit > 0 else None)
        self._history_lock = threading.Lock()

    def subscribe(self, callback: Callable) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable) -> bool:
        if callback in self._subscribers:
            self._subscribers.remove(callback)
            return True
        return False

    def emit(self, event) -> None:
        with self._history_lock:
            self.history.append(event)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                # operation already committed; observer failures are only logged
                logger.exception(
                    "subscriber %r failed on %s", callback, type(event).__name__
                )

    def events_of(self, kind: type) -> list:
        with self._history_lock:
            snapshot = list(self.history)
        return [e for e in snapshot if isinstance(e, kind)]

"""
Staking package catalog.

A package (tier) fixes how long a stake is locked and the flat interest
paid when it matures:

    name       lock  blocked  interest
    silver       7       3       8 %
    gold        30      10      12 %
    platinum    60      20      15 %

``blocked_days`` is recorded for every tier but does not open an early
exit: a stake is withdrawable only once the full ``lock_days`` have
elapsed.

The catalog is populated once and is read-only afterwards, so the terms
of an existing stake can never change under it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from tokenlock_core.errors import InvalidPackage, UnknownPackage
from tokenlock_core.precision import SECONDS_PER_DAY


@dataclass(frozen=True)
class Package:
    name: str
    lock_days: int
    blocked_days: int
    interest_percent: int

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidPackage("package name required")
        for field_name in ("lock_days", "blocked_days", "interest_percent"):
            value = getattr(self, field_name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidPackage(f"{field_name} must be an integer")
        if self.lock_days <= 0:
            raise InvalidPackage(f"{self.name}: lock_days must be positive")
        if not 0 <= self.blocked_days <= self.lock_days:
            raise InvalidPackage(
                f"{self.name}: blocked_days must be within 0..lock_days"
            )
        if self.interest_percent < 0:
            raise InvalidPackage(f"{self.name}: interest_percent must be >= 0")

    @property
    def lock_seconds(self) -> int:
        return self.lock_days * SECONDS_PER_DAY

    @property
    def blocked_seconds(self) -> int:
        return self.blocked_days * SECONDS_PER_DAY

    def maturity_time(self, start: int) -> int:
        return start + self.lock_seconds

    def interest_for(self, amount: int) -> int:
        """Interest paid at maturity; integer division rounds down."""
        return amount * self.interest_percent // 100

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "lock_days": self.lock_days,
            "blocked_days": self.blocked_days,
            "interest_percent": self.interest_percent,
        }


DEFAULT_PACKAGES: tuple[Package, ...] = (
    Package("silver", lock_days=7, blocked_days=3, interest_percent=8),
    Package("gold", lock_days=30, blocked_days=10, interest_percent=12),
    Package("platinum", lock_days=60, blocked_days=20, interest_percent=15),
)


class PackageCatalog:
    """Immutable name → Package registry."""

    def __init__(self, packages: Iterable[Package] = DEFAULT_PACKAGES):
        entries: dict[str, Package] = {}
        for package in packages:
            if package.name in entries:
                raise InvalidPackage(f"duplicate package name: {package.name}")
            entries[package.name] = package
        if not entries:
            raise InvalidPackage("catalog needs at least one package")
        self._packages = entries

    @classmethod
    def from_dicts(cls, rows: Iterable[dict]) -> PackageCatalog:
        """Build a catalog from config rows (``name``, ``lock_days``, ...)."""
        packages = []
        for row in rows:
            try:
                packages.append(Package(
                    name=row["name"],
                    lock_days=row["lock_days"],
                    blocked_days=row.get("blocked_days", 0),
                    interest_percent=row["interest_percent"],
                ))
            except KeyError as exc:
                raise InvalidPackage(f"package entry missing {exc.args[0]!r}") from exc
        return cls(packages)

    def get(self, name: str) -> Package:
        package = self._packages.get(name)
        if package is None:
            raise UnknownPackage(f"No staking package named {name!r}")
        return package

    def __contains__(self, name: object) -> bool:
        return name in self._packages

    def __iter__(self) -> Iterator[Package]:
        return iter(self._packages.values())

    def __len__(self) -> int:
        return len(self._packages)

    def names(self) -> list[str]:
        return list(self._packages)

    def to_list(self) -> list[dict]:
        return [p.to_dict() for p in self._packages.values()]

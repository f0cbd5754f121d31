"""
Precision constants and helpers for TokenLock.

Every amount handled by the engines is an integer count of base units,
following the 18-decimal convention of the underlying token:

    1 token = 1_000_000_000_000_000_000 base units

Percentages and vesting tranches are computed with integer division so
the truncation point is always explicit.  Floats never enter the
accounting path; these helpers exist for the edges (config files, API
input, display).
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext

# Number of decimal places of the token.
TOKEN_DECIMALS: int = 18

# Smallest representable unit.
BASE_UNITS_PER_TOKEN: int = 10 ** TOKEN_DECIMALS

SECONDS_PER_DAY: int = 86_400
SECONDS_PER_WEEK: int = 7 * SECONDS_PER_DAY


def to_base_units(value: int | str | Decimal) -> int:
    """Convert a whole-token amount into an exact base-unit integer.

    >>> to_base_units("10.8")
    10800000000000000000
    >>> to_base_units(2)
    2000000000000000000
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError("token amounts must be int, str or Decimal")
    if isinstance(value, int):
        return value * BASE_UNITS_PER_TOKEN
    try:
        dec = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"not a token amount: {value!r}") from exc
    if not dec.is_finite():
        raise ValueError(f"not a token amount: {value!r}")
    # Exact: the default 28-digit context would round large amounts.
    with localcontext() as ctx:
        ctx.prec = 120
        if dec.normalize().as_tuple().exponent < -TOKEN_DECIMALS:
            raise ValueError(
                f"{value!r} has more than {TOKEN_DECIMALS} fractional digits"
            )
        return int(dec.scaleb(TOKEN_DECIMALS))


def from_base_units(units: int) -> Decimal:
    """Convert a base-unit integer into a whole-token ``Decimal``."""
    with localcontext() as ctx:
        ctx.prec = 120
        return Decimal(units).scaleb(-TOKEN_DECIMALS)


def format_amount(units: int, symbol: str = "TKN") -> str:
    """Human-readable amount, trailing zeros trimmed."""
    text = f"{from_base_units(units):.{TOKEN_DECIMALS}f}".rstrip("0").rstrip(".")
    return f"{text} {symbol}"

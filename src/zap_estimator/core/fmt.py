"""
Decimal helpers and base-unit grid conversions.

Leg amounts are integers in base units. Prices, rates and value ratios are
Decimals; they are floored back onto the integer grid before any amount is
quoted or reported.
"""

import logging
from decimal import Decimal, getcontext, ROUND_FLOOR

from .exc import AmountDomainError
from .constants import TOLERANCE

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Global Decimal precision
# ---------------------------------------------------------------------------

#: Significant digits for value arithmetic. Set on the importing thread only;
#: venue worker threads apply it through a local context.
DEFAULT_DECIMAL_PRECISION: int = 40
getcontext().prec = DEFAULT_DECIMAL_PRECISION

INFINITY: Decimal = Decimal("Infinity")

DecimalLike = Decimal | int | str


def to_decimal(x: DecimalLike) -> Decimal:
    """Normalise numeric-like to Decimal (floats go through str to avoid binary noise)."""
    return x if isinstance(x, Decimal) else Decimal(str(x))


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def fmt_dec(x: Decimal, places: int = 18) -> str:
    """Format a Decimal in scientific notation with fixed fractional digits.

    The output is stable for logs and tests, e.g.:
      Decimal('1')        -> '1.000000000000000000E+0'
      Decimal('123456')   -> '1.234560000000000000E+5'
    """
    return format(x, f".{places}E")


# ---------------------------------------------------------------------------
# Grid helpers
# ---------------------------------------------------------------------------

def floor_units(x: Decimal) -> int:
    """Floor a non-negative Decimal onto the base-unit grid."""
    if x.is_nan() or x.is_infinite():
        raise AmountDomainError(f"cannot floor non-finite value {x}")
    if x < 0:
        raise AmountDomainError("negative input not allowed for floor_units")
    return int(x.to_integral_value(rounding=ROUND_FLOOR))


def require_units(name: str, value: int) -> int:
    """Validate a leg amount: an int (not bool) >= 0."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise AmountDomainError(f"{name} must be an integer amount of base units, got {value!r}")
    if value < 0:
        raise AmountDomainError(f"{name} must be >= 0, got {value}")
    return value


def apply_bps_floor(amount: int, keep_bps: int, denominator: int) -> int:
    """floor(amount * keep_bps / denominator) on the integer grid."""
    if amount <= 0 or keep_bps <= 0:
        return 0
    return (amount * keep_bps) // denominator


# ---------------------------------------------------------------------------
# Ratio helpers
# ---------------------------------------------------------------------------

def effective_rate(out_amount: int, in_amount: int) -> Decimal:
    """Realised OUT/IN rate of a quote."""
    if in_amount <= 0:
        raise AmountDomainError("effective_rate(): in_amount must be > 0")
    return Decimal(out_amount) / Decimal(in_amount)


def estimate_output(in_amount: int, rate: Decimal) -> int:
    """O(1) output estimate at a fixed effective rate, floored to base units."""
    if in_amount <= 0:
        return 0
    return floor_units(Decimal(in_amount) * rate)


def ratio_deviation(ratio: Decimal) -> Decimal:
    """|ratio - 1|; infinite for an infinite ratio."""
    if ratio.is_infinite():
        return INFINITY
    return abs(ratio - 1)


def is_balanced(ratio: Decimal, tolerance: Decimal = TOLERANCE) -> bool:
    """True iff |ratio - 1| < tolerance (strict)."""
    balanced = ratio_deviation(ratio) < tolerance
    logger.debug("is_balanced: ratio=%s tol=%s -> %s", ratio, tolerance, balanced)
    return balanced


__all__ = [
    "DEFAULT_DECIMAL_PRECISION",
    "INFINITY",
    "DecimalLike",
    "to_decimal",
    "fmt_dec",
    "floor_units",
    "require_units",
    "apply_bps_floor",
    "effective_rate",
    "estimate_output",
    "ratio_deviation",
    "is_balanced",
]

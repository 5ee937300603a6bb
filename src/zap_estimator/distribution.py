"""Deposit distribution → value ratio.

Redistributes a candidate (legA, legB) pair over a bin range with the pool's
deposit strategy, then measures the value ratio

    r = Σ(amount_a_i · price_i) / Σ(amount_b_i)

which is 1 when both legs carry equal value. The allocation depends on which
bin is active, so the ratio is re-evaluated at every search point.

Allocation rules:
- Bid side (bins with id <= active) receives legB in proportion to weight.
- Ask side (bins with id >= active) receives legA in proportion to weight / price,
  so equal weights hold equal value.
- The active bin sits on both sides. Ranges entirely above (below) the active
  bin take only legA (legB).
- Amounts are floored to base units, as the pool program does.

Strategy weights over [lo, hi] (d = distance from the active bin, span = the
distance to the range edge on the same side):
- SPOT:    1 everywhere.
- CURVE:   MAX - (MAX - MIN) · d / span   (concentrated at the active bin)
- BID_ASK: MIN + (MAX - MIN) · d / span   (concentrated at the edges)
"""

# NOTE:
#   Everything here is pure: the same inputs always give the same allocation,
#   which is what makes the search reproducible.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, List, Sequence, Tuple

from .core import Bin, AmountDomainError, INFINITY, floor_units
from .core.constants import STRATEGY_MAX_WEIGHT, STRATEGY_MIN_WEIGHT


class StrategyType(str, Enum):
    """Deposit-distribution curve of a binned pool position."""
    SPOT = "spot"
    CURVE = "curve"
    BID_ASK = "bid_ask"


@dataclass(frozen=True)
class BinAllocation:
    """Per-bin share of a hypothetical deposit."""
    bin_id: int
    price: Decimal
    amount_a: int
    amount_b: int


# -----------------------------
# Weights
# -----------------------------

def _side_weight(strategy: StrategyType, distance: int, span: int) -> Decimal:
    if strategy is StrategyType.SPOT:
        return Decimal(1)
    if span <= 0:
        # Only the active bin on this side
        return Decimal(STRATEGY_MAX_WEIGHT if strategy is StrategyType.CURVE else STRATEGY_MIN_WEIGHT)
    step = Decimal(STRATEGY_MAX_WEIGHT - STRATEGY_MIN_WEIGHT) * distance / span
    if strategy is StrategyType.CURVE:
        return Decimal(STRATEGY_MAX_WEIGHT) - step
    return Decimal(STRATEGY_MIN_WEIGHT) + step


def strategy_weights(strategy: StrategyType, lo: int, hi: int, active_id: int) -> List[Tuple[int, Decimal]]:
    """Return [(bin_id, weight)] for every bin id in [lo, hi]."""
    if lo > hi:
        raise AmountDomainError(f"empty bin range [{lo}, {hi}]")
    strategy = StrategyType(strategy)
    bid_span = active_id - lo
    ask_span = hi - active_id
    out: List[Tuple[int, Decimal]] = []
    for bin_id in range(lo, hi + 1):
        if bin_id < active_id:
            w = _side_weight(strategy, active_id - bin_id, bid_span)
        elif bin_id > active_id:
            w = _side_weight(strategy, bin_id - active_id, ask_span)
        else:
            w = _side_weight(strategy, 0, max(bid_span, ask_span))
        out.append((bin_id, w))
    return out


# -----------------------------
# Allocation
# -----------------------------

def distribute_amounts(bins: Sequence[Bin], active_id: int, amount_a: int, amount_b: int,
                       strategy: StrategyType) -> Tuple[BinAllocation, ...]:
    """Allocate (amount_a, amount_b) over `bins` (a contiguous id-ordered range)."""
    if not bins:
        raise AmountDomainError("distribute_amounts(): no bins in range")
    if amount_a < 0 or amount_b < 0:
        raise AmountDomainError("distribute_amounts(): amounts must be >= 0")
    weights = strategy_weights(strategy, bins[0].id, bins[-1].id, active_id)
    if len(weights) != len(bins):
        raise AmountDomainError("distribute_amounts(): bin range is not contiguous")

    total_bid = sum((w for b, (_, w) in zip(bins, weights) if b.id <= active_id), Decimal(0))
    total_ask = sum((w / b.price for b, (_, w) in zip(bins, weights) if b.id >= active_id), Decimal(0))

    allocations: List[BinAllocation] = []
    for b, (_, w) in zip(bins, weights):
        a_i = 0
        b_i = 0
        if b.id >= active_id and total_ask > 0 and amount_a > 0:
            a_i = floor_units(Decimal(amount_a) * (w / b.price) / total_ask)
        if b.id <= active_id and total_bid > 0 and amount_b > 0:
            b_i = floor_units(Decimal(amount_b) * w / total_bid)
        allocations.append(BinAllocation(bin_id=b.id, price=b.price, amount_a=a_i, amount_b=b_i))
    return tuple(allocations)


#: (bins, active_bin, amount_a, amount_b, strategy) -> per-bin allocations.
#: `active_bin` carries the active bin's current reserves; snapshot providers
#: may supply the pool program's own function with this shape.
DistributionFn = Callable[[Sequence[Bin], Bin, int, int, StrategyType], Sequence[BinAllocation]]


def weighted_distribution(bins: Sequence[Bin], active_bin: Bin, amount_a: int, amount_b: int,
                          strategy: StrategyType) -> Tuple[BinAllocation, ...]:
    """Default `DistributionFn`: the strategy weights above (active reserves unused)."""
    return distribute_amounts(bins, active_bin.id, amount_a, amount_b, strategy)


# -----------------------------
# Ratios
# -----------------------------

def value_ratio(allocations: Sequence[BinAllocation]) -> Decimal:
    """Σ(a_i·p_i) / Σ(b_i); +∞ when no legB was placed, 0 when no legA value was."""
    total_a_in_b = sum((Decimal(x.amount_a) * x.price for x in allocations), Decimal(0))
    total_b = sum(x.amount_b for x in allocations)
    if total_b == 0:
        return INFINITY
    if total_a_in_b == 0:
        return Decimal(0)
    return total_a_in_b / Decimal(total_b)


def constant_price_ratio(leg_a: int, leg_b: int, price: Decimal) -> Decimal:
    """Non-binned degenerate form: legA · price / legB."""
    if leg_b == 0:
        return INFINITY
    value_a = Decimal(leg_a) * price
    if value_a == 0:
        return Decimal(0)
    return value_a / Decimal(leg_b)


__all__ = [
    "StrategyType",
    "BinAllocation",
    "strategy_weights",
    "distribute_amounts",
    "DistributionFn",
    "weighted_distribution",
    "value_ratio",
    "constant_price_ratio",
]

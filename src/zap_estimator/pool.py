"""Binned (concentrated) pool snapshot: distribution model + local swap simulation.

A `BinnedPool` is the immutable liquidity snapshot for one top-level call:
the fetched `BinWindow`, the active bin, the position's deposit range
(active + min_delta .. active + max_delta) and its distribution strategy.

The swap simulation walks bins from the active bin in the direction of the
trade, consuming the opposite reserve at each bin price:
- A→B (sell A): walk down, take legB reserves, price falls.
- B→A (sell B): walk up, take legA reserves, price rises.
The pool fee is deducted on the input side. Walking off the fetched window
raises InsufficientLiquidityError (an absence at the venue boundary).

Re-centring never mutates: `recentred()` returns a new snapshot whose deposit
range follows the simulated post-trade active bin, or None when that range is
not fully inside the fetched window.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_CEILING
from typing import Iterable, Optional, Tuple

from .core import (
    Bin,
    BinWindow,
    SwapDirection,
    SwapSimulation,
    Venue,
    AmountDomainError,
    InsufficientLiquidityError,
    QuoteUnavailable,
    BPS_DENOMINATOR,
    floor_units,
    to_decimal,
)
from .core.fmt import apply_bps_floor, DecimalLike
from .distribution import StrategyType, BinAllocation, DistributionFn, weighted_distribution, value_ratio


def _ceil_units(x: Decimal) -> int:
    return int(x.to_integral_value(rounding=ROUND_CEILING))


def bin_price(bin_id: int, bin_step_bps: int) -> Decimal:
    """Price of a bin for a geometric bin step: (1 + step/10000) ** id."""
    return (Decimal(1) + Decimal(bin_step_bps) / BPS_DENOMINATOR) ** bin_id


@dataclass(frozen=True)
class BinnedPool:
    """Immutable binned-pool snapshot used by the distribution model and local quotes."""

    window: BinWindow
    active_id: int
    min_delta: int
    max_delta: int
    strategy: StrategyType = StrategyType.SPOT
    fee_bps: int = 0
    #: Deposit-distribution function; None uses the built-in strategy weights.
    distribute: Optional[DistributionFn] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "strategy", StrategyType(self.strategy))
        if self.min_delta > self.max_delta:
            raise AmountDomainError("min_delta must be <= max_delta")
        if self.fee_bps < 0 or self.fee_bps >= BPS_DENOMINATOR:
            raise AmountDomainError("fee_bps must satisfy 0 <= fee_bps < 10000")
        if self.window.get(self.active_id) is None:
            raise AmountDomainError(f"active bin {self.active_id} is not in the fetched window")
        lo, hi = self.deposit_range
        if not self.window.covers(lo, hi):
            raise AmountDomainError(f"fetched window does not cover deposit range [{lo}, {hi}]")

    @property
    def deposit_range(self) -> Tuple[int, int]:
        return self.active_id + self.min_delta, self.active_id + self.max_delta

    @property
    def active_bin(self) -> Bin:
        return self.window.get(self.active_id)

    # --- Distribution model ---
    def spot_price(self) -> Decimal:
        return self.active_bin.price

    def allocate(self, leg_a: int, leg_b: int) -> Tuple[BinAllocation, ...]:
        lo, hi = self.deposit_range
        distribute = self.distribute or weighted_distribution
        return tuple(distribute(self.window.between(lo, hi), self.active_bin, leg_a, leg_b, self.strategy))

    def value_ratio(self, leg_a: int, leg_b: int) -> Decimal:
        return value_ratio(self.allocate(leg_a, leg_b))

    def recentred(self, end_bin_id: Optional[int]) -> Optional["BinnedPool"]:
        """Snapshot with the deposit range re-centred on `end_bin_id`, if the window allows."""
        if end_bin_id is None or end_bin_id == self.active_id:
            return self
        if not self.window.covers(end_bin_id + self.min_delta, end_bin_id + self.max_delta):
            return None
        return dataclasses.replace(self, active_id=end_bin_id)

    # --- Local quote ---
    def _walk(self, direction: SwapDirection) -> Iterable[Bin]:
        if direction is SwapDirection.A_TO_B:
            return reversed(self.window.between(self.window.min_id, self.active_id))
        if direction is SwapDirection.B_TO_A:
            return self.window.between(self.active_id, self.window.max_id)
        raise AmountDomainError("simulate_swap(): direction must be A_TO_B or B_TO_A")

    def simulate_swap(self, amount_in: int, direction: SwapDirection, slippage_bps: int = 0) -> SwapSimulation:
        """Walk the fetched bins and return (consumed in, out, min out, end bin)."""
        if amount_in <= 0:
            raise QuoteUnavailable(Venue.ONCHAIN_POOL, "non-positive input")
        net_in = apply_bps_floor(amount_in, BPS_DENOMINATOR - self.fee_bps, BPS_DENOMINATOR)
        if net_in <= 0:
            raise QuoteUnavailable(Venue.ONCHAIN_POOL, "input is dust after fee")
        sell_a = direction is SwapDirection.A_TO_B

        remaining = net_in
        out = 0
        end_bin_id = self.active_id
        for b in self._walk(direction):
            if remaining <= 0:
                break
            end_bin_id = b.id
            reserve = b.amount_b if sell_a else b.amount_a
            if reserve <= 0:
                continue
            # Input needed to drain this bin's opposite reserve
            cap_in = _ceil_units(Decimal(reserve) / b.price) if sell_a else _ceil_units(Decimal(reserve) * b.price)
            if remaining >= cap_in:
                out += reserve
                remaining -= cap_in
                continue
            out += floor_units(Decimal(remaining) * b.price) if sell_a else floor_units(Decimal(remaining) / b.price)
            remaining = 0
        if remaining > 0:
            raise InsufficientLiquidityError(Venue.ONCHAIN_POOL, amount_in, amount_in - remaining)
        if out <= 0:
            raise QuoteUnavailable(Venue.ONCHAIN_POOL, "zero output")
        return SwapSimulation(
            in_amount=amount_in,
            out_amount=out,
            min_out_amount=apply_bps_floor(out, BPS_DENOMINATOR - slippage_bps, BPS_DENOMINATOR),
            fee_amount=amount_in - net_in,
            end_bin_id=end_bin_id,
        )


def make_window(active_id: int, lo: int, hi: int, *, bin_step_bps: int,
                reserve_a_per_bin: int, reserve_b_per_bin: int,
                base_price: DecimalLike = Decimal(1)) -> BinWindow:
    """Synthetic window: legB below the active bin, legA above, both in the active bin.

    Prices follow base_price · (1 + step/10000) ** (id - active_id).
    """
    if lo > active_id or hi < active_id:
        raise AmountDomainError("make_window(): active bin must lie in [lo, hi]")
    base = to_decimal(base_price)
    bins = []
    for bin_id in range(lo, hi + 1):
        price = base * bin_price(bin_id - active_id, bin_step_bps)
        amount_a = reserve_a_per_bin if bin_id >= active_id else 0
        amount_b = reserve_b_per_bin if bin_id <= active_id else 0
        bins.append(Bin(id=bin_id, price=price, amount_a=amount_a, amount_b=amount_b))
    return BinWindow(tuple(bins))


__all__ = [
    "BinnedPool",
    "bin_price",
    "make_window",
]

"""
Constant-product pool snapshot (fee on input): pool math only.

This is the non-binned pool model: the value ratio degenerates to
legA · price / legB with price = reserve_b / reserve_a, and the local quote is
the integer-domain constant-product swap. Pool fee is deducted on the *input*
side. The snapshot is frozen; simulating a swap never changes reserves.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from .core import (
    SwapDirection,
    SwapSimulation,
    AmountDomainError,
    QuoteUnavailable,
    Venue,
    BPS_DENOMINATOR,
    to_decimal,
)
from .core.fmt import apply_bps_floor, DecimalLike
from .distribution import constant_price_ratio

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConstantProductPool:
    """AMM(A, B) snapshot with constant product math and input-side fee.

    Reserves are in base units; `fee_bps` is the pool fee on the input amount.
    """

    reserve_a: int
    reserve_b: int
    fee_bps: int = 0

    def __post_init__(self):
        if self.reserve_a <= 0 or self.reserve_b <= 0:
            raise AmountDomainError("constant-product reserves must be > 0")
        if self.fee_bps < 0 or self.fee_bps >= BPS_DENOMINATOR:
            raise AmountDomainError("fee_bps must satisfy 0 <= fee_bps < 10000")

    # --- Distribution model ---
    def spot_price(self) -> Decimal:
        """legB per legA at the current reserves (no fee)."""
        return Decimal(self.reserve_b) / Decimal(self.reserve_a)

    def value_ratio(self, leg_a: int, leg_b: int) -> Decimal:
        return constant_price_ratio(leg_a, leg_b, self.spot_price())

    def recentred(self, end_bin_id: int | None) -> "ConstantProductPool":
        """No bins to re-centre; the snapshot stays as fetched."""
        return self

    # --- Local quote ---
    def _reserves_for(self, direction: SwapDirection) -> tuple[int, int]:
        if direction is SwapDirection.A_TO_B:
            return self.reserve_a, self.reserve_b
        if direction is SwapDirection.B_TO_A:
            return self.reserve_b, self.reserve_a
        raise AmountDomainError("simulate_swap(): direction must be A_TO_B or B_TO_A")

    def simulate_swap(self, amount_in: int, direction: SwapDirection, slippage_bps: int = 0) -> SwapSimulation:
        """Integer-domain OUT for a given IN, floored; raises QuoteUnavailable on dust."""
        x_units, y_units = self._reserves_for(direction)
        if amount_in <= 0:
            raise QuoteUnavailable(Venue.ONCHAIN_POOL, "non-positive input")
        keep = BPS_DENOMINATOR - self.fee_bps
        dx_eff = apply_bps_floor(amount_in, keep, BPS_DENOMINATOR)
        if dx_eff <= 0:
            raise QuoteUnavailable(Venue.ONCHAIN_POOL, "input is dust after fee")
        # Constant-product out, floored; strictly below reserve so never drains
        dy = (y_units * dx_eff) // (x_units + dx_eff)
        if dy <= 0:
            raise QuoteUnavailable(Venue.ONCHAIN_POOL, "zero output")
        min_out = apply_bps_floor(dy, BPS_DENOMINATOR - slippage_bps, BPS_DENOMINATOR)
        logger.debug("simulate_swap: dir=%s in=%d eff=%d out=%d", direction.value, amount_in, dx_eff, dy)
        return SwapSimulation(
            in_amount=amount_in,
            out_amount=dy,
            min_out_amount=min_out,
            fee_amount=amount_in - dx_eff,
        )


# --- Closed-form proportional deposits (constant-product pools) ---

def direct_pool_swap_amount(amount: DecimalLike, price: DecimalLike,
                            reserve_a: DecimalLike, reserve_b: DecimalLike) -> Decimal:
    """Amount of legA to swap so that the remainder and the proceeds match the reserve ratio.

    (amount - x) / A = x · p / B   =>   x = amount · B / (p · A + B)
    """
    amount, price = to_decimal(amount), to_decimal(price)
    a, b = to_decimal(reserve_a), to_decimal(reserve_b)
    denominator = price * a + b
    if denominator <= 0:
        raise AmountDomainError("direct_pool_swap_amount(): degenerate reserves/price")
    return amount * b / denominator


def indirect_pool_swap_amount(amount: DecimalLike, price_a: DecimalLike, price_b: DecimalLike,
                              reserve_a: DecimalLike, reserve_b: DecimalLike) -> Decimal:
    """Share of an external asset to route into legA (rest goes to legB).

    x · p_a / A = (amount - x) · p_b / B   =>   x = amount · p_b · A / (p_a · B + p_b · A)

    p_a / p_b are legA / legB units received per external unit.
    """
    amount = to_decimal(amount)
    pa, pb = to_decimal(price_a), to_decimal(price_b)
    a, b = to_decimal(reserve_a), to_decimal(reserve_b)
    denominator = pa * b + pb * a
    if denominator <= 0:
        raise AmountDomainError("indirect_pool_swap_amount(): degenerate reserves/prices")
    return amount * pb * a / denominator


__all__ = [
    "ConstantProductPool",
    "direct_pool_swap_amount",
    "indirect_pool_swap_amount",
]

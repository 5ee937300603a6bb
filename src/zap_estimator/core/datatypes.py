"""
Core datatypes used by the estimator.

These datatypes are intentionally minimal and immutable so that a search can
replace a snapshot wholesale instead of mutating it, and so that identical
inputs produce identical (comparable) results.

Notes:
- Leg amounts are plain ints in base units (arbitrary precision).
- Bin prices are Decimals quoted as legB base units per legA base unit.
- A venue failure is an absent `VenueQuote`, never an exception past the quote source.
"""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Optional, Tuple

from .exc import AmountDomainError
from .fmt import effective_rate, to_decimal


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------

class Venue(str, Enum):
    """Execution venue that produced a quote."""
    ONCHAIN_POOL = "onchain_pool"
    AGGREGATOR = "aggregator"


class SwapDirection(str, Enum):
    A_TO_B = "a_to_b"
    B_TO_A = "b_to_a"
    NO_SWAP = "no_swap"


class Leg(str, Enum):
    """One side of a two-sided position (also used as a single-sided target)."""
    A = "a"
    B = "b"


class EstimationStatus(str, Enum):
    BALANCED = "balanced"                                # inputs already within tolerance
    CONVERGED = "converged"                              # swap found within tolerance
    CONVERGENCE_NOT_REACHED = "convergence_not_reached"  # best-effort amount, high impact warning
    DEGENERATE_INPUT = "degenerate_input"                # zero-value legs / amount
    SINGLE_SIDED = "single_sided"                        # full conversion to one leg


# ---------------------------------------------------------------------------
# Liquidity snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Bin:
    """One discrete price interval with its own reserves.

    Fields:
    - id: bin id (price increases with id).
    - price: legB base units per legA base unit inside this bin.
    - amount_a / amount_b: reserves currently held by the bin.
    """

    id: int
    price: Decimal
    amount_a: int = 0
    amount_b: int = 0

    def __post_init__(self):
        object.__setattr__(self, "price", to_decimal(self.price))
        if not self.price.is_finite() or self.price <= 0:
            raise AmountDomainError(f"bin {self.id}: price must be finite and > 0")
        if self.amount_a < 0 or self.amount_b < 0:
            raise AmountDomainError(f"bin {self.id}: reserves must be >= 0")


@dataclass(frozen=True)
class BinWindow:
    """Immutable, id-ordered run of bins fetched once per top-level call.

    Never mutated; a refresh builds a new window (or a new pool around the same
    window) and replaces the old reference.
    """

    bins: Tuple[Bin, ...]
    _ids: Tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        bins = tuple(self.bins)
        if not bins:
            raise AmountDomainError("BinWindow requires at least one bin")
        for prev, nxt in zip(bins, bins[1:]):
            if nxt.id <= prev.id:
                raise AmountDomainError("BinWindow bins must be strictly ordered by id")
            if nxt.price <= prev.price:
                raise AmountDomainError("BinWindow prices must increase with bin id")
        object.__setattr__(self, "bins", bins)
        object.__setattr__(self, "_ids", tuple(b.id for b in bins))

    def __len__(self) -> int:
        return len(self.bins)

    def __iter__(self) -> Iterator[Bin]:
        return iter(self.bins)

    @property
    def min_id(self) -> int:
        return self._ids[0]

    @property
    def max_id(self) -> int:
        return self._ids[-1]

    def get(self, bin_id: int) -> Optional[Bin]:
        i = bisect_left(self._ids, bin_id)
        if i < len(self._ids) and self._ids[i] == bin_id:
            return self.bins[i]
        return None

    def between(self, lo: int, hi: int) -> Tuple[Bin, ...]:
        """Bins with lo <= id <= hi, in id order."""
        if lo > hi:
            return ()
        return self.bins[bisect_left(self._ids, lo):bisect_left(self._ids, hi + 1)]

    def covers(self, lo: int, hi: int) -> bool:
        """True iff every id in [lo, hi] is present."""
        return lo <= hi and len(self.between(lo, hi)) == hi - lo + 1


# ---------------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VenueQuote:
    """A concrete quote from one venue for one trial amount.

    `out_amount` is the expected output used for venue comparison;
    `min_out_amount` is the slippage floor handed to transaction building.
    `raw_payload` is opaque (aggregator route JSON or simulation record).
    """

    venue: Venue
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    min_out_amount: int
    raw_payload: Any = None
    end_bin_id: Optional[int] = None

    def __post_init__(self):
        if self.in_amount <= 0 or self.out_amount <= 0:
            raise AmountDomainError("VenueQuote requires in_amount > 0 and out_amount > 0")
        if self.min_out_amount < 0 or self.min_out_amount > self.out_amount:
            raise AmountDomainError("VenueQuote requires 0 <= min_out_amount <= out_amount")

    @property
    def rate(self) -> Decimal:
        """Effective OUT/IN rate realised by this quote."""
        return effective_rate(self.out_amount, self.in_amount)


# ---------------------------------------------------------------------------
# Local pool simulation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SwapSimulation:
    """Result of simulating a swap against a pre-fetched pool snapshot (no I/O).

    end_bin_id is the active bin after the trade for binned pools, None otherwise.
    """

    in_amount: int
    out_amount: int
    min_out_amount: int
    fee_amount: int = 0
    end_bin_id: Optional[int] = None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EstimationResult:
    """Outcome of a direct, rebalance or single-sided estimate.

    post_leg_a / post_leg_b always reconcile with the inputs:
      A_TO_B: post_a = leg_a - swap_amount, post_b = leg_b + expected_output
      B_TO_A: post_a = leg_a + expected_output, post_b = leg_b - swap_amount
      NO_SWAP: swap_amount = expected_output = 0 and post legs equal inputs.
    """

    direction: SwapDirection
    swap_amount: int
    expected_output: int
    post_leg_a: int
    post_leg_b: int
    status: EstimationStatus
    chosen_quote: Optional[VenueQuote] = None
    ratio: Optional[Decimal] = None
    iterations: int = 0

    @classmethod
    def no_swap(cls, leg_a: int, leg_b: int, status: EstimationStatus,
                *, ratio: Optional[Decimal] = None) -> "EstimationResult":
        return cls(
            direction=SwapDirection.NO_SWAP,
            swap_amount=0,
            expected_output=0,
            post_leg_a=leg_a,
            post_leg_b=leg_b,
            status=status,
            chosen_quote=None,
            ratio=ratio,
        )

    @classmethod
    def from_swap(cls, leg_a: int, leg_b: int, direction: SwapDirection,
                  swap_amount: int, expected_output: int, status: EstimationStatus,
                  *, quote: Optional[VenueQuote] = None, ratio: Optional[Decimal] = None,
                  iterations: int = 0) -> "EstimationResult":
        post_a, post_b = post_swap_legs(leg_a, leg_b, direction, swap_amount, expected_output)
        return cls(
            direction=direction,
            swap_amount=swap_amount,
            expected_output=expected_output,
            post_leg_a=post_a,
            post_leg_b=post_b,
            status=status,
            chosen_quote=quote,
            ratio=ratio,
            iterations=iterations,
        )

    def reconciles_with(self, leg_a: int, leg_b: int) -> bool:
        if self.direction is SwapDirection.NO_SWAP:
            return (self.swap_amount == 0 and self.expected_output == 0
                    and self.post_leg_a == leg_a and self.post_leg_b == leg_b)
        return (self.post_leg_a, self.post_leg_b) == post_swap_legs(
            leg_a, leg_b, self.direction, self.swap_amount, self.expected_output)


@dataclass(frozen=True)
class IndirectEstimationResult:
    """Outcome of an indirect (external asset) deposit: two aggregator swaps.

    swap_amount_to_a + swap_amount_to_b equals the external input amount;
    post legs are the quoted outputs of the two swaps.
    """

    swap_amount_to_a: int
    swap_amount_to_b: int
    post_leg_a: int
    post_leg_b: int
    status: EstimationStatus
    quote_to_a: Optional[VenueQuote] = None
    quote_to_b: Optional[VenueQuote] = None
    ratio: Optional[Decimal] = None
    iterations: int = 0


def post_swap_legs(leg_a: int, leg_b: int, direction: SwapDirection,
                   swap_amount: int, output: int) -> Tuple[int, int]:
    """Legs after spending `swap_amount` of the source leg and receiving `output`."""
    if direction is SwapDirection.A_TO_B:
        if swap_amount > leg_a:
            raise AmountDomainError("swap amount exceeds leg A")
        return leg_a - swap_amount, leg_b + output
    if direction is SwapDirection.B_TO_A:
        if swap_amount > leg_b:
            raise AmountDomainError("swap amount exceeds leg B")
        return leg_a + output, leg_b - swap_amount
    return leg_a, leg_b


__all__ = [
    "Venue",
    "SwapDirection",
    "Leg",
    "EstimationStatus",
    "Bin",
    "BinWindow",
    "VenueQuote",
    "SwapSimulation",
    "EstimationResult",
    "IndirectEstimationResult",
    "post_swap_legs",
]

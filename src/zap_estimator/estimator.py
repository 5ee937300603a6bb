"""Swap-amount estimation: closed-form initial guess plus bounded binary search.

Contracts
---------
- `initial_swap_estimate` assumes one constant price (legB per legA) and ignores
  impact. It returns the amount of the *source* leg to swap (legA units for
  A_TO_B, legB units for B_TO_A), or 0 when the legs are already within
  tolerance.
- `binary_search_to_balance` is the single search primitive shared by the
  direct, rebalance and indirect scenarios. It is parameterised by a
  `ratio_at(mid)` callable and by which way a ratio above 1 moves the bounds.
- Probes (`DirectSwapProbe`, `SplitProbe`) turn a trial amount into a value
  ratio using an O(1) effective-rate estimate. Only the on-chain venue is ever
  re-quoted inside the loop; the aggregator never is.

Invariants
----------
- `right - left` never increases between iterations.
- The returned amount always lies in the final `[left, right]`.
- Snapshots are replaced, never mutated; a probe is private to one call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from .core import (
    TOLERANCE,
    MAX_SEARCH_ITERATIONS,
    MIN_SEARCH_INTERVAL,
    SWAP_BIN_WINDOW_PADDING,
    DEFAULT_SLIPPAGE_BPS,
    SwapDirection,
    Venue,
    VenueQuote,
    QuoteUnavailable,
    AmountDomainError,
    EstimatorError,
    to_decimal,
    floor_units,
    estimate_output,
    is_balanced,
    post_swap_legs,
)
from .venues import PoolModel, QuoteVenue

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EstimatorConfig:
    """Search knobs. Defaults reproduce the production constants exactly."""

    tolerance: Decimal = TOLERANCE
    max_iterations: int = MAX_SEARCH_ITERATIONS
    min_interval: int = MIN_SEARCH_INTERVAL
    window_padding: int = SWAP_BIN_WINDOW_PADDING
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS

    def __post_init__(self):
        object.__setattr__(self, "tolerance", to_decimal(self.tolerance))
        if not self.tolerance.is_finite() or self.tolerance < 0:
            raise ValueError("tolerance must be finite and >= 0")
        if self.max_iterations <= 0:
            raise ValueError("max_iterations must be > 0")
        if self.min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        if self.window_padding < 0:
            raise ValueError("window_padding must be >= 0")
        if not 0 <= self.slippage_bps <= 10_000:
            raise ValueError("slippage_bps must be in [0, 10000]")


# ---------------------------------------------------------------------------
# Initial estimate
# ---------------------------------------------------------------------------

def initial_swap_estimate(leg_a: int, leg_b: int, price: Decimal, direction: SwapDirection,
                          tolerance: Decimal = TOLERANCE) -> int:
    """Zeroth-order swap amount at a constant price.

    vA = leg_a * price, vB = leg_b. Balanced when |vA - vB| / (vA + vB) < tolerance.
    A_TO_B: (vA - vB) / (2p) of legA.  B_TO_A: (vB - vA) / 2 of legB.
    A non-positive result for the requested direction is 0 (no swap).
    """
    price = to_decimal(price)
    if not price.is_finite() or price <= 0:
        raise AmountDomainError("initial_swap_estimate(): price must be finite and > 0")
    value_a = Decimal(leg_a) * price
    value_b = Decimal(leg_b)
    total = value_a + value_b
    if total == 0:
        return 0
    diff = value_a - value_b
    if abs(diff) / total < tolerance:
        return 0
    if direction is SwapDirection.A_TO_B:
        return floor_units(diff / (2 * price)) if diff > 0 else 0
    if direction is SwapDirection.B_TO_A:
        return floor_units(-diff / 2) if diff < 0 else 0
    return 0


# ---------------------------------------------------------------------------
# Search primitive
# ---------------------------------------------------------------------------

@dataclass
class SearchOutcome:
    """Result of one bounded search.

    trace holds (left, right, mid) for every iteration that evaluated a ratio.
    """

    amount: int
    converged: bool
    iterations: int
    left: int
    right: int
    ratio: Optional[Decimal] = None
    trace: List[Tuple[int, int, int]] = field(default_factory=list)


def binary_search_to_balance(left: int, right: int, ratio_at: Callable[[int], Decimal], *,
                             increase_when_above: bool,
                             config: EstimatorConfig | None = None) -> SearchOutcome:
    """Bisect [left, right] until ratio_at(mid) is balanced or the iteration cap is hit.

    Parameters
    ----------
    ratio_at : callable
        Value ratio of the post-swap legs for a trial amount.
    increase_when_above : bool
        True when a ratio above 1 means the amount is too small (left = mid).

    Termination is by convergence, by the interval floor (right - left <=
    min_interval, returning the midpoint) or by exhausting max_iterations
    (returning the last midpoint).
    """
    cfg = config or EstimatorConfig()
    if left < 0 or right < left:
        raise AmountDomainError(f"invalid search bounds [{left}, {right}]")

    best = (left + right) // 2
    ratio: Optional[Decimal] = None
    trace: List[Tuple[int, int, int]] = []
    for i in range(cfg.max_iterations):
        mid = (left + right) // 2
        if right - left <= cfg.min_interval:
            best = mid
            logger.debug("search floor reached at iter=%d [%d, %d] mid=%d", i, left, right, mid)
            break

        ratio = ratio_at(mid)
        trace.append((left, right, mid))
        logger.debug("search iter=%d [%d, %d] mid=%d ratio=%s", i, left, right, mid, ratio)
        if is_balanced(ratio, cfg.tolerance):
            return SearchOutcome(mid, True, len(trace), left, right, ratio, trace)

        if (ratio > 1) == increase_when_above:
            left = mid
        else:
            right = mid
        best = mid

    return SearchOutcome(best, False, len(trace), left, right, ratio, trace)


# ---------------------------------------------------------------------------
# Probes
# ---------------------------------------------------------------------------

class DirectSwapProbe:
    """Ratio of the post-swap legs for a trial amount of the source leg.

    Holds the search-local state: effective rate, active route and the
    distribution snapshot. While the route is the on-chain pool each call
    re-simulates at `mid` (no network I/O), refreshes the rate and, when the
    post-trade active bin stays inside the fetched window, swaps in a
    re-centred snapshot. A failed simulation permanently switches the route to
    the aggregator's initial effective rate.
    """

    def __init__(self, pool: PoolModel, leg_a: int, leg_b: int, direction: SwapDirection,
                 input_mint: str, output_mint: str, initial_quote: VenueQuote, *,
                 onchain: QuoteVenue | None = None,
                 fallback_rate: Decimal | None = None,
                 slippage_bps: int = DEFAULT_SLIPPAGE_BPS):
        self.pool = pool
        self.model = pool
        self.leg_a = leg_a
        self.leg_b = leg_b
        self.direction = direction
        self.input_mint = input_mint
        self.output_mint = output_mint
        self.rate = initial_quote.rate
        self.route = initial_quote.venue
        self.onchain = onchain
        self.fallback_rate = fallback_rate
        self.slippage_bps = slippage_bps
        self.refreshes = 0

    def _fall_back(self, mid: int, reason: str) -> None:
        logger.warning("on-chain refresh failed at mid=%d (%s); falling back to aggregator rate", mid, reason)
        self.route = Venue.AGGREGATOR
        if self.fallback_rate is not None:
            self.rate = self.fallback_rate

    def _refresh_onchain(self, mid: int) -> None:
        try:
            q = self.onchain.quote(self.input_mint, self.output_mint, mid, self.slippage_bps)
        except QuoteUnavailable as e:
            self._fall_back(mid, e.reason)
            return
        except EstimatorError:
            raise
        except Exception as e:
            self._fall_back(mid, repr(e))
            return
        self.rate = q.rate
        self.refreshes += 1
        recentred = self.pool.recentred(q.end_bin_id)
        if recentred is not None:
            self.model = recentred

    def legs_after(self, amount: int, output: int) -> Tuple[int, int]:
        return post_swap_legs(self.leg_a, self.leg_b, self.direction, amount, output)

    def __call__(self, mid: int) -> Decimal:
        if self.route is Venue.ONCHAIN_POOL and self.onchain is not None:
            self._refresh_onchain(mid)
        out = estimate_output(mid, self.rate)
        post_a, post_b = self.legs_after(mid, out)
        return self.model.value_ratio(post_a, post_b)


class SplitProbe:
    """Ratio after splitting an external amount: `mid` to legA, the rest to legB.

    Both outputs are O(1) estimates from the initial aggregator rates.
    """

    def __init__(self, pool: PoolModel, amount: int, rate_to_a: Decimal, rate_to_b: Decimal):
        self.pool = pool
        self.amount = amount
        self.rate_to_a = rate_to_a
        self.rate_to_b = rate_to_b

    def legs_at(self, amount_to_a: int) -> Tuple[int, int]:
        return (estimate_output(amount_to_a, self.rate_to_a),
                estimate_output(self.amount - amount_to_a, self.rate_to_b))

    def __call__(self, mid: int) -> Decimal:
        return self.pool.value_ratio(*self.legs_at(mid))


__all__ = [
    "EstimatorConfig",
    "initial_swap_estimate",
    "SearchOutcome",
    "binary_search_to_balance",
    "DirectSwapProbe",
    "SplitProbe",
]

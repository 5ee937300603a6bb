"""Scenario entry points: direct deposit, rebalance, indirect deposit, single-sided.

Each function is synchronous and side-effect free apart from venue reads. The
pool snapshot inside `PoolContext` is fetched once by the caller and never
mutated; every search keeps its own bounds and snapshot references.

Quote points
------------
- direct / rebalance: initial (all venues), optional per-iteration on-chain
  re-simulation (no I/O), final (all venues).
- indirect: initial 50/50 pair and final pair, aggregator only.
- single-sided: one quote point.
A mandatory quote point with no surviving venue raises NoRouteFound.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from .core import (
    Leg,
    Venue,
    VenueQuote,
    SwapDirection,
    EstimationStatus,
    EstimationResult,
    IndirectEstimationResult,
    NoRouteFound,
    ScenarioError,
    is_balanced,
    post_swap_legs,
    require_units,
)
from .aggregator import AggregatorClient
from .venues import (
    PoolModel,
    QuoteRequest,
    QuoteVenue,
    OnchainPoolVenue,
    AggregatorVenue,
    VenueQuoteSource,
    select_best,
)
from .estimator import (
    EstimatorConfig,
    initial_swap_estimate,
    binary_search_to_balance,
    DirectSwapProbe,
    SplitProbe,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolContext:
    """Everything one estimation call needs about the target pool."""

    pool: PoolModel
    mint_a: str
    mint_b: str
    venues: VenueQuoteSource
    config: EstimatorConfig = field(default_factory=EstimatorConfig)

    @classmethod
    def create(cls, pool: PoolModel, mint_a: str, mint_b: str, *,
               aggregator: AggregatorClient | None = None,
               extra_venues: Sequence[QuoteVenue] = (),
               config: EstimatorConfig | None = None) -> "PoolContext":
        """Context with the on-chain venue over `pool` plus, if given, the aggregator."""
        venues = [OnchainPoolVenue(pool, mint_a, mint_b)]
        if aggregator is not None:
            venues.append(AggregatorVenue(aggregator))
        venues.extend(extra_venues)
        return cls(pool, mint_a, mint_b, VenueQuoteSource(venues), config or EstimatorConfig())

    def mints_for(self, direction: SwapDirection) -> Tuple[str, str]:
        if direction is SwapDirection.A_TO_B:
            return self.mint_a, self.mint_b
        return self.mint_b, self.mint_a

    def mint_of(self, leg: Leg) -> str:
        return self.mint_a if leg is Leg.A else self.mint_b


def _log_status(scenario: str, status: EstimationStatus, ratio: Optional[Decimal]) -> None:
    if status is EstimationStatus.CONVERGENCE_NOT_REACHED:
        logger.warning("%s: convergence not reached (ratio=%s); high price impact or fragmented liquidity",
                       scenario, ratio)
    else:
        logger.debug("%s: %s ratio=%s", scenario, status.value, ratio)


# ---------------------------------------------------------------------------
# Direct / rebalance
# ---------------------------------------------------------------------------

def _balance_direct(leg_a: int, leg_b: int, ctx: PoolContext, scenario: str) -> EstimationResult:
    cfg = ctx.config
    if leg_a == 0 and leg_b == 0:
        return EstimationResult.no_swap(leg_a, leg_b, EstimationStatus.DEGENERATE_INPUT)

    ratio = ctx.pool.value_ratio(leg_a, leg_b)
    if is_balanced(ratio, cfg.tolerance):
        return EstimationResult.no_swap(leg_a, leg_b, EstimationStatus.BALANCED, ratio=ratio)

    direction = SwapDirection.A_TO_B if ratio > 1 else SwapDirection.B_TO_A
    input_mint, output_mint = ctx.mints_for(direction)
    amount = initial_swap_estimate(leg_a, leg_b, ctx.pool.spot_price(), direction, cfg.tolerance)
    if amount <= 0:
        # Distribution says unbalanced, the constant-price estimate says no swap
        _log_status(scenario, EstimationStatus.CONVERGENCE_NOT_REACHED, ratio)
        return EstimationResult.no_swap(leg_a, leg_b, EstimationStatus.CONVERGENCE_NOT_REACHED, ratio=ratio)

    quotes = ctx.venues.quote(input_mint, output_mint, amount, cfg.slippage_bps)
    initial = select_best(quotes)
    if initial is None:
        logger.warning("%s: no venue quoted the initial amount %d", scenario, amount)
        raise NoRouteFound(input_mint, output_mint, amount, stage="initial")
    logger.debug("%s: initial amount=%d via %s rate=%s", scenario, amount, initial.venue.value, initial.rate)

    ratio = ctx.pool.value_ratio(*post_swap_legs(leg_a, leg_b, direction, amount, initial.out_amount))
    if is_balanced(ratio, cfg.tolerance):
        return EstimationResult.from_swap(leg_a, leg_b, direction, amount, initial.out_amount,
                                          EstimationStatus.CONVERGED, quote=initial, ratio=ratio)

    fallback = next((q.rate for q in quotes if q.venue is Venue.AGGREGATOR), None)
    probe = DirectSwapProbe(
        ctx.pool, leg_a, leg_b, direction, input_mint, output_mint, initial,
        onchain=ctx.venues.venue(Venue.ONCHAIN_POOL),
        fallback_rate=fallback,
        slippage_bps=cfg.slippage_bps,
    )
    source = leg_a if direction is SwapDirection.A_TO_B else leg_b
    outcome = binary_search_to_balance(
        0, source, probe,
        increase_when_above=direction is SwapDirection.A_TO_B,
        config=cfg,
    )
    if outcome.amount <= 0:
        _log_status(scenario, EstimationStatus.CONVERGENCE_NOT_REACHED, outcome.ratio)
        return EstimationResult.no_swap(leg_a, leg_b, EstimationStatus.CONVERGENCE_NOT_REACHED,
                                        ratio=ctx.pool.value_ratio(leg_a, leg_b))

    final = ctx.venues.best(input_mint, output_mint, outcome.amount, cfg.slippage_bps, stage="final")
    model = ctx.pool.recentred(final.end_bin_id) if final.end_bin_id is not None else None
    model = model or probe.model
    ratio = model.value_ratio(*post_swap_legs(leg_a, leg_b, direction, outcome.amount, final.out_amount))
    status = (EstimationStatus.CONVERGED if is_balanced(ratio, cfg.tolerance)
              else EstimationStatus.CONVERGENCE_NOT_REACHED)
    _log_status(scenario, status, ratio)
    return EstimationResult.from_swap(leg_a, leg_b, direction, outcome.amount, final.out_amount,
                                      status, quote=final, ratio=ratio, iterations=outcome.iterations)


def direct_deposit_balance(amount: int, input_is_leg_a: bool, ctx: PoolContext) -> EstimationResult:
    """Balance a single-asset deposit of one pool leg against the live distribution."""
    require_units("amount", amount)
    leg_a, leg_b = (amount, 0) if input_is_leg_a else (0, amount)
    return _balance_direct(leg_a, leg_b, ctx, "direct")


def rebalance_existing_position(leg_a: int, leg_b: int, ctx: PoolContext) -> EstimationResult:
    """Swap the excess leg of an existing position until the value ratio is 1."""
    require_units("leg_a", leg_a)
    require_units("leg_b", leg_b)
    return _balance_direct(leg_a, leg_b, ctx, "rebalance")


# ---------------------------------------------------------------------------
# Indirect
# ---------------------------------------------------------------------------

def _require_external(input_mint: str, ctx: PoolContext) -> None:
    if input_mint in (ctx.mint_a, ctx.mint_b):
        raise ScenarioError(f"input asset {input_mint} is a pool leg; use the direct scenario")


def _quote_split(agg: VenueQuoteSource, input_mint: str, ctx: PoolContext,
                 to_a: int, to_b: int, stage: str) -> Tuple[Optional[VenueQuote], Optional[VenueQuote]]:
    """Both legs quoted concurrently; a zero-amount leg has no quote."""
    slippage = ctx.config.slippage_bps
    quotes_a, quotes_b = agg.quote_each([
        QuoteRequest(input_mint, ctx.mint_a, to_a, slippage),
        QuoteRequest(input_mint, ctx.mint_b, to_b, slippage),
    ])
    qa, qb = select_best(quotes_a), select_best(quotes_b)
    for q, mint, amt in ((qa, ctx.mint_a, to_a), (qb, ctx.mint_b, to_b)):
        if q is None and amt > 0:
            logger.warning("indirect: no aggregator quote for %d %s -> %s (%s)", amt, input_mint, mint, stage)
            raise NoRouteFound(input_mint, mint, amt, stage=stage)
    return qa, qb


def indirect_deposit_balance(amount: int, input_mint: str, ctx: PoolContext) -> IndirectEstimationResult:
    """Split an external asset between both legs via the aggregator so the legs balance.

    Starts from a 50/50 split and bisects the fraction routed to legA. The
    aggregator is queried only at the 50/50 point and at the final split.
    """
    require_units("amount", amount)
    _require_external(input_mint, ctx)
    cfg = ctx.config
    to_a = amount // 2
    to_b = amount - to_a
    if to_a == 0:
        return IndirectEstimationResult(0, 0, 0, 0, EstimationStatus.DEGENERATE_INPUT)

    agg = ctx.venues.only(Venue.AGGREGATOR)
    qa, qb = _quote_split(agg, input_mint, ctx, to_a, to_b, "initial")
    ratio = ctx.pool.value_ratio(qa.out_amount, qb.out_amount)
    if is_balanced(ratio, cfg.tolerance):
        return IndirectEstimationResult(to_a, to_b, qa.out_amount, qb.out_amount,
                                        EstimationStatus.CONVERGED, qa, qb, ratio)

    probe = SplitProbe(ctx.pool, amount, qa.rate, qb.rate)
    # Initial point already tells which half holds the answer
    left, right = (0, to_a) if ratio > 1 else (to_a, amount)
    outcome = binary_search_to_balance(left, right, probe, increase_when_above=False, config=cfg)

    final_a = outcome.amount
    final_b = amount - final_a
    fa, fb = _quote_split(agg, input_mint, ctx, final_a, final_b, "final")
    post_a = fa.out_amount if fa is not None else 0
    post_b = fb.out_amount if fb is not None else 0
    ratio = ctx.pool.value_ratio(post_a, post_b)
    status = (EstimationStatus.CONVERGED if is_balanced(ratio, cfg.tolerance)
              else EstimationStatus.CONVERGENCE_NOT_REACHED)
    _log_status("indirect", status, ratio)
    return IndirectEstimationResult(final_a, final_b, post_a, post_b, status, fa, fb, ratio,
                                    outcome.iterations)


# ---------------------------------------------------------------------------
# Single-sided
# ---------------------------------------------------------------------------

def single_sided_deposit(amount: int, input_is_leg_a: bool, target_leg: Leg,
                         ctx: PoolContext) -> EstimationResult:
    """Convert the whole input to `target_leg`, or nothing if it already is that leg."""
    require_units("amount", amount)
    leg_a, leg_b = (amount, 0) if input_is_leg_a else (0, amount)
    if amount == 0:
        return EstimationResult.no_swap(leg_a, leg_b, EstimationStatus.DEGENERATE_INPUT)
    input_leg = Leg.A if input_is_leg_a else Leg.B
    if input_leg is target_leg:
        return EstimationResult.no_swap(leg_a, leg_b, EstimationStatus.SINGLE_SIDED)

    direction = SwapDirection.A_TO_B if input_is_leg_a else SwapDirection.B_TO_A
    input_mint, output_mint = ctx.mints_for(direction)
    quote = ctx.venues.best(input_mint, output_mint, amount, ctx.config.slippage_bps, stage="single-sided")
    return EstimationResult.from_swap(leg_a, leg_b, direction, amount, quote.out_amount,
                                      EstimationStatus.SINGLE_SIDED, quote=quote)


def indirect_single_sided_deposit(amount: int, input_mint: str, target_leg: Leg,
                                  ctx: PoolContext) -> IndirectEstimationResult:
    """Convert a whole external-asset amount to one leg through the aggregator."""
    require_units("amount", amount)
    _require_external(input_mint, ctx)
    if amount == 0:
        return IndirectEstimationResult(0, 0, 0, 0, EstimationStatus.DEGENERATE_INPUT)
    agg = ctx.venues.only(Venue.AGGREGATOR)
    quote = agg.best(input_mint, ctx.mint_of(target_leg), amount, ctx.config.slippage_bps,
                     stage="single-sided")
    if target_leg is Leg.A:
        return IndirectEstimationResult(amount, 0, quote.out_amount, 0,
                                        EstimationStatus.SINGLE_SIDED, quote_to_a=quote)
    return IndirectEstimationResult(0, amount, 0, quote.out_amount,
                                    EstimationStatus.SINGLE_SIDED, quote_to_b=quote)


__all__ = [
    "PoolContext",
    "direct_deposit_balance",
    "rebalance_existing_position",
    "indirect_deposit_balance",
    "single_sided_deposit",
    "indirect_single_sided_deposit",
]

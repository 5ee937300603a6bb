"""Venue quoting: two tagged implementations behind one interface, joined concurrently.

- OnchainPoolVenue: simulates against a pre-fetched pool snapshot (no I/O), so
  the search may call it at every midpoint.
- AggregatorVenue: one HTTP call per quote; scenarios call it only at the
  initial and final quote points.

`VenueQuoteSource` fans every (request × venue) job out on a thread pool and
waits for all of them (never first-completed). A venue that raises
QuoteUnavailable, or any non-estimator fault such as a dropped connection, is
recorded as an absence; nothing is retried.

`select_best` keeps the strictly larger `out_amount`; on an exact tie the
on-chain pool wins, so the carried payload is deterministic.
"""
from __future__ import annotations

import decimal
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from .core import (
    Venue,
    VenueQuote,
    SwapDirection,
    QuoteUnavailable,
    NoRouteFound,
    AmountDomainError,
    EstimatorError,
    DEFAULT_DECIMAL_PRECISION,
)
from .aggregator import AggregatorClient
from .amm import ConstantProductPool
from .pool import BinnedPool

logger = logging.getLogger(__name__)

PoolModel = Union[BinnedPool, ConstantProductPool]

# Lower sorts first on ties
_VENUE_PREFERENCE: Dict[Venue, int] = {
    Venue.ONCHAIN_POOL: 0,
    Venue.AGGREGATOR: 1,
}


@dataclass(frozen=True)
class QuoteRequest:
    input_mint: str
    output_mint: str
    in_amount: int
    slippage_bps: int


class QuoteVenue(ABC):
    """One execution venue. `quote` raises QuoteUnavailable instead of returning None."""

    venue: Venue

    @abstractmethod
    def quote(self, input_mint: str, output_mint: str, in_amount: int, slippage_bps: int) -> VenueQuote:
        raise NotImplementedError


class OnchainPoolVenue(QuoteVenue):
    """Local pool simulation over a pre-fetched snapshot (no network I/O)."""

    venue = Venue.ONCHAIN_POOL

    def __init__(self, pool: PoolModel, mint_a: str, mint_b: str):
        if mint_a == mint_b:
            raise AmountDomainError("pool legs must be distinct assets")
        self.pool = pool
        self.mint_a = mint_a
        self.mint_b = mint_b

    def direction_for(self, input_mint: str, output_mint: str) -> SwapDirection:
        if (input_mint, output_mint) == (self.mint_a, self.mint_b):
            return SwapDirection.A_TO_B
        if (input_mint, output_mint) == (self.mint_b, self.mint_a):
            return SwapDirection.B_TO_A
        raise QuoteUnavailable(self.venue, f"pool does not trade {input_mint} -> {output_mint}")

    def quote(self, input_mint: str, output_mint: str, in_amount: int, slippage_bps: int) -> VenueQuote:
        direction = self.direction_for(input_mint, output_mint)
        try:
            sim = self.pool.simulate_swap(in_amount, direction, slippage_bps)
        except (ArithmeticError, AmountDomainError) as e:
            raise QuoteUnavailable(self.venue, f"simulation failed: {e}") from e
        return VenueQuote(
            venue=self.venue,
            input_mint=input_mint,
            output_mint=output_mint,
            in_amount=sim.in_amount,
            out_amount=sim.out_amount,
            min_out_amount=sim.min_out_amount,
            raw_payload=sim,
            end_bin_id=sim.end_bin_id,
        )


class AggregatorVenue(QuoteVenue):
    """External aggregator; every call is a network round trip."""

    venue = Venue.AGGREGATOR

    def __init__(self, client: AggregatorClient | None = None):
        self.client = client or AggregatorClient()

    @staticmethod
    def parse_quote(input_mint: str, output_mint: str, payload: Dict[str, Any]) -> VenueQuote:
        try:
            in_amount = int(payload["inAmount"])
            out_amount = int(payload["outAmount"])
            threshold = payload.get("otherAmountThreshold")
            min_out = int(threshold) if threshold is not None else out_amount
        except (KeyError, TypeError, ValueError) as e:
            raise QuoteUnavailable(Venue.AGGREGATOR, f"malformed quote: {e}") from e
        if in_amount <= 0 or out_amount <= 0:
            raise QuoteUnavailable(Venue.AGGREGATOR, "non-positive quoted amounts")
        return VenueQuote(
            venue=Venue.AGGREGATOR,
            input_mint=input_mint,
            output_mint=output_mint,
            in_amount=in_amount,
            out_amount=out_amount,
            min_out_amount=max(0, min(min_out, out_amount)),
            raw_payload=payload,
        )

    def quote(self, input_mint: str, output_mint: str, in_amount: int, slippage_bps: int) -> VenueQuote:
        payload = self.client.get_quote(input_mint, output_mint, in_amount, slippage_bps)
        return self.parse_quote(input_mint, output_mint, payload)


def select_best(quotes: Sequence[VenueQuote]) -> Optional[VenueQuote]:
    """Largest out_amount wins; exact ties prefer the on-chain pool. None if empty."""
    best: Optional[VenueQuote] = None
    for q in quotes:
        if best is None or q.out_amount > best.out_amount:
            best = q
        elif q.out_amount == best.out_amount and _VENUE_PREFERENCE[q.venue] < _VENUE_PREFERENCE[best.venue]:
            best = q
    return best


def _safe_quote(venue: QuoteVenue, req: QuoteRequest) -> Optional[VenueQuote]:
    # Worker threads start from the interpreter default context
    with decimal.localcontext() as ctx:
        ctx.prec = DEFAULT_DECIMAL_PRECISION
        try:
            return venue.quote(req.input_mint, req.output_mint, req.in_amount, req.slippage_bps)
        except QuoteUnavailable as e:
            logger.debug("%s absent for %s -> %s in=%d: %s", venue.venue.value,
                         req.input_mint, req.output_mint, req.in_amount, e.reason)
            return None
        except EstimatorError:
            raise
        except Exception as e:
            logger.warning("%s failed for %s -> %s in=%d: %r", venue.venue.value,
                           req.input_mint, req.output_mint, req.in_amount, e)
            return None


class VenueQuoteSource:
    """Queries every configured venue for each request and joins all outcomes."""

    def __init__(self, venues: Sequence[QuoteVenue]):
        self.venues = tuple(venues)

    def venue(self, tag: Venue) -> Optional[QuoteVenue]:
        return next((v for v in self.venues if v.venue is tag), None)

    def only(self, tag: Venue) -> "VenueQuoteSource":
        return VenueQuoteSource([v for v in self.venues if v.venue is tag])

    def quote_each(self, requests: Sequence[QuoteRequest]) -> List[List[VenueQuote]]:
        """Quote every request on every venue concurrently; results keep venue order."""
        jobs = [(i, v) for i, req in enumerate(requests) if req.in_amount > 0 for v in self.venues]
        results: List[List[VenueQuote]] = [[] for _ in requests]
        if not jobs:
            return results
        if len(jobs) == 1:
            i, v = jobs[0]
            outcomes = [_safe_quote(v, requests[i])]
        else:
            with ThreadPoolExecutor(max_workers=len(jobs)) as pool:
                futures = [pool.submit(_safe_quote, v, requests[i]) for i, v in jobs]
                wait(futures)
                outcomes = [f.result() for f in futures]
        for (i, _), q in zip(jobs, outcomes):
            if q is not None:
                results[i].append(q)
        return results

    def quote(self, input_mint: str, output_mint: str, in_amount: int, slippage_bps: int) -> List[VenueQuote]:
        """0, 1 or 2 quotes for one trial amount."""
        return self.quote_each([QuoteRequest(input_mint, output_mint, in_amount, slippage_bps)])[0]

    def best(self, input_mint: str, output_mint: str, in_amount: int, slippage_bps: int,
             *, stage: str = "") -> VenueQuote:
        """Best quote or NoRouteFound when every venue is absent."""
        chosen = select_best(self.quote(input_mint, output_mint, in_amount, slippage_bps))
        if chosen is None:
            logger.warning("no venue quoted %d %s -> %s (%s)", in_amount, input_mint, output_mint, stage or "quote")
            raise NoRouteFound(input_mint, output_mint, in_amount, stage=stage)
        return chosen


__all__ = [
    "PoolModel",
    "QuoteRequest",
    "QuoteVenue",
    "OnchainPoolVenue",
    "AggregatorVenue",
    "VenueQuoteSource",
    "select_best",
]

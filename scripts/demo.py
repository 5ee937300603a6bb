"""Offline demo: the four zap scenarios against a synthetic binned pool.

Scenarios covered:
D1) Direct deposit of legA into a spot position (on-chain pool vs aggregator)
D2) Direct deposit of legB into a curve position
D3) Indirect deposit of an external asset (aggregator only, split search)
D4) Rebalance of an existing position with excess legB
D5) Single-sided deposits (direct and indirect)

No network access: the "aggregator" is a local priced venue with a fee.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Callable, Dict, List
import argparse
import logging
import sys

from zap_estimator.core import Leg, Venue, VenueQuote, QuoteUnavailable, NoRouteFound, floor_units
from zap_estimator.distribution import StrategyType
from zap_estimator.pool import BinnedPool, make_window
from zap_estimator.venues import QuoteVenue, OnchainPoolVenue, VenueQuoteSource
from zap_estimator.scenarios import (
    PoolContext,
    direct_deposit_balance,
    rebalance_existing_position,
    indirect_deposit_balance,
    single_sided_deposit,
    indirect_single_sided_deposit,
)

SOL = "So11111111111111111111111111111111111111112"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"


# ---------- offline aggregator ----------

class PricedVenue(QuoteVenue):
    """Quotes at fixed mid prices (in USDC base units per base unit) minus a fee."""

    venue = Venue.AGGREGATOR

    def __init__(self, prices: Dict[str, Decimal], fee_bps: int = 20):
        self.prices = prices
        self.fee_bps = fee_bps

    def quote(self, input_mint, output_mint, in_amount, slippage_bps):
        if input_mint not in self.prices or output_mint not in self.prices:
            raise QuoteUnavailable(self.venue, "unknown mint")
        gross = Decimal(in_amount) * self.prices[input_mint] / self.prices[output_mint]
        out = floor_units(gross * (10_000 - self.fee_bps) / 10_000)
        if out <= 0:
            raise QuoteUnavailable(self.venue, "dust")
        return VenueQuote(self.venue, input_mint, output_mint, in_amount, out,
                          out * (10_000 - slippage_bps) // 10_000, raw_payload={"offline": True})


# ---------- pretty printers ----------

def brief_pool(pool: BinnedPool) -> str:
    lo, hi = pool.deposit_range
    return (f"binned pool: active={pool.active_id} price={pool.spot_price():.6f} "
            f"range=[{lo}, {hi}] window=[{pool.window.min_id}, {pool.window.max_id}] strategy={pool.strategy.value}")


def print_result(title: str, r) -> None:
    print(f"\n=== {title} ===")
    for key, value in vars(r).items():
        if isinstance(value, VenueQuote):
            value = f"{value.venue.value} in={value.in_amount} out={value.out_amount} min_out={value.min_out_amount}"
        elif isinstance(value, Decimal):
            value = f"{value:.8f}" if value.is_finite() else str(value)
        elif hasattr(value, "value"):
            value = value.value
        print(f"  • {key:>17}: {value}")


# ---------- build common fixtures ----------

def mk_pool(strategy: StrategyType = StrategyType.SPOT) -> BinnedPool:
    # SOL/USDC-like: 1 SOL (1e9) ~ 150 USDC (150e6), 25 bps bins, 4 bins of padding
    price = Decimal(150_000_000) / Decimal(1_000_000_000)
    window = make_window(0, -14, 14, bin_step_bps=25, reserve_a_per_bin=2_000 * 10**9,
                         reserve_b_per_bin=300_000 * 10**6, base_price=price)
    return BinnedPool(window, 0, -10, 10, strategy, fee_bps=10)


def mk_context(pool: BinnedPool) -> PoolContext:
    prices = {SOL: Decimal("0.15"), USDC: Decimal(1), BONK: Decimal("0.00002")}
    venues = VenueQuoteSource([OnchainPoolVenue(pool, SOL, USDC), PricedVenue(prices)])
    return PoolContext(pool, SOL, USDC, venues)


#
# -------- scenario registry helpers --------
class Scenario:
    def __init__(self, sid: str, fn: Callable[[], None]):
        self.sid = sid
        self.fn = fn

scenarios: List[Scenario] = []

def add(sid: str, fn: Callable[[], None]) -> None:
    scenarios.append(Scenario(sid, fn))

# ---------- run scenarios ----------
if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Zap swap-balancing demo (offline)")
    parser.add_argument("--only", type=str, default=None, help="Comma-separated scenario ids to run (e.g., D1,D3)")
    parser.add_argument("--skip", type=str, default=None, help="Comma-separated scenario ids to skip")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Logging level (DEBUG shows search iterations)")
    args = parser.parse_args(sys.argv[1:])
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    spot = mk_context(mk_pool())
    curve = mk_context(mk_pool(StrategyType.CURVE))
    print(brief_pool(spot.pool))

    # --------------- Register scenarios ---------------
    add("D1", lambda: print_result("D1) Direct deposit: 10 SOL into a spot position",
                                   direct_deposit_balance(10 * 10**9, True, spot)))
    add("D2", lambda: print_result("D2) Direct deposit: 5,000 USDC into a curve position",
                                   direct_deposit_balance(5_000 * 10**6, False, curve)))
    add("D3", lambda: print_result("D3) Indirect deposit: 50M BONK split into SOL/USDC",
                                   indirect_deposit_balance(50_000_000 * 10**5, BONK, spot)))
    add("D4", lambda: print_result("D4) Rebalance: 1 SOL + 900 USDC",
                                   rebalance_existing_position(10**9, 900 * 10**6, spot)))
    add("D5a", lambda: print_result("D5a) Single-sided: 2 SOL -> USDC",
                                    single_sided_deposit(2 * 10**9, True, Leg.B, spot)))
    add("D5b", lambda: print_result("D5b) Indirect single-sided: 10M BONK -> SOL",
                                    indirect_single_sided_deposit(10_000_000 * 10**5, BONK, Leg.A, spot)))

    only = {s.strip() for s in args.only.split(",")} if args.only else None
    skip = {s.strip() for s in args.skip.split(",")} if args.skip else set()
    for sc in scenarios:
        if (only is not None and sc.sid not in only) or sc.sid in skip:
            continue
        try:
            sc.fn()
        except NoRouteFound as e:
            print(f"\n=== {sc.sid} failed: {e} ===")

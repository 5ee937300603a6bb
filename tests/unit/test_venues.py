import decimal
import logging
import threading

import pytest
from decimal import Decimal

from zap_estimator.core import (
    Venue,
    VenueQuote,
    SwapDirection,
    QuoteUnavailable,
    NoRouteFound,
    AmountDomainError,
    DEFAULT_DECIMAL_PRECISION,
)
from zap_estimator.amm import ConstantProductPool
from zap_estimator.venues import (
    OnchainPoolVenue,
    AggregatorVenue,
    QuoteRequest,
    VenueQuoteSource,
    select_best,
)

from fakes import MINT_A, MINT_B, MINT_X, BrokenVenue, FakeVenue, flat, failing, pair_curves, source


def _q(venue: Venue, out: int) -> VenueQuote:
    return VenueQuote(venue, MINT_A, MINT_B, in_amount=1000, out_amount=out, min_out_amount=out)


class StubClient:
    def __init__(self, payload):
        self.payload = payload
        self.calls = []

    def get_quote(self, input_mint, output_mint, amount, slippage_bps):
        self.calls.append((input_mint, output_mint, amount, slippage_bps))
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


# -----------------------------
# On-chain pool venue
# -----------------------------

def test_onchain_venue_wraps_local_simulation():
    pool = ConstantProductPool(1000, 2000, 30)
    venue = OnchainPoolVenue(pool, MINT_A, MINT_B)
    q = venue.quote(MINT_A, MINT_B, 100, 50)
    sim = pool.simulate_swap(100, SwapDirection.A_TO_B, 50)
    print("onchain quote:", q)
    assert q.venue is Venue.ONCHAIN_POOL
    assert (q.in_amount, q.out_amount, q.min_out_amount) == (sim.in_amount, sim.out_amount, sim.min_out_amount)
    assert q.raw_payload == sim
    assert venue.direction_for(MINT_B, MINT_A) is SwapDirection.B_TO_A


def test_onchain_venue_rejects_foreign_pairs():
    venue = OnchainPoolVenue(ConstantProductPool(1000, 2000), MINT_A, MINT_B)
    with pytest.raises(QuoteUnavailable):
        venue.quote(MINT_X, MINT_A, 100, 50)
    with pytest.raises(AmountDomainError):
        OnchainPoolVenue(ConstantProductPool(1000, 2000), MINT_A, MINT_A)


def test_onchain_venue_reports_end_bin(shallow_binned_pool):
    venue = OnchainPoolVenue(shallow_binned_pool, MINT_A, MINT_B)
    q = venue.quote(MINT_B, MINT_A, 1500, 0)
    assert q.end_bin_id == 1


# -----------------------------
# Aggregator venue
# -----------------------------

def test_aggregator_venue_parses_payload_and_caps_threshold():
    payload = {"inAmount": "1000", "outAmount": "1990", "otherAmountThreshold": "5000", "routePlan": []}
    client = StubClient(payload)
    q = AggregatorVenue(client).quote(MINT_X, MINT_A, 1000, 50)
    print("aggregator quote:", q)
    assert q.venue is Venue.AGGREGATOR
    assert (q.in_amount, q.out_amount, q.min_out_amount) == (1000, 1990, 1990)
    assert q.raw_payload is payload
    assert client.calls == [(MINT_X, MINT_A, 1000, 50)]


def test_aggregator_venue_threshold_and_malformed_payloads():
    q = AggregatorVenue.parse_quote(MINT_X, MINT_A, {"inAmount": "10", "outAmount": "20", "otherAmountThreshold": "19"})
    assert q.min_out_amount == 19
    for bad in ({"inAmount": "x", "outAmount": "1"}, {"outAmount": "1"}, {"inAmount": "0", "outAmount": "0"}):
        with pytest.raises(QuoteUnavailable):
            AggregatorVenue.parse_quote(MINT_X, MINT_A, bad)


# -----------------------------
# Best-quote selection
# -----------------------------

def test_select_best_prefers_larger_output():
    best = select_best([_q(Venue.ONCHAIN_POOL, 900), _q(Venue.AGGREGATOR, 901)])
    assert best.venue is Venue.AGGREGATOR
    assert select_best([_q(Venue.AGGREGATOR, 5)]).out_amount == 5
    assert select_best([]) is None


@pytest.mark.parametrize("order", [(Venue.ONCHAIN_POOL, Venue.AGGREGATOR), (Venue.AGGREGATOR, Venue.ONCHAIN_POOL)])
def test_select_best_exact_tie_prefers_onchain_pool(order):
    best = select_best([_q(v, 1000) for v in order])
    assert best.venue is Venue.ONCHAIN_POOL


# -----------------------------
# Quote source
# -----------------------------

def test_quote_source_joins_both_venues_in_order():
    onchain = FakeVenue(Venue.ONCHAIN_POOL, pair_curves(2))
    agg = FakeVenue(Venue.AGGREGATOR, pair_curves("2.1"))
    quotes = source(onchain, agg).quote(MINT_A, MINT_B, 1000, 50)
    print("quotes:", [(q.venue.value, q.out_amount) for q in quotes])
    assert [q.venue for q in quotes] == [Venue.ONCHAIN_POOL, Venue.AGGREGATOR]
    assert [q.out_amount for q in quotes] == [2000, 2100]
    assert len(onchain.calls) == len(agg.calls) == 1


def test_quote_source_records_absence_instead_of_raising():
    agg = FakeVenue(Venue.AGGREGATOR, pair_curves(2))
    src = source(failing(Venue.ONCHAIN_POOL), agg)
    quotes = src.quote(MINT_A, MINT_B, 1000, 50)
    assert [q.venue for q in quotes] == [Venue.AGGREGATOR]

    dead = source(failing(Venue.ONCHAIN_POOL), failing(Venue.AGGREGATOR))
    assert dead.quote(MINT_A, MINT_B, 1000, 50) == []
    with pytest.raises(NoRouteFound) as ei:
        dead.best(MINT_A, MINT_B, 1000, 50, stage="final")
    assert ei.value.in_amount == 1000
    assert ei.value.stage == "final"


def test_quote_each_fans_out_requests_and_skips_zero_amounts():
    agg = FakeVenue(Venue.AGGREGATOR, {(MINT_X, MINT_A): flat(1), (MINT_X, MINT_B): flat(2)})
    src = VenueQuoteSource([agg])
    to_a, to_b, nothing = src.quote_each([
        QuoteRequest(MINT_X, MINT_A, 600, 50),
        QuoteRequest(MINT_X, MINT_B, 400, 50),
        QuoteRequest(MINT_X, MINT_B, 0, 50),
    ])
    assert [q.out_amount for q in to_a] == [600]
    assert [q.out_amount for q in to_b] == [800]
    assert nothing == []
    assert sorted(c[2] for c in agg.calls) == [400, 600]


def test_quote_source_venue_lookup_and_filter():
    onchain = FakeVenue(Venue.ONCHAIN_POOL, {})
    agg = FakeVenue(Venue.AGGREGATOR, {})
    src = source(onchain, agg)
    assert src.venue(Venue.AGGREGATOR) is agg
    assert src.only(Venue.AGGREGATOR).venues == (agg,)
    assert source(agg).venue(Venue.ONCHAIN_POOL) is None


def test_quote_source_treats_transport_fault_as_absence(caplog):
    caplog.set_level(logging.WARNING, logger="zap_estimator.venues")
    broken = BrokenVenue(Venue.AGGREGATOR, ConnectionError("socket reset"))
    onchain = FakeVenue(Venue.ONCHAIN_POOL, pair_curves(2))
    quotes = source(onchain, broken).quote(MINT_A, MINT_B, 1000, 50)
    print("quotes:", [(q.venue.value, q.out_amount) for q in quotes])
    assert [q.venue for q in quotes] == [Venue.ONCHAIN_POOL]
    assert broken.calls == 1
    assert any("socket reset" in r.getMessage() for r in caplog.records)

    # Single job runs inline and degrades the same way
    with pytest.raises(NoRouteFound):
        source(BrokenVenue(Venue.AGGREGATOR, TimeoutError())).best(MINT_A, MINT_B, 1000, 50)


def test_quote_source_propagates_estimator_errors():
    class BadAmounts(FakeVenue):
        def quote(self, input_mint, output_mint, in_amount, slippage_bps):
            raise AmountDomainError("negative reserve")

    with pytest.raises(AmountDomainError):
        source(BadAmounts(Venue.ONCHAIN_POOL, {})).quote(MINT_A, MINT_B, 1000, 50)


class RendezvousVenue(FakeVenue):
    """Blocks in `quote` until every venue sharing the barrier has been called."""

    def __init__(self, venue: Venue, barrier: threading.Barrier) -> None:
        super().__init__(venue, pair_curves(2))
        self.barrier = barrier

    def quote(self, input_mint, output_mint, in_amount, slippage_bps):
        self.barrier.wait()
        return super().quote(input_mint, output_mint, in_amount, slippage_bps)


def test_quote_source_waits_for_all_venues_concurrently():
    # Sequential quoting would break the barrier and lose both quotes
    barrier = threading.Barrier(2, timeout=2)
    onchain = RendezvousVenue(Venue.ONCHAIN_POOL, barrier)
    agg = RendezvousVenue(Venue.AGGREGATOR, barrier)
    dead = failing(Venue.AGGREGATOR)
    quotes = source(onchain, dead, agg).quote(MINT_A, MINT_B, 1000, 50)
    print("quotes:", [(q.venue.value, q.out_amount) for q in quotes])
    assert [q.venue for q in quotes] == [Venue.ONCHAIN_POOL, Venue.AGGREGATOR]
    assert [q.out_amount for q in quotes] == [2000, 2000]
    assert len(dead.calls) == 1
    assert not barrier.broken


def test_venue_workers_quote_at_estimator_precision():
    seen = []

    class PrecisionVenue(FakeVenue):
        def quote(self, input_mint, output_mint, in_amount, slippage_bps):
            seen.append(decimal.getcontext().prec)
            return super().quote(input_mint, output_mint, in_amount, slippage_bps)

    src = source(PrecisionVenue(Venue.ONCHAIN_POOL, pair_curves(2)),
                 PrecisionVenue(Venue.AGGREGATOR, pair_curves(2)))
    assert len(src.quote(MINT_A, MINT_B, 1000, 50)) == 2
    assert seen == [DEFAULT_DECIMAL_PRECISION, DEFAULT_DECIMAL_PRECISION]
    # Interpreter-wide template context stays untouched
    assert decimal.DefaultContext.prec == 28

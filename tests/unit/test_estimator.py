import pytest
from decimal import Decimal

from zap_estimator.core import Venue, VenueQuote, SwapDirection, AmountDomainError
from zap_estimator.estimator import (
    EstimatorConfig,
    initial_swap_estimate,
    binary_search_to_balance,
    DirectSwapProbe,
    SplitProbe,
)
from zap_estimator.venues import OnchainPoolVenue

from fakes import MINT_A, MINT_B, BrokenVenue, FakeVenue, failing, pair_curves


L = 1_000_000


def _ratio_falling(m: int) -> Decimal:
    # Balanced at L / 3, decreasing in m
    return Decimal(L - m) / Decimal(2 * m) if m else Decimal("Infinity")


def _show(outcome):
    for i, (lo, hi, mid) in enumerate(outcome.trace):
        print(f"    iter={i:02d} [{lo}, {hi}] width={hi - lo} mid={mid}")


# -----------------------------
# Configuration
# -----------------------------

def test_config_defaults_and_validation():
    cfg = EstimatorConfig()
    assert cfg.tolerance == Decimal("0.0001")
    assert (cfg.max_iterations, cfg.min_interval, cfg.window_padding, cfg.slippage_bps) == (20, 1000, 4, 50)
    assert EstimatorConfig(tolerance="0.001").tolerance == Decimal("0.001")
    for kwargs in ({"tolerance": Decimal(-1)}, {"max_iterations": 0}, {"min_interval": -1},
                   {"slippage_bps": 10_001}):
        with pytest.raises(ValueError):
            EstimatorConfig(**kwargs)


# -----------------------------
# Initial estimate
# -----------------------------

def test_initial_estimate_a_to_b_halves_value_gap():
    # vA = 2,000,000, vB = 0 -> (vA - vB) / (2p) = 500,000
    assert initial_swap_estimate(1_000_000, 0, Decimal(2), SwapDirection.A_TO_B) == 500_000


def test_initial_estimate_b_to_a_is_symmetric():
    assert initial_swap_estimate(500_000, 2_000_000, Decimal(1), SwapDirection.B_TO_A) == 750_000


def test_initial_estimate_no_swap_cases():
    # Already within tolerance
    assert initial_swap_estimate(1_000_000, 2_000_050, Decimal(2), SwapDirection.A_TO_B) == 0
    # Wrong direction for the excess
    assert initial_swap_estimate(1_000_000, 0, Decimal(2), SwapDirection.B_TO_A) == 0
    assert initial_swap_estimate(0, 0, Decimal(2), SwapDirection.A_TO_B) == 0
    with pytest.raises(AmountDomainError):
        initial_swap_estimate(1, 1, Decimal(0), SwapDirection.A_TO_B)


# -----------------------------
# Search primitive
# -----------------------------

def test_search_converges_on_first_midpoint():
    out = binary_search_to_balance(0, L, lambda m: Decimal(L - m) / Decimal(m), increase_when_above=True)
    assert out.converged
    assert (out.amount, out.iterations) == (L // 2, 1)


def test_search_bounds_shrink_and_contain_result():
    out = binary_search_to_balance(0, L, _ratio_falling, increase_when_above=True)
    _show(out)
    widths = [hi - lo for lo, hi, _ in out.trace] + [out.right - out.left]
    assert all(b <= a for a, b in zip(widths, widths[1:]))
    assert out.left <= out.amount <= out.right
    # The tolerance band around L/3 is narrower than the interval floor
    assert not out.converged
    assert out.right - out.left <= 1000
    assert out.amount == (out.left + out.right) // 2
    assert abs(out.amount - L // 3) <= 1000


def test_search_moves_left_when_ratio_rises_with_amount():
    # Ratio increasing in m (e.g. legA bought with the swap), balanced at 3L/4
    ratio = lambda m: Decimal(m) / Decimal(3 * (L - m))
    out = binary_search_to_balance(0, L, ratio, increase_when_above=False)
    _show(out)
    assert out.converged
    assert out.amount == 750_000


def test_search_respects_iteration_cap():
    cfg = EstimatorConfig(max_iterations=3)
    out = binary_search_to_balance(0, L, _ratio_falling, increase_when_above=True, config=cfg)
    _show(out)
    assert out.iterations == 3 and not out.converged
    assert out.left <= out.amount <= out.right
    assert out.amount == out.trace[-1][2]


def test_search_rejects_inverted_bounds():
    with pytest.raises(AmountDomainError):
        binary_search_to_balance(10, 5, _ratio_falling, increase_when_above=True)


# -----------------------------
# Probes
# -----------------------------

def _initial(venue: Venue, out: int = 2000) -> VenueQuote:
    return VenueQuote(venue, MINT_A, MINT_B, in_amount=1000, out_amount=out, min_out_amount=out)


def test_direct_probe_refreshes_rate_from_onchain_simulation(cp_pool_price_2):
    onchain = OnchainPoolVenue(cp_pool_price_2, MINT_A, MINT_B)
    probe = DirectSwapProbe(cp_pool_price_2, 10**9, 0, SwapDirection.A_TO_B, MINT_A, MINT_B,
                            _initial(Venue.ONCHAIN_POOL, out=1500), onchain=onchain)
    assert probe.rate == Decimal("1.5")
    ratio = probe(10**8)
    print("probe ratio:", ratio, "rate:", probe.rate)
    assert probe.refreshes == 1
    assert Decimal("1.99") < probe.rate < Decimal(2)
    assert ratio > 1  # 9e8 legA left vs ~2e8 legB received


def test_direct_probe_falls_back_to_aggregator_rate_permanently(cp_pool_price_2):
    dead = failing(Venue.ONCHAIN_POOL)
    probe = DirectSwapProbe(cp_pool_price_2, 10**9, 0, SwapDirection.A_TO_B, MINT_A, MINT_B,
                            _initial(Venue.ONCHAIN_POOL), onchain=dead, fallback_rate=Decimal("1.9"))
    probe(4 * 10**8)
    assert probe.route is Venue.AGGREGATOR
    assert probe.rate == Decimal("1.9")
    probe(3 * 10**8)
    assert len(dead.calls) == 1


def test_direct_swap_ratio_treats_transport_fault_as_onchain_failure(cp_pool_price_2):
    broken = BrokenVenue(Venue.ONCHAIN_POOL, OSError("rpc unreachable"))
    ratio_at = DirectSwapProbe(cp_pool_price_2, 10**9, 0, SwapDirection.A_TO_B, MINT_A, MINT_B,
                               _initial(Venue.ONCHAIN_POOL), onchain=broken, fallback_rate=Decimal("1.9"))
    ratio = ratio_at(4 * 10**8)
    print("fallback ratio:", ratio)
    assert ratio_at.route is Venue.AGGREGATOR
    assert ratio_at.rate == Decimal("1.9")
    assert ratio_at.refreshes == 0
    ratio_at(3 * 10**8)
    assert broken.calls == 1


def test_direct_probe_keeps_rate_without_aggregator_quote(cp_pool_price_2):
    probe = DirectSwapProbe(cp_pool_price_2, 10**9, 0, SwapDirection.A_TO_B, MINT_A, MINT_B,
                            _initial(Venue.ONCHAIN_POOL), onchain=failing(Venue.ONCHAIN_POOL))
    probe(4 * 10**8)
    assert probe.route is Venue.AGGREGATOR
    assert probe.rate == Decimal(2)


def test_direct_probe_never_requotes_aggregator_route(cp_pool_price_2):
    onchain = FakeVenue(Venue.ONCHAIN_POOL, pair_curves(2))
    probe = DirectSwapProbe(cp_pool_price_2, 10**9, 0, SwapDirection.A_TO_B, MINT_A, MINT_B,
                            _initial(Venue.AGGREGATOR), onchain=onchain)
    assert probe(5 * 10**8) == Decimal(1)
    assert onchain.calls == []


def test_direct_probe_recentres_model_inside_window(shallow_binned_pool):
    # B -> A of 1500 ends in bin 1; deposit range [0, 2] is inside the fetched [-3, 3]
    onchain = OnchainPoolVenue(shallow_binned_pool, MINT_A, MINT_B)
    first = onchain.quote(MINT_B, MINT_A, 1000, 0)
    probe = DirectSwapProbe(shallow_binned_pool, 0, 3000, SwapDirection.B_TO_A, MINT_B, MINT_A,
                            first, onchain=onchain, slippage_bps=0)
    probe(1500)
    assert probe.model.active_id == 1
    assert probe.pool.active_id == 0


def test_split_probe_estimates_both_legs(cp_pool_price_1):
    probe = SplitProbe(cp_pool_price_1, 1_000_000, Decimal(1), Decimal(2))
    assert probe.legs_at(600_000) == (600_000, 800_000)
    assert probe(600_000) == Decimal("0.75")

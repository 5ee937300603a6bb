from __future__ import annotations

import pytest

# Import project primitives
from zap_estimator.amm import ConstantProductPool
from zap_estimator.pool import BinnedPool, make_window


# -----------------------------
# Pytest fixtures
# -----------------------------

@pytest.fixture()
def cp_pool_price_1() -> ConstantProductPool:
    return ConstantProductPool(10**15, 10**15)


@pytest.fixture()
def cp_pool_price_2() -> ConstantProductPool:
    return ConstantProductPool(10**15, 2 * 10**15)


@pytest.fixture()
def deep_binned_pool() -> BinnedPool:
    """Spot position over [-2, 2] with deep bins, so swaps stay in the active bin."""
    window = make_window(0, -6, 6, bin_step_bps=10, reserve_a_per_bin=10**15, reserve_b_per_bin=10**15)
    return BinnedPool(window, 0, -2, 2)


@pytest.fixture()
def shallow_binned_pool() -> BinnedPool:
    """1000 units per bin and a 1% bin step, for bin-crossing simulations."""
    window = make_window(0, -3, 3, bin_step_bps=100, reserve_a_per_bin=1000, reserve_b_per_bin=1000)
    return BinnedPool(window, 0, -1, 1)

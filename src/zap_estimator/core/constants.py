"""
Zap Estimator Core Constants
============================

Search and tolerance constants shared by every scenario, plus the default
venue parameters. Only plain values live here; Decimal helpers are in `fmt.py`.
"""

# NOTE: The three search constants below are shared by the direct, rebalance and
# indirect searches; changing one changes every scenario.

from decimal import Decimal

# ---------------------------------------------------------------------------
# Balance search
# ---------------------------------------------------------------------------

#: Relative tolerance on the value ratio: |ratio - 1| < TOLERANCE is balanced (0.01%).
TOLERANCE: Decimal = Decimal("0.0001")

#: Hard cap on binary-search iterations.
MAX_SEARCH_ITERATIONS: int = 20

#: Search stops once right - left <= MIN_SEARCH_INTERVAL base units.
MIN_SEARCH_INTERVAL: int = 1_000

#: Bins fetched on each side of the deposit range; bounds the mid-loop re-centre.
SWAP_BIN_WINDOW_PADDING: int = 4


# ---------------------------------------------------------------------------
# Venue defaults
# ---------------------------------------------------------------------------

#: Slippage tolerance applied to quotes when the caller gives none (bps).
DEFAULT_SLIPPAGE_BPS: int = 50

#: Basis-point denominator.
BPS_DENOMINATOR: int = 10_000

#: Aggregator endpoint and route restrictions.
DEFAULT_AGGREGATOR_URL: str = "https://lite-api.jup.ag"
DEFAULT_MAX_ACCOUNTS: int = 50
DEFAULT_AGGREGATOR_TIMEOUT: float = 10.0


# ---------------------------------------------------------------------------
# Distribution weights (curve / bid-ask strategies)
# ---------------------------------------------------------------------------

STRATEGY_MAX_WEIGHT: int = 2000
STRATEGY_MIN_WEIGHT: int = 200


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

__all__ = [
    "TOLERANCE",
    "MAX_SEARCH_ITERATIONS",
    "MIN_SEARCH_INTERVAL",
    "SWAP_BIN_WINDOW_PADDING",
    "DEFAULT_SLIPPAGE_BPS",
    "BPS_DENOMINATOR",
    "DEFAULT_AGGREGATOR_URL",
    "DEFAULT_MAX_ACCOUNTS",
    "DEFAULT_AGGREGATOR_TIMEOUT",
    "STRATEGY_MAX_WEIGHT",
    "STRATEGY_MIN_WEIGHT",
]

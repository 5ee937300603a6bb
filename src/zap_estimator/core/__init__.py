"""
Zap Estimator Core
==================

Unified exports for the dependency-free primitives: search constants, the
exception hierarchy, Decimal/grid helpers and the immutable datatypes every
other module passes around.
"""

# NOTE:
#   Amounts are ints in base units end to end. Decimal appears only for prices,
#   rates and value ratios, and is floored back onto the grid before quoting.

from .constants import (
    TOLERANCE,
    MAX_SEARCH_ITERATIONS,
    MIN_SEARCH_INTERVAL,
    SWAP_BIN_WINDOW_PADDING,
    DEFAULT_SLIPPAGE_BPS,
    BPS_DENOMINATOR,
    DEFAULT_AGGREGATOR_URL,
    DEFAULT_MAX_ACCOUNTS,
    DEFAULT_AGGREGATOR_TIMEOUT,
)

from .fmt import (
    DEFAULT_DECIMAL_PRECISION,
    INFINITY,
    to_decimal,
    fmt_dec,
    floor_units,
    require_units,
    effective_rate,
    estimate_output,
    ratio_deviation,
    is_balanced,
)

from .datatypes import (
    Venue,
    SwapDirection,
    Leg,
    EstimationStatus,
    Bin,
    BinWindow,
    VenueQuote,
    SwapSimulation,
    EstimationResult,
    IndirectEstimationResult,
    post_swap_legs,
)

from .exc import (
    EstimatorError,
    AmountDomainError,
    QuoteUnavailable,
    InsufficientLiquidityError,
    NoRouteFound,
    ScenarioError,
)

__all__ = [
    # constants
    "TOLERANCE",
    "MAX_SEARCH_ITERATIONS",
    "MIN_SEARCH_INTERVAL",
    "SWAP_BIN_WINDOW_PADDING",
    "DEFAULT_SLIPPAGE_BPS",
    "BPS_DENOMINATOR",
    "DEFAULT_AGGREGATOR_URL",
    "DEFAULT_MAX_ACCOUNTS",
    "DEFAULT_AGGREGATOR_TIMEOUT",
    # fmt
    "DEFAULT_DECIMAL_PRECISION",
    "INFINITY",
    "to_decimal",
    "fmt_dec",
    "floor_units",
    "require_units",
    "effective_rate",
    "estimate_output",
    "ratio_deviation",
    "is_balanced",
    # datatypes
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
    # exceptions
    "EstimatorError",
    "AmountDomainError",
    "QuoteUnavailable",
    "InsufficientLiquidityError",
    "NoRouteFound",
    "ScenarioError",
]

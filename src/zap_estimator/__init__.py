# Top-level API for zap_estimator.
"""
Top-level API for zap_estimator.

This module exposes the stable interface used by transaction-building code:
  - Scenario entry points: direct deposit, rebalance, indirect deposit, single-sided
  - PoolContext / EstimatorConfig: per-call inputs
  - Venues: on-chain pool simulation and the HTTP aggregator behind one interface
  - Pool snapshots: binned (concentrated) pools and constant-product pools

Every call is side-effect free apart from aggregator reads; results are
immutable dataclasses whose post-swap legs reconcile exactly with the inputs.
"""

from __future__ import annotations

from .scenarios import (
    PoolContext,
    direct_deposit_balance,
    rebalance_existing_position,
    indirect_deposit_balance,
    single_sided_deposit,
    indirect_single_sided_deposit,
)
from .estimator import EstimatorConfig, initial_swap_estimate, binary_search_to_balance
from .venues import (
    QuoteVenue,
    OnchainPoolVenue,
    AggregatorVenue,
    VenueQuoteSource,
    select_best,
)
from .aggregator import AggregatorClient, AggregatorConfig
from .pool import BinnedPool, make_window
from .amm import ConstantProductPool
from .distribution import StrategyType, DistributionFn, weighted_distribution
from .snapshot import PoolSnapshot, load_pool_snapshot, pool_from_dict

# Core data types
from .core import (
    Bin,
    BinWindow,
    Leg,
    Venue,
    VenueQuote,
    SwapDirection,
    EstimationStatus,
    EstimationResult,
    IndirectEstimationResult,
    EstimatorError,
    QuoteUnavailable,
    NoRouteFound,
    ScenarioError,
)

__all__ = [
    # scenarios
    "PoolContext",
    "direct_deposit_balance",
    "rebalance_existing_position",
    "indirect_deposit_balance",
    "single_sided_deposit",
    "indirect_single_sided_deposit",
    # search
    "EstimatorConfig",
    "initial_swap_estimate",
    "binary_search_to_balance",
    # venues
    "QuoteVenue",
    "OnchainPoolVenue",
    "AggregatorVenue",
    "VenueQuoteSource",
    "select_best",
    "AggregatorClient",
    "AggregatorConfig",
    # pools
    "BinnedPool",
    "make_window",
    "ConstantProductPool",
    "StrategyType",
    "DistributionFn",
    "weighted_distribution",
    "PoolSnapshot",
    "load_pool_snapshot",
    "pool_from_dict",
    # core types
    "Bin",
    "BinWindow",
    "Leg",
    "Venue",
    "VenueQuote",
    "SwapDirection",
    "EstimationStatus",
    "EstimationResult",
    "IndirectEstimationResult",
    "EstimatorError",
    "QuoteUnavailable",
    "NoRouteFound",
    "ScenarioError",
]

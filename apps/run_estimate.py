#!/usr/bin/env python3
"""Estimate a zap swap against a pool snapshot file and print the result as JSON.

Examples:
  run_estimate.py --snapshot pool.json direct --amount 1000000000 --input-leg a
  run_estimate.py --snapshot pool.json rebalance --leg-a 500000 --leg-b 2000000
  run_estimate.py --snapshot pool.json --aggregator indirect --amount 1000000 --input-mint <mint>
  run_estimate.py --snapshot pool.json single-sided --amount 1000000 --input-leg a --target-leg b
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import fields, is_dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from zap_estimator.core import Leg, EstimatorError
from zap_estimator.aggregator import AggregatorClient, AggregatorConfig
from zap_estimator.estimator import EstimatorConfig
from zap_estimator.scenarios import (
    PoolContext,
    direct_deposit_balance,
    rebalance_existing_position,
    indirect_deposit_balance,
    single_sided_deposit,
    indirect_single_sided_deposit,
)
from zap_estimator.snapshot import load_pool_snapshot

logger = logging.getLogger("run_estimate")


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Zap swap-balancing estimator")
    p.add_argument("--snapshot", required=True, help="Path to pool snapshot JSON")
    p.add_argument("--aggregator", action="store_true", help="Also quote through the live aggregator (ZAP_AGGREGATOR_* env)")
    p.add_argument("--slippage-bps", type=int, default=None, help="Slippage tolerance in bps")
    p.add_argument("--tolerance", type=str, default=None, help="Balance tolerance, e.g. 0.0001")
    p.add_argument("--log-level", default="WARNING", help="Logging level")
    sub = p.add_subparsers(dest="scenario", required=True)

    d = sub.add_parser("direct", help="Balance a single-leg deposit")
    d.add_argument("--amount", type=int, required=True)
    d.add_argument("--input-leg", choices=["a", "b"], default="a")

    r = sub.add_parser("rebalance", help="Rebalance an existing position")
    r.add_argument("--leg-a", type=int, required=True)
    r.add_argument("--leg-b", type=int, required=True)

    i = sub.add_parser("indirect", help="Split an external asset into both legs")
    i.add_argument("--amount", type=int, required=True)
    i.add_argument("--input-mint", required=True)
    i.add_argument("--target-leg", choices=["a", "b"], default=None, help="Convert everything to one leg")

    s = sub.add_parser("single-sided", help="Convert a whole leg deposit to one side")
    s.add_argument("--amount", type=int, required=True)
    s.add_argument("--input-leg", choices=["a", "b"], default="a")
    s.add_argument("--target-leg", choices=["a", "b"], required=True)
    return p.parse_args()


def to_jsonable(obj: Any) -> Any:
    """Dataclasses / Enums / Decimals -> JSON-friendly values (amounts as strings)."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, bool) or obj is None:
        return obj
    if isinstance(obj, int):
        return str(obj)
    if isinstance(obj, dict):
        return {k: to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    return obj


def build_context(args: argparse.Namespace) -> PoolContext:
    snap = load_pool_snapshot(args.snapshot)
    overrides = {}
    if args.slippage_bps is not None:
        overrides["slippage_bps"] = args.slippage_bps
    if args.tolerance is not None:
        overrides["tolerance"] = Decimal(args.tolerance)
    aggregator = AggregatorClient(AggregatorConfig.from_env()) if args.aggregator else None
    return PoolContext.create(snap.pool, snap.mint_a, snap.mint_b,
                              aggregator=aggregator, config=EstimatorConfig(**overrides))


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    ctx = build_context(args)
    leg = {"a": Leg.A, "b": Leg.B}

    try:
        if args.scenario == "direct":
            result = direct_deposit_balance(args.amount, args.input_leg == "a", ctx)
        elif args.scenario == "rebalance":
            result = rebalance_existing_position(args.leg_a, args.leg_b, ctx)
        elif args.scenario == "indirect" and args.target_leg:
            result = indirect_single_sided_deposit(args.amount, args.input_mint, leg[args.target_leg], ctx)
        elif args.scenario == "indirect":
            result = indirect_deposit_balance(args.amount, args.input_mint, ctx)
        else:
            result = single_sided_deposit(args.amount, args.input_leg == "a", leg[args.target_leg], ctx)
    except EstimatorError as e:
        logger.error("estimation failed: %s", e)
        return 1

    print(json.dumps(to_jsonable(result), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Read-only liquidity snapshot providers.

Live providers implement `SnapshotProvider` (active bin + bins by id range);
`fetch_binned_pool` turns one into a `BinnedPool`, fetching `padding` extra
bins on each side of the deposit range so the mid-search re-centre has room.
A provider may also hand over the pool program's deposit-distribution
function; the pool then measures value ratios with it instead of the
built-in strategy weights.

File-backed snapshots are JSON documents of two kinds:

  {"kind": "binned", "mint_a": ..., "mint_b": ..., "active_id": 0,
   "min_delta": -10, "max_delta": 10, "strategy": "spot", "fee_bps": 0,
   "bins": [{"id": -14, "price": "0.965", "amount_a": 0, "amount_b": 1000}, ...]}

  {"kind": "constant_product", "mint_a": ..., "mint_b": ...,
   "reserve_a": 1000000, "reserve_b": 2000000, "fee_bps": 25}

A binned document may replace "bins" with a synthetic ladder:
"bin_step_bps", "reserve_a_per_bin", "reserve_b_per_bin" (and optional
"base_price", "padding").
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence

from .core import Bin, BinWindow, AmountDomainError, SWAP_BIN_WINDOW_PADDING
from .amm import ConstantProductPool
from .distribution import DistributionFn, StrategyType
from .pool import BinnedPool, make_window
from .venues import PoolModel


class SnapshotProvider(Protocol):
    def active_bin_id(self) -> int:
        ...

    def fetch_bins(self, lo: int, hi: int) -> Sequence[Bin]:
        ...

    def deposit_distribution(self) -> Optional[DistributionFn]:
        """The pool program's own distribution function, or None for the built-in weights."""
        ...


def fetch_binned_pool(provider: SnapshotProvider, min_delta: int, max_delta: int, *,
                      strategy: StrategyType = StrategyType.SPOT, fee_bps: int = 0,
                      padding: int = SWAP_BIN_WINDOW_PADDING) -> BinnedPool:
    """One fetch per top-level call: [active + min_delta - padding, active + max_delta + padding]."""
    active = provider.active_bin_id()
    bins = provider.fetch_bins(active + min_delta - padding, active + max_delta + padding)
    return BinnedPool(BinWindow(tuple(bins)), active, min_delta, max_delta, strategy, fee_bps,
                      distribute=provider.deposit_distribution())


@dataclass(frozen=True)
class PoolSnapshot:
    pool: PoolModel
    mint_a: str
    mint_b: str


def _binned_from_dict(doc: Dict[str, Any]) -> BinnedPool:
    active = int(doc["active_id"])
    min_delta = int(doc["min_delta"])
    max_delta = int(doc["max_delta"])
    if "bins" in doc:
        window = BinWindow(tuple(
            Bin(id=int(b["id"]), price=str(b["price"]),
                amount_a=int(b.get("amount_a", 0)), amount_b=int(b.get("amount_b", 0)))
            for b in doc["bins"]
        ))
    else:
        padding = int(doc.get("padding", SWAP_BIN_WINDOW_PADDING))
        window = make_window(
            active, active + min_delta - padding, active + max_delta + padding,
            bin_step_bps=int(doc["bin_step_bps"]),
            reserve_a_per_bin=int(doc["reserve_a_per_bin"]),
            reserve_b_per_bin=int(doc["reserve_b_per_bin"]),
            base_price=str(doc.get("base_price", "1")),
        )
    return BinnedPool(window, active, min_delta, max_delta,
                      StrategyType(doc.get("strategy", "spot")), int(doc.get("fee_bps", 0)))


def pool_from_dict(doc: Dict[str, Any]) -> PoolSnapshot:
    """Build a snapshot from a decoded JSON document; malformed input is AmountDomainError."""
    kind = doc.get("kind")
    try:
        if kind == "binned":
            pool: PoolModel = _binned_from_dict(doc)
        elif kind == "constant_product":
            pool = ConstantProductPool(int(doc["reserve_a"]), int(doc["reserve_b"]), int(doc.get("fee_bps", 0)))
        else:
            raise AmountDomainError(f"unknown snapshot kind {kind!r}")
        return PoolSnapshot(pool, str(doc["mint_a"]), str(doc["mint_b"]))
    except (KeyError, TypeError) as e:
        raise AmountDomainError(f"malformed {kind} snapshot: {e}") from e


def load_pool_snapshot(path: str) -> PoolSnapshot:
    with open(path, "r", encoding="utf-8") as f:
        return pool_from_dict(json.load(f))


__all__ = [
    "SnapshotProvider",
    "fetch_binned_pool",
    "PoolSnapshot",
    "pool_from_dict",
    "load_pool_snapshot",
]

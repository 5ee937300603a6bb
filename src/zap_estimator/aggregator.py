"""Aggregator HTTP client: GET {base_url}/swap/v1/quote.

Any failure (transport error, non-2xx status, unparsable body, `error` payload,
missing amounts) is raised as QuoteUnavailable so the quote source can record
an absence. The raw JSON is returned untouched; it is the routing payload the
transaction builder consumes later.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from .core import (
    Venue,
    QuoteUnavailable,
    DEFAULT_AGGREGATOR_URL,
    DEFAULT_MAX_ACCOUNTS,
    DEFAULT_AGGREGATOR_TIMEOUT,
)

logger = logging.getLogger(__name__)

QUOTE_PATH = "/swap/v1/quote"


def _flag(value: bool) -> str:
    return "true" if value else "false"


@dataclass(frozen=True)
class AggregatorConfig:
    """Aggregator endpoint and route restrictions."""
    base_url: str = DEFAULT_AGGREGATOR_URL
    api_key: Optional[str] = None
    max_accounts: int = DEFAULT_MAX_ACCOUNTS
    only_direct_routes: bool = True
    restrict_intermediate_tokens: bool = True
    dynamic_slippage: bool = False
    timeout: float = DEFAULT_AGGREGATOR_TIMEOUT

    @classmethod
    def from_env(cls) -> "AggregatorConfig":
        """Read ZAP_AGGREGATOR_URL / ZAP_AGGREGATOR_API_KEY / ZAP_AGGREGATOR_TIMEOUT."""
        timeout = os.getenv("ZAP_AGGREGATOR_TIMEOUT")
        return cls(
            base_url=os.getenv("ZAP_AGGREGATOR_URL", DEFAULT_AGGREGATOR_URL),
            api_key=os.getenv("ZAP_AGGREGATOR_API_KEY") or None,
            timeout=float(timeout) if timeout else DEFAULT_AGGREGATOR_TIMEOUT,
        )


class AggregatorClient:
    """Thin requests-based client for the aggregator quote endpoint."""

    def __init__(self, config: AggregatorConfig | None = None, *, session: requests.Session | None = None):
        self.config = config or AggregatorConfig()
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.api_key:
            headers["x-api-key"] = self.config.api_key
        return headers

    def quote_params(self, input_mint: str, output_mint: str, amount: int, slippage_bps: int) -> Dict[str, str]:
        cfg = self.config
        return {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
            "maxAccounts": str(cfg.max_accounts),
            "onlyDirectRoutes": _flag(cfg.only_direct_routes),
            "restrictIntermediateTokens": _flag(cfg.restrict_intermediate_tokens),
            "dynamicSlippage": _flag(cfg.dynamic_slippage),
        }

    def get_quote(self, input_mint: str, output_mint: str, amount: int, slippage_bps: int) -> Dict[str, Any]:
        """Fetch one quote; raises QuoteUnavailable on any failure."""
        url = self.config.base_url.rstrip("/") + QUOTE_PATH
        params = self.quote_params(input_mint, output_mint, amount, slippage_bps)
        try:
            resp = self.session.get(url, params=params, headers=self._headers(), timeout=self.config.timeout)
        except requests.RequestException as e:
            raise QuoteUnavailable(Venue.AGGREGATOR, f"transport error: {e}") from e
        if not resp.ok:
            raise QuoteUnavailable(Venue.AGGREGATOR, f"HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as e:
            raise QuoteUnavailable(Venue.AGGREGATOR, "response is not JSON") from e
        if not isinstance(data, dict):
            raise QuoteUnavailable(Venue.AGGREGATOR, "unexpected response shape")
        if "error" in data:
            raise QuoteUnavailable(Venue.AGGREGATOR, f"aggregator error: {data['error']}")
        if not data.get("inAmount") or not data.get("outAmount"):
            raise QuoteUnavailable(Venue.AGGREGATOR, "missing inAmount/outAmount")
        logger.debug("aggregator quote %s -> %s in=%s out=%s", input_mint, output_mint,
                     data["inAmount"], data["outAmount"])
        return data


__all__ = [
    "QUOTE_PATH",
    "AggregatorConfig",
    "AggregatorClient",
]

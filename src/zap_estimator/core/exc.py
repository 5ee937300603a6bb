"""
Core exception types for zap_estimator.

These are dependency-free and may be imported by all modules. Venue failures
are represented by `QuoteUnavailable` and never leave the quote source;
`NoRouteFound` is the only venue-related error a scenario raises.
"""

__all__ = [
    "EstimatorError",
    "AmountDomainError",
    "QuoteUnavailable",
    "InsufficientLiquidityError",
    "NoRouteFound",
    "ScenarioError",
]


class EstimatorError(Exception):
    """Base class for every error raised by zap_estimator."""
    pass


class AmountDomainError(EstimatorError, ValueError):
    """Raised when inputs violate the non-negative domain or basic preconditions."""
    pass


class QuoteUnavailable(EstimatorError):
    """Raised by a venue when it cannot quote; recorded as an absence by the quote source.

    Attributes
    ----------
    venue : Any
        The venue tag that failed (for logs).
    reason : str
        Short human-readable cause.
    """

    def __init__(self, venue, reason: str):
        super().__init__(f"{venue} quote unavailable: {reason}")
        self.venue = venue
        self.reason = reason


class InsufficientLiquidityError(QuoteUnavailable):
    """Raised when a local simulation exhausts the fetched liquidity.

    Attributes
    ----------
    requested_in : int
        Input amount that was requested.
    filled_in : int
        Input that could be consumed before liquidity ran out.
    """

    def __init__(self, venue, requested_in: int, filled_in: int):
        super().__init__(
            venue,
            f"requested in={requested_in} exceeds fetched liquidity (filled in={filled_in})",
        )
        self.requested_in = requested_in
        self.filled_in = filled_in


class NoRouteFound(EstimatorError):
    """Raised when every venue is absent at a mandatory quote point."""

    def __init__(self, input_mint: str, output_mint: str, in_amount: int, *, stage: str = ""):
        where = f" at {stage} quote" if stage else ""
        super().__init__(
            f"no venue could quote {in_amount} {input_mint} -> {output_mint}{where}"
        )
        self.input_mint = input_mint
        self.output_mint = output_mint
        self.in_amount = in_amount
        self.stage = stage


class ScenarioError(EstimatorError, ValueError):
    """Raised when a scenario's preconditions do not hold."""
    pass

"""
Error taxonomy for the swap pipeline.

Every stage failure carries the stage it came from and a reason
an operator can act on.
"""

from typing import Any, Dict, List, Optional


class SwapError(Exception):
    """Base exception for swap pipeline errors."""

    stage: Optional[str] = None

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.reason = message
        self.details = details or {}


class ConfigError(SwapError):
    """Configuration is missing or inconsistent."""
    stage = "config"


class QuoteUnavailable(SwapError):
    """
    The aggregator has no route for the requested conversion.

    An expected outcome (zero liquidity, unknown mint), not a transport
    problem. Never retried.
    """
    stage = "quote"


class NetworkError(SwapError):
    """Transport failure talking to the aggregator or a ledger endpoint. Retriable."""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        if stage:
            self.stage = stage


class BuildFailure(SwapError):
    """Route could not be turned into a signed transaction."""
    stage = "build"


class AnchorExpired(SwapError):
    """
    The ledger rejected the transaction because its blockhash expired.

    The transaction must be rebuilt with a fresh anchor, never resent as-is.
    """
    stage = "submit"

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        failures: Optional[List[Any]] = None,
    ):
        details: Dict[str, Any] = {}
        if endpoint:
            details["endpoint"] = endpoint
        if failures:
            details["failures"] = list(failures)
        super().__init__(message, details)
        self.endpoint = endpoint


class SubmissionExhausted(SwapError):
    """Every endpoint in the pool failed to accept the transaction."""
    stage = "submit"

    def __init__(self, failures: List[Any]):
        summary = "; ".join(f"{f.endpoint}: {f.kind} ({f.reason})" for f in failures)
        super().__init__(
            f"All {len(failures)} endpoints failed: {summary}",
            {"failures": failures},
        )
        self.failures = failures

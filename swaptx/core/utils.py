"""
Utility functions for SwapTX.
"""

from decimal import Decimal
from urllib.parse import urlparse

SOLSCAN_TX_URL = "https://solscan.io/tx/"


def to_base_units(amount: float, decimals: int) -> int:
    """
    Convert a UI amount to the token's smallest unit.

    Examples:
        (0.1, 9) -> 100000000
        (100000, 6) -> 100000000000
    """
    return int(Decimal(str(amount)) * (Decimal(10) ** decimals))


def from_base_units(amount: int, decimals: int) -> float:
    """Convert smallest-unit amount back to a UI amount."""
    return float(Decimal(amount) / (Decimal(10) ** decimals))


def mask_url(url: str) -> str:
    """
    Mask sensitive parts of a URL for safe logging.

    RPC providers embed API keys in paths and query strings,
    so only scheme and host are kept.
    """
    if not url:
        return "Not configured"

    try:
        parsed = urlparse(url)
        if not parsed.netloc:
            return "***MASKED***"
        if parsed.path.strip("/") or parsed.query:
            return f"{parsed.scheme}://{parsed.netloc}/***MASKED***"
        return f"{parsed.scheme}://{parsed.netloc}"
    except ValueError:
        return "***MASKED***"


def short_signature(signature: str, size: int = 8) -> str:
    """Shorten a base58 signature for log lines."""
    if not signature or len(signature) <= size * 2:
        return signature or ""
    return f"{signature[:size]}...{signature[-size:]}"


def explorer_url(signature: str) -> str:
    """Solscan link for a transaction signature."""
    return f"{SOLSCAN_TX_URL}{signature}"

"""
Configuration management for SwapTX.

Loads settings from environment variables and an optional
JSON pair template.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from swaptx.core.errors import ConfigError
from swaptx.core.utils import mask_url

# Wrapped SOL mint
SOL_MINT = "So11111111111111111111111111111111111111112"

DEFAULT_FALLBACK_ENDPOINTS = [
    "https://api.mainnet-beta.solana.com",
    "https://solana-api.projectserum.com",
]

JUPITER_QUOTE_API = "https://quote-api.jup.ag/v6/quote"
JUPITER_SWAP_API = "https://quote-api.jup.ag/v6/swap"
RAYDIUM_PAIRS_API = "https://api.raydium.io/v2/main/pairs"


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {value!r}")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> Optional[List[str]]:
    value = os.getenv(name)
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Config:
    """Application configuration."""

    # Ledger RPC
    rpc_endpoint: Optional[str] = None
    fallback_endpoints: List[str] = field(
        default_factory=lambda: list(DEFAULT_FALLBACK_ENDPOINTS)
    )

    # Aggregator / pool listing
    jupiter_quote_url: str = JUPITER_QUOTE_API
    jupiter_swap_url: str = JUPITER_SWAP_API
    raydium_pairs_url: str = RAYDIUM_PAIRS_API
    price_source: str = "jupiter"  # jupiter or raydium

    # Trading pair
    token_address: Optional[str] = None
    token_decimals: int = 6
    base_mint: str = SOL_MINT
    base_decimals: int = 9
    slippage_bps: int = 50

    # Quote retries
    quote_retries: int = 3
    quote_backoff: float = 1.0
    http_timeout: float = 10.0

    # Submission
    submit_timeout: float = 10.0
    submit_race_width: int = 1
    max_rebuilds: int = 2
    skip_preflight: bool = False

    # Confirmation
    poll_interval: float = 2.0
    confirm_timeout: float = 120.0

    # Trading loop (prices are base asset per one token)
    buy_below: Optional[float] = None
    sell_above: Optional[float] = None
    buy_amount: float = 0.1  # base asset
    sell_amount: float = 100000.0  # tokens
    trade_interval: float = 60.0
    error_backoff: float = 30.0
    allow_concurrent_swaps: bool = False

    # Wallet check
    expected_wallet: Optional[str] = None

    # Mode: LIVE or TEST
    mode: str = "TEST"

    # Pair template name
    pair_template: Optional[str] = None

    @classmethod
    def _load_json(cls, json_path: Path) -> Dict[str, Any]:
        """Load JSON configuration file."""
        if not json_path.exists():
            raise ConfigError(f"Config file not found: {json_path}")

        with open(json_path, "r") as f:
            return json.load(f)

    @classmethod
    def from_env(cls, template_dir: Path = Path("config/pairs")) -> "Config":
        """Load configuration from environment variables + optional pair template."""
        pair_name = os.getenv("PAIR_TEMPLATE")
        pair_data: Dict[str, Any] = {}
        if pair_name:
            pair_data = cls._load_json(template_dir / f"{pair_name}.json")

        thresholds = pair_data.get("thresholds", {})
        amounts = pair_data.get("amounts", {})

        fallbacks = _env_list("FALLBACK_RPC_ENDPOINTS")
        if fallbacks is None:
            fallbacks = list(DEFAULT_FALLBACK_ENDPOINTS)

        config = cls(
            rpc_endpoint=os.getenv("RPC_ENDPOINT") or os.getenv("HELIUS_RPC"),
            fallback_endpoints=fallbacks,

            jupiter_quote_url=os.getenv("JUPITER_QUOTE_API", JUPITER_QUOTE_API),
            jupiter_swap_url=os.getenv("JUPITER_SWAP_API", JUPITER_SWAP_API),
            raydium_pairs_url=os.getenv("RAYDIUM_PAIRS_API", RAYDIUM_PAIRS_API),
            price_source=os.getenv("PRICE_SOURCE", "jupiter").lower(),

            # Env wins over template
            token_address=os.getenv("TOKEN_ADDRESS", pair_data.get("token_address")),
            token_decimals=_env_int("TOKEN_DECIMALS", pair_data.get("token_decimals", 6)),
            base_mint=os.getenv("BASE_MINT", pair_data.get("base_mint", SOL_MINT)),
            base_decimals=_env_int("BASE_DECIMALS", pair_data.get("base_decimals", 9)),
            slippage_bps=_env_int("SLIPPAGE_BPS", pair_data.get("slippage_bps", 50)),

            quote_retries=_env_int("QUOTE_RETRIES", 3),
            quote_backoff=_env_float("QUOTE_BACKOFF", 1.0),
            http_timeout=_env_float("HTTP_TIMEOUT", 10.0),

            submit_timeout=_env_float("SUBMIT_TIMEOUT", 10.0),
            submit_race_width=_env_int("SUBMIT_RACE_WIDTH", 1),
            max_rebuilds=_env_int("MAX_REBUILDS", 2),
            skip_preflight=_env_bool("SKIP_PREFLIGHT", False),

            poll_interval=_env_float("POLL_INTERVAL", 2.0),
            confirm_timeout=_env_float("CONFIRM_TIMEOUT", 120.0),

            buy_below=_env_float("BUY_BELOW", thresholds.get("buy_below")),
            sell_above=_env_float("SELL_ABOVE", thresholds.get("sell_above")),
            buy_amount=_env_float("BUY_AMOUNT", amounts.get("buy", 0.1)),
            sell_amount=_env_float("SELL_AMOUNT", amounts.get("sell", 100000.0)),
            trade_interval=_env_float("TRADE_INTERVAL", 60.0),
            error_backoff=_env_float("ERROR_BACKOFF", 30.0),
            allow_concurrent_swaps=_env_bool("ALLOW_CONCURRENT_SWAPS", False),

            expected_wallet=os.getenv("EXPECTED_WALLET"),

            mode=os.getenv("MODE", "TEST").upper(),
            pair_template=pair_name,
        )

        return config

    @property
    def endpoints(self) -> List[str]:
        """Ordered endpoint list: primary first, then fallbacks, without duplicates."""
        urls = [self.rpc_endpoint] + list(self.fallback_endpoints)
        return list(dict.fromkeys(u for u in urls if u))

    @property
    def is_live(self) -> bool:
        return self.mode == "LIVE"

    def validate(self, require_thresholds: bool = False) -> None:
        """
        Check the configuration is usable.

        Raises:
            ConfigError: on the first problem found
        """
        if not self.rpc_endpoint:
            raise ConfigError("RPC_ENDPOINT is required")

        if not self.token_address:
            raise ConfigError("TOKEN_ADDRESS is required")

        if self.price_source not in ("jupiter", "raydium"):
            raise ConfigError(f"PRICE_SOURCE must be jupiter or raydium, got {self.price_source!r}")

        if self.poll_interval <= 0 or self.confirm_timeout <= 0:
            raise ConfigError("POLL_INTERVAL and CONFIRM_TIMEOUT must be positive")

        if self.submit_timeout <= 0 or self.trade_interval <= 0:
            raise ConfigError("SUBMIT_TIMEOUT and TRADE_INTERVAL must be positive")

        if self.submit_race_width < 1:
            raise ConfigError("SUBMIT_RACE_WIDTH must be at least 1")

        if not 0 < self.slippage_bps <= 10_000:
            raise ConfigError("SLIPPAGE_BPS must be between 1 and 10000")

        if require_thresholds:
            if self.buy_below is None and self.sell_above is None:
                raise ConfigError("At least one of BUY_BELOW or SELL_ABOVE is required")
            if (
                self.buy_below is not None
                and self.sell_above is not None
                and self.buy_below >= self.sell_above
            ):
                raise ConfigError(
                    f"BUY_BELOW ({self.buy_below}) must be lower than SELL_ABOVE ({self.sell_above})"
                )

    def summary(self) -> str:
        """Get a summary of current settings."""
        endpoint_lines = "\n".join(
            f"  {i + 1}. {mask_url(url)}" for i, url in enumerate(self.endpoints)
        )
        buy = f"{self.buy_below}" if self.buy_below is not None else "disabled"
        sell = f"{self.sell_above}" if self.sell_above is not None else "disabled"
        return f"""Mode: {self.mode}
Pair Template: {self.pair_template or "none"}
Price Source: {self.price_source}

Endpoints (priority order):
{endpoint_lines or "  none"}

Pair:
  Token: {self.token_address or "Not configured"} ({self.token_decimals} decimals)
  Base: {self.base_mint} ({self.base_decimals} decimals)
  Slippage: {self.slippage_bps} bps

Execution:
  Submit Timeout: {self.submit_timeout:.0f}s (race width {self.submit_race_width})
  Max Rebuilds: {self.max_rebuilds}
  Preflight: {"skipped" if self.skip_preflight else "on"}
  Confirmation: every {self.poll_interval:.0f}s for up to {self.confirm_timeout:.0f}s

Trading Loop:
  Buy Below: {buy} (amount {self.buy_amount})
  Sell Above: {sell} (amount {self.sell_amount})
  Interval: {self.trade_interval:.0f}s
"""

"""
Threshold trading loop for SwapTX.

Checks the price on a fixed interval and swaps when it crosses
the buy or sell threshold. Stops between iterations when asked.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Protocol

from swaptx.core.config import Config
from swaptx.core.models import Direction, SwapOutcome
from swaptx.core.utils import to_base_units
from swaptx.trading.jupiter import AggregatorQuote, JupiterClient
from swaptx.trading.orchestrator import SwapOrchestrator
from swaptx.trading.raydium import PoolListingQuote

logger = logging.getLogger(__name__)


class PriceSource(Protocol):
    """Quoted price of one token in base asset."""

    name: str

    def get_price(self, token_mint: str, base_mint: str) -> float: ...


def price_source_from_config(config: Config, jupiter: JupiterClient) -> PriceSource:
    """Pick the configured price source."""
    if config.price_source == "raydium":
        return PoolListingQuote(pairs_url=config.raydium_pairs_url)
    return AggregatorQuote(jupiter, config.token_decimals, config.base_decimals)


@dataclass
class LoopStats:
    """Counters for a running loop."""
    iterations: int = 0
    swaps_attempted: int = 0
    swaps_succeeded: int = 0
    errors: int = 0
    last_price: Optional[float] = None
    last_outcome: Optional[SwapOutcome] = None


class TradingLoop:
    """
    Periodic threshold trader.

    At most one swap per iteration. Errors, including failed swaps, are
    logged and never end the loop. stop() takes effect between
    iterations; a swap in flight runs to its own deadline.
    """

    def __init__(
        self,
        orchestrator: SwapOrchestrator,
        price_source: PriceSource,
        token_mint: str,
        base_mint: str,
        buy_below: Optional[float],
        sell_above: Optional[float],
        buy_amount: int,
        sell_amount: int,
        interval: float = 60.0,
        error_backoff: float = 30.0,
        dry_run: bool = False,
        stop_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            orchestrator: Executes swaps
            price_source: Supplies base-asset-per-token prices
            buy_below: Buy when price is strictly below (None disables buying)
            sell_above: Sell when price is strictly above (None disables selling)
            buy_amount: Base asset to spend per buy, smallest unit
            sell_amount: Tokens to sell per sell, smallest unit
            interval: Seconds between iterations
            error_backoff: Seconds to wait after an iteration error
            dry_run: Log decisions without swapping
            stop_event: Shared stop signal
        """
        self.orchestrator = orchestrator
        self.price_source = price_source
        self.token_mint = token_mint
        self.base_mint = base_mint
        self.buy_below = buy_below
        self.sell_above = sell_above
        self.buy_amount = buy_amount
        self.sell_amount = sell_amount
        self.interval = interval
        self.error_backoff = error_backoff
        self.dry_run = dry_run
        self.stop_event = stop_event or threading.Event()
        self.stats = LoopStats()

    @classmethod
    def from_config(
        cls,
        config: Config,
        orchestrator: SwapOrchestrator,
        price_source: Optional[PriceSource] = None,
        dry_run: Optional[bool] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> "TradingLoop":
        return cls(
            orchestrator=orchestrator,
            price_source=price_source or price_source_from_config(config, orchestrator.jupiter),
            token_mint=config.token_address,
            base_mint=config.base_mint,
            buy_below=config.buy_below,
            sell_above=config.sell_above,
            buy_amount=to_base_units(config.buy_amount, config.base_decimals),
            sell_amount=to_base_units(config.sell_amount, config.token_decimals),
            interval=config.trade_interval,
            error_backoff=config.error_backoff,
            dry_run=(not config.is_live) if dry_run is None else dry_run,
            stop_event=stop_event,
        )

    def decide(self, price: float) -> Optional[Direction]:
        """Which swap, if any, a price calls for."""
        if self.buy_below is not None and price < self.buy_below:
            return Direction.BUY
        if self.sell_above is not None and price > self.sell_above:
            return Direction.SELL
        return None

    def run_once(self) -> Optional[SwapOutcome]:
        """
        One iteration: check price, maybe swap.

        Returns:
            The swap outcome, or None if no swap was made

        Raises:
            SwapError: price check failed
        """
        price = self.price_source.get_price(self.token_mint, self.base_mint)
        self.stats.last_price = price
        logger.info(f"Current price ({self.price_source.name}): {price:.10f}")

        direction = self.decide(price)
        if direction is None:
            return None

        amount = self.buy_amount if direction is Direction.BUY else self.sell_amount

        if self.dry_run:
            logger.info(f"[DRY RUN] Would {direction.value} {amount} at {price:.10f}")
            return None

        logger.info(f"Threshold crossed at {price:.10f}: {direction.value} {amount}")
        self.stats.swaps_attempted += 1
        outcome = self.orchestrator.swap(direction, amount)
        self.stats.last_outcome = outcome

        if outcome.success:
            self.stats.swaps_succeeded += 1
        else:
            self.stats.errors += 1
            if outcome.needs_reconciliation:
                logger.warning(
                    f"Swap {outcome.transaction_id} outcome unknown; check it on-chain before trading again"
                )

        return outcome

    def run(self, max_iterations: Optional[int] = None) -> LoopStats:
        """
        Run until stop() is called (or max_iterations is reached).

        Returns:
            Final loop statistics
        """
        logger.info(
            f"Starting trading loop: buy below {self.buy_below}, sell above {self.sell_above}, "
            f"every {self.interval:.0f}s{' (dry run)' if self.dry_run else ''}"
        )

        while not self.stop_event.is_set():
            self.stats.iterations += 1
            wait = self.interval

            try:
                self.run_once()
            except Exception as e:
                self.stats.errors += 1
                wait = self.error_backoff
                logger.error(f"Trading iteration {self.stats.iterations} failed: {e}")

            if max_iterations is not None and self.stats.iterations >= max_iterations:
                break

            self.stop_event.wait(wait)

        logger.info(
            f"Trading loop stopped after {self.stats.iterations} iterations: "
            f"{self.stats.swaps_succeeded}/{self.stats.swaps_attempted} swaps succeeded, "
            f"{self.stats.errors} errors"
        )
        return self.stats

    def stop(self) -> None:
        """Ask the loop to stop before its next iteration."""
        self.stop_event.set()

    def start_in_background(self) -> threading.Thread:
        """Run the loop on a daemon thread."""
        thread = threading.Thread(target=self.run, name="trading-loop", daemon=True)
        thread.start()
        return thread

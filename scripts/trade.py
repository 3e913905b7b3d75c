#!/usr/bin/env python3
"""
Threshold trading loop.

Checks the price every interval and swaps when it crosses
BUY_BELOW or SELL_ABOVE. Runs until Ctrl+C.

Dry run unless MODE=LIVE. --live and --dry-run override MODE.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging
import signal
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from typer import Option, Typer

from swaptx.core.config import Config
from swaptx.core.errors import ConfigError
from swaptx.trading.loop import TradingLoop
from swaptx.trading.orchestrator import SwapOrchestrator
from swaptx.trading.wallet import load_keypair

app = Typer(help="Threshold trading loop")
console = Console()

logger = logging.getLogger("trade")


@app.command()
def main(
    live: Optional[bool] = Option(
        None, "--live/--dry-run", help="Execute swaps, or only log decisions (default: from MODE)"
    ),
    iterations: int = Option(None, "--iterations", "-n", help="Stop after N iterations"),
    verbose: bool = Option(False, "--verbose", "-v", help="Verbose logging"),
):
    """
    Run the trading loop.

    Example:
        python scripts/trade.py --live
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    load_dotenv()

    try:
        config = Config.from_env()
        config.validate(require_thresholds=True)
        keypair = load_keypair()
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)

    dry_run = not config.is_live if live is None else not live

    console.print(Panel(
        config.summary() + f"\nWallet: {keypair.pubkey()}",
        title="[bold]SwapTX Trading Loop[/bold]" + (" [yellow](dry run)[/yellow]" if dry_run else ""),
        border_style="yellow" if dry_run else "green",
    ))

    orchestrator = SwapOrchestrator.from_config(config, keypair)
    loop = TradingLoop.from_config(config, orchestrator, dry_run=dry_run)

    def signal_handler(sig, frame):
        console.print("\n[yellow]Stopping after the current iteration...[/yellow]")
        loop.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    stats = loop.run(max_iterations=iterations)

    console.print(
        f"\n[bold]Stopped.[/bold] Iterations: {stats.iterations} | "
        f"Swaps: {stats.swaps_succeeded}/{stats.swaps_attempted} succeeded | "
        f"Errors: {stats.errors}"
    )


if __name__ == "__main__":
    app()

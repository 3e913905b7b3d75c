#!/usr/bin/env python3
"""
Price check.

Shows the token price in base asset from the aggregator, the pool
listing, or both. Read only.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from swaptx.core.config import Config
from swaptx.core.errors import SwapError
from swaptx.trading.jupiter import AggregatorQuote, JupiterClient
from swaptx.trading.raydium import PoolListingQuote

app = typer.Typer(help="Check the current token price")
console = Console()


@app.command()
def main(
    source: str = typer.Option("all", "--source", "-s", help="jupiter, raydium or all"),
):
    """
    Print current prices.

    Example:
        python scripts/price.py --source raydium
    """
    load_dotenv()
    config = Config.from_env()

    if not config.token_address:
        console.print("[red]TOKEN_ADDRESS is required[/red]")
        raise typer.Exit(1)

    sources = []
    if source in ("jupiter", "all"):
        jupiter = JupiterClient(slippage_bps=config.slippage_bps, quote_url=config.jupiter_quote_url)
        sources.append(AggregatorQuote(jupiter, config.token_decimals, config.base_decimals))
    if source in ("raydium", "all"):
        sources.append(PoolListingQuote(pairs_url=config.raydium_pairs_url))

    table = Table(title=f"Price of {config.token_address[:8]}... in base asset")
    table.add_column("Source", style="cyan")
    table.add_column("Price", justify="right")
    table.add_column("vs Thresholds")

    for price_source in sources:
        try:
            price = price_source.get_price(config.token_address, config.base_mint)
        except SwapError as e:
            table.add_row(price_source.name, "[red]unavailable[/red]", e.reason)
            continue

        signal = "-"
        if config.buy_below is not None and price < config.buy_below:
            signal = "[green]below buy threshold[/green]"
        elif config.sell_above is not None and price > config.sell_above:
            signal = "[yellow]above sell threshold[/yellow]"
        table.add_row(price_source.name, f"{price:.10f}", signal)

    console.print(table)


if __name__ == "__main__":
    app()

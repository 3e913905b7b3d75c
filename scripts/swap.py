#!/usr/bin/env python3
"""
One-shot swap.

Quotes, builds, submits and confirms a single swap, then reports
the outcome.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from swaptx.core.config import Config
from swaptx.core.errors import ConfigError
from swaptx.core.models import Direction
from swaptx.core.utils import explorer_url, from_base_units, to_base_units
from swaptx.trading.orchestrator import SwapOrchestrator
from swaptx.trading.wallet import load_keypair

app = typer.Typer(help="Execute a single swap")
console = Console()


@app.command()
def main(
    direction: Direction = typer.Argument(..., help="buy (base -> token) or sell (token -> base)"),
    amount: float = typer.Argument(..., help="Input amount in UI units (SOL for buy, tokens for sell)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
):
    """
    Swap once and wait for confirmation.

    Example:
        python scripts/swap.py buy 0.001
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    load_dotenv()

    try:
        config = Config.from_env()
        config.validate()
        keypair = load_keypair()
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)

    decimals = config.base_decimals if direction is Direction.BUY else config.token_decimals
    raw_amount = to_base_units(amount, decimals)

    if not yes and not typer.confirm(f"{direction.value.upper()} with {amount} ({raw_amount} raw)?"):
        raise typer.Exit(0)

    orchestrator = SwapOrchestrator.from_config(config, keypair)
    outcome = orchestrator.swap(direction, raw_amount)

    table = Table(title="Swap Outcome", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Result", "[green]SUCCESS[/green]" if outcome.success else "[red]FAILED[/red]")
    table.add_row("Status", outcome.status.value if outcome.status else "-")
    if outcome.stage:
        table.add_row("Failed Stage", outcome.stage.value)
        table.add_row("Reason", outcome.reason or "-")
    if outcome.quote:
        out_decimals = config.token_decimals if direction is Direction.BUY else config.base_decimals
        table.add_row("Quoted Output", f"{from_base_units(outcome.quote.out_amount, out_decimals)}")
    table.add_row("Endpoint", outcome.endpoint or "-")
    table.add_row("Rebuilds", str(outcome.rebuilds))
    table.add_row("Polls", str(outcome.polls))
    for failure in outcome.failures:
        table.add_row("Endpoint Failure", f"{failure.endpoint}: {failure.kind} ({failure.reason})")
    if outcome.transaction_id:
        table.add_row("Transaction", explorer_url(outcome.transaction_id))
    console.print(table)

    if outcome.needs_reconciliation:
        console.print("[yellow]Outcome unknown: check the transaction on-chain before retrying.[/yellow]")

    raise typer.Exit(0 if outcome.success else 1)


if __name__ == "__main__":
    app()

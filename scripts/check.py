#!/usr/bin/env python3
"""
Connectivity check.

Verifies each RPC endpoint, the wallet, its SOL balance and
its token account before trading.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import typer
from dotenv import load_dotenv
from rich.console import Console

from swaptx.core.config import Config
from swaptx.core.errors import ConfigError
from swaptx.trading.endpoints import EndpointPool
from swaptx.trading.wallet import WalletManager, load_keypair

app = typer.Typer(help="Check RPC, wallet and balances")
console = Console()


@app.command()
def main():
    """
    Run connectivity checks.

    Example:
        python scripts/check.py
    """
    load_dotenv()
    config = Config.from_env()
    failed = False

    console.print("\n[bold]1. RPC endpoints[/bold]")
    if not config.endpoints:
        console.print("[red]✗ No endpoints configured (RPC_ENDPOINT)[/red]")
        raise typer.Exit(1)

    pool = EndpointPool.from_urls(config.endpoints, timeout=config.submit_timeout)
    reachable = 0
    for endpoint in pool:
        try:
            version = endpoint.get_version()
            console.print(f"[green]✓ {endpoint.name}: solana-core {version}[/green]")
            reachable += 1
        except Exception as e:
            console.print(f"[red]✗ {endpoint.name}: {e}[/red]")
    if reachable == 0:
        raise typer.Exit(1)

    console.print("\n[bold]2. Wallet[/bold]")
    try:
        keypair = load_keypair()
    except ConfigError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    wallet = WalletManager(keypair, pool)
    console.print(f"[green]✓ Wallet loaded: {wallet.address}[/green]")

    matches, error = wallet.verify_address(config.expected_wallet)
    if not matches:
        console.print(f"[red]✗ {error}[/red]")
        failed = True

    console.print("\n[bold]3. SOL balance[/bold]")
    balance = wallet.get_balance()
    if balance is None:
        console.print("[red]✗ Balance unavailable[/red]")
        failed = True
    else:
        console.print(f"[green]✓ Balance: {balance} SOL[/green]")

    console.print("\n[bold]4. Token account[/bold]")
    if not config.token_address:
        console.print("[yellow]- TOKEN_ADDRESS not set, skipped[/yellow]")
    else:
        tokens = wallet.get_token_balance(config.token_address, config.token_decimals)
        if tokens is None:
            console.print("[red]✗ Token balance unavailable[/red]")
            failed = True
        else:
            console.print(f"[green]✓ Token balance: {tokens}[/green]")

    raise typer.Exit(1 if failed else 0)


if __name__ == "__main__":
    app()

"""
Swap execution module for SwapTX.

Handles quoting, transaction building, RPC submission, confirmation and the trading loop.
"""

from swaptx.trading.jupiter import JupiterClient, AggregatorQuote
from swaptx.trading.raydium import PoolListingQuote
from swaptx.trading.endpoints import EndpointPool, LedgerEndpoint
from swaptx.trading.builder import TransactionBuilder
from swaptx.trading.submission import SubmissionEngine
from swaptx.trading.confirmation import ConfirmationWatcher
from swaptx.trading.orchestrator import SwapOrchestrator
from swaptx.trading.loop import TradingLoop
from swaptx.trading.wallet import WalletManager, load_keypair

__all__ = [
    "JupiterClient",
    "AggregatorQuote",
    "PoolListingQuote",
    "EndpointPool",
    "LedgerEndpoint",
    "TransactionBuilder",
    "SubmissionEngine",
    "ConfirmationWatcher",
    "SwapOrchestrator",
    "TradingLoop",
    "WalletManager",
    "load_keypair",
]

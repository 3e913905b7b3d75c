"""
SwapTX - Solana swap execution pipeline

Quotes, builds, submits and confirms token swaps against the
Jupiter aggregator, with RPC endpoint failover and bounded-time
confirmation tracking.

Submission is not settlement. Only a confirmation says it landed.
"""

__version__ = "0.1.0"

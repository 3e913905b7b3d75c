"""
Wallet loading and balance checks for SwapTX.

Loads the signing keypair and reads balances. The secret key is
never logged or stored.
"""

import json
import logging
import os
from typing import Optional, Tuple

import base58
from solders.keypair import Keypair

from swaptx.core.errors import ConfigError, NetworkError
from swaptx.core.utils import from_base_units
from swaptx.trading.endpoints import EndpointPool

logger = logging.getLogger(__name__)


def keypair_from_secret(secret: str) -> Keypair:
    """
    Build a keypair from a secret string.

    Accepts a JSON byte array (Solana CLI format) or base58.
    Solana secret keys are 64 bytes (private + public) or a 32 byte seed.

    Raises:
        ConfigError: the secret cannot be decoded
    """
    secret = secret.strip()

    try:
        if secret.startswith("["):
            key_bytes = bytes(json.loads(secret))
        else:
            key_bytes = base58.b58decode(secret)
    except (TypeError, ValueError):
        raise ConfigError("PRIVATE_KEY is neither a JSON byte array nor base58")

    if len(key_bytes) == 64:
        return Keypair.from_bytes(key_bytes)
    if len(key_bytes) == 32:
        return Keypair.from_seed(key_bytes)
    raise ConfigError(f"Invalid key length: {len(key_bytes)} bytes")


def load_keypair(env_var: str = "PRIVATE_KEY") -> Keypair:
    """Load the signing keypair from the environment."""
    secret = os.getenv(env_var)
    if not secret:
        raise ConfigError(f"{env_var} is required")
    return keypair_from_secret(secret)


class WalletManager:
    """
    Wallet checks against the ledger.

    Reads go through the endpoint pool, so they fail over like everything else.
    """

    def __init__(self, keypair: Keypair, pool: EndpointPool):
        self.keypair = keypair
        self.pool = pool

    @property
    def address(self) -> str:
        return str(self.keypair.pubkey())

    def verify_address(self, expected: Optional[str]) -> Tuple[bool, Optional[str]]:
        """
        Check the loaded wallet is the one the operator expects.

        Returns:
            Tuple of (matches, error_message)
        """
        if not expected:
            return True, None
        if self.address != expected:
            return False, f"Wallet address mismatch: expected {expected}, got {self.address}"
        return True, None

    def get_balance(self) -> Optional[float]:
        """SOL balance, or None if no endpoint answered."""
        try:
            lamports = self.pool.read("get_balance", lambda ep: ep.get_balance(self.address))
        except NetworkError as e:
            logger.error(f"Failed to get balance: {e.reason}")
            return None
        return from_base_units(lamports, 9)

    def get_token_balance(self, mint: str, decimals: int) -> Optional[float]:
        """
        Token balance in UI units.

        Returns 0.0 when the wallet has no token account for the mint,
        None if no endpoint answered.
        """
        try:
            raw = self.pool.read(
                "get_token_accounts_by_owner",
                lambda ep: ep.get_token_balance(self.address, mint),
            )
        except NetworkError as e:
            logger.error(f"Failed to get token balance: {e.reason}")
            return None
        if raw is None:
            return 0.0
        return from_base_units(raw, decimals)

"""
Raydium pool listing price source.

Informational only: prices from here drive threshold checks,
never execution.
"""

import logging
from typing import List, Optional

import requests

from swaptx.core.config import RAYDIUM_PAIRS_API
from swaptx.core.errors import NetworkError, QuoteUnavailable
from swaptx.core.models import PoolPrice

logger = logging.getLogger(__name__)


class PoolListingQuote:
    """
    Price source backed by the Raydium pairs listing.

    Price is base asset per one token. A pair listed the other way
    round (base asset as pool base) is inverted.
    """

    name = "raydium"

    def __init__(
        self,
        pairs_url: str = RAYDIUM_PAIRS_API,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.pairs_url = pairs_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_pairs(self) -> List[dict]:
        """
        Fetch the full pair listing.

        Raises:
            NetworkError: transport failure or unusable response
        """
        try:
            response = self.session.get(self.pairs_url, timeout=self.timeout)
            response.raise_for_status()
            pairs = response.json()
        except requests.RequestException as e:
            raise NetworkError(f"Failed to fetch pool listing: {e}", stage="quote")
        except ValueError as e:
            raise NetworkError(f"Pool listing is not valid JSON: {e}", stage="quote")

        if not isinstance(pairs, list):
            raise NetworkError("Pool listing is not a list", stage="quote")

        logger.debug(f"Fetched {len(pairs)} pairs from pool listing")
        return pairs

    def find_pool(self, token_mint: str, base_mint: str) -> PoolPrice:
        """
        Find the token/base pair in the listing.

        Raises:
            QuoteUnavailable: pair not listed or has no price
            NetworkError: listing could not be fetched
        """
        inverted: Optional[dict] = None

        for pair in self.get_pairs():
            base = pair.get("baseMint")
            quote = pair.get("quoteMint")
            if base == token_mint and quote == base_mint:
                return self._to_pool_price(pair, invert=False)
            if inverted is None and base == base_mint and quote == token_mint:
                inverted = pair

        if inverted is not None:
            return self._to_pool_price(inverted, invert=True)

        raise QuoteUnavailable(f"Pool not found for {token_mint[:8]}.../{base_mint[:8]}...")

    @staticmethod
    def _to_pool_price(pair: dict, invert: bool) -> PoolPrice:
        try:
            price = float(pair.get("price") or 0)
        except (TypeError, ValueError):
            price = 0.0

        if price <= 0:
            raise QuoteUnavailable(f"Pool {pair.get('name', '?')} has no price")

        if invert:
            return PoolPrice(
                base_mint=pair["quoteMint"],
                quote_mint=pair["baseMint"],
                price=1.0 / price,
                name=pair.get("name"),
                amm_id=pair.get("ammId"),
            )

        return PoolPrice(
            base_mint=pair["baseMint"],
            quote_mint=pair["quoteMint"],
            price=price,
            name=pair.get("name"),
            amm_id=pair.get("ammId"),
        )

    def get_price(self, token_mint: str, base_mint: str) -> float:
        pool = self.find_pool(token_mint, base_mint)
        logger.info(f"Pool {pool.name or pool.amm_id}: {pool.price:.10f} per token")
        return pool.price

"""
Unit tests for the Raydium pool listing price source.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from swaptx.core.config import SOL_MINT
from swaptx.core.errors import NetworkError, QuoteUnavailable
from swaptx.trading.raydium import PoolListingQuote

HAPPY_MINT = "HAPPYwgFcjEJDzRtfWE6tiHE9zGdzpNky2FvjPHsvvGZ"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def _listing(pairs):
    session = MagicMock()
    session.get.return_value.json.return_value = pairs
    return PoolListingQuote(session=session), session


class TestPoolListing:
    """Test pair lookup and price orientation."""

    def test_finds_token_sol_pair(self):
        source, _ = _listing([
            {"baseMint": USDC_MINT, "quoteMint": SOL_MINT, "price": 0.005, "name": "USDC-SOL"},
            {"baseMint": HAPPY_MINT, "quoteMint": SOL_MINT, "price": 0.000015,
             "name": "HAPPY-SOL", "ammId": "amm1"},
        ])

        pool = source.find_pool(HAPPY_MINT, SOL_MINT)

        assert pool.name == "HAPPY-SOL"
        assert pool.amm_id == "amm1"
        assert pool.price == pytest.approx(0.000015)

    def test_inverted_pair_is_inverted(self):
        source, _ = _listing([
            {"baseMint": SOL_MINT, "quoteMint": HAPPY_MINT, "price": 50000.0, "name": "SOL-HAPPY"},
        ])

        price = source.get_price(HAPPY_MINT, SOL_MINT)

        assert price == pytest.approx(0.00002)

    def test_direct_pair_preferred_over_inverted(self):
        source, _ = _listing([
            {"baseMint": SOL_MINT, "quoteMint": HAPPY_MINT, "price": 50000.0},
            {"baseMint": HAPPY_MINT, "quoteMint": SOL_MINT, "price": 0.000015},
        ])

        assert source.get_price(HAPPY_MINT, SOL_MINT) == pytest.approx(0.000015)

    def test_missing_pair_is_quote_unavailable(self):
        source, _ = _listing([
            {"baseMint": USDC_MINT, "quoteMint": SOL_MINT, "price": 0.005},
        ])

        with pytest.raises(QuoteUnavailable):
            source.get_price(HAPPY_MINT, SOL_MINT)

    def test_zero_price_is_quote_unavailable(self):
        source, _ = _listing([
            {"baseMint": HAPPY_MINT, "quoteMint": SOL_MINT, "price": 0},
        ])

        with pytest.raises(QuoteUnavailable):
            source.get_price(HAPPY_MINT, SOL_MINT)

    def test_transport_failure_is_network_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("reset")
        source = PoolListingQuote(session=session)

        with pytest.raises(NetworkError):
            source.get_price(HAPPY_MINT, SOL_MINT)

    def test_unexpected_shape_is_network_error(self):
        source, _ = _listing({"data": []})

        with pytest.raises(NetworkError):
            source.get_pairs()

"""
Unit tests for the Jupiter aggregator client.

Tests quote classification and retry behaviour:
- Routes become Quotes with the advertised output amount
- Missing routes are QuoteUnavailable, never retried
- Transport failures retry with backoff, then surface as NetworkError
"""

import base64
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from swaptx.core.config import SOL_MINT
from swaptx.core.errors import BuildFailure, NetworkError, QuoteUnavailable
from swaptx.trading.jupiter import AggregatorQuote, JupiterClient

HAPPY_MINT = "HAPPYwgFcjEJDzRtfWE6tiHE9zGdzpNky2FvjPHsvvGZ"


def _response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return response


def _quote_body(in_amount=1_000_000_000, out_amount=950_000):
    return {
        "inputMint": SOL_MINT,
        "outputMint": HAPPY_MINT,
        "inAmount": str(in_amount),
        "outAmount": str(out_amount),
        "slippageBps": 50,
        "priceImpactPct": "0.0012",
        "routePlan": [{"swapInfo": {"label": "Raydium"}, "percent": 100}],
    }


def _client(*responses, retries=3):
    session = MagicMock()
    session.request.side_effect = list(responses)
    sleeps = []
    client = JupiterClient(
        slippage_bps=50,
        max_retries=retries,
        backoff=1.0,
        session=session,
        sleep=sleeps.append,
    )
    return client, session, sleeps


class TestGetQuote:
    """Test quote fetching and classification."""

    def test_quote_reflects_advertised_rate(self):
        client, session, _ = _client(_response(200, _quote_body()))

        quote = client.get_quote(SOL_MINT, HAPPY_MINT, 1_000_000_000)

        assert quote.in_amount == 1_000_000_000
        assert quote.out_amount == 950_000
        assert quote.slippage_bps == 50
        assert len(quote.route_plan) == 1
        assert quote.raw_quote["outAmount"] == "950000"

    def test_quote_request_parameters(self):
        client, session, _ = _client(_response(200, _quote_body()))

        client.get_quote(SOL_MINT, HAPPY_MINT, 1000, slippage_bps=100)

        method, url = session.request.call_args[0]
        params = session.request.call_args[1]["params"]
        assert method == "GET"
        assert url == client.quote_url
        assert params["inputMint"] == SOL_MINT
        assert params["outputMint"] == HAPPY_MINT
        assert params["amount"] == "1000"
        assert params["slippageBps"] == 100

    def test_no_route_error_is_quote_unavailable(self):
        body = {"error": "Could not find any route", "errorCode": "COULD_NOT_FIND_ANY_ROUTE"}
        client, session, sleeps = _client(_response(400, body))

        with pytest.raises(QuoteUnavailable) as exc:
            client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

        assert exc.value.details["error_code"] == "COULD_NOT_FIND_ANY_ROUTE"
        assert session.request.call_count == 1
        assert sleeps == []

    def test_empty_route_plan_is_quote_unavailable(self):
        body = _quote_body()
        body["routePlan"] = []
        client, _, _ = _client(_response(200, body))

        with pytest.raises(QuoteUnavailable):
            client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

    def test_zero_output_is_quote_unavailable(self):
        client, _, _ = _client(_response(200, _quote_body(out_amount=0)))

        with pytest.raises(QuoteUnavailable):
            client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

    def test_quote_unavailable_is_not_network_error(self):
        client, _, _ = _client(_response(200, {"error": "no route"}))

        with pytest.raises(QuoteUnavailable) as exc:
            client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

        assert not isinstance(exc.value, NetworkError)
        assert exc.value.stage == "quote"


class TestRetries:
    """Test transient failure handling."""

    def test_retries_rate_limit_then_succeeds(self):
        client, session, sleeps = _client(
            _response(429, {"error": "rate limited"}),
            _response(200, _quote_body()),
        )

        quote = client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

        assert quote.out_amount == 950_000
        assert session.request.call_count == 2
        assert sleeps == [1.0]

    def test_exponential_backoff_until_exhausted(self):
        client, session, sleeps = _client(
            requests.ConnectionError("reset"),
            requests.Timeout("timed out"),
            requests.ConnectionError("reset"),
        )

        with pytest.raises(NetworkError) as exc:
            client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

        assert session.request.call_count == 3
        assert sleeps == [1.0, 2.0]
        assert exc.value.stage == "quote"
        assert "3 attempts" in exc.value.reason

    def test_server_errors_exhaust_retries(self):
        client, session, _ = _client(
            _response(503, None), _response(502, None), retries=2
        )

        with pytest.raises(NetworkError):
            client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

        assert session.request.call_count == 2

    def test_non_json_success_is_network_error(self):
        client, _, _ = _client(_response(200, ValueError("not json")))

        with pytest.raises(NetworkError):
            client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

    @pytest.mark.parametrize("status_code", [401, 403, 404])
    def test_http_error_without_error_payload_is_network_error(self, status_code):
        client, session, sleeps = _client(_response(status_code, {"message": "Unauthorized"}))

        with pytest.raises(NetworkError) as exc:
            client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

        assert not isinstance(exc.value, QuoteUnavailable)
        assert exc.value.stage == "quote"
        assert exc.value.details["status_code"] == status_code
        assert session.request.call_count == 1
        assert sleeps == []

    def test_error_code_only_payload_is_quote_unavailable(self):
        client, _, _ = _client(_response(400, {"errorCode": "TOKEN_NOT_TRADABLE"}))

        with pytest.raises(QuoteUnavailable) as exc:
            client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

        assert exc.value.details["error_code"] == "TOKEN_NOT_TRADABLE"


class TestSwapTransaction:
    """Test unsigned transaction fetching."""

    def test_decodes_base64_transaction(self):
        raw = b"\x01unsigned-transaction-bytes"
        body = {"swapTransaction": base64.b64encode(raw).decode()}
        client, session, _ = _client(_response(200, _quote_body()), _response(200, body))
        quote = client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

        result = client.get_swap_transaction(quote, "Signer1111", "DestAccount")

        assert result == raw
        payload = session.request.call_args[1]["json"]
        assert payload["quoteResponse"] == quote.raw_quote
        assert payload["userPublicKey"] == "Signer1111"
        assert payload["destinationTokenAccount"] == "DestAccount"
        assert payload["wrapAndUnwrapSol"] is True

    def test_missing_transaction_is_build_failure(self):
        client, _, _ = _client(_response(200, _quote_body()), _response(200, {}))
        quote = client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

        with pytest.raises(BuildFailure):
            client.get_swap_transaction(quote, "Signer1111")

    def test_invalid_base64_is_build_failure(self):
        client, _, _ = _client(
            _response(200, _quote_body()), _response(200, {"swapTransaction": "!!not-base64!!"})
        )
        quote = client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

        with pytest.raises(BuildFailure):
            client.get_swap_transaction(quote, "Signer1111")

    def test_transport_failure_is_network_error_at_build(self):
        client, _, _ = _client(
            _response(200, _quote_body()), requests.ConnectionError("reset"), retries=1
        )
        quote = client.get_quote(SOL_MINT, HAPPY_MINT, 1000)

        with pytest.raises(NetworkError) as exc:
            client.get_swap_transaction(quote, "Signer1111")

        assert exc.value.stage == "build"


class TestAggregatorQuote:
    """Test aggregator price source."""

    def test_price_is_base_per_token(self):
        # 1 HAPPY (6 decimals) -> 15000 lamports = 0.000015 SOL
        client = MagicMock()
        client.get_quote.return_value = MagicMock(out_amount=15_000)
        source = AggregatorQuote(client, token_decimals=6, base_decimals=9)

        price = source.get_price(HAPPY_MINT, SOL_MINT)

        client.get_quote.assert_called_once_with(HAPPY_MINT, SOL_MINT, 1_000_000)
        assert price == pytest.approx(0.000015)

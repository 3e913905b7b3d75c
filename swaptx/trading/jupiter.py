"""
Jupiter V6 aggregator integration for SwapTX.

Handles quote fetching, swap transaction fetching and aggregator price checks.
"""

import base64
import binascii
import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from swaptx.core.config import JUPITER_QUOTE_API, JUPITER_SWAP_API
from swaptx.core.errors import BuildFailure, NetworkError, QuoteUnavailable
from swaptx.core.models import Quote
from swaptx.core.utils import from_base_units

logger = logging.getLogger(__name__)

# HTTP statuses worth retrying
RETRIABLE_STATUS = {429, 500, 502, 503, 504}


def _is_error_body(data: Any) -> bool:
    """True for the aggregator's own error payload, e.g. a no-route answer."""
    return isinstance(data, dict) and ("error" in data or "errorCode" in data)


class JupiterClient:
    """
    Jupiter V6 quote and swap client.

    Quotes are never cached: a quote is only good for a short window,
    so every attempt asks again.
    """

    def __init__(
        self,
        slippage_bps: int = 50,
        quote_url: str = JUPITER_QUOTE_API,
        swap_url: str = JUPITER_SWAP_API,
        max_retries: int = 3,
        backoff: float = 1.0,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize Jupiter client.

        Args:
            slippage_bps: Default slippage tolerance in basis points (50 = 0.5%)
            quote_url: Quote endpoint
            swap_url: Swap transaction endpoint
            max_retries: Attempts per request on transient network errors
            backoff: Base delay in seconds, doubled on each retry
            timeout: Per-request timeout in seconds
            session: HTTP session (injected in tests)
            sleep: Sleep function (injected in tests)
        """
        self.slippage_bps = slippage_bps
        self.quote_url = quote_url
        self.swap_url = swap_url
        self.max_retries = max(1, max_retries)
        self.backoff = backoff
        self.timeout = timeout
        self.session = session or requests.Session()
        self._sleep = sleep

    def _request(self, method: str, url: str, stage: str, **kwargs) -> Dict[str, Any]:
        """
        Issue a request, retrying transient failures with exponential backoff.

        Returns the decoded JSON body of a success, or of a 4xx that
        carries the aggregator's error payload so callers can classify it.

        Raises:
            NetworkError: retries exhausted, or any other HTTP error status
        """
        last_error = "no attempt made"

        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)

                if response.status_code in RETRIABLE_STATUS:
                    last_error = f"HTTP {response.status_code}"
                else:
                    try:
                        data = response.json()
                    except ValueError:
                        response.raise_for_status()
                        raise NetworkError(f"Invalid JSON from {url}", stage=stage)

                    if response.status_code >= 400 and not _is_error_body(data):
                        raise NetworkError(
                            f"HTTP {response.status_code} from aggregator {stage} endpoint",
                            stage=stage,
                            details={"status_code": response.status_code},
                        )
                    return data

            except requests.HTTPError as e:
                raise NetworkError(f"HTTP error from aggregator: {e}", stage=stage)
            except requests.RequestException as e:
                last_error = str(e)

            if attempt < self.max_retries:
                delay = self.backoff * (2 ** (attempt - 1))
                logger.warning(
                    f"Aggregator {stage} request failed ({last_error}), "
                    f"retrying in {delay:.1f}s ({attempt}/{self.max_retries})"
                )
                self._sleep(delay)

        raise NetworkError(
            f"Aggregator {stage} request failed after {self.max_retries} attempts: {last_error}",
            stage=stage,
        )

    def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: Optional[int] = None,
    ) -> Quote:
        """
        Get a swap quote from Jupiter.

        Args:
            input_mint: Input token mint address
            output_mint: Output token mint address
            amount: Amount in smallest unit of the input token
            slippage_bps: Override default slippage

        Returns:
            Quote with the aggregator's advertised output amount

        Raises:
            QuoteUnavailable: aggregator found no route
            NetworkError: transport failure after retries
        """
        slippage = slippage_bps or self.slippage_bps
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": slippage,
            "onlyDirectRoutes": "false",
            "asLegacyTransaction": "false",
        }

        data = self._request("GET", self.quote_url, "quote", params=params)

        if _is_error_body(data):
            raise QuoteUnavailable(
                f"No route: {data.get('error') or data.get('errorCode')}",
                {"error_code": data.get("errorCode")},
            )

        route_plan = data.get("routePlan") or []
        out_amount = int(data.get("outAmount") or 0)
        if not route_plan or out_amount <= 0:
            raise QuoteUnavailable(
                f"No route for {amount} {input_mint[:8]}... -> {output_mint[:8]}..."
            )

        quote = Quote(
            input_mint=data.get("inputMint", input_mint),
            output_mint=data.get("outputMint", output_mint),
            in_amount=int(data.get("inAmount", amount)),
            out_amount=out_amount,
            slippage_bps=int(data.get("slippageBps", slippage)),
            route_plan=tuple(route_plan),
            raw_quote=data,
            price_impact_pct=float(data.get("priceImpactPct") or 0),
        )

        logger.info(
            f"Quote: {quote.in_amount} {quote.input_mint[:8]}... -> "
            f"{quote.out_amount} {quote.output_mint[:8]}... "
            f"({len(quote.route_plan)} hops, impact {quote.price_impact_pct:.4f}%)"
        )
        return quote

    def get_swap_transaction(
        self,
        quote: Quote,
        user_pubkey: str,
        destination_account: Optional[str] = None,
    ) -> bytes:
        """
        Get an unsigned swap transaction for a quote.

        Args:
            quote: Quote from get_quote()
            user_pubkey: Signer's public key
            destination_account: Token account to receive output (defaults to signer's ATA)

        Returns:
            Serialized unsigned transaction bytes

        Raises:
            BuildFailure: aggregator returned no usable transaction
            NetworkError: transport failure after retries
        """
        payload = {
            "quoteResponse": quote.raw_quote,
            "userPublicKey": user_pubkey,
            "wrapAndUnwrapSol": True,
            "dynamicComputeUnitLimit": True,
        }
        if destination_account:
            payload["destinationTokenAccount"] = destination_account

        data = self._request("POST", self.swap_url, "build", json=payload)

        if "error" in data:
            raise BuildFailure(f"Aggregator swap error: {data['error']}")

        swap_transaction = data.get("swapTransaction")
        if not swap_transaction:
            raise BuildFailure("Aggregator returned no swap transaction")

        try:
            return base64.b64decode(swap_transaction, validate=True)
        except (binascii.Error, ValueError) as e:
            raise BuildFailure(f"Swap transaction is not valid base64: {e}")


class AggregatorQuote:
    """
    Price source backed by aggregator quotes.

    Price is base asset per one whole token, from a quote that sells
    exactly one token.
    """

    name = "jupiter"

    def __init__(self, client: JupiterClient, token_decimals: int, base_decimals: int = 9):
        self.client = client
        self.token_decimals = token_decimals
        self.base_decimals = base_decimals

    def get_price(self, token_mint: str, base_mint: str) -> float:
        """
        Raises:
            QuoteUnavailable: no route for the pair
            NetworkError: transport failure after retries
        """
        one_token = 10 ** self.token_decimals
        quote = self.client.get_quote(token_mint, base_mint, one_token)
        return from_base_units(quote.out_amount, self.base_decimals)

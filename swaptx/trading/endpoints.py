"""
Ledger RPC endpoints for SwapTX.

An EndpointPool is the ordered, read-only list of relays
a swap talks to. Primary first, fallbacks after.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import TokenAccountOpts, TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

from swaptx.core.errors import NetworkError
from swaptx.core.models import EndpointFailure, SignatureReading
from swaptx.core.utils import mask_url

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _commitment_name(status) -> Optional[str]:
    if status == TransactionConfirmationStatus.Finalized:
        return "finalized"
    if status == TransactionConfirmationStatus.Confirmed:
        return "confirmed"
    if status == TransactionConfirmationStatus.Processed:
        return "processed"
    return None


@dataclass(frozen=True)
class Anchor:
    """Recent blockhash and the last block height it is valid for."""
    blockhash: Hash
    last_valid_block_height: int


class LedgerEndpoint:
    """
    A single Solana JSON-RPC relay.

    Wraps solana-py's Client with a per-request timeout.
    The URL is only ever logged masked.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: Optional[Client] = None,
        skip_preflight: bool = False,
    ):
        self.url = url
        self.name = mask_url(url)
        self.timeout = timeout
        self.skip_preflight = skip_preflight
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client(self.url, commitment=Confirmed, timeout=self.timeout)
        return self._client

    def _client_within(self, timeout: Optional[float]) -> Client:
        """Client whose requests give up within timeout seconds."""
        if timeout is None or timeout >= self.timeout:
            return self.client
        if timeout <= 0:
            raise TimeoutError(f"No time left to query {self.name}")
        return Client(self.url, commitment=Confirmed, timeout=timeout)

    def send_raw_transaction(self, payload: bytes) -> str:
        """
        Relay signed bytes. Returns the transaction signature.

        With preflight on, the relay simulates first, so an expired
        blockhash is rejected here instead of being dropped silently.
        """
        opts = TxOpts(
            skip_preflight=self.skip_preflight,
            skip_confirmation=True,
            preflight_commitment=Confirmed,
            max_retries=3,
        )
        resp = self.client.send_raw_transaction(payload, opts=opts)
        return str(resp.value)

    def get_latest_blockhash(self) -> Anchor:
        resp = self.client.get_latest_blockhash(commitment=Confirmed)
        return Anchor(
            blockhash=resp.value.blockhash,
            last_valid_block_height=resp.value.last_valid_block_height,
        )

    def get_signature_status(
        self,
        signature: str,
        timeout: Optional[float] = None,
    ) -> Optional[SignatureReading]:
        """
        Read a signature's status, searching extended history.

        Args:
            signature: Transaction signature
            timeout: Upper bound for this read, if shorter than the endpoint timeout

        Returns None if the ledger has not seen the signature yet.
        """
        resp = self._client_within(timeout).get_signature_statuses(
            [Signature.from_string(signature)],
            search_transaction_history=True,
        )
        if not resp.value or resp.value[0] is None:
            return None

        status = resp.value[0]
        return SignatureReading(
            confirmation_status=_commitment_name(status.confirmation_status),
            err=str(status.err) if status.err is not None else None,
            slot=status.slot,
        )

    def get_balance(self, pubkey: str) -> int:
        """SOL balance in lamports."""
        resp = self.client.get_balance(Pubkey.from_string(pubkey))
        return resp.value

    def get_token_balance(self, owner: str, mint: str) -> Optional[int]:
        """
        Sum of the owner's token accounts for a mint, in smallest units.

        Returns None if the owner has no token account for the mint.
        """
        resp = self.client.get_token_accounts_by_owner_json_parsed(
            Pubkey.from_string(owner),
            TokenAccountOpts(mint=Pubkey.from_string(mint)),
        )
        if not resp.value:
            return None

        total = 0
        for account in resp.value:
            info = account.account.data.parsed.get("info", {})
            total += int(info.get("tokenAmount", {}).get("amount", 0))
        return total

    def get_version(self) -> str:
        resp = self.client.get_version()
        return resp.value.solana_core

    def __repr__(self) -> str:
        return f"<LedgerEndpoint {self.name}>"


def classify_failure(error: Exception) -> Tuple[str, str]:
    """
    Classify an endpoint error into (kind, reason).

    Kinds: anchor_expired, timeout, transport, rejected.
    """
    message = str(error) or error.__class__.__name__
    lowered = message.lower()

    if "blockhash not found" in lowered or "block height exceeded" in lowered:
        return "anchor_expired", message

    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return "timeout", message

    if "timed out" in lowered or "timeout" in lowered:
        return "timeout", message

    if isinstance(error, RPCException):
        return "rejected", message

    if isinstance(error, (SolanaRpcException, httpx.HTTPError, ConnectionError, OSError)):
        return "transport", message

    return "rejected", message


class EndpointPool:
    """
    Ordered pool of ledger endpoints.

    Read-only after construction: no reordering, no discovery.
    """

    def __init__(self, endpoints: Sequence[LedgerEndpoint]):
        if not endpoints:
            raise ValueError("EndpointPool requires at least one endpoint")
        self._endpoints: Tuple[LedgerEndpoint, ...] = tuple(endpoints)

    @classmethod
    def from_urls(
        cls,
        urls: Sequence[str],
        timeout: float = 10.0,
        skip_preflight: bool = False,
    ) -> "EndpointPool":
        return cls([
            LedgerEndpoint(url, timeout=timeout, skip_preflight=skip_preflight)
            for url in urls
        ])

    @property
    def endpoints(self) -> Tuple[LedgerEndpoint, ...]:
        return self._endpoints

    @property
    def primary(self) -> LedgerEndpoint:
        return self._endpoints[0]

    def __len__(self) -> int:
        return len(self._endpoints)

    def __iter__(self):
        return iter(self._endpoints)

    def read(
        self,
        operation: str,
        call: Callable[[LedgerEndpoint], T],
        until: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> T:
        """
        Run a read against endpoints in priority order until one answers.

        Args:
            operation: Name used in logs and errors
            call: Function taking an endpoint
            until: clock() value after which no further endpoint is tried
            clock: Monotonic clock for until

        Raises:
            NetworkError: every endpoint tried failed, or until passed first
        """
        failures: List[EndpointFailure] = []

        for endpoint in self._endpoints:
            if until is not None and clock() >= until:
                logger.warning(
                    f"{operation} out of time after {len(failures)} of {len(self._endpoints)} endpoints"
                )
                raise NetworkError(
                    f"{operation} ran out of time after {len(failures)} endpoints",
                    details={"failures": failures},
                )
            try:
                return call(endpoint)
            except Exception as e:
                kind, reason = classify_failure(e)
                failures.append(EndpointFailure(endpoint.name, kind, reason))
                logger.warning(f"{operation} failed on {endpoint.name}: {kind} ({reason})")

        raise NetworkError(
            f"{operation} failed on all {len(failures)} endpoints",
            details={"failures": failures},
        )

"""
Submission engine for SwapTX.

Sends a signed transaction through the endpoint pool with failover.
"""

import logging
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import List, Optional, Sequence, Tuple

from swaptx.core.errors import AnchorExpired, SubmissionExhausted
from swaptx.core.models import EndpointFailure, SignedTransaction, SubmissionResult
from swaptx.core.utils import short_signature
from swaptx.trading.endpoints import EndpointPool, LedgerEndpoint, classify_failure

logger = logging.getLogger(__name__)

Accepted = Tuple[str, LedgerEndpoint]


class SubmissionEngine:
    """
    Submits signed transactions, primary endpoint first.

    A success means at least one relay accepted the bytes for broadcast.
    More than one relay may end up forwarding the same transaction; the
    ledger identifies it by its signature, so they converge on one outcome.
    """

    def __init__(self, pool: EndpointPool, race_width: int = 1):
        """
        Args:
            pool: Ordered endpoint pool
            race_width: Endpoints tried concurrently per round (1 = strictly sequential)
        """
        self.pool = pool
        self.race_width = max(1, race_width)

    def submit(self, tx: SignedTransaction) -> SubmissionResult:
        """
        Submit a signed transaction.

        Returns:
            SubmissionResult from the first endpoint that accepted it

        Raises:
            AnchorExpired: an endpoint reported the blockhash expired
            SubmissionExhausted: every endpoint failed
        """
        endpoints = list(self.pool.endpoints)
        failures: List[EndpointFailure] = []
        attempts = 0

        for start in range(0, len(endpoints), self.race_width):
            group = endpoints[start:start + self.race_width]
            attempts += len(group)

            if len(group) == 1:
                accepted = self._send_one(group[0], tx, failures)
            else:
                accepted = self._race(group, tx, failures)

            if accepted is not None:
                signature, endpoint = accepted
                logger.info(
                    f"Transaction {short_signature(signature)} accepted by {endpoint.name} "
                    f"after {attempts} attempt(s)"
                )
                return SubmissionResult(
                    transaction_id=signature,
                    endpoint=endpoint.name,
                    attempts=attempts,
                    failures=tuple(failures),
                )

        logger.error(f"Submission exhausted all {len(endpoints)} endpoints")
        raise SubmissionExhausted(failures)

    def _send_one(
        self,
        endpoint: LedgerEndpoint,
        tx: SignedTransaction,
        failures: List[EndpointFailure],
    ) -> Optional[Accepted]:
        try:
            signature = endpoint.send_raw_transaction(tx.payload)
        except Exception as e:
            self._record(endpoint, e, failures)
            return None
        return signature or tx.signature, endpoint

    def _race(
        self,
        group: Sequence[LedgerEndpoint],
        tx: SignedTransaction,
        failures: List[EndpointFailure],
    ) -> Optional[Accepted]:
        """First success wins; the rest are discarded."""
        executor = ThreadPoolExecutor(max_workers=len(group))
        try:
            futures = {
                executor.submit(endpoint.send_raw_transaction, tx.payload): endpoint
                for endpoint in group
            }
            pending = set(futures)
            errors = {}

            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    endpoint = futures[future]
                    error = future.exception()
                    if error is None:
                        return future.result() or tx.signature, endpoint
                    errors[id(endpoint)] = error

            # Priority order, not completion order
            for endpoint in group:
                self._record(endpoint, errors[id(endpoint)], failures)
            return None
        finally:
            executor.shutdown(wait=False)

    @staticmethod
    def _record(
        endpoint: LedgerEndpoint,
        error: BaseException,
        failures: List[EndpointFailure],
    ) -> None:
        kind, reason = classify_failure(error)
        failures.append(EndpointFailure(endpoint.name, kind, reason))
        logger.warning(f"Submit failed on {endpoint.name}: {kind} ({reason})")

        if kind == "anchor_expired":
            raise AnchorExpired(reason, endpoint=endpoint.name, failures=failures)

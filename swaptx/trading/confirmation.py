"""
Confirmation watcher for SwapTX.

Polls signature status until the ledger reports a terminal state
or the deadline passes.
"""

import logging
import time
from typing import Callable, Optional

from swaptx.core.errors import NetworkError
from swaptx.core.models import ConfirmationResult, ConfirmationStatus, SignatureReading
from swaptx.core.utils import short_signature
from swaptx.trading.endpoints import EndpointPool

logger = logging.getLogger(__name__)


def status_from_reading(reading: Optional[SignatureReading]) -> ConfirmationStatus:
    """Map one ledger reading to a confirmation state."""
    if reading is None:
        return ConfirmationStatus.PENDING
    if reading.err is not None:
        return ConfirmationStatus.FAILED_ON_CHAIN
    if reading.confirmation_status == "finalized":
        return ConfirmationStatus.FINALIZED
    if reading.confirmation_status == "confirmed":
        return ConfirmationStatus.CONFIRMED
    return ConfirmationStatus.PENDING


class ConfirmationWatcher:
    """
    Watches a submitted transaction until it settles.

    An on-chain error ends the watch at once. A read error counts as a
    missed poll. Running out of time yields TimedOut, which means the
    outcome is unknown, not that the transaction failed. No status read
    runs past the deadline.
    """

    def __init__(
        self,
        pool: EndpointPool,
        poll_interval: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.pool = pool
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    def poll_once(self, signature: str, until: Optional[float] = None) -> SignatureReading:
        """
        Read the signature status once.

        Args:
            signature: Transaction id
            until: clock() value no read may run past

        Raises:
            NetworkError: no endpoint could be read in time
        """
        def read(endpoint):
            if until is None:
                return endpoint.get_signature_status(signature)
            return endpoint.get_signature_status(signature, timeout=until - self._clock())

        return self.pool.read("get_signature_statuses", read, until=until, clock=self._clock)

    def await_confirmation(self, signature: str, deadline: float = 120.0) -> ConfirmationResult:
        """
        Poll until a terminal state or the deadline.

        Args:
            signature: Transaction id returned by submission
            deadline: Seconds from now to keep polling

        Returns:
            ConfirmationResult with a terminal status
        """
        start = self._clock()
        polls = 0
        missed = 0
        last_status = ConfirmationStatus.PENDING

        while self._clock() - start < deadline:
            polls += 1
            try:
                reading = self.poll_once(signature, until=start + deadline)
            except NetworkError as e:
                missed += 1
                logger.warning(
                    f"Status poll {polls} for {short_signature(signature)} missed: {e.reason}"
                )
            else:
                status = status_from_reading(reading)
                if status is not last_status or status.is_terminal:
                    logger.info(
                        f"Transaction {short_signature(signature)}: {status.value} (poll {polls})"
                    )
                last_status = status

                if status.is_terminal:
                    return ConfirmationResult(
                        transaction_id=signature,
                        status=status,
                        polls=polls,
                        elapsed=self._clock() - start,
                        error_detail=reading.err if reading else None,
                        missed_polls=missed,
                    )

            remaining = deadline - (self._clock() - start)
            if remaining <= 0:
                break
            self._sleep(min(self.poll_interval, remaining))

        elapsed = self._clock() - start
        logger.error(
            f"Transaction {short_signature(signature)} not settled after {elapsed:.0f}s "
            f"({polls} polls, {missed} missed); reconcile before retrying"
        )
        return ConfirmationResult(
            transaction_id=signature,
            status=ConfirmationStatus.TIMED_OUT,
            polls=polls,
            elapsed=elapsed,
            missed_polls=missed,
        )

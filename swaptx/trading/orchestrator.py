"""
Swap orchestrator for SwapTX.

Runs quote -> build -> submit -> confirm as one operation and turns
every failure into a SwapOutcome naming the stage that failed.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from swaptx.core.config import Config
from swaptx.core.errors import AnchorExpired, SwapError
from swaptx.core.models import Direction, SwapOutcome, SwapStage
from swaptx.core.utils import explorer_url
from swaptx.trading.builder import Signer, TransactionBuilder
from swaptx.trading.confirmation import ConfirmationWatcher
from swaptx.trading.endpoints import EndpointPool
from swaptx.trading.jupiter import JupiterClient
from swaptx.trading.submission import SubmissionEngine

logger = logging.getLogger(__name__)

_STAGES = {stage.value: stage for stage in SwapStage}


class SwapOrchestrator:
    """
    Executes swaps end to end for one trading pair.

    Stages run strictly in order. A stage failure stops the pipeline;
    the caller decides whether to invoke swap() again. The one exception
    is an expired blockhash at submission, which re-quotes and rebuilds
    up to max_rebuilds times, since resending the same bytes cannot succeed.
    """

    def __init__(
        self,
        jupiter: JupiterClient,
        builder: TransactionBuilder,
        engine: SubmissionEngine,
        watcher: ConfirmationWatcher,
        signer: Signer,
        token_mint: str,
        base_mint: str,
        slippage_bps: int = 50,
        confirm_timeout: float = 120.0,
        max_rebuilds: int = 2,
        single_flight: bool = True,
        destination_account: Optional[str] = None,
    ):
        self.jupiter = jupiter
        self.builder = builder
        self.engine = engine
        self.watcher = watcher
        self.signer = signer
        self.token_mint = token_mint
        self.base_mint = base_mint
        self.slippage_bps = slippage_bps
        self.confirm_timeout = confirm_timeout
        self.max_rebuilds = max(0, max_rebuilds)
        self.destination_account = destination_account
        self._guard: Optional[threading.Lock] = threading.Lock() if single_flight else None

    @classmethod
    def from_config(cls, config: Config, signer: Signer) -> "SwapOrchestrator":
        """Wire up the full pipeline from configuration."""
        pool = EndpointPool.from_urls(
            config.endpoints,
            timeout=config.submit_timeout,
            skip_preflight=config.skip_preflight,
        )
        jupiter = JupiterClient(
            slippage_bps=config.slippage_bps,
            quote_url=config.jupiter_quote_url,
            swap_url=config.jupiter_swap_url,
            max_retries=config.quote_retries,
            backoff=config.quote_backoff,
            timeout=config.http_timeout,
        )
        return cls(
            jupiter=jupiter,
            builder=TransactionBuilder(jupiter, pool),
            engine=SubmissionEngine(pool, race_width=config.submit_race_width),
            watcher=ConfirmationWatcher(pool, poll_interval=config.poll_interval),
            signer=signer,
            token_mint=config.token_address,
            base_mint=config.base_mint,
            slippage_bps=config.slippage_bps,
            confirm_timeout=config.confirm_timeout,
            max_rebuilds=config.max_rebuilds,
            single_flight=not config.allow_concurrent_swaps,
        )

    @contextmanager
    def _single_flight(self) -> Iterator[None]:
        if self._guard is None:
            yield
            return
        with self._guard:
            yield

    def _mints(self, direction: Direction):
        if direction is Direction.BUY:
            return self.base_mint, self.token_mint
        return self.token_mint, self.base_mint

    def swap(self, direction: Direction, amount: int) -> SwapOutcome:
        """
        Execute one swap.

        Args:
            direction: BUY spends base asset, SELL spends the token
            amount: Input amount in the input token's smallest unit

        Returns:
            SwapOutcome; never raises for pipeline failures
        """
        direction = Direction(direction)
        outcome = SwapOutcome(direction=direction, amount=amount)

        if amount <= 0:
            outcome.stage = SwapStage.QUOTE
            outcome.reason = f"Amount must be positive, got {amount}"
            outcome.error_type = "ValueError"
            return outcome

        with self._single_flight():
            try:
                self._run(outcome)
            except SwapError as e:
                outcome.stage = _STAGES.get(e.stage or "", outcome.stage)
                outcome.reason = e.reason
                outcome.error_type = type(e).__name__
                failures = e.details.get("failures")
                if failures:
                    outcome.failures = list(failures)
            except Exception as e:
                logger.exception(f"Unexpected error during {direction.value} swap")
                outcome.reason = repr(e)
                outcome.error_type = type(e).__name__

        if outcome.success:
            logger.info(f"Swap {outcome.describe()}")
        else:
            logger.error(f"Swap {outcome.describe()}")
        return outcome

    def _run(self, outcome: SwapOutcome) -> None:
        input_mint, output_mint = self._mints(outcome.direction)
        logger.info(f"Starting {outcome.direction.value} swap: {outcome.amount} {input_mint[:8]}...")

        while True:
            outcome.stage = SwapStage.QUOTE
            quote = self.jupiter.get_quote(
                input_mint, output_mint, outcome.amount, self.slippage_bps
            )
            outcome.quote = quote

            outcome.stage = SwapStage.BUILD
            signed = self.builder.build_and_sign(quote, self.signer, self.destination_account)
            outcome.transaction_id = signed.signature

            outcome.stage = SwapStage.SUBMIT
            try:
                submission = self.engine.submit(signed)
            except AnchorExpired as e:
                if outcome.rebuilds >= self.max_rebuilds:
                    raise
                outcome.rebuilds += 1
                outcome.transaction_id = None
                logger.warning(
                    f"Blockhash expired ({e.reason}); re-quoting and rebuilding "
                    f"({outcome.rebuilds}/{self.max_rebuilds})"
                )
                continue
            break

        outcome.transaction_id = submission.transaction_id
        outcome.endpoint = submission.endpoint
        outcome.failures = list(submission.failures)
        logger.info(f"Swap sent: {explorer_url(submission.transaction_id)}")

        outcome.stage = SwapStage.CONFIRM
        result = self.watcher.await_confirmation(submission.transaction_id, self.confirm_timeout)
        outcome.status = result.status
        outcome.polls = result.polls

        if result.status.is_success:
            outcome.stage = None
        else:
            outcome.reason = result.error_detail or (
                "No terminal status before deadline; outcome unknown, reconcile on-chain"
            )
            outcome.error_type = result.status.name

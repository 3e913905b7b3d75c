"""
Data models for SwapTX.

Models: Quote, SignedTransaction, SubmissionResult, ConfirmationResult, SwapOutcome.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Direction(str, Enum):
    """Swap direction relative to the traded token."""
    BUY = "buy"    # base asset -> token
    SELL = "sell"  # token -> base asset


class SwapStage(str, Enum):
    """Pipeline stage that produced an outcome."""
    QUOTE = "quote"
    BUILD = "build"
    SUBMIT = "submit"
    CONFIRM = "confirm"


class ConfirmationStatus(str, Enum):
    """
    Ledger state of a submitted transaction.

    Pending is the only non-terminal state. Confirmed and Finalized are
    terminal successes, FailedOnChain and TimedOut terminal failures.
    TimedOut means unknown, not failed.
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"
    FAILED_ON_CHAIN = "failed_on_chain"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self is not ConfirmationStatus.PENDING

    @property
    def is_success(self) -> bool:
        return self in (ConfirmationStatus.CONFIRMED, ConfirmationStatus.FINALIZED)


@dataclass(frozen=True)
class Quote:
    """Quote from the aggregator. Never reused across attempts."""
    input_mint: str
    output_mint: str
    in_amount: int  # smallest unit of input token
    out_amount: int  # smallest unit of output token
    slippage_bps: int
    route_plan: Tuple[Any, ...] = field(hash=False)
    raw_quote: Dict[str, Any] = field(hash=False, compare=False, repr=False)
    price_impact_pct: float = 0.0


@dataclass(frozen=True)
class SignedTransaction:
    """A transaction signed over a freshly fetched blockhash."""
    payload: bytes
    blockhash: str
    signatures: Tuple[str, ...]
    last_valid_block_height: Optional[int] = None

    @property
    def signature(self) -> str:
        """Fee payer signature, which is the ledger-level transaction id."""
        return self.signatures[0]


@dataclass(frozen=True)
class EndpointFailure:
    """Why a single endpoint did not accept a submission."""
    endpoint: str
    kind: str  # timeout, transport, rejected, anchor_expired
    reason: str


@dataclass(frozen=True)
class SubmissionResult:
    """At least one relay accepted the transaction for broadcast."""
    transaction_id: str
    endpoint: str
    attempts: int
    failures: Tuple[EndpointFailure, ...] = ()


@dataclass(frozen=True)
class SignatureReading:
    """One ledger read of a signature's status."""
    confirmation_status: Optional[str] = None  # processed, confirmed, finalized
    err: Optional[str] = None
    slot: Optional[int] = None


@dataclass
class ConfirmationResult:
    """Terminal result of watching a transaction."""
    transaction_id: str
    status: ConfirmationStatus
    polls: int
    elapsed: float
    error_detail: Optional[str] = None
    missed_polls: int = 0


@dataclass(frozen=True)
class PoolPrice:
    """Pair price from the pool listing."""
    base_mint: str
    quote_mint: str
    price: float
    name: Optional[str] = None
    amm_id: Optional[str] = None


@dataclass
class SwapOutcome:
    """
    Caller-visible result of one swap invocation.

    Success means the ledger reported confirmed or finalized commitment.
    Failures carry the stage and the underlying reason.
    """
    direction: Direction
    amount: int
    status: Optional[ConfirmationStatus] = None
    transaction_id: Optional[str] = None
    endpoint: Optional[str] = None
    stage: Optional[SwapStage] = None
    reason: Optional[str] = None
    error_type: Optional[str] = None
    quote: Optional[Quote] = None
    rebuilds: int = 0
    polls: int = 0
    failures: List[EndpointFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status is not None and self.status.is_success

    @property
    def needs_reconciliation(self) -> bool:
        """Outcome unknown; check the ledger out of band before retrying."""
        return self.status is ConfirmationStatus.TIMED_OUT

    def describe(self) -> str:
        """One-line summary for logs and console output."""
        if self.success:
            return f"{self.direction.value} {self.status.value}: {self.transaction_id}"
        stage = self.stage.value if self.stage else "unknown"
        status = f" [{self.status.value}]" if self.status else ""
        tx = f" tx={self.transaction_id}" if self.transaction_id else ""
        return f"{self.direction.value} failed at {stage}{status}: {self.reason}{tx}"

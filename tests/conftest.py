"""
Shared fakes for SwapTX tests.

Ledger endpoints and clocks are fakes; nothing here touches the network or sleeps.
"""

import sys
from pathlib import Path

import pytest

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from solders.hash import Hash

from swaptx.core.models import SignatureReading
from swaptx.trading.endpoints import Anchor


class FakeEndpoint:
    """
    Stands in for LedgerEndpoint.

    Each scripted list is consumed one item per call; an Exception
    item is raised, anything else returned. The last item repeats.
    """

    def __init__(self, name, sends=None, statuses=None, anchors=None, balance=0, token_balance=None):
        self.name = name
        self.sends = list(sends or [])
        self.statuses = list(statuses or [])
        self.anchors = list(anchors or [])
        self.balance = balance
        self.token_balance = token_balance
        self.sent = []
        self.status_calls = 0

    @staticmethod
    def _next(script):
        item = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(item, Exception):
            raise item
        return item

    def send_raw_transaction(self, payload):
        self.sent.append(payload)
        return self._next(self.sends)

    def get_signature_status(self, signature, timeout=None):
        self.status_calls += 1
        return self._next(self.statuses)

    def get_latest_blockhash(self):
        if not self.anchors:
            return Anchor(blockhash=Hash.default(), last_valid_block_height=100)
        return self._next(self.anchors)

    def get_balance(self, pubkey):
        if isinstance(self.balance, Exception):
            raise self.balance
        return self.balance

    def get_token_balance(self, owner, mint):
        return self.token_balance


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self, start=0.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


PENDING = None
PROCESSED = SignatureReading(confirmation_status="processed", slot=10)
CONFIRMED = SignatureReading(confirmation_status="confirmed", slot=11)
FINALIZED = SignatureReading(confirmation_status="finalized", slot=12)


def failed_reading(detail="InstructionError(2, Custom(6001))"):
    return SignatureReading(confirmation_status="processed", err=detail, slot=11)


@pytest.fixture
def clock():
    return FakeClock()

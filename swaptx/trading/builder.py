"""
Transaction builder for SwapTX.

Turns a quote into a transaction signed over a freshly fetched blockhash.
"""

import logging
from typing import Optional, Protocol

from solders.hash import Hash
from solders.message import Message, MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from swaptx.core.errors import BuildFailure, NetworkError
from swaptx.core.models import Quote, SignedTransaction
from swaptx.trading.endpoints import EndpointPool
from swaptx.trading.jupiter import JupiterClient

logger = logging.getLogger(__name__)


class Signer(Protocol):
    """Signing capability. solders Keypair satisfies it."""

    def pubkey(self) -> Pubkey: ...

    def sign_message(self, message: bytes) -> Signature: ...


def with_blockhash(message, blockhash: Hash):
    """Copy a legacy or v0 message with a different recent blockhash."""
    if isinstance(message, MessageV0):
        return MessageV0(
            message.header,
            message.account_keys,
            blockhash,
            message.instructions,
            message.address_table_lookups,
        )

    header = message.header
    return Message.new_with_compiled_instructions(
        header.num_required_signatures,
        header.num_readonly_signed_accounts,
        header.num_readonly_unsigned_accounts,
        message.account_keys,
        blockhash,
        message.instructions,
    )


class TransactionBuilder:
    """
    Builds and signs swap transactions.

    The aggregator supplies the instructions; the blockhash is replaced
    with one fetched right before signing, since blockhashes expire
    after roughly 150 slots.
    """

    def __init__(self, jupiter: JupiterClient, pool: EndpointPool):
        self.jupiter = jupiter
        self.pool = pool

    def build_and_sign(
        self,
        quote: Quote,
        signer: Signer,
        destination_account: Optional[str] = None,
    ) -> SignedTransaction:
        """
        Build a signed transaction for a quote.

        Args:
            quote: Fresh quote from JupiterClient.get_quote()
            signer: Signing capability for the fee payer
            destination_account: Optional output token account

        Returns:
            SignedTransaction ready for submission

        Raises:
            BuildFailure: route unusable, transaction malformed or blockhash fetch failed
        """
        if not quote.route_plan:
            raise BuildFailure("Quote has an empty route")

        owner = signer.pubkey()

        try:
            unsigned = self.jupiter.get_swap_transaction(
                quote, str(owner), destination_account
            )
        except NetworkError as e:
            raise BuildFailure(f"Swap transaction fetch failed: {e.reason}", e.details)

        try:
            tx = VersionedTransaction.from_bytes(unsigned)
        except Exception as e:
            raise BuildFailure(f"Swap transaction could not be decoded: {e}")

        message = tx.message
        if not message.instructions:
            raise BuildFailure("Swap transaction has no instructions")

        if message.header.num_required_signatures != 1:
            raise BuildFailure(
                f"Swap transaction needs {message.header.num_required_signatures} signers, expected 1"
            )

        if message.account_keys[0] != owner:
            raise BuildFailure("Swap transaction fee payer does not match signer")

        # Fetch the anchor as late as possible
        try:
            anchor = self.pool.read("get_latest_blockhash", lambda ep: ep.get_latest_blockhash())
        except NetworkError as e:
            raise BuildFailure(f"Blockhash fetch failed: {e.reason}", e.details)

        anchored = with_blockhash(message, anchor.blockhash)
        signature = signer.sign_message(to_bytes_versioned(anchored))
        signed = VersionedTransaction.populate(anchored, [signature])

        logger.info(
            f"Built transaction: {len(anchored.instructions)} instructions, "
            f"blockhash {str(anchor.blockhash)[:8]}..., "
            f"valid until height {anchor.last_valid_block_height}"
        )

        return SignedTransaction(
            payload=bytes(signed),
            blockhash=str(anchor.blockhash),
            signatures=tuple(str(s) for s in signed.signatures),
            last_valid_block_height=anchor.last_valid_block_height,
        )

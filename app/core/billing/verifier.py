"""
Payment verification against chain RPC.

Verification is read-only and repeatable: it never marks a payment as
used. Consumption is the caller's one-time state transition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from app.core.errors import (
    InsufficientValue,
    RecipientMismatch,
    SenderMismatch,
    TxNotFound,
    TxPending,
    TxReverted,
)
from app.services.address import same_address
from app.services.evm import parse_quantity

if TYPE_CHECKING:
    from app.providers.base import ChainReader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedPayment:
    tx_hash: str
    payer: str
    payee: str
    value_wei: int
    block_number: Optional[int] = None


class PaymentVerifier:
    """Checks that a claimed payment transaction really paid the treasury."""

    def __init__(self, reader: "ChainReader"):
        self.reader = reader

    async def verify(
        self,
        tx_hash: str,
        expected_payer: str,
        expected_payee: str,
        min_value_wei: int,
    ) -> VerifiedPayment:
        """
        Validate a payment transaction.

        Raises:
            TxNotFound: the node does not know the transaction
            TxPending: the transaction is not mined yet (retry later)
            TxReverted: the receipt status is not success
            SenderMismatch / RecipientMismatch: wrong ``from`` / ``to``
            InsufficientValue: value below ``min_value_wei``
        """
        tx = await self.reader.get_transaction(tx_hash)
        if not tx:
            raise TxNotFound("Payment transaction not found", {"txHash": tx_hash})

        receipt = await self.reader.get_transaction_receipt(tx_hash)
        if not receipt:
            raise TxPending("Payment transaction not yet mined", {"txHash": tx_hash})

        if parse_quantity(receipt.get("status")) != 1:
            raise TxReverted("Payment transaction failed", {"txHash": tx_hash})

        sender = tx.get("from") or ""
        recipient = tx.get("to") or ""

        if not same_address(sender, expected_payer):
            logger.warning("Payment %s sent by %s, expected %s", tx_hash, sender, expected_payer)
            raise SenderMismatch("Payment not sent by this player", {"txHash": tx_hash})

        if not recipient:
            raise RecipientMismatch("Payment transaction has no recipient", {"txHash": tx_hash})
        if not same_address(recipient, expected_payee):
            logger.warning("Payment %s sent to %s, expected treasury %s", tx_hash, recipient, expected_payee)
            raise RecipientMismatch("Payment not sent to billing treasury address", {"txHash": tx_hash})

        value_wei = parse_quantity(tx.get("value")) or 0
        if value_wei < min_value_wei:
            raise InsufficientValue(
                "Payment value is below required price",
                {"requiredWei": str(min_value_wei), "sentWei": str(value_wei)},
            )

        logger.info("Payment %s verified: %s wei from %s", tx_hash, value_wei, sender)
        return VerifiedPayment(
            tx_hash=tx_hash,
            payer=sender,
            payee=recipient,
            value_wei=value_wei,
            block_number=parse_quantity(receipt.get("blockNumber")),
        )

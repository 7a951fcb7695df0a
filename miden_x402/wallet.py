"""
Miden agent wallet for x402 payments.

The wallet wraps an external Miden ledger client and handles:
- Input validation before anything reaches the prover
- One proof at a time per wallet
- Budget tracking
- Payment history

Account creation, balances and network sync stay with the ledger client.
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from .exceptions import WalletValidationError
from .types import NoteType, ProvenPayment

logger = logging.getLogger(__name__)

_HEX_PATTERN = re.compile(r"(0x)?[0-9a-fA-F]+")
_NOTE_TYPES = ("public", "private")


class ProvenTransaction(Protocol):
    """A transaction executed and proven locally, not yet submitted."""

    def serialize(self) -> bytes: ...

    def id(self) -> Any: ...


class MidenLedgerClient(Protocol):
    """The part of a Miden client the wallet needs."""

    async def prove_p2id(
        self,
        sender_id: str,
        recipient_id: str,
        faucet_id: str,
        amount: int,
        note_type: NoteType,
    ) -> ProvenTransaction: ...


@dataclass
class PaymentRecord:
    """Record of a payment proof created by the wallet."""

    timestamp: float
    recipient_id: str
    faucet_id: str
    amount: int
    note_type: NoteType
    transaction_id: str


def _validate_hex(value: str, field_name: str) -> None:
    if not isinstance(value, str) or not _HEX_PATTERN.fullmatch(value):
        raise WalletValidationError(f"Invalid hex format for {field_name}: {value!r}")


def _validate_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise WalletValidationError(f"Amount must be positive, got {amount!r}")


class MidenAgentWallet:
    """
    Wallet for x402 payments on Miden.

    Creates P2ID payment proofs through a ledger client and tracks spending
    against an optional budget. Amounts are integers in the token's smallest
    unit.

    Example:
        wallet = MidenAgentWallet(client, account_id="0xabc123", budget=10_000)

        if wallet.can_afford(500):
            proof = await wallet.create_p2id_proof(recipient, faucet, 500)
    """

    def __init__(
        self,
        client: MidenLedgerClient,
        account_id: str,
        budget: Optional[int] = None,
    ) -> None:
        _validate_hex(account_id, "account_id")
        self.client = client
        self.budget = budget
        self._account_id = account_id
        self._spent = 0
        self._payments: list[PaymentRecord] = []
        # The prover handles one transaction at a time.
        self._lock = asyncio.Lock()

    @property
    def account_id(self) -> str:
        """The agent's Miden account id (hex)."""
        return self._account_id

    @property
    def spent(self) -> int:
        """Total amount committed to proofs created by this wallet."""
        return self._spent

    @property
    def remaining(self) -> Optional[int]:
        """Remaining budget, or None without a budget."""
        if self.budget is None:
            return None
        return max(0, self.budget - self._spent)

    @property
    def payments(self) -> list[PaymentRecord]:
        """List of all payments made."""
        return self._payments.copy()

    def can_afford(self, amount: int) -> bool:
        """
        Check if the wallet can afford a payment.

        Args:
            amount: Amount in the token's smallest unit

        Returns:
            True if there is no budget or the remaining budget covers ``amount``
        """
        remaining = self.remaining
        return remaining is None or remaining >= amount

    async def create_p2id_proof(
        self,
        recipient_id: str,
        faucet_id: str,
        amount: int,
        note_type: NoteType = "public",
    ) -> ProvenPayment:
        """
        Create a P2ID payment and return the serialized proven transaction.

        The transaction is executed and proven locally but NOT submitted;
        in the x402 flow the facilitator submits it after verification.

        Args:
            recipient_id: Recipient account id (hex, ``0x`` optional)
            faucet_id: Token faucet account id (hex, ``0x`` optional)
            amount: Amount in the token's smallest unit
            note_type: "public" or "private"; x402 requires "public"

        Returns:
            The proven transaction as hex plus its transaction id

        Raises:
            WalletValidationError: On invalid arguments or exceeded budget
        """
        _validate_amount(amount)
        _validate_hex(recipient_id, "recipient_id")
        _validate_hex(faucet_id, "faucet_id")
        if note_type not in _NOTE_TYPES:
            raise WalletValidationError(
                f"Invalid note type {note_type!r}, expected 'public' or 'private'"
            )

        async with self._lock:
            if not self.can_afford(amount):
                raise WalletValidationError(
                    f"Budget exceeded: need {amount}, have {self.remaining} remaining"
                )

            proven = await self.client.prove_p2id(
                self._account_id,
                recipient_id,
                faucet_id,
                amount,
                note_type,
            )
            proof = ProvenPayment(
                proven_transaction_hex=proven.serialize().hex(),
                transaction_id=str(proven.id()),
            )

            self._spent += amount
            self._payments.append(
                PaymentRecord(
                    timestamp=time.time(),
                    recipient_id=recipient_id,
                    faucet_id=faucet_id,
                    amount=amount,
                    note_type=note_type,
                    transaction_id=proof.transaction_id,
                )
            )

        logger.info(
            "Proved P2ID transaction %s (%d hex chars) for %s",
            proof.transaction_id,
            len(proof.proven_transaction_hex),
            recipient_id,
        )
        return proof

    def get_payment_summary(self) -> dict:
        """
        Get a summary of wallet activity.

        Returns:
            Dictionary with budget, spent, remaining, and payment count
        """
        return {
            "account_id": self._account_id,
            "budget": self.budget,
            "spent": self._spent,
            "remaining": self.remaining,
            "payment_count": len(self._payments),
        }

    def reset_budget(self, new_budget: Optional[int] = None) -> None:
        """
        Reset spending and clear payment history.

        Args:
            new_budget: New budget amount, or None to keep current budget
        """
        if new_budget is not None:
            self.budget = new_budget
        self._spent = 0
        self._payments.clear()

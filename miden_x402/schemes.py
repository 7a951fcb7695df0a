"""
Payment schemes this client knows how to pay.

Each scheme is a strategy that turns a selected requirement into the
scheme-specific body of the payment payload. Supporting a new scheme means a
new :class:`PaymentScheme` member and a strategy registered in
:data:`SCHEMES`; the negotiation flow itself does not change.
"""

import enum
import re
from typing import Optional, Protocol

from .types import MidenExactPayload, NoteType, PaymentRequirement, PaymentWallet

_AMOUNT_PATTERN = re.compile(r"[0-9]+")


class PaymentScheme(str, enum.Enum):
    EXACT = "exact"


def parse_amount(value: str) -> int:
    """
    Parse a decimal integer amount string.

    Amounts are arbitrary precision; they never pass through float.

    Raises:
        ValueError: If ``value`` is not a string of ASCII digits
    """
    if not isinstance(value, str) or not _AMOUNT_PATTERN.fullmatch(value):
        raise ValueError(f"Invalid payment amount: {value!r}")
    return int(value)


class SchemeStrategy(Protocol):
    async def create_payload(
        self,
        wallet: PaymentWallet,
        requirement: PaymentRequirement,
    ) -> MidenExactPayload: ...


class ExactScheme:
    """
    Pays exactly ``requirement.amount`` with a P2ID note.

    The note is always public: a facilitator cannot verify a private note, so
    x402 payments never use one.
    """

    note_type: NoteType = "public"

    async def create_payload(
        self,
        wallet: PaymentWallet,
        requirement: PaymentRequirement,
    ) -> MidenExactPayload:
        amount = parse_amount(requirement.amount)
        proof = await wallet.create_p2id_proof(
            requirement.pay_to,
            requirement.asset,
            amount,
            self.note_type,
        )
        return MidenExactPayload(
            from_=wallet.account_id,
            proven_transaction=proof.proven_transaction_hex,
            transaction_id=proof.transaction_id,
        )


SCHEMES: dict[PaymentScheme, SchemeStrategy] = {
    PaymentScheme.EXACT: ExactScheme(),
}


def get_scheme(tag: str) -> Optional[SchemeStrategy]:
    """Return the strategy for a scheme tag, or None if it is not supported."""
    try:
        scheme = PaymentScheme(tag)
    except ValueError:
        return None
    return SCHEMES.get(scheme)

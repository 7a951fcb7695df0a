"""
Core type definitions for the x402 Miden agent SDK.

Wire types (the 402 body, payment requirements and the payment payload) are
pydantic models: they validate on the way in and serialize with their
camelCase wire names on the way out. In-process values are frozen
dataclasses.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Literal, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

X402_VERSION = 2

NoteType = Literal["public", "private"]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


# ============================================================================
# x402 wire types
# ============================================================================


class PaymentRequirement(_WireModel):
    """One accepted way to pay for a resource, as offered by the server."""

    # Unknown keys are kept so the requirement can be echoed back verbatim.
    model_config = ConfigDict(extra="allow")

    scheme: str = Field(description='Payment scheme, "exact" for the Miden flow')
    network: str = Field(description="CAIP-2 network id, e.g. miden:testnet")
    amount: str = Field(description="Amount in the token's smallest unit")
    pay_to: str = Field(alias="payTo", description="Recipient account id (hex)")
    max_timeout_seconds: int = Field(alias="maxTimeoutSeconds")
    asset: str = Field(description="Token faucet account id (hex)")
    extra: Optional[Any] = None


class ResourceInfo(_WireModel):
    """The request a 402 response refers to."""

    model_config = ConfigDict(extra="allow")

    url: str
    method: str
    headers: Optional[dict[str, str]] = None


class PaymentRequired(_WireModel):
    """Parsed body of a 402 response."""

    x402_version: Literal[2] = Field(alias="x402Version")
    accepts: list[PaymentRequirement]
    resource: Optional[ResourceInfo] = None
    error: Optional[str] = None


class MidenExactPayload(_WireModel):
    """The Miden-specific body of a v2 payment."""

    from_: str = Field(alias="from", description="Sender account id (hex)")
    proven_transaction: str = Field(
        alias="provenTransaction",
        description="Hex-encoded serialized ProvenTransaction",
    )
    transaction_id: str = Field(alias="transactionId")


class PaymentPayload(_WireModel):
    """Full v2 payment payload carried by the ``Payment`` header."""

    x402_version: Literal[2] = Field(alias="x402Version")
    accepted: PaymentRequirement
    resource: Optional[ResourceInfo] = None
    payload: MidenExactPayload


# ============================================================================
# Client-side values
# ============================================================================


def _as_id_set(values: Optional[Iterable[str]]) -> frozenset[str]:
    if values is None:
        return frozenset()
    # A lone id is a common slip; don't split it into characters.
    if isinstance(values, str):
        return frozenset((values,))
    return frozenset(values)


@dataclass(frozen=True)
class PaymentConstraints:
    """
    What the caller is willing to pay for.

    ``max_payment`` of ``None`` or ``0`` means unlimited. Empty faucet and
    network sets accept anything.
    """

    max_payment: Optional[int] = None
    allowed_faucets: frozenset[str] = frozenset()
    allowed_networks: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if self.max_payment is not None and (
            isinstance(self.max_payment, bool) or not isinstance(self.max_payment, int)
        ):
            raise TypeError("max_payment must be an integer amount in base units")
        object.__setattr__(self, "allowed_faucets", _as_id_set(self.allowed_faucets))
        object.__setattr__(self, "allowed_networks", _as_id_set(self.allowed_networks))

    @property
    def has_payment_limit(self) -> bool:
        return self.max_payment is not None and self.max_payment > 0


@dataclass(frozen=True)
class ProvenPayment:
    """Opaque proof artifact produced by the wallet."""

    proven_transaction_hex: str
    transaction_id: str


@dataclass(frozen=True)
class PaymentResult:
    """Result of a successful x402 payment."""

    transaction_id: str
    # Base64-encoded value for the Payment header
    payment_header: str
    # The selected requirement itself, not a copy
    requirements: PaymentRequirement


@runtime_checkable
class PaymentWallet(Protocol):
    """
    The one capability the payment flow needs from a wallet.

    ``create_p2id_proof`` executes and proves a pay-to-id transaction locally
    without submitting it; the facilitator submits it after verification.
    """

    @property
    def account_id(self) -> str: ...

    async def create_p2id_proof(
        self,
        recipient_id: str,
        faucet_id: str,
        amount: int,
        note_type: NoteType = "public",
    ) -> ProvenPayment: ...

"""
X402PaymentHandler: turns a 402 response into a Payment header.

Takes a 402 response, selects a payment requirement the agent is willing to
pay, asks the wallet for a P2ID payment proof, and returns the encoded
payment header ready to be sent back.
"""

import logging
from typing import Iterable, Optional

import httpx

from .codec import encode_payment_header
from .exceptions import ProofCreationError
from .schemes import get_scheme
from .selector import select_requirement
from .types import (
    X402_VERSION,
    PaymentConstraints,
    PaymentPayload,
    PaymentRequired,
    PaymentRequirement,
    PaymentResult,
    PaymentWallet,
    ResourceInfo,
)

logger = logging.getLogger(__name__)


def resolve_constraints(
    constraints: Optional[PaymentConstraints] = None,
    *,
    max_payment: Optional[int] = None,
    allowed_faucets: Optional[Iterable[str]] = None,
    allowed_networks: Optional[Iterable[str]] = None,
) -> PaymentConstraints:
    """Build constraints from either a ready-made object or individual limits."""
    individual = (max_payment, allowed_faucets, allowed_networks)
    if constraints is not None:
        if any(item is not None for item in individual):
            raise ValueError(
                "Provide either PaymentConstraints or individual limits, not both."
            )
        return constraints
    return PaymentConstraints(
        max_payment=max_payment,
        allowed_faucets=allowed_faucets,
        allowed_networks=allowed_networks,
    )


class X402PaymentHandler:
    """
    Handles the x402 payment flow for an AI agent.

    Given a 402 response from a server, the handler:
    1. Parses the payment requirements from the body
    2. Selects the first requirement allowed by the agent's constraints
    3. Creates a P2ID payment proof via the wallet
    4. Returns the encoded Payment header

    The wallet is asked for at most one proof per response, and only when a
    compatible requirement exists.

    Example:
        handler = X402PaymentHandler(wallet, max_payment=1_000)
        result = await handler.handle_payment_required(response)
        if result is not None:
            headers["Payment"] = result.payment_header
    """

    def __init__(
        self,
        wallet: PaymentWallet,
        constraints: Optional[PaymentConstraints] = None,
        *,
        max_payment: Optional[int] = None,
        allowed_faucets: Optional[Iterable[str]] = None,
        allowed_networks: Optional[Iterable[str]] = None,
    ) -> None:
        self._wallet = wallet
        self._constraints = resolve_constraints(
            constraints,
            max_payment=max_payment,
            allowed_faucets=allowed_faucets,
            allowed_networks=allowed_networks,
        )

    @property
    def constraints(self) -> PaymentConstraints:
        return self._constraints

    async def parse_payment_required(
        self,
        response: httpx.Response,
    ) -> Optional[PaymentRequired]:
        """
        Parse a 402 response body.

        Returns None for non-402 responses (without reading the body) and for
        bodies that are not valid x402 v2 payment requirements.
        """
        if response.status_code != 402:
            return None

        body = await response.aread()
        try:
            return PaymentRequired.model_validate_json(body)
        except ValueError as exc:
            # pydantic.ValidationError covers both bad JSON and bad shape
            logger.debug("Ignoring unusable 402 body from %s: %s", _url_of(response), exc)
            return None

    def select_requirement(
        self,
        requirements: Iterable[PaymentRequirement],
    ) -> Optional[PaymentRequirement]:
        """Return the first requirement allowed by this handler's constraints."""
        return select_requirement(requirements, self._constraints)

    async def create_payment(
        self,
        requirement: PaymentRequirement,
        resource: Optional[ResourceInfo] = None,
    ) -> PaymentResult:
        """
        Create a payment proof for ``requirement`` and encode the header.

        The proven transaction is not submitted to the network; the
        facilitator submits it after verification.

        Raises:
            ProofCreationError: If the wallet could not produce a proof
        """
        strategy = get_scheme(requirement.scheme)
        if strategy is None:
            raise ProofCreationError(
                f"Unsupported payment scheme: {requirement.scheme!r}",
                requirement=requirement,
            )

        try:
            miden_payload = await strategy.create_payload(self._wallet, requirement)
        except Exception as exc:
            raise ProofCreationError(
                f"Failed to create payment proof for {requirement.pay_to}: {exc}",
                requirement=requirement,
            ) from exc

        fields = {
            "x402_version": X402_VERSION,
            "accepted": requirement,
            "payload": miden_payload,
        }
        if resource is not None:
            fields["resource"] = resource
        payment_header = encode_payment_header(PaymentPayload(**fields))

        logger.info(
            "Created payment %s: %s of %s to %s",
            miden_payload.transaction_id,
            requirement.amount,
            requirement.asset,
            requirement.pay_to,
        )
        return PaymentResult(
            transaction_id=miden_payload.transaction_id,
            payment_header=payment_header,
            requirements=requirement,
        )

    async def handle_payment_required(
        self,
        response: httpx.Response,
    ) -> Optional[PaymentResult]:
        """
        Full flow: parse 402 response, select requirement, create payment.

        Returns:
            PaymentResult with the encoded Payment header, or None if the
            response offers nothing this handler can pay
        """
        payment_required = await self.parse_payment_required(response)
        if payment_required is None:
            return None

        requirement = self.select_requirement(payment_required.accepts)
        if requirement is None:
            logger.warning(
                "No compatible payment requirement among %d offer(s) from %s",
                len(payment_required.accepts),
                _url_of(response),
            )
            return None

        return await self.create_payment(requirement, payment_required.resource)


def _url_of(response: httpx.Response) -> str:
    try:
        return str(response.request.url)
    except RuntimeError:
        # Responses built by hand have no request attached
        return "<unknown>"

"""
Requirement selection.

Selection is a single ordered pass: the server lists offers in its order of
preference and the first one the caller can pay wins. There is no scoring
and no search for the cheapest offer.
"""

import logging
from typing import Iterable, Optional

from .schemes import get_scheme, parse_amount
from .types import PaymentConstraints, PaymentRequirement

logger = logging.getLogger(__name__)


def rejection_reason(
    offer: PaymentRequirement,
    constraints: PaymentConstraints,
) -> Optional[str]:
    """Return why ``offer`` is not payable under ``constraints``, or None."""
    if get_scheme(offer.scheme) is None:
        return f"unsupported scheme {offer.scheme!r}"

    if constraints.allowed_networks and offer.network not in constraints.allowed_networks:
        return f"network {offer.network!r} not allowed"

    if constraints.allowed_faucets and offer.asset not in constraints.allowed_faucets:
        return f"faucet {offer.asset!r} not allowed"

    # The amount is only inspected when there is a limit to compare it with.
    if constraints.has_payment_limit:
        try:
            amount = parse_amount(offer.amount)
        except ValueError:
            return f"malformed amount {offer.amount!r}"
        if amount > constraints.max_payment:
            return f"amount {amount} exceeds limit {constraints.max_payment}"

    return None


def select_requirement(
    offers: Iterable[PaymentRequirement],
    constraints: PaymentConstraints,
) -> Optional[PaymentRequirement]:
    """
    Pick the first offer that satisfies ``constraints``.

    Args:
        offers: Requirements in the server's order of preference
        constraints: Caller limits on amount, faucet and network

    Returns:
        The first compatible requirement, or None
    """
    for index, offer in enumerate(offers):
        reason = rejection_reason(offer, constraints)
        if reason is None:
            logger.info(
                "Selected offer %d: %s %s of %s on %s",
                index,
                offer.scheme,
                offer.amount,
                offer.asset,
                offer.network,
            )
            return offer
        logger.debug("Skipping offer %d: %s", index, reason)

    return None

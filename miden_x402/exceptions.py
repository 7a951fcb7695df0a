"""Exceptions raised by miden_x402."""

from typing import Optional

from .types import PaymentRequirement


class X402Error(Exception):
    """Base class for errors raised by this package."""


class DecodeError(X402Error, ValueError):
    """A Payment header could not be decoded into a v2 payment payload."""


class ProofCreationError(X402Error):
    """
    The wallet failed to produce a payment proof.

    The wallet's own exception is chained as ``__cause__``. These failures are
    never retried.
    """

    def __init__(
        self,
        message: str,
        *,
        requirement: Optional[PaymentRequirement] = None,
    ) -> None:
        super().__init__(message)
        self.requirement = requirement


class WalletValidationError(X402Error, ValueError):
    """Arguments passed to the wallet were rejected before proving."""


class ConfigError(X402Error, ValueError):
    """Raised when the supplied configuration is invalid."""

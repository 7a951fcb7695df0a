"""
miden-x402: x402 payments on Miden for AI agents.

Let agents pay for HTTP APIs with Miden P2ID payment proofs using the x402
protocol.

Example:
    from miden_x402 import MidenAgentWallet, create_miden_fetch

    wallet = MidenAgentWallet(ledger_client, account_id="0xabc123")
    fetch = create_miden_fetch(wallet, max_payment=1_000)

    response = await fetch("https://api.example.com/premium")
"""

from .codec import decode_payment_header, encode_payment_header
from .config import load_constraints, load_env_file
from .exceptions import (
    ConfigError,
    DecodeError,
    ProofCreationError,
    WalletValidationError,
    X402Error,
)
from .fetch import (
    NO_COMPATIBLE_SCHEME,
    PAYMENT_HEADER,
    PaymentCallback,
    create_miden_fetch,
    miden_fetch,
    miden_fetch_with_callback,
)
from .handler import X402PaymentHandler
from .schemes import PaymentScheme, parse_amount
from .selector import select_requirement
from .tool import MidenPaymentTool, MidenRequestInput
from .types import (
    X402_VERSION,
    MidenExactPayload,
    NoteType,
    PaymentConstraints,
    PaymentPayload,
    PaymentRequired,
    PaymentRequirement,
    PaymentResult,
    PaymentWallet,
    ProvenPayment,
    ResourceInfo,
)
from .wallet import MidenAgentWallet, MidenLedgerClient, PaymentRecord

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "MidenAgentWallet",
    "X402PaymentHandler",
    "MidenPaymentTool",
    # Fetch helpers
    "miden_fetch",
    "miden_fetch_with_callback",
    "create_miden_fetch",
    "PaymentCallback",
    "PAYMENT_HEADER",
    "NO_COMPATIBLE_SCHEME",
    # Codec and selection
    "encode_payment_header",
    "decode_payment_header",
    "select_requirement",
    "parse_amount",
    "PaymentScheme",
    # Configuration
    "load_constraints",
    "load_env_file",
    # Types
    "X402_VERSION",
    "MidenExactPayload",
    "MidenLedgerClient",
    "MidenRequestInput",
    "NoteType",
    "PaymentConstraints",
    "PaymentPayload",
    "PaymentRecord",
    "PaymentRequired",
    "PaymentRequirement",
    "PaymentResult",
    "PaymentWallet",
    "ProvenPayment",
    "ResourceInfo",
    # Errors
    "X402Error",
    "DecodeError",
    "ProofCreationError",
    "WalletValidationError",
    "ConfigError",
]

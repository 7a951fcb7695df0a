"""Shared fixtures for the miden_x402 tests."""

import pytest

from miden_x402 import PaymentRequirement, ProvenPayment


class StubWallet:
    """Wallet stand-in that returns a fixed proof and records every call."""

    def __init__(self, account_id: str = "0xagent") -> None:
        self.account_id = account_id
        self.proof = ProvenPayment(
            proven_transaction_hex="deadbeef",
            transaction_id="tx-0001",
        )
        self.error = None
        self.calls = []

    async def create_p2id_proof(self, recipient_id, faucet_id, amount, note_type="public"):
        self.calls.append((recipient_id, faucet_id, amount, note_type))
        if self.error is not None:
            raise self.error
        return self.proof


@pytest.fixture
def stub_wallet():
    return StubWallet()


@pytest.fixture
def make_requirement():
    """Build a requirement, overriding any wire field by its JSON name."""

    def _make(**overrides) -> PaymentRequirement:
        data = {
            "scheme": "exact",
            "network": "miden:testnet",
            "amount": "500",
            "payTo": "0xrecipient",
            "maxTimeoutSeconds": 300,
            "asset": "0xfaucet",
        }
        data.update(overrides)
        return PaymentRequirement.model_validate(data)

    return _make


@pytest.fixture
def payment_required_body():
    """Build a 402 body dict around the given offers."""

    def _body(offers=None, version=2, resource=None):
        if offers is None:
            offers = [
                {
                    "scheme": "exact",
                    "network": "miden:testnet",
                    "amount": "500",
                    "payTo": "0xrecipient",
                    "maxTimeoutSeconds": 300,
                    "asset": "0xfaucet",
                },
            ]
        return {
            "x402Version": version,
            "accepts": offers,
            "resource": resource or {"url": "https://example.com/api", "method": "GET"},
        }

    return _body

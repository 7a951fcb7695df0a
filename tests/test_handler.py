"""Tests for X402PaymentHandler."""

import asyncio

import httpx
import pytest

from miden_x402 import (
    PaymentConstraints,
    ProofCreationError,
    ResourceInfo,
    X402PaymentHandler,
    decode_payment_header,
)


class TestParsePaymentRequired:
    """Test parsing 402 bodies."""

    @pytest.mark.asyncio
    async def test_returns_none_for_non_402(self, stub_wallet):
        """Test non-402 responses are not parsed."""
        handler = X402PaymentHandler(stub_wallet)

        assert await handler.parse_payment_required(httpx.Response(200, json={"ok": True})) is None

    @pytest.mark.asyncio
    async def test_parses_valid_402(self, stub_wallet, payment_required_body):
        """Test a v2 body is parsed with offers in order."""
        handler = X402PaymentHandler(stub_wallet)
        body = payment_required_body(
            [
                {"scheme": "exact", "network": "miden:testnet", "amount": "1",
                 "payTo": "0xa", "maxTimeoutSeconds": 60, "asset": "0xf"},
                {"scheme": "exact", "network": "miden:testnet", "amount": "2",
                 "payTo": "0xb", "maxTimeoutSeconds": 60, "asset": "0xf"},
            ]
        )

        result = await handler.parse_payment_required(httpx.Response(402, json=body))

        assert result is not None
        assert result.x402_version == 2
        assert [offer.amount for offer in result.accepts] == ["1", "2"]
        assert result.resource.url == "https://example.com/api"

    @pytest.mark.asyncio
    async def test_accepts_empty_offer_list(self, stub_wallet, payment_required_body):
        """Test an empty accepts list is a valid body."""
        handler = X402PaymentHandler(stub_wallet)

        result = await handler.parse_payment_required(
            httpx.Response(402, json=payment_required_body([]))
        )

        assert result is not None
        assert result.accepts == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "content",
        [
            b"not json",
            b"",
            b"[]",
            b'{"x402Version": 1, "accepts": []}',
            b'{"x402Version": 2}',
            b'{"x402Version": 2, "accepts": {"scheme": "exact"}}',
            b'{"x402Version": 2, "accepts": [{"scheme": "exact", "network": "miden:testnet"}]}',
            b'{"x402Version": 2, "accepts": [{"scheme": "exact", "network": "n", "amount": 500,'
            b' "payTo": "0xa", "maxTimeoutSeconds": 1, "asset": "0xf"}]}',
        ],
    )
    async def test_returns_none_for_unusable_bodies(self, stub_wallet, content):
        """Test malformed or non-v2 bodies yield None instead of raising."""
        handler = X402PaymentHandler(stub_wallet)

        assert await handler.parse_payment_required(httpx.Response(402, content=content)) is None


class TestCreatePayment:
    """Test proof creation and header encoding."""

    @pytest.mark.asyncio
    async def test_creates_valid_payment_result(self, stub_wallet, make_requirement):
        """Test the result carries the transaction id and a decodable header."""
        handler = X402PaymentHandler(stub_wallet)
        requirement = make_requirement()

        result = await handler.create_payment(requirement)

        assert result.transaction_id == "tx-0001"
        assert result.requirements is requirement
        decoded = decode_payment_header(result.payment_header)
        assert decoded.x402_version == 2
        assert decoded.payload.from_ == "0xagent"
        assert decoded.payload.proven_transaction == "deadbeef"
        assert decoded.payload.transaction_id == "tx-0001"
        assert decoded.accepted == requirement
        assert decoded.resource is None

    @pytest.mark.asyncio
    async def test_requests_public_proof_for_requirement(self, stub_wallet, make_requirement):
        """Test the wallet is asked for a public note with the parsed amount."""
        handler = X402PaymentHandler(stub_wallet)

        await handler.create_payment(make_requirement(amount=str(2**70)))

        assert stub_wallet.calls == [("0xrecipient", "0xfaucet", 2**70, "public")]

    @pytest.mark.asyncio
    async def test_includes_resource_info(self, stub_wallet, make_requirement):
        """Test the resource is echoed into the payload."""
        handler = X402PaymentHandler(stub_wallet)
        resource = ResourceInfo(url="https://example.com/api", method="GET")

        result = await handler.create_payment(make_requirement(), resource)

        assert decode_payment_header(result.payment_header).resource == resource

    @pytest.mark.asyncio
    async def test_wraps_wallet_errors(self, stub_wallet, make_requirement):
        """Test wallet failures surface as ProofCreationError with the cause."""
        stub_wallet.error = RuntimeError("insufficient funds")
        handler = X402PaymentHandler(stub_wallet)
        requirement = make_requirement()

        with pytest.raises(ProofCreationError, match="insufficient funds") as excinfo:
            await handler.create_payment(requirement)

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert excinfo.value.requirement is requirement
        assert len(stub_wallet.calls) == 1

    @pytest.mark.asyncio
    async def test_malformed_amount_never_reaches_wallet(self, stub_wallet, make_requirement):
        """Test an unparseable amount fails before proving."""
        handler = X402PaymentHandler(stub_wallet)

        with pytest.raises(ProofCreationError):
            await handler.create_payment(make_requirement(amount="lots"))

        assert stub_wallet.calls == []

    @pytest.mark.asyncio
    async def test_cancellation_is_not_wrapped(self, make_requirement):
        """Test cancelling a proof propagates CancelledError."""

        class SlowWallet:
            account_id = "0xagent"

            async def create_p2id_proof(self, *args):
                raise asyncio.CancelledError()

        handler = X402PaymentHandler(SlowWallet())

        with pytest.raises(asyncio.CancelledError):
            await handler.create_payment(make_requirement())


class TestHandlePaymentRequired:
    """Test the full negotiation."""

    @pytest.mark.asyncio
    async def test_returns_payment_result_for_valid_402(self, stub_wallet, payment_required_body):
        """Test a compatible offer produces a payment."""
        handler = X402PaymentHandler(stub_wallet)

        result = await handler.handle_payment_required(
            httpx.Response(402, json=payment_required_body())
        )

        assert result is not None
        assert result.transaction_id == "tx-0001"
        assert decode_payment_header(result.payment_header).resource.url == "https://example.com/api"
        assert len(stub_wallet.calls) == 1

    @pytest.mark.asyncio
    async def test_returns_none_for_non_402(self, stub_wallet):
        """Test non-402 responses never reach the wallet."""
        handler = X402PaymentHandler(stub_wallet)

        assert await handler.handle_payment_required(httpx.Response(200)) is None
        assert stub_wallet.calls == []

    @pytest.mark.asyncio
    async def test_returns_none_when_no_compatible_requirement(self, stub_wallet, payment_required_body):
        """Test the wallet is not called when every offer is filtered out."""
        handler = X402PaymentHandler(stub_wallet, max_payment=1)

        result = await handler.handle_payment_required(
            httpx.Response(402, json=payment_required_body())
        )

        assert result is None
        assert stub_wallet.calls == []

    @pytest.mark.asyncio
    async def test_returns_none_for_v1_body(self, stub_wallet, payment_required_body):
        """Test a v1 body is unusable."""
        handler = X402PaymentHandler(stub_wallet)

        result = await handler.handle_payment_required(
            httpx.Response(402, json=payment_required_body(version=1))
        )

        assert result is None
        assert stub_wallet.calls == []

    @pytest.mark.asyncio
    async def test_selects_first_allowed_offer(self, stub_wallet, payment_required_body):
        """Test negotiation pays the first offer allowed by the constraints."""
        offers = [
            {"scheme": "exact", "network": "miden:mainnet", "amount": "100",
             "payTo": "0xmain", "maxTimeoutSeconds": 60, "asset": "0xfaucet"},
            {"scheme": "exact", "network": "miden:testnet", "amount": "200",
             "payTo": "0xtest", "maxTimeoutSeconds": 60, "asset": "0xfaucet"},
        ]
        handler = X402PaymentHandler(
            stub_wallet,
            PaymentConstraints(allowed_networks={"miden:testnet"}),
        )

        result = await handler.handle_payment_required(
            httpx.Response(402, json=payment_required_body(offers))
        )

        assert result.requirements.amount == "200"
        assert stub_wallet.calls == [("0xtest", "0xfaucet", 200, "public")]


class TestHandlerConstruction:
    """Test constraint handling on construction."""

    def test_individual_limits(self, stub_wallet):
        """Test keyword limits build the constraints."""
        handler = X402PaymentHandler(stub_wallet, max_payment=5, allowed_faucets=["0xf"])

        assert handler.constraints == PaymentConstraints(max_payment=5, allowed_faucets={"0xf"})

    def test_rejects_both_forms(self, stub_wallet):
        """Test constraints and individual limits cannot be mixed."""
        with pytest.raises(ValueError, match="not both"):
            X402PaymentHandler(stub_wallet, PaymentConstraints(), max_payment=5)

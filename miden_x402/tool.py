"""
x402 payment tool for LangChain agents.

This tool lets LangChain agents make HTTP requests to x402-enabled APIs,
paying with Miden P2ID proofs when a 402 response is received.
"""

import asyncio
from typing import Optional, Type

import httpx
from langchain_core.callbacks import (
    AsyncCallbackManagerForToolRun,
    CallbackManagerForToolRun,
)
from langchain_core.tools import BaseTool
from pydantic import BaseModel, Field

from .exceptions import ProofCreationError
from .fetch import miden_fetch
from .types import PaymentRequired, PaymentResult
from .wallet import MidenAgentWallet


class MidenRequestInput(BaseModel):
    """Input schema for MidenPaymentTool."""

    url: str = Field(description="The URL to request")
    method: str = Field(default="GET", description="HTTP method (GET, POST, etc.)")
    body: Optional[str] = Field(default=None, description="Request body for POST/PUT")
    headers: Optional[dict[str, str]] = Field(
        default=None, description="Additional headers"
    )
    max_payment: Optional[int] = Field(
        default=None,
        description="Maximum amount willing to pay for this request, in the "
        "token's smallest unit. If not specified, uses the tool's limit.",
    )


class MidenPaymentTool(BaseTool):
    """
    LangChain tool for making HTTP requests with automatic x402 payment handling.

    When a server returns HTTP 402 Payment Required, this tool:
    1. Parses the payment requirements from the response body
    2. Picks the first offer within the tool's limits
    3. Creates a P2ID payment proof with the wallet
    4. Retries the request with the Payment header
    5. Returns the response data

    Example:
        wallet = MidenAgentWallet(ledger_client, account_id, budget=10_000)

        tool = MidenPaymentTool(wallet=wallet, max_payment=1_000)
        agent = create_react_agent(llm, tools=[tool])
        agent.invoke("Fetch data from https://api.example.com/premium")
    """

    name: str = "x402_request"
    description: str = (
        "Make HTTP requests to APIs that may require payment. "
        "Automatically handles the x402 payment protocol on Miden if the API requires payment. "
        "Use this for accessing premium APIs, paid data sources, or any x402-enabled endpoint. "
        "You can specify max_payment to limit how much you're willing to pay."
    )
    args_schema: Type[BaseModel] = MidenRequestInput

    wallet: MidenAgentWallet
    timeout: float = 30.0
    auto_pay: bool = True  # If False, will return payment requirements instead of paying
    max_payment: Optional[int] = None
    allowed_faucets: list[str] = Field(default_factory=list)
    allowed_networks: list[str] = Field(default_factory=list)
    transport: Optional[httpx.AsyncBaseTransport] = None

    async def _request(
        self,
        url: str,
        method: str,
        body: Optional[str],
        headers: Optional[dict[str, str]],
        max_payment: Optional[int],
    ) -> tuple[str, Optional[PaymentResult]]:
        payments: list[PaymentResult] = []

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await miden_fetch(
                    self.wallet,
                    url,
                    method=method,
                    content=body,
                    headers=headers or {},
                    max_payment=max_payment if max_payment is not None else self.max_payment,
                    allowed_faucets=self.allowed_faucets,
                    allowed_networks=self.allowed_networks,
                    dry_run=not self.auto_pay,
                    on_payment=payments.append,
                    client=client,
                )
            except ProofCreationError as e:
                return f"Payment proof failed: {e}", None

        payment = payments[0] if payments else None

        if response.status_code == 402:
            if payment is not None:
                return f"Error after payment: 402 - {response.text}", payment
            if not self.auto_pay:
                return (
                    f"Payment required: {_describe_offers(response)}. "
                    f"Set auto_pay=True to automatically pay."
                ), None
            return (
                "Payment required: no offer within the configured limits. "
                "Set a higher max_payment to proceed."
            ), None

        if response.status_code >= 400:
            prefix = "Error after payment" if payment is not None else "Error"
            return f"{prefix} {response.status_code}: {response.text}", payment

        return response.text, payment

    def _run(
        self,
        url: str,
        method: str = "GET",
        body: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        max_payment: Optional[int] = None,
        run_manager: Optional[CallbackManagerForToolRun] = None,
    ) -> str:
        """
        Execute the HTTP request with x402 payment handling.

        Args:
            url: The URL to request
            method: HTTP method
            body: Request body for POST/PUT
            headers: Additional headers
            max_payment: Maximum amount to pay, in base units
            run_manager: Callback manager

        Returns:
            Response body as string, or error message
        """
        text, payment = asyncio.run(self._request(url, method, body, headers, max_payment))
        if payment is not None and run_manager:
            run_manager.on_text(f"Payment sent: tx={payment.transaction_id}")
        return text

    async def _arun(
        self,
        url: str,
        method: str = "GET",
        body: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        max_payment: Optional[int] = None,
        run_manager: Optional[AsyncCallbackManagerForToolRun] = None,
    ) -> str:
        """Async version of _run."""
        text, payment = await self._request(url, method, body, headers, max_payment)
        if payment is not None and run_manager:
            await run_manager.on_text(f"Payment sent: tx={payment.transaction_id}")
        return text


def _describe_offers(response: httpx.Response) -> str:
    try:
        payment_required = PaymentRequired.model_validate_json(response.content)
    except ValueError:
        return "server did not send usable payment requirements"
    if not payment_required.accepts:
        return "server sent no payment offers"
    return "; ".join(
        f"{offer.amount} of {offer.asset} to {offer.pay_to} on {offer.network}"
        for offer in payment_required.accepts
    )

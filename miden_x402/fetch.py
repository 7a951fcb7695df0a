"""
x402-aware fetch for AI agents.

Wraps an httpx request to handle HTTP 402 responses automatically: create a
P2ID payment proof on Miden and retry the request once with the ``Payment``
header.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

import httpx

from .handler import X402PaymentHandler, resolve_constraints
from .types import X402_VERSION, PaymentConstraints, PaymentResult, PaymentWallet

logger = logging.getLogger(__name__)

PAYMENT_HEADER = "Payment"
NO_COMPATIBLE_SCHEME = "No compatible payment scheme found"

# Called once with the payment result, right before the paid retry is sent.
PaymentCallback = Callable[[PaymentResult], Union[None, Awaitable[None]]]


async def miden_fetch(
    wallet: PaymentWallet,
    url: Union[str, httpx.URL],
    *,
    method: str = "GET",
    constraints: Optional[PaymentConstraints] = None,
    max_payment: Optional[int] = None,
    allowed_faucets: Optional[Iterable[str]] = None,
    allowed_networks: Optional[Iterable[str]] = None,
    dry_run: bool = False,
    on_payment: Optional[PaymentCallback] = None,
    client: Optional[httpx.AsyncClient] = None,
    **request_kwargs: Any,
) -> httpx.Response:
    """
    Perform an HTTP request with automatic x402 payment handling.

    If the server responds with 402, this function will:
    1. Parse the payment requirements from the response body
    2. Select a compatible requirement
    3. Create a P2ID proof via the wallet (without submitting to the network)
    4. Retry the request once with the ``Payment`` header

    At most two requests are sent and at most one payment is created. A 402
    on the retry is returned as is.

    Args:
        wallet: The agent's wallet
        url: The URL to request
        method: HTTP method
        constraints: Payment limits; alternatively pass ``max_payment``,
            ``allowed_faucets`` and ``allowed_networks``
        dry_run: Return a 402 without paying
        on_payment: Called with the PaymentResult before the paid retry
        client: Client to send requests with; a temporary one is used if omitted
        **request_kwargs: Passed to ``httpx.AsyncClient.build_request``
            (``headers``, ``content``, ``json``, ``params``...)

    Returns:
        The original response, the paid retry's response, or a synthetic 402
        when nothing on offer can be paid

    Raises:
        ProofCreationError: If the wallet failed to create the payment proof
        httpx.TransportError: If a request could not be sent
    """
    resolved = resolve_constraints(
        constraints,
        max_payment=max_payment,
        allowed_faucets=allowed_faucets,
        allowed_networks=allowed_networks,
    )

    if client is None:
        async with httpx.AsyncClient() as owned_client:
            return await _fetch(
                owned_client, wallet, method, url, resolved, dry_run, on_payment, request_kwargs
            )
    return await _fetch(
        client, wallet, method, url, resolved, dry_run, on_payment, request_kwargs
    )


async def miden_fetch_with_callback(
    wallet: PaymentWallet,
    url: Union[str, httpx.URL],
    on_payment: PaymentCallback,
    **options: Any,
) -> httpx.Response:
    """
    Like :func:`miden_fetch` but calls ``on_payment`` when a payment is made.

    Useful for logging, analytics, or displaying payment receipts.

    Example:
        response = await miden_fetch_with_callback(
            wallet,
            "https://api.example.com/data",
            lambda result: print("Paid:", result.transaction_id),
        )
    """
    return await miden_fetch(wallet, url, on_payment=on_payment, **options)


def create_miden_fetch(
    wallet: PaymentWallet,
    **defaults: Any,
) -> Callable[..., Awaitable[httpx.Response]]:
    """
    Create an x402-aware fetch function bound to a wallet.

    Options given per call override ``defaults``.

    Example:
        fetch = create_miden_fetch(wallet, max_payment=1_000)
        response = await fetch("https://api.example.com/data")
    """

    async def fetch(url: Union[str, httpx.URL], **options: Any) -> httpx.Response:
        return await miden_fetch(wallet, url, **{**defaults, **options})

    return fetch


async def _fetch(
    client: httpx.AsyncClient,
    wallet: PaymentWallet,
    method: str,
    url: Union[str, httpx.URL],
    constraints: PaymentConstraints,
    dry_run: bool,
    on_payment: Optional[PaymentCallback],
    request_kwargs: dict[str, Any],
) -> httpx.Response:
    request = client.build_request(method, url, **request_kwargs)
    # Buffer streamed bodies so the paid retry can send the same bytes.
    await request.aread()

    response = await client.send(request)
    if response.status_code != 402:
        return response

    if dry_run:
        logger.info("Dry run: returning 402 from %s without paying", request.url)
        return response

    handler = X402PaymentHandler(wallet, constraints)
    result = await handler.handle_payment_required(response)
    if result is None:
        # The original body was consumed while parsing; answer with our own 402.
        return httpx.Response(
            402,
            json={"error": NO_COMPATIBLE_SCHEME, "x402Version": X402_VERSION},
            request=request,
        )

    if on_payment is not None:
        outcome = on_payment(result)
        if inspect.isawaitable(outcome):
            await outcome

    retry = _with_payment_header(request, result.payment_header)
    logger.info("Retrying %s %s with payment %s", retry.method, retry.url, result.transaction_id)
    return await client.send(retry)


def _with_payment_header(request: httpx.Request, payment_header: str) -> httpx.Request:
    headers = request.headers.copy()
    headers[PAYMENT_HEADER] = payment_header
    return httpx.Request(
        request.method,
        request.url,
        headers=headers,
        content=request.content,
        extensions=request.extensions,
    )

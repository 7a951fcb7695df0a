"""
Payment header codec.

The ``Payment`` header carries a v2 payment payload as base64-encoded UTF-8
JSON. Encoding goes through UTF-8 bytes first, so URLs and header values
containing non-ASCII characters survive the round trip.
"""

import base64
import json
from typing import Any

from pydantic import ValidationError

from .exceptions import DecodeError
from .types import PaymentPayload

# Largest integer a JavaScript JSON parser reads back exactly.
MAX_SAFE_INTEGER = 2**53 - 1


def _stringify_big_ints(value: Any) -> Any:
    """Replace integers that would lose precision in JS with decimal strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value) if abs(value) > MAX_SAFE_INTEGER else value
    if isinstance(value, dict):
        return {key: _stringify_big_ints(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_stringify_big_ints(item) for item in value]
    return value


def encode_payment_header(payload: PaymentPayload) -> str:
    """
    Encode a v2 payment payload for the ``Payment`` header.

    Args:
        payload: The payload to encode

    Returns:
        Base64 string (ASCII only, safe as an HTTP header value)
    """
    data = payload.model_dump(mode="json", by_alias=True, exclude_unset=True)
    text = json.dumps(
        _stringify_big_ints(data),
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_payment_header(header: str) -> PaymentPayload:
    """
    Decode a ``Payment`` header back to a v2 payment payload.

    Args:
        header: Base64-encoded header value

    Returns:
        The validated payment payload

    Raises:
        DecodeError: If the header is not base64, not UTF-8 JSON, or not a
            v2 payment payload
    """
    try:
        raw = base64.b64decode(header, validate=True)
        data = json.loads(raw.decode("utf-8"))
    except (TypeError, ValueError) as exc:
        # binascii.Error, UnicodeDecodeError and JSONDecodeError are ValueErrors
        raise DecodeError(f"Payment header is not base64-encoded JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise DecodeError("Payment header does not decode to a JSON object")

    try:
        return PaymentPayload.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(f"Payment header is not a v2 payment payload: {exc}") from exc

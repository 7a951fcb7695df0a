"""
Load payment constraints from the environment.

Values are layered: explicit overrides win over the process environment,
which wins over a ``.env`` file. The result is a plain
:class:`~miden_x402.types.PaymentConstraints` value that callers pass to the
handler or fetch functions themselves.
"""

import os
from pathlib import Path
from typing import Mapping, Optional

from .exceptions import ConfigError
from .schemes import parse_amount
from .types import PaymentConstraints

MAX_PAYMENT_ENV = "MIDEN_X402_MAX_PAYMENT"
ALLOWED_FAUCETS_ENV = "MIDEN_X402_ALLOWED_FAUCETS"
ALLOWED_NETWORKS_ENV = "MIDEN_X402_ALLOWED_NETWORKS"


def load_env_file(path: str = ".env") -> dict[str, str]:
    """
    Parse ``KEY=VALUE`` lines from ``path``.

    Blank lines and ``#`` comments are skipped. A missing file yields an
    empty mapping.
    """
    values: dict[str, str] = {}
    try:
        data = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return values

    for raw_line in data.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        values[key.strip()] = value
    return values


def build_environment(
    *,
    env_file: Optional[str] = ".env",
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """
    Merge a ``.env`` file, the environment and overrides.

    ``environ`` defaults to :data:`os.environ`. Set ``env_file`` to None to
    skip file loading.
    """
    merged: dict[str, str] = dict(os.environ if environ is None else environ)

    if env_file is not None:
        for key, value in load_env_file(env_file).items():
            merged.setdefault(key, value)

    if overrides:
        merged.update(overrides)

    return merged


def _split_ids(raw: Optional[str]) -> frozenset[str]:
    if not raw:
        return frozenset()
    return frozenset(item.strip() for item in raw.split(",") if item.strip())


def _parse_max_payment(raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    try:
        return parse_amount(raw.strip())
    except ValueError as exc:
        raise ConfigError(
            f"{MAX_PAYMENT_ENV} must be a non-negative integer amount, got {raw!r}"
        ) from exc


def load_constraints(
    *,
    env_file: Optional[str] = ".env",
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> PaymentConstraints:
    """
    Build :class:`PaymentConstraints` from ``MIDEN_X402_*`` settings.

    ``MIDEN_X402_MAX_PAYMENT`` is an integer in base units (empty or ``0``
    means unlimited). ``MIDEN_X402_ALLOWED_FAUCETS`` and
    ``MIDEN_X402_ALLOWED_NETWORKS`` are comma-separated lists.

    Raises:
        ConfigError: If the maximum payment is not an integer
    """
    variables = build_environment(env_file=env_file, environ=environ, overrides=overrides)
    return PaymentConstraints(
        max_payment=_parse_max_payment(variables.get(MAX_PAYMENT_ENV)),
        allowed_faucets=_split_ids(variables.get(ALLOWED_FAUCETS_ENV)),
        allowed_networks=_split_ids(variables.get(ALLOWED_NETWORKS_ENV)),
    )

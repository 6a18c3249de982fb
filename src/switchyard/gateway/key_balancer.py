"""Credential load balancing and masking.

A credential header may carry several keys separated by commas, e.g.
``x-goog-api-key: key-a, key-b``. Every request picks one of them uniformly
at random; no state is kept between calls.

mask_key() and redact_headers() keep credentials out of logs and reports.
"""

from __future__ import annotations

import random
from collections.abc import Mapping


def parse_keys(header_value: str) -> list[str]:
    """Split a comma-delimited credential header into trimmed, non-empty keys."""
    return [key.strip() for key in header_value.split(",") if key.strip()]


def select_key(header_value: str) -> str:
    """Return one key from ``header_value``, or the value itself if it holds none."""
    keys = parse_keys(header_value)
    if not keys:
        return header_value
    return random.choice(keys)


# Headers whose values are API credentials
CREDENTIAL_HEADERS = frozenset({"authorization", "x-goog-api-key", "x-api-key"})


def mask_key(key: str) -> str:
    """Hide all but the first and last four characters of an API key."""
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy ``headers`` for logging with every credential key masked.

    An auth scheme such as ``Bearer`` is kept; each comma-separated key is
    masked on its own.
    """
    redacted: dict[str, str] = {}
    for name, value in headers.items():
        if name.lower() in CREDENTIAL_HEADERS:
            scheme, sep, token = value.partition(" ")
            if sep and scheme.lower() in ("bearer", "basic"):
                value = f"{scheme} {', '.join(mask_key(key) for key in parse_keys(token))}"
            else:
                value = ", ".join(mask_key(key) for key in parse_keys(value))
        redacted[name] = value
    return redacted

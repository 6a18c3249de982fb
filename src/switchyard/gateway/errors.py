"""Shared error envelopes for the gateway.

Two shapes reach clients:

- nested: {"error": {"message", "type", "param", "code"}}, with the message
  prefixed by the provider tag, e.g. "[OpenRouter] bad key";
- flat: {"error": "<string>"}, used for the router 404 and for Gemini
  transport failures.

normalize_upstream_error() turns a non-2xx upstream response into a nested
envelope while keeping the upstream status code.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp
from aiohttp import web

logger = logging.getLogger(__name__)

UPSTREAM_ERROR = "upstream_error"
UPSTREAM_ERROR_MESSAGE = "Upstream API error"
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"
ROUTE_NOT_FOUND_MESSAGE = "Route not found"


def error_envelope(
    provider: str,
    message: str,
    error_type: str,
    param: Any = None,
    code: str | None = None,
) -> dict[str, Any]:
    """Build a nested, provider-tagged error envelope."""
    return {
        "error": {
            "message": f"[{provider}] {message}",
            "type": error_type,
            "param": param,
            "code": code if code is not None else error_type,
        }
    }


def flat_error_response(message: str, status: int) -> web.Response:
    """Create a flat {"error": "<message>"} JSON response."""
    return web.json_response({"error": message}, status=status)


def route_not_found_response() -> web.Response:
    return flat_error_response(ROUTE_NOT_FOUND_MESSAGE, 404)


def transport_error_response(provider: str, exc: BaseException, error_code: str) -> web.Response:
    """Create the 500 response for a failure while talking to the upstream."""
    message = str(exc) or UNKNOWN_ERROR_MESSAGE
    return web.json_response(error_envelope(provider, message, error_code), status=500)


def build_upstream_error(payload: Any, status: int, provider: str) -> dict[str, Any]:
    """Map a decoded upstream error body onto the nested envelope.

    Args:
        payload: Decoded JSON body, or None when the body was not JSON (a JSON
            null is treated the same way). Other non-object values carry no
            error fields and get the plain per-field fallbacks.
        status: Upstream HTTP status code.
        provider: Provider tag for the message prefix.
    """
    if payload is None:
        return error_envelope(
            provider,
            f"{UPSTREAM_ERROR_MESSAGE} (status: {status})",
            UPSTREAM_ERROR,
        )

    error = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(error, dict):
        error = {}

    return error_envelope(
        provider,
        str(error.get("message") or UPSTREAM_ERROR_MESSAGE),
        error.get("type") or UPSTREAM_ERROR,
        param=error.get("param") or None,
        code=error.get("code") or UPSTREAM_ERROR,
    )


async def normalize_upstream_error(
    upstream: aiohttp.ClientResponse,
    provider: str,
) -> web.Response:
    """Convert a non-2xx upstream response into a provider-tagged envelope.

    The returned response carries the upstream status code unchanged. An
    unreadable or non-JSON body yields the fallback envelope.
    """
    try:
        body = await upstream.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning("[%s] Failed to read upstream error body: %s", provider, e)
        body = b""

    try:
        payload: Any = json.loads(body)
    except ValueError:
        payload = None

    logger.error(
        "[%s] Upstream error %d: %s",
        provider,
        upstream.status,
        body[:500].decode("utf-8", errors="replace"),
    )
    return web.json_response(
        build_upstream_error(payload, upstream.status, provider),
        status=upstream.status,
    )

"""Handlers the Gemini adapter delegates to.

The Gemini adapter hands two kinds of requests off instead of proxying them:

- OpenAI-style calls (chat/completions, embeddings, models), served here by
  Gemini's own OpenAI-compatible endpoint;
- ``POST /gemini/verify``, which checks each supplied API key against the
  Gemini models listing.

Any object with an ``async handle(request)`` method can replace the defaults.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

import aiohttp
from aiohttp import web
from multidict import CIMultiDict

from switchyard.gateway.errors import (
    UNKNOWN_ERROR_MESSAGE,
    build_upstream_error,
    flat_error_response,
)
from switchyard.gateway.key_balancer import mask_key, parse_keys, select_key
from switchyard.gateway.providers.base import ProviderAdapter, allow_listed_headers, is_success
from switchyard.gateway.providers.gemini import (
    API_KEY_HEADER,
    GEMINI_API_BASE,
    openai_compat_suffix,
)

logger = logging.getLogger(__name__)

OPENAI_COMPAT_PATH = "/v1beta/openai"
MODELS_PATH = "/v1beta/models"
NO_KEYS_MESSAGE = "No API keys provided"
MAX_CONCURRENT_CHECKS = 10


@runtime_checkable
class RequestHandler(Protocol):
    """Anything that turns a request into a response."""

    async def handle(self, request: web.Request) -> web.StreamResponse: ...


class GeminiOpenAICompatHandler(ProviderAdapter):
    """Serves OpenAI-style requests through Gemini's OpenAI-compatible API.

    /v1/chat/completions -> {base}/v1beta/openai/chat/completions

    The bearer token in Authorization may hold several comma-separated keys;
    one is picked per request.
    """

    name = "Gemini"
    default_base_url = GEMINI_API_BASE
    error_code = "gemini_error"

    def build_target_url(self, path: str, query: str) -> str:
        suffix = openai_compat_suffix(path) or path
        return self.with_query(f"{self.base_url}{OPENAI_COMPAT_PATH}{suffix}", query)

    def build_headers(self, headers: Mapping[str, str]) -> CIMultiDict[str]:
        outbound = allow_listed_headers(headers, ("Authorization", "Content-Type"))
        authorization = outbound.get("Authorization", "")
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            outbound["Authorization"] = f"Bearer {select_key(token)}"
        return outbound


class KeyVerificationHandler:
    """Checks every key in ``x-goog-api-key`` against the Gemini API.

    Keys are checked concurrently, at most ``max_concurrency`` at a time.

    Response body:
        {"results": [{"key": "AIza...x9Qc", "valid": true, "status": 200, "error": null}]}
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        max_concurrency: int = MAX_CONCURRENT_CHECKS,
    ):
        self.base_url = (base_url or GEMINI_API_BASE).rstrip("/")
        self._timeout = timeout
        self.max_concurrency = max_concurrency
        self._session: aiohttp.ClientSession | None = None

    async def connect(self) -> None:
        if self._session is None:
            if self._timeout is not None:
                self._session = aiohttp.ClientSession(timeout=self._timeout)
            else:
                self._session = aiohttp.ClientSession()

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def handle(self, request: web.Request) -> web.StreamResponse:
        keys = parse_keys(", ".join(request.headers.getall(API_KEY_HEADER, [])))
        if not keys:
            return flat_error_response(NO_KEYS_MESSAGE, 400)

        if self._session is None:
            await self.connect()

        logger.info("[Gemini] Verifying %d API key(s)", len(keys))
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def verify(key: str) -> dict[str, Any]:
            async with semaphore:
                return await self._verify_key(key)

        results = await asyncio.gather(*(verify(key) for key in keys))
        valid_count = sum(1 for result in results if result["valid"])
        logger.info("[Gemini] Key verification done: %d/%d valid", valid_count, len(keys))
        return web.json_response({"results": list(results)})

    async def _verify_key(self, key: str) -> dict[str, Any]:
        assert self._session is not None
        result: dict[str, Any] = {"key": mask_key(key), "valid": False, "status": None, "error": None}
        try:
            async with self._session.get(
                f"{self.base_url}{MODELS_PATH}",
                headers={API_KEY_HEADER: key},
            ) as response:
                result["status"] = response.status
                if is_success(response.status):
                    result["valid"] = True
                    return result
                body = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            result["error"] = str(e) or UNKNOWN_ERROR_MESSAGE
            return result

        try:
            payload: Any = json.loads(body)
        except ValueError:
            payload = None
        result["error"] = build_upstream_error(payload, response.status, "Gemini")["error"]["message"]
        return result

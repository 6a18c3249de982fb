"""Google Gemini provider adapter.

Requests under /gemini are handled in one of three ways:

1. OpenAI-style paths (``.../chat/completions``, ``.../embeddings``,
   ``.../models``) are handed to the OpenAI-compatibility handler with the
   /gemini prefix removed.
2. ``POST /gemini/verify`` is handed to the key verification handler.
3. Everything else is proxied to generativelanguage.googleapis.com with all
   client headers except Host, and with ``x-goog-api-key`` load balanced.

Transport failures on the generic path return the flat
{"error": "Proxy request to Gemini failed"} body rather than the nested
envelope the other providers use.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from aiohttp import web
from multidict import CIMultiDict, CIMultiDictProxy
from yarl import URL

from switchyard.gateway.errors import flat_error_response
from switchyard.gateway.key_balancer import select_key
from switchyard.gateway.providers.base import HOP_BY_HOP_HEADERS, ProviderAdapter

if TYPE_CHECKING:
    from switchyard.gateway.collaborators import RequestHandler

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com"
API_KEY_HEADER = "x-goog-api-key"
VERIFY_PATH = "/verify"
OPENAI_COMPAT_SUFFIXES = ("/chat/completions", "/embeddings", "/models")
PROXY_FAILED_MESSAGE = "Proxy request to Gemini failed"

# Stripped from successful upstream responses
STRIPPED_RESPONSE_HEADERS = ("transfer-encoding", "connection", "keep-alive", "content-encoding")


def openai_compat_suffix(path: str) -> str | None:
    """Return the OpenAI endpoint suffix ``path`` ends with, if any.

    The suffix must follow at least one other path segment (e.g. a version
    such as ``/v1``): a bare ``/models`` is a native Gemini path.
    """
    for suffix in OPENAI_COMPAT_SUFFIXES:
        if path.endswith(suffix) and path != suffix:
            return suffix
    return None


class GeminiAdapter(ProviderAdapter):
    """Proxies Gemini's native API and routes OpenAI-style calls elsewhere."""

    name = "Gemini"
    prefix = "/gemini"
    default_base_url = GEMINI_API_BASE
    error_code = "gemini_error"
    auto_decompress = True

    def __init__(
        self,
        openai_compat: RequestHandler,
        verifier: RequestHandler,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.openai_compat = openai_compat
        self.verifier = verifier

    async def handle(self, request: web.Request) -> web.StreamResponse:
        path = self.strip_prefix(request.rel_url.raw_path)
        query = request.rel_url.raw_query_string

        if openai_compat_suffix(path) is not None:
            rel_url = URL.build(path=path, query_string=query, encoded=True)
            logger.info("[Gemini] Delegating %s %s to OpenAI compatibility", request.method, rel_url)
            return await self.openai_compat.handle(request.clone(rel_url=rel_url))

        if path == VERIFY_PATH and request.method == "POST":
            logger.info("[Gemini] Delegating key verification")
            return await self.verifier.handle(request)

        trace_id = self._tracer.generate_trace_id(request.method, self.name)
        target_url = self.build_target_url(path, query)
        return await self.forward(request, target_url, self.build_headers(request.headers), trace_id)

    def build_target_url(self, path: str, query: str) -> str:
        return self.with_query(f"{self.base_url}{path}", query)

    def build_headers(self, headers: Mapping[str, str]) -> CIMultiDict[str]:
        outbound = CIMultiDict(headers)
        outbound.popall("host", None)
        # Framing of the outbound body is owned by the upstream connection
        for name in HOP_BY_HOP_HEADERS:
            outbound.popall(name, None)
        if API_KEY_HEADER in outbound:
            # Repeated headers are joined the same way a comma list is
            api_keys = ", ".join(outbound.popall(API_KEY_HEADER))
            outbound[API_KEY_HEADER] = select_key(api_keys)
        return outbound

    def build_response_headers(self, headers: CIMultiDictProxy[str]) -> CIMultiDict[str]:
        response_headers = CIMultiDict(headers)
        if "content-encoding" in response_headers:
            # The body is decoded on the way through; the encoded length no longer applies
            response_headers.popall("content-length", None)
        for name in STRIPPED_RESPONSE_HEADERS:
            response_headers.popall(name, None)
        response_headers["Referrer-Policy"] = "no-referrer"
        return response_headers

    def transport_error_response(self, exc: Exception) -> web.StreamResponse:
        return flat_error_response(PROXY_FAILED_MESSAGE, 500)

"""Base class for provider adapters.

An adapter owns one upstream provider. For every inbound request it:
1. Strips its route prefix from the path
2. Builds the upstream URL and a fresh outbound header set
3. Forwards method, headers and the (streamed) body with aiohttp
4. Streams a 2xx response back, or reports the failure as a JSON envelope

Subclasses choose the URL rewrite, the header policy and the failure shapes.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from typing import Any

import aiohttp
from aiohttp import web
from multidict import CIMultiDict, CIMultiDictProxy
from yarl import URL

from switchyard.gateway.errors import normalize_upstream_error, transport_error_response
from switchyard.gateway.tracing import RequestTracer

logger = logging.getLogger(__name__)

# Connection-level headers the gateway regenerates for its own client connection
HOP_BY_HOP_HEADERS = frozenset({"connection", "keep-alive", "transfer-encoding"})


def allow_listed_headers(headers: Mapping[str, str], names: tuple[str, ...]) -> CIMultiDict[str]:
    """Build a new header set holding only ``names`` copied from ``headers``."""
    outbound: CIMultiDict[str] = CIMultiDict()
    for name in names:
        value = headers.get(name)
        if value:
            outbound[name] = value
    return outbound


def is_success(status: int) -> bool:
    return 200 <= status < 300


class ProviderAdapter(ABC):
    """Rewrites, forwards and shapes requests for one upstream provider.

    Attributes:
        name: Provider tag used in error messages and logs.
        prefix: Route prefix the adapter is mounted under.
        error_code: type/code used for transport failures.
        auto_decompress: Whether upstream bodies are decoded before being
            streamed back. When False the gateway asks for identity encoding
            and passes bytes through untouched.
    """

    name: str = ""
    prefix: str = ""
    default_base_url: str = ""
    error_code: str = ""
    auto_decompress: bool = False

    def __init__(
        self,
        base_url: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        tracer: RequestTracer | None = None,
    ):
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self._timeout = timeout
        self._tracer = tracer or RequestTracer()
        self._session: aiohttp.ClientSession | None = None

    async def connect(self) -> None:
        """Open the upstream client session."""
        if self._session is not None:
            return
        session_kwargs: dict[str, Any] = {"auto_decompress": self.auto_decompress}
        if not self.auto_decompress:
            session_kwargs["skip_auto_headers"] = ("Accept-Encoding",)
        if self._timeout is not None:
            session_kwargs["timeout"] = self._timeout
        self._session = aiohttp.ClientSession(**session_kwargs)

    async def close(self) -> None:
        """Close the upstream client session."""
        if self._session:
            await self._session.close()
            self._session = None

    def strip_prefix(self, path: str) -> str:
        """Remove the adapter's route prefix from ``path``."""
        if self.prefix and path.startswith(self.prefix):
            return path[len(self.prefix) :]
        return path

    @staticmethod
    def with_query(url: str, query: str) -> str:
        return f"{url}?{query}" if query else url

    @abstractmethod
    def build_target_url(self, path: str, query: str) -> str:
        """Build the absolute upstream URL for a prefix-stripped path."""

    @abstractmethod
    def build_headers(self, headers: Mapping[str, str]) -> CIMultiDict[str]:
        """Build the outbound header set from the inbound headers."""

    def build_response_headers(self, headers: CIMultiDictProxy[str]) -> CIMultiDict[str]:
        """Headers returned to the client for a successful upstream response."""
        response_headers = CIMultiDict(headers)
        for name in HOP_BY_HOP_HEADERS:
            response_headers.popall(name, None)
        return response_headers

    def request_body(self, request: web.Request) -> Any:
        """Body forwarded upstream: the inbound stream itself, never buffered."""
        return request.content if request.body_exists else None

    def response_chunks(self, upstream: aiohttp.ClientResponse) -> AsyncIterator[bytes]:
        """Body chunks streamed back to the client."""
        return upstream.content.iter_any()

    async def error_response(self, upstream: aiohttp.ClientResponse) -> web.StreamResponse:
        """Response for a non-2xx upstream status."""
        return await normalize_upstream_error(upstream, self.name)

    def transport_error_response(self, exc: Exception) -> web.StreamResponse:
        """Response for a failure while forwarding (always status 500)."""
        return transport_error_response(self.name, exc, self.error_code)

    async def handle(self, request: web.Request) -> web.StreamResponse:
        """Forward ``request`` upstream and return the client-facing response."""
        trace_id = self._tracer.generate_trace_id(request.method, self.name)
        path = self.strip_prefix(request.rel_url.raw_path)
        target_url = self.build_target_url(path, request.rel_url.raw_query_string)
        return await self.forward(request, target_url, self.build_headers(request.headers), trace_id)

    async def forward(
        self,
        request: web.Request,
        target_url: str,
        headers: CIMultiDict[str],
        trace_id: str,
    ) -> web.StreamResponse:
        """Send the request upstream and stream the result back.

        Transport failures become error responses, or abort the client connection
        once the response has started. Cancellation of the inbound
        request propagates and closes the upstream response.
        """
        logger.info(
            "[%s] Proxying %s %s -> %s",
            trace_id,
            request.method,
            request.rel_url.raw_path,
            target_url,
        )
        self._tracer.record_request(
            trace_id, request.method, request.rel_url.raw_path, target_url, headers
        )

        if self._session is None:
            await self.connect()
        assert self._session is not None

        response: web.StreamResponse | None = None
        try:
            async with self._session.request(
                request.method,
                URL(target_url, encoded=True),
                headers=headers,
                data=self.request_body(request),
            ) as upstream:
                self._tracer.record_response(trace_id, upstream.status, upstream.headers)

                if not is_success(upstream.status):
                    return await self.error_response(upstream)

                response = web.StreamResponse(
                    status=upstream.status,
                    reason=upstream.reason,
                    headers=self.build_response_headers(upstream.headers),
                )
                await response.prepare(request)

                chunk_count = 0
                async for chunk in self.response_chunks(upstream):
                    chunk_count += 1
                    await response.write(chunk)
                await response.write_eof()

                logger.info(
                    "[%s] Response complete: status=%d, chunks=%d",
                    trace_id,
                    upstream.status,
                    chunk_count,
                )
                return response

        except Exception as e:
            if response is not None and response.prepared:
                # Headers already sent; the status can no longer change, so drop the
                # connection rather than end the body cleanly
                logger.warning("[%s] Stream to client interrupted: %s", trace_id, e)
                if request.transport is not None:
                    request.transport.close()
                return response
            logger.exception("[%s] Error forwarding request to %s", trace_id, self.name)
            return self.transport_error_response(e)

"""ModelScope API-Inference provider adapter.

/modelscope/chat/completions -> https://api-inference.modelscope.cn/v1/chat/completions
/modelscope/v1/models        -> https://api-inference.modelscope.cn/v1/models

transform_request() and transform_response() are identity hooks where
request/response body rewriting for ModelScope plugs in.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Any

import aiohttp
from aiohttp import web
from multidict import CIMultiDict

from switchyard.gateway.providers.base import ProviderAdapter, allow_listed_headers

MODELSCOPE_API_BASE = "https://api-inference.modelscope.cn"
FORWARDED_HEADERS = ("Authorization", "Content-Type")


class ModelScopeAdapter(ProviderAdapter):
    """Forwards to ModelScope, making sure the path carries the /v1 segment."""

    name = "ModelScope"
    prefix = "/modelscope"
    default_base_url = MODELSCOPE_API_BASE
    error_code = "modelScope_error"

    def build_target_url(self, path: str, query: str) -> str:
        if not path.startswith("/v1"):
            path = f"/v1{path}"
        return self.with_query(f"{self.base_url}{path}", query)

    def build_headers(self, headers: Mapping[str, str]) -> CIMultiDict[str]:
        return allow_listed_headers(headers, FORWARDED_HEADERS)

    def request_body(self, request: web.Request) -> Any:
        body = super().request_body(request)
        if body is not None:
            body = self.transform_request(body)
        return body

    def response_chunks(self, upstream: aiohttp.ClientResponse) -> AsyncIterator[bytes]:
        return self.transform_response(super().response_chunks(upstream))

    def transform_request(self, body: Any) -> Any:
        """Rewrite the outbound request body. Currently a pass-through."""
        return body

    def transform_response(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        """Rewrite the streamed response body. Currently a pass-through."""
        return chunks

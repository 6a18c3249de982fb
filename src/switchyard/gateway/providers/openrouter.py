"""OpenRouter provider adapter.

/openrouter/chat/completions -> https://openrouter.ai/api/v1/chat/completions
/openrouter/api/v1/models    -> https://openrouter.ai/api/v1/models
"""

from __future__ import annotations

from collections.abc import Mapping

from multidict import CIMultiDict
from yarl import URL

from switchyard.gateway.providers.base import ProviderAdapter, allow_listed_headers

OPENROUTER_API_BASE = "https://openrouter.ai/api/v1"
FORWARDED_HEADERS = ("Authorization", "Content-Type")


class OpenRouterAdapter(ProviderAdapter):
    """Forwards to OpenRouter with only Authorization and Content-Type."""

    name = "OpenRouter"
    prefix = "/openrouter"
    default_base_url = OPENROUTER_API_BASE
    error_code = "openrouter_error"

    def build_target_url(self, path: str, query: str) -> str:
        # A path that already carries /api/v1 is resolved against the origin
        # so the version segment is not duplicated.
        if path.startswith("/api/v1"):
            origin = str(URL(self.base_url).origin())
            return self.with_query(f"{origin}{path}", query)
        return self.with_query(f"{self.base_url}{path}", query)

    def build_headers(self, headers: Mapping[str, str]) -> CIMultiDict[str]:
        return allow_listed_headers(headers, FORWARDED_HEADERS)

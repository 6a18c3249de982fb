"""Prefix router.

Routes are tried in registration order and the first prefix that the request
path starts with wins. Unmatched paths get a 404 {"error": "Route not found"}.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from aiohttp import web

from switchyard.gateway.errors import route_not_found_response
from switchyard.gateway.key_balancer import redact_headers
from switchyard.gateway.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Route:
    """A path prefix bound to one provider adapter."""

    prefix: str
    adapter: ProviderAdapter


class GatewayRouter:
    """Dispatches inbound requests to provider adapters by path prefix."""

    def __init__(self, routes: Iterable[Route]):
        self._routes = tuple(routes)

    @property
    def routes(self) -> tuple[Route, ...]:
        return self._routes

    def resolve(self, path: str) -> Route | None:
        """Return the first route whose prefix ``path`` starts with."""
        for route in self._routes:
            if path.startswith(route.prefix):
                return route
        return None

    async def dispatch(self, request: web.Request) -> web.StreamResponse:
        path = request.rel_url.raw_path
        logger.info("Received request: %s %s", request.method, request.rel_url)
        logger.debug("Request headers: %s", redact_headers(request.headers))

        route = self.resolve(path)
        if route is None:
            logger.info("No route for %s", path)
            return route_not_found_response()

        return await route.adapter.handle(request)

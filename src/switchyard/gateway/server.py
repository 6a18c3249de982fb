"""Gateway HTTP server.

Accepts requests on any path and routes them by prefix:

    /openrouter/*  -> OpenRouter
    /modelscope/*  -> ModelScope
    /gemini/*      -> Gemini (with OpenAI-compatibility and key verification)

Everything else returns 404 {"error": "Route not found"}.

Example:
    >>> config = GatewayConfig(port=8787)
    >>> server = GatewayServer(config=config)
    >>> await server.serve()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from aiohttp import web

from switchyard.gateway.collaborators import (
    GeminiOpenAICompatHandler,
    KeyVerificationHandler,
    RequestHandler,
)
from switchyard.gateway.providers import GeminiAdapter, ModelScopeAdapter, OpenRouterAdapter
from switchyard.gateway.providers.gemini import GEMINI_API_BASE
from switchyard.gateway.providers.modelscope import MODELSCOPE_API_BASE
from switchyard.gateway.providers.openrouter import OPENROUTER_API_BASE
from switchyard.gateway.router import GatewayRouter, Route
from switchyard.gateway.tracing import RequestTracer

logger = logging.getLogger(__name__)


@dataclass
class GatewayConfig:
    """Configuration for the gateway server."""

    host: str = "127.0.0.1"
    port: int = 8787

    # Upstream base URLs
    openrouter_base_url: str = OPENROUTER_API_BASE
    modelscope_base_url: str = MODELSCOPE_API_BASE
    gemini_base_url: str = GEMINI_API_BASE

    # Client configuration; None leaves aiohttp's defaults in place
    connect_timeout: float | None = None
    read_timeout: float | None = None

    # Request limits
    max_body_size: int = 500 * 1024 * 1024  # 500MB

    # Debug: save request metadata to files
    debug_dir: str | None = None  # e.g., "/tmp/switchyard-debug"
    log_headers: bool = False

    def client_timeout(self) -> aiohttp.ClientTimeout | None:
        if self.connect_timeout is None and self.read_timeout is None:
            return None
        return aiohttp.ClientTimeout(
            total=None,
            connect=self.connect_timeout,
            sock_read=self.read_timeout,
        )


def build_routes(
    config: GatewayConfig,
    tracer: RequestTracer,
    openai_compat: RequestHandler,
    verifier: RequestHandler,
) -> tuple[Route, ...]:
    """Build the route table. Order is match priority."""
    timeout = config.client_timeout()
    adapters = (
        OpenRouterAdapter(base_url=config.openrouter_base_url, timeout=timeout, tracer=tracer),
        ModelScopeAdapter(base_url=config.modelscope_base_url, timeout=timeout, tracer=tracer),
        GeminiAdapter(
            openai_compat=openai_compat,
            verifier=verifier,
            base_url=config.gemini_base_url,
            timeout=timeout,
            tracer=tracer,
        ),
    )
    return tuple(Route(prefix=adapter.prefix, adapter=adapter) for adapter in adapters)


@dataclass
class GatewayServer:
    """Reverse proxy in front of the supported AI provider APIs.

    ``openai_compat`` and ``verifier`` default to the built-in Gemini
    handlers; handlers passed in are not closed by the server.
    """

    config: GatewayConfig
    openai_compat: RequestHandler | None = None
    verifier: RequestHandler | None = None
    _app: Any = None  # aiohttp.web.Application
    _runner: Any = None  # aiohttp.web.AppRunner
    _port: int | None = None
    _shutdown_event: asyncio.Event = field(default_factory=asyncio.Event)
    _tracer: RequestTracer = field(init=False)
    _router: GatewayRouter = field(init=False)
    _owned: list[Any] = field(init=False, default_factory=list)

    def __post_init__(self) -> None:
        """Build tracer, default handlers and the route table."""
        self._tracer = RequestTracer(
            debug_dir=self.config.debug_dir,
            log_headers=self.config.log_headers,
        )
        timeout = self.config.client_timeout()
        if self.openai_compat is None:
            self.openai_compat = GeminiOpenAICompatHandler(
                base_url=self.config.gemini_base_url,
                timeout=timeout,
                tracer=self._tracer,
            )
            self._owned.append(self.openai_compat)
        if self.verifier is None:
            self.verifier = KeyVerificationHandler(
                base_url=self.config.gemini_base_url,
                timeout=timeout,
            )
            self._owned.append(self.verifier)

        self._router = GatewayRouter(
            build_routes(self.config, self._tracer, self.openai_compat, self.verifier)
        )
        self._owned.extend(route.adapter for route in self._router.routes)

    @property
    def router(self) -> GatewayRouter:
        return self._router

    @property
    def port(self) -> int | None:
        """Port the server is bound to once started."""
        return self._port

    def build_app(self) -> web.Application:
        """Create the aiohttp application with the catch-all route."""
        app = web.Application(client_max_size=self.config.max_body_size)
        app.router.add_route("*", "/{tail:.*}", self._router.dispatch)
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _on_startup(self, app: web.Application) -> None:
        for handler in self._owned:
            await handler.connect()

    async def _on_cleanup(self, app: web.Application) -> None:
        for handler in self._owned:
            await handler.close()

    async def start(self) -> None:
        """Bind the server without blocking."""
        self._app = self.build_app()
        # A dropped client connection cancels the handler and its upstream call
        self._runner = web.AppRunner(self._app, handler_cancellation=True)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await site.start()

        sockets = getattr(site._server, "sockets", None) or []
        self._port = sockets[0].getsockname()[1] if sockets else self.config.port

        logger.info("Gateway listening on http://%s:%d", self.config.host, self._port)
        for route in self._router.routes:
            logger.info("  %s -> %s", route.prefix, route.adapter.base_url)
        if self.config.debug_dir:
            logger.info("Debug files will be saved to: %s", self.config.debug_dir)

    async def serve(self) -> None:
        """Start the gateway and block until shutdown() is called."""
        await self.start()
        await self._shutdown_event.wait()
        logger.info("Gateway shutdown requested")
        await self.stop()

    async def shutdown(self) -> None:
        """Ask a running serve() to return."""
        self._shutdown_event.set()

    async def stop(self) -> None:
        """Stop the server and close upstream sessions."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

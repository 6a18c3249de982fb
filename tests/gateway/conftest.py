"""Fixtures for gateway tests."""

from collections.abc import Awaitable, Callable
from typing import Any

import pytest
from aiohttp import web
from yarl import URL

from switchyard.gateway.server import GatewayConfig, GatewayServer


class RecordingHandler:
    """Stand-in for a delegated handler that records what it receives."""

    def __init__(self, name: str):
        self.name = name
        self.calls: list[dict[str, Any]] = []

    async def handle(self, request: web.Request) -> web.StreamResponse:
        self.calls.append(
            {
                "method": request.method,
                "path": request.path,
                "query_string": request.query_string,
                "headers": dict(request.headers),
                "body": await request.read(),
            }
        )
        return web.json_response({"handled_by": self.name}, status=200)


def _upstream_call(mocked: Any, method: str, url: str) -> dict[str, Any]:
    """Return the kwargs of the last call aioresponses recorded for method/url."""
    calls = mocked.requests.get((method, URL(url)))
    assert calls, f"no upstream call to {method} {url}; got {list(mocked.requests)}"
    return calls[-1].kwargs


@pytest.fixture
def upstream_call():
    return _upstream_call


@pytest.fixture
def openai_compat():
    return RecordingHandler("openai_compat")


@pytest.fixture
def verifier():
    return RecordingHandler("verifier")


@pytest.fixture
def gateway_config():
    return GatewayConfig(host="127.0.0.1", port=0)  # Let OS pick a port


@pytest.fixture
async def running_gateway(gateway_config, openai_compat, verifier):
    """Start a gateway with recording handlers for the delegated Gemini paths."""
    server = GatewayServer(
        config=gateway_config,
        openai_compat=openai_compat,
        verifier=verifier,
    )
    await server.start()
    base_url = f"http://127.0.0.1:{server.port}"

    yield server, base_url

    await server.stop()


@pytest.fixture
async def serve_handler():
    """Serve one catch-all handler on an OS-picked port; returns the base URL."""
    runners: list[web.AppRunner] = []

    async def factory(handler: Callable[[web.Request], Awaitable[web.StreamResponse]]) -> str:
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", handler)
        runner = web.AppRunner(app, handler_cancellation=True)
        await runner.setup()
        site = web.TCPSite(runner, "127.0.0.1", 0)
        await site.start()
        runners.append(runner)
        port = site._server.sockets[0].getsockname()[1]
        return f"http://127.0.0.1:{port}"

    yield factory

    for runner in runners:
        await runner.cleanup()

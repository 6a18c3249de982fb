"""Switchyard Gateway - prefix-routed proxy for AI provider APIs.

Components:
- Router: picks a provider adapter by path prefix (first match wins)
- Providers: per-upstream path/header rewriting and response shaping
- Errors: provider-tagged JSON error envelopes
- Key balancer: random pick from comma-separated API keys

Usage (via compose.py convenience functions):
    from switchyard.compose import create_gateway
    import asyncio

    asyncio.run(create_gateway(port=8787))

Usage (direct):
    from switchyard.gateway import GatewayConfig, GatewayServer
    import asyncio

    async def main():
        server = GatewayServer(config=GatewayConfig(port=8787))
        await server.serve()

    asyncio.run(main())
"""

from switchyard.gateway.router import GatewayRouter, Route
from switchyard.gateway.server import GatewayConfig, GatewayServer
from switchyard.gateway.tracing import RequestTracer

__all__ = [
    "GatewayConfig",
    "GatewayRouter",
    "GatewayServer",
    "RequestTracer",
    "Route",
]

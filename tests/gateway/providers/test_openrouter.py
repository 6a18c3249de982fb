"""End-to-end tests for the OpenRouter adapter."""

import aiohttp
from aioresponses import aioresponses

from switchyard.gateway.providers.openrouter import OpenRouterAdapter

UPSTREAM = "https://openrouter.ai/api/v1"


class TestOpenRouterUrls:
    def test_appends_path_to_base(self):
        adapter = OpenRouterAdapter()

        assert adapter.build_target_url("/chat/completions", "") == f"{UPSTREAM}/chat/completions"

    def test_api_v1_path_is_not_duplicated(self):
        adapter = OpenRouterAdapter()

        assert adapter.build_target_url("/api/v1/models", "") == f"{UPSTREAM}/models"

    def test_query_is_kept(self):
        adapter = OpenRouterAdapter()

        assert (
            adapter.build_target_url("/models", "category=programming")
            == f"{UPSTREAM}/models?category=programming"
        )

    def test_custom_base_url(self):
        adapter = OpenRouterAdapter(base_url="http://localhost:9999/api/v1/")

        assert adapter.build_target_url("/models", "") == "http://localhost:9999/api/v1/models"
        assert adapter.build_target_url("/api/v1/models", "") == "http://localhost:9999/api/v1/models"


class TestOpenRouterHeaders:
    def test_only_authorization_and_content_type(self):
        adapter = OpenRouterAdapter()

        headers = adapter.build_headers(
            {
                "Authorization": "Bearer sk-or-1",
                "Content-Type": "application/json",
                "Host": "localhost:8787",
                "X-Title": "my app",
                "Cookie": "a=b",
            }
        )

        assert dict(headers) == {
            "Authorization": "Bearer sk-or-1",
            "Content-Type": "application/json",
        }

    def test_missing_headers_are_not_invented(self):
        adapter = OpenRouterAdapter()

        assert dict(adapter.build_headers({"Accept": "*/*"})) == {}


class TestOpenRouterProxy:
    async def test_chat_completions_forwarded(self, running_gateway, upstream_call):
        _, base_url = running_gateway
        body = b'{"model": "openai/gpt-4o", "messages": [{"role": "user", "content": "hi"}]}'

        with aioresponses(passthrough=[base_url]) as m:
            m.post(
                f"{UPSTREAM}/chat/completions",
                payload={"id": "gen-1", "choices": [{"message": {"content": "hello"}}]},
                headers={"X-Request-Id": "req-1"},
            )

            async with (
                aiohttp.ClientSession() as session,
                session.post(
                    f"{base_url}/openrouter/chat/completions",
                    data=body,
                    headers={
                        "Authorization": "Bearer sk-or-1",
                        "Content-Type": "application/json",
                        "X-Title": "my app",
                    },
                ) as resp,
            ):
                assert resp.status == 200
                assert resp.headers["X-Request-Id"] == "req-1"
                data = await resp.json()
                assert data["id"] == "gen-1"

            call = upstream_call(m, "POST", f"{UPSTREAM}/chat/completions")
            assert dict(call["headers"]) == {
                "Authorization": "Bearer sk-or-1",
                "Content-Type": "application/json",
            }
            assert call["data"] == body

    async def test_api_v1_prefix_not_duplicated(self, running_gateway, upstream_call):
        _, base_url = running_gateway

        with aioresponses(passthrough=[base_url]) as m:
            m.get(f"{UPSTREAM}/models", payload={"data": []})

            async with (
                aiohttp.ClientSession() as session,
                session.get(f"{base_url}/openrouter/api/v1/models") as resp,
            ):
                assert resp.status == 200

            upstream_call(m, "GET", f"{UPSTREAM}/models")

    async def test_streaming_body_passed_through(self, running_gateway):
        _, base_url = running_gateway
        sse = (
            b'data: {"choices":[{"delta":{"content":"Hel"}}]}\n\n'
            b'data: {"choices":[{"delta":{"content":"lo"}}]}\n\n'
            b"data: [DONE]\n\n"
        )

        with aioresponses(passthrough=[base_url]) as m:
            m.post(f"{UPSTREAM}/chat/completions", body=sse, content_type="text/event-stream")

            async with (
                aiohttp.ClientSession() as session,
                session.post(
                    f"{base_url}/openrouter/chat/completions",
                    json={"model": "x", "stream": True, "messages": []},
                ) as resp,
            ):
                assert resp.status == 200
                assert resp.headers["Content-Type"].startswith("text/event-stream")
                assert await resp.read() == sse

    async def test_upstream_error_normalized(self, running_gateway):
        _, base_url = running_gateway

        with aioresponses(passthrough=[base_url]) as m:
            m.post(f"{UPSTREAM}/chat/completions", status=401, payload={"error": {"message": "bad key"}})

            async with (
                aiohttp.ClientSession() as session,
                session.post(f"{base_url}/openrouter/chat/completions", json={}) as resp,
            ):
                assert resp.status == 401
                assert await resp.json() == {
                    "error": {
                        "message": "[OpenRouter] bad key",
                        "type": "upstream_error",
                        "param": None,
                        "code": "upstream_error",
                    }
                }

    async def test_non_json_error_uses_fallback(self, running_gateway):
        _, base_url = running_gateway

        with aioresponses(passthrough=[base_url]) as m:
            m.get(f"{UPSTREAM}/models", status=503, body="Service Unavailable", content_type="text/html")

            async with (
                aiohttp.ClientSession() as session,
                session.get(f"{base_url}/openrouter/models") as resp,
            ):
                assert resp.status == 503
                data = await resp.json()
                assert data["error"]["message"] == "[OpenRouter] Upstream API error (status: 503)"
                assert data["error"]["type"] == "upstream_error"

    async def test_network_failure_returns_500(self, running_gateway):
        _, base_url = running_gateway

        with aioresponses(passthrough=[base_url]) as m:
            m.post(
                f"{UPSTREAM}/chat/completions",
                exception=aiohttp.ClientConnectionError("connection refused"),
            )

            async with (
                aiohttp.ClientSession() as session,
                session.post(f"{base_url}/openrouter/chat/completions", json={}) as resp,
            ):
                assert resp.status == 500
                assert await resp.json() == {
                    "error": {
                        "message": "[OpenRouter] connection refused",
                        "type": "openrouter_error",
                        "param": None,
                        "code": "openrouter_error",
                    }
                }

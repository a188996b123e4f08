"""
Unit tests for RateLimitedClient retry behaviour, using an httpx mock transport.
"""

import httpx
import pytest

from hnsearch.core.http_client import RateLimitedClient


def make_client(handler, retries: int = 3) -> RateLimitedClient:
    return RateLimitedClient(retries=retries, backoff_base=0, transport=httpx.MockTransport(handler))


class TestRateLimitedClient:
    async def test_get_json_success(self):
        client = make_client(lambda request: httpx.Response(200, json=[1, 2, 3]))

        async with client:
            assert await client.get_json("https://hn.example/newstories.json") == [1, 2, 3]

    async def test_retries_server_errors_then_succeeds(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"ok": True})

        async with make_client(handler) as client:
            assert await client.get_json("https://hn.example/x") == {"ok": True}

        assert len(calls) == 3

    async def test_retries_rate_limit_responses(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429) if len(calls) == 1 else httpx.Response(200, json=[])

        async with make_client(handler) as client:
            assert await client.get_json("https://hn.example/x") == []

        assert len(calls) == 2

    async def test_gives_up_after_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        async with make_client(handler, retries=3) as client:
            assert await client.get_with_response("https://hn.example/x") is None

        assert len(calls) == 3

    async def test_does_not_retry_client_errors(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        async with make_client(handler) as client:
            assert await client.get_with_response("https://hn.example/x") is None

        assert len(calls) == 1

    async def test_retries_network_errors(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=[7])

        async with make_client(handler) as client:
            assert await client.get_json("https://hn.example/x") == [7]

        assert len(calls) == 2

    async def test_null_body_decodes_to_none(self):
        async with make_client(lambda request: httpx.Response(200, content=b"null")) as client:
            response = await client.get_with_response("https://hn.example/item/0.json")

        assert response is not None
        assert response.json() is None

    @pytest.mark.parametrize("retries", [0, -1])
    async def test_at_least_one_attempt(self, retries):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=[])

        async with make_client(handler, retries=retries) as client:
            assert await client.get_json("https://hn.example/x") == []

        assert len(calls) == 1

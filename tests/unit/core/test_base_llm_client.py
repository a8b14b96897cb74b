from unittest.mock import patch

import httpx
import pytest

from estate_intake.core.base_llm_client import BaseLLMClient
from estate_intake.core.exceptions import APIClientError, APITimeoutError


def mocked_transport(handler):
    real_client = httpx.AsyncClient
    return patch.object(
        httpx, "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )


def client(max_retries: int = 3) -> BaseLLMClient:
    return BaseLLMClient(
        api_key="secret", base_url="https://llm.test/v1/chat/completions",
        max_retries=max_retries, retry_delay=0,
    )


@pytest.mark.asyncio
async def test_success_sends_bearer_token():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"choices": []})

    with mocked_transport(handler):
        assert await client().call_api(payload={"model": "m"}) == {"choices": []}

    assert seen[0].headers["authorization"] == "Bearer secret"
    assert str(seen[0].url) == "https://llm.test/v1/chat/completions"


@pytest.mark.asyncio
async def test_throttling_is_retried():
    answers = iter([httpx.Response(429, text="slow down"), httpx.Response(200, json={"ok": True})])

    with mocked_transport(lambda request: next(answers)):
        assert await client().call_api(payload={}) == {"ok": True}


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401, text="bad key")

    with mocked_transport(handler):
        with pytest.raises(APIClientError):
            await client().call_api(payload={})
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_attempts_are_bounded():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, text="unavailable")

    with mocked_transport(handler):
        with pytest.raises(APIClientError):
            await client(max_retries=2).call_api(payload={})
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_timeout_on_last_attempt():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with mocked_transport(handler):
        with pytest.raises(APITimeoutError):
            await client(max_retries=1).call_api(payload={})

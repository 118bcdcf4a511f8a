"""Tests for the OpenRouter client over httpx.MockTransport."""

import json

import httpx
import pytest

from app.exceptions import ConfigError, GenerationError
from app.services.llm_client import OpenRouterClient, _mask_key
from conftest import TEST_API_KEY, make_settings


def client_for(handler, **overrides):
    return OpenRouterClient(make_settings(**overrides), transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_complete_posts_chat_completion():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "lesson"}}]})

    client = client_for(handler)
    content = await client.complete("system", "user", caller="test")
    await client.aclose()

    assert content == "lesson"
    assert seen["url"] == "https://openrouter.ai/api/v1/chat/completions"
    assert seen["auth"] == f"Bearer {TEST_API_KEY}"
    assert seen["body"]["messages"] == [
        {"role": "system", "content": "system"},
        {"role": "user", "content": "user"},
    ]
    assert seen["body"]["model"] == "openrouter/auto"


@pytest.mark.anyio
async def test_missing_key_raises_config_error():
    client = client_for(lambda request: httpx.Response(200), OPENROUTER_API_KEY="")
    assert not client.is_configured
    with pytest.raises(ConfigError):
        await client.complete("s", "u")


@pytest.mark.anyio
async def test_http_error_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429, json={"error": "rate limited"})

    client = client_for(handler)
    with pytest.raises(GenerationError) as exc_info:
        await client.complete("s", "u")

    assert exc_info.value.upstream_status == 429
    assert len(calls) == 1


@pytest.mark.anyio
async def test_transport_error_becomes_generation_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GenerationError, match="connection refused"):
        await client_for(handler).complete("s", "u")


@pytest.mark.anyio
@pytest.mark.parametrize("payload", [{"choices": []}, {"unexpected": True}, {"choices": [{"message": {"content": "  "}}]}])
async def test_malformed_response_is_generation_error(payload):
    with pytest.raises(GenerationError):
        await client_for(lambda request: httpx.Response(200, json=payload)).complete("s", "u")


@pytest.mark.anyio
async def test_check_health():
    ok = await client_for(lambda request: httpx.Response(200, json={})).check_health()
    assert ok["status"] == "ok"
    assert ok["key"] == _mask_key(TEST_API_KEY)

    unauthorized = await client_for(lambda request: httpx.Response(401)).check_health()
    assert unauthorized["status"] == "error"
    assert unauthorized["http_status"] == 401

    unconfigured = await client_for(lambda request: httpx.Response(200), OPENROUTER_API_KEY="").check_health()
    assert unconfigured["status"] == "unconfigured"


def test_mask_key():
    assert _mask_key("short") == "***"
    assert _mask_key("sk-or-v1-abcdefghijklmnop") == "sk-or-v1...mnop"

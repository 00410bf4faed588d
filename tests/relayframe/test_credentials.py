"""Tests for the HTTP credential probe."""

import httpx
import pytest

from relayframe.credentials import HttpCredentialProbe
from relayframe.endpoints import openrouter_endpoint


def test_probe_init_defaults():
    probe = HttpCredentialProbe()
    assert probe.timeout == 10.0
    assert probe.path == "/auth/key"


@pytest.mark.asyncio
async def test_valid_key():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"data": {"label": "sk-or-...", "usage": 0}})

    probe = HttpCredentialProbe(transport=httpx.MockTransport(handler))
    state = await probe.verify(openrouter_endpoint(), "sk-good")

    assert state.valid is True
    assert state.checked_at is not None
    assert seen["url"] == "https://openrouter.ai/api/v1/auth/key"
    assert seen["auth"] == "Bearer sk-good"


@pytest.mark.asyncio
async def test_rejected_key():
    probe = HttpCredentialProbe(transport=httpx.MockTransport(lambda r: httpx.Response(401)))
    state = await probe.verify(openrouter_endpoint(), "sk-bad")
    assert state.valid is False
    assert state.detail == "HTTP 401"


@pytest.mark.asyncio
async def test_empty_key_skips_request():
    def handler(request):
        raise AssertionError("no request expected")

    probe = HttpCredentialProbe(transport=httpx.MockTransport(handler))
    state = await probe.verify(openrouter_endpoint(), "")
    assert state.valid is False
    assert state.detail == "empty key"


@pytest.mark.asyncio
async def test_timeout_is_invalid():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    probe = HttpCredentialProbe(transport=httpx.MockTransport(handler))
    state = await probe.verify(openrouter_endpoint(), "sk-any")
    assert state.valid is False
    assert state.detail == "timeout"


@pytest.mark.asyncio
async def test_connection_error_is_invalid():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    probe = HttpCredentialProbe(transport=httpx.MockTransport(handler))
    state = await probe.verify(openrouter_endpoint(), "sk-any")
    assert state.valid is False
    assert state.detail.startswith("connection error")

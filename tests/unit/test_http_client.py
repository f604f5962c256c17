"""
Unit Tests for the shared provider HTTP client

These tests verify that SourceHTTPClient:
- Returns decoded JSON on HTTP 200
- Retries rate limits, 5xx and timeouts a bounded number of times
- Fails fast on other 4xx statuses
- Raises SourceUnavailableError with status and truncated body

Run with:
    pytest tests/unit/test_http_client.py -v
"""

import asyncio
import json

import pytest

from core.source_interface import SourceUnavailableError
from sources.http import SourceHTTPClient


class FakeResponse:
    def __init__(self, status=200, payload=None, text=None):
        self.status = status
        self._payload = payload
        self._text = text if text is not None else json.dumps(payload)

    async def json(self, content_type=None):
        return json.loads(self._text)

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Replays scripted responses (or raises scripted exceptions) in order."""

    def __init__(self, script):
        self.script = list(script)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        return step

    async def close(self):
        pass


def make_client(script, max_attempts=3):
    client = SourceHTTPClient("testsource", "https://api.example.com/", max_attempts=max_attempts, backoff=0)
    client.session = FakeSession(script)
    return client


class TestGetJson:

    @pytest.mark.asyncio
    async def test_success_returns_payload(self):
        client = make_client([FakeResponse(200, {"pairs": []})])

        data = await client.get_json("/latest/dex/search", {"q": "solana"})

        assert data == {"pairs": []}
        assert client.session.calls == [("https://api.example.com/latest/dex/search", {"q": "solana"})]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [429, 418, 500, 502, 503])
    async def test_transient_status_is_retried(self, status):
        client = make_client([FakeResponse(status, text="busy"), FakeResponse(200, {"ok": True})])

        assert await client.get_json("/x") == {"ok": True}
        assert len(client.session.calls) == 2

    @pytest.mark.asyncio
    async def test_timeout_is_retried(self):
        client = make_client([asyncio.TimeoutError(), FakeResponse(200, {"ok": True})])

        assert await client.get_json("/x") == {"ok": True}

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self):
        client = make_client([FakeResponse(503, text="down")] * 3, max_attempts=3)

        with pytest.raises(SourceUnavailableError) as exc_info:
            await client.get_json("/x")

        assert len(client.session.calls) == 3
        assert exc_info.value.status == 503
        assert exc_info.value.body == "down"

    @pytest.mark.asyncio
    async def test_client_error_fails_fast(self):
        client = make_client([FakeResponse(404, text="n" * 500), FakeResponse(200, {})])

        with pytest.raises(SourceUnavailableError) as exc_info:
            await client.get_json("/missing")

        assert len(client.session.calls) == 1
        assert exc_info.value.status == 404
        assert len(exc_info.value.body) == 200

    @pytest.mark.asyncio
    async def test_malformed_json_is_source_unavailable(self):
        client = make_client([FakeResponse(200, text="<html>oops</html>")])

        with pytest.raises(SourceUnavailableError, match="malformed"):
            await client.get_json("/x")

    @pytest.mark.asyncio
    async def test_requires_session(self):
        client = SourceHTTPClient("testsource", "https://api.example.com")

        with pytest.raises(RuntimeError, match="not initialized"):
            await client.get_json("/x")

    @pytest.mark.asyncio
    async def test_context_manager_opens_and_closes_session(self):
        async with SourceHTTPClient("testsource", "https://api.example.com") as client:
            assert client.session is not None
        assert client.session is None

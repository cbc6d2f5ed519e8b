"""Tests for the top-level client."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import httpx
import pytest

from src.client import WatiClient
from src.config import RateLimitConfig
from src.errors import APIError
from src.models import AuditEventType
from tests.conftest import TEST_ENDPOINT, TEST_TOKEN


def _make_client(handler, **kwargs) -> WatiClient:
    kwargs.setdefault("rate_limit", RateLimitConfig(requests_per_second=1000, burst_size=1000))
    return WatiClient(TEST_ENDPOINT, TEST_TOKEN, transport=httpx.MockTransport(handler), **kwargs)


class TestValidateToken:
    @pytest.mark.asyncio
    async def test_valid(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"result": True, "chatbots": []})

        async with _make_client(handler) as client:
            await client.validate_token()
        assert seen[0].url.path == "/api/v1/chatbots"

    @pytest.mark.asyncio
    async def test_rejected_token(self) -> None:
        async with _make_client(lambda r: httpx.Response(401, json={"error": "nope"})) as client:
            with pytest.raises(APIError) as exc_info:
                await client.validate_token()
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid API token"

    @pytest.mark.asyncio
    async def test_other_errors_pass_through(self) -> None:
        async with _make_client(lambda r: httpx.Response(403, json={"error": "plan"})) as client:
            with pytest.raises(APIError) as exc_info:
                await client.validate_token()
        assert exc_info.value.is_authorization_error


class TestRotateToken:
    @pytest.mark.asyncio
    async def test_switches_to_new_token(self, mock_audit_logger: MagicMock) -> None:
        auth_headers: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            auth_headers.append(request.headers["Authorization"])
            if request.url.path == "/api/v1/rotateToken":
                return httpx.Response(200, json={"result": True, "token": "fresh"})
            return httpx.Response(200, json={"result": True})

        async with _make_client(handler, audit_logger=mock_audit_logger) as client:
            response = await client.rotate_token()
            await client.validate_token()

        assert response.token == "fresh"
        assert client.config.token == "fresh"
        assert auth_headers == [f"Bearer {TEST_TOKEN}", "Bearer fresh"]
        entry = mock_audit_logger.log.call_args.args[0]
        assert entry.event_type is AuditEventType.TOKEN_ROTATED


class TestIsolation:
    @pytest.mark.asyncio
    async def test_instances_do_not_share_state(self) -> None:
        handler = lambda r: httpx.Response(200, json={})  # noqa: E731
        first = _make_client(handler)
        second = _make_client(handler)
        first.set_token("changed")
        first.webhooks.set_secret("s")
        assert second.config.token == TEST_TOKEN
        assert first.contacts is not second.contacts
        assert first._executor.limiter is not second._executor.limiter
        await first.aclose()
        await second.aclose()

    @pytest.mark.asyncio
    async def test_execute_request_escape_hatch(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"echo": json.loads(request.content)})

        async with _make_client(handler) as client:
            result = await client.execute_request("POST", "/api/v1/custom", {"a": 1}, dict)
        assert result == {"echo": {"a": 1}}


def test_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("WATI_API_ENDPOINT", "https://env.test/")
    monkeypatch.setenv("WATI_TOKEN", "env-token")
    monkeypatch.setenv("WATI_WEBHOOK_SECRET", "hook-secret")
    monkeypatch.setenv("AUDIT_LOG_PATH", str(tmp_path / "audit.jsonl"))
    client = WatiClient.from_env()
    assert client.config.api_endpoint == "https://env.test"
    assert client.config.token == "env-token"
    assert client._audit_logger is not None

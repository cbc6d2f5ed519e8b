"""Shared test fixtures for wati-client."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.audit.logger import AuditLogger
from src.config import ClientConfig, RateLimitConfig
from src.http.executor import RequestExecutor
from src.models import AuditEvent, AuditEventType, RiskLevel

TEST_ENDPOINT = "https://live-server.wati.test"
TEST_TOKEN = "test-token"


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def mock_requester() -> MagicMock:
    """Requester double for service tests; ``execute_request`` is an AsyncMock."""
    requester = MagicMock()
    requester.execute_request = AsyncMock()
    requester.execute_multipart = AsyncMock()
    return requester


# --- Factory functions for test data ---


def make_audit_event(**kwargs: Any) -> AuditEvent:
    """Factory for AuditEvent with sensible defaults."""
    defaults: dict[str, Any] = {
        "event_type": AuditEventType.WEBHOOK_REJECTED,
        "action": "test_action",
        "result": "rejected",
        "risk_level": RiskLevel.HIGH,
    }
    defaults.update(kwargs)
    return AuditEvent(**defaults)


def make_client_config(**kwargs: Any) -> ClientConfig:
    """Factory for ClientConfig with a generous rate limit."""
    defaults: dict[str, Any] = {
        "api_endpoint": TEST_ENDPOINT,
        "token": TEST_TOKEN,
        "rate_limit": RateLimitConfig(requests_per_second=1000, burst_size=1000),
    }
    defaults.update(kwargs)
    return ClientConfig(**defaults)


def make_executor(
    handler: Callable[[httpx.Request], httpx.Response],
    **kwargs: Any,
) -> RequestExecutor:
    """RequestExecutor wired to an in-memory ``httpx.MockTransport``."""
    return RequestExecutor(make_client_config(**kwargs), transport=httpx.MockTransport(handler))


def make_webhook_payload(
    event_type: str = "message_received",
    data: Any = None,
    **kwargs: Any,
) -> dict[str, Any]:
    """Factory for a webhook envelope dict."""
    if data is None and event_type == "message_received":
        data = {
            "messageId": "msg-1",
            "from": "15551234567",
            "to": "15557654321",
            "messageType": "text",
            "text": "hello",
            "timestamp": "2026-01-01T00:00:00Z",
        }
    payload: dict[str, Any] = {
        "id": "evt-1",
        "type": event_type,
        "timestamp": "2026-01-01T00:00:00Z",
        "data": data,
    }
    payload.update(kwargs)
    return payload


def encode_payload(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode()

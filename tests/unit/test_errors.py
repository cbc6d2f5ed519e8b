"""Tests for the error taxonomy."""

from __future__ import annotations

import httpx
import pytest

from src.errors import (
    APIError,
    ErrorCategory,
    MultiValidationError,
    NetworkError,
    ValidationCollector,
    ValidationError,
    WatiError,
    WebhookHandlerError,
    classify_status,
    is_retryable_status,
)
from src.webhook.events import WebhookEvent, WebhookEventType


class TestClassifyStatus:
    @pytest.mark.parametrize(
        ("status", "category"),
        [
            (400, ErrorCategory.BAD_REQUEST),
            (401, ErrorCategory.AUTHENTICATION),
            (403, ErrorCategory.AUTHORIZATION),
            (404, ErrorCategory.NOT_FOUND),
            (405, ErrorCategory.METHOD_NOT_ALLOWED),
            (429, ErrorCategory.RATE_LIMIT),
            (500, ErrorCategory.SERVER_ERROR),
            (503, ErrorCategory.SERVER_ERROR),
            (418, ErrorCategory.CLIENT_ERROR),
            (302, ErrorCategory.UNKNOWN),
        ],
    )
    def test_table(self, status: int, category: ErrorCategory) -> None:
        assert classify_status(status) is category

    def test_only_rate_limit_and_server_errors_are_retryable(self) -> None:
        assert is_retryable_status(429)
        assert is_retryable_status(502)
        assert not is_retryable_status(400)
        assert not is_retryable_status(404)


class TestAPIError:
    def test_message_format(self) -> None:
        err = APIError(400, "invalid request")
        assert str(err) == "WATI API Error 400: invalid request"
        assert err.status_code == 400
        assert err.category is ErrorCategory.BAD_REQUEST
        assert not err.retryable

    def test_predicates(self) -> None:
        assert APIError(401, "x").is_authentication_error
        assert APIError(403, "x").is_authorization_error
        assert APIError(404, "x").is_not_found_error
        assert APIError(429, "x").is_rate_limit_error
        assert APIError(504, "x").is_server_error
        assert APIError(504, "x").retryable

    def test_is_wati_error(self) -> None:
        assert isinstance(APIError(500, "x"), WatiError)


def test_network_error_is_always_retryable() -> None:
    err = NetworkError("GET /api/v1/chatbots", httpx.ConnectError("refused"))
    assert err.retryable
    assert str(err) == "Network error during GET /api/v1/chatbots: refused"


class TestValidationCollector:
    def test_no_errors_does_not_raise(self) -> None:
        ValidationCollector().raise_if_any()

    def test_single_error_raised_as_is(self) -> None:
        errors = ValidationCollector()
        errors.add("phone", "phone is required")
        with pytest.raises(ValidationError) as exc_info:
            errors.raise_if_any()
        assert exc_info.value.field == "phone"
        assert str(exc_info.value) == "Validation error for field 'phone': phone is required"

    def test_multiple_errors_aggregate(self) -> None:
        errors = ValidationCollector()
        errors.add("a", "bad")
        errors.add("b", "bad")
        with pytest.raises(MultiValidationError) as exc_info:
            errors.raise_if_any()
        assert [e.field for e in exc_info.value.errors] == ["a", "b"]
        assert str(exc_info.value) == "Multiple validation errors: 2 errors"


def test_handler_error_names_event_type() -> None:
    event = WebhookEvent(id="e1", type=WebhookEventType.MESSAGE_READ, timestamp="")
    err = WebhookHandlerError(event, RuntimeError("boom"))
    assert str(err) == "Handler for event message_read failed: boom"
    assert err.event is event

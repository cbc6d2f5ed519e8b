"""Error taxonomy for the WATI client.

Every failure raised by the library derives from ``WatiError`` and carries a
``retryable`` flag. HTTP status codes are mapped onto ``ErrorCategory`` by a
fixed table so callers can branch on the category instead of raw codes.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from src.webhook.events import WebhookEvent


class ErrorCategory(str, Enum):
    BAD_REQUEST = "bad_request"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    RATE_LIMIT = "rate_limit"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    UNKNOWN = "unknown"


_STATUS_CATEGORIES: dict[int, ErrorCategory] = {
    400: ErrorCategory.BAD_REQUEST,
    401: ErrorCategory.AUTHENTICATION,
    403: ErrorCategory.AUTHORIZATION,
    404: ErrorCategory.NOT_FOUND,
    405: ErrorCategory.METHOD_NOT_ALLOWED,
    429: ErrorCategory.RATE_LIMIT,
    500: ErrorCategory.SERVER_ERROR,
}

_RETRYABLE_CATEGORIES = frozenset({ErrorCategory.RATE_LIMIT, ErrorCategory.SERVER_ERROR})


def classify_status(status_code: int) -> ErrorCategory:
    """Map an HTTP status code to its error category."""
    category = _STATUS_CATEGORIES.get(status_code)
    if category is not None:
        return category
    if status_code >= 500:
        return ErrorCategory.SERVER_ERROR
    if status_code >= 400:
        return ErrorCategory.CLIENT_ERROR
    return ErrorCategory.UNKNOWN


def is_retryable_status(status_code: int) -> bool:
    return classify_status(status_code) in _RETRYABLE_CATEGORIES


class WatiError(Exception):
    """Base class for all client errors."""

    @property
    def retryable(self) -> bool:
        return False


class APIError(WatiError):
    """Non-success HTTP response from the remote API."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        self.category = classify_status(status_code)
        super().__init__(f"WATI API Error {status_code}: {message}")

    @property
    def retryable(self) -> bool:
        return self.category in _RETRYABLE_CATEGORIES

    @property
    def is_authentication_error(self) -> bool:
        return self.category is ErrorCategory.AUTHENTICATION

    @property
    def is_authorization_error(self) -> bool:
        return self.category is ErrorCategory.AUTHORIZATION

    @property
    def is_not_found_error(self) -> bool:
        return self.category is ErrorCategory.NOT_FOUND

    @property
    def is_rate_limit_error(self) -> bool:
        return self.category is ErrorCategory.RATE_LIMIT

    @property
    def is_server_error(self) -> bool:
        return self.category is ErrorCategory.SERVER_ERROR


class NetworkError(WatiError):
    """The request never produced an HTTP response."""

    def __init__(self, operation: str, cause: BaseException) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Network error during {operation}: {cause}")

    @property
    def retryable(self) -> bool:
        return True


class RequestCancelledError(WatiError):
    """The per-call deadline expired before the request completed."""

    def __init__(self, operation: str, timeout: float) -> None:
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"Request {operation} cancelled after {timeout:g}s deadline")


class DecodeError(WatiError):
    """A JSON body could not be decoded into the expected shape."""


class ValidationError(WatiError):
    """A request payload failed local validation before any network call."""

    def __init__(self, field: str, message: str, value: Any = None) -> None:
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"Validation error for field '{field}': {message}")


class MultiValidationError(WatiError):
    def __init__(self, errors: list[ValidationError]) -> None:
        self.errors = list(errors)
        super().__init__(f"Multiple validation errors: {len(self.errors)} errors")


class ValidationCollector:
    """Accumulates field errors and raises them together."""

    def __init__(self) -> None:
        self.errors: list[ValidationError] = []

    def add(self, field: str, message: str, value: Any = None) -> None:
        self.errors.append(ValidationError(field, message, value))

    def raise_if_any(self) -> None:
        if not self.errors:
            return
        if len(self.errors) == 1:
            raise self.errors[0]
        raise MultiValidationError(self.errors)


class SignatureError(WatiError):
    """Inbound webhook payload failed HMAC verification."""


class WebhookHandlerError(WatiError):
    """A registered webhook handler raised while processing an event."""

    def __init__(self, event: WebhookEvent, cause: BaseException) -> None:
        self.event = event
        self.cause = cause
        super().__init__(f"Handler for event {event.type_name} failed: {cause}")


class WebhookServerError(WatiError):
    """Webhook receiver lifecycle misuse or listener failure."""

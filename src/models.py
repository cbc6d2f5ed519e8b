"""Shared Pydantic data models for wati-client."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# --- Base ---


class WatiModel(BaseModel):
    """Base for API payloads: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class BaseResponse(WatiModel):
    result: bool = False
    message: str | None = None
    error: str | None = None


class PaginatedResponse(BaseResponse):
    page: int = 0
    page_size: int = 0
    total_pages: int = 0
    total_count: int = 0


class CustomParam(WatiModel):
    name: str
    value: str


class Parameter(WatiModel):
    name: str
    value: str


class TokenResponse(BaseResponse):
    token: str = ""
    expires_at: str | None = None


def page_query(page_size: int, page_number: int) -> dict[str, Any]:
    """Pagination query parameters with the API defaults applied."""
    return {
        "pageSize": page_size if page_size > 0 else 20,
        "pageNumber": page_number if page_number > 0 else 1,
    }


# --- Enums ---


class AuditEventType(str, Enum):
    WEBHOOK_RECEIVED = "webhook_received"
    WEBHOOK_REJECTED = "webhook_rejected"
    WEBHOOK_HANDLER_FAILURE = "webhook_handler_failure"
    WEBHOOK_SERVER_START = "webhook_server_start"
    WEBHOOK_SERVER_STOP = "webhook_server_stop"
    TOKEN_ROTATED = "token_rotated"


class RiskLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    source_ip: str | None = None
    event_id: str | None = None
    action: str
    result: str  # "success" | "failure" | "rejected"
    risk_level: RiskLevel
    details: dict[str, object] | None = None

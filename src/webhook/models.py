"""Remote webhook registration models."""

from __future__ import annotations

from pydantic import Field

from src.errors import ValidationError
from src.models import BaseResponse, WatiModel
from src.webhook.events import WebhookEventType


class WebhookRegistration(WatiModel):
    url: str
    events: list[str]
    secret: str | None = None
    description: str | None = None

    def validate_request(self) -> None:
        if not self.url:
            raise ValidationError("url", "webhook URL is required")
        if not self.events:
            raise ValidationError("events", "at least one event type is required")
        known = {t.value for t in WebhookEventType}
        for event in self.events:
            if event not in known:
                raise ValidationError("events", f"invalid event type: {event}", event)


class WebhookConfig(WatiModel):
    url: str = ""
    events: list[str] = Field(default_factory=list)
    secret: str | None = None
    is_active: bool = False
    description: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class WebhooksResponse(BaseResponse):
    webhooks: list[WebhookConfig] = Field(default_factory=list)

"""Webhook event envelope, typed payloads and the decode-by-type dispatcher."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from src.errors import DecodeError
from src.models import WatiModel


class WebhookEventType(str, Enum):
    MESSAGE_RECEIVED = "message_received"
    NEW_CONTACT_MESSAGE = "new_contact_message"
    SESSION_MESSAGE_SENT = "session_message_sent"
    TEMPLATE_MESSAGE_SENT = "template_message_sent"
    MESSAGE_DELIVERED = "message_delivered"
    MESSAGE_READ = "message_read"
    MESSAGE_REPLIED = "message_replied"
    TEMPLATE_MESSAGE_FAILED = "template_message_failed"
    CONTACT_CREATED = "contact_created"
    CONTACT_UPDATED = "contact_updated"
    CHATBOT_STARTED = "chatbot_started"
    CHATBOT_STOPPED = "chatbot_stopped"
    CHAT_STATUS_CHANGED = "chat_status_changed"


ALL_EVENT_TYPES: tuple[WebhookEventType, ...] = tuple(WebhookEventType)


def rfc3339_now() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_event_type(value: str) -> WebhookEventType | str:
    """Return the enum member for a known type string, else the string unchanged."""
    try:
        return WebhookEventType(value)
    except ValueError:
        return value


# --- Payloads ---


class _Payload(WatiModel):
    model_config = ConfigDict(frozen=True)


class WebhookMediaInfo(_Payload):
    id: str = ""
    file_name: str = ""
    mime_type: str = ""
    size: int = 0
    url: str = ""
    caption: str | None = None


class WebhookLocationInfo(_Payload):
    latitude: float = 0.0
    longitude: float = 0.0
    name: str | None = None
    address: str | None = None


class WebhookPhoneNumber(_Payload):
    phone: str = ""
    type: str | None = None


class WebhookEmail(_Payload):
    email: str = ""
    type: str | None = None


class WebhookURL(_Payload):
    url: str = ""
    type: str | None = None


class WebhookAddress(_Payload):
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    country: str | None = None
    country_code: str | None = None
    type: str | None = None


class WebhookContactInfo(_Payload):
    name: str = ""
    phone_numbers: list[WebhookPhoneNumber] = Field(default_factory=list)
    emails: list[WebhookEmail] = Field(default_factory=list)
    urls: list[WebhookURL] = Field(default_factory=list)
    addresses: list[WebhookAddress] = Field(default_factory=list)
    organization: str | None = None
    birthday: str | None = None


class WebhookButtonReply(_Payload):
    id: str = ""
    title: str = ""


class WebhookListReply(_Payload):
    id: str = ""
    title: str = ""
    description: str | None = None


class WebhookInteractiveInfo(_Payload):
    type: str = ""
    button_reply: WebhookButtonReply | None = None
    list_reply: WebhookListReply | None = None


class WebhookContactProfile(_Payload):
    name: str = ""
    avatar: str | None = None


class WebhookCustomParam(_Payload):
    name: str = ""
    value: str = ""


class MessageReceivedData(_Payload):
    message_id: str = ""
    from_: str = Field(default="", alias="from")
    to: str = ""
    message_type: str = ""
    text: str | None = None
    media: WebhookMediaInfo | None = None
    location: WebhookLocationInfo | None = None
    contact: WebhookContactInfo | None = None
    interactive: WebhookInteractiveInfo | None = None
    timestamp: str = ""
    contact_profile: WebhookContactProfile | None = None

    @property
    def message_text(self) -> str:
        """Text body, or the title of the tapped button/list row."""
        if self.message_type == "text":
            return self.text or ""
        if self.message_type == "interactive" and self.interactive is not None:
            if self.interactive.button_reply is not None:
                return self.interactive.button_reply.title
            if self.interactive.list_reply is not None:
                return self.interactive.list_reply.title
        return ""

    @property
    def is_text(self) -> bool:
        return self.message_type == "text"

    @property
    def is_media(self) -> bool:
        return self.media is not None

    @property
    def is_location(self) -> bool:
        return self.location is not None

    @property
    def is_contact(self) -> bool:
        return self.contact is not None

    @property
    def is_interactive(self) -> bool:
        return self.interactive is not None

    @property
    def is_button_reply(self) -> bool:
        return self.interactive is not None and self.interactive.button_reply is not None

    @property
    def is_list_reply(self) -> bool:
        return self.interactive is not None and self.interactive.list_reply is not None

    @property
    def contact_name(self) -> str:
        return self.contact_profile.name if self.contact_profile else ""


class MessageSentData(_Payload):
    message_id: str = ""
    from_: str = Field(default="", alias="from")
    to: str = ""
    message_type: str = ""
    template_name: str | None = None
    status: str = ""
    timestamp: str = ""
    error_code: str | None = None
    error_message: str | None = None
    contact_profile: WebhookContactProfile | None = None

    @property
    def is_delivered(self) -> bool:
        return self.status == "delivered"

    @property
    def is_read(self) -> bool:
        return self.status == "read"

    @property
    def is_failed(self) -> bool:
        return self.status == "failed"

    @property
    def has_error(self) -> bool:
        return bool(self.error_code or self.error_message)

    @property
    def error_info(self) -> str:
        if self.error_message:
            return self.error_message
        if self.error_code:
            return f"Error code: {self.error_code}"
        return ""


class MessageStatusData(_Payload):
    message_id: str = ""
    from_: str = Field(default="", alias="from")
    to: str = ""
    status: str = ""
    timestamp: str = ""
    error_code: str | None = None
    error_message: str | None = None


class ContactEventData(_Payload):
    contact_id: str = ""
    whatsapp_number: str = ""
    first_name: str = ""
    last_name: str | None = None
    full_name: str = ""
    email: str | None = None
    tags: list[str] = Field(default_factory=list)
    custom_params: list[WebhookCustomParam] = Field(default_factory=list)
    source: str | None = None
    timestamp: str = ""
    changes: dict[str, Any] | None = None


class ChatbotEventData(_Payload):
    chatbot_id: str = ""
    chatbot_name: str = ""
    whatsapp_number: str = ""
    session_id: str | None = None
    status: str = ""
    timestamp: str = ""
    reason: str | None = None


class ChatStatusEventData(_Payload):
    whatsapp_number: str = ""
    old_status: str = ""
    new_status: str = ""
    assigned_to: str | None = None
    assigned_by: str | None = None
    tags: list[str] = Field(default_factory=list)
    notes: str | None = None
    timestamp: str = ""


EVENT_PAYLOAD_TYPES: dict[WebhookEventType, type[_Payload]] = {
    WebhookEventType.MESSAGE_RECEIVED: MessageReceivedData,
    WebhookEventType.NEW_CONTACT_MESSAGE: MessageReceivedData,
    WebhookEventType.SESSION_MESSAGE_SENT: MessageSentData,
    WebhookEventType.TEMPLATE_MESSAGE_SENT: MessageSentData,
    WebhookEventType.TEMPLATE_MESSAGE_FAILED: MessageSentData,
    WebhookEventType.MESSAGE_DELIVERED: MessageStatusData,
    WebhookEventType.MESSAGE_READ: MessageStatusData,
    WebhookEventType.MESSAGE_REPLIED: MessageStatusData,
    WebhookEventType.CONTACT_CREATED: ContactEventData,
    WebhookEventType.CONTACT_UPDATED: ContactEventData,
    WebhookEventType.CHATBOT_STARTED: ChatbotEventData,
    WebhookEventType.CHATBOT_STOPPED: ChatbotEventData,
    WebhookEventType.CHAT_STATUS_CHANGED: ChatStatusEventData,
}


# --- Envelope ---


@dataclass(frozen=True)
class WebhookEvent:
    id: str
    type: WebhookEventType | str
    timestamp: str
    data: Any = None
    source: str = ""
    version: str = ""

    @property
    def type_name(self) -> str:
        return self.type.value if isinstance(self.type, WebhookEventType) else self.type

    def to_dict(self) -> dict[str, Any]:
        data = self.data
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json", by_alias=True, exclude_none=True)
        envelope: dict[str, Any] = {
            "id": self.id,
            "type": self.type_name,
            "timestamp": self.timestamp,
            "data": data,
        }
        if self.source:
            envelope["source"] = self.source
        if self.version:
            envelope["version"] = self.version
        return envelope

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode()


class _EventEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    type: str = ""
    timestamp: str = ""
    data: Any = None
    source: str = ""
    version: str = ""


def decode_event(payload: bytes | str) -> WebhookEvent:
    """Decode a webhook envelope, then decode ``data`` into its typed payload.

    Unknown event types keep ``data`` as plain JSON values. A null ``data``
    stays ``None`` for every type.

    Raises:
        DecodeError: The envelope or a recognized type's payload is malformed.
    """
    try:
        envelope = _EventEnvelope.model_validate_json(payload)
    except PydanticValidationError as exc:
        raise DecodeError(f"error parsing webhook event: {exc}") from exc

    event_type = parse_event_type(envelope.type)
    data = envelope.data
    payload_type = (
        EVENT_PAYLOAD_TYPES.get(event_type) if isinstance(event_type, WebhookEventType) else None
    )
    if data is not None and payload_type is not None:
        raw = json.dumps(data)
        try:
            data = payload_type.model_validate_json(raw)
        except PydanticValidationError as exc:
            raise DecodeError(f"error parsing event data for {envelope.type}: {exc}") from exc

    return WebhookEvent(
        id=envelope.id,
        type=event_type,
        timestamp=envelope.timestamp,
        data=data,
        source=envelope.source,
        version=envelope.version,
    )


# --- Handlers ---

WebhookHandler = Callable[[WebhookEvent], Awaitable[None] | None]


def _typed_handler(
    payload_type: type[_Payload],
    label: str,
    func: Callable[[WebhookEvent, Any], Awaitable[None] | None],
) -> WebhookHandler:
    def handler(event: WebhookEvent) -> Awaitable[None] | None:
        if not isinstance(event.data, payload_type):
            raise TypeError(f"invalid data type for {label} event")
        return func(event, event.data)

    return handler


def message_handler(
    func: Callable[[WebhookEvent, MessageReceivedData], Awaitable[None] | None],
) -> WebhookHandler:
    return _typed_handler(MessageReceivedData, "message", func)


def message_sent_handler(
    func: Callable[[WebhookEvent, MessageSentData], Awaitable[None] | None],
) -> WebhookHandler:
    return _typed_handler(MessageSentData, "message sent", func)


def message_status_handler(
    func: Callable[[WebhookEvent, MessageStatusData], Awaitable[None] | None],
) -> WebhookHandler:
    return _typed_handler(MessageStatusData, "message status", func)


def contact_handler(
    func: Callable[[WebhookEvent, ContactEventData], Awaitable[None] | None],
) -> WebhookHandler:
    return _typed_handler(ContactEventData, "contact", func)


def chatbot_handler(
    func: Callable[[WebhookEvent, ChatbotEventData], Awaitable[None] | None],
) -> WebhookHandler:
    return _typed_handler(ChatbotEventData, "chatbot", func)


def chat_status_handler(
    func: Callable[[WebhookEvent, ChatStatusEventData], Awaitable[None] | None],
) -> WebhookHandler:
    return _typed_handler(ChatStatusEventData, "chat status", func)

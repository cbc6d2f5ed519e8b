"""Chatbot and chat-status payloads."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from src.contacts.models import MIN_PHONE_LENGTH
from src.errors import ValidationCollector
from src.models import BaseResponse, WatiModel


class ChatStatus(str, Enum):
    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    BOT = "BOT"


VALID_CHAT_STATUSES = tuple(s.value for s in ChatStatus)


class TriggerType(str, Enum):
    KEYWORD = "KEYWORD"
    PATTERN = "PATTERN"
    EVENT = "EVENT"
    SCHEDULE = "SCHEDULE"
    INACTIVITY = "INACTIVITY"


class ActionType(str, Enum):
    SEND_MESSAGE = "SEND_MESSAGE"
    SEND_TEMPLATE = "SEND_TEMPLATE"
    ASSIGN_USER = "ASSIGN_USER"
    ADD_TAG = "ADD_TAG"
    REMOVE_TAG = "REMOVE_TAG"
    SET_VARIABLE = "SET_VARIABLE"
    WAIT = "WAIT"
    TRANSFER_TO_HUMAN = "TRANSFER_TO_HUMAN"


def _check_phone(errors: ValidationCollector, phone: str) -> None:
    if not phone:
        errors.add("whatsappNumber", "whatsappNumber is required")
    elif len(phone) < MIN_PHONE_LENGTH:
        errors.add("whatsappNumber", "whatsappNumber must be at least 10 digits", phone)


class Trigger(WatiModel):
    type: str = ""
    keywords: list[str] = Field(default_factory=list)
    pattern: str | None = None
    event: str | None = None


class Action(WatiModel):
    type: str = ""
    message: str | None = None
    template: str | None = None
    parameters: dict[str, Any] | None = None
    delay: int | None = None
    assign_to: str | None = None
    tags_to_add: list[str] | None = None
    tags_to_remove: list[str] | None = None


class Condition(WatiModel):
    type: str = ""
    field: str = ""
    operator: str = ""
    value: Any = None


class Rule(WatiModel):
    id: str = ""
    name: str = ""
    trigger: Trigger = Field(default_factory=Trigger)
    actions: list[Action] = Field(default_factory=list)
    conditions: list[Condition] = Field(default_factory=list)
    is_active: bool = False
    priority: int = 0


class ChatbotReply(WatiModel):
    id: str = ""
    trigger: str = ""
    message: str = ""
    is_active: bool = False


class Chatbot(WatiModel):
    id: str = ""
    name: str = ""
    description: str | None = None
    status: str = ""
    created: str = ""
    updated: str | None = None
    rules: list[Rule] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    responses: list[ChatbotReply] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def active_rules(self) -> list[Rule]:
        return [rule for rule in self.rules if rule.is_active]

    def active_responses(self) -> list[ChatbotReply]:
        return [reply for reply in self.responses if reply.is_active]

    def has_keyword(self, keyword: str) -> bool:
        return keyword in self.keywords


class ChatbotsResponse(BaseResponse):
    chatbots: list[Chatbot] = Field(default_factory=list)


class ChatbotDetailResponse(BaseResponse):
    chatbot: Chatbot = Field(default_factory=Chatbot)


class ChatbotResponse(ChatbotDetailResponse):
    session_id: str | None = None
    status: str = ""


class StartChatbotRequest(WatiModel):
    chatbot_id: str
    whatsapp_number: str
    initial_message: str | None = None

    def validate_request(self) -> None:
        errors = ValidationCollector()
        if not self.chatbot_id:
            errors.add("chatbotId", "chatbotId is required")
        _check_phone(errors, self.whatsapp_number)
        errors.raise_if_any()


class UpdateChatStatusRequest(WatiModel):
    whatsapp_number: str
    status: str
    assigned_to: str | None = None
    tags: list[str] | None = None
    notes: str | None = None

    def validate_request(self) -> None:
        errors = ValidationCollector()
        _check_phone(errors, self.whatsapp_number)
        if not self.status:
            errors.add("status", "status is required")
        elif self.status not in VALID_CHAT_STATUSES:
            errors.add(
                "status",
                f"invalid status: {self.status}. Valid statuses are: "
                f"{', '.join(VALID_CHAT_STATUSES)}",
                self.status,
            )
        errors.raise_if_any()


class ChatStatusResponse(BaseResponse):
    whatsapp_number: str = ""
    status: str = ""
    assigned_to: str | None = None
    updated_at: str | None = None


class CreateChatbotRequest(WatiModel):
    name: str
    description: str | None = None
    keywords: list[str] | None = None
    responses: list[ChatbotReply] | None = None
    is_active: bool = False

    def validate_request(self) -> None:
        errors = ValidationCollector()
        if not self.name:
            errors.add("name", "name is required")
        if not self.keywords and not self.responses:
            errors.add("keywords", "at least one keyword or response is required")
        for i, reply in enumerate(self.responses or []):
            if not reply.trigger:
                errors.add(f"responses[{i}].trigger", "trigger is required")
            if not reply.message:
                errors.add(f"responses[{i}].message", "message is required")
        errors.raise_if_any()


class UpdateChatbotRequest(WatiModel):
    name: str | None = None
    description: str | None = None
    keywords: list[str] | None = None
    responses: list[ChatbotReply] | None = None
    is_active: bool | None = None

"""Message, template and interactive message payloads."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from src.contacts.models import MIN_PHONE_LENGTH, Contact
from src.errors import ValidationCollector
from src.models import BaseResponse, PaginatedResponse, Parameter, WatiModel, page_query

MAX_TEMPLATE_RECIPIENTS = 100
MAX_INTERACTIVE_BUTTONS = 3
ACTIVE_TEMPLATE_STATUSES = frozenset({"APPROVED", "ACTIVE"})


def _check_phone(errors: ValidationCollector, field: str, phone: str) -> None:
    if not phone:
        errors.add(field, "whatsappNumber is required")
    elif len(phone) < MIN_PHONE_LENGTH:
        errors.add(field, "whatsappNumber must be at least 10 digits", phone)


class MediaInfo(WatiModel):
    id: str = ""
    file_name: str = ""
    mime_type: str = ""
    size: int = 0
    url: str = ""
    caption: str | None = None


class TemplateInfo(WatiModel):
    name: str = ""
    language: str = ""
    parameters: list[Parameter] = Field(default_factory=list)


class InteractiveInfo(WatiModel):
    type: str = ""
    header: Any = None
    body: Any = None
    footer: Any = None
    action: Any = None


class Message(WatiModel):
    id: str = ""
    type: str = ""
    content: str = ""
    from_: str = Field(default="", alias="from")
    to: str = ""
    timestamp: str = ""
    status: str = ""
    direction: str = ""
    message_type: str = ""
    media: MediaInfo | None = None
    template: TemplateInfo | None = None
    interactive: InteractiveInfo | None = None


class MessageStatus(WatiModel):
    id: str = ""
    status: str = ""
    timestamp: str = ""
    error: str | None = None


class MessageDetailResponse(WatiModel):
    # "message" carries the message object here, not the status text.
    result: bool = False
    error: str | None = None
    message: Message = Field(default_factory=Message)


class MessageStatusResponse(BaseResponse):
    status: MessageStatus = Field(default_factory=MessageStatus)


class MessagesResponse(PaginatedResponse):
    messages: list[Message] = Field(default_factory=list)


class ResponseModel(WatiModel):
    ids: list[str] = Field(default_factory=list)


class MessageResponse(BaseResponse):
    phone_number: str = Field(default="", alias="phone_number")
    template_name: str = Field(default="", alias="template_name")
    # The API spells this key "parameteres".
    parameters: list[Parameter] = Field(default_factory=list, alias="parameteres")
    contact: Contact | None = None
    model: ResponseModel | None = None
    valid_whats_app_number: bool = Field(default=False, alias="validWhatsAppNumber")


class SendTemplateMessageRequest(WatiModel):
    whatsapp_number: str
    template_name: str = Field(alias="template_name")
    broadcast_name: str = Field(alias="broadcast_name")
    parameters: list[Parameter] | None = None

    def validate_request(self) -> None:
        errors = ValidationCollector()
        _check_phone(errors, "whatsappNumber", self.whatsapp_number)
        if not self.template_name:
            errors.add("template_name", "template_name is required")
        if not self.broadcast_name:
            errors.add("broadcast_name", "broadcast_name is required")
        errors.raise_if_any()


class TemplateMessageRecipient(WatiModel):
    whatsapp_number: str
    parameters: list[Parameter] | None = None


class SendTemplateMessagesRequest(WatiModel):
    template_name: str = Field(alias="template_name")
    broadcast_name: str = Field(alias="broadcast_name")
    recipients: list[TemplateMessageRecipient]

    def validate_request(self) -> None:
        errors = ValidationCollector()
        if not self.template_name:
            errors.add("template_name", "template_name is required")
        if not self.broadcast_name:
            errors.add("broadcast_name", "broadcast_name is required")
        if not self.recipients:
            errors.add("recipients", "at least one recipient is required")
        elif len(self.recipients) > MAX_TEMPLATE_RECIPIENTS:
            errors.add(
                "recipients",
                f"maximum {MAX_TEMPLATE_RECIPIENTS} recipients allowed per request, "
                f"got {len(self.recipients)}",
            )
        for i, recipient in enumerate(self.recipients):
            _check_phone(errors, f"recipients[{i}].whatsappNumber", recipient.whatsapp_number)
        errors.raise_if_any()


class BulkMessageError(WatiModel):
    index: int = 0
    error: str = ""
    recipient: TemplateMessageRecipient | None = None


class BulkMessageResponse(BaseResponse):
    success_count: int = 0
    failure_count: int = 0
    messages: list[MessageResponse] = Field(default_factory=list)
    errors: list[BulkMessageError] = Field(default_factory=list)


# --- Interactive messages ---


class InteractiveHeader(WatiModel):
    type: str
    text: str | None = None


class InteractiveText(WatiModel):
    text: str


class InteractiveListRow(WatiModel):
    id: str
    title: str
    description: str | None = None


class InteractiveSection(WatiModel):
    title: str
    rows: list[InteractiveListRow]


class InteractiveListAction(WatiModel):
    button: str
    sections: list[InteractiveSection]


class InteractiveButtonReply(WatiModel):
    id: str
    title: str


class InteractiveButton(WatiModel):
    type: str = "reply"
    reply: InteractiveButtonReply


class InteractiveButtonAction(WatiModel):
    buttons: list[InteractiveButton]


class InteractiveListMessageRequest(WatiModel):
    whatsapp_number: str
    body: InteractiveText
    action: InteractiveListAction
    header: InteractiveHeader | None = None
    footer: InteractiveText | None = None

    def validate_request(self) -> None:
        errors = ValidationCollector()
        _check_phone(errors, "whatsappNumber", self.whatsapp_number)
        if not self.body.text:
            errors.add("body.text", "body text is required")
        if not self.action.button:
            errors.add("action.button", "action button text is required")
        if not self.action.sections:
            errors.add("action.sections", "at least one section is required")
        for i, section in enumerate(self.action.sections):
            if not section.title:
                errors.add(f"sections[{i}].title", "section title is required")
            if not section.rows:
                errors.add(f"sections[{i}].rows", "at least one row is required")
            for j, row in enumerate(section.rows):
                if not row.id:
                    errors.add(f"sections[{i}].rows[{j}].id", "row ID is required")
                if not row.title:
                    errors.add(f"sections[{i}].rows[{j}].title", "row title is required")
        errors.raise_if_any()


class InteractiveButtonMessageRequest(WatiModel):
    whatsapp_number: str
    body: InteractiveText
    action: InteractiveButtonAction
    header: InteractiveHeader | None = None
    footer: InteractiveText | None = None

    def validate_request(self) -> None:
        errors = ValidationCollector()
        _check_phone(errors, "whatsappNumber", self.whatsapp_number)
        if not self.body.text:
            errors.add("body.text", "body text is required")
        buttons = self.action.buttons
        if not buttons:
            errors.add("action.buttons", "at least one button is required")
        elif len(buttons) > MAX_INTERACTIVE_BUTTONS:
            errors.add(
                "action.buttons",
                f"maximum {MAX_INTERACTIVE_BUTTONS} buttons allowed, got {len(buttons)}",
            )
        for i, button in enumerate(buttons):
            if not button.reply.id:
                errors.add(f"buttons[{i}].reply.id", "button ID is required")
            if not button.reply.title:
                errors.add(f"buttons[{i}].reply.title", "button title is required")
        errors.raise_if_any()


# --- Templates ---


class TemplateParameter(WatiModel):
    type: str = ""
    text: str | None = None


class TemplateButton(WatiModel):
    type: str = ""
    text: str = ""
    url: str | None = None


class TemplateComponent(WatiModel):
    type: str = ""
    format: str | None = None
    text: str | None = None
    parameters: list[TemplateParameter] = Field(default_factory=list)
    buttons: list[TemplateButton] = Field(default_factory=list)


class Template(WatiModel):
    id: str = ""
    name: str = ""
    language: str = ""
    status: str = ""
    category: str = ""
    components: list[TemplateComponent] = Field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_TEMPLATE_STATUSES


class TemplatesResponse(BaseResponse):
    templates: list[Template] = Field(default_factory=list)


class GetMessagesParams(WatiModel):
    page_size: int = 0
    page_number: int = 0
    phone: str = ""
    from_date: str = ""
    to_date: str = ""

    def to_query(self) -> dict[str, Any]:
        query = page_query(self.page_size, self.page_number)
        if self.phone:
            query["phone"] = self.phone
        if self.from_date:
            query["fromDate"] = self.from_date
        if self.to_date:
            query["toDate"] = self.to_date
        return query

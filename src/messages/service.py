"""Messages API: template sends, interactive messages and history."""

from __future__ import annotations

from urllib.parse import quote, urlencode

from src.errors import APIError, ValidationError
from src.http.executor import Requester
from src.messages.models import (
    MAX_INTERACTIVE_BUTTONS,
    BulkMessageResponse,
    GetMessagesParams,
    InteractiveButton,
    InteractiveButtonAction,
    InteractiveButtonMessageRequest,
    InteractiveButtonReply,
    InteractiveListAction,
    InteractiveListMessageRequest,
    InteractiveListRow,
    InteractiveSection,
    InteractiveText,
    Message,
    MessageDetailResponse,
    MessageResponse,
    MessagesResponse,
    MessageStatus,
    MessageStatusResponse,
    SendTemplateMessageRequest,
    SendTemplateMessagesRequest,
    Template,
    TemplatesResponse,
)
from src.models import Parameter


def build_list_message(
    phone: str, body_text: str, button_text: str, sections: list[InteractiveSection],
) -> InteractiveListMessageRequest:
    return InteractiveListMessageRequest(
        whatsapp_number=phone,
        body=InteractiveText(text=body_text),
        action=InteractiveListAction(button=button_text, sections=sections),
    )


def build_button_message(
    phone: str, body_text: str, buttons: list[InteractiveButton],
) -> InteractiveButtonMessageRequest:
    return InteractiveButtonMessageRequest(
        whatsapp_number=phone,
        body=InteractiveText(text=body_text),
        action=InteractiveButtonAction(buttons=buttons),
    )


def _row_id(section_title: str, index: int) -> str:
    return f"{section_title.replace(' ', '_').lower()}_{index}"


class MessagesService:
    def __init__(self, requester: Requester) -> None:
        self._requester = requester

    async def send_template_message(
        self, request: SendTemplateMessageRequest, *, timeout: float | None = None,
    ) -> MessageResponse:
        request.validate_request()
        return await self._requester.execute_request(
            "POST", "/api/v1/sendTemplateMessage", request, MessageResponse, timeout=timeout,
        )

    async def send_template_messages(
        self, request: SendTemplateMessagesRequest, *, timeout: float | None = None,
    ) -> BulkMessageResponse:
        request.validate_request()
        return await self._requester.execute_request(
            "POST",
            "/api/v1/sendTemplateMessages",
            request,
            BulkMessageResponse,
            timeout=timeout,
        )

    async def send_interactive_list_message(
        self, request: InteractiveListMessageRequest, *, timeout: float | None = None,
    ) -> MessageResponse:
        request.validate_request()
        return await self._requester.execute_request(
            "POST",
            "/api/v1/sendInteractiveListMessage",
            request,
            MessageResponse,
            timeout=timeout,
        )

    async def send_interactive_button_message(
        self, request: InteractiveButtonMessageRequest, *, timeout: float | None = None,
    ) -> MessageResponse:
        request.validate_request()
        return await self._requester.execute_request(
            "POST",
            "/api/v1/sendInteractiveButtonMessage",
            request,
            MessageResponse,
            timeout=timeout,
        )

    async def get_message_templates(
        self, *, timeout: float | None = None,
    ) -> TemplatesResponse:
        return await self._requester.execute_request(
            "GET", "/api/v1/getMessageTemplates", result_type=TemplatesResponse, timeout=timeout,
        )

    async def get_message_template(
        self, name: str, *, timeout: float | None = None,
    ) -> Template:
        if not name:
            raise ValidationError("name", "template name is required")
        templates = await self.get_message_templates(timeout=timeout)
        for template in templates.templates:
            if template.name == name:
                return template
        raise APIError(404, f"template '{name}' not found")

    async def get_messages(
        self, params: GetMessagesParams | None = None, *, timeout: float | None = None,
    ) -> MessagesResponse:
        params = params or GetMessagesParams()
        return await self._requester.execute_request(
            "GET",
            f"/api/v1/getMessages?{urlencode(params.to_query())}",
            result_type=MessagesResponse,
            timeout=timeout,
        )

    async def get_message(self, message_id: str, *, timeout: float | None = None) -> Message:
        if not message_id:
            raise ValidationError("id", "message ID is required")
        response: MessageDetailResponse = await self._requester.execute_request(
            "GET",
            f"/api/v1/getMessage/{quote(message_id, safe='')}",
            result_type=MessageDetailResponse,
            timeout=timeout,
        )
        return response.message

    async def get_message_status(
        self, message_id: str, *, timeout: float | None = None,
    ) -> MessageStatus:
        if not message_id:
            raise ValidationError("id", "message ID is required")
        response: MessageStatusResponse = await self._requester.execute_request(
            "GET",
            f"/api/v1/getMessageStatus/{quote(message_id, safe='')}",
            result_type=MessageStatusResponse,
            timeout=timeout,
        )
        return response.status

    async def get_messages_by_phone(
        self,
        phone: str,
        params: GetMessagesParams | None = None,
        *,
        timeout: float | None = None,
    ) -> MessagesResponse:
        if not phone:
            raise ValidationError("phone", "phone number is required")
        params = (params or GetMessagesParams()).model_copy(update={"phone": phone})
        return await self.get_messages(params, timeout=timeout)

    async def get_messages_by_date_range(
        self,
        from_date: str,
        to_date: str,
        params: GetMessagesParams | None = None,
        *,
        timeout: float | None = None,
    ) -> MessagesResponse:
        if not from_date or not to_date:
            raise ValidationError("fromDate", "both fromDate and toDate are required")
        params = (params or GetMessagesParams()).model_copy(
            update={"from_date": from_date, "to_date": to_date},
        )
        return await self.get_messages(params, timeout=timeout)

    async def send_simple_template_message(
        self,
        phone: str,
        template_name: str,
        broadcast_name: str,
        *,
        timeout: float | None = None,
    ) -> MessageResponse:
        return await self.send_template_message(
            SendTemplateMessageRequest(
                whatsapp_number=phone,
                template_name=template_name,
                broadcast_name=broadcast_name,
            ),
            timeout=timeout,
        )

    async def send_template_message_with_params(
        self,
        phone: str,
        template_name: str,
        broadcast_name: str,
        params: dict[str, str],
        *,
        timeout: float | None = None,
    ) -> MessageResponse:
        return await self.send_template_message(
            SendTemplateMessageRequest(
                whatsapp_number=phone,
                template_name=template_name,
                broadcast_name=broadcast_name,
                parameters=[Parameter(name=k, value=v) for k, v in params.items()],
            ),
            timeout=timeout,
        )

    async def send_quick_reply_buttons(
        self,
        phone: str,
        body_text: str,
        button_titles: list[str],
        *,
        timeout: float | None = None,
    ) -> MessageResponse:
        """Send up to three reply buttons with ids ``btn_1``, ``btn_2``, ..."""
        if not button_titles or len(button_titles) > MAX_INTERACTIVE_BUTTONS:
            raise ValidationError(
                "buttonTitles", f"must provide 1-3 button titles, got {len(button_titles)}",
            )
        buttons = [
            InteractiveButton(reply=InteractiveButtonReply(id=f"btn_{i}", title=title))
            for i, title in enumerate(button_titles, start=1)
        ]
        return await self.send_interactive_button_message(
            build_button_message(phone, body_text, buttons), timeout=timeout,
        )

    async def send_list_menu(
        self,
        phone: str,
        body_text: str,
        button_text: str,
        menu_items: dict[str, list[str]],
        *,
        timeout: float | None = None,
    ) -> MessageResponse:
        """Send a list message with one section per ``menu_items`` key."""
        sections = [
            InteractiveSection(
                title=title,
                rows=[
                    InteractiveListRow(id=_row_id(title, i), title=item)
                    for i, item in enumerate(items, start=1)
                ],
            )
            for title, items in menu_items.items()
        ]
        return await self.send_interactive_list_message(
            build_list_message(phone, body_text, button_text, sections), timeout=timeout,
        )

    async def get_templates_by_category(
        self, category: str, *, timeout: float | None = None,
    ) -> list[Template]:
        templates = await self.get_message_templates(timeout=timeout)
        return [t for t in templates.templates if t.category == category]

    async def get_active_templates(self, *, timeout: float | None = None) -> list[Template]:
        templates = await self.get_message_templates(timeout=timeout)
        return [t for t in templates.templates if t.is_active]

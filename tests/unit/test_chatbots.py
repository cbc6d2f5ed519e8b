"""Tests for the chatbots service."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from src.chatbots.models import (
    Chatbot,
    ChatbotReply,
    ChatbotsResponse,
    ChatStatusResponse,
    CreateChatbotRequest,
    StartChatbotRequest,
    UpdateChatStatusRequest,
)
from src.chatbots.service import ChatbotsService
from src.errors import APIError, MultiValidationError, ValidationError
from src.http.executor import encode_body

PHONE = "15551234567"


def _bots(*bots: Chatbot) -> ChatbotsResponse:
    return ChatbotsResponse(result=True, chatbots=list(bots))


class TestChatStatus:
    @pytest.mark.asyncio
    async def test_invalid_status_rejected(self, mock_requester: MagicMock) -> None:
        request = UpdateChatStatusRequest(whatsapp_number=PHONE, status="PENDING")
        with pytest.raises(ValidationError, match="invalid status: PENDING"):
            await ChatbotsService(mock_requester).update_chat_status(request)
        mock_requester.execute_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_assign_chat(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.return_value = ChatStatusResponse(result=True)
        await ChatbotsService(mock_requester).assign_chat_to_user(PHONE, "agent-7")
        method, path, body, _ = mock_requester.execute_request.call_args.args
        assert (method, path) == ("POST", "/api/v1/updateChatStatus")
        assert encode_body(body) == {
            "whatsappNumber": PHONE, "status": "ASSIGNED", "assignedTo": "agent-7",
        }

    @pytest.mark.asyncio
    async def test_tagging_keeps_chat_open(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.return_value = ChatStatusResponse(result=True)
        await ChatbotsService(mock_requester).add_tags_to_chat(PHONE, ["vip"])
        body = mock_requester.execute_request.call_args.args[2]
        assert body.status == "OPEN"
        assert body.tags == ["vip"]

    @pytest.mark.asyncio
    async def test_resolve_session(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.return_value = ChatStatusResponse(result=True)
        await ChatbotsService(mock_requester).resolve_chat_session(PHONE, "done")
        body = mock_requester.execute_request.call_args.args[2]
        assert (body.status, body.notes) == ("RESOLVED", "done")


class TestChatbotLifecycle:
    @pytest.mark.asyncio
    async def test_start_requires_id_and_phone(self, mock_requester: MagicMock) -> None:
        with pytest.raises(MultiValidationError):
            await ChatbotsService(mock_requester).start_chatbot(
                StartChatbotRequest(chatbot_id="", whatsapp_number="1"),
            )

    @pytest.mark.asyncio
    async def test_stop_chatbot_path(self, mock_requester: MagicMock) -> None:
        await ChatbotsService(mock_requester).stop_chatbot("bot 1")
        assert mock_requester.execute_request.call_args.args[:2] == (
            "POST", "/api/v1/stopChatbot/bot%201",
        )

    @pytest.mark.asyncio
    async def test_create_requires_keywords_or_responses(self, mock_requester: MagicMock) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await ChatbotsService(mock_requester).create_chatbot(CreateChatbotRequest(name="x"))
        assert exc_info.value.field == "keywords"

    @pytest.mark.asyncio
    async def test_create_validates_replies(self, mock_requester: MagicMock) -> None:
        request = CreateChatbotRequest(name="x", responses=[ChatbotReply(trigger="hi")])
        with pytest.raises(ValidationError) as exc_info:
            await ChatbotsService(mock_requester).create_chatbot(request)
        assert exc_info.value.field == "responses[0].message"

    @pytest.mark.asyncio
    async def test_deactivate_sends_partial_update(self, mock_requester: MagicMock) -> None:
        await ChatbotsService(mock_requester).deactivate_chatbot("b1")
        method, path, body, _ = mock_requester.execute_request.call_args.args
        assert (method, path) == ("PUT", "/api/v1/chatbots/b1")
        assert encode_body(body) == {"isActive": False}

    @pytest.mark.asyncio
    async def test_empty_id_rejected(self, mock_requester: MagicMock) -> None:
        with pytest.raises(ValidationError):
            await ChatbotsService(mock_requester).delete_chatbot("")


class TestChatbotQueries:
    @pytest.mark.asyncio
    async def test_active_filter(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.return_value = _bots(
            Chatbot(id="1", status="active"), Chatbot(id="2", status="inactive"),
        )
        bots = await ChatbotsService(mock_requester).get_active_chatbots()
        assert [b.id for b in bots] == ["1"]

    @pytest.mark.asyncio
    async def test_by_name(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.return_value = _bots(Chatbot(id="1", name="Support"))
        service = ChatbotsService(mock_requester)
        assert (await service.get_chatbot_by_name("Support")).id == "1"
        with pytest.raises(APIError) as exc_info:
            await service.get_chatbot_by_name("Sales")
        assert exc_info.value.is_not_found_error

    @pytest.mark.asyncio
    async def test_by_keyword(self, mock_requester: MagicMock) -> None:
        mock_requester.execute_request.return_value = _bots(
            Chatbot(id="1", keywords=["help", "support"]), Chatbot(id="2", keywords=["buy"]),
        )
        bots = await ChatbotsService(mock_requester).get_chatbots_by_keyword("help")
        assert [b.id for b in bots] == ["1"]

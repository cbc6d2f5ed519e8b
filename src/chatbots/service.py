"""Chatbots API: chatbot management and chat-status transitions."""

from __future__ import annotations

from urllib.parse import quote

from src.chatbots.models import (
    Chatbot,
    ChatbotDetailResponse,
    ChatbotReply,
    ChatbotResponse,
    ChatbotsResponse,
    ChatStatus,
    ChatStatusResponse,
    CreateChatbotRequest,
    StartChatbotRequest,
    UpdateChatbotRequest,
    UpdateChatStatusRequest,
)
from src.errors import APIError, ValidationError
from src.http.executor import Requester
from src.models import BaseResponse


def _chatbot_path(chatbot_id: str) -> str:
    if not chatbot_id:
        raise ValidationError("id", "chatbot ID is required")
    return f"/api/v1/chatbots/{quote(chatbot_id, safe='')}"


class ChatbotsService:
    def __init__(self, requester: Requester) -> None:
        self._requester = requester

    async def get_chatbots(self, *, timeout: float | None = None) -> ChatbotsResponse:
        return await self._requester.execute_request(
            "GET", "/api/v1/chatbots", result_type=ChatbotsResponse, timeout=timeout,
        )

    async def get_chatbot(self, chatbot_id: str, *, timeout: float | None = None) -> Chatbot:
        response: ChatbotDetailResponse = await self._requester.execute_request(
            "GET", _chatbot_path(chatbot_id), result_type=ChatbotDetailResponse, timeout=timeout,
        )
        return response.chatbot

    async def start_chatbot(
        self, request: StartChatbotRequest, *, timeout: float | None = None,
    ) -> ChatbotResponse:
        request.validate_request()
        return await self._requester.execute_request(
            "POST", "/api/v1/startChatbot", request, ChatbotResponse, timeout=timeout,
        )

    async def start_chatbot_for_contact(
        self,
        chatbot_id: str,
        whatsapp_number: str,
        initial_message: str | None = None,
        *,
        timeout: float | None = None,
    ) -> ChatbotResponse:
        return await self.start_chatbot(
            StartChatbotRequest(
                chatbot_id=chatbot_id,
                whatsapp_number=whatsapp_number,
                initial_message=initial_message,
            ),
            timeout=timeout,
        )

    async def stop_chatbot(self, chatbot_id: str, *, timeout: float | None = None) -> None:
        if not chatbot_id:
            raise ValidationError("id", "chatbot ID is required")
        await self._requester.execute_request(
            "POST",
            f"/api/v1/stopChatbot/{quote(chatbot_id, safe='')}",
            result_type=BaseResponse,
            timeout=timeout,
        )

    async def update_chat_status(
        self, request: UpdateChatStatusRequest, *, timeout: float | None = None,
    ) -> ChatStatusResponse:
        request.validate_request()
        return await self._requester.execute_request(
            "POST", "/api/v1/updateChatStatus", request, ChatStatusResponse, timeout=timeout,
        )

    async def create_chatbot(
        self, request: CreateChatbotRequest, *, timeout: float | None = None,
    ) -> Chatbot:
        request.validate_request()
        response: ChatbotDetailResponse = await self._requester.execute_request(
            "POST", "/api/v1/chatbots", request, ChatbotDetailResponse, timeout=timeout,
        )
        return response.chatbot

    async def update_chatbot(
        self,
        chatbot_id: str,
        request: UpdateChatbotRequest,
        *,
        timeout: float | None = None,
    ) -> Chatbot:
        response: ChatbotDetailResponse = await self._requester.execute_request(
            "PUT", _chatbot_path(chatbot_id), request, ChatbotDetailResponse, timeout=timeout,
        )
        return response.chatbot

    async def delete_chatbot(self, chatbot_id: str, *, timeout: float | None = None) -> None:
        await self._requester.execute_request(
            "DELETE", _chatbot_path(chatbot_id), result_type=BaseResponse, timeout=timeout,
        )

    async def get_active_chatbots(self, *, timeout: float | None = None) -> list[Chatbot]:
        response = await self.get_chatbots(timeout=timeout)
        return [bot for bot in response.chatbots if bot.is_active]

    async def activate_chatbot(self, chatbot_id: str, *, timeout: float | None = None) -> Chatbot:
        return await self.update_chatbot(
            chatbot_id, UpdateChatbotRequest(is_active=True), timeout=timeout,
        )

    async def deactivate_chatbot(
        self, chatbot_id: str, *, timeout: float | None = None,
    ) -> Chatbot:
        return await self.update_chatbot(
            chatbot_id, UpdateChatbotRequest(is_active=False), timeout=timeout,
        )

    async def update_chatbot_keywords(
        self, chatbot_id: str, keywords: list[str], *, timeout: float | None = None,
    ) -> Chatbot:
        return await self.update_chatbot(
            chatbot_id, UpdateChatbotRequest(keywords=keywords), timeout=timeout,
        )

    async def update_chatbot_responses(
        self, chatbot_id: str, responses: list[ChatbotReply], *, timeout: float | None = None,
    ) -> Chatbot:
        return await self.update_chatbot(
            chatbot_id, UpdateChatbotRequest(responses=responses), timeout=timeout,
        )

    async def assign_chat_to_user(
        self, whatsapp_number: str, user_id: str, *, timeout: float | None = None,
    ) -> ChatStatusResponse:
        return await self.update_chat_status(
            UpdateChatStatusRequest(
                whatsapp_number=whatsapp_number,
                status=ChatStatus.ASSIGNED.value,
                assigned_to=user_id,
            ),
            timeout=timeout,
        )

    async def transfer_chat_to_human(
        self,
        whatsapp_number: str,
        user_id: str,
        notes: str | None = None,
        *,
        timeout: float | None = None,
    ) -> ChatStatusResponse:
        return await self.update_chat_status(
            UpdateChatStatusRequest(
                whatsapp_number=whatsapp_number,
                status=ChatStatus.ASSIGNED.value,
                assigned_to=user_id,
                notes=notes,
            ),
            timeout=timeout,
        )

    async def close_chat_session(
        self, whatsapp_number: str, notes: str | None = None, *, timeout: float | None = None,
    ) -> ChatStatusResponse:
        return await self.update_chat_status(
            UpdateChatStatusRequest(
                whatsapp_number=whatsapp_number, status=ChatStatus.CLOSED.value, notes=notes,
            ),
            timeout=timeout,
        )

    async def resolve_chat_session(
        self, whatsapp_number: str, notes: str | None = None, *, timeout: float | None = None,
    ) -> ChatStatusResponse:
        return await self.update_chat_status(
            UpdateChatStatusRequest(
                whatsapp_number=whatsapp_number, status=ChatStatus.RESOLVED.value, notes=notes,
            ),
            timeout=timeout,
        )

    async def add_tags_to_chat(
        self, whatsapp_number: str, tags: list[str], *, timeout: float | None = None,
    ) -> ChatStatusResponse:
        # The endpoint requires a status; tagging keeps the chat open.
        return await self.update_chat_status(
            UpdateChatStatusRequest(
                whatsapp_number=whatsapp_number, status=ChatStatus.OPEN.value, tags=tags,
            ),
            timeout=timeout,
        )

    async def get_chatbot_by_name(self, name: str, *, timeout: float | None = None) -> Chatbot:
        if not name:
            raise ValidationError("name", "chatbot name is required")
        response = await self.get_chatbots(timeout=timeout)
        for bot in response.chatbots:
            if bot.name == name:
                return bot
        raise APIError(404, f"chatbot with name '{name}' not found")

    async def get_chatbots_by_keyword(
        self, keyword: str, *, timeout: float | None = None,
    ) -> list[Chatbot]:
        if not keyword:
            raise ValidationError("keyword", "keyword is required")
        response = await self.get_chatbots(timeout=timeout)
        return [bot for bot in response.chatbots if bot.has_keyword(keyword)]

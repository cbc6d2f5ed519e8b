"""WATI API client: owns the request pipeline and the per-resource services."""

from __future__ import annotations

import logging
import os
from types import TracebackType
from typing import Any

import httpx

from src.audit.logger import AuditLogger
from src.chatbots.service import ChatbotsService
from src.config import (
    DEFAULT_RETRY_COUNT,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    ClientConfig,
    RateLimitConfig,
)
from src.contacts.service import ContactsService
from src.errors import APIError
from src.http.executor import RequestExecutor
from src.media.service import MediaService
from src.messages.service import MessagesService
from src.models import AuditEvent, AuditEventType, BaseResponse, RiskLevel, TokenResponse
from src.webhook.service import WebhookService

logger = logging.getLogger(__name__)


class WatiClient:
    """Entry point for the WATI API.

    Every instance has its own config, rate limiter, HTTP connection pool and
    services, so several clients can coexist in one process.

    Usage::

        async with WatiClient("https://live-server.wati.io", token) as client:
            templates = await client.messages.get_message_templates()
    """

    def __init__(
        self,
        api_endpoint: str,
        token: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retry_count: int = DEFAULT_RETRY_COUNT,
        rate_limit: RateLimitConfig | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        webhook_secret: str = "",
        audit_logger: AuditLogger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        config = ClientConfig(
            api_endpoint=api_endpoint,
            token=token,
            timeout=timeout,
            retry_count=retry_count,
            rate_limit=rate_limit or RateLimitConfig(),
            user_agent=user_agent,
        )
        self._executor = RequestExecutor(config, transport=transport)
        self._audit_logger = audit_logger
        self._contacts = ContactsService(self._executor)
        self._messages = MessagesService(self._executor)
        self._chatbots = ChatbotsService(self._executor)
        self._media = MediaService(self._executor)
        self._webhooks = WebhookService(
            self._executor, secret=webhook_secret, audit_logger=audit_logger,
        )

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        webhook_secret: str = "",
        audit_logger: AuditLogger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> WatiClient:
        return cls(
            config.api_endpoint,
            config.token,
            timeout=config.timeout,
            retry_count=config.retry_count,
            rate_limit=config.rate_limit,
            user_agent=config.user_agent,
            webhook_secret=webhook_secret,
            audit_logger=audit_logger,
            transport=transport,
        )

    @classmethod
    def from_env(cls, transport: httpx.AsyncBaseTransport | None = None) -> WatiClient:
        """Build a client from ``WATI_*`` variables; ``AUDIT_LOG_PATH`` enables auditing."""
        audit_log = os.environ.get("AUDIT_LOG_PATH")
        return cls.from_config(
            ClientConfig.from_env(),
            webhook_secret=os.environ.get("WATI_WEBHOOK_SECRET", ""),
            audit_logger=AuditLogger.from_env(audit_log) if audit_log else None,
            transport=transport,
        )

    async def __aenter__(self) -> WatiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._executor.aclose()

    @property
    def config(self) -> ClientConfig:
        return self._executor.config

    @property
    def contacts(self) -> ContactsService:
        return self._contacts

    @property
    def messages(self) -> MessagesService:
        return self._messages

    @property
    def chatbots(self) -> ChatbotsService:
        return self._chatbots

    @property
    def media(self) -> MediaService:
        return self._media

    @property
    def webhooks(self) -> WebhookService:
        return self._webhooks

    def set_api_endpoint(self, api_endpoint: str) -> None:
        self._executor.set_api_endpoint(api_endpoint)

    def set_token(self, token: str) -> None:
        self._executor.set_token(token)

    async def execute_request(
        self,
        method: str,
        path: str,
        body: Any = None,
        result_type: Any = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        return await self._executor.execute_request(
            method, path, body, result_type, timeout=timeout,
        )

    async def validate_token(self, *, timeout: float | None = None) -> None:
        """Make a cheap authenticated call; raises ``APIError(401)`` for a bad token."""
        try:
            await self._executor.execute_request(
                "GET", "/api/v1/chatbots", result_type=BaseResponse, timeout=timeout,
            )
        except APIError as exc:
            if exc.is_authentication_error:
                raise APIError(401, "Invalid API token") from exc
            raise

    async def rotate_token(self, *, timeout: float | None = None) -> TokenResponse:
        """Request a new token and switch this client over to it."""
        response: TokenResponse = await self._executor.execute_request(
            "POST", "/api/v1/rotateToken", result_type=TokenResponse, timeout=timeout,
        )
        if response.token:
            self.set_token(response.token)
            logger.info("API token rotated")
            if self._audit_logger is not None:
                self._audit_logger.log(AuditEvent(
                    event_type=AuditEventType.TOKEN_ROTATED,
                    action="rotate_token",
                    result="success",
                    risk_level=RiskLevel.MEDIUM,
                    details={"expires_at": response.expires_at},
                ))
        return response

"""Webhook service: remote registration plus the local receiver and dispatcher.

The receiver state (port, secret, handlers, running flag) is guarded by a
single lock. Critical sections only read or swap that state; decoding,
handler execution and all network I/O happen outside the lock.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import socket
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

import httpx
import uvicorn

from src.audit.logger import AuditLogger
from src.errors import (
    APIError,
    DecodeError,
    NetworkError,
    SignatureError,
    ValidationError,
    WebhookHandlerError,
    WebhookServerError,
)
from src.http.executor import Requester, error_message
from src.models import AuditEvent, AuditEventType, BaseResponse, RiskLevel
from src.webhook.app import READ_TIMEOUT_SECONDS, WRITE_TIMEOUT_SECONDS, create_webhook_app
from src.webhook.events import (
    ALL_EVENT_TYPES,
    MessageReceivedData,
    MessageStatusData,
    WebhookEvent,
    WebhookEventType,
    WebhookHandler,
    decode_event,
    message_handler,
    message_status_handler,
    rfc3339_now,
)
from src.webhook.models import WebhookRegistration, WebhooksResponse
from src.webhook.signature import sign_payload, validate_signature

logger = logging.getLogger(__name__)

IDLE_TIMEOUT_SECONDS = 60
SHUTDOWN_TIMEOUT_SECONDS = 30
_STARTUP_POLL_SECONDS = 0.01


def _bind_socket(host: str, port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


def _handler_key(event_type: WebhookEventType | str) -> str:
    return event_type.value if isinstance(event_type, WebhookEventType) else event_type


class WebhookService:
    def __init__(
        self,
        requester: Requester,
        secret: str = "",
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._requester = requester
        self._audit_logger = audit_logger
        self._lock = threading.Lock()
        self._secret = secret
        self._handlers: dict[str, WebhookHandler] = {}
        self._port = 0
        self._running = False
        self._starting = False
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None

    # --- Remote registration ---

    async def register_webhook(
        self,
        url: str,
        events: list[WebhookEventType | str],
        *,
        timeout: float | None = None,
    ) -> BaseResponse:
        registration = WebhookRegistration(url=url, events=[_handler_key(e) for e in events])
        return await self.register_webhook_with_config(registration, timeout=timeout)

    async def register_webhook_with_config(
        self, registration: WebhookRegistration, *, timeout: float | None = None,
    ) -> BaseResponse:
        registration.validate_request()
        return await self._requester.execute_request(
            "POST", "/api/v1/webhooks", registration, BaseResponse, timeout=timeout,
        )

    async def unregister_webhook(
        self, url: str, *, timeout: float | None = None,
    ) -> BaseResponse:
        if not url:
            raise ValidationError("url", "webhook URL is required")
        return await self._requester.execute_request(
            "DELETE", "/api/v1/webhooks", {"url": url}, BaseResponse, timeout=timeout,
        )

    async def list_webhooks(self, *, timeout: float | None = None) -> WebhooksResponse:
        return await self._requester.execute_request(
            "GET", "/api/v1/webhooks", result_type=WebhooksResponse, timeout=timeout,
        )

    # --- Receiver state ---

    def register_handler(
        self, event_type: WebhookEventType | str, handler: WebhookHandler,
    ) -> None:
        with self._lock:
            self._handlers = {**self._handlers, _handler_key(event_type): handler}

    def unregister_handler(self, event_type: WebhookEventType | str) -> None:
        key = _handler_key(event_type)
        with self._lock:
            self._handlers = {k: v for k, v in self._handlers.items() if k != key}

    def set_secret(self, secret: str) -> None:
        with self._lock:
            self._secret = secret

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def port(self) -> int:
        with self._lock:
            return self._port

    @property
    def handler_count(self) -> int:
        with self._lock:
            return len(self._handlers)

    def server_status(self) -> dict[str, Any]:
        with self._lock:
            return {
                "port": self._port,
                "running": self._running,
                "handlers": len(self._handlers),
            }

    def register_message_handlers(
        self,
        on_received: Callable[[WebhookEvent, MessageReceivedData], Any] | None = None,
        on_delivered: Callable[[WebhookEvent, MessageStatusData], Any] | None = None,
        on_read: Callable[[WebhookEvent, MessageStatusData], Any] | None = None,
    ) -> None:
        """Register typed handlers for the common message lifecycle events.

        ``on_received`` also handles messages from new contacts.
        """
        if on_received is not None:
            handler = message_handler(on_received)
            self.register_handler(WebhookEventType.MESSAGE_RECEIVED, handler)
            self.register_handler(WebhookEventType.NEW_CONTACT_MESSAGE, handler)
        if on_delivered is not None:
            self.register_handler(
                WebhookEventType.MESSAGE_DELIVERED, message_status_handler(on_delivered),
            )
        if on_read is not None:
            self.register_handler(
                WebhookEventType.MESSAGE_READ, message_status_handler(on_read),
            )

    def register_all_event_handlers(self, handler: WebhookHandler) -> None:
        with self._lock:
            self._handlers = {
                **self._handlers,
                **{event_type.value: handler for event_type in ALL_EVENT_TYPES},
            }

    # --- Dispatch ---

    def validate_webhook_signature(self, payload: bytes, signature: str | None) -> bool:
        with self._lock:
            secret = self._secret
        return validate_signature(payload, signature, secret)

    async def handle_webhook(
        self, payload: bytes, signature: str | None, source_ip: str | None = None,
    ) -> WebhookEvent:
        """Decode, authenticate and dispatch one inbound webhook payload.

        Decoding runs before the signature check, so a malformed payload is
        reported as a decode failure even when unsigned.

        Raises:
            DecodeError: The payload is not a valid event envelope.
            SignatureError: The signature does not match the configured secret.
            WebhookHandlerError: The registered handler raised.
        """
        try:
            event = decode_event(payload)
        except DecodeError as exc:
            self._audit(AuditEventType.WEBHOOK_REJECTED, "decode", "rejected",
                        RiskLevel.MEDIUM, source_ip, details={"reason": str(exc)})
            raise

        if not self.validate_webhook_signature(payload, signature):
            self._audit(AuditEventType.WEBHOOK_REJECTED, "verify_signature", "rejected",
                        RiskLevel.HIGH, source_ip, event)
            raise SignatureError("invalid webhook signature")

        with self._lock:
            handler = self._handlers.get(event.type_name)

        if handler is not None:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.warning("Handler for %s event %s failed: %s",
                               event.type_name, event.id, exc)
                self._audit(AuditEventType.WEBHOOK_HANDLER_FAILURE, "dispatch", "failure",
                            RiskLevel.LOW, source_ip, event, details={"error": str(exc)})
                raise WebhookHandlerError(event, exc) from exc

        self._audit(AuditEventType.WEBHOOK_RECEIVED, "dispatch", "success",
                    RiskLevel.INFO, source_ip, event,
                    details={"handled": handler is not None})
        return event

    def _audit(
        self,
        event_type: AuditEventType,
        action: str,
        result: str,
        risk_level: RiskLevel,
        source_ip: str | None,
        event: WebhookEvent | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        if self._audit_logger is None:
            return
        entry_details: dict[str, object] = dict(details or {})
        if event is not None:
            entry_details["webhook_event_type"] = event.type_name
        self._audit_logger.log(AuditEvent(
            event_type=event_type,
            source_ip=source_ip,
            event_id=event.id if event is not None else None,
            action=action,
            result=result,
            risk_level=risk_level,
            details=entry_details or None,
        ))

    # --- Server lifecycle ---

    async def start_server(
        self,
        port: int,
        handlers: Mapping[WebhookEventType | str, WebhookHandler] | None = None,
        host: str = "0.0.0.0",
    ) -> int:
        """Start serving ``/webhook`` and ``/health`` in a background task.

        ``handlers`` are merged over the current registrations. Port 0 binds
        an ephemeral port. Returns the bound port.
        """
        with self._lock:
            if self._running or self._starting:
                raise WebhookServerError("webhook server is already running")
            if handlers:
                self._handlers = {
                    **self._handlers,
                    **{_handler_key(k): v for k, v in handlers.items()},
                }
            self._starting = True

        try:
            sock = _bind_socket(host, port)
        except OSError as exc:
            with self._lock:
                self._starting = False
            raise WebhookServerError(f"error starting webhook server: {exc}") from exc

        bound_port = sock.getsockname()[1]
        # uvicorn only bounds idle keep-alive; per-message read and write
        # limits are enforced by IOTimeoutMiddleware inside the app.
        config = uvicorn.Config(
            create_webhook_app(
                self,
                read_timeout=READ_TIMEOUT_SECONDS,
                write_timeout=WRITE_TIMEOUT_SECONDS,
            ),
            lifespan="off",
            log_config=None,
            timeout_keep_alive=IDLE_TIMEOUT_SECONDS,
            timeout_graceful_shutdown=SHUTDOWN_TIMEOUT_SECONDS,
        )
        server = uvicorn.Server(config)
        task = asyncio.create_task(server.serve(sockets=[sock]))

        while not server.started and not task.done():
            await asyncio.sleep(_STARTUP_POLL_SECONDS)

        if task.done():
            sock.close()
            with self._lock:
                self._starting = False
            cause = task.exception() if not task.cancelled() else None
            raise WebhookServerError(f"webhook server exited during startup: {cause}")

        with self._lock:
            self._server = server
            self._serve_task = task
            self._port = bound_port
            self._starting = False
            self._running = True
        logger.info("Webhook server listening on %s:%d", host, bound_port)
        self._audit(AuditEventType.WEBHOOK_SERVER_START, "start_server", "success",
                    RiskLevel.INFO, None, details={"port": bound_port})
        return bound_port

    async def stop_server(self) -> None:
        """Gracefully stop the server, waiting at most the shutdown timeout."""
        with self._lock:
            server, task = self._server, self._serve_task
            if self._starting:
                raise WebhookServerError("webhook server is still starting")
            if not self._running or server is None or task is None:
                raise WebhookServerError("webhook server is not running")
            self._server = None
            self._serve_task = None

        server.should_exit = True
        try:
            await asyncio.wait_for(asyncio.shield(task), SHUTDOWN_TIMEOUT_SECONDS)
        except TimeoutError as exc:
            server.force_exit = True
            task.cancel()
            raise WebhookServerError(
                "error stopping webhook server: graceful shutdown timed out",
            ) from exc
        except Exception as exc:
            raise WebhookServerError(f"error stopping webhook server: {exc}") from exc
        finally:
            with self._lock:
                self._running = False
        logger.info("Webhook server stopped")
        self._audit(AuditEventType.WEBHOOK_SERVER_STOP, "stop_server", "success",
                    RiskLevel.INFO, None)

    # --- Diagnostics ---

    async def send_test_event(self, webhook_url: str, *, timeout: float = 30.0) -> WebhookEvent:
        """POST a sample ``message_received`` event to ``webhook_url``.

        The payload is signed with the configured secret, if any.
        """
        now = rfc3339_now()
        event = WebhookEvent(
            id=f"test-{int(time.time())}",
            type=WebhookEventType.MESSAGE_RECEIVED,
            timestamp=now,
            data=MessageReceivedData(
                message_id="test-message-id",
                from_="1234567890",
                to="0987654321",
                message_type="text",
                text="This is a test message from WATI webhook",
                timestamp=now,
            ),
            source="wati-webhook-test",
            version="1.0",
        )
        payload = event.to_json()
        headers = {"Content-Type": "application/json"}
        with self._lock:
            secret = self._secret
        if secret:
            headers["X-Webhook-Signature"] = sign_payload(payload, secret)

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(webhook_url, content=payload, headers=headers)
        except httpx.TransportError as exc:
            raise NetworkError(f"POST {webhook_url}", exc) from exc
        if response.status_code != 200:
            raise APIError(response.status_code, error_message(response))
        return event

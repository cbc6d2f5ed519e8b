"""FastAPI application exposing the webhook receiver."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.errors import WatiError
from src.webhook.events import rfc3339_now

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

    from src.webhook.service import WebhookService

logger = logging.getLogger(__name__)

READ_TIMEOUT_SECONDS = 30
WRITE_TIMEOUT_SECONDS = 30

_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
SIGNATURE_HEADERS = ("x-webhook-signature", "x-hub-signature-256")


class IOTimeoutMiddleware:
    """Bound every ASGI ``receive`` and ``send`` of an HTTP request.

    A stalled read raises ``TimeoutError`` into the route; a stalled write
    raises it out of the app and the server drops the connection.
    """

    def __init__(self, app: ASGIApp, read_timeout: float, write_timeout: float) -> None:
        self.app = app
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def timed_receive() -> Message:
            return await asyncio.wait_for(receive(), self.read_timeout)

        async def timed_send(message: Message) -> None:
            await asyncio.wait_for(send(message), self.write_timeout)

        await self.app(scope, timed_receive, timed_send)


def create_webhook_app(
    service: WebhookService,
    read_timeout: float = READ_TIMEOUT_SECONDS,
    write_timeout: float = WRITE_TIMEOUT_SECONDS,
) -> FastAPI:
    """Create the receiver app bound to ``service`` for state and dispatch."""
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    app.add_middleware(
        IOTimeoutMiddleware, read_timeout=read_timeout, write_timeout=write_timeout,
    )

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": rfc3339_now(),
            "server": service.server_status(),
        }

    @app.api_route("/webhook", methods=_ALL_METHODS)
    async def webhook(request: Request) -> JSONResponse:
        if request.method != "POST":
            return JSONResponse({"error": "Method not allowed"}, status_code=405)

        try:
            body = await request.body()
        except TimeoutError:
            logger.warning("Timed out reading webhook body")
            return JSONResponse({"error": "Request timeout"}, status_code=408)
        signature = next(
            (request.headers[h] for h in SIGNATURE_HEADERS if request.headers.get(h)), None,
        )
        source_ip = request.client.host if request.client else None
        try:
            event = await service.handle_webhook(body, signature, source_ip)
        except WatiError as exc:
            logger.warning("Error handling webhook: %s", exc)
            return JSONResponse({"error": "Error processing webhook"}, status_code=400)

        return JSONResponse({
            "status": "success",
            "eventId": event.id,
            "eventType": event.type_name,
            "timestamp": rfc3339_now(),
        })

    return app

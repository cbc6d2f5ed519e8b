"""Request pipeline: rate limiting, retry with backoff, and response decoding."""

from __future__ import annotations

import asyncio
import logging
import threading
from functools import lru_cache
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from src.config import ClientConfig
from src.errors import APIError, DecodeError, NetworkError, RequestCancelledError
from src.http.rate_limiter import TokenBucketLimiter

logger = logging.getLogger(__name__)

RETRY_BACKOFF_SECONDS = 1.0


class Requester(Protocol):
    """The single seam every domain service talks to."""

    async def execute_request(
        self,
        method: str,
        path: str,
        body: Any = None,
        result_type: Any = None,
        *,
        timeout: float | None = None,
    ) -> Any: ...


class MultipartRequester(Requester, Protocol):
    async def execute_multipart(
        self,
        method: str,
        path: str,
        files: dict[str, Any],
        data: dict[str, str] | None = None,
        result_type: Any = None,
        *,
        timeout: float | None = None,
    ) -> Any: ...


def _should_retry(status_code: int) -> bool:
    return status_code >= 500 or status_code == 429


@lru_cache(maxsize=128)
def _adapter(result_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(result_type)


def encode_body(body: Any) -> Any:
    """Convert a request body into JSON-ready data."""
    if isinstance(body, BaseModel):
        return body.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(body, dict):
        return {key: encode_body(value) for key, value in body.items()}
    if isinstance(body, list):
        return [encode_body(item) for item in body]
    return body


def error_message(response: httpx.Response) -> str:
    """Pick the most specific error text out of a failed response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        for key in ("error", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return response.text


class RequestExecutor:
    """Executes authenticated requests against the WATI API.

    One executor owns one ``httpx.AsyncClient`` and one rate limiter. The
    config snapshot is replaced wholesale on endpoint/token changes; every
    request reads a single snapshot at the start.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._config_lock = threading.Lock()
        self._limiter = TokenBucketLimiter(
            config.rate_limit.requests_per_second,
            config.rate_limit.burst_size,
        )
        self._client = httpx.AsyncClient(transport=transport, timeout=config.timeout)

    @property
    def config(self) -> ClientConfig:
        with self._config_lock:
            return self._config

    @property
    def limiter(self) -> TokenBucketLimiter:
        return self._limiter

    def set_api_endpoint(self, api_endpoint: str) -> None:
        with self._config_lock:
            self._config = self._config.with_endpoint(api_endpoint)

    def set_token(self, token: str) -> None:
        with self._config_lock:
            self._config = self._config.with_token(token)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def execute_request(
        self,
        method: str,
        path: str,
        body: Any = None,
        result_type: Any = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Send a JSON request and decode the response into ``result_type``.

        Raises:
            APIError: The API answered with status >= 400.
            NetworkError: Every attempt failed before a response arrived.
            DecodeError: The success body did not match ``result_type``.
            RequestCancelledError: ``timeout`` elapsed first.
        """
        send_kwargs: dict[str, Any] = {}
        if body is not None:
            send_kwargs["json"] = encode_body(body)
        return await self._execute(method, path, result_type, timeout, True, send_kwargs)

    async def execute_multipart(
        self,
        method: str,
        path: str,
        files: dict[str, Any],
        data: dict[str, str] | None = None,
        result_type: Any = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Like ``execute_request`` but sends a multipart/form-data body."""
        send_kwargs: dict[str, Any] = {"files": files}
        if data:
            send_kwargs["data"] = data
        return await self._execute(method, path, result_type, timeout, False, send_kwargs)

    async def _execute(
        self,
        method: str,
        path: str,
        result_type: Any,
        timeout: float | None,
        json_body: bool,
        send_kwargs: dict[str, Any],
    ) -> Any:
        operation = f"{method} {path}"
        deadline = asyncio.timeout(timeout)
        try:
            async with deadline:
                response = await self._send_with_retry(method, path, json_body, send_kwargs)
        except TimeoutError as exc:
            if deadline.expired() and timeout is not None:
                raise RequestCancelledError(operation, timeout) from exc
            raise
        return self._handle_response(operation, response, result_type)

    def _headers(self, config: ClientConfig, json_body: bool) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {config.token}",
            "Accept": "application/json",
            "User-Agent": config.user_agent,
        }
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def _send_with_retry(
        self,
        method: str,
        path: str,
        json_body: bool,
        send_kwargs: dict[str, Any],
    ) -> httpx.Response:
        config = self.config
        url = f"{config.api_endpoint}{path}"
        headers = self._headers(config, json_body)
        attempts = config.retry_count + 1

        for attempt in range(attempts):
            if attempt > 0:
                await asyncio.sleep(attempt * RETRY_BACKOFF_SECONDS)
            last_attempt = attempt == attempts - 1
            await self._limiter.acquire()
            try:
                response = await self._client.request(
                    method, url, headers=headers, **send_kwargs,
                )
            except httpx.TransportError as exc:
                logger.warning(
                    "%s %s attempt %d/%d failed: %s", method, path, attempt + 1, attempts, exc,
                )
                if last_attempt:
                    raise NetworkError(f"{method} {path}", exc) from exc
                continue
            if last_attempt or not _should_retry(response.status_code):
                return response
            logger.warning(
                "%s %s attempt %d/%d returned %d",
                method, path, attempt + 1, attempts, response.status_code,
            )

        raise RuntimeError(f"retry loop for {method} {path} made no attempts")

    def _handle_response(
        self, operation: str, response: httpx.Response, result_type: Any,
    ) -> Any:
        if response.status_code >= 400:
            raise APIError(response.status_code, error_message(response))
        if result_type is None:
            return None
        try:
            return _adapter(result_type).validate_json(response.content)
        except PydanticValidationError as exc:
            raise DecodeError(f"Failed to decode response for {operation}: {exc}") from exc

"""Media API: upload, lookup, listing and readiness polling."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from typing import BinaryIO
from urllib.parse import quote, urlencode

from src.errors import ValidationError, WatiError
from src.http.executor import MultipartRequester
from src.media.models import (
    SUPPORTED_MIME_TYPES,
    GetMediaParams,
    MediaFile,
    MediaListResponse,
    MediaResponse,
    MediaStatsResponse,
    MediaType,
    UploadResponse,
    is_supported_mime_type,
    max_file_size,
    media_type_for_mime,
)
from src.models import BaseResponse

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 1.0


def validate_upload(file_name: str, size: int, mime_type: str) -> MediaType:
    """Check an upload against the MIME and size tables.

    Returns the media type the file will be uploaded as.
    """
    if not file_name:
        raise ValidationError("fileName", "fileName is required")
    media_type = media_type_for_mime(mime_type)
    if not is_supported_mime_type(media_type, mime_type):
        raise ValidationError("mimeType", f"unsupported MIME type: {mime_type}", mime_type)
    limit = max_file_size(media_type)
    if size > limit:
        raise ValidationError(
            "size",
            f"file size {size} bytes exceeds maximum allowed size {limit} bytes "
            f"for media type {media_type.value}",
            size,
        )
    return media_type


def _media_path(prefix: str, file_name: str) -> str:
    if not file_name:
        raise ValidationError("fileName", "fileName is required")
    return f"{prefix}/{quote(file_name, safe='')}"


class MediaService:
    def __init__(self, requester: MultipartRequester) -> None:
        self._requester = requester

    async def get_media_by_file_name(
        self, file_name: str, *, timeout: float | None = None,
    ) -> MediaResponse:
        return await self._requester.execute_request(
            "GET",
            _media_path("/api/v1/getMediaByFileName", file_name),
            result_type=MediaResponse,
            timeout=timeout,
        )

    async def upload_media(
        self,
        file: bytes | BinaryIO,
        file_name: str,
        media_type: MediaType | str,
        *,
        caption: str | None = None,
        description: str | None = None,
        timeout: float | None = None,
    ) -> UploadResponse:
        """Upload a file as multipart/form-data.

        File-like objects are read fully up front so retries resend the same
        bytes.
        """
        content = file if isinstance(file, bytes) else file.read()
        if not file_name:
            raise ValidationError("fileName", "fileName is required")
        if not media_type:
            raise ValidationError("mediaType", "mediaType is required")
        try:
            kind = MediaType(media_type)
        except ValueError:
            raise ValidationError(
                "mediaType", f"unsupported media type: {media_type}", media_type,
            ) from None
        if kind not in SUPPORTED_MIME_TYPES:
            raise ValidationError("mediaType", f"unsupported media type: {kind.value}")

        mime_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"
        data = {"mediaType": kind.value}
        if caption:
            data["caption"] = caption
        if description:
            data["description"] = description
        return await self._requester.execute_multipart(
            "POST",
            "/api/v1/uploadMedia",
            files={"file": (file_name, content, mime_type)},
            data=data,
            result_type=UploadResponse,
            timeout=timeout,
        )

    async def delete_media(self, file_name: str, *, timeout: float | None = None) -> None:
        await self._requester.execute_request(
            "DELETE",
            _media_path("/api/v1/deleteMedia", file_name),
            result_type=BaseResponse,
            timeout=timeout,
        )

    async def get_media_url(self, file_name: str, *, timeout: float | None = None) -> str:
        response = await self.get_media_by_file_name(file_name, timeout=timeout)
        return response.media.url

    async def list_media(
        self, params: GetMediaParams | None = None, *, timeout: float | None = None,
    ) -> MediaListResponse:
        params = params or GetMediaParams()
        return await self._requester.execute_request(
            "GET",
            f"/api/v1/media?{urlencode(params.to_query())}",
            result_type=MediaListResponse,
            timeout=timeout,
        )

    async def get_media_stats(self, *, timeout: float | None = None) -> MediaStatsResponse:
        return await self._requester.execute_request(
            "GET", "/api/v1/media/stats", result_type=MediaStatsResponse, timeout=timeout,
        )

    async def get_media_by_type(
        self,
        media_type: MediaType,
        params: GetMediaParams | None = None,
        *,
        timeout: float | None = None,
    ) -> MediaListResponse:
        params = (params or GetMediaParams()).model_copy(
            update={"media_type": MediaType(media_type).value},
        )
        return await self.list_media(params, timeout=timeout)

    async def search_media(
        self,
        query: str,
        params: GetMediaParams | None = None,
        *,
        timeout: float | None = None,
    ) -> MediaListResponse:
        """List one page and keep files whose name contains ``query``."""
        response = await self.list_media(params, timeout=timeout)
        needle = query.lower()
        matches = [
            m for m in response.media
            if needle in m.file_name.lower() or needle in (m.original_name or "").lower()
        ]
        return response.model_copy(update={"media": matches, "total_count": len(matches)})

    async def wait_for_media_ready(
        self,
        file_name: str,
        max_wait_seconds: int = 30,
        *,
        timeout: float | None = None,
    ) -> MediaFile:
        """Poll until the file is ready, failed, or ``max_wait_seconds`` polls pass."""
        for _ in range(max_wait_seconds):
            response = await self.get_media_by_file_name(file_name, timeout=timeout)
            media = response.media
            if media.is_ready:
                return media
            if media.has_failed:
                raise WatiError(f"media processing failed for file: {file_name}")
            logger.debug("Media %s is %s, polling again", file_name, media.status)
            await asyncio.sleep(POLL_INTERVAL_SECONDS)
        raise WatiError(f"timeout waiting for media to be ready: {file_name}")

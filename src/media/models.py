"""Media file payloads and upload constraints."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from src.models import BaseResponse, PaginatedResponse, WatiModel, page_query


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    STICKER = "sticker"


class MediaStatus(str, Enum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"
    DELETED = "deleted"


SUPPORTED_MIME_TYPES: dict[MediaType, tuple[str, ...]] = {
    MediaType.IMAGE: ("image/jpeg", "image/png", "image/webp", "image/gif"),
    MediaType.VIDEO: ("video/mp4", "video/3gpp", "video/quicktime", "video/avi", "video/mkv"),
    MediaType.AUDIO: (
        "audio/aac", "audio/mp4", "audio/mpeg", "audio/amr", "audio/ogg", "audio/opus",
    ),
    MediaType.DOCUMENT: (
        "application/pdf",
        "application/vnd.ms-powerpoint",
        "application/msword",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "text/plain",
        "text/csv",
    ),
    MediaType.STICKER: ("image/webp",),
}

MAX_FILE_SIZES: dict[MediaType, int] = {
    MediaType.IMAGE: 5 * 1024 * 1024,
    MediaType.VIDEO: 16 * 1024 * 1024,
    MediaType.AUDIO: 16 * 1024 * 1024,
    MediaType.DOCUMENT: 100 * 1024 * 1024,
    MediaType.STICKER: 500 * 1024,
}

DEFAULT_MAX_FILE_SIZE = 5 * 1024 * 1024


def is_supported_mime_type(media_type: MediaType, mime_type: str) -> bool:
    return mime_type in SUPPORTED_MIME_TYPES.get(media_type, ())


def media_type_for_mime(mime_type: str) -> MediaType:
    """Return the media type whose table lists ``mime_type``; documents otherwise.

    Images win over stickers for ``image/webp``.
    """
    for media_type, mime_types in SUPPORTED_MIME_TYPES.items():
        if mime_type in mime_types:
            return media_type
    return MediaType.DOCUMENT


def max_file_size(media_type: MediaType) -> int:
    return MAX_FILE_SIZES.get(media_type, DEFAULT_MAX_FILE_SIZE)


def format_file_size(size: int) -> str:
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'KMGTPE'[exp]}B"


class MediaFile(WatiModel):
    id: str = ""
    file_name: str = ""
    original_name: str | None = None
    mime_type: str = ""
    size: int = 0
    url: str = ""
    thumbnail_url: str | None = None
    duration: int | None = None
    width: int | None = None
    height: int | None = None
    caption: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    status: str = ""
    uploaded_by: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.status == MediaStatus.READY.value

    @property
    def is_processing(self) -> bool:
        return self.status in (MediaStatus.PROCESSING.value, MediaStatus.UPLOADING.value)

    @property
    def has_failed(self) -> bool:
        return self.status == MediaStatus.FAILED.value

    @property
    def media_type(self) -> MediaType:
        return media_type_for_mime(self.mime_type)

    @property
    def human_size(self) -> str:
        return format_file_size(self.size)


class MediaResponse(BaseResponse):
    media: MediaFile = Field(default_factory=MediaFile)


class UploadResponse(MediaResponse):
    upload_id: str | None = None


class MediaListResponse(PaginatedResponse):
    media: list[MediaFile] = Field(default_factory=list)


class MediaStats(WatiModel):
    total_files: int = 0
    total_size: int = 0
    image_count: int = 0
    video_count: int = 0
    audio_count: int = 0
    document_count: int = 0
    other_count: int = 0


class MediaStatsResponse(BaseResponse):
    stats: MediaStats = Field(default_factory=MediaStats)


class GetMediaParams(WatiModel):
    page_size: int = 0
    page_number: int = 0
    media_type: str = ""
    status: str = ""

    def to_query(self) -> dict[str, Any]:
        query = page_query(self.page_size, self.page_number)
        if self.media_type:
            query["mediaType"] = self.media_type
        if self.status:
            query["status"] = self.status
        return query

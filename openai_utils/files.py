"""Upload and cache the dashboard data file on the provider."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

from openai import AsyncOpenAI, OpenAIError

import config
from core.errors import FileUploadError, classify_error

logger = logging.getLogger("chart_query.files")

UPLOAD_FAILED_MESSAGE = "Failed to upload data file to AI service"


@dataclass(frozen=True)
class FileReference:
    """Handle to a file stored by the provider."""

    file_id: str
    display_name: str
    uploaded_at: float
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


Uploader = Callable[[], Awaitable[FileReference]]


async def upload_data_file(
    client: AsyncOpenAI,
    *,
    path: Path | None = None,
    display_name: str | None = None,
    ttl_seconds: int | None = None,
    clock: Callable[[], float] = time.time,
) -> FileReference:
    """Upload the CSV summary and return a :class:`FileReference`.

    Raises:
        FileUploadError: if the file is missing or the provider rejects it.
    """

    source = Path(path or config.DATA_FILE_PATH)
    name = display_name or config.DATA_FILE_DISPLAY_NAME
    ttl = ttl_seconds or config.FILE_CACHE_TTL_SECONDS
    try:
        with source.open("rb") as handle:
            created = await client.files.create(file=(source.name, handle, "text/csv"), purpose="assistants")
    except FileNotFoundError as exc:
        raise FileUploadError(UPLOAD_FAILED_MESSAGE, details={"path": str(source)}, original=exc) from exc
    except OpenAIError as exc:
        raise FileUploadError(
            UPLOAD_FAILED_MESSAGE,
            details={"path": str(source), "kind": classify_error(exc)},
            original=exc,
        ) from exc
    now = clock()
    logger.info("Uploaded data file %s as %s", source.name, created.id)
    return FileReference(file_id=created.id, display_name=name, uploaded_at=now, expires_at=now + ttl)


class FileReferenceCache:
    """Single-flight cache for the uploaded data file.

    Concurrent callers that find the entry missing or expired wait on one
    upload instead of each starting their own.
    """

    def __init__(self, uploader: Uploader, *, clock: Callable[[], float] = time.time) -> None:
        self._uploader = uploader
        self._clock = clock
        self._lock = asyncio.Lock()
        self._reference: FileReference | None = None

    @property
    def current(self) -> FileReference | None:
        return self._reference

    def invalidate(self) -> None:
        self._reference = None

    async def get_or_refresh(self) -> FileReference:
        reference = self._reference
        if reference is not None and reference.is_valid(self._clock()):
            return reference
        async with self._lock:
            reference = self._reference
            if reference is not None and reference.is_valid(self._clock()):
                return reference
            if reference is not None:
                logger.info("Cached data file %s expired; uploading again", reference.file_id)
            self._reference = await self._uploader()
            return self._reference


def openai_file_cache(client_factory: Callable[[], Awaitable[AsyncOpenAI]]) -> FileReferenceCache:
    """Return a cache that uploads through the client returned by ``client_factory``."""

    async def _upload() -> FileReference:
        # A missing key surfaces as ConfigurationError, not FileUploadError.
        client = await client_factory()
        return await upload_data_file(client)

    return FileReferenceCache(_upload)


__all__ = [
    "FileReference",
    "FileReferenceCache",
    "UPLOAD_FAILED_MESSAGE",
    "Uploader",
    "openai_file_cache",
    "upload_data_file",
]

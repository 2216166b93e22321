"""Blob storage for task content and student submissions.

Only the returned location string is persisted; nothing else in the service
knows which backend holds the bytes.
"""

import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import AsyncIterator, Optional

from fastapi import UploadFile
from libs.common.config import get_settings
from libs.common.errors import ValidationFailed
from libs.common.logging import get_logger
from supabase import Client, create_client

logger = get_logger(__name__)


@dataclass
class StoredUpload:
    """A file already handed to the blob store."""

    url: str
    original_name: str
    content_type: str = "application/octet-stream"


class StorageService:
    """Local-disk or Supabase Storage backend, chosen by ``STORAGE_BACKEND``."""

    def __init__(self, backend=None, uploads_dir=None):
        settings = get_settings()
        self.backend = backend or settings.STORAGE_BACKEND

        if self.backend == "supabase":
            self.supabase: Client = create_client(
                settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY
            )
            self.bucket = settings.SUPABASE_STORAGE_BUCKET
        elif self.backend == "local":
            self.uploads_dir = Path(uploads_dir or settings.UPLOADS_DIR)
            self.uploads_dir.mkdir(parents=True, exist_ok=True)
        else:
            raise ValueError(f"Unknown storage backend: {self.backend}")

    async def upload(self, data: bytes, filename: str, content_type: str) -> str:
        """Store ``data`` under a fresh unique name. Returns its location."""
        suffix = Path(filename).suffix
        unique_filename = f"{uuid.uuid4()}{suffix}"

        if self.backend == "supabase":
            return await self._upload_supabase(unique_filename, data, content_type)
        return await self._upload_local(unique_filename, data)

    async def _upload_local(self, filename: str, data: bytes) -> str:
        (self.uploads_dir / filename).write_bytes(data)
        return f"uploads/{filename}"

    async def _upload_supabase(
        self, filename: str, data: bytes, content_type: str
    ) -> str:
        path = f"learning/{filename}"
        self.supabase.storage.from_(self.bucket).upload(
            path=path, file=data, file_options={"content-type": content_type}
        )
        return self.supabase.storage.from_(self.bucket).get_public_url(path)

    async def delete(self, location: str) -> None:
        """Remove a stored object. Missing objects are ignored."""
        if self.backend == "supabase":
            # .../storage/v1/object/public/<bucket>/learning/<file>
            path = location.split(f"{self.bucket}/")[-1]
            self.supabase.storage.from_(self.bucket).remove([path])
            return

        target = self.uploads_dir / Path(location).name
        target.unlink(missing_ok=True)


@lru_cache
def get_storage_service() -> StorageService:
    return StorageService()


async def discard_files(storage: Optional[StorageService], locations: list[str]):
    """Best-effort removal of stored objects; failures are only logged."""
    if storage is None:
        return
    for location in locations:
        try:
            await storage.delete(location)
        except Exception as e:
            logger.warning("Failed to delete stored file %s: %s", location, e)


async def store_files(
    storage: StorageService, files: list[UploadFile]
) -> list[StoredUpload]:
    """Validate and persist multipart uploads in order.

    Every file is size-checked before the first upload, so a rejected batch
    stores nothing.
    """
    settings = get_settings()
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise ValidationFailed(
            f"At most {settings.MAX_UPLOAD_FILES} files may be uploaded at once."
        )

    payloads = []
    for file in files:
        data = await file.read()
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise ValidationFailed(f"File {file.filename} exceeds the size limit.")
        payloads.append(
            (
                data,
                file.filename or "upload",
                file.content_type or "application/octet-stream",
            )
        )

    stored = []
    try:
        for data, filename, content_type in payloads:
            url = await storage.upload(data, filename, content_type)
            stored.append(
                StoredUpload(url=url, original_name=filename, content_type=content_type)
            )
    except Exception:
        await discard_files(storage, [upload.url for upload in stored])
        raise

    logger.info("Stored %d uploaded file(s) via %s backend", len(stored), storage.backend)
    return stored


@asynccontextmanager
async def staged_uploads(
    storage: StorageService, files: list[UploadFile]
) -> AsyncIterator[list[StoredUpload]]:
    """Store ``files`` and remove them again if the enclosed block fails."""
    uploads = await store_files(storage, files)
    try:
        yield uploads
    except Exception:
        logger.info("Discarding %d stored file(s) after a failed request", len(uploads))
        await discard_files(storage, [upload.url for upload in uploads])
        raise

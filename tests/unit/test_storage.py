"""Unit tests for the blob store helpers."""

from io import BytesIO

import pytest
from libs.common.config import get_settings
from libs.common.errors import NotFoundError, ValidationFailed
from services.learning_service.services.storage import (
    discard_files,
    staged_uploads,
    store_files,
)
from starlette.datastructures import Headers, UploadFile


def _upload(name, data=b"clip", content_type="video/mp4"):
    return UploadFile(
        file=BytesIO(data),
        filename=name,
        headers=Headers({"content-type": content_type}),
    )


def _stored(storage):
    return sorted(p.name for p in storage.uploads_dir.iterdir())


@pytest.mark.asyncio
@pytest.mark.unit
async def test_store_files_keeps_order_and_names(storage):
    uploads = await store_files(storage, [_upload("a.mp4"), _upload("b.pdf")])

    assert [u.original_name for u in uploads] == ["a.mp4", "b.pdf"]
    assert [u.content_type for u in uploads] == ["video/mp4", "video/mp4"]
    assert all(u.url.startswith("uploads/") for u in uploads)
    assert len(_stored(storage)) == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_oversized_file_rejects_whole_batch(storage, monkeypatch):
    monkeypatch.setattr(get_settings(), "MAX_UPLOAD_BYTES", 8)

    with pytest.raises(ValidationFailed):
        await store_files(
            storage, [_upload("small.mp4", b"ok"), _upload("big.mp4", b"x" * 9)]
        )

    assert _stored(storage) == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_too_many_files_rejected(storage, monkeypatch):
    monkeypatch.setattr(get_settings(), "MAX_UPLOAD_FILES", 1)

    with pytest.raises(ValidationFailed):
        await store_files(storage, [_upload("a.mp4"), _upload("b.mp4")])

    assert _stored(storage) == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failed_upload_discards_earlier_files(storage, monkeypatch):
    original = storage.upload
    calls = []

    async def flaky_upload(data, filename, content_type):
        calls.append(filename)
        if len(calls) == 2:
            raise RuntimeError("bucket unavailable")
        return await original(data, filename, content_type)

    monkeypatch.setattr(storage, "upload", flaky_upload)

    with pytest.raises(RuntimeError):
        await store_files(storage, [_upload("a.mp4"), _upload("b.mp4")])

    assert _stored(storage) == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_staged_uploads_removed_when_block_fails(storage):
    with pytest.raises(NotFoundError):
        async with staged_uploads(storage, [_upload("a.mp4")]) as uploads:
            assert len(_stored(storage)) == 1
            raise NotFoundError("Task not found")

    assert uploads[0].original_name == "a.mp4"
    assert _stored(storage) == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_staged_uploads_kept_on_success(storage):
    async with staged_uploads(storage, [_upload("a.mp4")]):
        pass

    assert len(_stored(storage)) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_discard_files_ignores_missing_and_none(storage):
    await discard_files(None, ["uploads/ghost.mp4"])
    await discard_files(storage, ["uploads/ghost.mp4"])

    assert _stored(storage) == []

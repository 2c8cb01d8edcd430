from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from vidproc.core.errors import InvalidMediaError, PolicyError, StorageError, ValidationError
from vidproc.db.models import AssetStatus
from tests.fakes import chunked, fake_video_bytes, ids_of, open_harness


def test_accepted_upload_is_persisted(settings):
    async def scenario():
        async with open_harness(settings) as h:
            asset = await h.ingestion.ingest("holiday.MP4", chunked(fake_video_bytes(7.6)), content_type="video/mp4")
            assert asset.status == AssetStatus.completed
            assert asset.duration_seconds == 8
            assert asset.storage_key == f"{asset.id}_original.mp4"
            assert h.storage.exists(asset.storage_key)
            assert asset.size_bytes == h.storage.stat(asset.storage_key).size_bytes

            stored = await h.assets.get(asset.id)
            assert stored is not None
            assert stored.storage_key == asset.storage_key

    asyncio.run(scenario())


@pytest.mark.parametrize("duration", [5.0, 25.0])
def test_duration_bounds_are_inclusive(settings, duration):
    async def scenario():
        async with open_harness(settings) as h:
            asset = await h.ingestion.ingest("clip.mp4", chunked(fake_video_bytes(duration)))
            assert asset.duration_seconds == int(duration)

    asyncio.run(scenario())


@pytest.mark.parametrize("duration", [4.99, 25.01, 0.0])
def test_out_of_policy_upload_leaves_no_trace(settings, duration):
    async def scenario():
        async with open_harness(settings) as h:
            with pytest.raises(PolicyError) as excinfo:
                await h.ingestion.ingest("clip.mp4", chunked(fake_video_bytes(duration)))
            assert excinfo.value.code == "duration_out_of_bounds"
            assert h.stored_files() == []
            assert await h.assets.list() == []

    asyncio.run(scenario())


@pytest.mark.parametrize(
    ("filename", "content_type", "code"),
    [
        ("", None, "missing_filename"),
        ("clip.txt", None, "invalid_video_format"),
        ("clip", None, "invalid_video_format"),
        ("clip.mp4", "image/png", "invalid_content_type"),
    ],
)
def test_invalid_input_is_rejected_before_writing(settings, filename, content_type, code):
    async def scenario():
        async with open_harness(settings) as h:
            with pytest.raises(ValidationError) as excinfo:
                await h.ingestion.ingest(filename, chunked(fake_video_bytes(10)), content_type=content_type)
            assert excinfo.value.code == code
            assert h.stored_files() == []
            assert h.probe.calls == []

    asyncio.run(scenario())


def test_content_type_parameters_are_ignored(settings):
    async def scenario():
        async with open_harness(settings) as h:
            asset = await h.ingestion.ingest(
                "clip.webm",
                chunked(fake_video_bytes(10)),
                content_type="video/webm; codecs=vp9",
            )
            assert asset.storage_key.endswith("_original.webm")

    asyncio.run(scenario())


def test_oversized_upload_is_rejected(settings):
    limited = settings.model_copy(update={"max_upload_size_bytes": 32})

    async def scenario():
        async with open_harness(limited) as h:
            with pytest.raises(ValidationError) as excinfo:
                await h.ingestion.ingest("clip.mp4", chunked(fake_video_bytes(10, padding=256)))
            assert excinfo.value.code == "file_too_large"
            assert h.stored_files() == []

    asyncio.run(scenario())


def test_unprobeable_upload_is_invalid_media(settings):
    async def scenario():
        async with open_harness(settings) as h:
            with pytest.raises(InvalidMediaError):
                await h.ingestion.ingest("clip.mp4", chunked(b"garbage bytes"))
            assert h.stored_files() == []
            assert await h.assets.list() == []

    asyncio.run(scenario())


def test_store_failure_removes_written_file(settings, monkeypatch):
    async def scenario():
        async with open_harness(settings) as h:
            async def broken_create(asset):
                raise StorageError("database is gone")

            monkeypatch.setattr(h.assets, "create", broken_create)
            with pytest.raises(StorageError):
                await h.ingestion.ingest("clip.mp4", chunked(fake_video_bytes(10)))
            assert h.stored_files() == []

    asyncio.run(scenario())


def test_cancellation_during_probe_removes_written_file(settings):
    async def scenario():
        async with open_harness(settings) as h:
            async def cancelled_probe(path):
                raise asyncio.CancelledError()

            h.probe.probe = cancelled_probe
            with pytest.raises(asyncio.CancelledError):
                await h.ingestion.ingest("clip.mp4", chunked(fake_video_bytes(10)))
            assert h.stored_files() == []

    asyncio.run(scenario())


def test_concurrent_uploads_get_distinct_records(settings):
    async def scenario():
        async with open_harness(settings) as h:
            results = await asyncio.gather(
                *(h.ingestion.ingest(f"clip{i}.mp4", chunked(fake_video_bytes(6 + i))) for i in range(4))
            )
            assert len({asset.id for asset in results}) == 4
            assert len(h.stored_files()) == 4
            assert len(await h.assets.list()) == 4

    asyncio.run(scenario())


def _operational_error() -> OperationalError:
    return OperationalError("COMMIT", {}, Exception("disk I/O error"))


def test_commit_is_the_last_fallible_store_step(settings, monkeypatch):
    async def scenario():
        async with open_harness(settings) as h:
            async def broken_refresh(self, instance, *args, **kwargs):
                raise _operational_error()

            monkeypatch.setattr(AsyncSession, "refresh", broken_refresh)
            asset = await h.ingestion.ingest("clip.mp4", chunked(fake_video_bytes(10)))

            assert ids_of(await h.assets.list()) == [asset.id]
            assert h.stored_files() == [asset.storage_key]
            assert asset.created_at is not None

    asyncio.run(scenario())


def test_failed_commit_leaves_neither_file_nor_record(settings, monkeypatch):
    async def scenario():
        async with open_harness(settings) as h:
            async def broken_commit(self):
                raise _operational_error()

            with monkeypatch.context() as patched:
                patched.setattr(AsyncSession, "commit", broken_commit)
                with pytest.raises(StorageError):
                    await h.ingestion.ingest("clip.mp4", chunked(fake_video_bytes(10)))

            assert await h.assets.list() == []
            assert h.stored_files() == []

    asyncio.run(scenario())

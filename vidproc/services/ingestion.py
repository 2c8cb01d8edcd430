from __future__ import annotations

from contextlib import ExitStack
from pathlib import Path
from typing import AsyncIterable

from vidproc.core.config import Settings
from vidproc.core.errors import PolicyError, ValidationError, VidprocError
from vidproc.core.logging import get_logger
from vidproc.core.storage import Storage
from vidproc.db.models import Asset, AssetRole
from vidproc.db.stores import AssetStore
from vidproc.media.probe import MediaProbe, ProbeResult

from .common import commit_asset, discard_file, new_asset_id, probe_or_reject, storage_key_for


class IngestionPipeline:
    """Turn an uploaded byte stream into a probed, persisted asset.

    Validate -> persist raw bytes -> probe -> duration policy -> commit.
    The written file is removed on every failure after it exists, so a
    caller either sees a completed asset with its file or nothing at all.
    """

    def __init__(self, settings: Settings, storage: Storage, probe: MediaProbe, assets: AssetStore):
        self.settings = settings
        self.storage = storage
        self.probe = probe
        self.assets = assets
        self.logger = get_logger(component="ingestion_pipeline")

    async def ingest(
        self,
        filename: str,
        chunks: AsyncIterable[bytes],
        *,
        content_type: str | None = None,
    ) -> Asset:
        asset_id = new_asset_id()
        log = self.logger.bind(asset_id=asset_id, filename=filename)
        try:
            extension = self.validate(filename, content_type)
            key = storage_key_for(asset_id, AssetRole.original, extension)

            with ExitStack() as rollback:
                written = await self.storage.write_stream(
                    key,
                    chunks,
                    max_bytes=self.settings.max_upload_size_bytes,
                )
                rollback.callback(discard_file, self.storage, key)

                info = await probe_or_reject(self.probe, self.storage.path_for(key))
                self.enforce_duration_policy(info)
                if info.size_bytes != written:
                    log.warning("probed_size_mismatch", written_bytes=written, probed_bytes=info.size_bytes)

                asset = await commit_asset(self.assets, asset_id, key, info)
                rollback.pop_all()
        except VidprocError as exc:
            log.info("ingest_rejected", code=exc.code, reason=exc.message)
            raise

        log.info(
            "asset_ingested",
            storage_key=asset.storage_key,
            duration_seconds=asset.duration_seconds,
            size_bytes=asset.size_bytes,
        )
        return asset

    def validate(self, filename: str, content_type: str | None) -> str:
        """Return the normalised extension, or raise before anything is written."""
        if not filename or not Path(filename).name:
            raise ValidationError("uploaded file must include a filename", code="missing_filename")
        extension = Path(filename).suffix.lower()
        if extension not in self.settings.normalized_extensions:
            raise ValidationError(f"unsupported video format: {extension or filename!r}", code="invalid_video_format")
        if content_type:
            media_type = content_type.split(";", 1)[0].strip().lower()
            if media_type not in self.settings.allowed_content_types:
                raise ValidationError(f"unsupported content type: {media_type}", code="invalid_content_type")
        return extension

    def enforce_duration_policy(self, info: ProbeResult) -> None:
        low, high = self.settings.min_duration_s, self.settings.max_duration_s
        if not low <= info.duration_seconds <= high:
            raise PolicyError(
                f"video duration must be between {low:g} and {high:g} seconds, got {info.duration_seconds:.3f}",
                code="duration_out_of_bounds",
            )


__all__ = ["IngestionPipeline"]

from __future__ import annotations

import math
from contextlib import ExitStack
from functools import partial
from pathlib import Path
from typing import Awaitable, Callable, Sequence

from vidproc.core.errors import NotFoundError, ValidationError, VidprocError
from vidproc.core.logging import get_logger
from vidproc.core.storage import Storage
from vidproc.db.models import Asset, AssetRole
from vidproc.db.stores import AssetStore
from vidproc.media.editor import MediaEditor
from vidproc.media.probe import MediaProbe

from .common import commit_asset, discard_file, new_asset_id, probe_or_reject, storage_key_for

DEFAULT_EXTENSION = ".mp4"


class EditPipeline:
    """Non-destructive trim and merge; every edit produces a new asset."""

    def __init__(self, storage: Storage, editor: MediaEditor, probe: MediaProbe, assets: AssetStore):
        self.storage = storage
        self.editor = editor
        self.probe = probe
        self.assets = assets
        self.logger = get_logger(component="edit_pipeline")

    async def trim(self, asset_id: str, start: float, end: float) -> Asset:
        log = self.logger.bind(operation="trim", source_id=asset_id, start=start, end=end)
        try:
            source = await self._require(asset_id)
            if not (math.isfinite(start) and math.isfinite(end)):
                raise ValidationError("trim bounds must be finite numbers", code="invalid_trim_range")
            if start < 0 or end > source.duration_seconds or start >= end:
                raise ValidationError(
                    f"invalid trim range [{start:g}, {end:g}] for a {source.duration_seconds}s video",
                    code="invalid_trim_range",
                )

            new_id = new_asset_id()
            extension = Path(source.storage_key).suffix or DEFAULT_EXTENSION
            key = storage_key_for(new_id, AssetRole.trimmed, extension)
            asset = await self._render_and_commit(
                new_id,
                key,
                partial(self.editor.trim, self.storage.path_for(source.storage_key), self.storage.path_for(key), start, end),
            )
        except VidprocError as exc:
            log.info("edit_rejected", code=exc.code, reason=exc.message)
            raise

        log.info("trim_completed", asset_id=asset.id, duration_seconds=asset.duration_seconds)
        return asset

    async def merge(self, asset_ids: Sequence[str]) -> Asset:
        ids = list(asset_ids)
        log = self.logger.bind(operation="merge", source_ids=ids)
        try:
            if len(ids) < 2:
                raise ValidationError("at least two videos are required for merging", code="too_few_videos")
            # Resolve everything before any file is produced; order is the caller's.
            sources = [await self._require(asset_id) for asset_id in ids]

            new_id = new_asset_id()
            key = storage_key_for(new_id, AssetRole.merged, DEFAULT_EXTENSION)
            inputs = [self.storage.path_for(source.storage_key) for source in sources]
            asset = await self._render_and_commit(new_id, key, partial(self.editor.merge, inputs, self.storage.path_for(key)))
        except VidprocError as exc:
            log.info("edit_rejected", code=exc.code, reason=exc.message)
            raise

        log.info("merge_completed", asset_id=asset.id, duration_seconds=asset.duration_seconds)
        return asset

    async def _render_and_commit(self, new_id: str, key: str, render: Callable[[], Awaitable[None]]) -> Asset:
        with ExitStack() as rollback:
            # Registered before rendering so partial output is removed too.
            rollback.callback(discard_file, self.storage, key)
            await render()
            info = await probe_or_reject(self.probe, self.storage.path_for(key))
            asset = await commit_asset(self.assets, new_id, key, info)
            rollback.pop_all()
        return asset

    async def _require(self, asset_id: str) -> Asset:
        asset = await self.assets.get(asset_id)
        if asset is None:
            raise NotFoundError(f"video {asset_id} not found", entity_id=asset_id, code="video_not_found")
        return asset


__all__ = ["EditPipeline"]

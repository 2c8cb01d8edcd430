from __future__ import annotations

from pathlib import Path
from uuid import uuid4

from vidproc.core.errors import InvalidMediaError, ProbeError
from vidproc.core.storage import Storage
from vidproc.db.models import Asset, AssetRole, AssetStatus
from vidproc.db.stores import AssetStore
from vidproc.media.probe import MediaProbe, ProbeResult
from vidproc.core.logging import get_logger

logger = get_logger(component="pipeline")


def new_asset_id() -> str:
    return uuid4().hex


def storage_key_for(asset_id: str, role: AssetRole, extension: str) -> str:
    """``<id>_<role><ext>``, e.g. ``3f2a..._trimmed.mp4``."""
    return f"{asset_id}_{role.value}{extension.lower()}"


def stored_duration(seconds: float) -> int:
    """Whole seconds kept on the record, rounded to the nearest second."""
    return int(round(seconds))


async def probe_or_reject(probe: MediaProbe, path: Path) -> ProbeResult:
    try:
        return await probe.probe(path)
    except InvalidMediaError:
        raise
    except ProbeError as exc:
        raise InvalidMediaError(f"{path.name} is not a usable video: {exc.message}") from exc


async def commit_asset(assets: AssetStore, asset_id: str, storage_key: str, info: ProbeResult) -> Asset:
    asset = Asset(
        id=asset_id,
        storage_key=storage_key,
        size_bytes=info.size_bytes,
        duration_seconds=stored_duration(info.duration_seconds),
        status=AssetStatus.completed,
        error_detail=None,
    )
    return await assets.create(asset)


def discard_file(storage: Storage, key: str) -> None:
    """Compensating action for a file written earlier in a failed pipeline."""
    try:
        removed = storage.remove(key)
    except OSError as exc:
        logger.error("rollback_file_remove_failed", key=key, error=str(exc))
        return
    if removed:
        logger.info("rollback_file_removed", key=key)


__all__ = [
    "new_asset_id",
    "storage_key_for",
    "stored_duration",
    "probe_or_reject",
    "commit_asset",
    "discard_file",
]

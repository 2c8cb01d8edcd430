"""In-process stand-ins for ffprobe/ffmpeg plus a wired-up pipeline harness.

A fake video is a file starting with ``FAKEVIDEO:<seconds>``; the fake probe
reads the duration back from it and anything else fails to probe.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncIterator, Iterable, Sequence

from vidproc.core.config import Settings
from vidproc.core.db import create_engine, create_session_factory, init_models
from vidproc.core.errors import EditError, ProbeError
from vidproc.core.storage import LocalStorage
from vidproc.db.models import Asset, AssetRole, AssetStatus
from vidproc.db.stores import AssetStore, ShareLinkStore
from vidproc.media.probe import ProbeResult
from vidproc.services.common import new_asset_id, storage_key_for
from vidproc.services.editing import EditPipeline
from vidproc.services.ingestion import IngestionPipeline
from vidproc.services.sharing import ShareLifecycle

FAKE_MAGIC = b"FAKEVIDEO:"


def fake_video_bytes(duration: float, padding: int = 64) -> bytes:
    return FAKE_MAGIC + repr(float(duration)).encode() + b"\n" + b"\0" * padding


def read_fake_duration(path: Path) -> float:
    data = Path(path).read_bytes()
    if not data.startswith(FAKE_MAGIC):
        raise ProbeError(f"{Path(path).name} is not a fake video")
    head = data[len(FAKE_MAGIC):].split(b"\n", 1)[0]
    try:
        return float(head)
    except ValueError as exc:
        raise ProbeError(f"{Path(path).name} has a corrupt header") from exc


async def chunked(data: bytes, size: int = 7) -> AsyncIterator[bytes]:
    for offset in range(0, len(data), size):
        yield data[offset : offset + size]


class FakeMediaProbe:
    def __init__(self) -> None:
        self.calls: list[Path] = []

    async def probe(self, path: Path) -> ProbeResult:
        self.calls.append(Path(path))
        duration = read_fake_duration(path)
        return ProbeResult(duration_seconds=duration, size_bytes=Path(path).stat().st_size, format="fake")


class FakeMediaEditor:
    """Writes fake outputs; ``fail`` leaves partial output behind and raises."""

    def __init__(self, *, fail: bool = False, garbage: bool = False) -> None:
        self.fail = fail
        self.garbage = garbage
        self.trims: list[tuple[Path, Path, float, float]] = []
        self.merges: list[tuple[list[Path], Path]] = []

    async def trim(self, input_path: Path, output_path: Path, start: float, end: float) -> None:
        self.trims.append((Path(input_path), Path(output_path), start, end))
        read_fake_duration(input_path)
        self._write(Path(output_path), end - start)

    async def merge(self, input_paths: Sequence[Path], output_path: Path) -> None:
        inputs = [Path(p) for p in input_paths]
        self.merges.append((inputs, Path(output_path)))
        total = sum(read_fake_duration(p) for p in inputs)
        self._write(Path(output_path), total)

    def _write(self, output_path: Path, duration: float) -> None:
        if self.fail:
            output_path.write_bytes(b"partial")
            raise EditError("transcoder exploded")
        if self.garbage:
            output_path.write_bytes(b"not a video at all")
            return
        output_path.write_bytes(fake_video_bytes(duration))


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


@dataclass
class Harness:
    settings: Settings
    storage: LocalStorage
    assets: AssetStore
    links: ShareLinkStore
    probe: FakeMediaProbe
    editor: FakeMediaEditor
    clock: FakeClock
    ingestion: IngestionPipeline = field(init=False)
    editing: EditPipeline = field(init=False)
    sharing: ShareLifecycle = field(init=False)

    def __post_init__(self) -> None:
        self.ingestion = IngestionPipeline(self.settings, self.storage, self.probe, self.assets)
        self.editing = EditPipeline(self.storage, self.editor, self.probe, self.assets)
        self.sharing = ShareLifecycle(self.settings, self.assets, self.links, clock=self.clock)

    def stored_files(self) -> list[str]:
        return sorted(p.name for p in self.storage.base_path.iterdir())

    async def seed_asset(self, duration: float, *, role: AssetRole = AssetRole.original) -> Asset:
        """Place a fake video and its record directly, bypassing the upload policy."""
        asset_id = new_asset_id()
        key = storage_key_for(asset_id, role, ".mp4")
        payload = fake_video_bytes(duration)
        self.storage.path_for(key).write_bytes(payload)
        return await self.assets.create(
            Asset(
                id=asset_id,
                storage_key=key,
                size_bytes=len(payload),
                duration_seconds=int(round(duration)),
                status=AssetStatus.completed,
            )
        )


@asynccontextmanager
async def open_harness(
    settings: Settings,
    *,
    editor: FakeMediaEditor | None = None,
    probe: FakeMediaProbe | None = None,
    clock: FakeClock | None = None,
) -> AsyncIterator[Harness]:
    engine = create_engine(settings)
    await init_models(engine)
    session_factory = create_session_factory(engine)
    try:
        yield Harness(
            settings=settings,
            storage=LocalStorage(settings.video_storage_path),
            assets=AssetStore(session_factory),
            links=ShareLinkStore(session_factory),
            probe=probe or FakeMediaProbe(),
            editor=editor or FakeMediaEditor(),
            clock=clock or FakeClock(),
        )
    finally:
        await engine.dispose()


def ids_of(items: Iterable) -> list[str]:
    return [item.id for item in items]

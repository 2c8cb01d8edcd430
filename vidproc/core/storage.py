from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterable

from .config import Settings
from .errors import StorageError, ValidationError
from .logging import get_logger


@dataclass(slots=True)
class StorageStat:
    size_bytes: int


class Storage(ABC):
    """Flat asset storage area addressed by storage key."""

    @abstractmethod
    def path_for(self, key: str) -> Path: ...

    @abstractmethod
    def exists(self, key: str) -> bool: ...

    @abstractmethod
    def stat(self, key: str) -> StorageStat: ...

    @abstractmethod
    async def write_stream(self, key: str, chunks: AsyncIterable[bytes], *, max_bytes: int | None = None) -> int: ...

    @abstractmethod
    def remove(self, key: str) -> bool: ...


class LocalStorage(Storage):
    """Filesystem-backed storage with every asset in one directory."""

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.logger = get_logger(component="local_storage")

    def path_for(self, key: str) -> Path:
        if not key or Path(key).name != key:
            raise ValueError(f"Storage keys must be bare file names: {key!r}")
        return self.base_path / key

    def exists(self, key: str) -> bool:
        return self.path_for(key).exists()

    def stat(self, key: str) -> StorageStat:
        path = self.path_for(key)
        if not path.exists():
            raise FileNotFoundError(key)
        return StorageStat(size_bytes=path.stat().st_size)

    async def write_stream(self, key: str, chunks: AsyncIterable[bytes], *, max_bytes: int | None = None) -> int:
        """Write ``chunks`` to ``key`` and return the number of bytes written.

        A partially written file never survives a failure: the target is
        removed before the error propagates.
        """
        path = self.path_for(key)
        written = 0
        try:
            handle = path.open("xb")
        except OSError as exc:
            raise StorageError(f"failed to create {key}: {exc}") from exc
        try:
            with handle:
                async for chunk in chunks:
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise ValidationError(
                            f"upload exceeds the {max_bytes} byte limit",
                            code="file_too_large",
                        )
                    await asyncio.to_thread(handle.write, chunk)
        except OSError as exc:
            self.remove(key)
            raise StorageError(f"failed to write {key}: {exc}") from exc
        except BaseException:
            self.remove(key)
            raise
        return written

    def remove(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        self.logger.info("storage_file_removed", key=key)
        return True


def get_storage(settings: Settings) -> Storage:
    return LocalStorage(base_path=Path(settings.video_storage_path))


__all__ = [
    "Storage",
    "LocalStorage",
    "StorageStat",
    "get_storage",
]

from __future__ import annotations

import asyncio
import math
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Protocol, Sequence

from vidproc.core.errors import EditError
from vidproc.core.logging import get_logger

from .process import describe_failure, run_tool

# Re-encode targets broadly playable output.
VIDEO_CODEC = "libx264"
AUDIO_CODEC = "aac"


class MediaEditor(Protocol):
    async def trim(self, input_path: Path, output_path: Path, start: float, end: float) -> None: ...

    async def merge(self, input_paths: Sequence[Path], output_path: Path) -> None: ...


def validate_range(start: float, end: float) -> None:
    """Reject structurally invalid trim ranges."""
    if not (math.isfinite(start) and math.isfinite(end)):
        raise EditError("trim bounds must be finite", code="invalid_range")
    if start < 0:
        raise EditError("trim start must not be negative", code="invalid_range")
    if end <= start:
        raise EditError("trim end must be after start", code="invalid_range")


def build_concat_manifest(input_paths: Sequence[Path]) -> str:
    """Render the concat demuxer manifest, one quoted absolute path per line.

    Single quotes inside a path are closed, escaped and reopened
    (``'`` becomes ``'\\''``), so every line is unambiguous.
    """
    lines = []
    for path in input_paths:
        absolute = os.path.abspath(path)
        escaped = absolute.replace("'", "'\\''")
        lines.append(f"file '{escaped}'\n")
    return "".join(lines)


class FFmpegMediaEditor:
    """Trim and merge backed by ``ffmpeg``; inputs are never modified."""

    def __init__(self, binary: str = "ffmpeg", *, timeout: float | None = None):
        self.binary = binary
        self.timeout = timeout
        self.logger = get_logger(component="ffmpeg")

    def trim_command(self, input_path: Path, output_path: Path, start: float, end: float) -> list[str]:
        return [
            self.binary,
            "-nostdin",
            "-v",
            "error",
            "-i",
            str(input_path),
            "-ss",
            f"{start:.3f}",
            "-t",
            f"{end - start:.3f}",
            "-c:v",
            VIDEO_CODEC,
            "-c:a",
            AUDIO_CODEC,
            "-y",
            str(output_path),
        ]

    def merge_command(self, manifest_path: Path, output_path: Path) -> list[str]:
        return [
            self.binary,
            "-nostdin",
            "-v",
            "error",
            "-f",
            "concat",
            "-safe",
            "0",
            "-i",
            str(manifest_path),
            "-c:v",
            VIDEO_CODEC,
            "-c:a",
            AUDIO_CODEC,
            "-y",
            str(output_path),
        ]

    async def trim(self, input_path: Path, output_path: Path, start: float, end: float) -> None:
        validate_range(start, end)
        if not Path(input_path).is_file():
            raise EditError(f"trim input does not exist: {Path(input_path).name}", code="input_missing")

        await self._run(self.trim_command(input_path, output_path, start, end), operation="trim")
        self.logger.info("trim_rendered", input=str(input_path), output=str(output_path), start=start, end=end)

    async def merge(self, input_paths: Sequence[Path], output_path: Path) -> None:
        if len(input_paths) < 2:
            raise EditError("merge needs at least two inputs", code="too_few_inputs")
        for path in input_paths:
            if not Path(path).is_file():
                raise EditError(f"merge input does not exist: {Path(path).name}", code="input_missing")

        manifest_path = self._write_manifest(input_paths, Path(output_path).parent)
        try:
            await self._run(self.merge_command(manifest_path, output_path), operation="merge")
        finally:
            manifest_path.unlink(missing_ok=True)
        self.logger.info("merge_rendered", inputs=[str(p) for p in input_paths], output=str(output_path))

    def _write_manifest(self, input_paths: Sequence[Path], directory: Path) -> Path:
        try:
            handle = tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                prefix="concat_",
                suffix=".txt",
                dir=directory,
                delete=False,
            )
        except OSError as exc:
            raise EditError(f"failed to create concat manifest: {exc}") from exc
        manifest_path = Path(handle.name)
        try:
            with handle:
                handle.write(build_concat_manifest(input_paths))
        except OSError as exc:
            manifest_path.unlink(missing_ok=True)
            raise EditError(f"failed to write concat manifest: {exc}") from exc
        return manifest_path

    async def _run(self, command: list[str], *, operation: str) -> None:
        try:
            await run_tool(command, timeout=self.timeout)
        except (subprocess.CalledProcessError, asyncio.TimeoutError, OSError) as exc:
            raise EditError(f"{operation} failed: {describe_failure(exc)}") from exc


__all__ = [
    "MediaEditor",
    "FFmpegMediaEditor",
    "build_concat_manifest",
    "validate_range",
]

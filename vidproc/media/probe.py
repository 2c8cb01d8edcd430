from __future__ import annotations

import asyncio
import json
import math
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, Union

from vidproc.core.errors import ProbeError
from vidproc.core.logging import get_logger

from .process import describe_failure, run_tool


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Container-level metadata reported by the inspection tool."""

    duration_seconds: float
    size_bytes: int
    format: str


class MediaProbe(Protocol):
    async def probe(self, path: Path) -> ProbeResult: ...


class FFprobeMediaProbe:
    """Read-only inspection backed by ``ffprobe``."""

    def __init__(self, binary: str = "ffprobe", *, timeout: float | None = None):
        self.binary = binary
        self.timeout = timeout
        self.logger = get_logger(component="ffprobe")

    def build_command(self, path: Path) -> list[str]:
        return [
            self.binary,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_format",
            str(path),
        ]

    async def probe(self, path: Path) -> ProbeResult:
        try:
            proc = await run_tool(self.build_command(path), timeout=self.timeout)
        except (subprocess.CalledProcessError, asyncio.TimeoutError, OSError) as exc:
            self.logger.warning("probe_failed", path=str(path), reason=describe_failure(exc))
            raise ProbeError(f"could not inspect {Path(path).name}: {describe_failure(exc)}") from exc
        result = parse_probe_output(proc.stdout)
        self.logger.info(
            "probe_completed",
            path=str(path),
            duration_seconds=result.duration_seconds,
            size_bytes=result.size_bytes,
            format=result.format,
        )
        return result


def parse_probe_output(raw: Union[str, bytes]) -> ProbeResult:
    """Normalise ``ffprobe -show_format`` JSON into a :class:`ProbeResult`.

    Args:
        raw: The tool's standard output.

    Returns:
        The parsed probe result.

    Raises:
        ProbeError: The output is not JSON of the expected shape, or the
            duration/size fields are missing or not numeric.
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise ProbeError("probe output is not valid JSON") from exc

    if not isinstance(payload, dict) or not isinstance(payload.get("format"), dict):
        raise ProbeError("probe output has no format section")
    format_info: dict[str, Any] = payload["format"]

    duration = _parse_duration(format_info.get("duration"))
    size_bytes = _parse_size(format_info.get("size"))
    format_name = format_info.get("format_name") or format_info.get("format_long_name") or "unknown"

    return ProbeResult(duration_seconds=duration, size_bytes=size_bytes, format=str(format_name))


def _parse_duration(raw_value: Any) -> float:
    if raw_value in (None, "N/A", "") or isinstance(raw_value, bool):
        raise ProbeError("probe output has no usable duration")
    try:
        duration = float(raw_value)
    except (TypeError, ValueError) as exc:
        raise ProbeError(f"duration is not numeric: {raw_value!r}") from exc
    if not math.isfinite(duration) or duration < 0:
        raise ProbeError(f"duration is out of range: {raw_value!r}")
    return duration


def _parse_size(raw_value: Any) -> int:
    if raw_value in (None, "N/A", "") or isinstance(raw_value, bool):
        raise ProbeError("probe output has no usable size")
    try:
        size = int(str(raw_value).strip())
    except (TypeError, ValueError) as exc:
        raise ProbeError(f"size is not numeric: {raw_value!r}") from exc
    if size < 0:
        raise ProbeError(f"size is negative: {raw_value!r}")
    return size


__all__ = ["ProbeResult", "MediaProbe", "FFprobeMediaProbe", "parse_probe_output"]

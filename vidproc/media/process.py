from __future__ import annotations

import asyncio
import subprocess
from typing import Sequence

from vidproc.core.logging import get_logger

logger = get_logger(component="external_tool")


async def run_tool(args: Sequence[str], *, timeout: float | None = None) -> subprocess.CompletedProcess[bytes]:
    """Run an external tool to completion and return the completed process.

    Raises ``subprocess.CalledProcessError`` on a non-zero exit,
    ``FileNotFoundError`` when the binary is missing and ``TimeoutError``
    when ``timeout`` elapses. If the awaiting task is cancelled or times
    out, the child is killed and reaped before the error propagates.
    """
    command = [str(arg) for arg in args]
    logger.info("tool_started", command=command)
    proc = await asyncio.create_subprocess_exec(
        *command,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
    except (asyncio.CancelledError, asyncio.TimeoutError):
        await _terminate(proc)
        logger.warning("tool_aborted", command=command, pid=proc.pid)
        raise

    if proc.returncode != 0:
        logger.error(
            "tool_failed",
            command=command,
            returncode=proc.returncode,
            stderr=stderr.decode("utf-8", errors="replace")[-2000:],
        )
        raise subprocess.CalledProcessError(proc.returncode, command, stdout, stderr)
    return subprocess.CompletedProcess(command, proc.returncode, stdout, stderr)


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        pass
    await proc.wait()


def describe_failure(exc: BaseException) -> str:
    """One-line reason for a failed tool run, suitable for error messages."""
    if isinstance(exc, subprocess.CalledProcessError):
        stderr = exc.stderr.decode("utf-8", errors="replace") if isinstance(exc.stderr, bytes) else (exc.stderr or "")
        last_line = stderr.strip().splitlines()[-1] if stderr.strip() else ""
        return f"exit status {exc.returncode}" + (f": {last_line}" if last_line else "")
    if isinstance(exc, asyncio.TimeoutError):
        return "timed out"
    if isinstance(exc, FileNotFoundError):
        return f"binary not found ({exc.filename or exc})"
    return str(exc) or exc.__class__.__name__


__all__ = ["run_tool", "describe_failure"]

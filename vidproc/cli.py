from __future__ import annotations

import argparse
import asyncio
import shutil
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console

from .core.config import get_settings
from .core.errors import VidprocError
from .media.editor import FFmpegMediaEditor
from .media.probe import FFprobeMediaProbe

console = Console()


def main(argv: Optional[list[str]] = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "check", False):
        _run_environment_check()
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except VidprocError as exc:
        console.print(f"[red]{exc.code}:[/] {exc.message}")
        sys.exit(3)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="vidproc developer CLI")
    parser.add_argument("--check", action="store_true", help="Validate presence of ffmpeg/ffprobe binaries")

    subparsers = parser.add_subparsers(dest="command")

    probe_parser = subparsers.add_parser("probe", help="Inspect a media file and print duration, size and format")
    probe_parser.add_argument("--file", required=True, help="Path to the media file")
    probe_parser.set_defaults(func=_cmd_probe)

    trim_parser = subparsers.add_parser("trim", help="Re-encode the [start, end) range of a file")
    trim_parser.add_argument("--file", required=True, help="Path to the source media file")
    trim_parser.add_argument("--out", required=True, help="Where to write the trimmed file")
    trim_parser.add_argument("--start", type=float, required=True, help="Start offset in seconds")
    trim_parser.add_argument("--end", type=float, required=True, help="End offset in seconds")
    trim_parser.set_defaults(func=_cmd_trim)

    merge_parser = subparsers.add_parser("merge", help="Concatenate files in the given order")
    merge_parser.add_argument("--out", required=True, help="Where to write the merged file")
    merge_parser.add_argument("files", nargs="+", help="Two or more input files")
    merge_parser.set_defaults(func=_cmd_merge)
    return parser


def _resolve_existing(raw: str) -> Path:
    path = Path(raw).expanduser().resolve()
    if not path.exists():
        console.print(f"[red]File not found: {path}[/]")
        sys.exit(2)
    return path


def _cmd_probe(args: argparse.Namespace) -> None:
    settings = get_settings()
    media_path = _resolve_existing(args.file)
    probe = FFprobeMediaProbe(settings.ffprobe_path, timeout=settings.tool_timeout_s)
    result = asyncio.run(probe.probe(media_path))
    console.print_json(
        data={
            "file": str(media_path),
            "duration_seconds": result.duration_seconds,
            "size_bytes": result.size_bytes,
            "format": result.format,
        }
    )


def _cmd_trim(args: argparse.Namespace) -> None:
    settings = get_settings()
    source = _resolve_existing(args.file)
    output = Path(args.out).expanduser().resolve()
    editor = FFmpegMediaEditor(settings.ffmpeg_path, timeout=settings.tool_timeout_s)
    asyncio.run(editor.trim(source, output, args.start, args.end))
    console.print(f"[green]Trimmed {source.name} to {output}[/]")


def _cmd_merge(args: argparse.Namespace) -> None:
    settings = get_settings()
    inputs = [_resolve_existing(raw) for raw in args.files]
    output = Path(args.out).expanduser().resolve()
    editor = FFmpegMediaEditor(settings.ffmpeg_path, timeout=settings.tool_timeout_s)
    asyncio.run(editor.merge(inputs, output))
    console.print(f"[green]Merged {len(inputs)} files into {output}[/]")


def _run_environment_check() -> None:
    """Check for the presence of required external binaries."""
    settings = get_settings()
    results = {
        "ffmpeg": shutil.which(settings.ffmpeg_path) is not None,
        "ffprobe": shutil.which(settings.ffprobe_path) is not None,
    }

    console.rule("[bold]Environment Check")
    for label, ok in results.items():
        console.print(f"[bold]{label}[/]: {'✅' if ok else '❌'}")

    if not all(results.values()):
        console.print("[red]Missing dependencies detected. Install ffmpeg or set VIDPROC_FFMPEG_PATH/VIDPROC_FFPROBE_PATH.[/]")
        sys.exit(1)
    console.print("[green]Environment looks good![/]")


if __name__ == "__main__":
    main()

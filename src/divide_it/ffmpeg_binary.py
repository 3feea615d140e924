"""Locating the ffmpeg and ffprobe executables.

The bundled binary from imageio-ffmpeg is used unless a custom path is
configured or the system copy is preferred. imageio-ffmpeg ships no ffprobe,
so ffprobe is looked up next to the bundled ffmpeg and then on PATH.
"""

from __future__ import annotations

import platform
import shutil
import subprocess
from pathlib import Path
from typing import NamedTuple

from pydantic import BaseModel, Field


class FFmpegInfo(NamedTuple):
    """Information about the ffmpeg installation in use."""

    path: str
    version: str
    available: bool
    source: str  # "custom", "imageio", "system" or "not_found"


class FFmpegConfig(BaseModel):
    """Where to find the transcoder binaries."""

    custom_ffmpeg_path: str | None = Field(
        default=None,
        description="Custom path to FFmpeg executable",
    )
    custom_ffprobe_path: str | None = Field(
        default=None,
        description="Custom path to FFprobe executable",
    )
    prefer_system: bool = Field(
        default=False,
        description="Prefer system FFmpeg over bundled version",
    )


def subprocess_flags() -> int:
    """Creation flags that keep Windows from opening a console per call."""
    if platform.system() == "Windows":
        return subprocess.CREATE_NO_WINDOW
    return 0


def _get_ffmpeg_from_imageio() -> str | None:
    try:
        import imageio_ffmpeg

        return imageio_ffmpeg.get_ffmpeg_exe()
    except (ImportError, RuntimeError):
        return None


def _get_ffprobe_from_imageio() -> str | None:
    ffmpeg_path = _get_ffmpeg_from_imageio()
    if ffmpeg_path is None:
        return None

    name = "ffprobe.exe" if platform.system() == "Windows" else "ffprobe"
    candidate = Path(ffmpeg_path).parent / name
    return str(candidate) if candidate.exists() else None


def _resolve(source_order: list[tuple[str, str | None]]) -> tuple[str, str] | None:
    for source, path in source_order:
        if path:
            return source, path
    return None


def _ffmpeg_candidates(config: FFmpegConfig) -> list[tuple[str, str | None]]:
    custom = config.custom_ffmpeg_path
    candidates: list[tuple[str, str | None]] = []
    if custom and Path(custom).exists():
        candidates.append(("custom", custom))
    if config.prefer_system:
        candidates.append(("system", shutil.which("ffmpeg")))
    candidates.append(("imageio", _get_ffmpeg_from_imageio()))
    candidates.append(("system", shutil.which("ffmpeg")))
    return candidates


def get_ffmpeg_path(config: FFmpegConfig | None = None) -> str | None:
    """Get the path to the ffmpeg executable.

    Search order: configured custom path, system PATH (only when
    ``prefer_system``), imageio-ffmpeg, system PATH.

    Args:
        config: Optional binary configuration

    Returns:
        Path to ffmpeg, or None if not found
    """
    found = _resolve(_ffmpeg_candidates(config or FFmpegConfig()))
    return found[1] if found else None


def get_ffprobe_path(config: FFmpegConfig | None = None) -> str | None:
    """Get the path to the ffprobe executable.

    Args:
        config: Optional binary configuration

    Returns:
        Path to ffprobe, or None if not found
    """
    config = config or FFmpegConfig()

    if config.custom_ffprobe_path and Path(config.custom_ffprobe_path).exists():
        return config.custom_ffprobe_path

    if config.prefer_system:
        system_path = shutil.which("ffprobe")
        if system_path:
            return system_path

    return _get_ffprobe_from_imageio() or shutil.which("ffprobe")


def get_ffmpeg_info(config: FFmpegConfig | None = None) -> FFmpegInfo:
    """Describe the ffmpeg binary that would be used.

    Args:
        config: Optional binary configuration

    Returns:
        FFmpegInfo with path, version, availability and source
    """
    found = _resolve(_ffmpeg_candidates(config or FFmpegConfig()))
    if found is None:
        return FFmpegInfo(path="", version="", available=False, source="not_found")

    source, path = found
    return FFmpegInfo(path=path, version=_get_ffmpeg_version(path) or "unknown", available=True, source=source)


def _get_ffmpeg_version(ffmpeg_path: str) -> str | None:
    try:
        result = subprocess.run(
            [ffmpeg_path, "-version"],
            capture_output=True,
            text=True,
            timeout=10,
            creationflags=subprocess_flags(),
        )
    except (subprocess.TimeoutExpired, OSError):
        return None

    if result.returncode != 0:
        return None

    # e.g. "ffmpeg version 6.0-static https://johnvansickle.com/ffmpeg/"
    first_line = result.stdout.split("\n")[0]
    if "version" in first_line:
        tail = first_line.split("version", 1)[1].split()
        if tail:
            return tail[0]
    return first_line.strip() or None

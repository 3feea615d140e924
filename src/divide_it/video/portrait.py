"""Portrait letterboxing for short-form platforms.

Segments are scaled to fit inside a fixed portrait frame (1080x1920 by
default) without cropping, then padded with a solid color to the exact
frame size.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from divide_it.config import PortraitSettings


@dataclass
class PortraitConfig:
    """Output frame and encoder settings for extracted segments.

    Attributes:
        width: Output width in pixels
        height: Output height in pixels
        pad_color: Letterbox color
        video_codec: Output video codec
        video_crf: Quality level (lower = better)
        video_preset: Encoding speed preset
        audio_codec: Output audio codec
        audio_bitrate: Audio bitrate
        faststart: Move the moov atom to the front for web playback
    """

    width: int = 1080
    height: int = 1920
    pad_color: str = "black"
    video_codec: str = "libx264"
    video_crf: int = 23
    video_preset: str = "fast"
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"
    faststart: bool = True

    @classmethod
    def from_settings(cls, settings: PortraitSettings) -> "PortraitConfig":
        return cls(
            width=settings.width,
            height=settings.height,
            pad_color=settings.pad_color,
            video_codec=settings.video_codec,
            video_crf=settings.video_crf,
            video_preset=settings.video_preset,
            audio_codec=settings.audio_codec,
            audio_bitrate=settings.audio_bitrate,
        )

    @property
    def dimensions(self) -> Tuple[int, int]:
        return (self.width, self.height)


def build_letterbox_filter(config: PortraitConfig) -> str:
    """Scale-to-fit, pad and reset the sample aspect ratio."""
    w, h = config.dimensions
    return (
        f"scale={w}:{h}:force_original_aspect_ratio=decrease,"
        f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2:color={config.pad_color},"
        f"setsar=1"
    )


def build_encoding_args(config: PortraitConfig, audio: bool = True) -> list[str]:
    """Encoder arguments shared by every segment render."""
    args = [
        "-c:v", config.video_codec,
        "-preset", config.video_preset,
        "-crf", str(config.video_crf),
        "-pix_fmt", "yuv420p",
    ]
    if audio:
        args.extend(["-c:a", config.audio_codec, "-b:a", config.audio_bitrate])
    else:
        args.append("-an")
    if config.faststart:
        args.extend(["-movflags", "+faststart"])
    return args

"""Tests for portrait letterboxing helpers."""

from divide_it.config import PortraitSettings
from divide_it.video.portrait import (
    PortraitConfig,
    build_encoding_args,
    build_letterbox_filter,
)


class TestPortraitConfig:
    """Tests for PortraitConfig dataclass."""

    def test_defaults(self):
        """Default is a 1080x1920 H.264 frame."""
        config = PortraitConfig()

        assert config.dimensions == (1080, 1920)
        assert config.pad_color == "black"
        assert config.faststart is True

    def test_from_settings(self):
        """Settings map field by field."""
        settings = PortraitSettings(width=720, height=1280, pad_color="#101010", video_crf=20)

        config = PortraitConfig.from_settings(settings)

        assert config.dimensions == (720, 1280)
        assert config.pad_color == "#101010"
        assert config.video_crf == 20


class TestFilters:
    """Tests for ffmpeg argument builders."""

    def test_letterbox_filter(self):
        """Scale to fit, centered pad, square pixels."""
        assert build_letterbox_filter(PortraitConfig()) == (
            "scale=1080:1920:force_original_aspect_ratio=decrease,"
            "pad=1080:1920:(ow-iw)/2:(oh-ih)/2:color=black,"
            "setsar=1"
        )

    def test_encoding_args(self):
        args = build_encoding_args(PortraitConfig())

        assert args == [
            "-c:v", "libx264",
            "-preset", "fast",
            "-crf", "23",
            "-pix_fmt", "yuv420p",
            "-c:a", "aac",
            "-b:a", "128k",
            "-movflags", "+faststart",
        ]

    def test_encoding_args_without_audio(self):
        args = build_encoding_args(PortraitConfig(faststart=False), audio=False)

        assert "-an" in args
        assert "-c:a" not in args
        assert "-movflags" not in args

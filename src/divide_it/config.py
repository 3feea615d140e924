"""Configuration for divide-it.

A single ``Settings`` object is built once at start-up (from the environment
and an optional JSON file) and handed to every component that needs it.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from divide_it.errors import ConfigurationError
from divide_it.ffmpeg_binary import FFmpegConfig
from divide_it.storage import atomic_write_json

SUMMARY_STYLES = ("concise", "detailed", "bullet-points", "social-media")
OVERLAY_POSITIONS = ("top", "bottom", "center")

# Never written by save_settings
API_KEY_FIELDS = ("openai_api_key", "anthropic_api_key", "assemblyai_api_key", "deepgram_api_key")


class PortraitSettings(BaseModel):
    """Fixed output format for every extracted segment."""

    width: int = Field(default=1080, gt=0)
    height: int = Field(default=1920, gt=0)
    # Letterbox color, any ffmpeg color spec
    pad_color: str = "black"
    video_codec: str = "libx264"
    video_preset: str = "fast"
    video_crf: int = 23
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"
    # Seconds before a single ffmpeg call is abandoned
    timeout: int = 600


class OverlaySettings(BaseModel):
    """Title box appearance."""

    # TrueType font file; falls back to DejaVuSans, then Pillow's default
    font_path: str | None = None
    font_size: int = Field(default=56, gt=0)
    font_color: str = "#FFFFFF"
    background_color: str = "#000000"
    background_opacity: float = Field(default=0.8, ge=0.0, le=1.0)
    padding: int = Field(default=25, ge=0)
    # Box may use at most this share of the frame width
    max_width_fraction: float = Field(default=0.9, gt=0.0, le=1.0)
    position: str = "top"

    @field_validator("position")
    @classmethod
    def _check_position(cls, value: str) -> str:
        if value not in OVERLAY_POSITIONS:
            raise ValueError(f"position must be one of {', '.join(OVERLAY_POSITIONS)}")
        return value


class EnrichmentSettings(BaseModel):
    """Which enrichment stages run, and how."""

    transcribe: bool = True
    summarize: bool = True
    social_copy: bool = True
    overlay: bool = True
    # Spoken-language hint for transcription (ISO 639-1), None = autodetect
    language: str | None = None
    # Vocabulary hint passed to the transcriber
    prompt: str | None = None
    summary_style: str = "concise"
    summary_max_words: int = Field(default=100, gt=0)
    social_max_words: int = Field(default=150, gt=0)

    @field_validator("summary_style")
    @classmethod
    def _check_style(cls, value: str) -> str:
        if value not in SUMMARY_STYLES:
            raise ValueError(f"summary_style must be one of {', '.join(SUMMARY_STYLES)}")
        return value


class ProviderSettings(BaseModel):
    """External provider credentials and ranking."""

    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    assemblyai_api_key: str | None = None
    deepgram_api_key: str | None = None
    ollama_base_url: str = "http://localhost:11434"
    # First available provider wins
    transcription_order: list[str] = Field(
        default_factory=lambda: ["whisper_api", "assemblyai", "deepgram", "whisper_local"]
    )
    llm_order: list[str] = Field(default_factory=lambda: ["openai", "claude", "ollama"])
    whisper_api_model: str = "whisper-1"
    whisper_local_model: str = "base"
    assemblyai_speech_model: str | None = None
    deepgram_model: str = "nova-2"
    openai_model: str | None = None  # None = provider default
    claude_model: str | None = None
    ollama_model: str | None = None
    max_retries: int = Field(default=3, ge=1)
    timeout: int = 120


class LoggingSettings(BaseModel):
    """Console/file logging options."""

    verbosity: int = Field(default=1, ge=0, le=3)
    log_file: str | None = None
    json_format: bool = False


class Settings(BaseModel):
    """Top-level configuration."""

    output_root: Path = Path("processed")
    ffmpeg: FFmpegConfig = Field(default_factory=FFmpegConfig)
    portrait: PortraitSettings = Field(default_factory=PortraitSettings)
    overlay: OverlaySettings = Field(default_factory=OverlaySettings)
    enrichment: EnrichmentSettings = Field(default_factory=EnrichmentSettings)
    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        base: "Settings | None" = None,
    ) -> "Settings":
        """Overlay environment variables on top of a base configuration.

        Recognized variables: ``OPENAI_API_KEY``, ``ANTHROPIC_API_KEY``,
        ``ASSEMBLYAI_API_KEY``, ``DEEPGRAM_API_KEY``,
        ``OLLAMA_BASE_URL``, ``DIVIDE_IT_OUTPUT_ROOT``, ``DIVIDE_IT_LANGUAGE``,
        ``DIVIDE_IT_FONT``, ``DIVIDE_IT_TRANSCRIPTION_ORDER`` and
        ``DIVIDE_IT_LLM_ORDER`` (comma separated).

        Args:
            environ: Mapping to read from, defaults to ``os.environ``
            base: Settings to start from, defaults to built-in defaults

        Returns:
            New Settings instance
        """
        env = os.environ if environ is None else environ
        settings = (base or cls()).model_copy(deep=True)

        if env.get("OPENAI_API_KEY"):
            settings.providers.openai_api_key = env["OPENAI_API_KEY"]
        if env.get("ANTHROPIC_API_KEY"):
            settings.providers.anthropic_api_key = env["ANTHROPIC_API_KEY"]
        if env.get("ASSEMBLYAI_API_KEY"):
            settings.providers.assemblyai_api_key = env["ASSEMBLYAI_API_KEY"]
        if env.get("DEEPGRAM_API_KEY"):
            settings.providers.deepgram_api_key = env["DEEPGRAM_API_KEY"]
        if env.get("OLLAMA_BASE_URL"):
            settings.providers.ollama_base_url = env["OLLAMA_BASE_URL"]
        if env.get("DIVIDE_IT_OUTPUT_ROOT"):
            settings.output_root = Path(env["DIVIDE_IT_OUTPUT_ROOT"])
        if env.get("DIVIDE_IT_LANGUAGE"):
            settings.enrichment.language = env["DIVIDE_IT_LANGUAGE"]
        if env.get("DIVIDE_IT_FONT"):
            settings.overlay.font_path = env["DIVIDE_IT_FONT"]
        if env.get("DIVIDE_IT_TRANSCRIPTION_ORDER"):
            settings.providers.transcription_order = _split_list(env["DIVIDE_IT_TRANSCRIPTION_ORDER"])
        if env.get("DIVIDE_IT_LLM_ORDER"):
            settings.providers.llm_order = _split_list(env["DIVIDE_IT_LLM_ORDER"])

        return settings


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_settings(path: Path | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    """Load settings from an optional JSON file, then apply the environment.

    Args:
        path: JSON config file; skipped when None
        environ: Environment mapping, defaults to ``os.environ``

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If the file is missing, not JSON, or invalid
    """
    base = None
    if path is not None:
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")
        try:
            with open(path, encoding="utf-8") as f:
                data: Any = json.load(f)
            base = Settings.model_validate(data)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid settings in {path}: {e}") from e

    return Settings.from_env(environ, base=base)


def save_settings(path: Path, settings: Settings) -> Path:
    """Write settings to a JSON file atomically.

    API keys are left out so the file can be shared.

    Args:
        path: Target file
        settings: Settings to save

    Returns:
        The path written
    """
    data = settings.model_dump(mode="json")
    for key in API_KEY_FIELDS:
        data["providers"].pop(key, None)
    atomic_write_json(path, data)
    return path

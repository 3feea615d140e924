"""OpenAI Whisper API transcription provider."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from divide_it.errors import ConfigurationError, RetryConfig, retry_with_backoff, wrap_external_error
from divide_it.ffmpeg import FFmpegWrapper
from divide_it.logging import get_logger
from divide_it.transcription.base import (
    TranscriptionOptions,
    TranscriptionProvider,
    TranscriptionResult,
    TranscriptionSegment,
)
from divide_it.transcription.hosted import extracted_audio

logger = get_logger(__name__)


class WhisperAPIProvider(TranscriptionProvider):
    """Transcription through OpenAI's hosted Whisper model.

    Requires an API key, passed in from ``Settings.providers``.
    Files the API will not take (wrong container or over 25 MB) are first
    reduced to mono 16 kHz MP3 audio.
    """

    MAX_FILE_SIZE_MB = 25

    SUPPORTED_FORMATS = {"mp3", "mp4", "mpeg", "mpga", "m4a", "wav", "webm"}

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "whisper-1",
        transcoder: FFmpegWrapper | None = None,
        max_retries: int = 3,
        timeout: int = 120,
    ):
        """Initialize the provider.

        Args:
            api_key: OpenAI API key
            model: Hosted model name
            transcoder: Used to extract audio when needed; created lazily
            max_retries: Attempts per API call
            timeout: Request timeout in seconds
        """
        self._api_key = api_key
        self._model = model
        self._transcoder = transcoder
        self._retry = RetryConfig(max_attempts=max_retries)
        self._timeout = timeout
        self._client: Any = None

    @property
    def name(self) -> str:
        return "whisper_api"

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client

        if not self._api_key:
            raise ConfigurationError(
                "OpenAI API key not configured. "
                "Set OPENAI_API_KEY or providers.openai_api_key in the config."
            )

        from openai import OpenAI

        self._client = OpenAI(api_key=self._api_key, timeout=self._timeout)
        return self._client

    def is_available(self) -> bool:
        if not self._api_key:
            return False
        try:
            import openai  # noqa: F401
        except ImportError:
            return False
        return True

    def _needs_extraction(self, media_path: Path) -> bool:
        suffix = media_path.suffix.lower().lstrip(".")
        size_mb = media_path.stat().st_size / (1024 * 1024)
        return suffix not in self.SUPPORTED_FORMATS or size_mb > self.MAX_FILE_SIZE_MB

    def transcribe(
        self,
        media_path: Path | str,
        options: TranscriptionOptions | None = None,
    ) -> TranscriptionResult:
        """Transcribe a file with the Whisper API.

        Args:
            media_path: Audio or video file
            options: Language, prompt and temperature hints

        Returns:
            TranscriptionResult

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigurationError: If no API key is configured
            DivideItError: Wrapped API or extraction failure
        """
        media_path = Path(media_path)
        if not media_path.exists():
            raise FileNotFoundError(f"Media file not found: {media_path}")

        options = options or TranscriptionOptions()
        client = self._get_client()

        if not self._needs_extraction(media_path):
            response = self._call_api(client, media_path, options)
        else:
            with extracted_audio(media_path, self._transcoder) as audio_path:
                response = self._call_api(client, audio_path, options)

        return TranscriptionResult(
            text=(getattr(response, "text", "") or "").strip(),
            language=getattr(response, "language", None) or options.language,
            duration=float(getattr(response, "duration", 0.0) or 0.0),
            segments=self._parse_segments(response),
            provider=self.name,
            model=self._model,
        )

    def _call_api(self, client: Any, audio_path: Path, options: TranscriptionOptions) -> Any:
        @retry_with_backoff(self._retry)
        def call() -> Any:
            kwargs: dict[str, Any] = {"model": self._model, "response_format": "verbose_json"}
            if options.language:
                kwargs["language"] = options.language
            if options.prompt:
                kwargs["prompt"] = options.prompt
            if options.temperature is not None:
                kwargs["temperature"] = options.temperature
            try:
                with open(audio_path, "rb") as audio_file:
                    return client.audio.transcriptions.create(file=audio_file, **kwargs)
            except Exception as e:
                raise wrap_external_error(e, "OpenAI Whisper", "transcribe") from e

        logger.info(f"Transcribing {audio_path.name} via Whisper API")
        return call()

    def _parse_segments(self, response: Any) -> list[TranscriptionSegment]:
        segments = []
        for seg in getattr(response, "segments", None) or []:
            segments.append(
                TranscriptionSegment(
                    text=str(_field(seg, "text", "")).strip(),
                    start=float(_field(seg, "start", 0.0)),
                    end=float(_field(seg, "end", 0.0)),
                )
            )
        return segments


def _field(item: Any, key: str, default: Any) -> Any:
    # SDK objects in newer releases, plain dicts in older ones
    if isinstance(item, dict):
        return item.get(key, default)
    return getattr(item, key, default)

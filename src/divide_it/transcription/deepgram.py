"""Deepgram transcription provider (pre-recorded ``/v1/listen`` endpoint)."""

from __future__ import annotations

import urllib.parse
import urllib.request
from pathlib import Path
from typing import Any, Callable

from divide_it.errors import ConfigurationError, RetryConfig, retry_with_backoff
from divide_it.ffmpeg import FFmpegWrapper
from divide_it.logging import get_logger
from divide_it.transcription.base import (
    TranscriptionOptions,
    TranscriptionProvider,
    TranscriptionResult,
    TranscriptionSegment,
)
from divide_it.transcription.hosted import extracted_audio, request_json

logger = get_logger(__name__)

API_URL = "https://api.deepgram.com/v1/listen"


class DeepgramProvider(TranscriptionProvider):
    """Transcription through Deepgram's hosted API.

    The audio is posted in a single synchronous request. Comma-separated
    ``prompt`` terms are sent as keywords.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "nova-2",
        transcoder: FFmpegWrapper | None = None,
        max_retries: int = 3,
        timeout: int = 120,
        sleep: Callable[[float], None] | None = None,
    ):
        self._api_key = api_key
        self._model = model
        self._transcoder = transcoder
        self._retry = RetryConfig(max_attempts=max_retries)
        self._timeout = timeout
        self._sleep = sleep

    @property
    def name(self) -> str:
        return "deepgram"

    def is_available(self) -> bool:
        return bool(self._api_key)

    def _query(self, options: TranscriptionOptions) -> str:
        params: list[tuple[str, str]] = [
            ("model", self._model),
            ("punctuate", "true"),
            ("smart_format", "true"),
        ]
        if options.language:
            params.append(("language", options.language))
        else:
            params.append(("detect_language", "true"))
        if options.prompt:
            params.extend(("keywords", term.strip()) for term in options.prompt.split(",") if term.strip())
        return urllib.parse.urlencode(params)

    def transcribe(
        self,
        media_path: Path | str,
        options: TranscriptionOptions | None = None,
    ) -> TranscriptionResult:
        """Transcribe a file with Deepgram.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigurationError: If no API key is configured
            DivideItError: Wrapped HTTP failure
        """
        media_path = Path(media_path)
        if not media_path.exists():
            raise FileNotFoundError(f"Media file not found: {media_path}")
        if not self._api_key:
            raise ConfigurationError(
                "Deepgram API key not configured. "
                "Set DEEPGRAM_API_KEY or providers.deepgram_api_key in the config."
            )

        options = options or TranscriptionOptions()
        logger.info(f"Transcribing {media_path.name} via Deepgram")

        with extracted_audio(media_path, self._transcoder) as audio_path:
            request = urllib.request.Request(
                f"{API_URL}?{self._query(options)}",
                data=audio_path.read_bytes(),
                headers={"Authorization": f"Token {self._api_key}", "Content-Type": "audio/mpeg"},
                method="POST",
            )

            @retry_with_backoff(self._retry, sleep=self._sleep)
            def call() -> dict[str, Any]:
                return request_json(request, "Deepgram", self._timeout)

            data = call()

        return self._parse(data, options)

    def _parse(self, data: dict[str, Any], options: TranscriptionOptions) -> TranscriptionResult:
        channels = (data.get("results") or {}).get("channels") or [{}]
        channel = channels[0]
        alternatives = channel.get("alternatives") or [{}]
        best = alternatives[0]

        return TranscriptionResult(
            text=(best.get("transcript") or "").strip(),
            language=channel.get("detected_language") or options.language,
            duration=float((data.get("metadata") or {}).get("duration") or 0.0),
            segments=[
                TranscriptionSegment(
                    text=str(word.get("punctuated_word") or word.get("word", "")),
                    start=float(word.get("start", 0.0)),
                    end=float(word.get("end", 0.0)),
                )
                for word in best.get("words") or []
            ],
            provider=self.name,
            model=self._model,
        )

"""AssemblyAI transcription provider.

Three calls against the v2 REST API: upload the audio, create a transcript
job, then poll the job until it completes.
"""

from __future__ import annotations

import json
import urllib.request
from pathlib import Path
from typing import Any, Callable

from divide_it.errors import ConfigurationError, ExternalServiceError, RetryConfig, retry_with_backoff
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

API_URL = "https://api.assemblyai.com/v2"


class AssemblyAIProvider(TranscriptionProvider):
    """Transcription through AssemblyAI's hosted API.

    A vocabulary ``prompt`` is sent as ``word_boost`` terms, split on commas.
    Word timings come back in milliseconds and are reported in seconds.
    """

    def __init__(
        self,
        api_key: str | None = None,
        speech_model: str | None = None,
        transcoder: FFmpegWrapper | None = None,
        max_retries: int = 3,
        timeout: int = 120,
        poll_interval: float = 3.0,
        max_polls: int = 200,
        sleep: Callable[[float], None] | None = None,
    ):
        """Initialize the provider.

        Args:
            api_key: AssemblyAI API key
            speech_model: Model tier, the service default when None
            transcoder: Used to extract the audio track; created lazily
            max_retries: Attempts per HTTP call
            timeout: Per-request timeout in seconds
            poll_interval: Seconds between job status checks
            max_polls: Status checks before giving up on a job
            sleep: Sleep function, ``time.sleep`` when None
        """
        self._api_key = api_key
        self._speech_model = speech_model
        self._transcoder = transcoder
        self._retry = RetryConfig(max_attempts=max_retries)
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._max_polls = max_polls
        self._sleep = sleep

    @property
    def name(self) -> str:
        return "assemblyai"

    def is_available(self) -> bool:
        return bool(self._api_key)

    def _call(self, request: urllib.request.Request) -> dict[str, Any]:
        @retry_with_backoff(self._retry, sleep=self._sleep)
        def call() -> dict[str, Any]:
            return request_json(request, "AssemblyAI", self._timeout)

        return call()

    def _wait(self, seconds: float) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
        else:
            import time

            time.sleep(seconds)

    def transcribe(
        self,
        media_path: Path | str,
        options: TranscriptionOptions | None = None,
    ) -> TranscriptionResult:
        """Transcribe a file with AssemblyAI.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigurationError: If no API key is configured
            DivideItError: Failed job, HTTP error or timeout
        """
        media_path = Path(media_path)
        if not media_path.exists():
            raise FileNotFoundError(f"Media file not found: {media_path}")
        if not self._api_key:
            raise ConfigurationError(
                "AssemblyAI API key not configured. "
                "Set ASSEMBLYAI_API_KEY or providers.assemblyai_api_key in the config."
            )

        options = options or TranscriptionOptions()
        logger.info(f"Transcribing {media_path.name} via AssemblyAI")

        with extracted_audio(media_path, self._transcoder) as audio_path:
            upload = self._call(
                urllib.request.Request(
                    f"{API_URL}/upload",
                    data=audio_path.read_bytes(),
                    headers={"authorization": self._api_key, "content-type": "application/octet-stream"},
                    method="POST",
                )
            )

        job = self._call(
            urllib.request.Request(
                f"{API_URL}/transcript",
                data=json.dumps(self._job_payload(upload["upload_url"], options)).encode("utf-8"),
                headers={"authorization": self._api_key, "content-type": "application/json"},
                method="POST",
            )
        )
        transcript = self._poll(job["id"])

        return TranscriptionResult(
            text=(transcript.get("text") or "").strip(),
            language=transcript.get("language_code") or options.language,
            duration=float(transcript.get("audio_duration") or 0.0),
            segments=[
                TranscriptionSegment(
                    text=str(word.get("text", "")),
                    start=word.get("start", 0) / 1000,
                    end=word.get("end", 0) / 1000,
                )
                for word in transcript.get("words") or []
            ],
            provider=self.name,
            model=transcript.get("speech_model") or self._speech_model or "",
        )

    def _job_payload(self, audio_url: str, options: TranscriptionOptions) -> dict[str, Any]:
        payload: dict[str, Any] = {"audio_url": audio_url}
        if options.language:
            payload["language_code"] = options.language
        else:
            payload["language_detection"] = True
        if options.prompt:
            terms = [term.strip() for term in options.prompt.split(",") if term.strip()]
            if terms:
                payload["word_boost"] = terms
        if self._speech_model:
            payload["speech_model"] = self._speech_model
        return payload

    def _poll(self, transcript_id: str) -> dict[str, Any]:
        request = urllib.request.Request(
            f"{API_URL}/transcript/{transcript_id}",
            headers={"authorization": self._api_key},
            method="GET",
        )
        for _ in range(self._max_polls):
            transcript = self._call(request)
            status = transcript.get("status")
            if status == "completed":
                return transcript
            if status == "error":
                raise ExternalServiceError(
                    f"AssemblyAI transcription failed: {transcript.get('error')}",
                    context={"service": "AssemblyAI", "transcript_id": transcript_id},
                    recoverable=False,
                )
            logger.debug(f"AssemblyAI job {transcript_id} is {status}")
            self._wait(self._poll_interval)

        raise ExternalServiceError(
            f"AssemblyAI transcription {transcript_id} did not finish "
            f"after {self._max_polls} status checks",
            context={"service": "AssemblyAI", "transcript_id": transcript_id},
            recoverable=False,
        )

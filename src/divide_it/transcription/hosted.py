"""Plumbing shared by the hosted speech-to-text providers.

AssemblyAI and Deepgram are called over plain HTTP, the same way the Ollama
summarizer is. Every hosted provider uploads compact mono audio rather than
the full portrait video.
"""

from __future__ import annotations

import json
import os
import tempfile
import urllib.error
import urllib.request
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from divide_it.errors import ExternalServiceError, RateLimitError, TransientError
from divide_it.ffmpeg import FFmpegWrapper


@contextmanager
def extracted_audio(media_path: Path, transcoder: FFmpegWrapper | None = None) -> Iterator[Path]:
    """Yield a temporary MP3 with the speech track of ``media_path``.

    The file is removed when the block exits.
    """
    transcoder = transcoder or FFmpegWrapper()
    fd, name = tempfile.mkstemp(suffix=".mp3", prefix="speech_")
    os.close(fd)
    audio_path = Path(name)
    try:
        transcoder.extract_audio(media_path, audio_path)
        yield audio_path
    finally:
        audio_path.unlink(missing_ok=True)


def request_json(request: urllib.request.Request, service: str, timeout: float) -> dict[str, Any]:
    """Send ``request`` and decode the JSON reply.

    Raises:
        RateLimitError: On HTTP 429
        ExternalServiceError: On other HTTP errors (recoverable for 5xx) or a
            reply that is not JSON
        TransientError: If the service cannot be reached
    """
    context = {"service": service}
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            return json.loads(response.read().decode("utf-8"))
    except urllib.error.HTTPError as e:
        if e.code == 429:
            retry_after = e.headers.get("Retry-After") if e.headers else None
            raise RateLimitError(
                f"{service} rate limit exceeded",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else 60.0,
                context=context,
            ) from e
        raise ExternalServiceError(
            f"{service} API error: {e.code} {e.reason}",
            context=context,
            recoverable=e.code >= 500,
        ) from e
    except (urllib.error.URLError, TimeoutError) as e:
        raise TransientError(f"Cannot reach {service}: {e}", context=context) from e
    except json.JSONDecodeError as e:
        raise ExternalServiceError(
            f"Invalid response from {service}: {e}", context=context, recoverable=False
        ) from e

"""Speech-to-text providers.

Hosted Whisper through the OpenAI API, AssemblyAI and Deepgram over HTTP,
or a local model through faster-whisper.
"""

from divide_it.transcription.assemblyai import AssemblyAIProvider
from divide_it.transcription.base import (
    TranscriptionOptions,
    TranscriptionProvider,
    TranscriptionResult,
    TranscriptionSegment,
)
from divide_it.transcription.deepgram import DeepgramProvider
from divide_it.transcription.whisper_api import WhisperAPIProvider
from divide_it.transcription.whisper_local import WhisperLocalProvider

__all__ = [
    "AssemblyAIProvider",
    "DeepgramProvider",
    "TranscriptionOptions",
    "TranscriptionProvider",
    "TranscriptionResult",
    "TranscriptionSegment",
    "WhisperAPIProvider",
    "WhisperLocalProvider",
]

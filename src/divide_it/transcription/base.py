"""Base classes for transcription providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class TranscriptionOptions:
    """Per-call hints for the speech-to-text engine.

    Attributes:
        language: ISO 639-1 code; None lets the engine detect it
        prompt: Vocabulary or style hint
        temperature: Sampling temperature, engine default when None
    """

    language: str | None = None
    prompt: str | None = None
    temperature: float | None = None


@dataclass
class TranscriptionSegment:
    """A timed span of transcribed speech."""

    text: str
    start: float
    end: float

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "start": self.start, "end": self.end}


@dataclass
class TranscriptionResult:
    """Transcript of one media file.

    Attributes:
        text: Full transcript
        language: Detected or requested language
        duration: Audio duration in seconds, 0 when unknown
        segments: Timed spans, when the engine reports them
        provider: Provider name
        model: Model name
    """

    text: str
    language: str | None = None
    duration: float = 0.0
    segments: list[TranscriptionSegment] = field(default_factory=list)
    provider: str = ""
    model: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "language": self.language,
            "duration": self.duration,
            "segments": [s.to_dict() for s in self.segments],
            "provider": self.provider,
            "model": self.model,
        }


class TranscriptionProvider(ABC):
    """Interface every speech-to-text backend implements."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name."""

    @abstractmethod
    def transcribe(
        self,
        media_path: Path | str,
        options: TranscriptionOptions | None = None,
    ) -> TranscriptionResult:
        """Transcribe an audio or video file.

        Args:
            media_path: File to transcribe
            options: Language, prompt and temperature hints

        Returns:
            TranscriptionResult with the transcript text
        """

    def is_available(self) -> bool:
        """Whether the provider is installed and configured."""
        return True

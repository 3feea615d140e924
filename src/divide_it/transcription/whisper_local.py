"""Local Whisper transcription through faster-whisper.

faster-whisper is an optional extra (``pip install divide-it[local]``); the
provider reports itself unavailable when it is not installed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from divide_it.errors import ConfigurationError
from divide_it.logging import get_logger
from divide_it.transcription.base import (
    TranscriptionOptions,
    TranscriptionProvider,
    TranscriptionResult,
    TranscriptionSegment,
)

logger = get_logger(__name__)


class WhisperLocalProvider(TranscriptionProvider):
    """Runs a Whisper model on this machine. No API costs."""

    AVAILABLE_MODELS = ["tiny", "base", "small", "medium", "large-v2", "large-v3"]

    def __init__(
        self,
        model: str = "base",
        device: str = "auto",
        compute_type: str = "default",
    ):
        """Initialize the provider. The model loads on first use.

        Args:
            model: Model size or a path to a converted model
            device: "auto", "cpu" or "cuda"
            compute_type: CTranslate2 compute type, e.g. "int8"
        """
        self._model_name = model
        self._device = device
        self._compute_type = compute_type
        self._model: Any = None

    @property
    def name(self) -> str:
        return "whisper_local"

    def is_available(self) -> bool:
        try:
            import faster_whisper  # noqa: F401
        except ImportError:
            return False
        return True

    def _get_model(self) -> Any:
        if self._model is not None:
            return self._model

        try:
            from faster_whisper import WhisperModel
        except ImportError as e:
            raise ConfigurationError(
                "faster-whisper is required for local transcription. "
                "Install it with: pip install divide-it[local]"
            ) from e

        logger.info(f"Loading Whisper model '{self._model_name}'")
        self._model = WhisperModel(
            self._model_name,
            device=self._device,
            compute_type=self._compute_type,
        )
        return self._model

    def transcribe(
        self,
        media_path: Path | str,
        options: TranscriptionOptions | None = None,
    ) -> TranscriptionResult:
        """Transcribe a file locally.

        Args:
            media_path: Audio or video file; ffmpeg decoding is built in
            options: Language, prompt and temperature hints

        Returns:
            TranscriptionResult
        """
        media_path = Path(media_path)
        if not media_path.exists():
            raise FileNotFoundError(f"Media file not found: {media_path}")

        options = options or TranscriptionOptions()
        model = self._get_model()

        kwargs: dict[str, Any] = {"vad_filter": True}
        if options.temperature is not None:
            kwargs["temperature"] = options.temperature
        segments_iter, info = model.transcribe(
            str(media_path),
            language=options.language,
            initial_prompt=options.prompt or None,
            **kwargs,
        )

        # The iterator is lazy; decoding happens here
        segments = [
            TranscriptionSegment(text=seg.text.strip(), start=seg.start, end=seg.end)
            for seg in segments_iter
        ]

        return TranscriptionResult(
            text=" ".join(s.text for s in segments if s.text),
            language=getattr(info, "language", None) or options.language,
            duration=float(getattr(info, "duration", 0.0) or 0.0),
            segments=segments,
            provider=self.name,
            model=self._model_name,
        )

"""Per-segment enrichment: transcribe, summarize, write social copy, add a title.

Stages run strictly in order and each one depends on the previous stage's
output. A failing stage is logged and recorded in ``artifact.stage_errors``;
it never aborts the request, and later stages that need its output are
skipped. Each text output is written to a sibling file next to the segment
before the matching artifact field is set.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable

from divide_it.config import EnrichmentSettings
from divide_it.errors import EnrichmentStageError, ResourceError, ValidationError
from divide_it.llm.base import SummarizationProvider
from divide_it.logging import get_logger, log_operation_complete, log_operation_failed
from divide_it.models import SegmentArtifact
from divide_it.overlay.compositor import TextOverlayCompositor
from divide_it.storage import OriginalStore, atomic_write
from divide_it.transcription.base import TranscriptionOptions, TranscriptionProvider

logger = get_logger(__name__)

STAGE_TRANSCRIBE = "transcribe"
STAGE_SUMMARIZE = "summarize"
STAGE_SOCIAL_COPY = "social_copy"
STAGE_OVERLAY = "overlay"

# Directory, inside each asset directory, holding pre-overlay copies
ORIGINALS_DIR = ".originals"


def sibling_path(video_path: Path, kind: str) -> Path:
    """``segment_1_ab12cd34.mp4`` -> ``segment_1_ab12cd34_<kind>.txt``."""
    return video_path.with_name(f"{video_path.stem}_{kind}.txt")


class EnrichmentPipeline:
    """Runs the enrichment stages on one artifact at a time.

    Any collaborator may be None, in which case the stages that need it are
    skipped.
    """

    def __init__(
        self,
        transcriber: TranscriptionProvider | None = None,
        summarizer: SummarizationProvider | None = None,
        compositor: TextOverlayCompositor | None = None,
        settings: EnrichmentSettings | None = None,
    ):
        self.transcriber = transcriber
        self.summarizer = summarizer
        self.compositor = compositor
        self.settings = settings or EnrichmentSettings()

    def enrich(self, artifact: SegmentArtifact) -> SegmentArtifact:
        """Run every enabled stage on ``artifact``. Never raises.

        Args:
            artifact: Freshly extracted segment

        Returns:
            The same artifact, with whichever fields succeeded filled in
        """
        log = logger.with_context(segment=artifact.window.index)
        settings = self.settings

        if settings.transcribe and self.transcriber is not None:
            self._run_stage(STAGE_TRANSCRIBE, artifact, self._transcribe)

        if (
            settings.summarize
            and self.summarizer is not None
            and artifact.transcript_text
            and artifact.transcript_text.strip()
        ):
            self._run_stage(STAGE_SUMMARIZE, artifact, self._summarize)
        elif settings.summarize and self.summarizer is not None and artifact.transcript_text is not None:
            log.info("No speech found; skipping summary and social copy")

        if settings.social_copy and self.summarizer is not None and artifact.summary_text:
            self._run_stage(STAGE_SOCIAL_COPY, artifact, self._social_copy)

        if settings.overlay and self.compositor is not None and artifact.social_title:
            self._run_stage(STAGE_OVERLAY, artifact, self.apply_overlay)

        return artifact

    def _run_stage(
        self,
        stage: str,
        artifact: SegmentArtifact,
        action: Callable[[SegmentArtifact], object],
    ) -> bool:
        started = time.monotonic()
        try:
            action(artifact)
        except Exception as e:
            error = EnrichmentStageError(stage, str(e), {"segment": artifact.window.index})
            log_operation_failed(logger, f"{stage} segment {artifact.window.index}", error)
            artifact.stage_errors[stage] = f"{type(e).__name__}: {e}"
            return False

        artifact.stage_errors.pop(stage, None)
        log_operation_complete(
            logger,
            f"{stage} segment {artifact.window.index}",
            duration=time.monotonic() - started,
        )
        return True

    def _write_sibling(self, artifact: SegmentArtifact, kind: str, text: str) -> Path:
        path = sibling_path(artifact.output_path, kind)
        atomic_write(path, text)
        artifact.sibling_files[kind] = path
        return path

    def _transcribe(self, artifact: SegmentArtifact) -> None:
        options = TranscriptionOptions(
            language=self.settings.language,
            prompt=self.settings.prompt,
        )
        result = self.transcriber.transcribe(artifact.output_path, options)
        text = (result.text or "").strip()
        self._write_sibling(artifact, "transcript", text)
        artifact.transcript_text = text

    def _summarize(self, artifact: SegmentArtifact) -> None:
        summary = self.summarizer.summarize(
            artifact.transcript_text,
            style=self.settings.summary_style,
            max_length_words=self.settings.summary_max_words,
        )
        self._write_sibling(artifact, "summary", summary)
        artifact.summary_text = summary

    def _social_copy(self, artifact: SegmentArtifact) -> None:
        content = self.summarizer.generate_social_content(
            artifact.transcript_text,
            max_length_words=self.settings.social_max_words,
        )
        self._write_sibling(artifact, "social_title", content.title)
        self._write_sibling(artifact, "social_description", content.description)
        artifact.social_title = content.title
        artifact.social_description = content.description

    def apply_overlay(self, artifact: SegmentArtifact, title: str | None = None) -> SegmentArtifact:
        """Burn the social title into the segment. Safe to call repeatedly.

        The first run copies the untitled video into the asset's original
        store. Every run, including the first, composites from that copy, so
        the video never ends up with two title boxes. On failure the video at
        ``output_path`` and ``overlay_applied`` are left as they were.

        Args:
            artifact: Segment to title
            title: Replacement title; the artifact's social title when None

        Returns:
            The same artifact

        Raises:
            ValidationError: If there is no title to burn in
            ResourceError: If a title is already burned in but the untitled
                copy is gone
        """
        if self.compositor is None:
            raise ValidationError("No compositor configured for title overlays")

        text = title if title is not None else artifact.social_title
        if not text or not text.strip():
            raise ValidationError("Segment has no title to overlay", {"segment": artifact.window.index})

        backup = artifact.original_backup_path
        if backup is None or not backup.exists():
            if artifact.overlay_applied:
                raise ResourceError(
                    "Untitled original is missing; refusing to stack a second title",
                    context={"segment": artifact.window.index, "backup": str(backup)},
                )
            store = OriginalStore(artifact.output_path.parent / ORIGINALS_DIR)
            backup = store.preserve(artifact.output_path)
            artifact.original_backup_path = backup
            logger.debug(f"Preserved untitled original as {backup.name}")

        self.compositor.apply_title(backup, artifact.output_path, text)
        artifact.overlay_applied = True

        if title is not None and title != artifact.social_title:
            self._write_sibling(artifact, "social_title", title)
            artifact.social_title = title
        return artifact

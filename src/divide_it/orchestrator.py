"""Split requests from start to finish.

Validate, probe, plan, extract, enrich, register. Extraction failures abort
the whole request and discard what it produced; enrichment failures never do.
"""

from __future__ import annotations

import asyncio
import functools
import random
import shutil
import time
import uuid
from pathlib import Path

from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from divide_it.config import Settings
from divide_it.enrichment import STAGE_OVERLAY, EnrichmentPipeline
from divide_it.errors import ErrorContext, ValidationError
from divide_it.extractor import SegmentExtractor
from divide_it.ffmpeg import FFmpegWrapper
from divide_it.logging import (
    LogContext,
    get_logger,
    log_operation_complete,
    log_operation_failed,
    log_operation_start,
)
from divide_it.models import SegmentArtifact, SplitResult
from divide_it.overlay.compositor import TextOverlayCompositor
from divide_it.overlay.styles import OverlayStyle
from divide_it.planner import plan
from divide_it.providers import select_summarizer, select_transcriber
from divide_it.registry import ArtifactRegistry
from divide_it.video.portrait import PortraitConfig

logger = get_logger(__name__)


class SplitRequest(BaseModel):
    """Parameters of one split request."""

    count: int = Field(default=5, ge=1, le=20)
    min_duration: float = Field(default=5, ge=1, le=300)
    max_duration: float = Field(default=60, ge=1, le=300)
    enrich: bool = True

    @model_validator(mode="after")
    def _check_range(self) -> "SplitRequest":
        if self.min_duration > self.max_duration:
            raise ValueError("min_duration must not exceed max_duration")
        return self

    @classmethod
    def build(cls, **values) -> "SplitRequest":
        """Validate keyword values, raising our ValidationError on failure."""
        try:
            return cls(**values)
        except PydanticValidationError as e:
            messages = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
                for err in e.errors()
            )
            raise ValidationError(f"Invalid split request: {messages}") from e


class Orchestrator:
    """Drives one split request at a time through the pipeline."""

    def __init__(
        self,
        settings: Settings | None = None,
        transcoder: FFmpegWrapper | None = None,
        extractor: SegmentExtractor | None = None,
        enrichment: EnrichmentPipeline | None = None,
        registry: ArtifactRegistry | None = None,
        rng: random.Random | None = None,
    ):
        self.settings = settings or Settings()
        self.transcoder = transcoder or FFmpegWrapper(
            self.settings.ffmpeg,
            PortraitConfig.from_settings(self.settings.portrait),
            timeout=self.settings.portrait.timeout,
        )
        self.extractor = extractor or SegmentExtractor(self.transcoder)
        self.enrichment = enrichment or EnrichmentPipeline(settings=self.settings.enrichment)
        self.registry = registry or ArtifactRegistry(self.settings.output_root)
        self.rng = rng

    @classmethod
    def from_settings(cls, settings: Settings, with_providers: bool = True) -> "Orchestrator":
        """Build the full pipeline from settings.

        Providers are chosen here, once, from the ranked lists.

        Args:
            settings: Application settings
            with_providers: Skip provider selection when False, which
                leaves only extraction and overlay available

        Returns:
            Ready orchestrator

        Raises:
            FFmpegNotFoundError: If ffmpeg cannot be located
        """
        transcoder = FFmpegWrapper(
            settings.ffmpeg,
            PortraitConfig.from_settings(settings.portrait),
            timeout=settings.portrait.timeout,
        )
        compositor = TextOverlayCompositor(transcoder, OverlayStyle.from_settings(settings.overlay))
        transcriber = select_transcriber(settings, transcoder) if with_providers else None
        summarizer = select_summarizer(settings) if with_providers else None
        enrichment = EnrichmentPipeline(
            transcriber=transcriber,
            summarizer=summarizer,
            compositor=compositor,
            settings=settings.enrichment,
        )
        return cls(settings=settings, transcoder=transcoder, enrichment=enrichment)

    def split(
        self,
        source_path: str | Path,
        request: SplitRequest | None = None,
        asset_id: str | None = None,
    ) -> SplitResult:
        """Cut a source video into portrait segments and enrich them.

        Args:
            source_path: Video to split
            request: Split parameters, defaults when None
            asset_id: Output directory name, a fresh id when None

        Returns:
            Registered result with artifacts in ascending start order

        Raises:
            ValidationError: If the request or the source is unusable
            ExtractionError: If the transcoder fails on any window
            ResourceError: If segment files cannot be written
        """
        request = request or SplitRequest()
        asset_id = asset_id or uuid.uuid4().hex[:12]
        request_id = uuid.uuid4().hex

        with LogContext(request_id=request_id[:8], asset_id=asset_id):
            log_operation_start(logger, "split", source=str(source_path), count=request.count)
            started = time.monotonic()

            source = self.transcoder.probe(source_path)
            if source.duration_seconds < request.min_duration:
                raise ValidationError(
                    f"Video duration ({source.duration_seconds:.2f}s) is less than "
                    f"minimum segment duration ({request.min_duration}s)",
                    {"source": str(source.path)},
                )

            max_duration = min(request.max_duration, source.duration_seconds)
            windows = plan(
                source.duration_seconds,
                request.count,
                request.min_duration,
                max_duration,
                rng=self.rng,
            )
            if not windows:
                raise ValidationError("Unable to generate valid segments for this video")

            asset_dir = self.registry.asset_dir(asset_id)
            created_dir = not asset_dir.exists()
            produced: list[SegmentArtifact] = []

            def discard() -> None:
                for artifact in produced:
                    artifact.output_path.unlink(missing_ok=True)
                if created_dir and asset_dir.exists():
                    shutil.rmtree(asset_dir, ignore_errors=True)

            with ErrorContext("extract segments", rollback=discard):
                self.extractor.extract_all(source, windows, asset_dir, produced=produced)

            if request.enrich:
                for artifact in produced:
                    self.enrichment.enrich(artifact)

            result = SplitResult(
                request_id=request_id,
                asset_id=asset_id,
                source=source,
                artifacts=sorted(produced, key=lambda a: a.window.start_time),
                requested_count=request.count,
            )
            self.registry.register(result)

            log_operation_complete(
                logger,
                "split",
                duration=time.monotonic() - started,
                segments=len(result.artifacts),
            )
            return result

    async def split_async(
        self,
        source_path: str | Path,
        request: SplitRequest | None = None,
        asset_id: str | None = None,
    ) -> SplitResult:
        """Run ``split`` in a worker thread. Cannot be cancelled once started."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(self.split, source_path, request, asset_id)
        )

    def retitle(
        self,
        asset_id: str,
        segment_index: int | None = None,
        title: str | None = None,
    ) -> SplitResult:
        """Re-run the title overlay on registered segments.

        With a segment index, errors propagate. Without one, every segment
        that has a title is retitled and failures are recorded on the
        artifact like any other overlay stage failure.

        Args:
            asset_id: Registered asset
            segment_index: Only this segment when given
            title: Replacement title text

        Returns:
            The updated, re-registered result

        Raises:
            NotFoundError: If the asset is unknown
            ValidationError: If the segment index does not exist
        """
        result = self.registry.get(asset_id)

        if segment_index is not None:
            artifact = result.find(segment_index)
            if artifact is None:
                raise ValidationError(
                    f"Segment {segment_index} not found",
                    {"asset_id": asset_id},
                )
            try:
                self.enrichment.apply_overlay(artifact, title)
                artifact.stage_errors.pop(STAGE_OVERLAY, None)
            finally:
                self.registry.register(result)
            return result

        for artifact in result.artifacts:
            if not (title or artifact.social_title):
                continue
            try:
                self.enrichment.apply_overlay(artifact, title)
            except Exception as e:
                log_operation_failed(logger, f"retitle segment {artifact.window.index}", e)
                artifact.stage_errors[STAGE_OVERLAY] = f"{type(e).__name__}: {e}"
            else:
                artifact.stage_errors.pop(STAGE_OVERLAY, None)

        self.registry.register(result)
        return result

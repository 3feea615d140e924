"""Cutting planned windows into standalone portrait segments."""

from __future__ import annotations

import time
import uuid
from pathlib import Path
from typing import Iterable

from divide_it.errors import ResourceError
from divide_it.ffmpeg import FFmpegWrapper
from divide_it.logging import get_logger, log_operation_complete, log_operation_start
from divide_it.models import SegmentArtifact, SegmentWindow, SourceAsset

logger = get_logger(__name__)


def segment_filename(index: int, segment_id: str, suffix: str = ".mp4") -> str:
    """File name for a segment, unique within its asset directory."""
    return f"segment_{index}_{segment_id}{suffix}"


class SegmentExtractor:
    """Produces one letterboxed portrait video per window.

    Calls are strictly sequential: one ffmpeg process at a time.
    """

    def __init__(self, transcoder: FFmpegWrapper):
        self.transcoder = transcoder

    @property
    def frame_size(self) -> tuple[int, int]:
        return self.transcoder.portrait.dimensions

    def extract(self, source: SourceAsset, window: SegmentWindow, output_dir: Path) -> SegmentArtifact:
        """Cut one window out of the source.

        Args:
            source: Probed source video
            window: Time range to cut
            output_dir: Directory for the segment file

        Returns:
            New artifact with only window, output_path and segment_id set

        Raises:
            ExtractionError: If the transcoder fails
            ResourceError: If the output directory cannot be created or the
                transcoder reported success without writing a file
        """
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ResourceError(f"Cannot create output directory {output_dir}: {e}") from e

        segment_id = uuid.uuid4().hex[:8]
        output_path = output_dir / segment_filename(window.index, segment_id)
        width, height = self.frame_size

        log_operation_start(
            logger,
            f"extract segment {window.index}",
            start_time=window.start_time,
            end_time=window.end_time,
        )
        started = time.monotonic()
        try:
            self.transcoder.trim_scale_pad(
                source.path,
                window.start_time,
                window.duration,
                width,
                height,
                output_path,
            )
        except Exception:
            # ffmpeg may leave a truncated file behind
            output_path.unlink(missing_ok=True)
            raise

        if not output_path.exists():
            raise ResourceError(
                f"Transcoder produced no file for segment {window.index}",
                context={"output_path": str(output_path)},
            )

        log_operation_complete(
            logger,
            f"extract segment {window.index}",
            duration=time.monotonic() - started,
            output=output_path.name,
        )
        return SegmentArtifact(window=window, output_path=output_path, segment_id=segment_id)

    def extract_all(
        self,
        source: SourceAsset,
        windows: Iterable[SegmentWindow],
        output_dir: Path,
        produced: list[SegmentArtifact] | None = None,
    ) -> list[SegmentArtifact]:
        """Extract every window in order.

        Args:
            source: Probed source video
            windows: Windows sorted by start time
            output_dir: Directory for segment files
            produced: Optional list that receives each artifact as soon as it
                exists, so a caller can clean up after a mid-run failure

        Returns:
            Artifacts in the order of ``windows``
        """
        artifacts = produced if produced is not None else []
        for window in windows:
            artifacts.append(self.extract(source, window, output_dir))
        return list(artifacts)

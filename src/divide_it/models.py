"""Data model for a split request and its outputs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class SourceAsset:
    """A probed input video. Never modified by the pipeline.

    Attributes:
        path: Location of the source file
        duration_seconds: Container duration
        width: Video width in pixels
        height: Video height in pixels
        container_format: ffprobe format name, e.g. "mov,mp4,m4a,3gp,3g2,mj2"
        size_bytes: File size
        has_audio: Whether an audio stream is present
    """

    path: Path
    duration_seconds: float
    width: int
    height: int
    container_format: str = ""
    size_bytes: int = 0
    has_audio: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "duration_seconds": self.duration_seconds,
            "width": self.width,
            "height": self.height,
            "container_format": self.container_format,
            "size_bytes": self.size_bytes,
            "has_audio": self.has_audio,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SourceAsset":
        return cls(
            path=Path(data["path"]),
            duration_seconds=float(data["duration_seconds"]),
            width=int(data["width"]),
            height=int(data["height"]),
            container_format=data.get("container_format", ""),
            size_bytes=int(data.get("size_bytes", 0)),
            has_audio=bool(data.get("has_audio", True)),
        )


@dataclass(frozen=True)
class SegmentWindow:
    """A planned time range inside the source.

    Attributes:
        index: 1-based position after sorting by start time
        start_time: Offset into the source in seconds
        end_time: End offset in seconds
    """

    index: int
    start_time: float
    end_time: float

    @property
    def duration(self) -> float:
        return round(self.end_time - self.start_time, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SegmentWindow":
        return cls(
            index=int(data["index"]),
            start_time=float(data["start_time"]),
            end_time=float(data["end_time"]),
        )


@dataclass
class SegmentArtifact:
    """One extracted segment and whatever enrichment succeeded on it.

    Enrichment stages set one field at a time. A field that is still None
    means the stage was skipped or failed; ``stage_errors`` says which.

    Attributes:
        window: The time range this segment was cut from
        output_path: The segment video
        segment_id: Short unique id used in file names
        transcript_text: Speech-to-text output
        summary_text: Summary of the transcript
        social_title: Short title, also burned into the video
        social_description: Longer post text
        overlay_applied: True iff the video at output_path shows the title box
        original_backup_path: Byte copy of the video before the title was added
        stage_errors: Stage name to error message for failed stages
        sibling_files: Kind ("transcript", "summary", ...) to text file path
    """

    window: SegmentWindow
    output_path: Path
    segment_id: str = ""
    transcript_text: str | None = None
    summary_text: str | None = None
    social_title: str | None = None
    social_description: str | None = None
    overlay_applied: bool = False
    original_backup_path: Path | None = None
    stage_errors: dict[str, str] = field(default_factory=dict)
    sibling_files: dict[str, Path] = field(default_factory=dict)

    @property
    def enriched(self) -> bool:
        return self.transcript_text is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "window": self.window.to_dict(),
            "output_path": str(self.output_path),
            "segment_id": self.segment_id,
            "transcript_text": self.transcript_text,
            "summary_text": self.summary_text,
            "social_title": self.social_title,
            "social_description": self.social_description,
            "overlay_applied": self.overlay_applied,
            "original_backup_path": (
                str(self.original_backup_path) if self.original_backup_path else None
            ),
            "stage_errors": dict(self.stage_errors),
            "sibling_files": {k: str(v) for k, v in self.sibling_files.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SegmentArtifact":
        backup = data.get("original_backup_path")
        return cls(
            window=SegmentWindow.from_dict(data["window"]),
            output_path=Path(data["output_path"]),
            segment_id=data.get("segment_id", ""),
            transcript_text=data.get("transcript_text"),
            summary_text=data.get("summary_text"),
            social_title=data.get("social_title"),
            social_description=data.get("social_description"),
            overlay_applied=bool(data.get("overlay_applied", False)),
            original_backup_path=Path(backup) if backup else None,
            stage_errors=dict(data.get("stage_errors", {})),
            sibling_files={k: Path(v) for k, v in data.get("sibling_files", {}).items()},
        )


@dataclass
class SplitResult:
    """Everything produced by one split request.

    Attributes:
        request_id: Unique id of the request
        asset_id: Id of the source asset; names the output directory
        source: The probed source
        artifacts: Segments in ascending start order
        requested_count: Segment count asked for; may exceed len(artifacts)
        created_at: ISO timestamp
    """

    request_id: str
    asset_id: str
    source: SourceAsset
    artifacts: list[SegmentArtifact] = field(default_factory=list)
    requested_count: int = 0
    created_at: str = ""

    def __post_init__(self):
        if not self.created_at:
            self.created_at = datetime.now().isoformat()

    def find(self, index: int) -> SegmentArtifact | None:
        """Return the artifact with the given window index, if any."""
        for artifact in self.artifacts:
            if artifact.window.index == index:
                return artifact
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "asset_id": self.asset_id,
            "source": self.source.to_dict(),
            "artifacts": [a.to_dict() for a in self.artifacts],
            "requested_count": self.requested_count,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SplitResult":
        return cls(
            request_id=data["request_id"],
            asset_id=data["asset_id"],
            source=SourceAsset.from_dict(data["source"]),
            artifacts=[SegmentArtifact.from_dict(a) for a in data.get("artifacts", [])],
            requested_count=int(data.get("requested_count", 0)),
            created_at=data.get("created_at", ""),
        )

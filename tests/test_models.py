"""Tests for the data model and storage helpers."""

from pathlib import Path

import pytest

from divide_it.models import SegmentArtifact, SegmentWindow, SourceAsset, SplitResult
from divide_it.storage import (
    NotFoundError,
    OriginalStore,
    StorageError,
    atomic_write,
    atomic_write_json,
    file_digest,
    read_json,
)


def make_result(tmp_path: Path) -> SplitResult:
    source = SourceAsset(
        path=tmp_path / "talk.mp4",
        duration_seconds=120.5,
        width=1920,
        height=1080,
        container_format="mov,mp4,m4a,3gp,3g2,mj2",
        size_bytes=2048,
    )
    artifact = SegmentArtifact(
        window=SegmentWindow(index=1, start_time=3.25, end_time=15.5),
        output_path=tmp_path / "segment_1_ab12cd34.mp4",
        segment_id="ab12cd34",
        transcript_text="Hello there",
        social_title="Greetings",
        overlay_applied=True,
        original_backup_path=tmp_path / ".originals" / "0123456789abcdef.mp4",
        stage_errors={"summarize": "ExternalServiceError: down"},
        sibling_files={"transcript": tmp_path / "segment_1_ab12cd34_transcript.txt"},
    )
    return SplitResult(
        request_id="req",
        asset_id="asset",
        source=source,
        artifacts=[artifact],
        requested_count=3,
    )


class TestSegmentWindow:
    """Tests for SegmentWindow."""

    def test_duration_rounded(self):
        """Duration is derived and rounded to two places."""
        window = SegmentWindow(index=1, start_time=1.1, end_time=3.3)

        assert window.duration == 2.2

    def test_frozen(self):
        window = SegmentWindow(index=1, start_time=0, end_time=5)

        with pytest.raises(AttributeError):
            window.start_time = 1


class TestSerialization:
    """Tests for manifest serialization."""

    def test_result_round_trip(self, tmp_path):
        """A result survives to_dict/from_dict unchanged."""
        result = make_result(tmp_path)

        restored = SplitResult.from_dict(result.to_dict())

        assert restored == result
        assert restored.artifacts[0].original_backup_path == result.artifacts[0].original_backup_path

    def test_paths_are_strings(self, tmp_path):
        """Serialized paths are plain strings for JSON."""
        data = make_result(tmp_path).to_dict()

        assert isinstance(data["source"]["path"], str)
        assert isinstance(data["artifacts"][0]["output_path"], str)
        assert data["artifacts"][0]["window"]["duration"] == 12.25

    def test_artifact_defaults(self, tmp_path):
        """A fresh artifact has only its window and path."""
        artifact = SegmentArtifact(
            window=SegmentWindow(index=2, start_time=0, end_time=5),
            output_path=tmp_path / "x.mp4",
        )

        assert artifact.transcript_text is None
        assert artifact.overlay_applied is False
        assert artifact.enriched is False
        assert SegmentArtifact.from_dict(artifact.to_dict()) == artifact

    def test_find(self, tmp_path):
        result = make_result(tmp_path)

        assert result.find(1) is result.artifacts[0]
        assert result.find(9) is None

    def test_created_at_set(self, tmp_path):
        assert make_result(tmp_path).created_at


class TestAtomicWrite:
    """Tests for atomic writes and JSON helpers."""

    def test_write_and_read(self, tmp_path):
        """Parent directories are created and no temp files remain."""
        path = tmp_path / "nested" / "manifest.json"

        atomic_write_json(path, {"a": 1})

        assert read_json(path) == {"a": 1}
        assert [p.name for p in path.parent.iterdir()] == ["manifest.json"]

    def test_overwrite(self, tmp_path):
        path = tmp_path / "note.txt"
        atomic_write(path, "one")
        atomic_write(path, "two")

        assert path.read_text() == "two"

    def test_read_missing(self, tmp_path):
        with pytest.raises(NotFoundError):
            read_json(tmp_path / "missing.json")

    def test_read_invalid(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{")

        with pytest.raises(StorageError):
            read_json(path)


class TestOriginalStore:
    """Tests for the content-addressed original store."""

    def test_preserve_copies_bytes(self, tmp_path):
        """The stored copy is byte-identical and named by its digest."""
        video = tmp_path / "segment_1_aa.mp4"
        video.write_bytes(b"untitled video bytes")
        store = OriginalStore(tmp_path / ".originals")

        stored = store.preserve(video)

        assert stored.read_bytes() == video.read_bytes()
        assert stored.name == file_digest(video)[:16] + ".mp4"
        assert stored.parent == tmp_path / ".originals"

    def test_same_bytes_reuse_copy(self, tmp_path):
        """Preserving identical content twice yields one file."""
        first = tmp_path / "a.mp4"
        second = tmp_path / "b.mp4"
        first.write_bytes(b"same")
        second.write_bytes(b"same")
        store = OriginalStore(tmp_path / ".originals")

        assert store.preserve(first) == store.preserve(second)
        assert len(list((tmp_path / ".originals").iterdir())) == 1

    def test_missing_source(self, tmp_path):
        with pytest.raises(NotFoundError):
            OriginalStore(tmp_path).preserve(tmp_path / "gone.mp4")

"""Tests for the fail-soft enrichment pipeline."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from divide_it.config import EnrichmentSettings
from divide_it.enrichment import ORIGINALS_DIR, EnrichmentPipeline, sibling_path
from divide_it.errors import ExternalServiceError, ResourceError, ValidationError
from divide_it.llm import SocialContent
from divide_it.models import SegmentArtifact, SegmentWindow
from divide_it.transcription import TranscriptionResult


class FakeCompositor:
    """Writes a marker plus the source bytes, like a title burned onto a video."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def apply_title(self, source_video, output_path, title):
        self.calls.append((Path(source_video), Path(output_path), title))
        if self.fail:
            raise ExternalServiceError("encoder crashed", recoverable=False)
        data = Path(source_video).read_bytes()
        Path(output_path).write_bytes(f"[{title}]".encode() + data)
        return Path(output_path)


def make_transcriber(text="We shipped the new release today."):
    transcriber = Mock()
    transcriber.transcribe.return_value = TranscriptionResult(text=text, language="en")
    return transcriber


def make_summarizer():
    summarizer = Mock()
    summarizer.summarize.return_value = "Team ships a release."
    summarizer.generate_social_content.return_value = SocialContent(
        title="New Release Is Finally Here",
        description="It's out! #release",
    )
    return summarizer


@pytest.fixture
def artifact(tmp_path):
    path = tmp_path / "segment_1_ab12cd34.mp4"
    path.write_bytes(b"VIDEO")
    return SegmentArtifact(
        window=SegmentWindow(index=1, start_time=0, end_time=10),
        output_path=path,
        segment_id="ab12cd34",
    )


class TestSiblingPath:
    def test_naming(self):
        assert sibling_path(Path("/out/segment_2_ff.mp4"), "summary") == Path("/out/segment_2_ff_summary.txt")


class TestEnrich:
    """Tests for EnrichmentPipeline.enrich()."""

    def test_all_stages(self, artifact):
        """Every stage runs, writes its file and sets its field."""
        compositor = FakeCompositor()
        pipeline = EnrichmentPipeline(make_transcriber(), make_summarizer(), compositor)

        result = pipeline.enrich(artifact)

        assert result is artifact
        assert artifact.transcript_text == "We shipped the new release today."
        assert artifact.summary_text == "Team ships a release."
        assert artifact.social_title == "New Release Is Finally Here"
        assert artifact.social_description == "It's out! #release"
        assert artifact.overlay_applied is True
        assert artifact.stage_errors == {}
        for kind in ("transcript", "summary", "social_title", "social_description"):
            assert artifact.sibling_files[kind].exists()
        assert sibling_path(artifact.output_path, "summary").read_text() == "Team ships a release."
        assert artifact.original_backup_path.parent == artifact.output_path.parent / ORIGINALS_DIR
        assert artifact.original_backup_path.read_bytes() == b"VIDEO"
        assert artifact.output_path.read_bytes() == b"[New Release Is Finally Here]VIDEO"

    def test_summarizer_options(self, artifact):
        """Style and word budgets come from settings."""
        summarizer = make_summarizer()
        settings = EnrichmentSettings(summary_style="bullet-points", summary_max_words=40, social_max_words=60)

        EnrichmentPipeline(make_transcriber(), summarizer, None, settings).enrich(artifact)

        summarizer.summarize.assert_called_once_with(
            "We shipped the new release today.", style="bullet-points", max_length_words=40
        )
        summarizer.generate_social_content.assert_called_once_with(
            "We shipped the new release today.", max_length_words=60
        )

    def test_transcription_options(self, artifact):
        transcriber = make_transcriber()
        settings = EnrichmentSettings(language="de", prompt="Kubernetes")

        EnrichmentPipeline(transcriber, None, None, settings).enrich(artifact)

        options = transcriber.transcribe.call_args[0][1]
        assert options.language == "de"
        assert options.prompt == "Kubernetes"

    def test_transcription_failure_is_soft(self, artifact):
        """A failed transcription is recorded and the rest is skipped."""
        transcriber = Mock()
        transcriber.transcribe.side_effect = RuntimeError("network down")
        summarizer = make_summarizer()
        compositor = FakeCompositor()

        EnrichmentPipeline(transcriber, summarizer, compositor).enrich(artifact)

        assert artifact.transcript_text is None
        assert artifact.stage_errors == {"transcribe": "RuntimeError: network down"}
        summarizer.summarize.assert_not_called()
        assert compositor.calls == []
        assert artifact.output_path.read_bytes() == b"VIDEO"

    def test_silence_skips_summary(self, artifact):
        """An empty transcript is kept but nothing is summarized."""
        summarizer = make_summarizer()

        EnrichmentPipeline(make_transcriber("   "), summarizer, FakeCompositor()).enrich(artifact)

        assert artifact.transcript_text == ""
        assert artifact.summary_text is None
        assert artifact.social_title is None
        assert artifact.stage_errors == {}
        summarizer.summarize.assert_not_called()

    def test_summary_failure_keeps_transcript(self, artifact):
        summarizer = make_summarizer()
        summarizer.summarize.side_effect = ExternalServiceError("quota", recoverable=False)

        EnrichmentPipeline(make_transcriber(), summarizer, FakeCompositor()).enrich(artifact)

        assert artifact.transcript_text
        assert artifact.summary_text is None
        assert "summarize" in artifact.stage_errors
        summarizer.generate_social_content.assert_not_called()

    def test_social_copy_failure(self, artifact):
        summarizer = make_summarizer()
        summarizer.generate_social_content.side_effect = RuntimeError("bad reply")
        compositor = FakeCompositor()

        EnrichmentPipeline(make_transcriber(), summarizer, compositor).enrich(artifact)

        assert artifact.summary_text == "Team ships a release."
        assert artifact.social_title is None
        assert "social_copy" in artifact.stage_errors
        assert compositor.calls == []

    def test_overlay_failure_leaves_video(self, artifact):
        """A failed overlay leaves output_path and the flag unchanged."""
        EnrichmentPipeline(make_transcriber(), make_summarizer(), FakeCompositor(fail=True)).enrich(artifact)

        assert artifact.social_title == "New Release Is Finally Here"
        assert artifact.overlay_applied is False
        assert artifact.output_path.read_bytes() == b"VIDEO"
        assert "overlay" in artifact.stage_errors

    def test_no_providers(self, artifact):
        """Without collaborators nothing runs and nothing fails."""
        EnrichmentPipeline().enrich(artifact)

        assert artifact.transcript_text is None
        assert artifact.stage_errors == {}

    def test_disabled_stages(self, artifact):
        summarizer = make_summarizer()
        compositor = FakeCompositor()
        settings = EnrichmentSettings(social_copy=False, overlay=False)

        EnrichmentPipeline(make_transcriber(), summarizer, compositor, settings).enrich(artifact)

        assert artifact.summary_text
        assert artifact.social_title is None
        summarizer.generate_social_content.assert_not_called()
        assert compositor.calls == []


class TestApplyOverlay:
    """Tests for re-running the overlay stage."""

    def test_idempotent(self, artifact):
        """Running twice still shows exactly one title box."""
        artifact.social_title = "First Title"
        compositor = FakeCompositor()
        pipeline = EnrichmentPipeline(compositor=compositor)

        pipeline.apply_overlay(artifact)
        pipeline.apply_overlay(artifact)

        assert artifact.output_path.read_bytes() == b"[First Title]VIDEO"
        assert all(source == artifact.original_backup_path for source, _, _ in compositor.calls)
        assert len(list((artifact.output_path.parent / ORIGINALS_DIR).iterdir())) == 1

    def test_new_title_replaces_old(self, artifact):
        """A replacement title is burned from the untitled copy and saved."""
        artifact.social_title = "First Title"
        pipeline = EnrichmentPipeline(compositor=FakeCompositor())
        pipeline.apply_overlay(artifact)

        pipeline.apply_overlay(artifact, title="Second Title")

        assert artifact.output_path.read_bytes() == b"[Second Title]VIDEO"
        assert artifact.social_title == "Second Title"
        assert sibling_path(artifact.output_path, "social_title").read_text() == "Second Title"

    def test_lost_backup_refused(self, artifact):
        """A titled video with no untitled copy is never titled again."""
        artifact.social_title = "First Title"
        pipeline = EnrichmentPipeline(compositor=FakeCompositor())
        pipeline.apply_overlay(artifact)
        artifact.original_backup_path.unlink()

        with pytest.raises(ResourceError):
            pipeline.apply_overlay(artifact)

        assert artifact.output_path.read_bytes() == b"[First Title]VIDEO"
        assert artifact.overlay_applied is True

    def test_failure_keeps_flag(self, artifact):
        artifact.social_title = "Title"
        pipeline = EnrichmentPipeline(compositor=FakeCompositor(fail=True))

        with pytest.raises(ExternalServiceError):
            pipeline.apply_overlay(artifact)

        assert artifact.overlay_applied is False
        assert artifact.output_path.read_bytes() == b"VIDEO"

    def test_requires_title(self, artifact):
        with pytest.raises(ValidationError):
            EnrichmentPipeline(compositor=FakeCompositor()).apply_overlay(artifact)

    def test_requires_compositor(self, artifact):
        artifact.social_title = "Title"

        with pytest.raises(ValidationError):
            EnrichmentPipeline().apply_overlay(artifact)

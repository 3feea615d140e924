"""Lookup of split results by asset id.

Results are kept in memory and persisted as ``manifest.json`` inside the
asset's output directory. Rebuilding a result by scanning the directory is
a recovery path only, for directories whose manifest was lost.
"""

from __future__ import annotations

import re
import shutil
import uuid
from pathlib import Path

from divide_it.enrichment import ORIGINALS_DIR, sibling_path
from divide_it.logging import get_logger
from divide_it.models import SegmentArtifact, SegmentWindow, SourceAsset, SplitResult
from divide_it.storage import NotFoundError, StorageError, atomic_write_json, read_json

logger = get_logger(__name__)

MANIFEST_NAME = "manifest.json"

_SEGMENT_RE = re.compile(r"^segment_(\d+)_([0-9a-f]+)\.mp4$")

# Sibling text kinds and the artifact field each one fills
_TEXT_FIELDS = {
    "transcript": "transcript_text",
    "summary": "summary_text",
    "social_title": "social_title",
    "social_description": "social_description",
}


class ArtifactRegistry:
    """Keeps track of which segments belong to which asset."""

    def __init__(self, output_root: Path):
        self.output_root = output_root
        self._results: dict[str, SplitResult] = {}

    def asset_dir(self, asset_id: str) -> Path:
        return self.output_root / asset_id

    def manifest_path(self, asset_id: str) -> Path:
        return self.asset_dir(asset_id) / MANIFEST_NAME

    def register(self, result: SplitResult) -> Path:
        """Remember a result and write its manifest.

        Returns:
            Path of the manifest
        """
        self._results[result.asset_id] = result
        path = self.manifest_path(result.asset_id)
        atomic_write_json(path, result.to_dict())
        logger.debug(f"Registered {len(result.artifacts)} segments for {result.asset_id}")
        return path

    def get(self, asset_id: str) -> SplitResult:
        """Look up a result, from memory or its manifest.

        Raises:
            NotFoundError: If the asset has no manifest
            StorageError: If the manifest is unreadable
        """
        if asset_id in self._results:
            return self._results[asset_id]

        data = read_json(self.manifest_path(asset_id))
        try:
            result = SplitResult.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Invalid manifest for {asset_id}: {e}") from e

        self._results[asset_id] = result
        return result

    def exists(self, asset_id: str) -> bool:
        return asset_id in self._results or self.manifest_path(asset_id).exists()

    def asset_ids(self) -> list[str]:
        """Asset ids with a manifest on disk or a result in memory."""
        ids = set(self._results)
        if self.output_root.exists():
            ids.update(
                p.name for p in self.output_root.iterdir() if (p / MANIFEST_NAME).exists()
            )
        return sorted(ids)

    def delete(self, asset_id: str) -> bool:
        """Forget an asset and remove its directory.

        Returns:
            True if anything was removed
        """
        removed = self._results.pop(asset_id, None) is not None
        asset_dir = self.asset_dir(asset_id)
        if asset_dir.exists():
            shutil.rmtree(asset_dir)
            removed = True
        return removed

    def recover(self, asset_id: str, source: SourceAsset | None = None) -> SplitResult:
        """Rebuild a result by scanning the asset directory.

        Window timings are not recoverable from file names, so recovered
        windows carry zero start and end times. Pre-overlay copies cannot be
        matched back to their segments, so when an original store exists any
        segment with a title file is marked ``overlay_applied`` and
        re-titling it is refused rather than stacking a second title.

        Args:
            asset_id: Directory name under the output root
            source: Source description, a placeholder when unknown

        Returns:
            Recovered result, also registered and written to a manifest

        Raises:
            NotFoundError: If the directory has no segments
        """
        asset_dir = self.asset_dir(asset_id)
        matches = []
        if asset_dir.exists():
            for path in asset_dir.iterdir():
                m = _SEGMENT_RE.match(path.name)
                if m and path.is_file():
                    matches.append((int(m.group(1)), m.group(2), path))
        if not matches:
            raise NotFoundError(f"No segments found for asset {asset_id}")

        artifacts = []
        for index, segment_id, path in sorted(matches):
            artifact = SegmentArtifact(
                window=SegmentWindow(index=index, start_time=0.0, end_time=0.0),
                output_path=path,
                segment_id=segment_id,
            )
            for kind, field_name in _TEXT_FIELDS.items():
                text_path = sibling_path(path, kind)
                if text_path.exists():
                    setattr(artifact, field_name, text_path.read_text(encoding="utf-8"))
                    artifact.sibling_files[kind] = text_path
            artifacts.append(artifact)

        if (asset_dir / ORIGINALS_DIR).exists():
            logger.warning(
                "Recovered segments may already carry a title; re-titling them is refused",
                extra={"asset_id": asset_id},
            )
            for artifact in artifacts:
                if artifact.social_title:
                    artifact.overlay_applied = True

        result = SplitResult(
            request_id=uuid.uuid4().hex,
            asset_id=asset_id,
            source=source or SourceAsset(path=Path(""), duration_seconds=0.0, width=0, height=0),
            artifacts=artifacts,
            requested_count=len(artifacts),
        )
        logger.info(f"Recovered {len(artifacts)} segments for {asset_id} from directory scan")
        self.register(result)
        return result

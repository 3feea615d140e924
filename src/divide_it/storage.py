"""File storage helpers for divide-it.

Atomic writes for manifests and sibling text files, and the content-addressed
store that keeps pre-overlay copies of segment videos.
"""

from __future__ import annotations

import hashlib
import json
import os
import shutil
import tempfile
from pathlib import Path

from divide_it.errors import ResourceError


class StorageError(ResourceError):
    """A file could not be written or read back."""


class NotFoundError(StorageError):
    """Raised when a requested file does not exist."""


def atomic_write(path: Path, data: str, encoding: str = "utf-8") -> None:
    """Write text to a file atomically.

    Writes to a temporary file in the same directory, then renames over the
    target so readers never observe a partial file.

    Args:
        path: Target file path
        data: Text to write
        encoding: File encoding

    Raises:
        StorageError: If the write fails
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    temp_path = None
    try:
        fd, temp_path = tempfile.mkstemp(suffix=".tmp", prefix=path.stem + "_", dir=path.parent)
        os.write(fd, data.encode(encoding))
        os.fsync(fd)
        os.close(fd)
        fd = None

        os.replace(temp_path, path)
        temp_path = None
    except OSError as e:
        raise StorageError(f"Failed to write {path}: {e}") from e
    finally:
        if fd is not None:
            try:
                os.close(fd)
            except OSError:
                pass
        if temp_path is not None:
            try:
                os.unlink(temp_path)
            except OSError:
                pass


def atomic_write_json(path: Path, data: dict | list, indent: int = 2) -> None:
    """Write JSON data to a file atomically."""
    atomic_write(path, json.dumps(data, indent=indent, default=str))


def read_json(path: Path) -> dict | list:
    """Read JSON data from a file.

    Args:
        path: File path to read

    Returns:
        Parsed JSON data

    Raises:
        NotFoundError: If the file doesn't exist
        StorageError: If the file is not valid JSON
    """
    if not path.exists():
        raise NotFoundError(f"File not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise StorageError(f"Invalid JSON in {path}: {e}") from e


def file_digest(path: Path, chunk_size: int = 1024 * 1024) -> str:
    """SHA-256 hex digest of a file's bytes."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


class OriginalStore:
    """Content-addressed copies of videos taken before a title is burned in.

    Copies are named by the first 16 hex digits of their SHA-256, so backing
    up the same bytes twice reuses one file.
    """

    def __init__(self, root: Path):
        self.root = root

    def path_for(self, digest: str, suffix: str) -> Path:
        return self.root / f"{digest[:16]}{suffix}"

    def preserve(self, video_path: Path) -> Path:
        """Copy a video into the store.

        Args:
            video_path: File to preserve

        Returns:
            Path of the stored copy

        Raises:
            StorageError: If the source is missing or the copy fails
        """
        if not video_path.exists():
            raise NotFoundError(f"Cannot preserve missing file: {video_path}")

        try:
            digest = file_digest(video_path)
            target = self.path_for(digest, video_path.suffix)
            if target.exists() and target.stat().st_size == video_path.stat().st_size:
                return target

            self.root.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(suffix=video_path.suffix, dir=self.root)
            os.close(fd)
            try:
                shutil.copy2(video_path, temp_path)
                os.replace(temp_path, target)
            except BaseException:
                Path(temp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to preserve {video_path}: {e}") from e

        return target

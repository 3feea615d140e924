"""FFmpeg wrapper used as the transcoder.

Three operations cover the pipeline: probing a source, cutting a window into
a letterboxed portrait segment, and burning an image onto a segment. A fourth
extracts speech audio for the transcription API.
"""

from __future__ import annotations

import json
import subprocess
from dataclasses import replace
from pathlib import Path

from divide_it.errors import ExtractionError, FFmpegNotFoundError, InvalidVideoError
from divide_it.ffmpeg_binary import FFmpegConfig, get_ffmpeg_path, get_ffprobe_path, subprocess_flags
from divide_it.logging import get_logger
from divide_it.models import SourceAsset
from divide_it.video.portrait import PortraitConfig, build_encoding_args, build_letterbox_filter

logger = get_logger(__name__)

# Containers whose audio can be stream-copied next to re-encoded H.264
COPY_AUDIO_SUFFIXES = {".mp4", ".mov", ".m4v", ".mkv"}


class FFmpegWrapper:
    """Runs ffmpeg and ffprobe as subprocesses.

    Every call blocks until the child exits. Failures surface as
    ``ExtractionError`` (non-zero exit, timeout) or ``FFmpegNotFoundError``.
    """

    def __init__(
        self,
        config: FFmpegConfig | None = None,
        portrait: PortraitConfig | None = None,
        timeout: int = 600,
    ) -> None:
        """Initialize the wrapper.

        Args:
            config: Binary location settings
            portrait: Output frame and encoder settings
            timeout: Seconds before an ffmpeg call is abandoned

        Raises:
            FFmpegNotFoundError: If ffmpeg is not available
        """
        self._config = config or FFmpegConfig()
        self.portrait = portrait or PortraitConfig()
        self.timeout = timeout
        self._ffmpeg_path = get_ffmpeg_path(self._config)
        self._ffprobe_path = get_ffprobe_path(self._config)

        if self._ffmpeg_path is None:
            raise FFmpegNotFoundError(
                "FFmpeg not found. Please install imageio-ffmpeg or add FFmpeg to PATH."
            )

    @property
    def ffmpeg_path(self) -> str:
        return self._ffmpeg_path

    @property
    def ffprobe_path(self) -> str | None:
        return self._ffprobe_path

    def _run_ffmpeg(self, args: list[str], timeout: int | None = None) -> subprocess.CompletedProcess:
        """Run ffmpeg with the given arguments.

        Args:
            args: Command-line arguments (excluding the executable)
            timeout: Override for the default timeout

        Returns:
            CompletedProcess result

        Raises:
            ExtractionError: On non-zero exit, timeout or OS error
            FFmpegNotFoundError: If the executable vanished
        """
        timeout = timeout or self.timeout
        cmd = [self._ffmpeg_path, "-hide_banner", "-y"] + args
        logger.debug("Running ffmpeg", extra={"command": " ".join(cmd)})

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                creationflags=subprocess_flags(),
            )
        except subprocess.TimeoutExpired as e:
            raise ExtractionError(f"FFmpeg timed out after {timeout} seconds") from e
        except FileNotFoundError as e:
            raise FFmpegNotFoundError(f"FFmpeg not found at {self._ffmpeg_path}") from e
        except OSError as e:
            raise ExtractionError(f"Failed to run FFmpeg: {e}") from e

        if result.returncode != 0:
            error_msg = (result.stderr or result.stdout or "Unknown error").strip()
            # The tail of stderr holds the actual error
            raise ExtractionError(
                f"FFmpeg failed: {error_msg[-2000:]}",
                context={"returncode": result.returncode},
            )
        return result

    def _run_ffprobe(self, args: list[str], timeout: int = 30) -> subprocess.CompletedProcess:
        if self._ffprobe_path is None:
            raise FFmpegNotFoundError(
                "FFprobe not found. Please install FFprobe to enable video inspection."
            )

        cmd = [self._ffprobe_path] + args
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                creationflags=subprocess_flags(),
            )
        except subprocess.TimeoutExpired as e:
            raise InvalidVideoError(f"FFprobe timed out after {timeout} seconds") from e
        except FileNotFoundError as e:
            raise FFmpegNotFoundError(f"FFprobe not found at {self._ffprobe_path}") from e
        except OSError as e:
            raise InvalidVideoError(f"Failed to run FFprobe: {e}") from e

    def probe(self, video_path: str | Path) -> SourceAsset:
        """Read duration, dimensions and container of a video.

        Args:
            video_path: Path to video file

        Returns:
            SourceAsset describing the file

        Raises:
            InvalidVideoError: If the file is missing, unreadable, has no
                video stream or no positive duration
            FFmpegNotFoundError: If ffprobe is not available
        """
        video_path = Path(video_path)
        if not video_path.exists():
            raise InvalidVideoError(f"Video file not found: {video_path}")

        result = self._run_ffprobe([
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(video_path),
        ])
        if result.returncode != 0:
            raise InvalidVideoError(f"Failed to read video file: {video_path}")

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise InvalidVideoError(f"Failed to parse video info: {e}") from e

        streams = data.get("streams", [])
        video_stream = next((s for s in streams if s.get("codec_type") == "video"), None)
        if video_stream is None:
            raise InvalidVideoError(f"No video stream found in: {video_path}")
        has_audio = any(s.get("codec_type") == "audio" for s in streams)

        fmt = data.get("format", {})
        try:
            duration = float(fmt.get("duration") or video_stream.get("duration") or 0)
        except (TypeError, ValueError):
            duration = 0.0
        if duration <= 0:
            raise InvalidVideoError(f"Video has no usable duration: {video_path}")

        return SourceAsset(
            path=video_path,
            duration_seconds=duration,
            width=int(video_stream.get("width", 0)),
            height=int(video_stream.get("height", 0)),
            container_format=fmt.get("format_name", ""),
            size_bytes=int(fmt.get("size") or video_path.stat().st_size),
            has_audio=has_audio,
        )

    def trim_scale_pad(
        self,
        video_path: str | Path,
        start: float,
        duration: float,
        target_width: int,
        target_height: int,
        output_path: str | Path,
    ) -> Path:
        """Cut a window and letterbox it into the portrait frame.

        Seeking happens before ``-i`` so ffmpeg jumps straight to the
        nearest keyframe; the re-encode makes the cut frame accurate.

        Args:
            video_path: Source video
            start: Window start in seconds
            duration: Window length in seconds
            target_width: Output width
            target_height: Output height
            output_path: Where to write the segment

        Returns:
            output_path

        Raises:
            ExtractionError: If ffmpeg fails
        """
        output_path = Path(output_path)
        frame = replace(self.portrait, width=target_width, height=target_height)

        args = [
            "-ss", f"{start:.3f}",
            "-i", str(video_path),
            "-t", f"{duration:.3f}",
            "-vf", build_letterbox_filter(frame),
            "-map", "0:v:0",
            "-map", "0:a?",
        ]
        args.extend(build_encoding_args(frame))
        args.append(str(output_path))

        self._run_ffmpeg(args)
        return output_path

    def overlay_image(
        self,
        video_path: str | Path,
        image_path: str | Path,
        x: int,
        y: int,
        output_path: str | Path,
    ) -> Path:
        """Burn a still image onto every frame at (x, y).

        Video is re-encoded; audio is stream-copied when the output container
        accepts it and re-encoded otherwise.

        Args:
            video_path: Video to draw on
            image_path: PNG with alpha
            x: Left edge in pixels
            y: Top edge in pixels
            output_path: Where to write the result (must differ from video_path)

        Returns:
            output_path

        Raises:
            ExtractionError: If ffmpeg fails
        """
        output_path = Path(output_path)
        if output_path.suffix.lower() in COPY_AUDIO_SUFFIXES:
            audio_args = ["-c:a", "copy"]
        else:
            audio_args = ["-c:a", self.portrait.audio_codec, "-b:a", self.portrait.audio_bitrate]

        args = [
            "-i", str(video_path),
            "-i", str(image_path),
            "-filter_complex", f"[0:v][1:v]overlay={int(x)}:{int(y)}[out]",
            "-map", "[out]",
            "-map", "0:a?",
            "-c:v", self.portrait.video_codec,
            "-preset", self.portrait.video_preset,
            "-crf", str(self.portrait.video_crf),
            "-pix_fmt", "yuv420p",
            *audio_args,
            "-movflags", "+faststart",
            str(output_path),
        ]
        self._run_ffmpeg(args)
        return output_path

    def extract_audio(
        self,
        video_path: str | Path,
        output_path: str | Path,
        sample_rate: int = 16000,
    ) -> Path:
        """Extract mono speech audio as MP3.

        Args:
            video_path: Video to read
            output_path: Target audio file
            sample_rate: Output sample rate in Hz

        Returns:
            output_path
        """
        output_path = Path(output_path)
        self._run_ffmpeg([
            "-i", str(video_path),
            "-vn",
            "-ac", "1",
            "-ar", str(sample_rate),
            "-b:a", "64k",
            str(output_path),
        ])
        return output_path

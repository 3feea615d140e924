"""Burning a title box onto a segment.

The title is drawn into a PNG that holds only the box (not a full frame),
which the transcoder then overlays at a computed position. Sizing rules:

- the box is at most ``max_width_fraction`` of the frame wide, padding included
- words wrap greedily; a word wider than the limit gets its own line
- line height is 1.2x the font size
"""

from __future__ import annotations

import math
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from PIL import Image, ImageDraw, ImageFont

from divide_it.ffmpeg import FFmpegWrapper
from divide_it.logging import get_logger
from divide_it.overlay.styles import OverlayPosition, OverlayStyle

logger = get_logger(__name__)


@dataclass
class TextBox:
    """A rendered title box image.

    Attributes:
        image_path: Temporary PNG with alpha
        width: Box width in pixels
        height: Box height in pixels
        lines: Wrapped text lines
    """

    image_path: Path
    width: int
    height: int
    lines: list[str]


def load_font(font_path: str | None, size: int) -> ImageFont.ImageFont:
    """Load a TrueType font, falling back to DejaVuSans and then Pillow's own."""
    if font_path is not None and os.path.exists(font_path):
        return ImageFont.truetype(font_path, size)
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", size)
    except OSError:
        pass
    try:
        return ImageFont.truetype("DejaVuSans.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


def text_width(font: ImageFont.ImageFont, text: str) -> float:
    bbox = font.getbbox(text)
    return bbox[2] - bbox[0]


def wrap_text(text: str, max_width: float, measure: Callable[[str], float]) -> list[str]:
    """Greedy word wrap.

    Args:
        text: Text to wrap; runs of whitespace collapse to single spaces
        max_width: Widest a line may be
        measure: Returns the rendered width of a string

    Returns:
        Lines in order. A single word wider than ``max_width`` is kept whole
        on its own line.
    """
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if not current or measure(candidate) <= max_width:
            current = candidate
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


def place_overlay(
    frame_width: int,
    frame_height: int,
    box_width: int,
    box_height: int,
    position: OverlayPosition | str = OverlayPosition.TOP,
) -> tuple[int, int]:
    """Top-left corner for the box.

    The box is centered horizontally and centered vertically on the
    position's anchor line, then clamped inside the frame.

    Args:
        frame_width: Video width
        frame_height: Video height
        box_width: Box width
        box_height: Box height
        position: Vertical anchor

    Returns:
        (x, y) in pixels
    """
    position = OverlayPosition(position)
    x = round((frame_width - box_width) / 2)
    y = round(frame_height * position.anchor) - round(box_height / 2)
    x = max(0, min(x, frame_width - box_width))
    y = max(0, min(y, frame_height - box_height))
    return x, y


class TextOverlayCompositor:
    """Renders titles and burns them into videos."""

    def __init__(self, transcoder: FFmpegWrapper, style: OverlayStyle | None = None):
        self.transcoder = transcoder
        self.style = style or OverlayStyle()
        self._font: ImageFont.ImageFont | None = None

    @property
    def font(self) -> ImageFont.ImageFont:
        if self._font is None:
            self._font = load_font(self.style.font_path, self.style.font_size)
        return self._font

    def render_text_box(
        self,
        text: str,
        frame_width: int,
        max_width_fraction: float | None = None,
        font: ImageFont.ImageFont | None = None,
        padding: int | None = None,
        output_dir: Path | None = None,
    ) -> TextBox:
        """Draw the title box into a temporary PNG.

        Args:
            text: Title text
            frame_width: Width of the video it will be drawn on
            max_width_fraction: Override for the style's width limit
            font: Override for the style's font
            padding: Override for the style's padding
            output_dir: Directory for the PNG, system temp when None

        Returns:
            TextBox describing the image

        Raises:
            ValueError: If the text is blank
        """
        if not text or not text.strip():
            raise ValueError("Cannot render an empty title")

        fraction = self.style.max_width_fraction if max_width_fraction is None else max_width_fraction
        font = font or self.font
        pad = self.style.padding if padding is None else padding
        font_size = getattr(font, "size", self.style.font_size)
        line_height = font_size * self.style.line_spacing

        allowed = max(1.0, fraction * frame_width - 2 * pad)
        lines = wrap_text(text, allowed, lambda s: text_width(font, s))
        longest = max(text_width(font, line) for line in lines)

        # 0.9 * 1080 is 972.0000000000001 in floating point
        width = int(math.ceil(round(min(longest, allowed) + 2 * pad, 6)))
        height = int(math.ceil(round(len(lines) * line_height + 2 * pad, 6)))

        image = Image.new("RGBA", (width, height), self.style.background_rgba())
        draw = ImageDraw.Draw(image)
        fill = self.style.text_rgba()
        for i, line in enumerate(lines):
            left, top, right, bottom = font.getbbox(line)
            x = (width - (right - left)) / 2 - left
            y = pad + i * line_height + (line_height - (bottom - top)) / 2 - top
            draw.text((x, y), line, font=font, fill=fill)

        fd, name = tempfile.mkstemp(suffix=".png", prefix="title_", dir=output_dir)
        os.close(fd)
        image_path = Path(name)
        try:
            image.save(image_path, "PNG")
        except Exception:
            image_path.unlink(missing_ok=True)
            raise

        logger.debug(
            f"Rendered title box {width}x{height}",
            extra={"lines": len(lines)},
        )
        return TextBox(image_path=image_path, width=width, height=height, lines=lines)

    def composite_overlay(
        self,
        source_video: Path,
        image_path: Path,
        x: int,
        y: int,
        output_path: Path,
    ) -> Path:
        """Overlay the box image onto the video, then delete the image.

        The image is removed whether or not the transcoder succeeds.
        """
        try:
            return self.transcoder.overlay_image(source_video, image_path, x, y, output_path)
        finally:
            Path(image_path).unlink(missing_ok=True)

    def apply_title(self, source_video: Path, output_path: Path, title: str) -> Path:
        """Render ``title`` onto ``source_video`` and write ``output_path``.

        The result is written to a temporary file beside ``output_path`` and
        renamed into place, so ``output_path`` is either the old file or the
        complete new one. ``source_video`` and ``output_path`` may not be the
        same file.

        Args:
            source_video: Video without a title
            output_path: Destination
            title: Text to burn in

        Returns:
            output_path
        """
        source_video = Path(source_video)
        output_path = Path(output_path)
        if source_video.resolve() == output_path.resolve():
            raise ValueError("Title must be composited from a different file than its destination")

        frame = self.transcoder.probe(source_video)
        box = self.render_text_box(title, frame.width, output_dir=output_path.parent)
        x, y = place_overlay(frame.width, frame.height, box.width, box.height, self.style.position)

        fd, name = tempfile.mkstemp(
            suffix=output_path.suffix,
            prefix=f".{output_path.stem}_",
            dir=output_path.parent,
        )
        os.close(fd)
        temp_output = Path(name)
        try:
            self.composite_overlay(source_video, box.image_path, x, y, temp_output)
            os.replace(temp_output, output_path)
        except BaseException:
            temp_output.unlink(missing_ok=True)
            raise

        logger.info(
            f"Burned title into {output_path.name}",
            extra={"x": x, "y": y, "lines": len(box.lines)},
        )
        return output_path

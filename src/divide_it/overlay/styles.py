"""Title box styling."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from PIL import ImageColor

from divide_it.config import OverlaySettings


class OverlayPosition(str, Enum):
    """Vertical anchor for the title box."""

    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"

    @property
    def anchor(self) -> float:
        """Share of the frame height where the box center sits."""
        return {"top": 0.14, "center": 0.5, "bottom": 0.925}[self.value]


@dataclass
class OverlayStyle:
    """Appearance of the title box.

    Attributes:
        font_path: TrueType font file, None for the fallback chain
        font_size: Font size in pixels
        font_color: Text color, any Pillow color spec
        background_color: Box color
        background_opacity: Box opacity 0.0-1.0
        padding: Space between text and box edge in pixels
        max_width_fraction: Widest the box may be, as a share of frame width
        position: Vertical anchor
        line_spacing: Line height as a multiple of font size
    """

    font_path: str | None = None
    font_size: int = 56
    font_color: str = "#FFFFFF"
    background_color: str = "#000000"
    background_opacity: float = 0.8
    padding: int = 25
    max_width_fraction: float = 0.9
    position: OverlayPosition = OverlayPosition.TOP
    line_spacing: float = 1.2

    @classmethod
    def from_settings(cls, settings: OverlaySettings) -> "OverlayStyle":
        return cls(
            font_path=settings.font_path,
            font_size=settings.font_size,
            font_color=settings.font_color,
            background_color=settings.background_color,
            background_opacity=settings.background_opacity,
            padding=settings.padding,
            max_width_fraction=settings.max_width_fraction,
            position=OverlayPosition(settings.position),
        )

    @property
    def line_height(self) -> float:
        return self.font_size * self.line_spacing

    def text_rgba(self) -> Tuple[int, int, int, int]:
        return _rgba(self.font_color, 1.0)

    def background_rgba(self) -> Tuple[int, int, int, int]:
        return _rgba(self.background_color, self.background_opacity)


def _rgba(color: str, opacity: float) -> Tuple[int, int, int, int]:
    r, g, b = ImageColor.getrgb(color)[:3]
    return (r, g, b, int(round(255 * opacity)))

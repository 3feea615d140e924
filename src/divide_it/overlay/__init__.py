"""Title overlay rendering."""

from divide_it.overlay.compositor import (
    TextBox,
    TextOverlayCompositor,
    load_font,
    place_overlay,
    wrap_text,
)
from divide_it.overlay.styles import OverlayPosition, OverlayStyle

__all__ = [
    "OverlayPosition",
    "OverlayStyle",
    "TextBox",
    "TextOverlayCompositor",
    "load_font",
    "place_overlay",
    "wrap_text",
]

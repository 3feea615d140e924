"""Video format helpers.

Portrait letterboxing and the encoder settings used for every segment.
"""

from divide_it.video.portrait import (
    PortraitConfig,
    build_encoding_args,
    build_letterbox_filter,
)

__all__ = [
    "PortraitConfig",
    "build_encoding_args",
    "build_letterbox_filter",
]

"""Social copy for a segment: a short on-video title and a post description."""

from __future__ import annotations

import re
from dataclasses import dataclass

FALLBACK_TITLE = "Video Content"
EMPTY_DESCRIPTION = "No content available."
MAX_TITLE_WORDS = 7

_QUOTES = "\"'“”‘’"


@dataclass
class SocialContent:
    """Generated social copy.

    Attributes:
        title: At most seven words, burned into the video
        description: Post text with hashtag suggestions
    """

    title: str
    description: str

    def to_dict(self) -> dict:
        return {"title": self.title, "description": self.description}

    @classmethod
    def from_dict(cls, data: dict) -> "SocialContent":
        return cls(
            title=data.get("title", FALLBACK_TITLE),
            description=data.get("description", ""),
        )


def clean_title(raw: str | None) -> str:
    """Normalize a model-written title.

    Strips one layer of surrounding quotes and a leading "Title:" label,
    collapses whitespace, and keeps the first seven words. Blank input gives
    ``"Video Content"``.

    Args:
        raw: Model output

    Returns:
        Title suitable for the overlay
    """
    if not raw:
        return FALLBACK_TITLE

    title = raw.strip().splitlines()[0].strip() if raw.strip() else ""
    title = re.sub(r"^title\s*:\s*", "", title, flags=re.IGNORECASE)
    if len(title) >= 2 and title[0] in _QUOTES and title[-1] in _QUOTES:
        title = title[1:-1]
    else:
        title = title.strip(_QUOTES)

    words = title.split()
    if not words:
        return FALLBACK_TITLE
    return " ".join(words[:MAX_TITLE_WORDS])

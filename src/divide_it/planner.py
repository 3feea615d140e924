"""Random, well-spaced segment windows.

Windows are sampled independently and accepted when their start lies at
least half a minimum duration away from every accepted start. Windows may
therefore overlap in time; only their starts are spread out.
"""

from __future__ import annotations

import math
import random

from divide_it.logging import get_logger
from divide_it.models import SegmentWindow

logger = get_logger(__name__)

MAX_ATTEMPTS_PER_SLOT = 100
MIN_START_SPACING_FACTOR = 0.5


def plan(
    duration: float,
    count: int,
    min_duration: float,
    max_duration: float,
    rng: random.Random | None = None,
) -> list[SegmentWindow]:
    """Pick up to ``count`` random windows inside ``[0, duration]``.

    The number of windows is capped at ``floor(duration / min_duration)``.
    Each slot gets up to 100 sampling attempts; a slot that finds no
    well-spaced start is dropped, so fewer than ``count`` windows may be
    returned. An empty list means nothing fits.

    Args:
        duration: Source duration in seconds
        count: Requested number of windows
        min_duration: Shortest allowed window
        max_duration: Longest allowed window
        rng: Random source, a fresh unseeded one when omitted

    Returns:
        Windows sorted by start time with 1-based indices, times rounded
        to two decimals

    Raises:
        ValueError: If durations are not positive or max < min
    """
    if min_duration <= 0 or max_duration <= 0:
        raise ValueError("Segment durations must be positive")
    if max_duration < min_duration:
        raise ValueError("max_duration must not be less than min_duration")
    if count <= 0 or duration < min_duration:
        return []

    rng = rng or random.Random()
    slots = min(count, math.floor(duration / min_duration))
    min_spacing = min_duration * MIN_START_SPACING_FACTOR
    # Rounding must never push an end past the source
    end_limit = math.floor(round(duration * 100, 6)) / 100

    accepted: list[tuple[float, float]] = []
    for slot in range(slots):
        for _ in range(MAX_ATTEMPTS_PER_SLOT):
            start = round(rng.uniform(0, duration - min_duration), 2)
            longest = min(max_duration, duration - start)
            if longest < min_duration:
                continue
            if any(abs(start - other) < min_spacing for other, _ in accepted):
                continue

            length = rng.uniform(min_duration, longest)
            end = min(round(start + length, 2), end_limit)
            accepted.append((start, end))
            break
        else:
            logger.debug(
                f"No well-spaced start found for slot {slot + 1}",
                extra={"attempts": MAX_ATTEMPTS_PER_SLOT},
            )

    accepted.sort()
    windows = [
        SegmentWindow(index=i, start_time=start, end_time=end)
        for i, (start, end) in enumerate(accepted, start=1)
    ]
    logger.info(
        f"Planned {len(windows)} of {count} requested windows",
        extra={"source_duration": duration},
    )
    return windows

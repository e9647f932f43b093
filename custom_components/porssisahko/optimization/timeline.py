"""Timeline projection of the cheapest window.

Normalizes the window's position and width to [0, 1] over a visible time
range so a frontend card can draw it as a bar over the rest of the day.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from .price_analyzer import CheapestWindow, PriceInterval


@dataclass(frozen=True)
class TimelineFractions:
    """Window position relative to the visible range."""

    left_fraction: float
    width_fraction: float


def visible_range(upcoming: Sequence[PriceInterval]) -> tuple[datetime, datetime] | None:
    """Span from the first upcoming start to the last upcoming end.

    Args:
        upcoming: Filtered intervals sorted by start time

    Returns:
        (range_start, range_end), or None when there are no intervals
    """
    if not upcoming:
        return None
    return upcoming[0].start_time, upcoming[-1].end_time


def project_timeline(
    window: CheapestWindow | None,
    range_start: datetime,
    range_end: datetime,
) -> TimelineFractions | None:
    """Project the window onto the visible range.

    No clamping is done; callers enforce any minimum visible width.

    Args:
        window: Cheapest window, or None
        range_start: Visible range start
        range_end: Visible range end

    Returns:
        TimelineFractions, or None if there is no window or the range is empty
    """
    if window is None:
        return None

    span = (range_end - range_start).total_seconds()
    if span <= 0:
        return None

    left = (window.window_start - range_start).total_seconds() / span
    width = (window.window_end - window.window_start).total_seconds() / span

    return TimelineFractions(left_fraction=left, width_fraction=width)

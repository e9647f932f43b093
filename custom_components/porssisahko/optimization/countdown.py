"""Countdown to the start of the cheapest window.

Re-evaluated on every clock tick; a pure function of (target_start, now).
"""

from dataclasses import dataclass
from datetime import datetime

from ..const import COUNTDOWN_ACTIVE_LABEL


@dataclass(frozen=True)
class CountdownProjection:
    """Remaining time label for the countdown sensor."""

    label: str
    is_active: bool  # True once the window has started
    minutes_remaining: int | None  # None while active


def format_remaining(total_minutes: int) -> str:
    """Render whole minutes as '1h 29min', or '29min' when under an hour."""
    hours, minutes = divmod(total_minutes, 60)
    if hours:
        return f"{hours}h {minutes}min"
    return f"{minutes}min"


def project_countdown(target_start: datetime, now: datetime) -> CountdownProjection:
    """Project the remaining time until target_start.

    Remaining minutes are truncated, never rounded: 89 min 59 s shows as
    "1h 29min".

    Args:
        target_start: Start of the window counted down to
        now: Current instant (one clock tick)

    Returns:
        CountdownProjection
    """
    if target_start <= now:
        return CountdownProjection(
            label=COUNTDOWN_ACTIVE_LABEL,
            is_active=True,
            minutes_remaining=None,
        )

    total_minutes = int((target_start - now).total_seconds() // 60)

    return CountdownProjection(
        label=format_remaining(total_minutes),
        is_active=False,
        minutes_remaining=total_minutes,
    )

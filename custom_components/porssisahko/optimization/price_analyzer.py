"""Price analyzer for the current price and the cheapest upcoming hour.

Works on native 15-minute intervals. All methods are pure: they take the
interval collection and the instant to evaluate against, and never mutate
their inputs.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

import numpy as np

from ..const import (
    CHEAPEST_WINDOW_QUARTERS,
    PRICE_LEVEL_FREE_MAX,
    PRICE_LEVEL_HIGH_MAX,
    PRICE_LEVEL_LOW_MAX,
    PRICE_LEVEL_MODERATE_MAX,
    UPCOMING_PRICES_COUNT,
    PriceLevel,
)
from ..utils.time_utils import next_local_midnight

_LOGGER = logging.getLogger(__name__)

# Re-export from adapters for convenience
from ..adapters.spot_price_adapter import PriceInterval, PriceSeries

__all__ = [
    "CheapestWindow",
    "PriceAnalyzer",
    "PriceInterval",
    "PriceSeries",
    "PriceStatistics",
    "WindowSlot",
    "classify_price",
]


@dataclass(frozen=True)
class WindowSlot:
    """One interval inside the cheapest window."""

    time: datetime
    price_cents: float


@dataclass(frozen=True)
class CheapestWindow:
    """Result of the cheapest contiguous hour search.

    start_index points into the filtered, ascending sequence the search ran on.
    """

    start_index: int
    window_start: datetime
    window_end: datetime
    average_cents: float  # Mean of unrounded c/kWh values
    slots: tuple[WindowSlot, ...]


@dataclass(frozen=True)
class PriceStatistics:
    """Summary of a run of intervals in c/kWh."""

    min_cents: float
    max_cents: float
    mean_cents: float
    count: int


def classify_price(price_cents: float) -> PriceLevel:
    """Classify a c/kWh price into an absolute level.

    Levels:
        FREE: <= 0 (you get paid or pay nothing)
        LOW: < 5
        MODERATE: < 10
        HIGH: < 15
        VERY_HIGH: everything above
    """
    if price_cents <= PRICE_LEVEL_FREE_MAX:
        return PriceLevel.FREE
    if price_cents < PRICE_LEVEL_LOW_MAX:
        return PriceLevel.LOW
    if price_cents < PRICE_LEVEL_MODERATE_MAX:
        return PriceLevel.MODERATE
    if price_cents < PRICE_LEVEL_HIGH_MAX:
        return PriceLevel.HIGH
    return PriceLevel.VERY_HIGH


class PriceAnalyzer:
    """Locate the current interval and the cheapest hour before local midnight."""

    def __init__(self, window_quarters: int = CHEAPEST_WINDOW_QUARTERS):
        """Initialize price analyzer.

        Args:
            window_quarters: Number of consecutive intervals in the searched window
        """
        self.window_quarters = window_quarters

    def find_current(
        self,
        intervals: Iterable[PriceInterval],
        now: datetime,
    ) -> PriceInterval | None:
        """Find the interval containing now.

        Intervals may be in any order. Non-overlapping input has at most one
        match; a gap in the feed yields None.

        Args:
            intervals: Price intervals (PriceSeries or any iterable)
            now: Instant to locate

        Returns:
            The containing interval, or None
        """
        for interval in intervals:
            try:
                if interval.contains(now):
                    return interval
            except (TypeError, AttributeError) as err:
                # Naive/aware mismatch or a record without timestamps
                _LOGGER.debug("Skipping uncomparable interval %s: %s", interval, err)
                continue

        return None

    def upcoming_until_midnight(
        self,
        intervals: Iterable[PriceInterval],
        now: datetime,
    ) -> list[PriceInterval]:
        """Intervals starting at or after now and before the next local midnight.

        Args:
            intervals: Price intervals in any order
            now: Search start

        Returns:
            Filtered intervals sorted by start time
        """
        midnight = next_local_midnight(now)

        upcoming = [
            interval for interval in intervals if now <= interval.start_time < midnight
        ]
        upcoming.sort(key=lambda interval: interval.start_time)

        _LOGGER.debug(
            "%d intervals between %s and local midnight %s",
            len(upcoming),
            now.isoformat(),
            midnight.isoformat(),
        )

        return upcoming

    def find_cheapest_hour(self, upcoming: list[PriceInterval]) -> CheapestWindow | None:
        """Find the cheapest run of consecutive intervals.

        Sliding window over the sequence by index. Continuity in wall time is
        not checked: a gap in the feed is averaged across. Ties keep the
        earliest window.

        Args:
            upcoming: Filtered intervals sorted by start time

        Returns:
            CheapestWindow, or None if fewer intervals than the window needs
        """
        needed = self.window_quarters

        if len(upcoming) < needed:
            _LOGGER.debug(
                "Not enough price data for window search: %d intervals available, %d needed",
                len(upcoming),
                needed,
            )
            return None

        prices = [interval.price_cents_per_kwh for interval in upcoming]

        lowest_average = None
        lowest_index = 0

        for i in range(len(prices) - needed + 1):
            # Correctly rounded: equal price sets give equal sums in any order
            window_average = math.fsum(prices[i : i + needed]) / needed

            if lowest_average is None or window_average < lowest_average:
                lowest_average = window_average
                lowest_index = i

        window = upcoming[lowest_index : lowest_index + needed]

        result = CheapestWindow(
            start_index=lowest_index,
            window_start=window[0].start_time,
            window_end=window[-1].end_time,
            average_cents=lowest_average,
            slots=tuple(
                WindowSlot(time=interval.start_time, price_cents=interval.price_cents_per_kwh)
                for interval in window
            ),
        )

        _LOGGER.debug(
            "Cheapest hour: %s-%s avg %.3f c/kWh (index %d of %d)",
            result.window_start.isoformat(),
            result.window_end.isoformat(),
            result.average_cents,
            lowest_index,
            len(upcoming),
        )

        return result

    def get_upcoming_prices(
        self,
        intervals: Iterable[PriceInterval],
        now: datetime,
        count: int = UPCOMING_PRICES_COUNT,
    ) -> list[PriceInterval]:
        """Next intervals starting at or after now, sorted, at most count.

        Not bounded by midnight; used for the upcoming prices chart.
        """
        upcoming = sorted(
            (interval for interval in intervals if interval.start_time >= now),
            key=lambda interval: interval.start_time,
        )
        return upcoming[:count]

    def calculate_statistics(self, intervals: list[PriceInterval]) -> PriceStatistics | None:
        """Min/max/mean price over the given intervals, None when empty."""
        if not intervals:
            return None

        prices = np.array([interval.price_cents_per_kwh for interval in intervals], dtype=float)

        return PriceStatistics(
            min_cents=float(np.min(prices)),
            max_cents=float(np.max(prices)),
            mean_cents=float(np.mean(prices)),
            count=len(prices),
        )

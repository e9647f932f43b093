"""Tests for the midnight-bounded filter and the cheapest hour search.

Scenarios:
- Cheapest run found by sliding 4 intervals over the filtered sequence
- Fewer than 4 intervals -> no window
- Ties keep the earliest window
- Intervals at or after the next local midnight are excluded
- Gaps are averaged across by index, not corrected
"""

import itertools
import random
from datetime import timedelta, timezone

import pytest

from custom_components.porssisahko.adapters.spot_price_adapter import PriceInterval, PriceSeries
from custom_components.porssisahko.optimization.price_analyzer import PriceAnalyzer

from conftest import create_intervals, local_time


@pytest.fixture
def analyzer():
    return PriceAnalyzer()


class TestUpcomingUntilMidnight:
    """Filter: now <= start < next local midnight, sorted."""

    def test_keeps_intervals_from_now(self, analyzer):
        start = local_time(2025, 10, 1, 20, 0)
        intervals = create_intervals(start, [10, 2, 2, 2, 2, 20])

        upcoming = analyzer.upcoming_until_midnight(intervals, start)

        assert upcoming == intervals

    def test_interval_in_progress_is_excluded(self, analyzer):
        """The current interval started before now, so it is not upcoming."""
        start = local_time(2025, 10, 1, 20, 0)
        intervals = create_intervals(start, [10, 2, 2])

        upcoming = analyzer.upcoming_until_midnight(intervals, start + timedelta(minutes=5))

        assert upcoming == intervals[1:]

    def test_midnight_interval_is_excluded(self, analyzer):
        """An interval starting exactly at 00:00 belongs to tomorrow."""
        start = local_time(2025, 10, 1, 23, 0)
        intervals = create_intervals(start, [5.0] * 8)  # 23:00 .. 00:45

        upcoming = analyzer.upcoming_until_midnight(intervals, start)

        assert len(upcoming) == 4
        assert upcoming[-1].start_time == local_time(2025, 10, 1, 23, 45)

    def test_cheap_tomorrow_prices_are_ignored(self, analyzer):
        """Tomorrow's much cheaper night does not pull the window past midnight."""
        start = local_time(2025, 10, 1, 22, 0)
        intervals = create_intervals(start, [12.0] * 8 + [0.5] * 8)

        upcoming = analyzer.upcoming_until_midnight(intervals, start)
        window = analyzer.find_cheapest_hour(upcoming)

        assert all(i.start_time < local_time(2025, 10, 2) for i in upcoming)
        assert window.average_cents == pytest.approx(12.0)

    def test_boundary_is_calendar_midnight_not_24_hours(self, analyzer):
        """At 23:30 only two quarters remain today."""
        day_start = local_time(2025, 10, 1)
        intervals = create_intervals(day_start, [3.0] * 192)  # Today + tomorrow

        upcoming = analyzer.upcoming_until_midnight(intervals, local_time(2025, 10, 1, 23, 30))

        assert [i.start_time for i in upcoming] == [
            local_time(2025, 10, 1, 23, 30),
            local_time(2025, 10, 1, 23, 45),
        ]

    def test_early_morning_keeps_rest_of_today(self, analyzer):
        """Just after midnight the boundary is the coming midnight, almost a full day away."""
        day_start = local_time(2025, 10, 1)
        intervals = create_intervals(day_start, [3.0] * 192)

        upcoming = analyzer.upcoming_until_midnight(intervals, local_time(2025, 10, 1, 0, 5))

        assert len(upcoming) == 95
        assert upcoming[0].start_time == local_time(2025, 10, 1, 0, 15)

    def test_output_sorted_regardless_of_feed_order(self, analyzer):
        start = local_time(2025, 10, 1, 18, 0)
        intervals = create_intervals(start, [float(i) for i in range(12)])
        shuffled = list(intervals)
        random.Random(4).shuffle(shuffled)

        upcoming = analyzer.upcoming_until_midnight(PriceSeries(tuple(shuffled)), start)

        assert upcoming == intervals

    def test_dst_end_day_has_25_hours(self, analyzer):
        """On 2025-10-26 Helsinki falls back; the day holds 100 quarters."""
        day_start = local_time(2025, 10, 26)
        # Feed timestamps are absolute; step in UTC so the repeated hour is present
        intervals = create_intervals(day_start.astimezone(timezone.utc), [4.0] * 110)

        upcoming = analyzer.upcoming_until_midnight(intervals, day_start)

        assert len(upcoming) == 100
        assert upcoming[-1].end_time == local_time(2025, 10, 27)


class TestFindCheapestHour:
    """Sliding 4-interval window over the filtered sequence."""

    def test_cheapest_run_in_middle(self, analyzer):
        """[10,2,2,2,2,20] from 20:00 -> indices 1-4, avg 2.0, 20:15-21:15."""
        start = local_time(2025, 10, 1, 20, 0)
        intervals = create_intervals(start, [10, 2, 2, 2, 2, 20])

        upcoming = analyzer.upcoming_until_midnight(intervals, start)
        window = analyzer.find_cheapest_hour(upcoming)

        assert window is not None
        assert window.start_index == 1
        assert window.average_cents == pytest.approx(2.0)
        assert window.window_start == local_time(2025, 10, 1, 20, 15)
        assert window.window_end == local_time(2025, 10, 1, 21, 15)
        assert [slot.price_cents for slot in window.slots] == pytest.approx([2, 2, 2, 2])
        assert [slot.time for slot in window.slots] == [
            local_time(2025, 10, 1, 20, 15),
            local_time(2025, 10, 1, 20, 30),
            local_time(2025, 10, 1, 20, 45),
            local_time(2025, 10, 1, 21, 0),
        ]

    def test_three_intervals_is_not_enough(self, analyzer):
        start = local_time(2025, 10, 1, 23, 15)
        intervals = create_intervals(start, [1, 1, 1])

        upcoming = analyzer.upcoming_until_midnight(intervals, start)

        assert len(upcoming) == 3
        assert analyzer.find_cheapest_hour(upcoming) is None

    def test_empty_sequence(self, analyzer):
        assert analyzer.find_cheapest_hour([]) is None

    def test_exactly_four_intervals(self, analyzer):
        intervals = create_intervals(local_time(2025, 10, 1, 12, 0), [4, 3, 2, 1])

        window = analyzer.find_cheapest_hour(intervals)

        assert window.start_index == 0
        assert window.average_cents == pytest.approx(2.5)

    def test_tie_keeps_earliest_window(self, analyzer):
        """Two windows with identical mean: the earlier one wins."""
        intervals = create_intervals(
            local_time(2025, 10, 1, 12, 0), [9, 1, 1, 1, 1, 9, 1, 1, 1, 1, 9]
        )

        window = analyzer.find_cheapest_hour(intervals)

        assert window.start_index == 1
        assert window.window_start == local_time(2025, 10, 1, 12, 15)

    def test_tie_with_same_prices_in_different_order(self, analyzer):
        """Equal means from reordered fractional prices still keep the earliest window."""
        start = local_time(2025, 10, 1, 12, 0)
        eur_prices = [0.04031, 0.25423, 0.22913, 0.07652, 0.04031]
        intervals = [
            PriceInterval(start_time=start + timedelta(minutes=15 * i), price_eur_per_kwh=price)
            for i, price in enumerate(eur_prices)
        ]

        window = analyzer.find_cheapest_hour(intervals)

        assert window.start_index == 0
        assert window.window_start == start

    def test_rotated_ties_keep_earliest_window(self, analyzer):
        """Sequences [a, b, c, d, a] always tie windows 0 and 1."""
        rng = random.Random(31)
        start = local_time(2025, 10, 1, 12, 0)
        for _ in range(500):
            first, *middle = [round(rng.uniform(-0.05, 0.4), 5) for _ in range(4)]
            eur_prices = [first, *middle, first]
            intervals = [
                PriceInterval(
                    start_time=start + timedelta(minutes=15 * i), price_eur_per_kwh=price
                )
                for i, price in enumerate(eur_prices)
            ]

            assert analyzer.find_cheapest_hour(intervals).start_index == 0, eur_prices

    def test_flat_prices_pick_first_window(self, analyzer):
        intervals = create_intervals(local_time(2025, 10, 1, 12, 0), [5.0] * 20)

        assert analyzer.find_cheapest_hour(intervals).start_index == 0

    def test_negative_prices(self, analyzer):
        intervals = create_intervals(
            local_time(2025, 10, 1, 12, 0), [3.0, 0.0, -1.5, -2.0, -0.5, 1.0, 4.0]
        )

        window = analyzer.find_cheapest_hour(intervals)

        assert window.start_index == 1
        assert window.average_cents == pytest.approx(-1.0)

    def test_average_uses_unrounded_cents(self, analyzer):
        """Mean of converted EUR values, not of rounded cents."""
        intervals = create_intervals(
            local_time(2025, 10, 1, 12, 0), [1.004, 1.004, 1.004, 1.004]
        )

        window = analyzer.find_cheapest_hour(intervals)

        assert window.average_cents == pytest.approx(1.004)

    def test_gap_is_averaged_across_by_index(self, analyzer):
        """Entries around a missing hour still form one 4-entry window."""
        before = create_intervals(local_time(2025, 10, 1, 12, 0), [9, 9, 1, 1])
        after = create_intervals(local_time(2025, 10, 1, 14, 0), [1, 1, 9, 9])

        window = analyzer.find_cheapest_hour(before + after)

        assert window.start_index == 2
        assert window.window_start == local_time(2025, 10, 1, 12, 30)
        assert window.window_end == local_time(2025, 10, 1, 14, 30)

    def test_window_is_optimal_among_all_windows(self, analyzer):
        """Returned mean <= every other contiguous 4-window mean."""
        rng = random.Random(2025)
        for _ in range(50):
            count = rng.randint(4, 40)
            prices = [round(rng.uniform(-5, 30), 3) for _ in range(count)]
            intervals = create_intervals(local_time(2025, 10, 1, 12, 0), prices)

            window = analyzer.find_cheapest_hour(intervals)

            means = [sum(prices[i : i + 4]) / 4 for i in range(count - 3)]
            assert window.average_cents <= min(means) + 1e-9
            assert window.average_cents == pytest.approx(means[window.start_index])

    def test_window_quarters_is_configurable(self):
        analyzer = PriceAnalyzer(window_quarters=2)
        intervals = create_intervals(local_time(2025, 10, 1, 12, 0), [5, 1, 1, 5])

        window = analyzer.find_cheapest_hour(intervals)

        assert window.start_index == 1
        assert len(window.slots) == 2


class TestUpcomingPricesAndStatistics:
    def test_upcoming_prices_limited_and_sorted(self, analyzer):
        start = local_time(2025, 10, 1, 22, 0)
        intervals = create_intervals(start, [float(i) for i in range(20)])
        reversed_series = PriceSeries(tuple(reversed(intervals)))

        upcoming = analyzer.get_upcoming_prices(reversed_series, start + timedelta(minutes=1))

        assert len(upcoming) == 12
        assert upcoming[0] == intervals[1]
        # Not bounded by midnight
        assert upcoming[-1].start_time > local_time(2025, 10, 2)

    def test_statistics(self, analyzer):
        intervals = create_intervals(local_time(2025, 10, 1, 12, 0), [1.0, -2.0, 4.0, 5.0])

        stats = analyzer.calculate_statistics(intervals)

        assert stats.min_cents == pytest.approx(-2.0)
        assert stats.max_cents == pytest.approx(5.0)
        assert stats.mean_cents == pytest.approx(2.0)
        assert stats.count == 4

    def test_statistics_empty(self, analyzer):
        assert analyzer.calculate_statistics([]) is None


@pytest.mark.parametrize(
    ("price", "level"),
    [
        (-1.0, "free"),
        (0.0, "free"),
        (0.01, "low"),
        (4.99, "low"),
        (5.0, "moderate"),
        (9.99, "moderate"),
        (10.0, "high"),
        (14.99, "high"),
        (15.0, "very_high"),
        (42.0, "very_high"),
    ],
)
def test_classify_price(price, level):
    from custom_components.porssisahko.optimization.price_analyzer import classify_price

    assert classify_price(price) == level


def test_every_window_of_small_sequences_checked():
    """Exhaustive check over all 0/1 price patterns of length 6."""
    analyzer = PriceAnalyzer()
    for pattern in itertools.product([0, 1], repeat=6):
        intervals = create_intervals(local_time(2025, 10, 1, 12, 0), list(pattern))
        window = analyzer.find_cheapest_hour(intervals)

        sums = [sum(pattern[i : i + 4]) for i in range(3)]
        assert window.start_index == sums.index(min(sums))

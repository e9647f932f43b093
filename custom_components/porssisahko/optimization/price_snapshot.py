"""Widget state and the read-only snapshot handed to entities.

The state is replaced, never mutated: a successful fetch swaps in a new
series and recomputes the per-fetch derivations, a failed fetch only flips
the fetch state and keeps whatever was loaded before. Snapshots are rebuilt
from the state on every fetch and every clock tick. Crossing local midnight
re-derives the window from the held series, since the old one ended there.
"""

from dataclasses import dataclass, replace
from datetime import datetime

from ..const import FetchState, PriceLevel
from ..utils.time_utils import next_local_midnight
from .countdown import CountdownProjection, project_countdown
from .price_analyzer import (
    CheapestWindow,
    PriceAnalyzer,
    PriceInterval,
    PriceSeries,
    PriceStatistics,
    classify_price,
)
from .timeline import TimelineFractions, project_timeline, visible_range


@dataclass(frozen=True)
class PriceWidgetState:
    """Everything one config entry owns between fetches."""

    series: PriceSeries | None = None
    fetch_state: FetchState = FetchState.IDLE
    last_fetched_at: datetime | None = None
    error: str | None = None
    is_fetching: bool = False

    # Derived once per fetch, and again when the local day rolls over
    upcoming: tuple[PriceInterval, ...] = ()
    cheapest_window: CheapestWindow | None = None
    timeline: TimelineFractions | None = None
    derived_until: datetime | None = None  # Local midnight the derivations are bounded by

    def with_series(
        self,
        series: PriceSeries,
        analyzer: PriceAnalyzer,
        now: datetime,
    ) -> "PriceWidgetState":
        """Transition to LOADED with a freshly fetched series."""
        return replace(
            self,
            series=series,
            fetch_state=FetchState.LOADED,
            last_fetched_at=series.fetched_at or now,
            error=None,
            is_fetching=False,
        ).with_derivations(analyzer, now)

    def with_derivations(self, analyzer: PriceAnalyzer, now: datetime) -> "PriceWidgetState":
        """Recompute upcoming intervals, cheapest window and timeline from the held series.

        Fetch state, error and timestamps are kept as they are.
        """
        intervals = self.series.intervals if self.series else ()

        upcoming = analyzer.upcoming_until_midnight(intervals, now)
        cheapest = analyzer.find_cheapest_hour(upcoming)

        bounds = visible_range(upcoming)
        timeline = project_timeline(cheapest, *bounds) if bounds else None

        return replace(
            self,
            upcoming=tuple(upcoming),
            cheapest_window=cheapest,
            timeline=timeline,
            derived_until=next_local_midnight(now),
        )

    def needs_derivation(self, now: datetime) -> bool:
        """True once now has passed the local midnight the derivations end at."""
        return (
            self.series is not None
            and self.derived_until is not None
            and now >= self.derived_until
        )

    def with_error(self, message: str) -> "PriceWidgetState":
        """Transition to ERROR, keeping the previously loaded data."""
        return replace(self, fetch_state=FetchState.ERROR, error=message, is_fetching=False)

    def with_fetching(self, is_fetching: bool = True) -> "PriceWidgetState":
        """Mark a fetch as in flight."""
        return replace(self, is_fetching=is_fetching)


@dataclass(frozen=True)
class PriceSnapshot:
    """Read-only view consumed by entities after each recomputation."""

    fetch_state: FetchState
    last_fetched_at: datetime | None
    error: str | None
    is_fetching: bool
    current_interval: PriceInterval | None
    price_level: PriceLevel | None
    cheapest_window: CheapestWindow | None
    countdown: CountdownProjection | None
    timeline: TimelineFractions | None
    upcoming_prices: tuple[PriceInterval, ...]
    statistics: PriceStatistics | None
    evaluated_at: datetime

    @property
    def has_data(self) -> bool:
        """True when a series (fresh or stale) is available."""
        return self.last_fetched_at is not None


def build_snapshot(
    state: PriceWidgetState,
    analyzer: PriceAnalyzer,
    now: datetime,
) -> PriceSnapshot:
    """Build the snapshot for one instant.

    Current interval and countdown follow now; the cheapest window and its
    timeline stay as last derived by the state.

    Args:
        state: Current widget state
        analyzer: Price analyzer
        now: Evaluation instant

    Returns:
        PriceSnapshot
    """
    intervals = state.series.intervals if state.series else ()

    current = analyzer.find_current(intervals, now)
    countdown = (
        project_countdown(state.cheapest_window.window_start, now)
        if state.cheapest_window
        else None
    )

    return PriceSnapshot(
        fetch_state=state.fetch_state,
        last_fetched_at=state.last_fetched_at,
        error=state.error,
        is_fetching=state.is_fetching,
        current_interval=current,
        price_level=classify_price(current.price_cents_per_kwh) if current else None,
        cheapest_window=state.cheapest_window,
        countdown=countdown,
        timeline=state.timeline,
        upcoming_prices=tuple(analyzer.get_upcoming_prices(intervals, now)),
        statistics=analyzer.calculate_statistics(list(state.upcoming)),
        evaluated_at=now,
    )

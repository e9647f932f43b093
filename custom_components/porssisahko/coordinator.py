"""Data update coordinator for Pörssisähkö."""

import logging
from datetime import datetime, timedelta
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_track_time_interval
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator
from homeassistant.util import dt as dt_util

from .adapters.spot_price_adapter import PriceFetchError, PriceSeries, SpotPriceAdapter
from .const import (
    CONF_REQUEST_TIMEOUT,
    CONF_UPDATE_INTERVAL,
    COUNTDOWN_TICK_SECONDS,
    DOMAIN,
    FetchState,
)
from .optimization.price_analyzer import PriceAnalyzer
from .optimization.price_snapshot import PriceSnapshot, PriceWidgetState, build_snapshot

_LOGGER = logging.getLogger(__name__)


def update_interval_from_minutes(minutes: Any) -> timedelta | None:
    """Polling interval for the coordinator, None when polling is disabled."""
    try:
        value = int(minutes)
    except (TypeError, ValueError):
        return None
    return timedelta(minutes=value) if value > 0 else None


class PorssisahkoCoordinator(DataUpdateCoordinator[PriceSnapshot]):
    """Coordinate price fetches and the countdown clock.

    This coordinator orchestrates:
    - Fetching the spot price feed (on setup, on demand, optionally polled)
    - The Idle/Loaded/Error state, retaining the last series on failure
    - Discarding responses that resolve after a newer one was applied
    - A 1-second tick that rebuilds the snapshot for the countdown

    Entities read self.data, a PriceSnapshot rebuilt on each of those events.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        spot_price_adapter: SpotPriceAdapter,
        price_analyzer: PriceAnalyzer,
        entry: ConfigEntry,
        update_interval: timedelta | None = None,
    ):
        """Initialize coordinator with dependency injection."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=entry,
            name=DOMAIN,
            update_interval=update_interval,
        )
        self.spot_price = spot_price_adapter
        self.analyzer = price_analyzer
        self.entry = entry

        self.state = PriceWidgetState()

        # Request bookkeeping for overlapping fetches
        self._request_counter = 0
        self._applied_request_id = 0
        self._in_flight = 0

        self._unsub_tick: CALLBACK_TYPE | None = None

    @property
    def series(self) -> PriceSeries | None:
        """Currently held series (may be stale in the ERROR state)."""
        return self.state.series

    @property
    def fetch_state(self) -> FetchState:
        """Current fetch state."""
        return self.state.fetch_state

    async def _async_update_data(self) -> PriceSnapshot:
        """Fetch prices and rebuild the snapshot.

        A failed fetch does not raise UpdateFailed: entities stay available
        and keep showing the last known data, with fetch_state = error.

        Returns:
            PriceSnapshot for the current instant
        """
        self._request_counter += 1
        request_id = self._request_counter
        self._in_flight += 1
        self.state = self.state.with_fetching(True)

        _LOGGER.debug("Fetching spot prices (request %d)", request_id)

        series: PriceSeries | None = None
        error: PriceFetchError | None = None
        try:
            series = await self.spot_price.get_prices()
        except PriceFetchError as err:
            error = err
        finally:
            self._in_flight -= 1

        if request_id < self._applied_request_id:
            _LOGGER.debug(
                "Discarding response for request %d, request %d already applied",
                request_id,
                self._applied_request_id,
            )
            self.state = self.state.with_fetching(self._in_flight > 0)
            return self._build_snapshot()

        self._applied_request_id = request_id
        now = dt_util.now()

        if error is not None:
            previous_state = self.state.fetch_state
            self.state = self.state.with_error(str(error))
            _LOGGER.warning(
                "Price fetch failed (%s -> %s), keeping %s: %s",
                previous_state,
                FetchState.ERROR,
                "previous prices" if self.state.series else "no prices",
                error,
            )
        else:
            if self.state.fetch_state == FetchState.IDLE:
                _LOGGER.info("First spot prices received: %d intervals", len(series))
            self.state = self.state.with_series(series, self.analyzer, now)

            window = self.state.cheapest_window
            if window:
                _LOGGER.debug(
                    "Cheapest hour before midnight starts %s, avg %.2f c/kWh",
                    window.window_start.isoformat(),
                    window.average_cents,
                )
            else:
                _LOGGER.debug(
                    "No cheapest hour: %d intervals left before midnight",
                    len(self.state.upcoming),
                )

        self.state = self.state.with_fetching(self._in_flight > 0)
        return self._build_snapshot(now)

    def _build_snapshot(self, now: datetime | None = None) -> PriceSnapshot:
        """Build a snapshot of the current state for one instant."""
        if now is None:
            now = dt_util.now()
        return build_snapshot(self.state, self.analyzer, now)

    async def async_refetch(self) -> None:
        """Fetch prices now, bypassing the request debouncer."""
        _LOGGER.debug("Refetch requested")
        await self.async_refresh()

    @callback
    def async_start_ticker(self) -> None:
        """Start the 1-second countdown clock."""
        if self._unsub_tick is not None:
            return

        self._unsub_tick = async_track_time_interval(
            self.hass,
            self._async_tick,
            timedelta(seconds=COUNTDOWN_TICK_SECONDS),
        )
        _LOGGER.debug("Countdown ticker started")

    @callback
    def async_stop_ticker(self) -> None:
        """Stop the countdown clock."""
        if self._unsub_tick is None:
            return

        self._unsub_tick()
        self._unsub_tick = None
        _LOGGER.debug("Countdown ticker stopped")

    @callback
    def _async_tick(self, now: datetime) -> None:
        """Rebuild the snapshot for the new instant and notify entities."""
        if self.data is None:
            return

        if self.state.needs_derivation(now):
            self.state = self.state.with_derivations(self.analyzer, now)
            _LOGGER.debug(
                "Local midnight passed, cheapest hour re-derived: %s",
                self.state.cheapest_window.window_start.isoformat()
                if self.state.cheapest_window
                else "none",
            )

        self.data = self._build_snapshot(now)
        self.async_update_listeners()

    async def async_shutdown(self) -> None:
        """Clean shutdown of coordinator.

        Called during integration unload or reload.
        """
        _LOGGER.debug("Shutting down Pörssisähkö coordinator")
        self.async_stop_ticker()
        await super().async_shutdown()

    async def async_update_config(self, new_options: dict[str, Any]) -> None:
        """Update runtime options without a full reload.

        Args:
            new_options: Dictionary of updated option values
        """
        _LOGGER.debug("Updating configuration: %s", new_options)

        if CONF_REQUEST_TIMEOUT in new_options:
            self.spot_price.request_timeout = float(new_options[CONF_REQUEST_TIMEOUT])
            _LOGGER.debug("Updated request timeout: %.0fs", self.spot_price.request_timeout)

        if CONF_UPDATE_INTERVAL in new_options:
            self.update_interval = update_interval_from_minutes(new_options[CONF_UPDATE_INTERVAL])
            _LOGGER.debug("Updated polling interval: %s", self.update_interval)
            # Cancel the pending poll; reschedules only when polling is enabled
            self._async_unsub_refresh()
            self._schedule_refresh()

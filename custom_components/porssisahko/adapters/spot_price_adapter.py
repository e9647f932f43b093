"""Spot price adapter for reading electricity prices over HTTP.

This adapter fetches the day-ahead price feed for Finland, which publishes
native 15-minute price intervals for today and, in the afternoon, tomorrow.

Feed format (spot-hinta.fi):
- JSON array of records
- DateTime: ISO-8601 interval start with UTC offset
- PriceWithTax / PriceNoTax: EUR/kWh
- Rank: cheapness rank within the day (not used for calculations)

The legacy porssisahko.net envelope ({"prices": [...]}, c/kWh) is accepted
as well so older URLs keep working.

This adapter:
- Reads only the interval start and the tax-inclusive price
- Uses the configured interval duration instead of inferring it from the data
- Skips malformed records instead of failing the whole fetch
"""

import asyncio
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

import async_timeout
from aiohttp import ClientError

from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.util import dt as dt_util

from ..const import (
    CENTS_PER_EUR,
    CONF_API_URL,
    CONF_REQUEST_TIMEOUT,
    DEFAULT_API_URL,
    DEFAULT_REQUEST_TIMEOUT,
    FEED_FIELD_PRICE_NO_TAX,
    FEED_FIELD_PRICE_WITH_TAX,
    FEED_FIELD_RANK,
    FEED_FIELD_TIME,
    LEGACY_FIELD_PRICE,
    LEGACY_FIELD_PRICES,
    LEGACY_FIELD_START,
    QUARTER_INTERVAL_MINUTES,
)

_LOGGER = logging.getLogger(__name__)


class PriceFetchError(HomeAssistantError):
    """Price feed could not be fetched or decoded."""

    def __init__(self, message: str, status: int | None = None) -> None:
        """Initialize with a user-visible message and optional HTTP status."""
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class PriceInterval:
    """Single fixed-duration price interval.

    start_time is inclusive, end_time exclusive. Prices can be zero or negative.
    """

    start_time: datetime  # Timezone-aware interval start
    price_eur_per_kwh: float  # Tax-inclusive price
    duration_minutes: int = QUARTER_INTERVAL_MINUTES
    price_no_tax_eur_per_kwh: float | None = None  # Display only
    rank: int | None = None  # Display only

    @property
    def end_time(self) -> datetime:
        """Exclusive end of the interval."""
        return self.start_time + timedelta(minutes=self.duration_minutes)

    @property
    def price_cents_per_kwh(self) -> float:
        """Tax-inclusive price converted to c/kWh."""
        return self.price_eur_per_kwh * CENTS_PER_EUR

    def contains(self, moment: datetime) -> bool:
        """True if moment falls inside [start_time, end_time)."""
        return self.start_time <= moment < self.end_time


@dataclass(frozen=True)
class PriceSeries:
    """Immutable price intervals from one successful fetch.

    Intervals keep the order the feed delivered them in; the feed gives no
    ordering guarantee, so consumers sort before any positional work.
    """

    intervals: tuple[PriceInterval, ...] = ()
    fetched_at: datetime | None = None
    source_url: str | None = field(default=None, compare=False)

    def __len__(self) -> int:
        """Number of intervals in the series."""
        return len(self.intervals)

    def __iter__(self) -> Iterator[PriceInterval]:
        """Iterate intervals in feed order."""
        return iter(self.intervals)

    def sorted_intervals(self) -> tuple[PriceInterval, ...]:
        """Intervals ordered by start time, ascending."""
        return tuple(sorted(self.intervals, key=lambda interval: interval.start_time))


class SpotPriceAdapter:
    """Adapter for fetching the spot price feed."""

    def __init__(self, hass: HomeAssistant, config: dict[str, Any]):
        """Initialize spot price adapter.

        Args:
            hass: Home Assistant instance
            config: Configuration dictionary with feed URL and timeout
        """
        self.hass = hass
        self.api_url: str = config.get(CONF_API_URL, DEFAULT_API_URL)
        self.request_timeout: float = float(
            config.get(CONF_REQUEST_TIMEOUT, DEFAULT_REQUEST_TIMEOUT)
        )

    async def get_prices(self) -> PriceSeries:
        """Fetch and parse the price feed.

        Returns:
            PriceSeries in feed order, possibly empty

        Raises:
            PriceFetchError: On network failure, timeout, non-2xx status or
                a payload that is not a price feed
        """
        session = async_get_clientsession(self.hass)

        try:
            async with async_timeout.timeout(self.request_timeout):
                async with session.get(self.api_url) as response:
                    if not 200 <= response.status < 300:
                        raise PriceFetchError(f"HTTP {response.status}", status=response.status)
                    payload = await response.json(content_type=None)
        except asyncio.TimeoutError as err:
            raise PriceFetchError(
                f"Timeout after {self.request_timeout:.0f}s fetching {self.api_url}"
            ) from err
        except ClientError as err:
            raise PriceFetchError(f"Network error: {err}") from err
        except ValueError as err:
            raise PriceFetchError(f"Invalid JSON from {self.api_url}") from err

        intervals = self.parse_payload(payload)

        _LOGGER.info(
            "Spot prices loaded: %d intervals from %s",
            len(intervals),
            self.api_url,
        )

        return PriceSeries(
            intervals=tuple(intervals),
            fetched_at=dt_util.utcnow(),
            source_url=self.api_url,
        )

    def parse_payload(self, payload: Any) -> list[PriceInterval]:
        """Parse a decoded feed body into PriceInterval objects.

        Args:
            payload: JSON array of feed records, or the legacy envelope

        Returns:
            Parsed intervals in feed order

        Raises:
            PriceFetchError: If the payload has neither supported shape
        """
        if isinstance(payload, dict) and isinstance(payload.get(LEGACY_FIELD_PRICES), list):
            return self._parse_legacy_records(payload[LEGACY_FIELD_PRICES])

        if isinstance(payload, list):
            return self._parse_records(payload)

        raise PriceFetchError(f"Unexpected price feed format: {type(payload).__name__}")

    def _parse_records(self, raw_records: list[Any]) -> list[PriceInterval]:
        """Parse spot-hinta.fi records (EUR/kWh)."""
        intervals = []

        for item in raw_records:
            try:
                start_time = _parse_start_time(item[FEED_FIELD_TIME])
                if start_time is None:
                    continue

                price_no_tax = item.get(FEED_FIELD_PRICE_NO_TAX)
                rank = item.get(FEED_FIELD_RANK)

                intervals.append(
                    PriceInterval(
                        start_time=start_time,
                        price_eur_per_kwh=float(item[FEED_FIELD_PRICE_WITH_TAX]),
                        price_no_tax_eur_per_kwh=(
                            float(price_no_tax) if price_no_tax is not None else None
                        ),
                        rank=int(rank) if rank is not None else None,
                    )
                )

            except (ValueError, TypeError, KeyError, AttributeError) as err:
                _LOGGER.warning("Failed to parse price record %s: %s", item, err)
                continue

        return intervals

    def _parse_legacy_records(self, raw_records: list[Any]) -> list[PriceInterval]:
        """Parse porssisahko.net records (c/kWh, tax included)."""
        intervals = []

        for item in raw_records:
            try:
                start_time = _parse_start_time(item[LEGACY_FIELD_START])
                if start_time is None:
                    continue

                intervals.append(
                    PriceInterval(
                        start_time=start_time,
                        price_eur_per_kwh=float(item[LEGACY_FIELD_PRICE]) / CENTS_PER_EUR,
                    )
                )

            except (ValueError, TypeError, KeyError, AttributeError) as err:
                _LOGGER.warning("Failed to parse legacy price record %s: %s", item, err)
                continue

        return intervals


def _parse_start_time(value: Any) -> datetime | None:
    """Parse an interval start into an aware datetime, or None if unusable."""
    if isinstance(value, datetime):
        start_time = value
    elif isinstance(value, str):
        start_time = dt_util.parse_datetime(value)
    else:
        raise TypeError(f"Unsupported timestamp type {type(value).__name__}")

    if start_time is None:
        _LOGGER.warning("Skipping price record with unparseable timestamp %r", value)
        return None

    if start_time.tzinfo is None:
        _LOGGER.warning("Skipping price record without UTC offset %r", value)
        return None

    return start_time

"""Pytest configuration for Pörssisähkö tests."""

import sys
import warnings
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, Mock
from zoneinfo import ZoneInfo

import pytest

from homeassistant.util import dt as dt_util

# Add tests directory to path so helpers can be imported from conftest
sys.path.insert(0, str(Path(__file__).parent))

# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)

# Filter warnings
warnings.filterwarnings("ignore", category=DeprecationWarning, module="homeassistant")

HELSINKI = ZoneInfo("Europe/Helsinki")


@pytest.fixture(autouse=True)
def setup_frame_helper(monkeypatch):
    """Set up the frame helper for all tests."""
    from homeassistant.helpers import frame

    # Mock the report_usage function to avoid frame helper errors
    monkeypatch.setattr(frame, "report_usage", Mock())

    yield


@pytest.fixture(autouse=True)
def local_time_zone():
    """Run every test with Helsinki as the configured local time zone."""
    original = dt_util.DEFAULT_TIME_ZONE
    dt_util.set_default_time_zone(HELSINKI)
    yield HELSINKI
    dt_util.set_default_time_zone(original)


def local_time(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0):
    """Aware datetime in Helsinki time."""
    return datetime(year, month, day, hour, minute, second, tzinfo=HELSINKI)


def create_intervals(start: datetime, prices_cents: list[float], duration_minutes: int = 15):
    """Create consecutive PriceIntervals from c/kWh prices.

    Args:
        start: Start of the first interval
        prices_cents: One price per interval, in c/kWh
        duration_minutes: Interval length

    Returns:
        List of PriceInterval objects in ascending order
    """
    from custom_components.porssisahko.adapters.spot_price_adapter import PriceInterval

    return [
        PriceInterval(
            start_time=start + timedelta(minutes=i * duration_minutes),
            price_eur_per_kwh=price / 100,
            duration_minutes=duration_minutes,
        )
        for i, price in enumerate(prices_cents)
    ]


def create_series(start: datetime, prices_cents: list[float], fetched_at: datetime | None = None):
    """Create a PriceSeries of consecutive 15-minute intervals."""
    from custom_components.porssisahko.adapters.spot_price_adapter import PriceSeries

    return PriceSeries(
        intervals=tuple(create_intervals(start, prices_cents)),
        fetched_at=fetched_at or start,
    )


# Common mock helper functions
def create_mock_hass():
    """Create a mock Home Assistant instance usable by DataUpdateCoordinator."""
    mock_hass = MagicMock()
    mock_hass.data = {}
    mock_hass.async_add_executor_job = AsyncMock(side_effect=lambda func, *args: func(*args))
    mock_hass.loop = Mock()  # Add loop for DataUpdateCoordinator
    mock_hass.loop.call_soon_threadsafe = Mock()
    mock_hass.async_create_task = MagicMock()
    mock_hass.is_stopping = False
    return mock_hass


def create_mock_entry(data: dict | None = None, options: dict | None = None):
    """Create a mock config entry with real data/options dicts."""
    mock_entry = MagicMock()
    mock_entry.entry_id = "test_entry"
    mock_entry.data = dict(data or {})
    mock_entry.options = dict(options or {})
    mock_entry.pref_disable_polling = False
    return mock_entry


@pytest.fixture
def mock_hass():
    """Pytest fixture for mock hass."""
    return create_mock_hass()


@pytest.fixture
def mock_entry():
    """Pytest fixture for mock config entry."""
    return create_mock_entry()

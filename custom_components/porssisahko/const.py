"""Constants for the Pörssisähkö integration."""

from enum import StrEnum
from typing import Final

# Domain
DOMAIN: Final = "porssisahko"
NAME: Final = "Pörssisähkö"

# Configuration keys
CONF_API_URL: Final = "api_url"
CONF_REQUEST_TIMEOUT: Final = "request_timeout"  # Seconds before a fetch is abandoned
CONF_UPDATE_INTERVAL: Final = "update_interval"  # Polling interval in minutes, 0 = manual only

# Defaults
DEFAULT_API_URL: Final = "https://api.spot-hinta.fi/TodayAndDayForward"
DEFAULT_REQUEST_TIMEOUT: Final = 10  # seconds
DEFAULT_UPDATE_INTERVAL: Final = 0  # Fetch on setup and on demand only

# Config flow limits
MIN_REQUEST_TIMEOUT: Final = 1
MAX_REQUEST_TIMEOUT: Final = 60
MIN_UPDATE_INTERVAL: Final = 0
MAX_UPDATE_INTERVAL: Final = 1440  # One day

# Feed record fields (spot-hinta.fi, EUR/kWh)
FEED_FIELD_RANK: Final = "Rank"
FEED_FIELD_TIME: Final = "DateTime"
FEED_FIELD_PRICE_NO_TAX: Final = "PriceNoTax"
FEED_FIELD_PRICE_WITH_TAX: Final = "PriceWithTax"

# Legacy envelope (porssisahko.net, c/kWh)
LEGACY_FIELD_PRICES: Final = "prices"
LEGACY_FIELD_PRICE: Final = "price"
LEGACY_FIELD_START: Final = "startDate"

# Interval geometry
QUARTER_INTERVAL_MINUTES: Final = 15  # Fixed feed resolution, not discovered from data
CHEAPEST_WINDOW_QUARTERS: Final = 60 // QUARTER_INTERVAL_MINUTES  # One hour = 4 intervals

# Unit conversion
CENTS_PER_EUR: Final = 100
PRICE_UNIT: Final = "c/kWh"

# Clock tick driving the countdown
COUNTDOWN_TICK_SECONDS: Final = 1
COUNTDOWN_ACTIVE_LABEL: Final = "Now"

# Number of upcoming intervals exposed for the bar chart
UPCOMING_PRICES_COUNT: Final = 12

# Price level thresholds in c/kWh (upper bounds, exclusive except FREE)
PRICE_LEVEL_FREE_MAX: Final = 0.0  # Zero and negative prices
PRICE_LEVEL_LOW_MAX: Final = 5.0
PRICE_LEVEL_MODERATE_MAX: Final = 10.0
PRICE_LEVEL_HIGH_MAX: Final = 15.0

# Services
SERVICE_REFRESH_PRICES: Final = "refresh_prices"
ATTR_ENTRY_ID: Final = "entry_id"


class FetchState(StrEnum):
    """Lifecycle of the price data held by one config entry.

    IDLE: No fetch has completed yet
    LOADED: Last fetch succeeded, series present
    ERROR: Last fetch failed, previously loaded series (if any) retained
    """

    IDLE = "idle"
    LOADED = "loaded"
    ERROR = "error"


class PriceLevel(StrEnum):
    """Absolute price level of a single interval in c/kWh."""

    FREE = "free"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"

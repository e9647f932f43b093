"""The Pörssisähkö integration.

Pörssisähkö is a Home Assistant integration for Finnish electricity spot
prices. It shows the price in effect right now, finds the cheapest hour left
before local midnight and counts down to it.
"""

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant

from .const import (
    CONF_API_URL,
    CONF_REQUEST_TIMEOUT,
    CONF_UPDATE_INTERVAL,
    DEFAULT_UPDATE_INTERVAL,
    DOMAIN,
    SERVICE_REFRESH_PRICES,
)
from .coordinator import PorssisahkoCoordinator, update_interval_from_minutes

_LOGGER = logging.getLogger(__name__)


PLATFORMS: list[Platform] = [
    Platform.BUTTON,
    Platform.SENSOR,
]

# Options applied to the running coordinator without a reload
RUNTIME_OPTIONS = {CONF_REQUEST_TIMEOUT, CONF_UPDATE_INTERVAL}


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Pörssisähkö from a config entry."""
    _LOGGER.info("Setting up Pörssisähkö integration")

    # Initialize domain data storage
    hass.data.setdefault(DOMAIN, {})

    # Create coordinator with dependency injection
    coordinator = _create_coordinator(hass, entry)

    # Store coordinator
    hass.data[DOMAIN][entry.entry_id] = coordinator

    # First fetch. A failed fetch leaves the entry loaded in the error state;
    # recovery is a refresh_prices call or the next poll, not a setup retry.
    await coordinator.async_config_entry_first_refresh()

    # Countdown clock lives as long as the entry
    coordinator.async_start_ticker()

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    await _async_register_services(hass)

    # Listen for options updates
    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    _LOGGER.info("Pörssisähkö setup complete (%s)", coordinator.fetch_state)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    _LOGGER.info("Unloading Pörssisähkö integration")

    coordinator: PorssisahkoCoordinator | None = hass.data[DOMAIN].get(entry.entry_id)

    if coordinator:
        await coordinator.async_shutdown()

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        hass.data[DOMAIN].pop(entry.entry_id, None)

        # Unregister services if this is the last config entry
        if not hass.data[DOMAIN]:
            _async_unregister_services(hass)

    return unload_ok


def _async_unregister_services(hass: HomeAssistant) -> None:
    """Unregister integration services when last config entry is removed."""
    if hass.services.has_service(DOMAIN, SERVICE_REFRESH_PRICES):
        hass.services.async_remove(DOMAIN, SERVICE_REFRESH_PRICES)
        _LOGGER.debug("Unregistered service: %s", SERVICE_REFRESH_PRICES)


async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Apply changed options, reloading only when the feed URL changed."""
    coordinator: PorssisahkoCoordinator | None = hass.data[DOMAIN].get(entry.entry_id)
    if not coordinator:
        _LOGGER.warning("No coordinator found for reload")
        return

    api_url = entry.options.get(CONF_API_URL, entry.data.get(CONF_API_URL))
    if api_url and api_url != coordinator.spot_price.api_url:
        _LOGGER.info("Price feed URL changed, reloading integration")
        await hass.config_entries.async_reload(entry.entry_id)
        return

    runtime_options = {
        key: value for key, value in entry.options.items() if key in RUNTIME_OPTIONS
    }
    _LOGGER.info("Runtime options changed, updating coordinator without reload")
    await coordinator.async_update_config(runtime_options)


def _create_coordinator(
    hass: HomeAssistant,
    entry: ConfigEntry,
) -> PorssisahkoCoordinator:
    """Create coordinator with its adapter and analyzer.

    Options override the values chosen in the config flow.
    """
    from .adapters.spot_price_adapter import SpotPriceAdapter
    from .optimization.price_analyzer import PriceAnalyzer

    config = {**entry.data, **entry.options}

    return PorssisahkoCoordinator(
        hass=hass,
        spot_price_adapter=SpotPriceAdapter(hass, config),
        price_analyzer=PriceAnalyzer(),
        entry=entry,
        update_interval=update_interval_from_minutes(
            config.get(CONF_UPDATE_INTERVAL, DEFAULT_UPDATE_INTERVAL)
        ),
    )


async def _async_register_services(hass: HomeAssistant) -> None:
    """Register integration services.

    - refresh_prices: Fetch the price feed now (all entries, or one entry_id)
    """
    import voluptuous as vol
    from homeassistant.exceptions import ServiceValidationError
    from homeassistant.helpers import config_validation as cv

    from .const import ATTR_ENTRY_ID

    def get_coordinators(entry_id: str | None) -> list[PorssisahkoCoordinator]:
        """Coordinators targeted by a service call."""
        domain_data = hass.data.get(DOMAIN, {})
        if entry_id is not None:
            coordinator = domain_data.get(entry_id)
            return [coordinator] if isinstance(coordinator, PorssisahkoCoordinator) else []
        return [
            coordinator
            for coordinator in domain_data.values()
            if isinstance(coordinator, PorssisahkoCoordinator)
        ]

    async def refresh_prices_handler(call) -> None:
        """Handle refresh_prices service call.

        Not debounced: overlapping calls are allowed, the newest applied
        response wins.
        """
        entry_id = call.data.get(ATTR_ENTRY_ID)
        coordinators = get_coordinators(entry_id)
        if not coordinators:
            raise ServiceValidationError(
                f"No Pörssisähkö entry found{f' for {entry_id}' if entry_id else ''}"
            )

        _LOGGER.info("Refresh prices service called for %d entr(ies)", len(coordinators))

        for coordinator in coordinators:
            await coordinator.async_refetch()

    refresh_prices_schema = vol.Schema(
        {
            vol.Optional(ATTR_ENTRY_ID): cv.string,
        }
    )

    if not hass.services.has_service(DOMAIN, SERVICE_REFRESH_PRICES):
        hass.services.async_register(
            DOMAIN,
            SERVICE_REFRESH_PRICES,
            refresh_prices_handler,
            schema=refresh_prices_schema,
        )
        _LOGGER.info("Pörssisähkö services registered successfully")

"""Button entities for Pörssisähkö.

A single "Refresh prices" button that fetches the feed immediately.
"""

import logging

from homeassistant.components.button import ButtonEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN
from .coordinator import PorssisahkoCoordinator
from .sensor import device_info_for

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Pörssisähkö button entities from a config entry."""
    coordinator: PorssisahkoCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_entities([PorssisahkoRefreshButton(coordinator, entry)])


class PorssisahkoRefreshButton(CoordinatorEntity[PorssisahkoCoordinator], ButtonEntity):
    """Fetch prices now."""

    _attr_has_entity_name = True
    _attr_name = "Refresh Prices"
    _attr_icon = "mdi:refresh"

    def __init__(self, coordinator: PorssisahkoCoordinator, entry: ConfigEntry):
        """Initialize button entity."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{entry.entry_id}_refresh_prices"
        self._attr_device_info = device_info_for(entry)

    @property
    def available(self) -> bool:
        """Always pressable, also after a failed fetch."""
        return True

    async def async_press(self) -> None:
        """Handle the button press."""
        _LOGGER.info("Refresh prices pressed")
        await self.coordinator.async_refetch()

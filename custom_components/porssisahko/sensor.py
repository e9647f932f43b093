"""Sensor entities for Pörssisähkö.

Read-only views of the coordinator's PriceSnapshot: current price, the
cheapest hour before midnight, the countdown to it and fetch diagnostics.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceEntryType, DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, NAME, PRICE_UNIT, FetchState, PriceLevel
from .coordinator import PorssisahkoCoordinator
from .optimization.price_snapshot import PriceSnapshot
from .utils.time_utils import format_local_time

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class PorssisahkoSensorEntityDescription(SensorEntityDescription):
    """Describes Pörssisähkö sensor entity."""

    value_fn: Callable[[PriceSnapshot], Any]
    attributes_fn: Callable[[PriceSnapshot], dict[str, Any]] | None = None


def _current_price_attributes(snapshot: PriceSnapshot) -> dict[str, Any]:
    attrs: dict[str, Any] = {}

    current = snapshot.current_interval
    if current:
        attrs["start"] = format_local_time(current.start_time)
        attrs["end"] = format_local_time(current.end_time)
        attrs["price_eur_per_kwh"] = current.price_eur_per_kwh
        attrs["price_level"] = snapshot.price_level

    attrs["upcoming_prices"] = [
        {
            "time": format_local_time(interval.start_time),
            "price": round(interval.price_cents_per_kwh, 2),
        }
        for interval in snapshot.upcoming_prices
    ]

    if snapshot.statistics:
        attrs["min_until_midnight"] = round(snapshot.statistics.min_cents, 2)
        attrs["max_until_midnight"] = round(snapshot.statistics.max_cents, 2)
        attrs["mean_until_midnight"] = round(snapshot.statistics.mean_cents, 2)

    # Stale data stays visible in the error state; say so
    attrs["fetch_state"] = snapshot.fetch_state
    return attrs


def _cheapest_hour_attributes(snapshot: PriceSnapshot) -> dict[str, Any]:
    window = snapshot.cheapest_window
    if not window:
        return {}

    attrs: dict[str, Any] = {
        "start": format_local_time(window.window_start),
        "end": format_local_time(window.window_end),
        "end_time": window.window_end.isoformat(),
        "average_price": round(window.average_cents, 3),
        "slots": [
            {"time": format_local_time(slot.time), "price": round(slot.price_cents, 2)}
            for slot in window.slots
        ],
    }

    if snapshot.timeline:
        attrs["timeline_left"] = snapshot.timeline.left_fraction
        attrs["timeline_width"] = snapshot.timeline.width_fraction

    return attrs


def _countdown_attributes(snapshot: PriceSnapshot) -> dict[str, Any]:
    if not snapshot.countdown:
        return {}
    return {
        "is_active": snapshot.countdown.is_active,
        "minutes_remaining": snapshot.countdown.minutes_remaining,
    }


def _fetch_state_attributes(snapshot: PriceSnapshot) -> dict[str, Any]:
    return {
        "error": snapshot.error,
        "is_fetching": snapshot.is_fetching,
    }


SENSORS: tuple[PorssisahkoSensorEntityDescription, ...] = (
    PorssisahkoSensorEntityDescription(
        key="current_price",
        name="Current Price",
        icon="mdi:flash",
        native_unit_of_measurement=PRICE_UNIT,
        state_class=SensorStateClass.MEASUREMENT,
        suggested_display_precision=2,
        value_fn=lambda snapshot: (
            snapshot.current_interval.price_cents_per_kwh if snapshot.current_interval else None
        ),
        attributes_fn=_current_price_attributes,
    ),
    PorssisahkoSensorEntityDescription(
        key="price_level",
        name="Price Level",
        icon="mdi:palette",
        device_class=SensorDeviceClass.ENUM,
        options=[level.value for level in PriceLevel],
        value_fn=lambda snapshot: snapshot.price_level,
    ),
    PorssisahkoSensorEntityDescription(
        key="cheapest_hour_start",
        name="Cheapest Hour Start",
        icon="mdi:clock-start",
        device_class=SensorDeviceClass.TIMESTAMP,
        value_fn=lambda snapshot: (
            snapshot.cheapest_window.window_start if snapshot.cheapest_window else None
        ),
        attributes_fn=_cheapest_hour_attributes,
    ),
    PorssisahkoSensorEntityDescription(
        key="cheapest_hour_price",
        name="Cheapest Hour Average Price",
        icon="mdi:cash-clock",
        native_unit_of_measurement=PRICE_UNIT,
        suggested_display_precision=2,
        value_fn=lambda snapshot: (
            snapshot.cheapest_window.average_cents if snapshot.cheapest_window else None
        ),
    ),
    PorssisahkoSensorEntityDescription(
        key="cheapest_hour_countdown",
        name="Cheapest Hour Countdown",
        icon="mdi:timer-sand",
        value_fn=lambda snapshot: snapshot.countdown.label if snapshot.countdown else None,
        attributes_fn=_countdown_attributes,
    ),
    PorssisahkoSensorEntityDescription(
        key="fetch_state",
        name="Fetch State",
        icon="mdi:cloud-sync",
        device_class=SensorDeviceClass.ENUM,
        options=[state.value for state in FetchState],
        entity_category=EntityCategory.DIAGNOSTIC,
        value_fn=lambda snapshot: snapshot.fetch_state,
        attributes_fn=_fetch_state_attributes,
    ),
    PorssisahkoSensorEntityDescription(
        key="last_fetched",
        name="Last Fetched",
        icon="mdi:cloud-clock",
        device_class=SensorDeviceClass.TIMESTAMP,
        entity_category=EntityCategory.DIAGNOSTIC,
        value_fn=lambda snapshot: snapshot.last_fetched_at,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Pörssisähkö sensor entities from a config entry."""
    coordinator: PorssisahkoCoordinator = hass.data[DOMAIN][entry.entry_id]

    async_add_entities(
        PorssisahkoSensor(coordinator, entry, description) for description in SENSORS
    )


def device_info_for(entry: ConfigEntry) -> DeviceInfo:
    """Shared device for all entities of one entry."""
    return DeviceInfo(
        identifiers={(DOMAIN, entry.entry_id)},
        name=NAME,
        manufacturer=NAME,
        model="Spot Price Feed",
        entry_type=DeviceEntryType.SERVICE,
    )


class PorssisahkoSensor(CoordinatorEntity[PorssisahkoCoordinator], SensorEntity):
    """Pörssisähkö price sensor."""

    entity_description: PorssisahkoSensorEntityDescription
    coordinator: PorssisahkoCoordinator
    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: PorssisahkoCoordinator,
        entry: ConfigEntry,
        description: PorssisahkoSensorEntityDescription,
    ):
        """Initialize sensor."""
        super().__init__(coordinator)
        self.entity_description = description
        self._attr_unique_id = f"{entry.entry_id}_{description.key}"
        self._attr_device_info = device_info_for(entry)

    @property
    def native_value(self) -> float | str | datetime | None:
        """Return the state of the sensor."""
        snapshot = self.coordinator.data
        if snapshot is None:
            return None

        try:
            return self.entity_description.value_fn(snapshot)
        except (AttributeError, KeyError, TypeError) as err:
            _LOGGER.warning(
                "Error getting value for %s: %s (type: %s)",
                self.entity_description.key,
                err,
                type(err).__name__,
            )
            return None

    @property
    def extra_state_attributes(self) -> dict[str, Any] | None:
        """Return additional state attributes based on sensor type."""
        snapshot = self.coordinator.data
        if snapshot is None or self.entity_description.attributes_fn is None:
            return None
        return self.entity_description.attributes_fn(snapshot)

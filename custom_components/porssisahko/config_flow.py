"""Config flow for Pörssisähkö integration."""

import logging
from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers import selector

from .adapters.spot_price_adapter import PriceFetchError, SpotPriceAdapter
from .const import (
    CONF_API_URL,
    CONF_REQUEST_TIMEOUT,
    CONF_UPDATE_INTERVAL,
    DEFAULT_API_URL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_UPDATE_INTERVAL,
    DOMAIN,
    MAX_REQUEST_TIMEOUT,
    MAX_UPDATE_INTERVAL,
    MIN_REQUEST_TIMEOUT,
    MIN_UPDATE_INTERVAL,
    NAME,
)
from .options import PorssisahkoOptionsFlow

_LOGGER = logging.getLogger(__name__)


def build_settings_schema(defaults: dict[str, Any]) -> vol.Schema:
    """Schema for feed settings, shared by the config and options flows."""
    return vol.Schema(
        {
            vol.Required(
                CONF_API_URL,
                default=defaults.get(CONF_API_URL, DEFAULT_API_URL),
            ): selector.TextSelector(
                selector.TextSelectorConfig(type=selector.TextSelectorType.URL)
            ),
            vol.Optional(
                CONF_REQUEST_TIMEOUT,
                default=defaults.get(CONF_REQUEST_TIMEOUT, DEFAULT_REQUEST_TIMEOUT),
            ): selector.NumberSelector(
                selector.NumberSelectorConfig(
                    min=MIN_REQUEST_TIMEOUT,
                    max=MAX_REQUEST_TIMEOUT,
                    step=1,
                    unit_of_measurement="s",
                    mode=selector.NumberSelectorMode.BOX,
                )
            ),
            vol.Optional(
                CONF_UPDATE_INTERVAL,
                default=defaults.get(CONF_UPDATE_INTERVAL, DEFAULT_UPDATE_INTERVAL),
            ): selector.NumberSelector(
                selector.NumberSelectorConfig(
                    min=MIN_UPDATE_INTERVAL,
                    max=MAX_UPDATE_INTERVAL,
                    step=1,
                    unit_of_measurement="min",
                    mode=selector.NumberSelectorMode.BOX,
                )
            ),
        }
    )


def normalize_settings(user_input: dict[str, Any]) -> dict[str, Any]:
    """Coerce selector values (floats from NumberSelector) to stored types."""
    return {
        CONF_API_URL: str(user_input[CONF_API_URL]).strip(),
        CONF_REQUEST_TIMEOUT: int(user_input.get(CONF_REQUEST_TIMEOUT, DEFAULT_REQUEST_TIMEOUT)),
        CONF_UPDATE_INTERVAL: int(user_input.get(CONF_UPDATE_INTERVAL, DEFAULT_UPDATE_INTERVAL)),
    }


class PorssisahkoConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Pörssisähkö."""

    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Handle the initial step - feed URL and fetch settings."""
        errors: dict[str, str] = {}

        if user_input is not None:
            data = normalize_settings(user_input)

            await self.async_set_unique_id(data[CONF_API_URL])
            self._abort_if_unique_id_configured()

            # Validate the feed answers before creating the entry
            adapter = SpotPriceAdapter(self.hass, data)
            try:
                series = await adapter.get_prices()
            except PriceFetchError as err:
                _LOGGER.warning("Price feed validation failed for %s: %s", data[CONF_API_URL], err)
                errors["base"] = "cannot_connect"
            else:
                _LOGGER.debug("Price feed validated: %d intervals", len(series))
                return self.async_create_entry(title=NAME, data=data)

        return self.async_show_form(
            step_id="user",
            data_schema=build_settings_schema(user_input or {}),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> config_entries.OptionsFlow:
        """Create the options flow."""
        return PorssisahkoOptionsFlow()

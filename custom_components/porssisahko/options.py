"""Options flow for Pörssisähkö integration."""

import logging
from typing import Any

from homeassistant import config_entries
from homeassistant.data_entry_flow import FlowResult

_LOGGER = logging.getLogger(__name__)


class PorssisahkoOptionsFlow(config_entries.OptionsFlow):
    """Handle options flow for Pörssisähkö.

    Timeout and polling interval are applied to the running coordinator;
    a different feed URL reloads the entry (see async_reload_entry).
    """

    async def async_step_init(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Manage feed options."""
        # Imported here: config_flow imports this module
        from .config_flow import build_settings_schema, normalize_settings

        if user_input is not None:
            options = normalize_settings(user_input)
            _LOGGER.debug("Saving options: %s", options)
            return self.async_create_entry(title="", data=options)

        current = {**self.config_entry.data, **self.config_entry.options}

        return self.async_show_form(
            step_id="init",
            data_schema=build_settings_schema(current),
        )

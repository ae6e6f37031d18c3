"""Config flow for OneStep GPS integration."""
from __future__ import annotations
import logging
import os
from typing import Any, Dict, Optional
import homeassistant.helpers.config_validation as cv
import voluptuous as vol

from homeassistant import config_entries
from homeassistant.const import CONF_API_KEY
from homeassistant.core import callback

from .api.devices import check_api_key
from .const import (
    API_KEY_ENV,
    CONF_ENTRY_NAME,
    CONF_HIDDEN_DEVICES,
    CONF_REFRESH_INTERVAL,
    CONF_SORT_ORDER,
    DOMAIN,
    MAX_REFRESH_INTERVAL,
    MIN_REFRESH_INTERVAL,
)
from .preferences import SortOrder

_LOGGER = logging.getLogger(__name__)

refresh_interval = vol.All(
    vol.Coerce(float), vol.Range(min=MIN_REFRESH_INTERVAL, max=MAX_REFRESH_INTERVAL)
)

SORT_ORDER_LABELS = {
    SortOrder.BY_NAME.value: "By name",
    SortOrder.BY_STATUS.value: "By status",
    SortOrder.BY_RECENT_UPDATE.value: "By most recent update",
}


def _user_schema(default_api_key: str) -> vol.Schema:
    return vol.Schema(
        {
            vol.Required(CONF_ENTRY_NAME, default='My OneStep GPS Fleet'): cv.string,
            vol.Required(CONF_API_KEY, default=default_api_key): cv.string,
        }
    )


class OneStepGpsConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1

    data: Optional[Dict[str, Any]]

    async def async_step_user(self, user_input: Optional[Dict[str, Any]] = None):
        errors: Dict[str, str] = {}
        if user_input is not None:
            self.data = dict(user_input)
            if not self.data.get(CONF_ENTRY_NAME):
                errors['base'] = 'entry_name_required'
            elif not self.data.get(CONF_API_KEY):
                errors['base'] = 'api_key_required'
            else:
                error = await check_api_key(self.data[CONF_API_KEY])
                if error is not None:
                    errors['base'] = error
            if not errors:
                return self.async_create_entry(title=self.data[CONF_ENTRY_NAME], data=self.data)

        # Pre-fill from the environment so the key never has to live in source
        default_api_key = os.getenv(API_KEY_ENV, '')
        return self.async_show_form(step_id="user", data_schema=_user_schema(default_api_key), errors=errors)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Get the options flow for this handler."""
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Edits the persisted user preferences through the coordinator."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        self._entry = config_entry

    async def async_step_init(
        self, user_input: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        errors: Dict[str, str] = {}
        coordinator = self._entry.runtime_data
        preferences = coordinator.preferences

        if user_input is not None:
            try:
                await coordinator.async_update_preferences(
                    sort_order=user_input[CONF_SORT_ORDER],
                    map_refresh_interval=user_input[CONF_REFRESH_INTERVAL],
                    hidden_device_ids=user_input.get(CONF_HIDDEN_DEVICES, []),
                )
            except ValueError as e:
                _LOGGER.warning("Rejected preference update: %s", e)
                errors['base'] = 'invalid_preferences'
            else:
                return self.async_create_entry(title="", data=dict(user_input))

        # Hidden devices may include ids the last fetch no longer returned
        device_choices = {d.id: d.name for d in coordinator.data.devices}
        for device_id in preferences.hidden_device_ids:
            device_choices.setdefault(device_id, device_id)

        options_schema = vol.Schema(
            {
                vol.Required(CONF_SORT_ORDER, default=preferences.sort_order.value): vol.In(SORT_ORDER_LABELS),
                vol.Required(CONF_REFRESH_INTERVAL, default=preferences.map_refresh_interval): refresh_interval,
                vol.Optional(CONF_HIDDEN_DEVICES, default=sorted(preferences.hidden_device_ids)): cv.multi_select(device_choices),
            }
        )
        return self.async_show_form(step_id="init", data_schema=options_schema, errors=errors)

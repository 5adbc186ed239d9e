"""Diagnostics support for GVC Keypad integration."""

from __future__ import annotations

from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_FRESHNESS_MINUTES, CONF_INVENTORY_URL, CONF_RELAY_URL, DOMAIN
from .coordinator import KeypadCoordinator


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for the config entry."""
    coordinator: KeypadCoordinator = hass.data[DOMAIN][entry.entry_id]
    state = coordinator.state

    return {
        "config": {
            "relay_url": entry.data.get(CONF_RELAY_URL),
            "inventory_url": entry.data.get(CONF_INVENTORY_URL),
            "freshness_minutes": entry.options.get(
                CONF_FRESHNESS_MINUTES, entry.data.get(CONF_FRESHNESS_MINUTES)
            ),
        },
        "state": {
            "connection_state": state.connection_state.value,
            "selected_identity": state.selected_identity,
            "settings": {kind.value: value for kind, value in state.settings.items()},
            "query_output": state.query_output,
        },
        "discovery": {
            "identities": state.identities,
            "diagnostic": state.discovery_diagnostic,
        },
        "connection": {
            "reconnect_attempts": coordinator.reconnect_attempts,
            "last_error": coordinator.last_error,
        },
    }

"""Sensor platform for GVC Keypad integration."""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .connection import ConnectionState
from .const import DOMAIN
from .coordinator import KeypadCoordinator, KeypadEntityMixin

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up GVC Keypad sensor entities."""
    coordinator: KeypadCoordinator = hass.data[DOMAIN][entry.entry_id]
    _LOGGER.debug("Setting up sensor entities for %s", entry.entry_id)
    async_add_entities(
        [
            KeypadResponseSensor(coordinator),
            KeypadDiscoverySensor(coordinator),
            KeypadConnectionSensor(coordinator),
        ]
    )


class KeypadResponseSensor(KeypadEntityMixin, SensorEntity):
    """Sensor showing the last answer from the selected keypad."""

    _attr_name = "Response"
    _attr_icon = "mdi:message-reply-text-outline"

    def __init__(self, coordinator: KeypadCoordinator) -> None:
        """Initialize the response sensor."""
        self.coordinator = coordinator
        self._attr_unique_id = f"{coordinator.entry_id}_response"

    @property
    def available(self) -> bool:
        """Return True; keeps showing the last output while disconnected."""
        return True

    @property
    def native_value(self) -> str | None:
        """Return the first line of the output (state is limited to 255 chars)."""
        output = self.coordinator.state.query_output
        return output.splitlines()[0][:255] if output else None

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return the full output and the parsed response."""
        response = self.coordinator.state.last_response
        return {
            "output": self.coordinator.state.query_output,
            "kind": response.label if response else None,
            "value": response.value if response else None,
            "serial_number": self.coordinator.state.selected_identity,
        }


class KeypadDiscoverySensor(KeypadEntityMixin, SensorEntity):
    """Diagnostic sensor explaining how the serial list was obtained."""

    _attr_name = "Discovery Status"
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    def __init__(self, coordinator: KeypadCoordinator) -> None:
        """Initialize the discovery sensor."""
        self.coordinator = coordinator
        self._attr_unique_id = f"{coordinator.entry_id}_discovery_status"

    @property
    def available(self) -> bool:
        """Return True; discovery does not depend on the relay."""
        return True

    @property
    def native_value(self) -> str:
        """Return the discovery diagnostic, or 'ok'."""
        if self.coordinator.state.discovering:
            return "loading"
        return self.coordinator.state.discovery_diagnostic[:255] or "ok"

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return the offered serial numbers."""
        return {
            "serial_numbers": self.coordinator.state.identities,
            "inventory_url": self.coordinator.inventory_url,
            "freshness_minutes": self.coordinator.freshness_minutes,
        }


class KeypadConnectionSensor(KeypadEntityMixin, SensorEntity):
    """Diagnostic sensor for the relay connection state."""

    _attr_name = "Relay Connection"
    _attr_device_class = SensorDeviceClass.ENUM
    _attr_entity_category = EntityCategory.DIAGNOSTIC
    _attr_options = [state.value for state in ConnectionState]

    def __init__(self, coordinator: KeypadCoordinator) -> None:
        """Initialize the connection sensor."""
        self.coordinator = coordinator
        self._attr_unique_id = f"{coordinator.entry_id}_relay_connection"

    @property
    def available(self) -> bool:
        """Return True; reports the disconnected states too."""
        return True

    @property
    def native_value(self) -> str:
        """Return the connection state."""
        return self.coordinator.state.connection_state.value

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return reconnection details."""
        return {
            "relay_url": self.coordinator.relay_url,
            "reconnect_attempts": self.coordinator.reconnect_attempts,
            "last_error": self.coordinator.last_error,
        }

"""Select platform for GVC Keypad integration."""

from __future__ import annotations

import logging

from homeassistant.components.select import SelectEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import (
    DOMAIN,
    GAME_MODE_OPTIONS,
    LIGHT_TIME_OPTIONS,
    SESSION_TIME_OPTIONS,
    SOUND_LEVEL_OPTIONS,
)
from .coordinator import KeypadCoordinator, KeypadEntityMixin
from .protocol import SettingKind

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up GVC Keypad select entities."""
    coordinator: KeypadCoordinator = hass.data[DOMAIN][entry.entry_id]
    _LOGGER.debug("Setting up select entities for %s", entry.entry_id)
    async_add_entities(
        [
            KeypadDeviceSelect(coordinator),
            KeypadSettingSelect(
                coordinator,
                SettingKind.GAME_MODE,
                "Game Mode",
                "game_mode",
                list(GAME_MODE_OPTIONS),
            ),
            KeypadSettingSelect(
                coordinator,
                SettingKind.SESSION_TIME,
                "Session Time",
                "session_time",
                SESSION_TIME_OPTIONS,
                icon="mdi:timer-outline",
            ),
            KeypadSettingSelect(
                coordinator,
                SettingKind.SOUND,
                "Sound",
                "sound",
                SOUND_LEVEL_OPTIONS,
                icon="mdi:volume-high",
            ),
            KeypadSettingSelect(
                coordinator,
                SettingKind.LIGHT_TIME,
                "Mode 2 Light Time",
                "light_time",
                LIGHT_TIME_OPTIONS,
                icon="mdi:lightbulb-on-outline",
            ),
        ]
    )


class KeypadDeviceSelect(KeypadEntityMixin, SelectEntity):
    """Select entity choosing which keypad is controlled.

    Options come from discovery; they are available even when the relay is
    down so the operator can still pick a device.
    """

    _attr_name = "Serial Number"
    _attr_icon = "mdi:gamepad-variant"

    def __init__(self, coordinator: KeypadCoordinator) -> None:
        """Initialize the device select."""
        self.coordinator = coordinator
        self._attr_unique_id = f"{coordinator.entry_id}_serial_number"

    @property
    def available(self) -> bool:
        """Return True once discovery has produced options."""
        return bool(self.coordinator.state.identities)

    @property
    def options(self) -> list[str]:
        """Return the discovered serial numbers."""
        return self.coordinator.state.identities

    @property
    def current_option(self) -> str | None:
        """Return the selected serial number."""
        return self.coordinator.state.selected_identity

    async def async_select_option(self, option: str) -> None:
        """Select another keypad."""
        _LOGGER.debug("Serial number select=%s", option)
        await self.coordinator.async_select_device(option)


class KeypadSettingSelect(KeypadEntityMixin, SelectEntity):
    """Select entity for one keypad setting.

    Shows the value chosen locally for the selected keypad; it is cleared on
    every device switch. Use the query buttons to read the keypad's value.
    """

    def __init__(
        self,
        coordinator: KeypadCoordinator,
        kind: SettingKind,
        name: str,
        key: str,
        options: list[str],
        icon: str | None = None,
    ) -> None:
        """Initialize the setting select."""
        self.coordinator = coordinator
        self._kind = kind
        self._attr_name = name
        self._attr_options = options
        self._attr_icon = icon
        self._attr_unique_id = f"{coordinator.entry_id}_{key}"

    @property
    def current_option(self) -> str | None:
        """Return the locally chosen value."""
        return self.coordinator.state.settings[self._kind]

    async def async_select_option(self, option: str) -> None:
        """Send the new value to the selected keypad."""
        _LOGGER.debug("%s select=%s", self._kind.value, option)
        await self.coordinator.async_set_setting(self._kind, option)

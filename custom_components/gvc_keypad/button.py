"""Button platform for GVC Keypad integration."""

from __future__ import annotations

import logging

from homeassistant.components.button import ButtonEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .coordinator import KeypadCoordinator, KeypadEntityMixin
from .protocol import SettingKind

_LOGGER = logging.getLogger(__name__)

QUERY_BUTTONS: list[tuple[SettingKind, str, str]] = [
    (SettingKind.GAME_MODE, "Query Game Mode", "query_game_mode"),
    (SettingKind.SOUND, "Query Sound", "query_sound"),
    (SettingKind.SESSION_TIME, "Query Session Time", "query_session_time"),
    (SettingKind.LIGHT_TIME, "Query Mode 2 Light Time", "query_light_time"),
]


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up GVC Keypad button entities."""
    coordinator: KeypadCoordinator = hass.data[DOMAIN][entry.entry_id]
    _LOGGER.debug("Setting up button entities for %s", entry.entry_id)
    async_add_entities(
        [
            KeypadRefreshButton(coordinator),
            KeypadSummaryButton(coordinator),
            *(
                KeypadQueryButton(coordinator, kind, name, key)
                for kind, name, key in QUERY_BUTTONS
            ),
        ]
    )


class KeypadRefreshButton(KeypadEntityMixin, ButtonEntity):
    """Button rediscovering the active keypads."""

    _attr_name = "Refresh Devices"
    _attr_icon = "mdi:refresh"

    def __init__(self, coordinator: KeypadCoordinator) -> None:
        """Initialize the refresh button."""
        self.coordinator = coordinator
        self._attr_unique_id = f"{coordinator.entry_id}_refresh_devices"

    @property
    def available(self) -> bool:
        """Return True unless a discovery is already running."""
        return not self.coordinator.state.discovering

    async def async_press(self) -> None:
        """Run discovery."""
        _LOGGER.debug("Refresh devices pressed")
        await self.coordinator.async_refresh_devices()


class KeypadSummaryButton(KeypadEntityMixin, ButtonEntity):
    """Button showing the locally chosen settings."""

    _attr_name = "Show Settings"
    _attr_icon = "mdi:format-list-bulleted"

    def __init__(self, coordinator: KeypadCoordinator) -> None:
        """Initialize the summary button."""
        self.coordinator = coordinator
        self._attr_unique_id = f"{coordinator.entry_id}_show_settings"

    @property
    def available(self) -> bool:
        """Return True; no relay traffic involved."""
        return True

    async def async_press(self) -> None:
        """Render the summary into the response sensor."""
        self.coordinator.show_local_summary()


class KeypadQueryButton(KeypadEntityMixin, ButtonEntity):
    """Button asking the selected keypad for one setting."""

    _attr_icon = "mdi:help-circle-outline"

    def __init__(
        self, coordinator: KeypadCoordinator, kind: SettingKind, name: str, key: str
    ) -> None:
        """Initialize the query button."""
        self.coordinator = coordinator
        self._kind = kind
        self._attr_name = name
        self._attr_unique_id = f"{coordinator.entry_id}_{key}"

    async def async_press(self) -> None:
        """Send the query; the answer arrives on the response sensor."""
        _LOGGER.debug("Query %s pressed", self._kind.query_token)
        await self.coordinator.async_query(self._kind)

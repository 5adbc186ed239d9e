"""Coordinator for GVC Keypad integration."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import aiohttp
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.device_registry import DeviceInfo

from .connection import ConnectionManager, ConnectionState
from .const import DEFAULT_SERIAL_NUMBERS, DOMAIN, GAME_MODE_OPTIONS, NAMESPACE
from .discovery import DeviceDiscoveryService
from .dispatcher import CommandDispatcher
from .protocol import DisplayUpdate, SettingKind, TelemetryParser

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)


class KeypadEntityMixin:
    """Mixin providing common functionality for GVC Keypad entities."""

    _attr_has_entity_name = True
    _attr_should_poll = False
    coordinator: "KeypadCoordinator"  # Set by subclass __init__

    async def async_added_to_hass(self) -> None:
        """Register callback when entity is added."""
        self.coordinator.register_callback(self.async_write_ha_state)

    async def async_will_remove_from_hass(self) -> None:
        """Unregister callback when entity is removed."""
        self.coordinator.unregister_callback(self.async_write_ha_state)

    @property
    def device_info(self) -> DeviceInfo:
        """Return device info to link entity to device."""
        return self.coordinator.device_info

    @property
    def available(self) -> bool:
        """Return True if entity is available (relay connection open)."""
        return self.coordinator.state.connected


def _empty_settings() -> dict[SettingKind, str | None]:
    return {kind: None for kind in SettingKind}


@dataclass
class KeypadState:
    """State of the keypad controller session.

    Attributes:
        connection_state: Current relay connection state.
        identities: Serial numbers offered for selection, most recent first.
        selected_identity: The one keypad commands and responses are scoped to.
        discovery_diagnostic: Why discovery degraded, or "" on clean success.
        discovering: Whether an inventory request is outstanding.
        settings: Locally chosen value per setting for the selected keypad.
        last_response: Last response received from the selected keypad.
        query_output: Text shown to the operator for the last query.
    """

    connection_state: ConnectionState = ConnectionState.DISCONNECTED
    identities: list[str] = field(default_factory=list)
    selected_identity: str | None = None
    discovery_diagnostic: str = ""
    discovering: bool = False
    settings: dict[SettingKind, str | None] = field(default_factory=_empty_settings)
    last_response: DisplayUpdate | None = None
    query_output: str = ""

    @property
    def connected(self) -> bool:
        """Return True if the relay connection is open."""
        return self.connection_state is ConnectionState.OPEN


class KeypadCoordinator:
    """Session object for one keypad controller.

    Owns the relay connection, discovery, outbound dispatch and inbound
    parsing. Entities hold a reference to it; nothing is process-wide.

    Architecture:
        - ConnectionManager keeps the relay websocket alive with capped
          exponential backoff and forwards every inbound frame here.
        - DeviceDiscoveryService produces the serial numbers to offer. It runs
          on start and whenever the operator asks for a refresh.
        - CommandDispatcher sends setting changes and queries to the selected
          keypad, suppressing the first value seen after a selection.
        - TelemetryParser turns broadcast responses from the selected keypad
          into a DisplayUpdate.

    Device switch:
        Selecting another keypad clears the local settings and the last
        response and re-scopes the dispatcher. The relay connection is shared
        by all keypads (addressing is per message), so it is left alone.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        relay_url: str,
        inventory_url: str,
        freshness_minutes: float,
        entry_id: str,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the coordinator."""
        self._hass = hass
        self._relay_url = relay_url
        self._inventory_url = inventory_url
        self._freshness_minutes = freshness_minutes
        self._entry_id = entry_id

        session = session or async_get_clientsession(hass)
        self._connection = ConnectionManager(
            session,
            on_message=self._handle_message,
            on_state_change=self._handle_connection_state,
        )
        self._discovery = DeviceDiscoveryService(session)
        self._dispatcher = CommandDispatcher(self._connection.send, NAMESPACE)
        self._parser = TelemetryParser(NAMESPACE)
        self._callbacks: set[Callable[[], None]] = set()
        self._connect_task: asyncio.Task[None] | None = None

        self.state = KeypadState()

        _LOGGER.debug(
            "Coordinator initialized for relay %s, inventory %s (freshness=%sm)",
            relay_url,
            inventory_url,
            freshness_minutes,
        )

    @property
    def device_info(self) -> DeviceInfo:
        """Return device info for entity registry."""
        return DeviceInfo(
            identifiers={(DOMAIN, self._entry_id)},
            name="GVC Keypad Controller",
            manufacturer="GVC",
            model="Keypad Relay Client",
        )

    @property
    def entry_id(self) -> str:
        """Return the config entry ID."""
        return self._entry_id

    @property
    def relay_url(self) -> str:
        """Return the relay URL."""
        return self._relay_url

    @property
    def inventory_url(self) -> str:
        """Return the inventory URL."""
        return self._inventory_url

    @property
    def freshness_minutes(self) -> float:
        """Return the heartbeat freshness window in minutes."""
        return self._freshness_minutes

    @property
    def reconnect_attempts(self) -> int:
        """Return number of reconnection attempts."""
        return self._connection.reconnect_attempts

    @property
    def last_error(self) -> str | None:
        """Return last connection error message."""
        return self._connection.last_error

    def register_callback(self, callback: Callable[[], None]) -> None:
        """Register callback to be called on state updates."""
        self._callbacks.add(callback)

    def unregister_callback(self, callback: Callable[[], None]) -> None:
        """Unregister a callback."""
        self._callbacks.discard(callback)

    def _notify_state_update(self) -> None:
        """Notify all registered callbacks of state change."""
        # Iterate over a copy in case a callback modifies the set
        for callback in list(self._callbacks):
            try:
                callback()
            except Exception:
                _LOGGER.exception("Exception in state update callback")

    def update_freshness_minutes(self, freshness_minutes: float) -> None:
        """Update the freshness window (applies to the next discovery)."""
        self._freshness_minutes = freshness_minutes

    async def async_start(self) -> None:
        """Start the coordinator (called from async_setup_entry)."""
        _LOGGER.debug("Starting coordinator for relay %s", self._relay_url)
        # Connection is established in the background, reconnecting as needed
        self._connect_task = asyncio.create_task(
            self._connection.connect(self._relay_url)
        )
        await self.async_refresh_devices()

    async def async_stop(self) -> None:
        """Stop the coordinator with proper cleanup (called from async_unload_entry)."""
        if self._connect_task and not self._connect_task.done():
            self._connect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._connect_task
        self._connect_task = None

        await self._connection.shutdown()

        # Clear callbacks to prevent memory leaks
        self._callbacks.clear()

        _LOGGER.debug("Coordinator stopped cleanly")

    async def async_refresh_devices(self) -> None:
        """Rediscover active keypads and update the selectable serials."""
        self.state.discovering = True
        self._notify_state_update()
        try:
            result = await self._discovery.discover(
                self._inventory_url,
                self._freshness_minutes * 60 * 1000,
                DEFAULT_SERIAL_NUMBERS,
            )
        finally:
            self.state.discovering = False

        self.state.identities = result.identities
        self.state.discovery_diagnostic = result.diagnostic
        if result.diagnostic:
            _LOGGER.info("Device discovery: %s", result.diagnostic)

        selected = self.state.selected_identity
        if selected not in result.identities:
            selected = result.identities[0] if result.identities else None
        if selected != self.state.selected_identity:
            await self.async_select_device(selected)
        else:
            self._notify_state_update()

    async def async_select_device(self, identity: str | None) -> None:
        """Scope commands and responses to another keypad."""
        if identity == self.state.selected_identity:
            return
        _LOGGER.debug(
            "Selected device: %s → %s", self.state.selected_identity, identity
        )
        self.state.selected_identity = identity
        self.state.settings = _empty_settings()
        self.state.last_response = None
        self.state.query_output = ""

        self._dispatcher.reset(identity)
        if identity:
            # Cleared fields are the first observed values: recorded, not sent
            for kind in SettingKind:
                await self._dispatcher.on_setting_changed(kind, "", identity)
        self._notify_state_update()

    async def async_set_setting(self, kind: SettingKind, value: str) -> None:
        """Apply a setting chosen by the operator to the selected keypad."""
        self.state.settings[kind] = value
        await self._dispatcher.on_setting_changed(
            kind, value, self.state.selected_identity
        )
        self._notify_state_update()

    async def async_query(self, kind: SettingKind) -> None:
        """Ask the selected keypad for its current value of a setting."""
        await self._dispatcher.on_query_requested(kind, self.state.selected_identity)

    def show_local_summary(self) -> None:
        """Show the locally chosen settings without asking the keypad."""
        settings = self.state.settings
        game_mode = settings[SettingKind.GAME_MODE]
        self.state.query_output = "\n".join(
            [
                f"Serial: {self.state.selected_identity or ''}",
                f"Model: {GAME_MODE_OPTIONS.get(game_mode or '', game_mode or '')}",
                f"Time: {settings[SettingKind.SESSION_TIME] or ''} min",
                f"Sound: {settings[SettingKind.SOUND] or ''}",
                f"Light Time: {settings[SettingKind.LIGHT_TIME] or ''} s",
            ]
        )
        self._notify_state_update()

    def _handle_message(self, raw: str) -> None:
        """Handle one inbound relay frame."""
        update = self._parser.on_inbound_message(raw, self.state.selected_identity)
        if update is None:
            return
        self.state.last_response = update
        self.state.query_output = update.text
        self._notify_state_update()

    def _handle_connection_state(self, connection_state: ConnectionState) -> None:
        """Mirror the relay connection state for entities."""
        self.state.connection_state = connection_state
        self._notify_state_update()

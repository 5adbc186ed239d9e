"""Tests for GVC Keypad diagnostics."""

from __future__ import annotations

from unittest.mock import MagicMock

from custom_components.gvc_keypad.const import DOMAIN
from custom_components.gvc_keypad.coordinator import KeypadCoordinator
from custom_components.gvc_keypad.diagnostics import async_get_config_entry_diagnostics


async def test_diagnostics(coordinator: KeypadCoordinator) -> None:
    """Test diagnostics report config, state and connection details."""
    await coordinator.async_select_device("A1")
    coordinator.state.identities = ["A1", "A2"]
    coordinator.state.discovery_diagnostic = "No recent heartbeat reported."

    hass = MagicMock()
    hass.data = {DOMAIN: {"test_entry_id": coordinator}}
    entry = MagicMock()
    entry.entry_id = "test_entry_id"
    entry.data = {
        "relay_url": "ws://relay.local:6060",
        "inventory_url": "http://inventory.local:9000/game/active",
        "freshness_minutes": 3,
    }
    entry.options = {"freshness_minutes": 5}

    result = await async_get_config_entry_diagnostics(hass, entry)

    assert result["config"] == {
        "relay_url": "ws://relay.local:6060",
        "inventory_url": "http://inventory.local:9000/game/active",
        "freshness_minutes": 5,
    }
    assert result["state"]["connection_state"] == "disconnected"
    assert result["state"]["selected_identity"] == "A1"
    assert result["state"]["settings"] == {
        "GMode": None,
        "SMode": None,
        "PTime": None,
        "Mod2LT": None,
    }
    assert result["discovery"] == {
        "identities": ["A1", "A2"],
        "diagnostic": "No recent heartbeat reported.",
    }
    assert result["connection"] == {"reconnect_attempts": 0, "last_error": None}

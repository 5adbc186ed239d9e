"""GVC Keypad integration for Home Assistant."""

from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant

from .const import (
    CONF_FRESHNESS_MINUTES,
    CONF_INVENTORY_URL,
    CONF_RELAY_URL,
    DEFAULT_FRESHNESS_MINUTES,
    DEFAULT_INVENTORY_URL,
    DOMAIN,
)
from .coordinator import KeypadCoordinator

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [Platform.SELECT, Platform.BUTTON, Platform.SENSOR]


def _freshness_minutes(entry: ConfigEntry) -> float:
    return entry.options.get(
        CONF_FRESHNESS_MINUTES,
        entry.data.get(CONF_FRESHNESS_MINUTES, DEFAULT_FRESHNESS_MINUTES),
    )


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up GVC Keypad from a config entry."""
    relay_url = entry.data[CONF_RELAY_URL]
    inventory_url = entry.data.get(CONF_INVENTORY_URL, DEFAULT_INVENTORY_URL)
    freshness_minutes = _freshness_minutes(entry)

    _LOGGER.debug(
        "Setting up GVC Keypad integration for %s (inventory=%s, freshness=%sm)",
        relay_url,
        inventory_url,
        freshness_minutes,
    )

    coordinator = KeypadCoordinator(
        hass,
        relay_url,
        inventory_url,
        freshness_minutes,
        entry.entry_id,
    )

    # Connection is non-blocking (reconnects in background); discovery falls
    # back to default serials on failure, so setup never fails here
    await coordinator.async_start()

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = coordinator

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    # Register options update listener
    entry.async_on_unload(entry.add_update_listener(async_options_updated))

    _LOGGER.info("GVC Keypad integration setup complete for %s", relay_url)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    _LOGGER.debug("Unloading GVC Keypad integration for %s", entry.data[CONF_RELAY_URL])

    # Unload platforms FIRST (entities may still be using coordinator)
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        coordinator: KeypadCoordinator = hass.data[DOMAIN].pop(entry.entry_id)
        await coordinator.async_stop()
        _LOGGER.info("GVC Keypad integration unloaded for %s", entry.data[CONF_RELAY_URL])
    else:
        _LOGGER.warning(
            "Failed to unload platforms for GVC Keypad %s", entry.data[CONF_RELAY_URL]
        )
    return unload_ok


async def async_options_updated(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle options update (freshness window change)."""
    freshness_minutes = _freshness_minutes(entry)
    _LOGGER.info(
        "GVC Keypad options updated: freshness=%sm for %s",
        freshness_minutes,
        entry.data[CONF_RELAY_URL],
    )
    coordinator: KeypadCoordinator = hass.data[DOMAIN][entry.entry_id]
    coordinator.update_freshness_minutes(freshness_minutes)

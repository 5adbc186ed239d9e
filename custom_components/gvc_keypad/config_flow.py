"""Config flow for GVC Keypad integration."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any
from urllib.parse import urlparse

import aiohttp
import voluptuous as vol

from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.core import callback
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .const import (
    CONF_FRESHNESS_MINUTES,
    CONF_INVENTORY_URL,
    CONF_RELAY_URL,
    DEFAULT_FRESHNESS_MINUTES,
    DEFAULT_INVENTORY_URL,
    DEFAULT_RELAY_URL,
    DOMAIN,
    ENV_FRESHNESS_MINUTES,
    ENV_INVENTORY_URL,
    ENV_RELAY_URL,
)

_LOGGER = logging.getLogger(__name__)

FRESHNESS_SCHEMA = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))


def _env_freshness_minutes() -> float:
    """Return the freshness window from the environment, or the default."""
    try:
        return FRESHNESS_SCHEMA(os.environ.get(ENV_FRESHNESS_MINUTES))
    except vol.Invalid:
        return DEFAULT_FRESHNESS_MINUTES


def _check_url(url: str, schemes: tuple[str, ...]) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in schemes or not parsed.netloc:
        raise vol.Invalid(f"Expected a {'/'.join(schemes)} URL: {url}")
    return url


class GvcKeypadConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle config flow for GVC Keypad."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle user input."""
        errors: dict[str, str] = {}

        if user_input is not None:
            relay_url = user_input[CONF_RELAY_URL]
            try:
                _check_url(relay_url, ("ws", "wss"))
                _check_url(
                    user_input.get(CONF_INVENTORY_URL, DEFAULT_INVENTORY_URL),
                    ("http", "https"),
                )
            except vol.Invalid as ex:
                _LOGGER.debug("Rejected configuration: %s", ex)
                errors["base"] = "invalid_url"
            else:
                _LOGGER.debug("Testing connection to relay at %s", relay_url)
                # Validate connection before accepting
                try:
                    await self._test_connection(relay_url)
                except asyncio.TimeoutError:
                    _LOGGER.warning(
                        "Connection test timed out for %s (5s timeout)", relay_url
                    )
                    errors["base"] = "cannot_connect"
                except (aiohttp.ClientError, OSError) as ex:
                    _LOGGER.warning("Connection test failed for %s: %s", relay_url, ex)
                    errors["base"] = "cannot_connect"
                else:
                    _LOGGER.info("Connection test successful for %s", relay_url)
                    # Create unique ID from relay URL to prevent duplicates
                    await self.async_set_unique_id(relay_url)
                    self._abort_if_unique_id_configured()

                    return self.async_create_entry(
                        title=f"GVC Keypad ({urlparse(relay_url).netloc})",
                        data=user_input,
                    )

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        CONF_RELAY_URL,
                        default=os.environ.get(ENV_RELAY_URL, DEFAULT_RELAY_URL),
                    ): str,
                    vol.Optional(
                        CONF_INVENTORY_URL,
                        default=os.environ.get(ENV_INVENTORY_URL, DEFAULT_INVENTORY_URL),
                    ): str,
                    vol.Optional(
                        CONF_FRESHNESS_MINUTES, default=_env_freshness_minutes()
                    ): FRESHNESS_SCHEMA,
                }
            ),
            errors=errors,
        )

    async def _test_connection(self, relay_url: str) -> None:
        """Test websocket handshake with the relay, 5s timeout."""
        session = async_get_clientsession(self.hass)
        ws = await asyncio.wait_for(session.ws_connect(relay_url), timeout=5.0)
        await ws.close()

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> OptionsFlow:
        """Get the options flow for this handler."""
        return GvcKeypadOptionsFlow()


class GvcKeypadOptionsFlow(OptionsFlow):
    """Handle options for GVC Keypad."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Manage options."""
        if user_input is not None:
            _LOGGER.debug("Options flow saving: %s", user_input)
            return self.async_create_entry(title="", data=user_input)

        current = self.config_entry.options.get(
            CONF_FRESHNESS_MINUTES,
            self.config_entry.data.get(CONF_FRESHNESS_MINUTES, DEFAULT_FRESHNESS_MINUTES),
        )
        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(
                {
                    vol.Optional(CONF_FRESHNESS_MINUTES, default=current): FRESHNESS_SCHEMA,
                }
            ),
        )

"""Tests for GVC Keypad config flow."""

from __future__ import annotations

import asyncio
from collections.abc import Generator
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest
from homeassistant import config_entries
from homeassistant.core import HomeAssistant
from homeassistant.data_entry_flow import FlowResultType

from custom_components.gvc_keypad.const import (
    CONF_FRESHNESS_MINUTES,
    CONF_INVENTORY_URL,
    CONF_RELAY_URL,
    DEFAULT_FRESHNESS_MINUTES,
    DEFAULT_INVENTORY_URL,
    DOMAIN,
)

TEST_CONNECTION = (
    "custom_components.gvc_keypad.config_flow.GvcKeypadConfigFlow._test_connection"
)
USER_INPUT = {
    CONF_RELAY_URL: "ws://192.168.1.100:6060",
    CONF_INVENTORY_URL: "http://192.168.1.100:9000/game/active",
    CONF_FRESHNESS_MINUTES: 3,
}


@pytest.fixture(autouse=True)
def mock_setup_entry() -> Generator[AsyncMock, None, None]:
    """Keep created entries from connecting to a relay."""
    with patch(
        "custom_components.gvc_keypad.async_setup_entry", return_value=True
    ) as mock:
        yield mock


async def test_form_success(hass: HomeAssistant) -> None:
    """Test successful config flow."""
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    assert result["type"] == FlowResultType.FORM
    assert result["errors"] == {}

    with patch(TEST_CONNECTION, return_value=None):
        result = await hass.config_entries.flow.async_configure(
            result["flow_id"], USER_INPUT
        )
        await hass.async_block_till_done()

    assert result["type"] == FlowResultType.CREATE_ENTRY
    assert result["title"] == "GVC Keypad (192.168.1.100:6060)"
    assert result["data"] == USER_INPUT


async def test_form_connection_timeout(hass: HomeAssistant) -> None:
    """Test config flow with handshake timeout."""
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    with patch(TEST_CONNECTION, side_effect=asyncio.TimeoutError()):
        result = await hass.config_entries.flow.async_configure(
            result["flow_id"], USER_INPUT
        )

    assert result["type"] == FlowResultType.FORM
    assert result["errors"]["base"] == "cannot_connect"


async def test_form_client_error(hass: HomeAssistant) -> None:
    """Test config flow with a refused handshake."""
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    with patch(
        TEST_CONNECTION, side_effect=aiohttp.ClientConnectionError("Connection refused")
    ):
        result = await hass.config_entries.flow.async_configure(
            result["flow_id"], USER_INPUT
        )

    assert result["type"] == FlowResultType.FORM
    assert result["errors"]["base"] == "cannot_connect"


@pytest.mark.parametrize(
    "overrides",
    [
        {CONF_RELAY_URL: "http://192.168.1.100:6060"},
        {CONF_RELAY_URL: "192.168.1.100"},
        {CONF_INVENTORY_URL: "ws://192.168.1.100:9000"},
    ],
)
async def test_form_invalid_url(hass: HomeAssistant, overrides: dict[str, str]) -> None:
    """Test config flow rejects URLs with the wrong scheme."""
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    with patch(TEST_CONNECTION, return_value=None) as test_connection:
        result = await hass.config_entries.flow.async_configure(
            result["flow_id"], {**USER_INPUT, **overrides}
        )

    assert result["type"] == FlowResultType.FORM
    assert result["errors"]["base"] == "invalid_url"
    test_connection.assert_not_called()


async def test_form_defaults(hass: HomeAssistant) -> None:
    """Test config flow fills in inventory URL and freshness window."""
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    with patch(TEST_CONNECTION, return_value=None):
        result = await hass.config_entries.flow.async_configure(
            result["flow_id"], {CONF_RELAY_URL: "ws://192.168.1.100:6060"}
        )
        await hass.async_block_till_done()

    assert result["type"] == FlowResultType.CREATE_ENTRY
    assert result["data"][CONF_INVENTORY_URL] == DEFAULT_INVENTORY_URL
    assert result["data"][CONF_FRESHNESS_MINUTES] == DEFAULT_FRESHNESS_MINUTES


async def test_form_duplicate_relay(hass: HomeAssistant) -> None:
    """Test config flow aborts on duplicate relay URL."""
    # Create first entry
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    with patch(TEST_CONNECTION, return_value=None):
        result = await hass.config_entries.flow.async_configure(
            result["flow_id"], USER_INPUT
        )
        await hass.async_block_till_done()

    assert result["type"] == FlowResultType.CREATE_ENTRY

    # Try to create duplicate
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )

    with patch(TEST_CONNECTION, return_value=None):
        result = await hass.config_entries.flow.async_configure(
            result["flow_id"], USER_INPUT
        )

    assert result["type"] == FlowResultType.ABORT
    assert result["reason"] == "already_configured"

"""Pytest fixtures for GVC Keypad tests."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from custom_components.gvc_keypad.coordinator import KeypadCoordinator


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: None) -> None:
    """Allow Home Assistant to load the integration from custom_components."""
    return


@pytest.fixture
def mock_hass() -> MagicMock:
    """Return a mock Home Assistant instance."""
    hass = MagicMock()
    hass.loop = MagicMock()
    return hass


async def _block_forever() -> None:
    await asyncio.Event().wait()


@pytest.fixture
def mock_ws() -> MagicMock:
    """Return a mock websocket that stays open until closed."""
    ws = MagicMock()
    ws.closed = False
    ws.close = AsyncMock()
    ws.send_str = AsyncMock()
    ws.receive = AsyncMock(side_effect=_block_forever)
    ws.exception.return_value = None
    return ws


@pytest.fixture
def mock_session(mock_ws: MagicMock) -> MagicMock:
    """Return a mock aiohttp client session connecting to mock_ws."""
    session = MagicMock()
    session.ws_connect = AsyncMock(return_value=mock_ws)
    return session


def inventory_response(session: MagicMock, data: object, status: int = 200) -> MagicMock:
    """Make session.get() answer with a JSON body."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=data)
    session.get.return_value.__aenter__ = AsyncMock(return_value=response)
    session.get.return_value.__aexit__ = AsyncMock(return_value=False)
    return response


@pytest.fixture
def coordinator(mock_hass: MagicMock, mock_session: MagicMock) -> KeypadCoordinator:
    """Return a KeypadCoordinator instance for testing."""
    return KeypadCoordinator(
        hass=mock_hass,
        relay_url="ws://relay.local:6060",
        inventory_url="http://inventory.local:9000/game/active",
        freshness_minutes=3,
        entry_id="test_entry_id",
        session=mock_session,
    )

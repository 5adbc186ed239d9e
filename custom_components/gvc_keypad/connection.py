"""Relay connection for GVC Keypad integration."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import aiohttp

from .const import (
    BACKOFF_BASE,
    BACKOFF_GROWTH_ATTEMPTS,
    BACKOFF_MAX,
    CONNECT_TIMEOUT,
    WS_HEARTBEAT,
)

_LOGGER = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Lifecycle of the relay connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECT_SCHEDULED = "reconnect_scheduled"
    CLOSED_PERMANENTLY = "closed_permanently"


@dataclass
class ReconnectPolicy:
    """Capped exponential backoff for reconnection.

    The growth cap only limits the delay; reconnection never stops because of
    the attempt count. Only an explicit shutdown ends the retry loop.

    Attributes:
        attempt_count: Consecutive failures since the last successful open.
        base_delay: Delay after the first failure, in seconds.
        max_delay: Upper bound for any delay, in seconds.
        max_growth_attempts: Attempt count after which the delay stops growing.
    """

    attempt_count: int = 0
    base_delay: float = BACKOFF_BASE
    max_delay: float = BACKOFF_MAX
    max_growth_attempts: int = BACKOFF_GROWTH_ATTEMPTS

    def delay_for(self, attempt: int) -> float:
        """Return the delay before reconnect attempt number `attempt` (1-based)."""
        exponent = max(min(attempt, self.max_growth_attempts), 1) - 1
        return min(self.base_delay * (2**exponent), self.max_delay)

    def next_delay(self) -> float:
        """Record a failure and return the delay before the next attempt."""
        self.attempt_count += 1
        return self.delay_for(self.attempt_count)

    def reset(self) -> None:
        """Reset after a successful open."""
        self.attempt_count = 0


class ConnectionManager:
    """Own one logical websocket connection to the message relay.

    Architecture:
        connect() opens the websocket and starts a reader task that hands every
        text frame, in delivery order, to the on_message callback. Handshake
        failures, read errors and unexpected closures all take the same path:
        a single reconnect timer is armed using ReconnectPolicy.

    Exclusivity:
        At most one socket, one handshake and one timer are live at a time.
        Every handshake is tagged with a generation number; a handshake that
        completes after a newer connect() or shutdown() closes its own socket.

    Shutdown:
        shutdown() is the only terminal transition. It is idempotent and leaves
        no pending timer, task or open socket behind.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        on_message: Callable[[str], None],
        on_state_change: Callable[[ConnectionState], None] | None = None,
        policy: ReconnectPolicy | None = None,
    ) -> None:
        """Initialize the connection manager."""
        self._session = session
        self._on_message = on_message
        self._on_state_change = on_state_change
        self.policy = policy or ReconnectPolicy()

        self._url: str | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._state = ConnectionState.DISCONNECTED
        self._shutdown_requested = False
        self._generation = 0
        self._last_error: str | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._connect_task: asyncio.Task[None] | None = None
        self._reader_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> ConnectionState:
        """Return the current connection state."""
        return self._state

    @property
    def is_open(self) -> bool:
        """Return True if commands can be sent."""
        return self._state is ConnectionState.OPEN

    @property
    def url(self) -> str | None:
        """Return the relay URL of the current session."""
        return self._url

    @property
    def reconnect_attempts(self) -> int:
        """Return the number of consecutive failed attempts."""
        return self.policy.attempt_count

    @property
    def last_error(self) -> str | None:
        """Return last error message."""
        return self._last_error

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        _LOGGER.debug("Relay connection: %s → %s", self._state.value, state.value)
        self._state = state
        if self._on_state_change is not None:
            try:
                self._on_state_change(state)
            except Exception:
                _LOGGER.exception("Exception in connection state callback")

    async def connect(self, url: str) -> None:
        """Open a fresh connection to the relay, replacing any existing one."""
        self._cancel_reconnect()
        await self._cancel_task(self._connect_task)
        self._connect_task = None
        await self._close_socket()
        self._shutdown_requested = False
        self._url = url
        await self._open()

    async def send(self, message: str) -> bool:
        """Send a text frame. Dropped (not queued) unless the connection is open."""
        ws = self._ws
        if not self.is_open or ws is None or ws.closed:
            _LOGGER.warning(
                "Cannot send (relay %s), dropping: %s", self._state.value, message
            )
            return False
        try:
            await ws.send_str(message)
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as ex:
            _LOGGER.warning("Send failed for '%s': %s", message, ex)
            # Reader task will notice the closure and reconnect
            return False
        _LOGGER.debug("Sent: %s", message)
        return True

    async def shutdown(self) -> None:
        """Stop the connection for good (idempotent)."""
        self._shutdown_requested = True
        self._generation += 1
        self._cancel_reconnect()
        await self._cancel_task(self._connect_task)
        self._connect_task = None
        await self._close_socket()
        self._set_state(ConnectionState.CLOSED_PERMANENTLY)
        _LOGGER.debug("Relay connection shut down")

    async def _open(self) -> None:
        """Perform one handshake; schedule a reconnect if it fails."""
        self._generation += 1
        generation = self._generation
        self._set_state(ConnectionState.CONNECTING)
        try:
            ws = await asyncio.wait_for(
                self._session.ws_connect(self._url, heartbeat=WS_HEARTBEAT),
                timeout=CONNECT_TIMEOUT,
            )
        except asyncio.CancelledError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as ex:
            if generation != self._generation or self._shutdown_requested:
                return
            self._last_error = str(ex) or type(ex).__name__
            self._schedule_reconnect()
            return
        except Exception as ex:
            _LOGGER.exception("Unexpected error connecting to relay: %s", ex)
            if generation != self._generation or self._shutdown_requested:
                return
            self._last_error = str(ex) or type(ex).__name__
            self._schedule_reconnect()
            return

        if generation != self._generation or self._shutdown_requested:
            # Superseded while the handshake was in flight
            with contextlib.suppress(Exception):
                await ws.close()
            return

        self._ws = ws
        self.policy.reset()
        self._last_error = None
        self._set_state(ConnectionState.OPEN)
        _LOGGER.info("Connected to relay at %s", self._url)
        self._reader_task = asyncio.create_task(self._read_loop(ws))

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Deliver inbound frames until the socket closes."""
        while True:
            try:
                msg = await ws.receive()
            except asyncio.CancelledError:
                raise
            except Exception as ex:
                _LOGGER.exception("Unexpected error reading from relay: %s", ex)
                self._last_error = str(ex)
                break

            if msg.type == aiohttp.WSMsgType.TEXT:
                self._dispatch(msg.data)
            elif msg.type == aiohttp.WSMsgType.BINARY:
                self._dispatch(msg.data.decode("utf-8", "ignore"))
            elif msg.type == aiohttp.WSMsgType.ERROR:
                self._last_error = str(ws.exception())
                _LOGGER.warning("Relay connection error: %s", self._last_error)
                break
            elif msg.type in (
                aiohttp.WSMsgType.CLOSE,
                aiohttp.WSMsgType.CLOSING,
                aiohttp.WSMsgType.CLOSED,
            ):
                _LOGGER.warning("Relay connection closed by remote")
                break

        if self._ws is not ws:
            return
        self._ws = None
        with contextlib.suppress(Exception):
            await ws.close()
        self._schedule_reconnect()

    def _dispatch(self, data: str) -> None:
        """Hand one frame to the consumer."""
        _LOGGER.debug("Received: %s", data)
        try:
            self._on_message(data)
        except Exception:
            _LOGGER.exception("Exception in relay message callback")

    def _schedule_reconnect(self) -> None:
        """Arm the single reconnect timer unless shutdown was requested."""
        if self._shutdown_requested:
            return
        self._cancel_reconnect()
        delay = self.policy.next_delay()
        self._set_state(ConnectionState.RECONNECT_SCHEDULED)
        _LOGGER.warning(
            "Relay connection failed (attempt %d): %s. Retry in %.0fs",
            self.policy.attempt_count,
            self._last_error or "connection closed",
            delay,
        )
        self._reconnect_handle = asyncio.get_running_loop().call_later(
            delay, self._fire_reconnect
        )

    def _fire_reconnect(self) -> None:
        self._reconnect_handle = None
        if self._shutdown_requested or self._url is None:
            return
        self._connect_task = asyncio.create_task(self._open())

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    async def _close_socket(self) -> None:
        """Stop the reader and close the socket without scheduling a reconnect."""
        ws, self._ws = self._ws, None
        await self._cancel_task(self._reader_task)
        self._reader_task = None
        if ws is not None and not ws.closed:
            with contextlib.suppress(Exception):
                await ws.close()
        if self._state is ConnectionState.OPEN:
            self._set_state(ConnectionState.DISCONNECTED)

    @staticmethod
    async def _cancel_task(task: asyncio.Task[None] | None) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

"""Outbound command dispatch for GVC Keypad integration."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from .const import NAMESPACE
from .protocol import OutboundCommand, SettingKind

_LOGGER = logging.getLogger(__name__)


class CommandDispatcher:
    """Turn local setting changes into commands for the selected keypad.

    The first value observed for each setting after start or after a device
    (re)selection is only recorded: it comes from local initialization, not
    from the operator, and must not be echoed to the keypad. Every later
    change is sent. Queries are always sent.

    The guard table holds one entry per (setting, target) pair and is cleared
    whenever the target changes.
    """

    def __init__(
        self,
        send: Callable[[str], Awaitable[bool]],
        namespace: str = NAMESPACE,
    ) -> None:
        """Initialize the dispatcher."""
        self._send = send
        self._namespace = namespace
        self._target: str | None = None
        self._observed: dict[tuple[SettingKind, str], str] = {}

    @property
    def target(self) -> str | None:
        """Return the keypad commands are currently scoped to."""
        return self._target

    def reset(self, target: str | None = None) -> None:
        """Forget all observed settings and scope to a new target."""
        if target != self._target:
            _LOGGER.debug("Dispatcher target: %s → %s", self._target, target)
        self._target = target
        self._observed.clear()

    def has_observed(self, kind: SettingKind, target: str) -> bool:
        """Return True once a first value has been recorded for kind/target."""
        return (kind, target) in self._observed

    async def on_setting_changed(
        self, kind: SettingKind, value: object, target: str | None
    ) -> OutboundCommand | None:
        """Handle a local setting change, returning the command sent (if any)."""
        if not target:
            _LOGGER.debug("No device selected, ignoring %s=%s", kind.value, value)
            return None
        if target != self._target:
            self.reset(target)

        key = (kind, target)
        if key not in self._observed:
            self._observed[key] = str(value)
            _LOGGER.debug(
                "Initial %s=%s for %s recorded, not sent", kind.value, value, target
            )
            return None

        self._observed[key] = str(value)
        command = OutboundCommand(
            target=target, kind=kind, value=str(value), namespace=self._namespace
        )
        await self._submit(command)
        return command

    async def on_query_requested(
        self, kind: SettingKind, target: str | None
    ) -> OutboundCommand | None:
        """Interrogate the keypad for the current value of a setting."""
        if not target:
            _LOGGER.warning("No device selected, cannot query %s", kind.query_token)
            return None
        command = OutboundCommand(target=target, kind=kind, namespace=self._namespace)
        await self._submit(command)
        return command

    async def _submit(self, command: OutboundCommand) -> None:
        if not await self._send(command.to_json()):
            # Fire-and-forget: the operator has to trigger the action again
            _LOGGER.debug("Command %s to %s not delivered", command.payload, command.target)

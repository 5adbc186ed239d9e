"""Keypad relay protocol: topic addressing, command framing, response parsing."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum

from .const import BROADCAST_SUFFIX, NAMESPACE

_LOGGER = logging.getLogger(__name__)

FRAME_START = "*"
FRAME_END = "#"


class SettingKind(Enum):
    """Keypad settings and their wire tokens.

    The value is the token used for set commands (``*<token>:<value>#``).
    The light timing query uses a different spelling on the wire
    (``*Mode2LT?#`` vs ``*Mod2LT:<value>#``); both are kept as the firmware
    expects them.
    """

    GAME_MODE = "GMode"
    SOUND = "SMode"
    SESSION_TIME = "PTime"
    LIGHT_TIME = "Mod2LT"

    @property
    def query_token(self) -> str:
        """Return the token used when interrogating this setting."""
        if self is SettingKind.LIGHT_TIME:
            return "Mode2LT"
        return self.value


# Order matters: first substring match wins when demultiplexing responses
RESPONSE_TOKENS: list[tuple[str, SettingKind]] = [
    ("GMode", SettingKind.GAME_MODE),
    ("SMode", SettingKind.SOUND),
    ("PTime", SettingKind.SESSION_TIME),
    ("Mod2LT", SettingKind.LIGHT_TIME),
    ("Mode2LT", SettingKind.LIGHT_TIME),
]


def device_topic(identity: str, namespace: str = NAMESPACE) -> str:
    """Return the topic addressing a single keypad."""
    return f"{namespace}/{identity}"


def broadcast_topic(namespace: str = NAMESPACE) -> str:
    """Return the topic keypads publish their responses on."""
    return f"{namespace}/{BROADCAST_SUFFIX}"


def frame_set(kind: SettingKind, value: object) -> str:
    """Frame a set command: '*PTime:5#'."""
    return f"{FRAME_START}{kind.value}:{value}{FRAME_END}"


def frame_query(kind: SettingKind) -> str:
    """Frame a query command: '*PTime?#'."""
    return f"{FRAME_START}{kind.query_token}?{FRAME_END}"


def strip_framing(value: str) -> str:
    """Remove every framing sentinel from a payload."""
    return value.replace(FRAME_START, "").replace(FRAME_END, "")


@dataclass(frozen=True)
class OutboundCommand:
    """A command addressed to one keypad.

    Attributes:
        target: Serial number of the addressed keypad.
        kind: Setting the command refers to.
        value: New value for a set command, None for a query.
        namespace: Topic namespace shared with the relay.
    """

    target: str
    kind: SettingKind
    value: str | None = None
    namespace: str = NAMESPACE

    @property
    def is_query(self) -> bool:
        """Return True if this command interrogates the keypad."""
        return self.value is None

    @property
    def topic(self) -> str:
        """Return the topic for this command."""
        return device_topic(self.target, self.namespace)

    @property
    def payload(self) -> str:
        """Return the framed payload."""
        if self.value is None:
            return frame_query(self.kind)
        return frame_set(self.kind, self.value)

    def to_json(self) -> str:
        """Serialize as a relay text frame."""
        return json.dumps({"topic": self.topic, "value": self.payload})


@dataclass(frozen=True)
class InboundMessage:
    """A message received from the relay."""

    topic: str
    value: str


@dataclass(frozen=True)
class DisplayUpdate:
    """A keypad response worth showing for the selected device."""

    label: str
    value: str

    @property
    def text(self) -> str:
        """Return the response as shown to the operator: 'GMode? -> 2'."""
        return f"{self.label}? -> {self.value}"


def parse_message(raw: str | bytes) -> InboundMessage | None:
    """Parse a relay text frame, returning None if it is not a valid message."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as ex:
        _LOGGER.debug("Ignoring non-JSON frame %r: %s", raw, ex)
        return None
    if not isinstance(data, dict):
        _LOGGER.debug("Ignoring non-object frame: %r", raw)
        return None
    topic = data.get("topic")
    value = data.get("value")
    if not isinstance(topic, str) or not isinstance(value, str):
        _LOGGER.debug("Ignoring frame without topic/value: %r", raw)
        return None
    return InboundMessage(topic=topic, value=value)


class TelemetryParser:
    """Demultiplex keypad responses for the currently selected device.

    Keypads answer on the broadcast topic with '*<serial>,<token>,<value>#'.
    Only responses from the selected serial are turned into display updates;
    everything else is dropped without error.
    """

    def __init__(self, namespace: str = NAMESPACE) -> None:
        """Initialize the parser."""
        self._broadcast_topic = broadcast_topic(namespace)

    def on_inbound_message(
        self, raw: str | bytes, selected_identity: str | None
    ) -> DisplayUpdate | None:
        """Return a display update for a raw relay frame, if it concerns us."""
        message = parse_message(raw)
        if message is None:
            return None
        return self.handle_message(message, selected_identity)

    def handle_message(
        self, message: InboundMessage, selected_identity: str | None
    ) -> DisplayUpdate | None:
        """Return a display update for a parsed message, if it concerns us."""
        if message.topic != self._broadcast_topic:
            _LOGGER.debug("Ignoring message on %s", message.topic)
            return None

        parts = strip_framing(message.value).split(",")
        if not selected_identity or parts[0] != selected_identity:
            _LOGGER.debug(
                "Ignoring response from %s (selected: %s)", parts[0], selected_identity
            )
            return None
        if len(parts) < 3:
            _LOGGER.debug("Malformed response: %s", message.value)
            return None

        for token, kind in RESPONSE_TOKENS:
            if token in parts[1]:
                _LOGGER.debug("Response from %s: %s=%s", parts[0], kind.value, parts[2])
                return DisplayUpdate(label=kind.value, value=parts[2])

        _LOGGER.debug("Unknown response token: %s", parts[1])
        return None

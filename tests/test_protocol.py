"""Tests for GVC Keypad protocol framing and response parsing."""

from __future__ import annotations

import json

import pytest

from custom_components.gvc_keypad.protocol import (
    DisplayUpdate,
    OutboundCommand,
    SettingKind,
    TelemetryParser,
    broadcast_topic,
    device_topic,
    frame_query,
    frame_set,
    parse_message,
    strip_framing,
)


def _frame(topic: str, value: str) -> str:
    return json.dumps({"topic": topic, "value": value})


class TestFraming:
    """Tests for topic addressing and payload framing."""

    def test_topics(self) -> None:
        """Test device and broadcast topics."""
        assert device_topic("GVC-001") == "GVC/KP/GVC-001"
        assert broadcast_topic() == "GVC/KP/ALL"

    def test_set_payload(self) -> None:
        """Test set commands use '*<Kind>:<value>#'."""
        assert frame_set(SettingKind.SESSION_TIME, 5) == "*PTime:5#"
        assert frame_set(SettingKind.GAME_MODE, "2") == "*GMode:2#"
        assert frame_set(SettingKind.SOUND, 0) == "*SMode:0#"

    def test_query_payload(self) -> None:
        """Test queries use '*<Kind>?#'."""
        assert frame_query(SettingKind.GAME_MODE) == "*GMode?#"
        assert frame_query(SettingKind.SOUND) == "*SMode?#"
        assert frame_query(SettingKind.SESSION_TIME) == "*PTime?#"

    def test_light_time_token_asymmetry(self) -> None:
        """Light time is set as Mod2LT but queried as Mode2LT, as the firmware expects."""
        assert frame_set(SettingKind.LIGHT_TIME, 3) == "*Mod2LT:3#"
        assert frame_query(SettingKind.LIGHT_TIME) == "*Mode2LT?#"

    def test_strip_framing(self) -> None:
        """Test all sentinels are removed."""
        assert strip_framing("*GVC-001,GMode,2#") == "GVC-001,GMode,2"
        assert strip_framing("GVC-001,GMode,2") == "GVC-001,GMode,2"


class TestOutboundCommand:
    """Tests for OutboundCommand."""

    def test_set_command(self) -> None:
        """Test a set command serializes to a relay frame."""
        command = OutboundCommand(target="A1", kind=SettingKind.SESSION_TIME, value="5")
        assert not command.is_query
        assert command.topic == "GVC/KP/A1"
        assert command.payload == "*PTime:5#"
        assert json.loads(command.to_json()) == {"topic": "GVC/KP/A1", "value": "*PTime:5#"}

    def test_query_command(self) -> None:
        """Test a command without value is a query."""
        command = OutboundCommand(target="A1", kind=SettingKind.SOUND)
        assert command.is_query
        assert command.payload == "*SMode?#"

    def test_custom_namespace(self) -> None:
        """Test the namespace prefixes the topic."""
        command = OutboundCommand(target="A1", kind=SettingKind.SOUND, namespace="X/Y")
        assert command.topic == "X/Y/A1"


class TestParseMessage:
    """Tests for relay frame parsing."""

    def test_valid(self) -> None:
        """Test a valid frame."""
        message = parse_message(_frame("GVC/KP/ALL", "*A1,GMode,2#"))
        assert message is not None
        assert message.topic == "GVC/KP/ALL"
        assert message.value == "*A1,GMode,2#"

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[1, 2]",
            json.dumps({"topic": "GVC/KP/ALL"}),
            json.dumps({"topic": 1, "value": "x"}),
        ],
    )
    def test_invalid(self, raw: str) -> None:
        """Test unparseable frames are ignored."""
        assert parse_message(raw) is None


class TestTelemetryParser:
    """Tests for response demultiplexing."""

    @pytest.fixture
    def parser(self) -> TelemetryParser:
        """Return a parser for the default namespace."""
        return TelemetryParser()

    def test_matching_response(self, parser: TelemetryParser) -> None:
        """Test a response from the selected keypad yields an update."""
        update = parser.on_inbound_message(
            _frame("GVC/KP/ALL", "*GVC-001,GMode,2#"), "GVC-001"
        )
        assert update == DisplayUpdate(label="GMode", value="2")
        assert update.text == "GMode? -> 2"

    def test_unframed_value(self, parser: TelemetryParser) -> None:
        """Test a value without sentinels is accepted too."""
        update = parser.on_inbound_message(
            _frame("GVC/KP/ALL", "GVC-001,GMode,2"), "GVC-001"
        )
        assert update == DisplayUpdate(label="GMode", value="2")

    @pytest.mark.parametrize(
        ("token", "label"),
        [
            ("SMode", "SMode"),
            ("PTime", "PTime"),
            ("Mod2LT", "Mod2LT"),
            ("Mode2LT", "Mod2LT"),
            ("GMode?", "GMode"),
        ],
    )
    def test_kind_tokens(self, parser: TelemetryParser, token: str, label: str) -> None:
        """Test every known token is recognized by substring."""
        update = parser.on_inbound_message(
            _frame("GVC/KP/ALL", f"*A1,{token},4#"), "A1"
        )
        assert update == DisplayUpdate(label=label, value="4")

    def test_other_device_ignored(self, parser: TelemetryParser) -> None:
        """Test responses from other keypads are not shown."""
        assert parser.on_inbound_message(_frame("GVC/KP/ALL", "*A2,GMode,2#"), "A1") is None

    def test_no_selection_ignored(self, parser: TelemetryParser) -> None:
        """Test nothing is shown without a selected keypad."""
        assert parser.on_inbound_message(_frame("GVC/KP/ALL", "*A1,GMode,2#"), None) is None

    def test_non_broadcast_topic_ignored(self, parser: TelemetryParser) -> None:
        """Test per-device topics are not demultiplexed."""
        assert parser.on_inbound_message(_frame("GVC/KP/A1", "*A1,GMode,2#"), "A1") is None

    def test_unknown_token_ignored(self, parser: TelemetryParser) -> None:
        """Test an unknown token is not an error."""
        assert parser.on_inbound_message(_frame("GVC/KP/ALL", "*A1,Battery,80#"), "A1") is None

    def test_short_response_ignored(self, parser: TelemetryParser) -> None:
        """Test a response without value field is ignored."""
        assert parser.on_inbound_message(_frame("GVC/KP/ALL", "*A1,GMode#"), "A1") is None

    def test_garbage_ignored(self, parser: TelemetryParser) -> None:
        """Test non-JSON frames are ignored."""
        assert parser.on_inbound_message("garbage", "A1") is None

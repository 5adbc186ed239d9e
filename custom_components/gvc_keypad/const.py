"""Constants for GVC Keypad integration.

The keypads never talk to Home Assistant directly. Commands and responses go
through a websocket relay as JSON text frames: {"topic": ..., "value": ...}.
"""

from __future__ import annotations

DOMAIN = "gvc_keypad"

DEFAULT_RELAY_URL = "ws://localhost:6060"
DEFAULT_INVENTORY_URL = "http://localhost:9000/game/active"
DEFAULT_FRESHNESS_MINUTES = 3

# Environment overrides for the config flow defaults
ENV_RELAY_URL = "GVC_RELAY_URL"
ENV_INVENTORY_URL = "GVC_INVENTORY_URL"
ENV_FRESHNESS_MINUTES = "GVC_MAX_HEARTBEAT_MINUTES"

# Topic addressing
NAMESPACE = "GVC/KP"
BROADCAST_SUFFIX = "ALL"

# Exponential backoff for relay reconnection
# Formula: min(BACKOFF_BASE * 2^(min(attempt, BACKOFF_GROWTH_ATTEMPTS) - 1), BACKOFF_MAX)
# Sequence: 1s, 2s, 4s, 8s, 15s, 15s, ... (retried forever)
BACKOFF_BASE = 1.0  # seconds
BACKOFF_MAX = 15.0  # seconds
BACKOFF_GROWTH_ATTEMPTS = 6

# Network timing
CONNECT_TIMEOUT = 10.0  # seconds for the websocket handshake
WS_HEARTBEAT = 30.0  # seconds between websocket pings
INVENTORY_TIMEOUT = 10.0  # seconds for the inventory request

# Used when the inventory endpoint is unreachable or reports nothing
DEFAULT_SERIAL_NUMBERS = ["SN-001", "SN-002", "SN-003", "SN-004", "SN-005"]

# Inventory record keys, highest priority first
IDENTITY_KEYS = (
    "SNoutput",
    "DeviceNumber",
    "deviceNumber",
    "serial",
    "serialNumber",
    "serial_no",
    "serialNo",
    "deviceSerial",
    "device_serial",
    "imei",
    "id",
    "name",
)
FALLBACK_IDENTITY_KEYS = ("serial", "serialNumber", "id")
HEARTBEAT_KEYS = (
    "lastHeartBeatTime",
    "LastHeartBeatTime",
    "lastHeartbeatTime",
    "lastHeartbeat",
    "last_seen",
    "lastSeen",
)

# Setting choices offered by the keypad firmware
GAME_MODE_OPTIONS = {
    "0": "Model 0 - All buttons OKAY",
    "1": "Model 1 - Press Light Button",
    "2": "Model 2 - Play In Sequence",
}
SESSION_TIME_OPTIONS = ["1", "2", "5", "10"]  # minutes
SOUND_LEVEL_OPTIONS = ["0", "1", "2", "3", "4"]
LIGHT_TIME_OPTIONS = ["1", "2", "3", "4", "5"]  # seconds each light stays on

# Configuration keys
CONF_RELAY_URL = "relay_url"
CONF_INVENTORY_URL = "inventory_url"
CONF_FRESHNESS_MINUTES = "freshness_minutes"

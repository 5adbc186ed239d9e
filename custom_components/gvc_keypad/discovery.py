"""Active keypad discovery for GVC Keypad integration.

The inventory endpoint is loosely typed: depending on the backend version it
returns a bare list, {"data": [...]} or {"items": [...]}, with either plain
serial strings or records whose identity and heartbeat keys vary. Records are
probed with ordered extractor strategies; the first that yields a value wins.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import aiohttp
from homeassistant.util import dt as dt_util

from .const import (
    FALLBACK_IDENTITY_KEYS,
    HEARTBEAT_KEYS,
    IDENTITY_KEYS,
    INVENTORY_TIMEOUT,
)

_LOGGER = logging.getLogger(__name__)

SOURCE_INVENTORY = "inventory"
SOURCE_UNFILTERED = "unfiltered"
SOURCE_FALLBACK = "fallback"

NO_ACTIVE_DEVICES = "No active devices by lastHeartBeatTime filter. Using defaults."
NO_FRESH_HEARTBEAT = "No recent heartbeat reported. Showing all known devices."
LOAD_FAILED = "Failed to load serials. Using defaults."


@dataclass
class DeviceCandidate:
    """An inventory record being considered for the device list."""

    record: Any
    identity: str | None = None
    heartbeat_ms: float | None = None


@dataclass
class DiscoveryResult:
    """Outcome of one discovery run.

    Attributes:
        identities: Serial numbers to offer, most recently seen first.
        diagnostic: Human-readable note when results were degraded, else "".
        source: Where the identities came from (inventory, unfiltered, fallback).
    """

    identities: list[str] = field(default_factory=list)
    diagnostic: str = ""
    source: str = SOURCE_INVENTORY


def _now_ms() -> float:
    return time.time() * 1000


def unwrap_envelope(data: Any) -> list[Any]:
    """Return the candidate array from any of the accepted envelope shapes."""
    if isinstance(data, list):
        return data
    if isinstance(data, Mapping):
        for key in ("data", "items"):
            if isinstance(data.get(key), list):
                return data[key]
    return []


def _datetime_to_ms(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp() * 1000


def _number_from_string(value: str) -> float | None:
    try:
        number = float(value)
    except ValueError:
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def _iso_date(value: str) -> float | None:
    try:
        parsed = dt_util.parse_datetime(value)
    except ValueError:
        # Well-formed but impossible dates, e.g. month 13
        return None
    return _datetime_to_ms(parsed) if parsed else None


def _rfc_date(value: str) -> float | None:
    try:
        return _datetime_to_ms(parsedate_to_datetime(value))
    except (TypeError, ValueError, IndexError):
        return None


# Tried in order on string heartbeats
_STRING_TIMESTAMP_PARSERS: list[Callable[[str], float | None]] = [
    _number_from_string,
    _iso_date,
    _rfc_date,
]


def coerce_timestamp(value: Any) -> float | None:
    """Convert a heartbeat value to epoch milliseconds, if possible."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        for parser in _STRING_TIMESTAMP_PARSERS:
            result = parser(value)
            if result is not None:
                return result
    return None


def extract_heartbeat(record: Mapping[str, Any]) -> float | None:
    """Return the heartbeat of a record from the first present heartbeat key."""
    for key in HEARTBEAT_KEYS:
        value = record.get(key)
        if value is None:
            continue
        timestamp = coerce_timestamp(value)
        if timestamp is not None:
            return timestamp
    return None


def find_identity_key(records: Sequence[Any]) -> str | None:
    """Return the identity key found on the first record (schema is homogeneous)."""
    first = records[0] if records else None
    if not isinstance(first, Mapping):
        return None
    return next((key for key in IDENTITY_KEYS if key in first), None)


def _keyed_identity(key: str) -> Callable[[Mapping[str, Any], int], str | None]:
    def extract(record: Mapping[str, Any], _index: int) -> str | None:
        value = record.get(key)
        return str(value) if value not in (None, "") else None

    return extract


def _indexed_identity(_record: Mapping[str, Any], index: int) -> str:
    return f"SN-{index + 1}"


def identity_extractors(
    identity_key: str | None,
) -> list[Callable[[Mapping[str, Any], int], str | None]]:
    """Return the identity extractor strategies in priority order."""
    if identity_key:
        return [_keyed_identity(identity_key)]
    return [_keyed_identity(key) for key in FALLBACK_IDENTITY_KEYS] + [
        _indexed_identity
    ]


def build_candidates(records: Sequence[Any]) -> list[DeviceCandidate]:
    """Turn structured inventory records into discovery candidates."""
    extractors = identity_extractors(find_identity_key(records))
    candidates: list[DeviceCandidate] = []
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            continue
        identity = next(
            (
                result
                for result in (extract(record, index) for extract in extractors)
                if result
            ),
            None,
        )
        candidates.append(
            DeviceCandidate(
                record=record,
                identity=identity,
                heartbeat_ms=extract_heartbeat(record),
            )
        )
    return candidates


def filter_fresh(
    candidates: Iterable[DeviceCandidate],
    window_ms: float,
    now_ms: float | None = None,
) -> list[DeviceCandidate]:
    """Return candidates seen within the window, most recent first.

    Candidates without a parseable heartbeat are never considered fresh.
    """
    now = _now_ms() if now_ms is None else now_ms
    fresh = [
        candidate
        for candidate in candidates
        if candidate.heartbeat_ms is not None
        and now - candidate.heartbeat_ms <= window_ms
    ]
    fresh.sort(key=lambda candidate: candidate.heartbeat_ms or 0, reverse=True)
    return fresh


def _identities(candidates: Iterable[DeviceCandidate]) -> list[str]:
    return [candidate.identity for candidate in candidates if candidate.identity]


def select_identities(
    data: Any, window_ms: float, now_ms: float | None = None
) -> tuple[list[str], str]:
    """Extract the identities to offer from a decoded inventory payload.

    Returns the identity list and its source. An empty list means the caller
    has to fall back to defaults.
    """
    records = unwrap_envelope(data)
    if not records:
        return [], SOURCE_FALLBACK

    if isinstance(records[0], str):
        return [item for item in records if isinstance(item, str) and item], SOURCE_INVENTORY

    candidates = build_candidates(records)
    fresh = _identities(filter_fresh(candidates, window_ms, now_ms))
    if fresh:
        return fresh, SOURCE_INVENTORY

    _LOGGER.debug(
        "No heartbeat within %.0fms among %d records, offering all of them",
        window_ms,
        len(candidates),
    )
    return _identities(candidates), SOURCE_UNFILTERED


class DeviceDiscoveryService:
    """Fetch the keypad inventory and rank the active devices.

    Discovery runs are serialized: a second call waits for the one in flight,
    so an older response can never overwrite a newer one.
    """

    def __init__(self, session: aiohttp.ClientSession) -> None:
        """Initialize the discovery service."""
        self._session = session
        self._lock = asyncio.Lock()

    @property
    def in_progress(self) -> bool:
        """Return True while a discovery request is outstanding."""
        return self._lock.locked()

    async def discover(
        self,
        inventory_url: str,
        freshness_window_ms: float,
        static_fallback: Sequence[str],
    ) -> DiscoveryResult:
        """Return the ordered identities to offer, never raising on failure."""
        async with self._lock:
            return await self._discover(
                inventory_url, freshness_window_ms, list(static_fallback)
            )

    async def _discover(
        self,
        inventory_url: str,
        freshness_window_ms: float,
        static_fallback: list[str],
    ) -> DiscoveryResult:
        try:
            data = await self._fetch(inventory_url)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as ex:
            reason = str(ex) or type(ex).__name__
            _LOGGER.warning(
                "Inventory request to %s failed: %s. Using default serials",
                inventory_url,
                reason,
            )
            return DiscoveryResult(
                identities=static_fallback,
                diagnostic=f"{LOAD_FAILED} {reason}",
                source=SOURCE_FALLBACK,
            )

        try:
            identities, source = select_identities(data, freshness_window_ms)
        except Exception as ex:
            _LOGGER.exception("Unexpected inventory payload from %s", inventory_url)
            return DiscoveryResult(
                identities=static_fallback,
                diagnostic=f"{LOAD_FAILED} {ex}",
                source=SOURCE_FALLBACK,
            )

        if not identities:
            _LOGGER.warning("Inventory at %s reported no devices", inventory_url)
            return DiscoveryResult(
                identities=static_fallback,
                diagnostic=NO_ACTIVE_DEVICES,
                source=SOURCE_FALLBACK,
            )

        _LOGGER.debug("Discovered %d device(s) (%s): %s", len(identities), source, identities)
        diagnostic = NO_FRESH_HEARTBEAT if source == SOURCE_UNFILTERED else ""
        return DiscoveryResult(identities=identities, diagnostic=diagnostic, source=source)

    async def _fetch(self, inventory_url: str) -> Any:
        """GET the inventory and decode its JSON body."""
        async with self._session.get(
            inventory_url, timeout=aiohttp.ClientTimeout(total=INVENTORY_TIMEOUT)
        ) as response:
            if response.status < 200 or response.status >= 300:
                raise aiohttp.ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=f"Request failed with status {response.status}",
                )
            return await response.json(content_type=None)

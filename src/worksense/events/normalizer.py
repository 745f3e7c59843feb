"""Decode wire payloads into ``PresenceEvent`` values.

Anything that does not carry an employee identity and a usable timestamp is
logged and dropped here, so the attendance engine never sees a partially
populated event.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from ..core.exceptions import DecodeError
from .model import PresenceEvent

logger = logging.getLogger(__name__)

UID_FIELDS = ("employeeUid", "uid")
TIMESTAMP_FIELDS = ("timestamp", "ts")
KIND_FIELDS = ("eventKind", "type")

# Epoch values above this are milliseconds (year 2001 in ms, year 33658 in s)
_EPOCH_MS_THRESHOLD = 1e12


def _first_present(data: dict, names: Iterable[str]) -> Any:
    for name in names:
        value = data.get(name)
        if value is not None and value != "":
            return value
    return None


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string or epoch seconds/milliseconds.

    Timezone-aware values are converted to local wall-clock time and returned
    naive, which is how attendance records are keyed.
    """
    if isinstance(value, bool):
        raise DecodeError(f"Unsupported timestamp: {value!r}")

    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > _EPOCH_MS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone().replace(tzinfo=None)
        except (OverflowError, OSError, ValueError) as exc:
            raise DecodeError(f"Timestamp out of range: {value!r}") from exc

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise DecodeError(f"Invalid timestamp: {value!r}") from exc
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed

    raise DecodeError(f"Unsupported timestamp: {value!r}")


def parse_presence_event(payload: bytes | str | dict) -> PresenceEvent:
    """Strict decoder; raises ``DecodeError`` on anything malformed."""
    if isinstance(payload, dict):
        data = payload
    else:
        try:
            text = payload.decode("utf-8") if isinstance(payload, (bytes, bytearray)) else str(payload)
            data = json.loads(text)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DecodeError(f"Payload is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise DecodeError("Payload must be a JSON object")

    uid = _optional_text(_first_present(data, UID_FIELDS))
    if not uid:
        raise DecodeError("Missing employee identity (employeeUid/uid)")

    raw_ts = _first_present(data, TIMESTAMP_FIELDS)
    if raw_ts is None:
        raise DecodeError("Missing timestamp (timestamp/ts)")

    return PresenceEvent(
        employee_uid=uid,
        timestamp=parse_timestamp(raw_ts),
        device_id=_optional_text(data.get("deviceId")),
        event_kind=_optional_text(_first_present(data, KIND_FIELDS)),
        employee_label=_optional_text(data.get("employee")),
        raw=dict(data),
    )


def decode_presence_event(payload: bytes | str | dict) -> Optional[PresenceEvent]:
    """Decode one payload, or log and drop it."""
    try:
        return parse_presence_event(payload)
    except DecodeError as exc:
        preview = payload if isinstance(payload, dict) else repr(payload)[:200]
        logger.warning("Dropping presence payload: %s (payload=%s)", exc, preview)
        return None


def decode_presence_events(payloads: Iterable[bytes | str | dict]) -> list[PresenceEvent]:
    events = []
    for payload in payloads:
        event = decode_presence_event(payload)
        if event is not None:
            events.append(event)
    return events

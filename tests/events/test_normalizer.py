import json
import logging
from datetime import datetime, timezone

import pytest

from worksense.core.exceptions import DecodeError
from worksense.events.normalizer import (
    decode_presence_event,
    decode_presence_events,
    parse_presence_event,
    parse_timestamp,
)


def test_decodes_device_payload_with_short_field_names():
    payload = json.dumps(
        {"deviceId": "esp32c3-01", "ts": "2025-03-03T09:05:00", "type": "scan", "employee": "Ana Silva", "uid": "A1B2C3D4"}
    ).encode()

    event = decode_presence_event(payload)

    assert event.employee_uid == "A1B2C3D4"
    assert event.timestamp == datetime(2025, 3, 3, 9, 5)
    assert event.device_id == "esp32c3-01"
    assert event.event_kind == "scan"
    assert event.employee_label == "Ana Silva"


def test_long_field_names_take_precedence():
    event = parse_presence_event(
        {"employeeUid": "UID-1", "uid": "UID-2", "timestamp": "2025-03-03T09:00:00", "ts": "2025-03-03T10:00:00"}
    )

    assert event.employee_uid == "UID-1"
    assert event.timestamp == datetime(2025, 3, 3, 9, 0)


def test_epoch_seconds_and_milliseconds_agree():
    seconds = 1741000000
    assert parse_timestamp(seconds) == parse_timestamp(seconds * 1000)


def test_aware_timestamp_is_converted_to_local_wall_clock():
    utc = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)
    expected = utc.astimezone().replace(tzinfo=None)

    assert parse_timestamp("2025-03-03T09:00:00Z") == expected


@pytest.mark.parametrize(
    "payload",
    [
        b"not json",
        b"[1, 2, 3]",
        b'{"ts": "2025-03-03T09:00:00"}',
        b'{"uid": "   ", "ts": "2025-03-03T09:00:00"}',
        b'{"uid": "A1"}',
        b'{"uid": "A1", "ts": "yesterday"}',
        b'{"uid": "A1", "ts": true}',
        b"\xff\xfe",
    ],
)
def test_malformed_payloads_are_dropped_with_a_warning(payload, caplog):
    with caplog.at_level(logging.WARNING, logger="worksense.events.normalizer"):
        assert decode_presence_event(payload) is None

    assert "Dropping presence payload" in caplog.text


def test_strict_parser_raises_decode_error():
    with pytest.raises(DecodeError):
        parse_presence_event(b'{"uid": "A1"}')


def test_batch_decode_keeps_only_valid_events():
    events = decode_presence_events(
        [
            b'{"uid": "A1", "ts": "2025-03-03T09:00:00"}',
            b"garbage",
            {"employeeUid": "B2", "timestamp": "2025-03-03T09:01:00"},
        ]
    )

    assert [e.employee_uid for e in events] == ["A1", "B2"]

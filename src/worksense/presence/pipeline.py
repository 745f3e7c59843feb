from __future__ import annotations

import json
import logging
import threading
from collections import deque
from typing import Callable, Iterable, Optional

from ..attendance.model import EventOutcome
from ..attendance.service import AttendanceService
from ..broker.manager import BrokerConnectionManager
from ..core import constants
from ..events.normalizer import decode_presence_event, decode_presence_events, parse_presence_event

logger = logging.getLogger(__name__)


class PresencePipeline:
    """Broker topic -> normalizer -> attendance engine.

    Keeps the most recent outcomes for the dashboard feed and, when an ack
    topic is configured, publishes each acknowledgement back to the broker.
    """

    def __init__(
        self,
        broker: BrokerConnectionManager,
        attendance: AttendanceService,
        *,
        topic: str = constants.DEFAULT_PRESENCE_TOPIC,
        ack_topic: Optional[str] = None,
        recent_limit: int = constants.DEFAULT_RECENT_EVENTS_LIMIT,
    ):
        self._broker = broker
        self._attendance = attendance
        self._topic = topic
        self._ack_topic = ack_topic
        self._lock = threading.Lock()
        self._recent: deque[EventOutcome] = deque(maxlen=max(1, int(recent_limit)))
        self._dispose: Optional[Callable[[], bool]] = None

    @property
    def topic(self) -> str:
        return self._topic

    def start(self) -> None:
        if self._dispose is None:
            self._dispose = self._broker.subscribe(self._topic, self.ingest)
            logger.info("Presence pipeline listening on %s", self._topic)

    def stop(self) -> None:
        dispose, self._dispose = self._dispose, None
        if dispose is not None:
            dispose()

    def ingest(self, topic: str, payload: bytes) -> Optional[EventOutcome]:
        """Broker callback: decode one payload and apply it, or drop it."""
        event = decode_presence_event(payload)
        if event is None:
            return None
        return self._record(self._attendance.apply_event(event))

    def ingest_batch(self, payloads: Iterable[bytes | str | dict]) -> list[EventOutcome]:
        """Apply buffered payloads in timestamp order."""
        outcomes = self._attendance.apply_events(decode_presence_events(payloads))
        for outcome in outcomes:
            self._record(outcome)
        return outcomes

    def process_event(self, payload: bytes | str | dict) -> EventOutcome:
        """HTTP entry point; malformed payloads raise ``DecodeError``."""
        return self._record(self._attendance.apply_event(parse_presence_event(payload)))

    def recent_outcomes(self) -> list[EventOutcome]:
        with self._lock:
            return list(reversed(self._recent))

    def _record(self, outcome: EventOutcome) -> EventOutcome:
        with self._lock:
            self._recent.append(outcome)
        if self._ack_topic:
            self._broker.publish(self._ack_topic, json.dumps(outcome.as_ack()))
        return outcome

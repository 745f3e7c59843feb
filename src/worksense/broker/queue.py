from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class QueuedMessage:
    topic: str
    payload: bytes
    queued_at: datetime


class OfflineQueue:
    """Fixed-capacity ring buffer; the oldest entry is dropped when full."""

    def __init__(self, capacity: int):
        if int(capacity) < 1:
            raise ValidationError("Queue capacity must be at least 1")
        self._items: deque[QueuedMessage] = deque(maxlen=int(capacity))
        self.dropped = 0

    @property
    def capacity(self) -> int:
        return int(self._items.maxlen or 0)

    def put(self, topic: str, payload: bytes, *, now: Optional[datetime] = None) -> None:
        if len(self._items) == self.capacity:
            self.dropped += 1
        self._items.append(QueuedMessage(topic=topic, payload=payload, queued_at=now or datetime.now()))

    def drain(self) -> list[QueuedMessage]:
        items = list(self._items)
        self._items.clear()
        return items

    def resize(self, capacity: int) -> None:
        if int(capacity) < 1:
            raise ValidationError("Queue capacity must be at least 1")
        self._items = deque(self._items, maxlen=int(capacity))

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

"""Direction inference for presence events.

Devices do not always say whether a scan is an arrival or a departure, so the
direction is read off the record the event lands on:

=====================  ===========================  ==========================
record state           event timestamp              transition
=====================  ===========================  ==========================
any                    equal to stored in/out       DUPLICATE (no change)
no check-in            any                          CHECK_IN
check-in only          at or after check-in         CHECK_OUT
check-in only          before check-in              CHECK_IN, old in -> out
complete               after check-out              CHECK_OUT (correction)
complete               before check-in              CHECK_IN (correction)
complete               between in and out           IGNORED
=====================  ===========================  ==========================

Applying the same event twice is a no-op, and because the rules compare
timestamps rather than arrival order, any arrival order of the same scans
converges on check-in = earliest scan, check-out = latest scan.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Direction
from .model import AttendanceRecord


@dataclass(frozen=True)
class Transition:
    direction: Direction
    check_in: Optional[datetime]
    check_out: Optional[datetime]
    correction: bool = False

    @property
    def changed(self) -> bool:
        return self.direction in (Direction.CHECK_IN, Direction.CHECK_OUT)


def next_transition(record: Optional[AttendanceRecord], at: datetime) -> Transition:
    check_in = record.check_in if record else None
    check_out = record.check_out if record else None

    if at == check_in or at == check_out:
        return Transition(Direction.DUPLICATE, check_in, check_out)

    if check_in is None:
        return Transition(Direction.CHECK_IN, at, check_out)

    if check_out is None:
        if at >= check_in:
            return Transition(Direction.CHECK_OUT, check_in, at)
        return Transition(Direction.CHECK_IN, at, check_in)

    if at > check_out:
        return Transition(Direction.CHECK_OUT, check_in, at, correction=True)
    if at < check_in:
        return Transition(Direction.CHECK_IN, at, check_out, correction=True)
    return Transition(Direction.IGNORED, check_in, check_out)

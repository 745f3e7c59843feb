from __future__ import annotations

from typing import Optional

from ...core.enums import DailyStatus
from ..model import AttendanceRecord, WorkdayWindow
from .base import AttendanceStrategy, StatusDecision


class NormalStrategy(AttendanceStrategy):
    """On-time check-in; provisional while the day is still open."""

    def decide(self, record: Optional[AttendanceRecord], window: WorkdayWindow) -> StatusDecision:
        if record is not None and record.is_open:
            return StatusDecision(status=DailyStatus.ON_TIME, note="in progress", provisional=True)
        return StatusDecision(status=DailyStatus.ON_TIME)

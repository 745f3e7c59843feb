from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import DailyStatus
from ..model import AttendanceRecord, WorkdayWindow
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Check-in after start + grace. Wins over overtime."""

    def decide(self, record: Optional[AttendanceRecord], window: WorkdayWindow) -> StatusDecision:
        start = datetime.combine(record.work_date, window.start)
        late_by = int((record.check_in - start).total_seconds() // 60)
        return StatusDecision(
            status=DailyStatus.LATE,
            note=f"{late_by} min after start",
            provisional=record.check_out is None,
        )

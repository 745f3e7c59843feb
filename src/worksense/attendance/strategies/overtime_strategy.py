from __future__ import annotations

from typing import Optional

from ...core.enums import DailyStatus
from ..model import AttendanceRecord, WorkdayWindow
from .base import AttendanceStrategy, StatusDecision


class OvertimeStrategy(AttendanceStrategy):
    """On-time check-in, check-out after the end of the workday."""

    def decide(self, record: Optional[AttendanceRecord], window: WorkdayWindow) -> StatusDecision:
        extra = int((record.check_out - window.ends_at(record.work_date)).total_seconds() // 60)
        return StatusDecision(status=DailyStatus.OVERTIME, note=f"{extra} min past end")

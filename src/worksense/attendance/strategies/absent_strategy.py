from __future__ import annotations

from typing import Optional

from ...core.enums import DailyStatus
from ..model import AttendanceRecord, WorkdayWindow
from .base import AttendanceStrategy, StatusDecision


class AbsentStrategy(AttendanceStrategy):
    """No check-in and no check-out."""

    def decide(self, record: Optional[AttendanceRecord], window: WorkdayWindow) -> StatusDecision:
        return StatusDecision(status=DailyStatus.ABSENT)

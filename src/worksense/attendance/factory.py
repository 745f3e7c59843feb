from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .model import AttendanceRecord, WorkdayWindow
from .strategies.absent_strategy import AbsentStrategy
from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy
from .strategies.overtime_strategy import OvertimeStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_record(self, record: Optional[AttendanceRecord], window: WorkdayWindow) -> AttendanceStrategy:
        if record is None or record.is_empty:
            return AbsentStrategy()

        if record.check_in is not None and record.check_in > window.late_after(record.work_date):
            return LateStrategy()

        if record.is_complete and record.check_out > window.ends_at(record.work_date):
            return OvertimeStrategy()
        return NormalStrategy()

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class MonthlyAggregate:
    employee_id: str
    month: str
    worked_minutes: int
    overtime_minutes: int
    days_present: int

    @property
    def worked_hours(self) -> float:
        return self.worked_minutes / 60

    @property
    def overtime_hours(self) -> float:
        return self.overtime_minutes / 60

    def as_dict(self) -> dict:
        return {
            "employeeId": self.employee_id,
            "month": self.month,
            "workedMinutes": self.worked_minutes,
            "overtimeMinutes": self.overtime_minutes,
            "workedHours": round(self.worked_hours, 2),
            "overtimeHours": round(self.overtime_hours, 2),
            "daysPresent": self.days_present,
        }


@dataclass(frozen=True)
class WeeklyAggregate:
    employee_id: str
    week_start: date
    worked_minutes: int
    days_present: int


@dataclass(frozen=True)
class ReportData:
    rows: list[dict]
    summary: list[dict]

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from ..core.enums import AnomalyType, DailyStatus, Direction


@dataclass(frozen=True)
class WorkdayWindow:
    """Configured working day: start, end and the late-arrival grace period."""

    start: time
    end: time
    grace_minutes: int = 0

    def late_after(self, day: date) -> datetime:
        return datetime.combine(day, self.start) + timedelta(minutes=int(self.grace_minutes))

    def ends_at(self, day: date) -> datetime:
        return datetime.combine(day, self.end)


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: check-in/check-out state of one employee on one day."""

    employee_id: str
    work_date: date
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    employee_uid: Optional[str] = None
    device_id: Optional[str] = None
    tap_count: int = 0
    last_tap_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.check_in is None and self.check_out is None

    @property
    def is_open(self) -> bool:
        return self.check_in is not None and self.check_out is None

    @property
    def is_complete(self) -> bool:
        return self.check_in is not None and self.check_out is not None


def worked_minutes(record: Optional[AttendanceRecord]) -> int:
    """Minutes between check-in and check-out; 0 when open or reversed."""
    if record is None or not record.is_complete:
        return 0
    minutes = int((record.check_out - record.check_in).total_seconds() // 60)
    return max(minutes, 0)


@dataclass(frozen=True)
class EventOutcome:
    """Result of applying one presence event, returned as the acknowledgement."""

    employee_id: str
    employee_uid: str
    employee_name: Optional[str]
    work_date: date
    timestamp: datetime
    action: Direction
    record: AttendanceRecord

    def as_ack(self) -> dict:
        return {
            "employeeId": self.employee_id,
            "employeeUid": self.employee_uid,
            "employee": self.employee_name,
            "timestamp": self.timestamp.isoformat(),
            "date": self.work_date.strftime("%Y-%m-%d"),
            "time": self.timestamp.strftime("%H:%M:%S"),
            "action": self.action.value,
            "inferredDirection": self.action.value,
        }


@dataclass(frozen=True)
class ClearResult:
    employee_id: str
    work_date: date
    cleared: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class DailySummary:
    work_date: date
    total_employees: int
    on_time: int
    late: int
    overtime: int
    absent: int

    @classmethod
    def from_statuses(cls, work_date: date, statuses: list[DailyStatus]) -> "DailySummary":
        return cls(
            work_date=work_date,
            total_employees=len(statuses),
            on_time=statuses.count(DailyStatus.ON_TIME),
            late=statuses.count(DailyStatus.LATE),
            overtime=statuses.count(DailyStatus.OVERTIME),
            absent=statuses.count(DailyStatus.ABSENT),
        )


@dataclass(frozen=True)
class PresenceSummary:
    work_date: date
    total: int
    checked_in: int
    checked_out: int
    pending_checkout: int


@dataclass(frozen=True)
class Anomaly:
    type: AnomalyType
    employee_id: str
    work_date: date
    detail: str

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Optional

from ..attendance.model import AttendanceRecord, worked_minutes
from ..attendance.service import AttendanceService
from ..common.datetime_utils import format_minutes, month_bounds, month_key_for, week_start_for
from ..core import constants
from ..core.exceptions import ValidationError
from .model import MonthlyAggregate, ReportData, WeeklyAggregate


class AggregationService:
    """Weekly and monthly worked-time totals over the attendance records."""

    def __init__(
        self,
        attendance: AttendanceService,
        *,
        workdays_per_month: int = constants.DEFAULT_WORKDAYS_PER_MONTH,
        hours_per_day: int = constants.DEFAULT_HOURS_PER_DAY,
    ):
        self._attendance = attendance
        self._standard_minutes = int(workdays_per_month) * int(hours_per_day) * 60

    @property
    def standard_minutes_per_month(self) -> int:
        return self._standard_minutes

    def aggregate(
        self,
        employee_id: str,
        month_key: str,
        standard_minutes_per_month: Optional[int] = None,
    ) -> MonthlyAggregate:
        start, end = month_bounds(month_key)
        standard = self._standard_minutes if standard_minutes_per_month is None else int(standard_minutes_per_month)
        if standard < 0:
            raise ValidationError("standard_minutes_per_month must not be negative")

        records = self._attendance.records_between(employee_id, start, end)
        total = sum(worked_minutes(r) for r in records)
        return MonthlyAggregate(
            employee_id=str(employee_id),
            month=month_key_for(start),
            worked_minutes=total,
            overtime_minutes=max(0, total - standard),
            days_present=_days_present(records),
        )

    def weekly(self, employee_id: str, week_start: date) -> WeeklyAggregate:
        monday = week_start_for(week_start)
        records = self._attendance.records_between(employee_id, monday, monday + timedelta(days=6))
        return WeeklyAggregate(
            employee_id=str(employee_id),
            week_start=monday,
            worked_minutes=sum(worked_minutes(r) for r in records),
            days_present=_days_present(records),
        )

    def rolling_weekly(
        self,
        employee_id: str,
        end: date,
        weeks: int = constants.DEFAULT_ROLLING_WEEKS,
    ) -> list[WeeklyAggregate]:
        """Oldest first, ending with the week that contains ``end``."""
        if weeks < 1:
            raise ValidationError("weeks must be at least 1")
        last = week_start_for(end)
        return [self.weekly(employee_id, last - timedelta(weeks=offset)) for offset in range(weeks - 1, -1, -1)]

    def build_month_report(self, month_key: str, employee_ids: Iterable[str]) -> ReportData:
        start, end = month_bounds(month_key)

        summary_map: dict[str, dict] = {}
        out_rows: list[dict] = []

        for employee_id in dict.fromkeys(str(e) for e in employee_ids):
            s = {"employee_id": employee_id, "total_minutes": 0, "days_present": 0}
            summary_map[employee_id] = s

            for r in self._attendance.records_between(employee_id, start, end):
                if r.check_in is None:
                    continue
                minutes = worked_minutes(r)
                decision = self._attendance.classify(r)
                out_rows.append(
                    {
                        "employee_id": employee_id,
                        "work_date": r.work_date.strftime("%Y-%m-%d"),
                        "check_in": r.check_in.strftime("%H:%M"),
                        "check_out": r.check_out.strftime("%H:%M") if r.check_out else "-",
                        "worked_hours": format_minutes(minutes),
                        "status": decision.status.value,
                        "note": decision.note or "",
                    }
                )
                s["total_minutes"] += minutes
                s["days_present"] += 1

        summary = []
        for s in summary_map.values():
            total_minutes = int(s["total_minutes"])
            summary.append(
                {
                    "employee_id": s["employee_id"],
                    "days_present": s["days_present"],
                    "total_minutes": total_minutes,
                    "total_hours": format_minutes(total_minutes),
                    "overtime_hours": format_minutes(max(0, total_minutes - self._standard_minutes)),
                }
            )

        summary.sort(key=lambda x: x["total_minutes"], reverse=True)
        return ReportData(rows=out_rows, summary=summary)


def _days_present(records: Iterable[AttendanceRecord]) -> int:
    return sum(1 for r in records if r.check_in is not None)

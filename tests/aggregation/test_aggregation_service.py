from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytest

from worksense.aggregation.service import AggregationService
from worksense.attendance.model import WorkdayWindow
from worksense.attendance.repository import InMemoryAttendanceRepository
from worksense.attendance.service import AttendanceService
from worksense.core.exceptions import ValidationError
from worksense.employees.repository import InMemoryEmployeeDirectory

WINDOW = WorkdayWindow(start=time(9, 0), end=time(17, 0), grace_minutes=15)


def make_services():
    attendance = AttendanceService(InMemoryAttendanceRepository(), InMemoryEmployeeDirectory(), window=WINDOW)
    return attendance, AggregationService(attendance, workdays_per_month=22, hours_per_day=8)


def work(attendance, employee_id, day, start=(9, 0), end=(17, 0)):
    attendance.override_record(
        employee_id,
        day,
        check_in=datetime.combine(day, time(*start)),
        check_out=datetime.combine(day, time(*end)) if end else None,
    )


def test_overtime_is_minutes_over_the_standard_month():
    attendance, aggregation = make_services()
    days = [date(2025, 3, 1) + timedelta(days=i) for i in range(23)]
    for day in days[:22]:
        work(attendance, "1", day)
    work(attendance, "1", days[22], end=(10, 0))

    agg = aggregation.aggregate("1", "2025-03")

    assert aggregation.standard_minutes_per_month == 10560
    assert agg.worked_minutes == 10620
    assert agg.overtime_minutes == 60
    assert agg.days_present == 23


def test_no_overtime_below_the_standard():
    attendance, aggregation = make_services()
    work(attendance, "1", date(2025, 3, 3))

    agg = aggregation.aggregate("1", "2025-03")

    assert agg.worked_minutes == 480
    assert agg.overtime_minutes == 0


def test_explicit_standard_overrides_configuration():
    attendance, aggregation = make_services()
    work(attendance, "1", date(2025, 3, 3))

    assert aggregation.aggregate("1", "2025-03", standard_minutes_per_month=420).overtime_minutes == 60


def test_records_outside_the_month_are_ignored():
    attendance, aggregation = make_services()
    work(attendance, "1", date(2025, 2, 28))
    work(attendance, "1", date(2025, 3, 31))
    work(attendance, "1", date(2025, 4, 1))

    assert aggregation.aggregate("1", "2025-03").worked_minutes == 480


def test_open_and_reversed_days_add_nothing():
    attendance, aggregation = make_services()
    work(attendance, "1", date(2025, 3, 3), end=None)
    work(attendance, "1", date(2025, 3, 4), start=(10, 0), end=(9, 0))

    agg = aggregation.aggregate("1", "2025-03")
    assert agg.worked_minutes == 0
    assert agg.days_present == 2


def test_bad_month_key_is_rejected():
    _, aggregation = make_services()
    with pytest.raises(ValidationError):
        aggregation.aggregate("1", "March 2025")


def test_weekly_starts_on_monday():
    attendance, aggregation = make_services()
    work(attendance, "1", date(2025, 3, 3))  # Monday
    work(attendance, "1", date(2025, 3, 9))  # Sunday
    work(attendance, "1", date(2025, 3, 10))  # next Monday

    week = aggregation.weekly("1", date(2025, 3, 5))

    assert week.week_start == date(2025, 3, 3)
    assert week.worked_minutes == 960
    assert week.days_present == 2


def test_rolling_weekly_returns_oldest_first():
    attendance, aggregation = make_services()
    work(attendance, "1", date(2025, 3, 10))

    weeks = aggregation.rolling_weekly("1", date(2025, 3, 12))

    assert len(weeks) == 12
    assert weeks[-1].week_start == date(2025, 3, 10)
    assert weeks[0].week_start == date(2025, 3, 10) - timedelta(weeks=11)
    assert [w.worked_minutes for w in weeks] == [0] * 11 + [480]


def test_month_report_rows_and_summary():
    attendance, aggregation = make_services()
    work(attendance, "1", date(2025, 3, 3), start=(8, 30), end=(17, 30))
    work(attendance, "1", date(2025, 3, 4), start=(9, 40), end=None)
    work(attendance, "2", date(2025, 3, 3), end=(16, 0))

    report = aggregation.build_month_report("2025-03", ["1", "2", "3"])

    assert [r["worked_hours"] for r in report.rows] == ["09:00", "00:00", "07:00"]
    assert report.rows[1]["check_out"] == "-"
    assert report.rows[1]["status"] == "LATE"
    assert [s["employee_id"] for s in report.summary] == ["1", "2", "3"]
    assert report.summary[0]["total_hours"] == "09:00"
    assert report.summary[2]["days_present"] == 0

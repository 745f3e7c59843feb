from datetime import date, datetime, time

from worksense.attendance.factory import AttendanceStrategyFactory
from worksense.attendance.model import AttendanceRecord, WorkdayWindow, worked_minutes
from worksense.attendance.strategies.absent_strategy import AbsentStrategy
from worksense.attendance.strategies.late_strategy import LateStrategy
from worksense.attendance.strategies.normal_strategy import NormalStrategy
from worksense.attendance.strategies.overtime_strategy import OvertimeStrategy
from worksense.core.enums import DailyStatus

WINDOW = WorkdayWindow(start=time(9, 0), end=time(17, 0), grace_minutes=15)
DAY = date(2025, 1, 6)


def at(h, m=0):
    return datetime(2025, 1, 6, h, m)


def decide(record):
    strategy = AttendanceStrategyFactory().for_record(record, WINDOW)
    return strategy, strategy.decide(record, WINDOW)


def test_on_time_checkin_with_late_checkout_is_overtime():
    strategy, decision = decide(AttendanceRecord("E1", DAY, check_in=at(9, 10), check_out=at(17, 30)))

    assert isinstance(strategy, OvertimeStrategy)
    assert decision.status == DailyStatus.OVERTIME
    assert decision.note == "30 min past end"


def test_open_record_after_grace_is_late():
    strategy, decision = decide(AttendanceRecord("E1", DAY, check_in=at(9, 20)))

    assert isinstance(strategy, LateStrategy)
    assert decision.status == DailyStatus.LATE
    assert decision.provisional is True


def test_late_wins_over_overtime():
    _, decision = decide(AttendanceRecord("E1", DAY, check_in=at(9, 30), check_out=at(19, 0)))
    assert decision.status == DailyStatus.LATE
    assert decision.provisional is False


def test_checkin_exactly_at_grace_boundary_is_on_time():
    strategy, decision = decide(AttendanceRecord("E1", DAY, check_in=at(9, 15)))

    assert isinstance(strategy, NormalStrategy)
    assert decision.status == DailyStatus.ON_TIME
    assert decision.provisional is True


def test_no_record_is_absent():
    strategy, decision = decide(None)

    assert isinstance(strategy, AbsentStrategy)
    assert decision.status == DailyStatus.ABSENT


def test_cleared_record_is_absent():
    _, decision = decide(AttendanceRecord("E1", DAY))
    assert decision.status == DailyStatus.ABSENT


def test_reversed_times_count_zero_minutes():
    record = AttendanceRecord("E1", DAY, check_in=at(10), check_out=at(9))
    assert worked_minutes(record) == 0


def test_open_record_counts_zero_minutes():
    assert worked_minutes(AttendanceRecord("E1", DAY, check_in=at(9))) == 0
    assert worked_minutes(None) == 0

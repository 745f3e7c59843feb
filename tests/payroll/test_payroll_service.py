from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest

from worksense.aggregation.service import AggregationService
from worksense.attendance.model import WorkdayWindow
from worksense.attendance.repository import InMemoryAttendanceRepository
from worksense.attendance.service import AttendanceService
from worksense.core.enums import PayrollState
from worksense.core.exceptions import StoreUnavailableError, ValidationError
from worksense.employees.model import Employee
from worksense.employees.repository import InMemoryEmployeeDirectory
from worksense.payroll.history import PayslipHistory
from worksense.payroll.service import PayrollService
from worksense.payroll.status_store import LocalStatusCache, PayrollStatusStore

from conftest import OutageDirectory

WINDOW = WorkdayWindow(start=time(9, 0), end=time(17, 0), grace_minutes=15)


class FakeStatusRepo:
    def __init__(self):
        self.rows: dict[tuple[str, str], PayrollState] = {}
        self.down = False

    def _check(self):
        if self.down:
            raise StoreUnavailableError("connection refused")

    def get(self, employee_id, month):
        self._check()
        return self.rows.get((employee_id, month))

    def upsert(self, employee_id, month, state):
        self._check()
        self.rows[(employee_id, month)] = state

    def list_for_month(self, month):
        self._check()
        return {emp: s for (emp, m), s in self.rows.items() if m == month}


def build(*, status_store=None, history=None, directory=None):
    if directory is None:
        directory = InMemoryEmployeeDirectory(
            [
                Employee("1", "Ana Silva", rfid_uid="A1B2C3D4", salary=Decimal("100000")),
                Employee("2", "Ben Perera", rfid_uid="11223344", salary=Decimal("80000")),
            ]
        )
    attendance = AttendanceService(InMemoryAttendanceRepository(), directory, window=WINDOW)
    aggregation = AggregationService(attendance, workdays_per_month=22, hours_per_day=8)
    payroll = PayrollService(aggregation, directory, status_store=status_store, history=history)
    return attendance, payroll


def log_month(attendance, employee_id, extra_minutes=0):
    """22 full days in March 2025 plus one day of ``extra_minutes``."""
    day = date(2025, 3, 1)
    for i in range(22):
        d = day + timedelta(days=i)
        attendance.override_record(
            employee_id, d, check_in=datetime.combine(d, time(9)), check_out=datetime.combine(d, time(17))
        )
    if extra_minutes:
        d = day + timedelta(days=22)
        start = datetime.combine(d, time(9))
        attendance.override_record(employee_id, d, check_in=start, check_out=start + timedelta(minutes=extra_minutes))


def test_compute_pay_end_to_end():
    attendance, payroll = build()
    log_month(attendance, "1", extra_minutes=180)
    payroll.set_adjustment("1", allowance="5000", bonus="2000", deduction="1000")

    pay = payroll.compute_pay("1", "2025-03")

    assert pay.base == Decimal("100000.00")
    assert pay.worked_hours == Decimal("179.00")
    assert pay.overtime_hours == Decimal("3.00")
    assert pay.normal_hourly_rate == Decimal("568.18")
    assert pay.overtime_hourly_rate == Decimal("852.27")
    assert pay.overtime_pay == Decimal("2556.82")
    assert pay.gross == Decimal("109556.82")
    assert pay.net == Decimal("108556.82")


def test_month_scoped_adjustment_wins():
    _, payroll = build()
    payroll.set_adjustment("1", bonus="2000")
    payroll.set_adjustment("1", bonus="500", month="2025-03")

    assert payroll.compute_pay("1", "2025-03").bonus == Decimal("500.00")
    assert payroll.compute_pay("1", "2025-04").bonus == Decimal("2000.00")


def test_base_pay_override_and_unknown_employee():
    _, payroll = build()
    payroll.set_base_pay("2", "90000")
    with pytest.raises(ValidationError, match="base is required"):
        payroll.set_base_pay("2", None)

    assert payroll.compute_pay("2", "2025-03").base == Decimal("90000.00")
    assert payroll.compute_pay("404", "2025-03").base == Decimal("0.00")


def test_negative_amounts_are_rejected():
    _, payroll = build()
    with pytest.raises(ValidationError):
        payroll.set_adjustment("1", deduction="-10")
    with pytest.raises(ValidationError):
        payroll.set_base_pay("1", "abc")


def test_generate_payslip_appends_every_time():
    _, payroll = build()

    first = payroll.generate_payslip("1", "2025-03")
    second = payroll.generate_payslip("1", "2025-03")

    history = payroll.payslip_history("1")
    assert history == [first, second]
    assert first.net == Decimal("100000.00")

    assert payroll.clear_payslip_history() == 2
    assert payroll.payslip_history() == []


def test_payslip_history_survives_restart(tmp_path):
    path = tmp_path / "history.json"
    _, payroll = build(history=PayslipHistory(path))
    snapshot = payroll.generate_payslip("2", "2025-03")

    reloaded = PayslipHistory(path)

    assert reloaded.list() == [snapshot]


def test_status_defaults_to_pending_and_is_last_write_wins():
    _, payroll = build()

    assert payroll.get_payroll_status("1", "2025-03").status.state == PayrollState.PENDING

    payroll.set_payroll_status("1", "2025-03", "Paid")
    payroll.set_payroll_status("1", "2025-03", "pending")
    payroll.set_payroll_status("1", "2025-03", PayrollState.PAID)

    assert payroll.get_payroll_status("1", "2025-03").status.state == PayrollState.PAID


def test_unknown_status_is_rejected():
    _, payroll = build()
    with pytest.raises(ValidationError):
        payroll.set_payroll_status("1", "2025-03", "Settled")


def test_remote_outage_degrades_to_local_cache(caplog):
    remote = FakeStatusRepo()
    _, payroll = build(status_store=PayrollStatusStore(LocalStatusCache(), remote=remote))

    ok = payroll.set_payroll_status("1", "2025-03", "Paid")
    assert ok.degraded is False
    assert remote.rows[("1", "2025-03")] == PayrollState.PAID

    remote.down = True
    with caplog.at_level(logging.WARNING, logger="worksense.payroll.status_store"):
        read = payroll.get_payroll_status("1", "2025-03")
        write = payroll.set_payroll_status("2", "2025-03", "Paid")
        listing = payroll.statuses_for_month("2025-03")

    assert read.degraded is True
    assert read.status.state == PayrollState.PAID
    assert write.degraded is True
    assert listing.degraded is True
    assert listing.statuses == {"1": PayrollState.PAID, "2": PayrollState.PAID}
    assert "degraded" in caplog.text

    # computation keeps working while the store is down
    assert payroll.compute_pay("1", "2025-03").net == Decimal("100000.00")


def test_local_cache_persists_to_disk(tmp_path):
    path = tmp_path / "cache.json"
    store = PayrollStatusStore(LocalStatusCache(path))
    store.set("1", "2025-03", PayrollState.PAID)

    reloaded = PayrollStatusStore(LocalStatusCache(path))

    assert reloaded.get("1", "2025-03").status.state == PayrollState.PAID


def test_month_summary_totals():
    attendance, payroll = build()
    log_month(attendance, "1", extra_minutes=180)
    payroll.set_adjustment("1", allowance="5000", bonus="2000", deduction="1000")
    payroll.set_payroll_status("2", "2025-03", "Paid")

    summary = payroll.month_summary("2025-03")

    assert summary.employees == 2
    assert summary.gross == Decimal("189556.82")
    assert summary.deductions == Decimal("1000.00")
    assert summary.net == Decimal("188556.82")
    assert (summary.paid, summary.pending) == (1, 1)


def test_directory_outage_degrades_pay_computation(caplog):
    directory = OutageDirectory([Employee("1", "Ana Silva", rfid_uid="A1B2C3D4", salary=Decimal("100000"))])
    attendance, payroll = build(directory=directory)
    log_month(attendance, "1", extra_minutes=180)
    assert payroll.compute_pay("1", "2025-03").degraded is False

    directory.down = True
    pay = payroll.compute_pay("1", "2025-03")
    never_seen = payroll.compute_pay("2", "2025-03")

    assert pay.degraded is True
    assert pay.base == Decimal("100000.00")
    assert pay.gross == Decimal("102556.82")
    assert never_seen.degraded is True
    assert never_seen.base == Decimal("0.00")
    assert pay.as_dict()["degraded"] is True
    assert "degraded" in caplog.text

    summary = payroll.month_summary("2025-03")
    assert summary.degraded is True
    assert summary.employees == 1
    assert summary.net == Decimal("102556.82")

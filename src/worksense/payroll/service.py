from __future__ import annotations

import logging
import threading
from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Optional

from ..aggregation.service import AggregationService
from ..common.datetime_utils import month_bounds, month_key_for, now_local
from ..common.validators import require_amount, require_non_empty
from ..core.enums import PayrollState
from ..core.exceptions import StoreUnavailableError, ValidationError
from ..employees.repository import EmployeeDirectory
from .adjustments import AdjustmentBook
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .history import PayslipHistory
from .model import ZERO, MonthStatuses, PayComputation, PayrollAdjustment, PayrollSummary, PayslipSnapshot, StatusResult
from .status_store import LocalStatusCache, PayrollStatusStore

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = Decimal(60)


def normalize_month(month: str) -> str:
    """Validate a YYYY-MM key and return it zero-padded."""
    first, _ = month_bounds(month)
    return month_key_for(first)


def parse_state(value) -> PayrollState:
    if isinstance(value, PayrollState):
        return value
    text = str(value or "").strip().lower()
    for state in PayrollState:
        if state.value.lower() == text:
            return state
    raise ValidationError('Status must be either "Pending" or "Paid"')


class PayrollService:
    def __init__(
        self,
        aggregation: AggregationService,
        employees: EmployeeDirectory,
        *,
        calculator: Optional[PayrollCalculator] = None,
        adjustments: Optional[AdjustmentBook] = None,
        history: Optional[PayslipHistory] = None,
        status_store: Optional[PayrollStatusStore] = None,
    ):
        self._aggregation = aggregation
        self._employees = employees
        self._calculator = calculator or StandardPayrollCalculator()
        self._adjustments = adjustments or AdjustmentBook()
        self._history = history or PayslipHistory()
        self._status_store = status_store or PayrollStatusStore(LocalStatusCache())
        self._base_lock = threading.Lock()
        self._base_pay: dict[str, Decimal] = {}
        self._salaries: dict[str, Decimal] = {}

    # ----- inputs -----

    def set_base_pay(self, employee_id: str, amount) -> Decimal:
        employee_id = require_non_empty(employee_id, "employee_id")
        if amount is None or (isinstance(amount, str) and not amount.strip()):
            raise ValidationError("base is required")
        value = require_amount(amount, "base")
        with self._base_lock:
            self._base_pay[employee_id] = value
        return value

    def base_pay_for(self, employee_id: str) -> Decimal:
        return self._resolve_base(employee_id)[0]

    def _resolve_base(self, employee_id: str) -> tuple[Decimal, bool]:
        """Override, else the directory salary, else 0.

        With the directory unreachable the last salary seen for the employee
        is used and the result is flagged degraded.
        """
        employee_id = str(employee_id)
        with self._base_lock:
            override = self._base_pay.get(employee_id)
        if override is not None:
            return override, False
        try:
            employee = self._employees.get_by_id(employee_id)
        except StoreUnavailableError as exc:
            with self._base_lock:
                cached = self._salaries.get(employee_id)
            logger.warning("Employee directory degraded, base pay for %s %s: %s", employee_id, "from cache" if cached is not None else "is 0", exc)
            return (cached if cached is not None else ZERO), True
        if employee is None:
            return ZERO, False
        salary = Decimal(employee.salary)
        with self._base_lock:
            self._salaries[employee_id] = salary
        return salary, False

    def set_adjustment(
        self,
        employee_id: str,
        *,
        allowance=0,
        bonus=0,
        deduction=0,
        month: Optional[str] = None,
    ) -> PayrollAdjustment:
        adjustment = PayrollAdjustment(
            employee_id=require_non_empty(employee_id, "employee_id"),
            allowance=require_amount(allowance, "allowance"),
            bonus=require_amount(bonus, "bonus"),
            deduction=require_amount(deduction, "deduction"),
            month=normalize_month(month) if month else None,
        )
        self._adjustments.set(adjustment)
        return adjustment

    # ----- computation -----

    def compute_pay(self, employee_id: str, month: str) -> PayComputation:
        employee_id = require_non_empty(employee_id, "employee_id")
        month = normalize_month(month)

        aggregate = self._aggregation.aggregate(employee_id, month)
        adjustment = self._adjustments.effective(employee_id, month)
        standard_hours = Decimal(self._aggregation.standard_minutes_per_month) / MINUTES_PER_HOUR
        base, degraded = self._resolve_base(employee_id)

        pay = self._calculator.compute(
            employee_id=employee_id,
            month=month,
            base=base,
            worked_hours=Decimal(aggregate.worked_minutes) / MINUTES_PER_HOUR,
            overtime_hours=Decimal(aggregate.overtime_minutes) / MINUTES_PER_HOUR,
            standard_hours=standard_hours,
            allowance=adjustment.allowance,
            bonus=adjustment.bonus,
            deduction=adjustment.deduction,
        )
        return replace(pay, degraded=True) if degraded else pay

    def generate_payslip(self, employee_id: str, month: str) -> PayslipSnapshot:
        """Issue a payslip. Every call appends a new snapshot to history."""
        pay = self.compute_pay(employee_id, month)
        snapshot = PayslipSnapshot.from_computation(pay, generated_at=now_local())
        self._history.append(snapshot)
        logger.info("Payslip issued for %s %s (net %s)", pay.employee_id, pay.month, pay.net)
        return snapshot

    def payslip_history(self, employee_id: Optional[str] = None, month: Optional[str] = None) -> list[PayslipSnapshot]:
        return self._history.list(employee_id, normalize_month(month) if month else None)

    def clear_payslip_history(self) -> int:
        removed = self._history.clear()
        logger.info("Payslip history cleared (%d entries)", removed)
        return removed

    # ----- status -----

    def set_payroll_status(self, employee_id: str, month: str, state) -> StatusResult:
        employee_id = require_non_empty(employee_id, "employee_id")
        result = self._status_store.set(employee_id, normalize_month(month), parse_state(state))
        logger.info("Payroll status %s/%s set to %s", employee_id, result.status.month, result.status.state.value)
        return result

    def get_payroll_status(self, employee_id: str, month: str) -> StatusResult:
        return self._status_store.get(require_non_empty(employee_id, "employee_id"), normalize_month(month))

    def statuses_for_month(self, month: str) -> MonthStatuses:
        return self._status_store.for_month(normalize_month(month))

    def month_summary(self, month: str, employee_ids: Optional[Iterable[str]] = None) -> PayrollSummary:
        month = normalize_month(month)
        degraded = False
        if employee_ids is None:
            try:
                ids = [e.employee_id for e in self._employees.list_active()]
            except StoreUnavailableError as exc:
                logger.warning("Employee directory degraded, summarising known employees for %s: %s", month, exc)
                degraded = True
                with self._base_lock:
                    ids = sorted(set(self._salaries) | set(self._base_pay))
        else:
            ids = list(dict.fromkeys(str(e) for e in employee_ids))

        month_statuses = self.statuses_for_month(month)
        statuses = month_statuses.statuses
        degraded = degraded or month_statuses.degraded
        gross = deductions = net = ZERO
        paid = 0
        for employee_id in ids:
            pay = self.compute_pay(employee_id, month)
            gross += pay.gross
            deductions += pay.deductions
            net += pay.net
            degraded = degraded or pay.degraded
            if statuses.get(employee_id) == PayrollState.PAID:
                paid += 1

        return PayrollSummary(
            month=month,
            employees=len(ids),
            gross=gross,
            deductions=deductions,
            net=net,
            paid=paid,
            pending=len(ids) - paid,
            degraded=degraded,
        )

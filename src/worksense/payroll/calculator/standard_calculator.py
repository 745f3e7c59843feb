from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ...attendance.model import AttendanceRecord, worked_minutes
from ...core import constants
from ...core.exceptions import ValidationError
from ..model import ZERO, PayComputation, to_money
from .base import PayrollCalculator


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule: base + allowance + bonus + overtime at a flat multiplier.

    Intermediate values keep full Decimal precision; every figure on the
    returned ``PayComputation`` is rounded half-up to 2dp.
    """

    def __init__(self, overtime_multiplier: Decimal | str = constants.DEFAULT_OVERTIME_MULTIPLIER):
        multiplier = Decimal(str(overtime_multiplier))
        if multiplier < 0:
            raise ValidationError("overtime_multiplier must not be negative")
        self._multiplier = multiplier

    @property
    def overtime_multiplier(self) -> Decimal:
        return self._multiplier

    def worked_minutes(self, record: Optional[AttendanceRecord]) -> int:
        return worked_minutes(record)

    def compute(
        self,
        *,
        employee_id: str,
        month: str,
        base: Decimal,
        worked_hours: Decimal,
        overtime_hours: Decimal,
        standard_hours: Decimal,
        allowance: Decimal = ZERO,
        bonus: Decimal = ZERO,
        deduction: Decimal = ZERO,
    ) -> PayComputation:
        normal_rate = base / standard_hours if standard_hours > 0 else ZERO
        overtime_rate = normal_rate * self._multiplier
        overtime_pay = overtime_hours * overtime_rate
        gross = base + allowance + bonus + overtime_pay
        net = max(ZERO, gross - deduction)

        return PayComputation(
            employee_id=employee_id,
            month=month,
            base=to_money(base),
            worked_hours=to_money(worked_hours),
            overtime_hours=to_money(overtime_hours),
            normal_hourly_rate=to_money(normal_rate),
            overtime_hourly_rate=to_money(overtime_rate),
            overtime_pay=to_money(overtime_pay),
            allowance=to_money(allowance),
            bonus=to_money(bonus),
            deductions=to_money(deduction),
            gross=to_money(gross),
            net=to_money(net),
        )

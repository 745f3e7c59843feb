from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from ...attendance.model import AttendanceRecord
from ..model import PayComputation


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def worked_minutes(self, record: Optional[AttendanceRecord]) -> int:
        raise NotImplementedError

    @abstractmethod
    def compute(
        self,
        *,
        employee_id: str,
        month: str,
        base: Decimal,
        worked_hours: Decimal,
        overtime_hours: Decimal,
        standard_hours: Decimal,
        allowance: Decimal,
        bonus: Decimal,
        deduction: Decimal,
    ) -> PayComputation:
        raise NotImplementedError

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..core.enums import PayrollState

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value: Decimal) -> Decimal:
    """Round to 2dp, half-up. Applied to outputs only."""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PayrollAdjustment:
    """Allowance/bonus/deduction for an employee.

    ``month=None`` applies to every month; a month-scoped entry wins over it.
    """

    employee_id: str
    allowance: Decimal = ZERO
    bonus: Decimal = ZERO
    deduction: Decimal = ZERO
    month: Optional[str] = None


@dataclass(frozen=True)
class PayComputation:
    employee_id: str
    month: str
    base: Decimal
    worked_hours: Decimal
    overtime_hours: Decimal
    normal_hourly_rate: Decimal
    overtime_hourly_rate: Decimal
    overtime_pay: Decimal
    allowance: Decimal
    bonus: Decimal
    deductions: Decimal
    gross: Decimal
    net: Decimal
    degraded: bool = False

    def as_dict(self) -> dict:
        return {
            "employeeId": self.employee_id,
            "month": self.month,
            "base": str(self.base),
            "workedHours": str(self.worked_hours),
            "overtimeHours": str(self.overtime_hours),
            "normalHourlyRate": str(self.normal_hourly_rate),
            "overtimeHourlyRate": str(self.overtime_hourly_rate),
            "overtimePay": str(self.overtime_pay),
            "allowance": str(self.allowance),
            "bonus": str(self.bonus),
            "deductions": str(self.deductions),
            "gross": str(self.gross),
            "net": str(self.net),
            "degraded": self.degraded,
        }


@dataclass(frozen=True)
class PayslipSnapshot:
    """Immutable copy of a pay computation at the time it was issued."""

    employee_id: str
    month: str
    base: Decimal
    allowance: Decimal
    bonus: Decimal
    overtime_hours: Decimal
    overtime_pay: Decimal
    deductions: Decimal
    gross: Decimal
    net: Decimal
    generated_at: datetime

    @classmethod
    def from_computation(cls, pay: PayComputation, generated_at: datetime) -> "PayslipSnapshot":
        return cls(
            employee_id=pay.employee_id,
            month=pay.month,
            base=pay.base,
            allowance=pay.allowance,
            bonus=pay.bonus,
            overtime_hours=pay.overtime_hours,
            overtime_pay=pay.overtime_pay,
            deductions=pay.deductions,
            gross=pay.gross,
            net=pay.net,
            generated_at=generated_at,
        )

    def as_dict(self) -> dict:
        return {
            "employeeId": self.employee_id,
            "month": self.month,
            "base": str(self.base),
            "allowance": str(self.allowance),
            "bonus": str(self.bonus),
            "overtimeHours": str(self.overtime_hours),
            "overtimePay": str(self.overtime_pay),
            "deductions": str(self.deductions),
            "gross": str(self.gross),
            "net": str(self.net),
            "generatedAt": self.generated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PayslipSnapshot":
        return cls(
            employee_id=str(data["employeeId"]),
            month=str(data["month"]),
            base=Decimal(data["base"]),
            allowance=Decimal(data["allowance"]),
            bonus=Decimal(data["bonus"]),
            overtime_hours=Decimal(data["overtimeHours"]),
            overtime_pay=Decimal(data["overtimePay"]),
            deductions=Decimal(data["deductions"]),
            gross=Decimal(data["gross"]),
            net=Decimal(data["net"]),
            generated_at=datetime.fromisoformat(data["generatedAt"]),
        )


@dataclass(frozen=True)
class PayrollStatus:
    employee_id: str
    month: str
    state: PayrollState = PayrollState.PENDING


@dataclass(frozen=True)
class StatusResult:
    """A status read/write; ``degraded`` means the remote store was skipped."""

    status: PayrollStatus
    degraded: bool = False

    def as_dict(self) -> dict:
        return {
            "employeeId": self.status.employee_id,
            "month": self.status.month,
            "status": self.status.state.value,
            "degraded": self.degraded,
        }


@dataclass(frozen=True)
class MonthStatuses:
    month: str
    statuses: dict[str, PayrollState] = field(default_factory=dict)
    degraded: bool = False


@dataclass(frozen=True)
class PayrollSummary:
    month: str
    employees: int
    gross: Decimal
    deductions: Decimal
    net: Decimal
    paid: int
    pending: int
    degraded: bool = False

    def as_dict(self) -> dict:
        return {
            "month": self.month,
            "employees": self.employees,
            "gross": str(self.gross),
            "deductions": str(self.deductions),
            "net": str(self.net),
            "paid": self.paid,
            "pending": self.pending,
            "degraded": self.degraded,
        }

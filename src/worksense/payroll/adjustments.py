from __future__ import annotations

import threading
from typing import Optional

from .model import PayrollAdjustment


class AdjustmentBook:
    """Allowance/bonus/deduction entries keyed by (employee, month or None)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, Optional[str]], PayrollAdjustment] = {}

    def set(self, adjustment: PayrollAdjustment) -> None:
        with self._lock:
            self._entries[(adjustment.employee_id, adjustment.month)] = adjustment

    def remove(self, employee_id: str, month: Optional[str] = None) -> bool:
        with self._lock:
            return self._entries.pop((str(employee_id), month), None) is not None

    def effective(self, employee_id: str, month: str) -> PayrollAdjustment:
        employee_id = str(employee_id)
        with self._lock:
            found = self._entries.get((employee_id, month)) or self._entries.get((employee_id, None))
        return found or PayrollAdjustment(employee_id=employee_id, month=month)

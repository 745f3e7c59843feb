from __future__ import annotations

import threading
from typing import Iterable, Optional, Protocol, Sequence

from .model import Employee


class EmployeeDirectory(Protocol):
    """Lookup interface onto the employee store owned by the CRUD layer."""

    def get_by_id(self, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def get_by_uid(self, rfid_uid: str) -> Optional[Employee]:
        raise NotImplementedError

    def list_active(self) -> Sequence[Employee]:
        raise NotImplementedError


class InMemoryEmployeeDirectory(EmployeeDirectory):
    def __init__(self, employees: Iterable[Employee] = ()):
        self._lock = threading.Lock()
        self._by_id: dict[str, Employee] = {}
        for employee in employees:
            self.upsert(employee)

    def upsert(self, employee: Employee) -> None:
        with self._lock:
            self._by_id[employee.employee_id] = employee

    def get_by_id(self, employee_id: str) -> Optional[Employee]:
        with self._lock:
            return self._by_id.get(str(employee_id))

    def get_by_uid(self, rfid_uid: str) -> Optional[Employee]:
        with self._lock:
            for employee in self._by_id.values():
                if employee.is_active and employee.rfid_uid == rfid_uid:
                    return employee
        return None

    def list_active(self) -> Sequence[Employee]:
        with self._lock:
            return [e for e in self._by_id.values() if e.is_active]

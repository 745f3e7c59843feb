from __future__ import annotations

import threading
from datetime import date
from typing import Callable, Optional, Protocol, Sequence

from .model import AttendanceRecord

Mutation = Callable[[Optional[AttendanceRecord]], Optional[AttendanceRecord]]


class AttendanceRepository(Protocol):
    def get(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def update(self, employee_id: str, work_date: date, mutate: Mutation) -> Optional[AttendanceRecord]:
        """Atomic read-modify-write of one (employee, date) key.

        ``mutate`` receives the current record (or None) and returns the record
        to store; returning None leaves the key untouched.
        """
        raise NotImplementedError

    def list_for_employee(self, employee_id: str, start: date, end: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_between(self, start: date, end: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError


class InMemoryAttendanceRepository(AttendanceRepository):
    """Process-local record store; the engine is its only writer."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_key: dict[tuple[str, date], AttendanceRecord] = {}

    def get(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        with self._lock:
            return self._by_key.get((str(employee_id), work_date))

    def update(self, employee_id: str, work_date: date, mutate: Mutation) -> Optional[AttendanceRecord]:
        key = (str(employee_id), work_date)
        with self._lock:
            current = self._by_key.get(key)
            updated = mutate(current)
            if updated is None:
                return current
            self._by_key[key] = updated
            return updated

    def list_for_employee(self, employee_id: str, start: date, end: date) -> Sequence[AttendanceRecord]:
        with self._lock:
            items = [
                r
                for (emp, day), r in self._by_key.items()
                if emp == str(employee_id) and start <= day <= end
            ]
        items.sort(key=lambda r: r.work_date)
        return items

    def list_between(self, start: date, end: date) -> Sequence[AttendanceRecord]:
        with self._lock:
            items = [r for (_, day), r in self._by_key.items() if start <= day <= end]
        items.sort(key=lambda r: (r.work_date, r.employee_id))
        return items

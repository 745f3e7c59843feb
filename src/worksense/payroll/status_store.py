from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Optional

from ..core.enums import PayrollState
from ..core.exceptions import StoreUnavailableError
from .model import MonthStatuses, PayrollStatus, StatusResult
from .status_repository import PayrollStatusRepository

logger = logging.getLogger(__name__)


class LocalStatusCache:
    """Last known status per (employee, month), optionally mirrored to JSON."""

    def __init__(self, path: Optional[str | Path] = None):
        self._lock = threading.Lock()
        self._path = Path(path) if path else None
        self._states: dict[str, dict[str, PayrollState]] = self._load()

    def _load(self) -> dict[str, dict[str, PayrollState]]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return {
                month: {emp: PayrollState(value) for emp, value in by_emp.items()}
                for month, by_emp in raw.items()
            }
        except (OSError, ValueError, AttributeError):
            logger.warning("Payroll status cache at %s is unreadable; starting empty", self._path, exc_info=True)
            return {}

    def _save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = {month: {emp: s.value for emp, s in by_emp.items()} for month, by_emp in self._states.items()}
        self._path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")

    def get(self, employee_id: str, month: str) -> Optional[PayrollState]:
        with self._lock:
            return self._states.get(month, {}).get(employee_id)

    def put(self, employee_id: str, month: str, state: PayrollState) -> None:
        with self._lock:
            self._states.setdefault(month, {})[employee_id] = state
            self._save()

    def replace_month(self, month: str, states: dict[str, PayrollState]) -> None:
        with self._lock:
            self._states[month] = dict(states)
            self._save()

    def for_month(self, month: str) -> dict[str, PayrollState]:
        with self._lock:
            return dict(self._states.get(month, {}))


class PayrollStatusStore:
    """Two-tier payroll status: remote repository first, local cache behind it.

    A remote failure is logged as a degraded read/write and answered from the
    cache; it never propagates to the caller.
    """

    def __init__(self, cache: LocalStatusCache, remote: Optional[PayrollStatusRepository] = None):
        self._cache = cache
        self._remote = remote

    @property
    def has_remote(self) -> bool:
        return self._remote is not None

    def get(self, employee_id: str, month: str) -> StatusResult:
        employee_id = str(employee_id)
        degraded = False
        state: Optional[PayrollState] = None

        if self._remote is not None:
            try:
                state = self._remote.get(employee_id, month)
            except StoreUnavailableError as exc:
                degraded = True
                logger.warning("Payroll status store degraded, reading %s/%s from local cache: %s", employee_id, month, exc)
            else:
                if state is not None:
                    self._cache.put(employee_id, month, state)

        if state is None:
            state = self._cache.get(employee_id, month) or PayrollState.PENDING
        return StatusResult(PayrollStatus(employee_id, month, state), degraded=degraded)

    def set(self, employee_id: str, month: str, state: PayrollState) -> StatusResult:
        employee_id = str(employee_id)
        degraded = False
        if self._remote is not None:
            try:
                self._remote.upsert(employee_id, month, state)
            except StoreUnavailableError as exc:
                degraded = True
                logger.warning("Payroll status store degraded, %s/%s=%s kept in local cache only: %s", employee_id, month, state.value, exc)

        self._cache.put(employee_id, month, state)
        return StatusResult(PayrollStatus(employee_id, month, state), degraded=degraded)

    def for_month(self, month: str) -> MonthStatuses:
        if self._remote is not None:
            try:
                states = self._remote.list_for_month(month)
            except StoreUnavailableError as exc:
                logger.warning("Payroll status store degraded, listing %s from local cache: %s", month, exc)
                return MonthStatuses(month, self._cache.for_month(month), degraded=True)
            merged = {**self._cache.for_month(month), **states}
            self._cache.replace_month(month, merged)
            return MonthStatuses(month, merged)
        return MonthStatuses(month, self._cache.for_month(month))

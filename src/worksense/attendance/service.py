from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

from ..core import constants
from ..core.enums import AnomalyType
from ..core.exceptions import StoreUnavailableError, ValidationError
from ..employees.repository import EmployeeDirectory
from ..events.model import PresenceEvent
from .factory import AttendanceStrategyFactory
from .model import (
    Anomaly,
    AttendanceRecord,
    ClearResult,
    DailySummary,
    EventOutcome,
    PresenceSummary,
    WorkdayWindow,
    worked_minutes,
)
from .repository import AttendanceRepository
from .strategies.base import StatusDecision
from .transitions import Transition, next_transition

logger = logging.getLogger(__name__)


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeDirectory,
        *,
        window: WorkdayWindow,
        strategy_factory: AttendanceStrategyFactory | None = None,
    ):
        self._attendance = attendance
        self._employees = employees
        self._window = window
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._known_lock = threading.Lock()
        self._known: dict[str, tuple[str, Optional[str]]] = {}

    @property
    def window(self) -> WorkdayWindow:
        return self._window

    def resolve_employee(self, employee_uid: str) -> tuple[str, Optional[str]]:
        """Map a card uid to (employee_id, display name).

        Unknown uids still get a record, keyed by the uid itself. While the
        directory is unreachable the last known mapping for the uid is used,
        or the uid itself when there is none.
        """
        try:
            employee = self._employees.get_by_uid(employee_uid)
        except StoreUnavailableError as exc:
            with self._known_lock:
                known = self._known.get(employee_uid)
            logger.warning("Employee directory degraded, resolving %s %s: %s", employee_uid, "from cache" if known else "as uid", exc)
            return known or (employee_uid, None)
        if employee is None:
            return employee_uid, None
        resolved = (employee.employee_id, employee.full_name)
        with self._known_lock:
            self._known[employee_uid] = resolved
        return resolved

    # ----- event application -----

    def apply_event(self, event: PresenceEvent) -> EventOutcome:
        employee_id, employee_name = self.resolve_employee(event.employee_uid)
        work_date = event.timestamp.date()
        applied: list[Transition] = []

        def mutate(current: Optional[AttendanceRecord]) -> Optional[AttendanceRecord]:
            transition = next_transition(current, event.timestamp)
            applied.append(transition)
            if not transition.changed:
                return None
            base = current or AttendanceRecord(employee_id=employee_id, work_date=work_date)
            last_tap = event.timestamp if base.last_tap_at is None else max(base.last_tap_at, event.timestamp)
            return replace(
                base,
                check_in=transition.check_in,
                check_out=transition.check_out,
                employee_uid=event.employee_uid,
                device_id=event.device_id or base.device_id,
                tap_count=base.tap_count + 1,
                last_tap_at=last_tap,
            )

        record = self._attendance.update(employee_id, work_date, mutate)
        transition = applied[-1]
        if record is None:
            record = AttendanceRecord(employee_id=employee_id, work_date=work_date)

        label = employee_name or event.employee_label or employee_id
        if transition.changed:
            logger.info(
                "%s recorded for %s at %s%s",
                transition.direction.value,
                label,
                event.timestamp.strftime("%H:%M:%S"),
                " (correction)" if transition.correction else "",
            )
        else:
            logger.info("Presence event for %s at %s %s", label, event.timestamp.isoformat(), transition.direction.value)

        return EventOutcome(
            employee_id=employee_id,
            employee_uid=event.employee_uid,
            employee_name=employee_name or event.employee_label,
            work_date=work_date,
            timestamp=event.timestamp,
            action=transition.direction,
            record=record,
        )

    def apply_events(self, events: Iterable[PresenceEvent]) -> list[EventOutcome]:
        """Apply a buffered batch in timestamp order, not arrival order."""
        ordered = sorted(events, key=lambda e: (e.timestamp, e.employee_uid))
        return [self.apply_event(e) for e in ordered]

    # ----- reads -----

    def get_record(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        return self._attendance.get(employee_id, work_date)

    def records_between(self, employee_id: str, start: date, end: date) -> Sequence[AttendanceRecord]:
        return self._attendance.list_for_employee(employee_id, start, end)

    def classify(self, record: Optional[AttendanceRecord]) -> StatusDecision:
        strategy = self._factory.for_record(record, self._window)
        return strategy.decide(record, self._window)

    def get_daily_status(self, employee_id: str, work_date: date) -> StatusDecision:
        return self.classify(self._attendance.get(employee_id, work_date))

    # ----- administration -----

    def clear_attendance(self, employee_id: str, work_date: date) -> ClearResult:
        """Reset check-in and check-out for one day.

        A missing or already empty record is reported, not raised.
        """
        outcome: list[str] = []

        def mutate(current: Optional[AttendanceRecord]) -> Optional[AttendanceRecord]:
            if current is None:
                outcome.append("not_found")
                return None
            if current.is_empty:
                outcome.append("already_clear")
                return None
            outcome.append("cleared")
            return replace(current, check_in=None, check_out=None, tap_count=0, last_tap_at=None)

        self._attendance.update(employee_id, work_date, mutate)
        if outcome[-1] != "cleared":
            logger.info("Nothing to clear for %s on %s (%s)", employee_id, work_date, outcome[-1])
            return ClearResult(employee_id=employee_id, work_date=work_date, cleared=False, reason=outcome[-1])

        logger.info("Cleared attendance for %s on %s", employee_id, work_date)
        return ClearResult(employee_id=employee_id, work_date=work_date, cleared=True)

    def override_record(
        self,
        employee_id: str,
        work_date: date,
        *,
        check_in: Optional[datetime],
        check_out: Optional[datetime],
    ) -> AttendanceRecord:
        """Admin-only override; an earlier check-out is stored and counts as 0 minutes."""
        if check_out is not None and check_in is None:
            raise ValidationError("A check-out needs a check-in")
        for value in (check_in, check_out):
            if value is not None and value.date() != work_date:
                raise ValidationError("Override times must fall on the record date")

        def mutate(current: Optional[AttendanceRecord]) -> AttendanceRecord:
            base = current or AttendanceRecord(employee_id=employee_id, work_date=work_date)
            return replace(base, check_in=check_in, check_out=check_out)

        record = self._attendance.update(employee_id, work_date, mutate)
        logger.info("Attendance overridden for %s on %s", employee_id, work_date)
        return record

    # ----- summaries -----

    def _employee_ids_for(self, work_date: date, employee_ids: Optional[Iterable[str]]) -> list[str]:
        if employee_ids is not None:
            return list(dict.fromkeys(str(e) for e in employee_ids))
        try:
            ids = [e.employee_id for e in self._employees.list_active()]
        except StoreUnavailableError as exc:
            logger.warning("Employee directory degraded, summarising recorded employees only: %s", exc)
            ids = []
        ids.extend(r.employee_id for r in self._attendance.list_between(work_date, work_date))
        return list(dict.fromkeys(ids))

    def daily_summary(self, work_date: date, employee_ids: Optional[Iterable[str]] = None) -> DailySummary:
        statuses = [
            self.get_daily_status(employee_id, work_date).status
            for employee_id in self._employee_ids_for(work_date, employee_ids)
        ]
        return DailySummary.from_statuses(work_date, statuses)

    def presence_summary(self, work_date: date) -> PresenceSummary:
        records = [r for r in self._attendance.list_between(work_date, work_date) if r.check_in is not None]
        return PresenceSummary(
            work_date=work_date,
            total=len(records),
            checked_in=len(records),
            checked_out=sum(1 for r in records if r.is_complete),
            pending_checkout=sum(1 for r in records if r.is_open),
        )

    def detect_anomalies(
        self,
        start: date,
        end: date,
        *,
        overtime_threshold_hours: float = constants.DEFAULT_ANOMALY_OVERTIME_HOURS,
    ) -> list[Anomaly]:
        if end < start:
            raise ValidationError("end must not be before start")

        anomalies: list[Anomaly] = []
        threshold = timedelta(hours=overtime_threshold_hours)
        for r in self._attendance.list_between(start, end):
            if r.check_in is not None and r.check_in > self._window.late_after(r.work_date):
                anomalies.append(Anomaly(AnomalyType.LATE_ARRIVAL, r.employee_id, r.work_date, r.check_in.strftime("%H:%M")))
            if r.check_out is not None and r.check_out < self._window.ends_at(r.work_date):
                anomalies.append(Anomaly(AnomalyType.EARLY_DEPARTURE, r.employee_id, r.work_date, r.check_out.strftime("%H:%M")))
            minutes = worked_minutes(r)
            if minutes > threshold.total_seconds() // 60:
                anomalies.append(Anomaly(AnomalyType.OVERTIME, r.employee_id, r.work_date, f"{minutes / 60:.2f} h"))
        return anomalies

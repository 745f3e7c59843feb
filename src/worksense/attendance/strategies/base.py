from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ...core.enums import DailyStatus
from ..model import AttendanceRecord, WorkdayWindow


@dataclass(frozen=True)
class StatusDecision:
    status: DailyStatus
    note: Optional[str] = None
    provisional: bool = False


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide a daily status."""

    @abstractmethod
    def decide(self, record: Optional[AttendanceRecord], window: WorkdayWindow) -> StatusDecision:
        raise NotImplementedError

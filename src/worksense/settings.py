from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from decimal import Decimal
from types import ModuleType
from typing import Optional

from .attendance.model import WorkdayWindow
from .broker.transport import BrokerOptions
from .common.datetime_utils import parse_clock
from .core import constants
from .core.exceptions import ValidationError


@dataclass(frozen=True)
class WorkdaySettings:
    start: time
    end: time
    grace_minutes: int = constants.DEFAULT_LATE_GRACE_MINUTES

    def window(self) -> WorkdayWindow:
        return WorkdayWindow(start=self.start, end=self.end, grace_minutes=self.grace_minutes)


@dataclass(frozen=True)
class PayrollSettings:
    workdays_per_month: int = constants.DEFAULT_WORKDAYS_PER_MONTH
    hours_per_day: int = constants.DEFAULT_HOURS_PER_DAY
    overtime_multiplier: Decimal = Decimal(constants.DEFAULT_OVERTIME_MULTIPLIER)

    @property
    def standard_minutes_per_month(self) -> int:
        return self.workdays_per_month * self.hours_per_day * 60


@dataclass(frozen=True)
class PipelineSettings:
    workday: WorkdaySettings
    payroll: PayrollSettings
    broker: BrokerOptions
    presence_topic: str = constants.DEFAULT_PRESENCE_TOPIC
    presence_ack_topic: Optional[str] = None
    connect_on_startup: bool = False
    db_config: dict = field(default_factory=dict)
    use_remote_status_store: bool = False
    employee_directory: str = "memory"
    local_cache_path: Optional[str] = None
    payslip_history_path: Optional[str] = None
    log_level: str = "INFO"
    log_json: bool = False


def load_settings(settings: ModuleType) -> PipelineSettings:
    """Turn a ``worksense.config`` settings module into typed settings."""
    workday = WorkdaySettings(
        start=parse_clock(getattr(settings, "WORKDAY_START", constants.DEFAULT_WORKDAY_START)),
        end=parse_clock(getattr(settings, "WORKDAY_END", constants.DEFAULT_WORKDAY_END)),
        grace_minutes=int(getattr(settings, "GRACE_MINUTES", constants.DEFAULT_LATE_GRACE_MINUTES)),
    )
    if workday.end <= workday.start:
        raise ValidationError("WORKDAY_END must be after WORKDAY_START")
    if workday.grace_minutes < 0:
        raise ValidationError("GRACE_MINUTES must not be negative")

    payroll = PayrollSettings(
        workdays_per_month=int(getattr(settings, "WORKDAYS_PER_MONTH", constants.DEFAULT_WORKDAYS_PER_MONTH)),
        hours_per_day=int(getattr(settings, "HOURS_PER_DAY", constants.DEFAULT_HOURS_PER_DAY)),
        overtime_multiplier=Decimal(str(getattr(settings, "OVERTIME_MULTIPLIER", constants.DEFAULT_OVERTIME_MULTIPLIER))),
    )

    return PipelineSettings(
        workday=workday,
        payroll=payroll,
        broker=BrokerOptions.from_mapping(getattr(settings, "BROKER", {})),
        presence_topic=str(getattr(settings, "PRESENCE_TOPIC", constants.DEFAULT_PRESENCE_TOPIC)),
        presence_ack_topic=getattr(settings, "PRESENCE_ACK_TOPIC", None),
        connect_on_startup=bool(getattr(settings, "CONNECT_ON_STARTUP", False)),
        db_config=dict(getattr(settings, "DB_CONFIG", {})),
        use_remote_status_store=bool(getattr(settings, "USE_REMOTE_STATUS_STORE", False)),
        employee_directory=str(getattr(settings, "EMPLOYEE_DIRECTORY", "memory")).lower(),
        local_cache_path=getattr(settings, "LOCAL_CACHE_PATH", None),
        payslip_history_path=getattr(settings, "PAYSLIP_HISTORY_PATH", None),
        log_level=str(getattr(settings, "LOG_LEVEL", "INFO")),
        log_json=bool(getattr(settings, "LOG_JSON", False)),
    )

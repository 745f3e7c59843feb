from __future__ import annotations

from enum import Enum


class DailyStatus(str, Enum):
    """Derived classification of one employee-day."""

    ABSENT = "ABSENT"
    ON_TIME = "ON_TIME"
    LATE = "LATE"
    OVERTIME = "OVERTIME"


class Direction(str, Enum):
    """Action inferred for a presence event."""

    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


class PayrollState(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"


class ConnectionPhase(str, Enum):
    """Lifecycle of the single broker connection."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    OFFLINE = "offline"
    ERROR = "error"
    RECONNECTING = "reconnecting"
    DISCONNECTED = "disconnected"


class AnomalyType(str, Enum):
    LATE_ARRIVAL = "Late Arrival"
    EARLY_DEPARTURE = "Early Departure"
    OVERTIME = "Overtime"

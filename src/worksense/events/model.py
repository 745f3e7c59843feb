from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class PresenceEvent:
    """One scan reported by an identity-reading device.

    Immutable once decoded; only its effect on the attendance record is kept.
    """

    employee_uid: str
    timestamp: datetime
    device_id: Optional[str] = None
    event_kind: Optional[str] = None
    employee_label: Optional[str] = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class Employee:
    """Domain entity: an employee known to the presence pipeline.

    Note: employee CRUD lives outside this package; only the fields the
    pipeline needs are carried here.
    """

    employee_id: str
    full_name: str
    rfid_uid: Optional[str] = None
    salary: Decimal = Decimal("0")
    is_active: bool = True

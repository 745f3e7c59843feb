from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee
from .repository import EmployeeDirectory

_COLUMNS = "id, first_name, last_name, rfid_uid, salary, is_active"


def _row_to_employee(row: dict) -> Employee:
    full_name = f"{row.get('first_name') or ''} {row.get('last_name') or ''}".strip()
    return Employee(
        employee_id=str(row["id"]),
        full_name=full_name or str(row["id"]),
        rfid_uid=row.get("rfid_uid"),
        salary=Decimal(str(row.get("salary") or 0)),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLEmployeeDirectory(EmployeeDirectory):
    """Read-only view of the ``employees`` table maintained by the CRUD layer."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE id=%s", (str(employee_id),))
            row = fetchone(cur)
            return _row_to_employee(row) if row else None

    def get_by_uid(self, rfid_uid: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM employees WHERE rfid_uid=%s AND is_active=1",
                (rfid_uid,),
            )
            row = fetchone(cur)
            return _row_to_employee(row) if row else None

    def list_active(self) -> Sequence[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE is_active=1 ORDER BY id")
            return [_row_to_employee(r) for r in fetchall(cur)]

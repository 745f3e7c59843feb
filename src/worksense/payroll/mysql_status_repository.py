from __future__ import annotations

from typing import Optional

from ..core.enums import PayrollState
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .status_repository import PayrollStatusRepository

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS payroll_status (
    id INT AUTO_INCREMENT PRIMARY KEY,
    employee_id VARCHAR(64) NOT NULL,
    month CHAR(7) NOT NULL,
    status ENUM('Pending', 'Paid') NOT NULL DEFAULT 'Pending',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
    UNIQUE KEY uq_payroll_status_employee_month (employee_id, month),
    KEY ix_payroll_status_month (month)
)
"""


class MySQLPayrollStatusRepository(PayrollStatusRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def ensure_table(self) -> None:
        with db_cursor(self._conn_factory, dictionary=False) as (_, cur):
            cur.execute(CREATE_TABLE_SQL)

    def get(self, employee_id: str, month: str) -> Optional[PayrollState]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT status
                FROM payroll_status
                WHERE employee_id=%s AND month=%s
                """,
                (str(employee_id), month),
            )
            r = fetchone(cur)
            return PayrollState(r["status"]) if r else None

    def upsert(self, employee_id: str, month: str, state: PayrollState) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO payroll_status(employee_id, month, status)
                VALUES(%s,%s,%s)
                ON DUPLICATE KEY UPDATE status=VALUES(status), updated_at=CURRENT_TIMESTAMP
                """,
                (str(employee_id), month, state.value),
            )

    def list_for_month(self, month: str) -> dict[str, PayrollState]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT employee_id, status
                FROM payroll_status
                WHERE month=%s
                ORDER BY employee_id
                """,
                (month,),
            )
            return {str(r["employee_id"]): PayrollState(r["status"]) for r in fetchall(cur)}

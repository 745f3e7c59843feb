from __future__ import annotations

from typing import Optional, Protocol

from ..core.enums import PayrollState


class PayrollStatusRepository(Protocol):
    """Authoritative store of Paid/Pending per (employee, month).

    Implementations raise ``StoreUnavailableError`` when they cannot be reached.
    """

    def get(self, employee_id: str, month: str) -> Optional[PayrollState]:
        raise NotImplementedError

    def upsert(self, employee_id: str, month: str, state: PayrollState) -> None:
        raise NotImplementedError

    def list_for_month(self, month: str) -> dict[str, PayrollState]:
        raise NotImplementedError

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Optional

from .model import PayslipSnapshot

logger = logging.getLogger(__name__)


class PayslipHistory:
    """Append-only payslip log, newest last.

    When ``path`` is set the log is mirrored to a JSON file so it survives a
    restart; otherwise it lives in memory only.
    """

    def __init__(self, path: Optional[str | Path] = None):
        self._lock = threading.Lock()
        self._path = Path(path) if path else None
        self._items: list[PayslipSnapshot] = self._load()

    def _load(self) -> list[PayslipSnapshot]:
        if self._path is None or not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return [PayslipSnapshot.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError):
            logger.warning("Payslip history at %s is unreadable; starting empty", self._path, exc_info=True)
            return []

    def _save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([s.as_dict() for s in self._items], indent=2)
        self._path.write_text(payload, encoding="utf-8")

    def append(self, snapshot: PayslipSnapshot) -> None:
        with self._lock:
            self._items.append(snapshot)
            self._save()

    def list(self, employee_id: Optional[str] = None, month: Optional[str] = None) -> list[PayslipSnapshot]:
        with self._lock:
            items = list(self._items)
        if employee_id is not None:
            items = [s for s in items if s.employee_id == str(employee_id)]
        if month is not None:
            items = [s for s in items if s.month == month]
        return items

    def clear(self) -> int:
        with self._lock:
            removed = len(self._items)
            self._items = []
            self._save()
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

import mysql.connector

from ..core.exceptions import StoreUnavailableError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


def _rollback(conn) -> None:
    # A dropped server fails the rollback too; the original error is what matters.
    try:
        conn.rollback()
    except mysql.connector.Error as exc:
        logger.warning("MySQL rollback failed: %s", exc)


def _close(conn) -> None:
    try:
        conn.close()
    except mysql.connector.Error as exc:
        logger.warning("MySQL close failed: %s", exc)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True) -> Iterator[Tuple[Any, Any]]:
    """Short-lived connection + cursor, committed on success.

    Connector failures (including an unreachable server) surface as
    ``StoreUnavailableError`` so callers can fall back to their local copy.
    """
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise StoreUnavailableError(f"MySQL unreachable: {exc}") from exc

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            try:
                cur.close()
            except mysql.connector.Error as exc:
                logger.warning("MySQL cursor close failed: %s", exc)
    except mysql.connector.Error as exc:
        _rollback(conn)
        raise StoreUnavailableError(f"MySQL query failed: {exc}") from exc
    except Exception:
        _rollback(conn)
        raise
    finally:
        _close(conn)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])

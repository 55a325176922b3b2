from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, TypeVar

import pg8000.dbapi as pgapi

from rifa.core.config import db_configured, settings
from rifa.db.schema import ensure_schema

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DB_LOCAL = threading.local()
_SCHEMA_READY = False
_SCHEMA_LOCK = threading.Lock()


def connect():
    if not db_configured():
        raise RuntimeError("Database configuration is missing")
    return pgapi.connect(
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
        user=settings.db_user,
        password=settings.db_password,
    )


def _ensure_schema(conn) -> None:
    global _SCHEMA_READY
    if _SCHEMA_READY:
        return
    with _SCHEMA_LOCK:
        if _SCHEMA_READY:
            return
        ensure_schema(conn)
        _SCHEMA_READY = True


def _is_alive(conn) -> bool:
    try:
        cur = conn.cursor()
        cur.execute("SELECT 1")
        cur.close()
    except (pgapi.Error, OSError):
        return False
    return True


def get_conn():
    conn = getattr(_DB_LOCAL, "conn", None)
    if conn is None or not _is_alive(conn):
        if conn is not None:
            logger.warning("Database connection lost, reconnecting")
        conn = connect()
        conn.autocommit = True
        _DB_LOCAL.conn = conn
    if settings.auto_migrate:
        _ensure_schema(conn)
    return conn


def rows_as_dicts(cur) -> list[dict]:
    rows = cur.fetchall()
    columns = [col[0] for col in cur.description]
    return [dict(zip(columns, row)) for row in rows]


def row_as_dict(cur) -> Optional[dict]:
    row = cur.fetchone()
    if row is None:
        return None
    columns = [col[0] for col in cur.description]
    return dict(zip(columns, row))


def fetch_all(sql: str, params: tuple = ()) -> list[dict]:
    cur = get_conn().cursor()
    try:
        cur.execute(sql, params)
        return rows_as_dicts(cur)
    finally:
        cur.close()


def fetch_one(sql: str, params: tuple = ()) -> Optional[dict]:
    cur = get_conn().cursor()
    try:
        cur.execute(sql, params)
        return row_as_dict(cur)
    finally:
        cur.close()


def run_transaction(handler: Callable[..., T]) -> T:
    conn = connect()
    try:
        conn.autocommit = False
        if settings.auto_migrate:
            _ensure_schema(conn)
        result = handler(conn)
        conn.commit()
        return result
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

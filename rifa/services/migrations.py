from __future__ import annotations

from datetime import datetime, timezone
import logging

from fastapi import HTTPException

from rifa.db.connection import get_conn
from rifa.db.schema import ensure_schema

logger = logging.getLogger(__name__)


def apply_schema() -> None:
    ensure_schema(get_conn())


def run_migrations() -> dict:
    try:
        apply_schema()
    except Exception as exc:
        logger.exception("Schema migration failed")
        raise HTTPException(status_code=500, detail="Migration failed. Check logs.") from exc
    return {"status": "ok", "applied_at": datetime.now(timezone.utc)}

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
import uuid
from typing import Optional

from fastapi import HTTPException

from rifa.core.config import settings
from rifa.core.security import verify_password
from rifa.db import store
from rifa.db.connection import run_transaction

logger = logging.getLogger(__name__)


def _window() -> timedelta:
    return timedelta(minutes=settings.auth_window_minutes)


def is_rate_limited(attempt: Optional[dict], now: datetime) -> bool:
    if not attempt or attempt["attempt_count"] < settings.auth_max_attempts:
        return False
    return attempt["last_attempt"] > now - _window()


def verify_admin_password(
    raffle_id: uuid.UUID, password: str, ip_address: str, now: Optional[datetime] = None
) -> dict:
    """Check ``password`` for the raffle, counting failures per (ip, raffle).

    Returns ``{"is_valid", "is_rate_limited"}``. A rate-limited caller never has
    the password evaluated.
    """
    now = now or datetime.now(timezone.utc)

    def _handler(conn):
        attempt = store.lock_auth_attempt(conn, ip_address, raffle_id)
        if is_rate_limited(attempt, now):
            return {"is_valid": False, "is_rate_limited": True}
        raffle = store.get_raffle(conn, raffle_id)
        if not raffle:
            raise HTTPException(status_code=404, detail="Raffle not found")
        is_valid = verify_password(
            password, raffle["admin_password_salt"], raffle["admin_password_hash"]
        )
        if is_valid:
            if attempt:
                store.reset_auth_attempts(conn, ip_address, raffle_id, now)
        else:
            count = store.record_failed_attempt(
                conn, ip_address, raffle_id, now, window_start=now - _window()
            )
            logger.warning(
                "Failed admin login for raffle %s from %s (attempt %s)", raffle_id, ip_address, count
            )
        return {"is_valid": is_valid, "is_rate_limited": False}

    return run_transaction(_handler)

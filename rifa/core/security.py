from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import hashlib
import secrets
from typing import Mapping, Optional

import jwt

from rifa.core.config import settings

ADMIN_SCOPE = "raffle_admin"
JWT_ALGORITHM = "HS256"
LOOPBACK_IP = "127.0.0.1"


def hash_password(password: str, salt: bytes) -> str:
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, 120_000)
    return digest.hex()


def new_password_hash(password: str) -> tuple[str, str]:
    """Return ``(hash, salt)`` as hex strings for a freshly salted password."""
    salt = secrets.token_bytes(16)
    return hash_password(password, salt), salt.hex()


def verify_password(password: str, salt_hex: str, expected_hash: str) -> bool:
    candidate = hash_password(password, bytes.fromhex(salt_hex))
    return secrets.compare_digest(candidate, expected_hash)


def client_ip(headers: Mapping[str, str]) -> str:
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return LOOPBACK_IP


@dataclass(frozen=True)
class AdminCapability:
    """Proof that the bearer authenticated as admin of one raffle until ``expires_at``."""

    raffle_id: str
    expires_at: datetime


def admin_cookie_name(raffle_id) -> str:
    return f"admin_auth_{raffle_id}"


def session_configured() -> bool:
    return bool(settings.session_secret)


def _session_secret() -> str:
    if not session_configured():
        raise RuntimeError("SESSION_SECRET is not configured")
    return settings.session_secret


def issue_admin_token(raffle_id, now: Optional[datetime] = None) -> tuple[str, AdminCapability]:
    issued_at = now or datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(minutes=settings.admin_session_minutes)
    capability = AdminCapability(raffle_id=str(raffle_id), expires_at=expires_at)
    payload = {
        "sub": capability.raffle_id,
        "scope": ADMIN_SCOPE,
        "iat": issued_at,
        "exp": expires_at,
    }
    token = jwt.encode(payload, _session_secret(), algorithm=JWT_ALGORITHM)
    return token, capability


def read_admin_token(token: Optional[str], raffle_id) -> Optional[AdminCapability]:
    if not token or not session_configured():
        return None
    try:
        payload = jwt.decode(token, _session_secret(), algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None
    if payload.get("scope") != ADMIN_SCOPE or payload.get("sub") != str(raffle_id):
        return None
    expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    return AdminCapability(raffle_id=payload["sub"], expires_at=expires_at)

from fastapi import HTTPException, Request

from rifa.core.config import db_configured
from rifa.core.security import (
    AdminCapability,
    admin_cookie_name,
    client_ip,
    read_admin_token,
    session_configured,
)


def require_db() -> None:
    if not db_configured():
        raise HTTPException(status_code=500, detail="Database is not configured")


def require_session_secret() -> None:
    if not session_configured():
        raise HTTPException(status_code=500, detail="Admin sessions are not configured")


def request_ip(request: Request) -> str:
    return client_ip(request.headers)


def admin_capability(request: Request, raffle_id):
    return read_admin_token(request.cookies.get(admin_cookie_name(raffle_id)), raffle_id)


def require_admin(request: Request, raffle_id) -> AdminCapability:
    capability = admin_capability(request, raffle_id)
    if capability is None:
        raise HTTPException(status_code=401, detail="Unauthorized: admin access required")
    return capability

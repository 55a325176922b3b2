import uuid

from fastapi import APIRouter, HTTPException, Request, Response

from rifa.api.dependencies import admin_capability, request_ip, require_db, require_session_secret
from rifa.core.config import settings
from rifa.core.security import admin_cookie_name, issue_admin_token
from rifa.cqrs.commands import auth as auth_commands
from rifa.models.schemas import (
    AdminLoginRequest,
    AdminLoginResponse,
    AdminSessionResponse,
    OperationResult,
)

router = APIRouter(prefix="/raffles/{raffle_id}/admin", tags=["admin"])


@router.post("/login", response_model=AdminLoginResponse)
def login(raffle_id: uuid.UUID, payload: AdminLoginRequest, request: Request, response: Response):
    require_session_secret()
    require_db()
    result = auth_commands.verify_admin_password(raffle_id, payload.password, request_ip(request))
    if result["is_rate_limited"]:
        raise HTTPException(
            status_code=429,
            detail={
                "message": "Too many failed attempts. Please try again later.",
                "is_rate_limited": True,
            },
        )
    if not result["is_valid"]:
        return {"is_valid": False}
    token, capability = issue_admin_token(raffle_id)
    response.set_cookie(
        admin_cookie_name(raffle_id),
        token,
        max_age=settings.admin_session_minutes * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        path="/",
    )
    return {"is_valid": True, "expires_at": capability.expires_at}


@router.post("/logout", response_model=OperationResult)
def logout(raffle_id: uuid.UUID, response: Response):
    response.delete_cookie(admin_cookie_name(raffle_id), path="/")
    return {}


@router.get("/session", response_model=AdminSessionResponse)
def session(raffle_id: uuid.UUID, request: Request):
    capability = admin_capability(request, raffle_id)
    if capability is None:
        return {"authenticated": False}
    return {"authenticated": True, "expires_at": capability.expires_at}

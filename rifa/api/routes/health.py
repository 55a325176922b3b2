from datetime import datetime, timezone

from fastapi import APIRouter

from rifa.core.config import APP_VERSION
from rifa.models.schemas import HealthResponse

router = APIRouter(tags=["meta"])


@router.get("/")
def root():
    return {"ok": True, "service": "RifaPix API"}


@router.get("/health", response_model=HealthResponse)
def health():
    return {"status": "ok", "time": datetime.now(timezone.utc)}


@router.get("/version")
def version():
    return {"version": APP_VERSION}

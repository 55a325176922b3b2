import logging
import os
import traceback

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum
from starlette.exceptions import HTTPException as StarletteHTTPException

from rifa.api.routes import auth, health, migrations, payments, purchases, raffles, webhooks, winners
from rifa.core.config import APP_VERSION, settings
from rifa.core.logging import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

API_PREFIX = "/rifa"
api_gateway_base_path = os.getenv("API_GATEWAY_BASE_PATH", "").strip()
if api_gateway_base_path and not api_gateway_base_path.startswith("/"):
    api_gateway_base_path = f"/{api_gateway_base_path}"

app = FastAPI(
    title="RifaPix API",
    version=APP_VERSION,
    docs_url=f"{API_PREFIX}/docs",
    redoc_url=f"{API_PREFIX}/redoc",
    openapi_url=f"{API_PREFIX}/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

api_router = APIRouter(prefix=API_PREFIX)
api_router.include_router(health.router)
api_router.include_router(migrations.router)
api_router.include_router(raffles.router)
api_router.include_router(purchases.router)
api_router.include_router(auth.router)
api_router.include_router(winners.router)
api_router.include_router(payments.router)
api_router.include_router(webhooks.router)
app.include_router(api_router)


@app.exception_handler(StarletteHTTPException)
def http_exception_handler(_: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "detail": exc.detail, "type": "http_error"},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
def validation_exception_handler(_: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "detail": jsonable_errors(exc),
            "message": "Validation error",
            "type": "validation_error",
        },
    )


@app.exception_handler(Exception)
def unhandled_exception_handler(_: Request, exc: Exception):
    logger.exception("Unhandled error")
    if settings.expose_errors:
        detail = {
            "type": exc.__class__.__name__,
            "message": str(exc) or "Unhandled error",
            "trace": traceback.format_exc(),
        }
    else:
        detail = "Internal Server Error"
    return JSONResponse(
        status_code=500, content={"success": False, "detail": detail, "type": "server_error"}
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        errors.append({key: value for key, value in error.items() if key != "ctx"})
    return errors


handler = Mangum(app, api_gateway_base_path=api_gateway_base_path or None)

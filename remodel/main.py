# remodel/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlmodel import Session

from remodel import db
from remodel.config import get_settings
from remodel.errors import PortalError, StorageError, describe_validation_errors
from remodel.observability import RequestLogMiddleware
from remodel.routers.auth import router as auth_router
from remodel.routers.expenses import router as expenses_router
from remodel.routers.products import router as products_router
from remodel.routers.rooms import router as rooms_router
from remodel.routers.system import router as system_router
from remodel.routers.timeline import router as timeline_router
from remodel.routers.totals import router as totals_router
from remodel.services.users import ensure_admin

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("remodel")


def bootstrap() -> None:
    """Create missing tables and the bootstrap admin (when configured)."""
    db.create_db_and_tables()
    if not settings.has_bootstrap_admin:
        return
    with Session(db.engine) as session:
        admin = ensure_admin(
            session,
            name=settings.admin_name,
            username=settings.admin_username,
            email=settings.admin_email,
            password=settings.admin_password,
        )
    if admin is not None:
        logger.info("Bootstrap admin '%s' created", admin.username)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    bootstrap()
    yield


app = FastAPI(title="Remodel Portal", version="0.1.0", lifespan=lifespan)
app.add_middleware(RequestLogMiddleware)


# ---- error envelope: {"success": false, "error": kind, "message": ...} ----


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    if isinstance(exc, StorageError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    field, message = describe_validation_errors(exc.errors())
    payload = {"success": False, "error": "ValidationError", "message": message}
    if field:
        payload["field"] = field
    return JSONResponse(status_code=400, content=payload)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "StorageError",
            "message": "Something went wrong, please retry",
        },
    )


# Routers
app.include_router(system_router)
app.include_router(auth_router, prefix=settings.api_prefix)
app.include_router(rooms_router, prefix=settings.api_prefix)
app.include_router(products_router, prefix=settings.api_prefix)
app.include_router(expenses_router, prefix=settings.api_prefix)
app.include_router(totals_router, prefix=settings.api_prefix)
app.include_router(timeline_router, prefix=settings.api_prefix)

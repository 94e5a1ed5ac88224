# main.py

"""FastAPI application wiring for the table-ordering service."""

from __future__ import annotations

import asyncio
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings

from . import db
from .domain import DomainError
from .middlewares import LoggingMiddleware, PrometheusMiddleware, RequestIdMiddleware
from .obs import capture_exception, init_sentry
from .obs.logging import configure_logging
from .routes_auth import router as auth_router
from .routes_cart import router as cart_router
from .routes_menu import router as menu_router
from .routes_metrics import router as metrics_router
from .routes_orders import router as orders_router
from .routes_payments import router as payments_router
from .routes_tables import router as tables_router
from .services.sweeper import cart_sweeper
from .utils.responses import err, ok

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger("tableorder")
init_sentry(settings.error_dsn, settings.env)

app = FastAPI(title="tableorder", version="0.1.0")

# Last added runs first: the request id must exist before anything logs.
app.add_middleware(PrometheusMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIdMiddleware)

app.include_router(tables_router)
app.include_router(menu_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(payments_router)
app.include_router(auth_router)
app.include_router(metrics_router)

HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    log_fn = logger.warning if exc.status_code >= 500 else logger.info
    log_fn(
        "%s: %s",
        exc.code,
        exc.message,
        extra={"status": exc.status_code, "route": request.url.path},
    )
    return JSONResponse(
        err(exc.code, exc.message, exc.details), status_code=exc.status_code
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        err("VALIDATION_ERROR", "Request validation failed", {"errors": exc.errors()}),
        status_code=422,
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(
        exc.detail,
        extra={"status": exc.status_code, "route": request.url.path},
    )
    code = HTTP_CODES.get(exc.status_code, f"HTTP_{exc.status_code}")
    return JSONResponse(
        err(code, str(exc.detail)),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.exception(
        "unhandled_error", extra={"status": 500, "route": request.url.path}
    )
    capture_exception(exc)
    return JSONResponse(err("INTERNAL", "Internal Server Error"), status_code=500)


@app.on_event("startup")
async def init_database() -> None:
    cfg = get_settings()
    db.init_engine(cfg.database_url)
    if cfg.auto_create_schema:
        await db.create_schema(db.engine)
    logger.info("database ready")


@app.on_event("startup")
async def start_cart_sweeper() -> None:
    """Launch the empty-cart sweeper unless it is disabled."""

    interval = get_settings().cart_sweep_interval_secs
    if interval > 0:
        app.state.cart_sweeper = asyncio.create_task(
            cart_sweeper(db.SessionLocal, interval)
        )


@app.on_event("shutdown")
async def shutdown() -> None:
    task = getattr(app.state, "cart_sweeper", None)
    if task is not None:
        task.cancel()
    await db.dispose()


@app.get("/health")
async def health(session: AsyncSession = Depends(db.get_session)) -> dict:
    await session.execute(text("SELECT 1"))
    return ok({"status": "ok"})

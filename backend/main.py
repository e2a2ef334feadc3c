# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
FastAPI application factory.

Responsibilities
----------------
* Build the FastAPI app around an injected ``Database`` (or one opened from
  settings, which is then closed on shutdown).
* Register CORS and request-logging middleware.
* Mount the three feature routers (auth, admin, courses).
* Map every ``LmsError`` to its HTTP status with one handler.
* Expose a /health endpoint for container liveness checks.

Run with:
    uvicorn main:app
"""

import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from auth.router import router as auth_router
from admin.router import router as admin_router
from courses.router import router as courses_router
from core.config import settings
from core.errors import LmsError
from core.logger import logger
from database import Database
from services.records import UserRecord


# ---------------------------------------------------------------------------
# Request-logging middleware
# ---------------------------------------------------------------------------
# Logs every inbound request: method, path, client IP, status, latency.
# Sensitive payloads (passwords, OTP codes) are NOT echoed – only the URL
# and metadata are recorded.


class _RequestLogMiddleware(BaseHTTPMiddleware):
    """Log method, path, client IP, response status and latency (ms)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        client_ip = request.client.host if request.client else "unknown"

        logger.info(
            "%s %s | client=%s status=%d latency=%.1fms",
            request.method,
            request.url.path,
            client_ip,
            response.status_code,
            elapsed_ms,
        )
        return response


# ---------------------------------------------------------------------------
# OTP delivery
# ---------------------------------------------------------------------------


def log_only_otp_sender(user: UserRecord, code: str) -> None:
    """
    Placeholder delivery channel.  Mail delivery lives outside this service;
    deployments replace ``app.state.otp_sender``.  The code itself is never
    logged.
    """
    logger.info("OTP delivery not configured; challenge issued for user_id=%d", user.id)


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(LmsError)
    async def _lms_error(request: Request, exc: LmsError):
        if exc.http_status >= 500:
            logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
        else:
            logger.info("%s on %s", exc.code, request.url.path)
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Invalid request data",
                    "category": "validation",
                    "details": [
                        {
                            "field": ".".join(str(loc) for loc in e["loc"]),
                            "message": e["msg"],
                        }
                        for e in exc.errors()
                    ],
                }
            },
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_app(
    db: Optional[Database] = None,
    otp_sender: Callable[[UserRecord, str], None] = log_only_otp_sender,
) -> FastAPI:
    """
    Build the application.  A caller-supplied *db* stays owned by the caller;
    otherwise one is opened from settings at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "db", None) is None:
            owned = Database(
                settings.database_url,
                default_timeout=settings.transaction_timeout_seconds,
            )
            app.state.db = owned
        logger.info("LMS identity service starting up")
        yield
        logger.info("LMS identity service shutting down")
        if owned is not None:
            owned.close()
            app.state.db = None

    app = FastAPI(title="LMS Identity & Access", version="1.0.0", lifespan=lifespan)
    app.state.db = db
    app.state.otp_sender = otp_sender

    # -----------------------------------------------------------------------
    # CORS
    # -----------------------------------------------------------------------
    # In development we allow localhost:8000.  Tighten to your production
    # domain before deploying.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:8000"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(_RequestLogMiddleware)

    _register_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(courses_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()

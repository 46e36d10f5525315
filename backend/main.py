# main.py — Custor Portal API
# Features:
# - Request correlation IDs
# - Security headers
# - Opaque error codes on every failure response
# - Health check with DB verification
# - All routers registered

import os
import uuid
import time
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config import get_settings
from database import init_db, close_db, get_db_session
from errors import APIError, ERROR_CATALOGUE
from telemetry import setup_telemetry

# Logging
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
)
logger = logging.getLogger("custor-portal")

settings = get_settings()
VERSION = "1.0.0"


def _check_startup_config():
    """Log configuration gaps that change runtime behaviour"""
    warnings = []

    if not settings.smtp_configured:
        warnings.append(
            "⚠️  SMTP_USERNAME/SMTP_PASSWORD not set; password reset links will be logged instead of mailed"
        )

    if settings.environment == "production" and settings.frontend_base_url.startswith("http://localhost"):
        warnings.append("⚠️  FRONTEND_BASE_URL points at localhost in production")

    for w in warnings:
        logger.warning(w)

    return len(warnings) == 0


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 Starting Custor Portal v{VERSION}...")
    await init_db()
    logger.info("✅ Database initialized")
    _check_startup_config()
    setup_telemetry(app, environment=settings.environment)
    yield
    logger.info("🛑 Shutting down Custor Portal...")
    await close_db()


app = FastAPI(
    title="Custor Portal",
    description="Project collaboration portal: teams, projects, tasks, files, comments and notifications",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ============================================================
# CORS
# ============================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID", "X-Correlation-ID"],
    expose_headers=["X-Request-ID", "X-Correlation-ID"],
)


# ============================================================
# MIDDLEWARE: Correlation IDs + Timing
# ============================================================

@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    correlation_id = request.headers.get("X-Correlation-ID", request_id)
    request.state.request_id = request_id
    request.state.correlation_id = correlation_id

    start = time.perf_counter()
    response = await call_next(request)
    duration = time.perf_counter() - start

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Correlation-ID"] = correlation_id
    response.headers["X-Response-Time"] = f"{duration:.4f}s"

    logger.info(
        f"{request.method} {request.url.path} → {response.status_code} "
        f"({duration:.3f}s) [rid={request_id[:8]}]"
    )
    return response


# ============================================================
# MIDDLEWARE: Security Headers
# ============================================================

@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"
    return response


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

def _request_id(request: Request):
    return getattr(request.state, "request_id", None)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Field locations and messages only; raw input is never echoed back
    errors = [
        {
            "type": str(err.get("type", "unknown")),
            "loc": [str(part) for part in err.get("loc", [])],
            "msg": str(err.get("msg", "")),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "detail": ERROR_CATALOGUE["CP-VAL-001"]["message"],
            "error_code": "CP-VAL-001",
            "errors": errors,
            "request_id": _request_id(request),
        },
    )


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code},
        headers=exc.headers,
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error [rid={_request_id(request)}]: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "detail": ERROR_CATALOGUE["CP-SYS-001"]["message"],
            "error_code": "CP-SYS-001",
            "request_id": _request_id(request),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception [rid={_request_id(request)}]: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "detail": ERROR_CATALOGUE["CP-SYS-001"]["message"],
            "error_code": "CP-SYS-001",
            "request_id": _request_id(request),
        },
    )


# ============================================================
# ROUTERS
# ============================================================

from routers import (
    auth, users, teams, team_management, projects, files, tasks,
    task_assignees, task_comments, file_comments, notifications,
)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(teams.router)
app.include_router(team_management.router)
app.include_router(projects.router)
app.include_router(files.router)
app.include_router(tasks.router)
app.include_router(task_assignees.router)
app.include_router(task_comments.router)
app.include_router(file_comments.router)
app.include_router(notifications.router)


# ============================================================
# HEALTH & ROOT
# ============================================================

@app.get("/health")
async def health_check():
    """Health check with database connectivity verification"""
    db_status = "unknown"
    try:
        async for db in get_db_session():
            await db.execute(text("SELECT 1"))
            db_status = "connected"
            break
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Health check database probe failed: {e}")
        db_status = "error"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "version": VERSION,
        "environment": settings.environment,
        "database": db_status,
    }


@app.get("/")
async def root():
    return {
        "name": "Custor Portal",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health",
        "status": "operational",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=settings.environment != "production",
        workers=int(os.getenv("WORKERS", 1)),
    )

"""
AuditDesk - security audit and reporting dashboard backend

Main FastAPI application with security hardening.
"""

import logging
import os
import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.v1.api import api_router
from app.core.config import LOG_LEVEL, get_cors_allow_origins, get_trusted_hosts
from app.core.database import PersistenceGateway, init_db, close_db, get_gateway
from app.core.errors import AppError
from app.schemas.common import ErrorResponse, HealthResponse

VERSION = "1.0.0"

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan (startup/shutdown)
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    print("🚀 Starting AuditDesk...")

    await init_db()
    print("✅ Database initialized")

    yield

    # Shutdown
    print("👋 Shutting down AuditDesk...")
    await close_db()


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="AuditDesk API",
    version=VERSION,
    description="Security audit scheduling, reporting and live activity feed",
    lifespan=lifespan,
    docs_url="/docs" if os.getenv("ENABLE_DOCS", "true").lower() == "true" else None,
    redoc_url="/redoc" if os.getenv("ENABLE_DOCS", "true").lower() == "true" else None,
)


# =============================================================================
# Security Middleware
# =============================================================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable):
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if request.url.path.startswith(("/docs", "/redoc")):
            # Swagger UI loads its assets from a CDN
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "img-src 'self' data: https://fastapi.tiangolo.com"
            )
        else:
            response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        # HSTS (only enable in production with HTTPS)
        if os.getenv("ENABLE_HSTS", "false").lower() == "true":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add unique request ID for tracing."""

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get("X-Request-ID") or secrets.token_urlsafe(8)
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response


# =============================================================================
# Add Middleware (order matters - first added = last executed)
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

# Trusted hosts (prevent host header attacks)
trusted_hosts = get_trusted_hosts()
if "*" not in trusted_hosts:
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=trusted_hosts)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIDMiddleware)


# =============================================================================
# Routes
# =============================================================================

@app.get("/", tags=["root"])
def home():
    """Root endpoint."""
    return {
        "name": "AuditDesk",
        "version": VERSION,
        "docs": "/docs",
        "api": "/api",
    }


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(gateway: PersistenceGateway = Depends(get_gateway)):
    """Health check endpoint for load balancers and monitoring."""
    healthy = await gateway.ping()
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=VERSION,
        database="connected" if healthy else "unavailable",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


app.include_router(
    api_router,
    prefix="/api",
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)


# =============================================================================
# Error Handlers
# =============================================================================

def error_body(message: str, request_id: Optional[str] = None) -> dict:
    return ErrorResponse(error=message, request_id=request_id).model_dump(by_alias=True, exclude_none=True)


def _field_label(loc) -> str:
    """Wire name of the offending field, first letter upper-cased."""
    name = str(loc[-1]) if loc else "Request"
    return name[:1].upper() + name[1:]


def validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    label = _field_label(first.get("loc", ()))
    if first.get("type") == "missing":
        return f"{label} is required"
    return f"{label} is invalid: {first.get('msg', 'bad value')}"


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Known failures map onto their status code with a plain message."""
    if exc.status_code >= 500:
        logger.error("[%s] %s", getattr(request.state, "request_id", "unknown"), exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(validation_message(exc)),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to prevent information leakage."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.exception("[%s] Unhandled exception: %s", request_id, exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("An internal error occurred", request_id),
    )


# =============================================================================
# Development Server
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
        log_level=LOG_LEVEL.lower(),
    )

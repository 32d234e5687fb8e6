"""
FastAPI application for AuthSmith.

Exposes the permission-check API and the JWKS discovery document behind
rate limiting and API-key authentication.

Usage:
    uvicorn app.main:app --reload --port 8000
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from app.authorization.routes import router as authorization_router
from app.wellknown.routes import router as wellknown_router
from authsmith_core.auth.middleware import AuthMiddleware
from authsmith_core.config import settings
from authsmith_core.infrastructure.telemetry import instrument_app, setup_telemetry
from authsmith_core.logging import setup_logging
from authsmith_core.ratelimit.middleware import RateLimitMiddleware
from authsmith_core.runtime.errors import ServiceError

# Initialize logging
setup_logging()

# Initialize Telemetry (Tracing/Metrics)
setup_telemetry()

app = FastAPI(
    title="AuthSmith",
    description="Multi-tenant API key, token and permission service",
    version="1.0.0",
)

instrument_app(app)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Map typed service errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{exc!r} debug={exc.message_debug}")
    else:
        logger.info(f"{exc} on {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Middleware added last runs first: CORS, then rate limiting, then auth
app.add_middleware(AuthMiddleware, require_auth=settings.REQUIRE_AUTH)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(authorization_router)
app.include_router(wellknown_router)


@app.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
        dict: Status and service information.
    """
    return {"status": "ok", "service": settings.SERVICE_NAME, "version": "1.0.0"}

"""
Attestation Service - Main Application
======================================

FastAPI application for credit proofs, identity binding and credit scoring.

Version: 0.1.0
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from credlink import __version__
from credlink.config import settings
from credlink.errors import CredLinkError
from credlink.ledger import get_profile_store
from credlink.logging import bind_context, clear_context, get_logger, setup_logging
from credlink.models.common import ErrorResponse, HealthResponse
from credlink.zk import get_proving_backend
from services.attestation.routes import attestations, identity, loans, profiles, proofs


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="attestation",
)

logger = get_logger(__name__)

# Error code -> HTTP status
ERROR_STATUS: dict[str, int] = {
    "range_error": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "constraint_unsatisfiable": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "invalid_input": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "invalid_proof": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "malformed_proof": status.HTTP_400_BAD_REQUEST,
    "replayed_proof": status.HTTP_409_CONFLICT,
    "already_bound": status.HTTP_409_CONFLICT,
    "loan_accounting_error": status.HTTP_409_CONFLICT,
    "not_bound": status.HTTP_404_NOT_FOUND,
    "unauthorized": status.HTTP_403_FORBIDDEN,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "attestation_service_starting",
        environment=settings.environment.value,
        port=settings.ports.attestation,
    )

    # Startup
    try:
        backend = get_proving_backend()
        logger.info("proving_backend_ready", mode=backend.mode.value)

        get_profile_store()
        logger.info("profile_store_ready")

    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("attestation_service_shutting_down")


# Create FastAPI application
app = FastAPI(
    title="CredLink Attestation Service",
    description="Zero-knowledge credit attestations, identity binding and credit scoring",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next: Any) -> Any:
    """Bind a request id to every log line emitted while handling a request."""
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    bind_context(request_id=request_id, path=request.url.path)
    try:
        response = await call_next(request)
    finally:
        clear_context()
    response.headers["x-request-id"] = request_id
    return response


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Returns health status of the service and its dependencies.
    """
    backend = get_proving_backend()
    components: dict[str, dict[str, Any]] = {
        "profile_store": await get_profile_store().health_check(),
        "proving_backend": {"status": "healthy", "mode": backend.mode.value},
    }

    all_healthy = all(c.get("status") == "healthy" for c in components.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        service="attestation",
        version=__version__,
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "CredLink Attestation Service",
        "version": __version__,
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    proofs.router,
    prefix="/api/v1/proofs",
    tags=["ZK Proofs"],
)

app.include_router(
    identity.router,
    prefix="/api/v1/identity",
    tags=["Identity"],
)

app.include_router(
    attestations.router,
    prefix="/api/v1/attestations",
    tags=["Attestations"],
)

app.include_router(
    loans.router,
    prefix="/api/v1/loans",
    tags=["Lending Pool"],
)

app.include_router(
    profiles.router,
    prefix="/api/v1",
    tags=["Profiles"],
)


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(CredLinkError)
async def credlink_exception_handler(request: Request, exc: CredLinkError) -> JSONResponse:
    """Map typed engine and circuit failures to error responses."""
    status_code = ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST)

    logger.warning(
        "request_rejected",
        error_code=exc.code,
        error=exc.message,
        subject=exc.subject,
        status_code=status_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=exc.message,
            error_code=exc.code,
            details={"subject": exc.subject} if exc.subject else None,
        ).model_dump(mode="json"),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "status_code": exc.status_code,
        },
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "status_code": 500,
        },
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.attestation.main:app",
        host="0.0.0.0",
        port=settings.ports.attestation,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )

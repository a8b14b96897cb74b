"""FastAPI application entry point."""

import math
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from estate_intake.api.v1.router import api_router
from estate_intake.config import settings
from estate_intake.core.exceptions import AppError, RateLimitExceededError
from estate_intake.core.rate_limiter import InMemorySlidingWindowRateLimiter
from estate_intake.core.unified_llm import create_llm_client
from estate_intake.database.client import close_database, db_client, init_database
from estate_intake.schemas.common import ErrorResponse, HealthCheckResponse, RootResponse
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__, level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Creates the process-wide language-model client and rate limiter, and
    initializes the database.

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    LOGGER.info(
        "Starting application",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        },
    )

    app.state.llm_client = create_llm_client(settings.llm)
    app.state.rate_limiter = InMemorySlidingWindowRateLimiter(
        limit=settings.rate_limit.limit,
        window_seconds=settings.rate_limit.window_seconds,
    )

    try:
        await init_database(create_schema=settings.db.create_schema)
    except Exception as e:
        # /health reports the database as degraded
        LOGGER.error(
            "Failed to initialize database",
            exc_info=True,
            extra={"error": str(e)},
        )

    yield

    LOGGER.info("Shutting down application")
    try:
        await close_database()
    except Exception as e:
        LOGGER.error(
            "Error closing database",
            exc_info=True,
            extra={"error": str(e)},
        )


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Normalization, extraction and confirmation pipeline for real-estate intake text",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map application errors to their HTTP status."""
    if exc.status_code >= 500:
        LOGGER.error(
            "Request failed",
            exc_info=exc.original_error or exc,
            extra={"path": request.url.path, "error_type": type(exc).__name__},
        )
    else:
        LOGGER.info(
            "Request rejected",
            extra={
                "path": request.url.path,
                "status_code": exc.status_code,
                "error_type": type(exc).__name__,
            },
        )

    headers = {}
    if isinstance(exc, RateLimitExceededError) and exc.retry_after_seconds is not None:
        headers["Retry-After"] = str(max(1, math.ceil(exc.retry_after_seconds)))

    body = ErrorResponse(error=exc.message, error_type=type(exc).__name__)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers or None,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client errors (400)."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    body = ErrorResponse(
        error=f"{location}: {message}" if location else message,
        error_type="ValidationError",
    )
    return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))


@app.get(
    "/health",
    response_model=HealthCheckResponse,
    tags=["Health"],
    summary="Health check endpoint",
    description="Check if the service is running and healthy",
    operation_id="get_service_health_status",
)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint.

    Returns:
        HealthCheckResponse: Service health status
    """
    db_health = await db_client.health_check()

    return HealthCheckResponse(
        status="healthy" if db_health["status"] == "healthy" else "degraded",
        version=settings.app_version,
        service=settings.app_name,
    )


@app.get(
    "/",
    response_model=RootResponse,
    tags=["Root"],
    summary="Root endpoint",
    description="Get basic information about the API",
    operation_id="get_public_root_metadata",
)
async def root() -> RootResponse:
    return RootResponse(
        message="Server is running",
        version=settings.app_version,
        docs="/docs",
        health="/health",
    )


app.include_router(api_router, prefix=settings.api_v1_prefix)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "estate_intake.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )

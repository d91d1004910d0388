"""FastAPI application entry point."""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.api.v1.dependencies import shutdown_workflow_runner
from app.api.v1.errors import to_http_exception
from app.api.v1.router import api_router
from app.core.config import settings
from app.core.database import close_database, db_client, init_database
from app.core.exceptions import AppError
from app.schemas.common import HealthCheckResponse
from app.utils.logging import get_logger
from app.utils.responses import current_request_id

LOGGER = get_logger(__name__, level=settings.log_level)


class RootResponse(BaseModel):
    """Root endpoint response payload."""

    message: str = Field(..., description="Service status message")
    version: str = Field(..., description="Running application version")
    docs: str = Field(..., description="Path to the interactive API docs")
    health: str = Field(..., description="Path to the health check endpoint")
    workflow_backend: str = Field(..., description="Where workflow runs execute: inline or temporal")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Opens the database on startup. On shutdown, in-process workflow runs are
    drained before the engine is disposed.
    """
    LOGGER.info(
        "Starting SOA service",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "temporal_enabled": settings.temporal.enabled,
        },
    )

    await init_database(create_tables=settings.debug)

    yield

    LOGGER.info("Shutting down SOA service")
    await shutdown_workflow_runner()
    await close_database()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Statement of Advice workflow, section store and version history",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Attach a request ID and log each request with its duration."""
    request_id = request.headers.get("X-Request-Id") or str(uuid4())
    request.state.request_id = request_id
    token = current_request_id.set(request_id)
    started = time.perf_counter()

    try:
        response = await call_next(request)
    finally:
        current_request_id.reset(token)

    response.headers["X-Request-Id"] = request_id
    LOGGER.info(
        f"{request.method} {request.url.path} -> {response.status_code}",
        extra={
            "request_id": request_id,
            "duration_ms": round((time.perf_counter() - started) * 1000, 1),
        },
    )
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map application errors that escaped a route to their HTTP status."""
    http_error = to_http_exception(exc, f"{request.method} {request.url.path} failed")
    return JSONResponse(status_code=http_error.status_code, content={"detail": http_error.detail})


@app.get(
    "/health",
    response_model=HealthCheckResponse,
    tags=["Health"],
    summary="Health check endpoint",
    description="Check if the service is running and the database is reachable",
    operation_id="get_service_health_status",
)
async def health_check() -> HealthCheckResponse:
    db_health = await db_client.health_check()

    return HealthCheckResponse(
        status="healthy" if db_health["status"] == "healthy" else "degraded",
        version=settings.app_version,
        database=db_health["status"],
    )


@app.get(
    "/",
    response_model=RootResponse,
    tags=["Root"],
    summary="Root endpoint",
    operation_id="get_public_root_metadata",
)
async def root() -> RootResponse:
    return RootResponse(
        message="Server is running",
        version=settings.app_version,
        docs="/docs",
        health="/health",
        workflow_backend="temporal" if settings.temporal.enabled else "inline",
    )


app.include_router(api_router, prefix=settings.api_v1_prefix)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )

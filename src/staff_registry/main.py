# src/staff_registry/main.py
"""Main entry point for the Staff Registry application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from staff_registry.api.v1 import staff_router, system_router
from staff_registry.core.errors import StaffRegistryError
from staff_registry.core.log import configure_logging
from staff_registry.core.settings import settings
from staff_registry.db.session import SessionLocal, create_tables
from staff_registry.services.counter import ensure_counter

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="School staff registry with runtime-defined staff forms",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(staff_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.exception_handler(StaffRegistryError)
async def staff_registry_error_handler(_request: Request, exc: StaffRegistryError) -> JSONResponse:
    """Render domain errors as ``{"error", "details"}`` bodies."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s: %s", exc.message, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Answer malformed request bodies with 400 like the domain validators."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid input", "details": jsonable_encoder(exc.errors())},
    )


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    create_tables()
    db = SessionLocal()
    try:
        ensure_counter(db)
        db.commit()
    finally:
        db.close()
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "School staff registry with runtime-defined staff forms",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("staff_registry.main:app", host="0.0.0.0", port=8000, reload=settings.debug)

# src/elaro_edge/main.py
"""Main entry point for the ELARO edge functions."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from elaro_edge import __version__
from elaro_edge.api.v1 import welcome_router
from elaro_edge.core.errors import (
    INTERNAL_ERROR_MESSAGE,
    AppError,
    ConfigurationError,
    ErrorCode,
)
from elaro_edge.core.logging_config import configure_logging
from elaro_edge.core.settings import settings

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="ELARO Edge Functions",
    description="Server-to-server functions protected by signed requests",
    version=__version__,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include function routers
app.include_router(welcome_router, prefix="/functions/v1")


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Convert typed application errors to the uniform JSON error body."""
    if isinstance(exc, ConfigurationError):
        logger.error("Configuration error on %s: %s", request.url.path, exc.reason)
    else:
        logger.info(
            "Request to %s rejected: %s (%s)",
            request.url.path,
            exc.code.value,
            getattr(exc, "reason", exc.message),
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": INTERNAL_ERROR_MESSAGE, "code": ErrorCode.INTERNAL_ERROR.value},
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("elaro_edge.main:app", host="0.0.0.0", port=8000, reload=settings.debug)

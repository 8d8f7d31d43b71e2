"""DebitFlow - Main FastAPI Application

Debit sheet extraction service for a stone fabrication workshop.

This module creates and configures the FastAPI application:
- Extraction and audit log routers
- Middleware (request ID correlation, CORS)
- Exception handlers mapping domain errors to {success: false, error}
- Health endpoint
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from debitflow import __version__
from debitflow.api.v1.extraction import router as extraction_router
from debitflow.config import settings
from debitflow.database import engine
from debitflow.domain.extraction.exceptions import (
    DocumentUnreadable,
    DuplicateOrderReference,
    ExtractionError,
    ModelCallFailed,
    UnparsableReply,
    UnsupportedDocument,
)
from debitflow.models import Base
from debitflow.observability.logging_config import configure_logging
from debitflow.observability.middleware import RequestIDMiddleware

configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)

# Most specific class first; ExtractionError is the catch-all
ERROR_STATUS_CODES = (
    (DuplicateOrderReference, status.HTTP_409_CONFLICT),
    (ModelCallFailed, status.HTTP_502_BAD_GATEWAY),
    (DocumentUnreadable, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (UnparsableReply, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (UnsupportedDocument, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ExtractionError, status.HTTP_422_UNPROCESSABLE_ENTITY),
)


def status_code_for(exc: ExtractionError) -> int:
    for error_class, code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _failure(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("DebitFlow API starting up...")
    logger.info(f"Environment: {settings.ENV}")
    if settings.DB_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)

    yield

    logger.info("DebitFlow API shutting down...")


app = FastAPI(
    title="DebitFlow API",
    description="Debit sheet extraction and reconciliation for stone fabrication",
    version=__version__,
    docs_url="/docs" if settings.ENV != "production" else None,
    redoc_url="/redoc" if settings.ENV != "production" else None,
    openapi_url="/openapi.json" if settings.ENV != "production" else None,
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE CONFIGURATION
# =============================================================================

# Request ID Middleware (must be first for proper correlation)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(ExtractionError)
async def extraction_exception_handler(request: Request, exc: ExtractionError) -> JSONResponse:
    """Turn domain failures into the {success: false, error} payload."""
    code = status_code_for(exc)
    logger.warning(
        f"Extraction rejected on {request.method} {request.url.path}: {exc.message}",
        extra={"status_code": code, "error_type": exc.error_code},
    )
    return _failure(code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _failure(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors (missing file, bad query parameters)."""
    logger.warning(f"Validation error on {request.method} {request.url.path}")
    fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in exc.errors())
    return _failure(status.HTTP_422_UNPROCESSABLE_ENTITY, f"Request validation failed: {fields}")


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Log the full database error, return a generic message."""
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return _failure(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "A database error occurred. Please try again later.",
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
    return _failure(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(extraction_router, prefix="/api/v1")


@app.get("/health", tags=["health"])
async def health() -> dict[str, Any]:
    """Liveness probe."""
    return {"status": "ok", "version": __version__}

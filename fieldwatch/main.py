"""
FieldWatch Alert Hub - FastAPI Application Entry Point

Field users report incidents (photo, voice note, location) and raise SOS
alerts; the map view follows both through one live marker feed.

DESIGN PRINCIPLES:
- Firestore is the single source of truth; clients only hold snapshots
- Every write is a single create; nothing is retried behind the user's back
- An SOS is sent even when the sender's profile cannot be read
"""

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fieldwatch.config.firebase import get_document_store, get_object_store
from fieldwatch.core.errors import (
    DispatchError,
    FieldWatchError,
    IdentityUnavailable,
    LocationUnavailable,
    PermissionDenied,
    SubmissionError,
    Unauthenticated,
    UploadError,
    UploadFailureCause,
    ValidationError,
)
from fieldwatch.core.settings import settings
from fieldwatch.routes import health, map, reports, sos, uploads

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the document and object stores at startup."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    try:
        get_document_store()
        get_object_store()
    except Exception as e:
        logger.warning(f"Store initialization failed: {e}")
        logger.warning("The app will start but store operations may fail.")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Incident reports, SOS alerts and a live alert map for field users",
    debug=settings.DEBUG,
    lifespan=lifespan,
)


def _error_response(exc: FieldWatchError) -> JSONResponse:
    content = {"detail": str(exc), "error": type(exc).__name__}

    if isinstance(exc, Unauthenticated):
        status_code = status.HTTP_401_UNAUTHORIZED
        content["action"] = "login"
    elif isinstance(exc, PermissionDenied):
        status_code = status.HTTP_403_FORBIDDEN
        content["resource"] = exc.resource
        content["retryable"] = True
    elif isinstance(exc, ValidationError):
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        content["missing_fields"] = exc.missing_fields
    elif isinstance(exc, UploadError):
        content["cause"] = exc.cause.value
        if exc.cause == UploadFailureCause.PERMISSION_DENIED:
            status_code = status.HTTP_403_FORBIDDEN
        elif exc.cause == UploadFailureCause.ENCODING_FAILURE:
            status_code = status.HTTP_400_BAD_REQUEST
        else:
            status_code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(exc, SubmissionError):
        status_code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(exc, DispatchError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        content["urgent"] = True
    elif isinstance(exc, IdentityUnavailable):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        content["retryable"] = True
    elif isinstance(exc, LocationUnavailable):
        status_code = status.HTTP_504_GATEWAY_TIMEOUT
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(FieldWatchError)
async def fieldwatch_exception_handler(request: Request, exc: FieldWatchError):
    """Map domain errors to HTTP responses."""
    logger.info(f"{request.method} {request.url.path} -> {type(exc).__name__}: {exc}")
    return _error_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log request body validation errors."""
    logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them with full traceback."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}\n{traceback.format_exc()}"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": f"Internal server error: {str(exc)}"},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(health.router)
app.include_router(uploads.router)
app.include_router(reports.router)
app.include_router(sos.router)
app.include_router(map.router)


@app.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/health",
        "live_map": "/map/live",
    }

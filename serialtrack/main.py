# serialtrack/main.py
"""
Main application file for SerialTrack.
"""

import json
import logging
import os
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from serialtrack.api.api import api_router
from serialtrack.core.config import settings
from serialtrack.core.exceptions import (
    DatabaseException,
    DuplicateEntityException,
    EntityNotFoundException,
    PermissionDeniedException,
    SecurityException,
    SerialTrackException,
    StorageException,
)
from serialtrack.db.session import SessionLocal, init_db

# --- Logging Configuration ---
LOG_LEVEL_NAME = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)

logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("serialtrack")
logger.setLevel(LOG_LEVEL)
logger.info(f"Configured logger ('{logger.name}') effective level: {logging.getLevelName(logger.getEffectiveLevel())}")

# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for the SerialTrack serial-number inventory system",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
)

# Set up CORS
origins = [str(origin) for origin in settings.BACKEND_CORS_ORIGINS or [] if origin]
if not origins:
    fallback_origins = [
        "http://localhost:3000", "http://127.0.0.1:3000",
        "http://localhost:8001", "http://127.0.0.1:8001",
    ]
    logger.warning(f"No CORS origins configured in settings, using development fallbacks: {fallback_origins}")
    origins = fallback_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
    max_age=86400,
)


# --- Validation Error Handler ---
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    error_details = jsonable_encoder(exc.errors())
    logger.error(f"Request validation error on {request.method} {request.url}")
    try:
        body = await request.json()
        logger.error(f"Request Body: {json.dumps(body, indent=2)}")
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.error("Request Body: Could not parse as JSON (or empty body).")
    logger.error(f"Validation Errors:\n{json.dumps(error_details, indent=2)}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": error_details},
    )


# Domain errors that escape an endpoint's own translation
_DOMAIN_STATUS_CODES = [
    (EntityNotFoundException, status.HTTP_404_NOT_FOUND),
    (DuplicateEntityException, status.HTTP_409_CONFLICT),
    (PermissionDeniedException, status.HTTP_403_FORBIDDEN),
    (SecurityException, status.HTTP_401_UNAUTHORIZED),
    (DatabaseException, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (StorageException, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


@app.exception_handler(SerialTrackException)
async def serialtrack_exception_handler(request: Request, exc: SerialTrackException):
    status_code = status.HTTP_400_BAD_REQUEST
    for exc_type, code in _DOMAIN_STATUS_CODES:
        if isinstance(exc, exc_type):
            status_code = code
            break
    logger.warning(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "error": exc.to_dict()})


# Log requests
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = datetime.now()
    logger.info(f"-> Request: {request.method} {request.url.path}")
    try:
        response = await call_next(request)
    except Exception as e:
        process_time = (datetime.now() - start_time).total_seconds()
        logger.exception(
            f"!! Error during request processing for {request.method} {request.url.path} ({process_time:.4f}s): {e}"
        )
        raise
    process_time = (datetime.now() - start_time).total_seconds()
    logger.info(f"<- Response: {response.status_code} ({process_time:.4f}s)")
    return response


# Add security headers middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if request.method != "OPTIONS":
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
            if settings.PRODUCTION and request.url.scheme == "https":
                response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"
        return response


app.add_middleware(SecurityHeadersMiddleware)


@app.on_event("startup")
def create_tables_on_startup():
    """Create missing tables when the service starts."""
    if settings.INIT_DB_ON_STARTUP:
        init_db()


# Include the API router
app.include_router(api_router, prefix=settings.API_V1_STR)


# Root and Health Check Endpoints
@app.get("/", tags=["Root"], summary="API Root Endpoint")
def read_root():
    """Provides basic API information and links to documentation."""
    return {
        "message": "Welcome to SerialTrack API",
        "project_name": settings.PROJECT_NAME,
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "docs_url": app.docs_url,
        "redoc_url": app.redoc_url,
        "openapi_url": app.openapi_url,
    }


@app.get("/health", tags=["Health"], summary="API Health Check")
def health_check():
    """Returns the operational status of the API and its database."""
    database = "ok"
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database query failed: {e}")
        database = "unavailable"
    finally:
        db.close()
    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "timestamp": datetime.now().isoformat(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("serialtrack.main:app", host="0.0.0.0", port=8000, reload=not settings.PRODUCTION)

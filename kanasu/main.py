from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from kanasu.core.config import settings
from kanasu.core.exceptions import KanasuError
from kanasu.api.v1 import api_router
import os

# Import logging components (Loguru-based, auto-initializes on import)
from kanasu.core.logging_config import get_logger, get_correlation_id
from kanasu.core.logging_middleware import LoggingMiddleware

# Get logger for this module
logger = get_logger(__name__)

# Ensure uploads directory exists
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)


app = FastAPI(
    title="Kanasu API",
    description="Monitoring backend for anganwadi early-childhood assessments",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    allow_headers=["*"],
    max_age=600,
)

# Gzip Compression Middleware - compress responses > 1KB
app.add_middleware(GZipMiddleware, minimum_size=1000)

# Add Logging Middleware
app.add_middleware(LoggingMiddleware)

app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(KanasuError)
async def kanasu_error_handler(request: Request, exc: KanasuError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    # Malformed or missing fields are reported as 400 with the first problem named
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    detail = f"{field}: {message}" if field else message
    logger.warning(f"Request validation failed on {request.method} {request.url.path}: {detail}")
    return JSONResponse(status_code=400, content={"detail": detail})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(
        f"Unhandled error on {request.method} {request.url.path} (correlation id {get_correlation_id()})"
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.on_event("startup")
async def startup_event():
    """Application startup event handler."""
    logger.info("=" * 60)
    logger.info("Application starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Log Level: {settings.LOG_LEVEL}")
    logger.info(f"OTP bypass: {'enabled' if settings.otp_bypass else 'disabled'}")
    logger.info("=" * 60)


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event handler."""
    logger.info("=" * 60)
    logger.info("Application shutting down...")
    logger.info("=" * 60)


@app.get("/")
async def root():
    logger.debug("Root endpoint accessed")
    return {"message": "Kanasu API", "version": "1.0.0", "docs": "/docs"}


@app.get("/health")
async def health_check():
    logger.debug("Health check endpoint accessed")
    return {"status": "healthy"}

"""
Main FastAPI application
"""

from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import time
from prometheus_client import make_asgi_app, Counter, Histogram
import uuid

from app.config import settings
from app.core.context import AppContext
from app.core.exceptions import RateLimitError, TrustDinerException
from app.core.logging import setup_logging
from app.api.v1.api import api_router

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

# Prometheus metrics - use try/except to avoid duplicate registration
try:
    REQUEST_COUNT = Counter(
        "app_requests_total",
        "Total requests",
        ["method", "endpoint", "status"]
    )
    REQUEST_DURATION = Histogram(
        "app_request_duration_seconds",
        "Request duration",
        ["method", "endpoint"]
    )
except ValueError:
    # Metrics already registered, get them from registry
    from prometheus_client import REGISTRY
    REQUEST_COUNT = REGISTRY._names_to_collectors["app_requests_total"]
    REQUEST_DURATION = REGISTRY._names_to_collectors["app_request_duration_seconds"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    Path(settings.IMAGE_STORAGE_DIR).mkdir(parents=True, exist_ok=True)

    app.state.context = await AppContext.open(settings)

    yield

    # Shutdown
    logger.info("Shutting down application")
    await app.state.context.close()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Allergen-aware restaurant search and review API",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, code: str, message: str, details=None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {
                "code": code,
                "message": message,
                "details": details or {}
            }
        },
        headers=headers
    )


@app.middleware("http")
async def rate_limit_requests(request: Request, call_next):
    """
    Coarse per-IP fixed-window limit over the API, production only
    """
    context = getattr(request.app.state, "context", None)
    if context is None:
        return await call_next(request)

    config = context.settings
    if not (config.is_production and config.RATE_LIMIT_ENABLED):
        return await call_next(request)
    if not request.url.path.startswith(config.API_PREFIX):
        return await call_next(request)

    client_ip = request.client.host if request.client else "unknown"
    allowed, remaining, reset_at = await context.cache.rate_limit(
        f"ip:{client_ip}",
        config.RATE_LIMIT_MAX_REQUESTS,
        config.RATE_LIMIT_WINDOW_SECONDS
    )
    headers = {
        "X-RateLimit-Limit": str(config.RATE_LIMIT_MAX_REQUESTS),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(int(reset_at)),
    }
    if not allowed:
        logger.warning(f"Rate limit exceeded for {client_ip}")
        exc = RateLimitError(config.RATE_LIMIT_MAX_REQUESTS, config.RATE_LIMIT_WINDOW_SECONDS)
        return error_response(exc.status_code, exc.code, exc.message, exc.details, headers=headers)

    response = await call_next(request)
    response.headers.update(headers)
    return response


# Request tracking middleware
@app.middleware("http")
async def track_requests(request: Request, call_next):
    """
    Track request metrics and add request ID
    """
    # Generate request ID
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    # Track request timing
    start_time = time.time()

    response = await call_next(request)

    # Calculate request duration
    duration = time.time() - start_time

    # Record metrics
    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).inc()

    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=request.url.path
    ).observe(duration)

    # Add headers
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(duration)

    return response


# Exception handlers
@app.exception_handler(TrustDinerException)
async def trustdiner_exception_handler(request: Request, exc: TrustDinerException):
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}", extra={"path": request.url.path})
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return error_response(400, "VALIDATION_ERROR", "Invalid input data", {"errors": errors})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(404, "NOT_FOUND", "The requested resource was not found")
    return error_response(exc.status_code, "HTTP_ERROR", str(exc.detail), headers=exc.headers)


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    error_id = str(uuid.uuid4())
    logger.error(f"Internal server error {error_id}: {exc}", exc_info=True, extra={"error_id": error_id})

    context = getattr(request.app.state, "context", None)
    config = context.settings if context else settings
    content = {
        "success": False,
        "error": {
            "code": "INTERNAL_ERROR",
            "message": "An internal server error occurred",
            "details": {} if config.is_production else {"exception": f"{type(exc).__name__}: {exc}"}
        },
        "error_id": error_id
    }
    return JSONResponse(status_code=500, content=content)


# Health check endpoints
@app.get("/health/live")
async def liveness():
    """Kubernetes liveness probe"""
    return {"status": "alive"}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.APP_ENV,
        "api_docs": "/docs" if settings.DEBUG else None
    }


# Include routers
app.include_router(api_router, prefix=settings.API_PREFIX)

# Imported photos
app.mount(
    settings.IMAGE_PUBLIC_PREFIX,
    StaticFiles(directory=settings.IMAGE_STORAGE_DIR, check_dir=False),
    name="images"
)

# Mount Prometheus metrics endpoint
if settings.PROMETHEUS_ENABLED:
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )

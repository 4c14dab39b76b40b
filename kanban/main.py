"""FastAPI application entry point."""

import logging
import traceback
from contextlib import asynccontextmanager

from arq.connections import create_pool
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .database import async_session_maker, warmup_connection_pool
from .exceptions import KanbanError
from .routers import (
    auth_router,
    projects_router,
    roles_router,
    settings_router,
    stages_router,
    users_router,
)
from .services.mail_service import MailService
from .services.notification_service import (
    ArqNotifier,
    InlineNotifier,
    NullNotifier,
    drain_background_tasks,
)
from .services.settings_service import SettingsCache
from .worker import parse_redis_url

# Configure logging to show errors
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _envelope(status_code: int, message: str, details=None) -> dict:
    return {"statusCode": status_code, "message": message, "details": details or {}}


async def _connect_notifier(app: FastAPI, cache: SettingsCache):
    """Pick the notification channel: arq queue, in-process mail, or nothing."""
    if not settings.notifications_enabled:
        logger.info("Notifications disabled")
        return NullNotifier()

    logger.info("Connecting to Redis job queue...")
    try:
        pool = await create_pool(parse_redis_url(settings.redis_url))
        app.state.arq_pool = pool
        logger.info("Redis job queue connected")
        return ArqNotifier(pool)
    except Exception as e:
        if settings.redis_required:
            logger.error(f"Redis connection failed and REDIS_REQUIRED=true: {e}")
            raise RuntimeError(
                f"Redis is required for the notification queue but connection failed: {e}"
            )
        logger.warning(f"Redis connection failed, sending notifications in-process: {e}")
        return InlineNotifier(MailService(cache))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown tasks."""
    # Startup
    logger.info("Warming up database connection pool...")
    await warmup_connection_pool()
    logger.info("Database connection pool ready")

    logger.info("Loading runtime settings...")
    cache = SettingsCache(async_session_maker)
    await cache.load()
    app.state.settings_cache = cache

    app.state.arq_pool = None
    app.state.notifier = await _connect_notifier(app, cache)

    yield

    # Shutdown
    logger.info("Waiting for pending notifications...")
    await drain_background_tasks(timeout=10)

    if app.state.arq_pool is not None:
        logger.info("Disconnecting from Redis...")
        await app.state.arq_pool.close()
        logger.info("Redis disconnected")


# Create FastAPI application
app = FastAPI(
    title="Kanban Workflow API",
    description="Six-stage project workflow with audit trail and notifications",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception handlers
# ============================================================================


@app.exception_handler(KanbanError)
async def kanban_error_handler(request: Request, exc: KanbanError):
    """Render domain errors as the standard envelope."""
    logger.info(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(_envelope(exc.status_code, exc.message, exc.details)),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder(
            _envelope(422, "Validation failed", {"errors": exc.errors()})
        ),
    )


# Database pool exhaustion handler - return 503 so clients can retry
@app.exception_handler(SQLAlchemyTimeoutError)
async def db_pool_exhausted_handler(request: Request, exc: SQLAlchemyTimeoutError):
    """Handle database connection pool exhaustion with 503 Service Unavailable."""
    logger.warning(
        f"Database pool exhausted on {request.method} {request.url}: {exc}"
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_envelope(503, "Service temporarily unavailable. Please retry.", {"retry_after": 5}),
        headers={"Retry-After": "5"},
    )


# Global exception handler to log errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log all unhandled exceptions with full traceback."""
    logger.error(f"Unhandled exception on {request.method} {request.url}:")
    logger.error(f"Exception type: {type(exc).__name__}")
    logger.error(f"Traceback:\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=500,
        content=_envelope(500, "Internal server error"),
    )


# Include API routers
app.include_router(auth_router)
app.include_router(projects_router)
app.include_router(stages_router)
app.include_router(roles_router)
app.include_router(users_router)
app.include_router(settings_router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {
        "status": "healthy",
        "service": "Kanban Workflow API",
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint for monitoring."""
    notifier = getattr(request.app.state, "notifier", None)
    return {
        "status": "healthy",
        "notifier": type(notifier).__name__ if notifier is not None else None,
    }

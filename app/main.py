"""FastAPI application factory and startup configuration.

Public routes (browse, search, my listings, submit) are open; the admin router
is protected with `dependencies=[RequireApiKey]`. /health and /docs stay public
for container healthchecks and local development.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.core.exceptions import (
    AuthenticationRequiredError,
    NotFoundError,
    StateConflictError,
    StorageError,
    ValidationError,
)
from app.core.logging import setup_logging, get_logger, set_correlation_id
from app.api.v1.listings import router as listings_router
from app.api.v1.admin_listings import router as admin_listings_router
from app.api.deps import RequireApiKey
from app.api.responses import fail, ok

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown events."""
    setup_logging()
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)

    if not settings.api_key:
        logger.warning(
            "API_KEY not configured — admin endpoints will refuse every request. "
            "Set API_KEY in .env before going to production."
        )
    if not settings.notification_webhook_url:
        logger.info("NOTIFICATION_WEBHOOK_URL not set; moderation decisions are only logged")

    yield

    logger.info("Shutting down %s", settings.app_name)


def _error_handler(status_code: int, log_level: str = "info"):
    async def handler(request: Request, exc: Exception):
        getattr(logger, log_level)("%s: %s", type(exc).__name__, exc)
        return JSONResponse(status_code=status_code, content=fail(str(exc), request))
    return handler


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Property listing backend — public submissions, moderation, and publishing.",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def add_trace_id(request: Request, call_next):
        request.state.trace_id = set_correlation_id()
        response = await call_next(request)
        response.headers["X-Trace-Id"] = request.state.trace_id
        return response

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        trace_id = getattr(request.state, "trace_id", None)
        logger.exception("Unhandled exception [trace_id=%s]", trace_id, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=fail("Internal error", request, errors=["Internal server error"]),
        )

    application.add_exception_handler(ValidationError, _error_handler(400))
    application.add_exception_handler(AuthenticationRequiredError, _error_handler(401))
    application.add_exception_handler(NotFoundError, _error_handler(404))
    application.add_exception_handler(StateConflictError, _error_handler(409))
    application.add_exception_handler(StorageError, _error_handler(503, "error"))

    application.include_router(listings_router, prefix="/api/v1/listings", tags=["listings"])
    application.include_router(
        admin_listings_router,
        prefix="/api/v1/admin/listings",
        tags=["admin"],
        dependencies=[RequireApiKey],
    )

    @application.get("/health", tags=["system"])
    async def health_check(request: Request):
        from sqlalchemy import text
        from app.database import async_session_factory

        db_status = "ok"
        try:
            async with async_session_factory() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            db_status = f"error: {str(e)}"

        return ok(
            {
                "status": "healthy" if db_status == "ok" else "unhealthy",
                "version": settings.app_version,
                "database": db_status,
            },
            "Health check completed",
            request,
        )

    return application


app = create_app()

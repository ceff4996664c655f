"""
Taskard API Server

Entry point for the FastAPI application.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from app.core.config import get_settings
from app.core.database import check_db
from app.core.errors import AppError
from app.core.logging import configure_logging
from app.core.middleware import CSRFMiddleware, RequestContextMiddleware, SecurityHeadersMiddleware
from app.core.redis import close_redis, ping_redis
from app.api.v1 import router as api_v1_router
from app.api.v1.auth import router as auth_router
from app.tasks.scheduler import Scheduler
from app.tasks.sweeps import default_jobs

settings = get_settings()
log = structlog.get_logger()

INTERNAL_ERROR_MESSAGE = "Something went wrong on our end. Please try again later."
UNIQUE_VIOLATION = "23505"


def _error(status_code: int, status: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": status, "message": message})


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        msg = str(err.get("msg", "")).removeprefix("Value error, ")
        field = next((str(p) for p in reversed(err.get("loc", ())) if isinstance(p, str)), None)
        if field and field not in ("body", "query", "path"):
            msg = f"{field}: {msg}"
        messages.append(msg)
    return "Invalid input data. " + ". ".join(messages)


def _is_unique_violation(exc: IntegrityError) -> bool:
    # asyncpg reports SQLSTATE 23505; SQLite only says so in the message.
    code = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION
    return "unique" in str(exc.orig).lower()


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            log.error("request.dependency_failed", error=exc.message, error_type=type(exc).__name__)
        return _error(exc.status_code, exc.status, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(400, "fail", _validation_message(exc))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        log.warning("request.integrity_error", error=str(exc.orig))
        if _is_unique_violation(exc):
            return _error(409, "fail", "Duplicate value. Please use another value")
        return _error(400, "fail", "Invalid input data. A required value is missing or invalid")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log.exception("request.unhandled_error", error_type=type(exc).__name__)
        message = str(exc) if settings.debug else INTERNAL_ERROR_MESSAGE
        return _error(500, "error", message)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Taskard",
        description="Multi-tenant project and task tracking for teams.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    register_exception_handlers(app)

    # Middleware (last added is outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token", "X-Request-ID"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check: database and Redis must both answer."""
        checks = {}
        for name, probe in (("database", check_db), ("redis", ping_redis)):
            try:
                checks[name] = "ok" if await probe() else "down"
            except Exception as exc:
                log.warning("ready.check_failed", dependency=name, error=str(exc))
                checks[name] = "down"
        if all(v == "ok" for v in checks.values()):
            return {"status": "ready", "checks": checks}
        return JSONResponse(status_code=503, content={"status": "unavailable", "checks": checks})

    @app.on_event("startup")
    async def on_startup():
        log.info("taskard.starting", environment=settings.environment)
        if settings.scheduler_enabled:
            app.state.scheduler = Scheduler(default_jobs())
            app.state.scheduler.start()

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("taskard.shutting_down")
        scheduler = getattr(app.state, "scheduler", None)
        if scheduler is not None:
            await scheduler.stop()
        await close_redis()

    return app


app = create_app()

"""FastAPI application entry point.

Run with:
    uvicorn tourney.main:create_app --factory
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware

from tourney import __version__
from tourney.api import admin, tournaments, users, wallet
from tourney.config import API_V1_PREFIX, Settings, get_settings
from tourney.logging_config import bind_request, configure_logging, get_logger, unbind_request
from tourney.middleware.maintenance import MaintenanceMiddleware
from tourney.schemas import ERROR_RESPONSES, ErrorResponse
from tourney.utils.db import create_engine_from_settings, create_session_factory, init_db
from tourney.utils.errors import ErrorCode, TourneyError
from tourney.utils.json_utils import ORJSONResponse

logger = get_logger(__name__)

# HTTP status per error code; unknown codes map to 400
ERROR_STATUS: dict[str, int] = {
    ErrorCode.INTERNAL_ERROR.value: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.INVALID_REQUEST.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INSUFFICIENT_FUNDS.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.UNAUTHORIZED.value: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN.value: status.HTTP_403_FORBIDDEN,
    ErrorCode.FEATURE_DISABLED.value: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.ALREADY_JOINED.value: status.HTTP_409_CONFLICT,
    ErrorCode.TOURNAMENT_FULL.value: status.HTTP_409_CONFLICT,
    ErrorCode.TOURNAMENT_NOT_JOINABLE.value: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_STATE.value: status.HTTP_409_CONFLICT,
    ErrorCode.CONTENTION.value: status.HTTP_409_CONFLICT,
    ErrorCode.MAINTENANCE_MODE.value: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request id, bind it to the log context and echo it back."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        bind_request(request_id)
        try:
            start_time = datetime.now(timezone.utc)
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id

            duration = (datetime.now(timezone.utc) - start_time).total_seconds()
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration=round(duration, 3),
            )
            return response
        finally:
            unbind_request()


def get_request_id(request: Request) -> str:
    """Get request ID from request state or headers."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return request.headers.get("X-Request-ID", str(uuid.uuid4()))


def create_error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    trace_id: str | None = None,
) -> dict[str, Any]:
    """Create standardized error response."""
    return ErrorResponse.build(code, message, details, trace_id)


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(TourneyError)
    async def tourney_error_handler(request: Request, exc: TourneyError) -> ORJSONResponse:
        """Handle platform errors."""
        trace_id = get_request_id(request)
        status_code = ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST)

        logger.warning(
            "request_failed",
            code=exc.code,
            message=exc.message,
            status_code=status_code,
            recoverable=exc.recoverable,
            trace_id=trace_id,
        )

        return ORJSONResponse(
            status_code=status_code,
            content=create_error_response(**exc.to_dict(), trace_id=trace_id),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> ORJSONResponse:
        """Handle HTTP exceptions."""
        trace_id = get_request_id(request)

        if isinstance(exc.detail, dict) and "error" in exc.detail:
            content = dict(exc.detail)
            content["traceId"] = trace_id
        else:
            content = create_error_response(
                code="HTTP_ERROR",
                message=str(exc.detail),
                trace_id=trace_id,
            )

        return ORJSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
        """Handle unexpected exceptions."""
        trace_id = get_request_id(request)

        logger.error(
            "unexpected_error",
            error_type=type(exc).__name__,
            error_message=str(exc),
            trace_id=trace_id,
            exc_info=True,
        )

        message = "Internal server error"
        if settings.app_debug:
            message = f"{type(exc).__name__}: {exc}"

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=create_error_response(
                code=ErrorCode.INTERNAL_ERROR.value,
                message=message,
                trace_id=trace_id,
            ),
        )


def create_app(
    settings: Settings | None = None,
    engine: AsyncEngine | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Configuration (defaults to environment settings)
        engine: Engine to use (built from settings when omitted)
        session_factory: Session factory (built from the engine when omitted)
    """
    settings = settings or get_settings()
    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.app_env == "production",
        app_env=settings.app_env,
    )

    owns_engine = engine is None
    engine = engine or create_engine_from_settings(settings)
    session_factory = session_factory or create_session_factory(engine)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        """Create tables on startup and dispose the pool on shutdown."""
        logger.info("application_starting", env=settings.app_env)
        await init_db(engine)
        logger.info("database_ready")

        yield

        logger.info("application_stopping")
        if owns_engine:
            await engine.dispose()

    app = FastAPI(
        title="Tourney API",
        version=__version__,
        description="Tournament entry platform with multi-bucket wallets",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory

    # Added last runs first: RequestID wraps CORS wraps Maintenance
    app.add_middleware(MaintenanceMiddleware, session_factory=session_factory)

    cors_origins = [origin.strip() for origin in settings.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    app.add_middleware(RequestIDMiddleware)

    _register_exception_handlers(app, settings)

    app.include_router(users.router, prefix=API_V1_PREFIX, responses=ERROR_RESPONSES)
    app.include_router(wallet.router, prefix=API_V1_PREFIX, responses=ERROR_RESPONSES)
    app.include_router(tournaments.router, prefix=API_V1_PREFIX, responses=ERROR_RESPONSES)
    app.include_router(admin.router, prefix=API_V1_PREFIX, responses=ERROR_RESPONSES)

    @app.get("/health", tags=["Health"], summary="Health check endpoint")
    async def health_check() -> dict[str, Any]:
        """Check application health including database connectivity."""
        health_status: dict[str, Any] = {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "services": {"database": "unknown"},
        }
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            health_status["services"]["database"] = "healthy"
        except Exception as e:
            health_status["services"]["database"] = f"unhealthy: {e}"
            health_status["status"] = "degraded"
            logger.error("database_health_check_failed", error=str(e))
        return health_status

    return app


def run() -> None:
    """Console entry point."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "tourney.main:create_app",
        factory=True,
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
    )

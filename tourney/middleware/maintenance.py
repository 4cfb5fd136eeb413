"""Maintenance mode middleware.

While AppSettings.maintenance_mode is on, participant requests are answered
with 503. Health, docs and admin routes stay reachable so an admin can switch
the flag back off.
"""

from typing import Callable

from fastapi import Request, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware

from tourney.config import API_V1_PREFIX
from tourney.logging_config import get_logger
from tourney.models.settings import APP_SETTINGS_ID, AppSettings
from tourney.schemas.common import ErrorResponse
from tourney.utils.errors import MaintenanceModeError
from tourney.utils.json_utils import ORJSONResponse

logger = get_logger(__name__)


class MaintenanceMiddleware(BaseHTTPMiddleware):
    """Block non-exempt requests during maintenance.

    The session factory is taken from ``app.state`` at request time unless one
    is passed explicitly.
    """

    # Paths allowed during maintenance
    EXEMPT_PATHS: set[str] = {
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json",
    }
    EXEMPT_PREFIXES: tuple[str, ...] = (
        "/health",
        f"{API_V1_PREFIX}/admin",
    )

    def __init__(
        self,
        app: Callable,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        super().__init__(app)
        self._session_factory = session_factory

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Check maintenance mode before processing request."""
        path = request.url.path
        if self._is_exempt_path(path):
            return await call_next(request)

        session_factory = self._session_factory or getattr(
            request.app.state, "session_factory", None
        )
        if session_factory is None:
            return await call_next(request)

        try:
            is_maintenance = await self._check_maintenance_mode(session_factory)
        except Exception as e:
            # Fail open: a settings read error must not take the API down
            logger.warning("maintenance_check_failed", error=str(e))
            return await call_next(request)

        if is_maintenance:
            logger.info("maintenance_request_blocked", method=request.method, path=path)
            error = MaintenanceModeError()
            return ORJSONResponse(
                status_code=503,
                content=ErrorResponse.build(
                    **error.to_dict(),
                    trace_id=getattr(request.state, "request_id", None),
                ),
                headers={
                    "Retry-After": "300",
                },
            )

        return await call_next(request)

    def _is_exempt_path(self, path: str) -> bool:
        if path in self.EXEMPT_PATHS:
            return True
        return path.startswith(self.EXEMPT_PREFIXES)

    @staticmethod
    async def _check_maintenance_mode(
        session_factory: async_sessionmaker[AsyncSession],
    ) -> bool:
        async with session_factory() as session:
            row = await session.get(AppSettings, APP_SETTINGS_ID)
        return bool(row and row.maintenance_mode)

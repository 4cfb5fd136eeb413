"""API dependencies for authentication and service wiring."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tourney.config import Settings
from tourney.context import RequestContext
from tourney.logging_config import bind_caller
from tourney.services.join import JoinCoordinator
from tourney.services.payments import PaymentService
from tourney.services.settings import SettingsService
from tourney.services.tournament import TournamentService
from tourney.services.user import UserService
from tourney.utils.errors import ForbiddenError
from tourney.utils.security import TokenError, verify_access_token

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.session_factory


AppConfig = Annotated[Settings, Depends(get_app_settings)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "error": {
                "code": code,
                "message": message,
                "details": {},
            }
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_request_context(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    config: AppConfig,
    session_factory: SessionFactory,
) -> RequestContext:
    """Build the caller's context from the bearer token (required auth).

    Raises:
        HTTPException: If not authenticated or token invalid
    """
    if not credentials:
        raise _unauthorized("AUTH_REQUIRED", "Authentication required")

    try:
        payload = verify_access_token(credentials.credentials, config)
    except TokenError as e:
        raise _unauthorized(e.code, e.message)

    user_id = payload["sub"]
    async with session_factory() as session:
        is_admin = await SettingsService(session, config).is_admin(
            user_id,
            has_admin_claim=payload.get("admin") is True,
        )

    trace_id = getattr(request.state, "request_id", None)
    ctx = (
        RequestContext(user_id=user_id, is_admin=is_admin, trace_id=trace_id)
        if trace_id
        else RequestContext(user_id=user_id, is_admin=is_admin)
    )
    bind_caller(ctx)
    return ctx


async def get_admin_context(
    ctx: Annotated[RequestContext, Depends(get_request_context)],
) -> RequestContext:
    """Require the admin capability."""
    if not ctx.is_admin:
        raise ForbiddenError()
    return ctx


def get_join_coordinator(session_factory: SessionFactory, config: AppConfig) -> JoinCoordinator:
    return JoinCoordinator(session_factory, config)


def get_payment_service(session_factory: SessionFactory, config: AppConfig) -> PaymentService:
    return PaymentService(session_factory, config)


def get_tournament_service(
    session_factory: SessionFactory,
    config: AppConfig,
) -> TournamentService:
    return TournamentService(session_factory, config)


def get_user_service(session_factory: SessionFactory, config: AppConfig) -> UserService:
    return UserService(session_factory, config)


async def get_db_session(session_factory: SessionFactory):
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Type aliases for cleaner annotations
CurrentContext = Annotated[RequestContext, Depends(get_request_context)]
AdminContext = Annotated[RequestContext, Depends(get_admin_context)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Joins = Annotated[JoinCoordinator, Depends(get_join_coordinator)]
Payments = Annotated[PaymentService, Depends(get_payment_service)]
Tournaments = Annotated[TournamentService, Depends(get_tournament_service)]
Users = Annotated[UserService, Depends(get_user_service)]

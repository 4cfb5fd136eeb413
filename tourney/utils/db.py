"""Database connection, session management and optimistic transactions."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import UniqueConstraint
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm.exc import StaleDataError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from tourney.config import Settings
from tourney.logging_config import get_logger
from tourney.models import Base
from tourney.utils.errors import ContentionError

logger = get_logger(__name__)

T = TypeVar("T")

# Version-check failures on UPDATE
VERSION_CONFLICTS: tuple[type[Exception], ...] = (StaleDataError,)


class ConcurrentUpdateError(Exception):
    """Another transaction committed to a record this attempt read."""


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Build an async engine. SQLite URLs skip the pool sizing options."""
    if settings.database_url.startswith("sqlite"):
        return create_async_engine(
            settings.database_url,
            echo=settings.db_echo,
            connect_args={"timeout": 30},
        )
    return create_async_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        echo=settings.db_echo,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create tables if missing and verify the connection."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _unique_constraint(name: str) -> UniqueConstraint:
    for table in Base.metadata.tables.values():
        for constraint in table.constraints:
            if isinstance(constraint, UniqueConstraint) and constraint.name == name:
                return constraint
    raise KeyError(f"No unique constraint named {name!r}")


def is_unique_violation(exc: IntegrityError, name: str) -> bool:
    """True if ``exc`` was raised by the unique constraint called ``name``.

    PostgreSQL reports the constraint name; SQLite reports the key columns.
    """
    orig = exc.orig
    for source in (orig, getattr(orig, "__cause__", None)):
        if getattr(source, "constraint_name", None) == name:
            return True

    message = str(orig)
    if f'"{name}"' in message:
        return True
    constraint = _unique_constraint(name)
    columns = ", ".join(
        f"{constraint.table.name}.{column.name}" for column in constraint.columns
    )
    return f"UNIQUE constraint failed: {columns}" in message


def _log_conflict(operation: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        logger.warning(
            "optimistic_conflict_retry",
            operation=operation,
            attempt=retry_state.attempt_number,
            sleep=round(retry_state.next_action.sleep, 3) if retry_state.next_action else 0,
        )

    return before_sleep


async def run_optimistic(
    operation: str,
    fn: Callable[[AsyncSession], Awaitable[T]],
    *,
    session_factory: async_sessionmaker[AsyncSession],
    max_attempts: int,
    base_delay: float = 0.0,
    max_delay: float = 0.0,
    conflicts: tuple[type[Exception], ...] = VERSION_CONFLICTS,
    unique_keys: tuple[str, ...] = (),
) -> T:
    """Run ``fn`` in one atomic transaction, retrying on optimistic conflicts.

    Every attempt gets a fresh session, so all reads inside ``fn`` see the
    latest committed state. Any exception raised by ``fn`` rolls the attempt
    back; only conflicts are retried.

    Args:
        operation: Name used in logs and in ContentionError details
        fn: Transaction body, receives the attempt's session
        session_factory: Session factory bound to the store
        max_attempts: Total attempts before giving up
        base_delay: Multiplier for jittered exponential back-off (seconds)
        max_delay: Upper bound for a single back-off sleep (seconds)
        conflicts: Exception types that signal a lost optimistic race
        unique_keys: Unique constraint names whose violation means a
            concurrent insert won; any other IntegrityError propagates

    Raises:
        ContentionError: If every attempt hit a conflict
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_random_exponential(multiplier=base_delay, max=max_delay),
        retry=retry_if_exception_type(ConcurrentUpdateError),
        before_sleep=_log_conflict(operation),
    )

    try:
        async for attempt in retrying:
            with attempt:
                async with session_factory() as session:
                    try:
                        async with session.begin():
                            result = await fn(session)
                    except conflicts as exc:
                        raise ConcurrentUpdateError(operation) from exc
                    except IntegrityError as exc:
                        if not any(is_unique_violation(exc, key) for key in unique_keys):
                            raise
                        raise ConcurrentUpdateError(operation) from exc
                return result
    except RetryError as exc:
        logger.warning(
            "optimistic_retries_exhausted",
            operation=operation,
            attempts=max_attempts,
        )
        raise ContentionError(operation, max_attempts) from exc

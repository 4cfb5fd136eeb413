"""Shared test fixtures.

Service and API tests run against a throwaway SQLite file per test, opened
through aiosqlite with NullPool so every session gets its own connection.
"""

import os
from collections.abc import AsyncGenerator
from typing import Any
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./tourney-test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-testing-only-0123456789")

from tourney.config import Settings  # noqa: E402
from tourney.context import RequestContext  # noqa: E402
from tourney.models import (  # noqa: E402
    APP_SETTINGS_ID,
    AppSettings,
    Base,
    Tournament,
    TournamentParticipant,
    TournamentStatus,
    User,
    Wallet,
    WalletTransaction,
)
from tourney.main import create_app  # noqa: E402
from tourney.utils.security import create_access_token  # noqa: E402


# =============================================================================
# Test Settings
# =============================================================================


def get_test_settings(database_url: str, **overrides: Any) -> Settings:
    """Get test-specific settings."""
    values: dict[str, Any] = {
        "app_env": "test",
        "app_debug": False,
        "log_level": "WARNING",
        "database_url": database_url,
        "jwt_secret_key": "test-secret-key-for-testing-only-0123456789",
    }
    values.update(overrides)
    return Settings(**values)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'tourney.db'}"


@pytest.fixture
def test_settings(database_url: str) -> Settings:
    return get_test_settings(database_url)


@pytest_asyncio.fixture(scope="function")
async def test_engine(database_url: str):
    """Create a test database engine with fresh tables for each test."""
    engine = create_async_engine(
        database_url,
        poolclass=NullPool,
        connect_args={"timeout": 30},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session for assertions; commits on success like production."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# =============================================================================
# Context Fixtures
# =============================================================================


@pytest.fixture
def admin_ctx() -> RequestContext:
    return RequestContext(user_id="admin-1", is_admin=True)


# =============================================================================
# Seeding Helpers
# =============================================================================


@pytest.fixture
def create_user(session_factory):
    """Factory inserting a user with a wallet holding the given balances."""

    async def _create(
        user_id: str | None = None,
        *,
        deposit: int = 0,
        winning: int = 0,
        bonus: int = 0,
        referral_code: str | None = None,
    ) -> str:
        user_id = user_id or f"user-{uuid4().hex[:8]}"
        async with session_factory() as session:
            async with session.begin():
                session.add(
                    User(
                        id=user_id,
                        username=user_id,
                        email=f"{user_id}@example.com",
                        referral_code=referral_code or uuid4().hex[:6].upper(),
                    )
                )
                await session.flush()
                session.add(
                    Wallet(user_id=user_id, deposit=deposit, winning=winning, bonus=bonus)
                )
        return user_id

    return _create


@pytest.fixture
def create_tournament(session_factory):
    """Factory inserting a tournament."""

    async def _create(
        *,
        entry_fee: int = 0,
        max_players: int = 10,
        current_players: int = 0,
        status: TournamentStatus = TournamentStatus.UPCOMING,
        join_fee_priority: list[str] | None = None,
        name: str = "Sunday Cup",
    ) -> str:
        tournament = Tournament(
            name=name,
            entry_fee=entry_fee,
            max_players=max_players,
            current_players=current_players,
            status=status,
            join_fee_priority=join_fee_priority,
            created_by="admin-1",
        )
        async with session_factory() as session:
            async with session.begin():
                session.add(tournament)
        return tournament.id

    return _create


@pytest.fixture
def save_app_settings(session_factory):
    """Factory writing the AppSettings row."""

    async def _save(**fields: Any) -> None:
        async with session_factory() as session:
            async with session.begin():
                row = await session.get(AppSettings, APP_SETTINGS_ID)
                if row is None:
                    row = AppSettings(id=APP_SETTINGS_ID)
                    session.add(row)
                for key, value in fields.items():
                    setattr(row, key, value)

    return _save


@pytest.fixture
def load(session_factory):
    """Read back wallet, tournament and ledger state after a test action."""

    class Loader:
        async def wallet(self, user_id: str) -> dict[str, int]:
            async with session_factory() as session:
                result = await session.execute(select(Wallet).where(Wallet.user_id == user_id))
                wallet = result.scalar_one()
                return {"deposit": wallet.deposit, "winning": wallet.winning, "bonus": wallet.bonus}

        async def tournament(self, tournament_id: str) -> Tournament:
            async with session_factory() as session:
                return await session.get(Tournament, tournament_id)

        async def participants(self, tournament_id: str) -> list[TournamentParticipant]:
            async with session_factory() as session:
                result = await session.execute(
                    select(TournamentParticipant).where(
                        TournamentParticipant.tournament_id == tournament_id
                    )
                )
                return list(result.scalars().all())

        async def transactions(self, user_id: str) -> list[WalletTransaction]:
            async with session_factory() as session:
                result = await session.execute(
                    select(WalletTransaction).where(WalletTransaction.user_id == user_id)
                )
                return list(result.scalars().all())

        async def user(self, user_id: str) -> User | None:
            async with session_factory() as session:
                return await session.get(User, user_id)

    return Loader()


# =============================================================================
# HTTP Fixtures
# =============================================================================


@pytest.fixture
def app(test_settings, test_engine, session_factory):
    """Application wired to the per-test database."""
    return create_app(
        settings=test_settings,
        engine=test_engine,
        session_factory=session_factory,
    )


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers(test_settings):
    """Bearer headers for a user id, optionally carrying the admin claim."""

    def _headers(user_id: str, *, admin: bool = False) -> dict[str, str]:
        token = create_access_token(user_id, admin=admin, settings=test_settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers

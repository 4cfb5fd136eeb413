"""Tournament management.

Admins create, copy, delete and move tournaments through their lifecycle.
Occupancy is never written here; only the join coordinator raises
current_players.
"""

from datetime import timedelta
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tourney.config import Settings, get_settings
from tourney.context import RequestContext
from tourney.logging_config import get_logger
from tourney.models.base import utc_now
from tourney.models.tournament import (
    Tournament,
    TournamentParticipant,
    TournamentStatus,
)
from tourney.models.wallet import WalletTransaction
from tourney.services.capacity import load_tournament
from tourney.utils.db import run_optimistic
from tourney.utils.errors import InvalidRequestError, InvalidStateError

logger = get_logger(__name__)

CREATABLE_FIELDS = frozenset(
    {
        "name",
        "tournament_type",
        "game",
        "map_name",
        "entry_fee",
        "prize_pool",
        "per_kill",
        "max_players",
        "join_fee_priority",
        "start_time",
        "end_time",
    }
)

# Fields carried over when an admin copies a tournament
COPIED_FIELDS = (
    "tournament_type",
    "game",
    "map_name",
    "entry_fee",
    "prize_pool",
    "per_kill",
    "max_players",
    "join_fee_priority",
)


class TournamentService:
    """Tournament CRUD and status transitions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.config = config or get_settings()

    async def _run(self, operation: str, fn):
        return await run_optimistic(
            operation,
            fn,
            session_factory=self.session_factory,
            max_attempts=self.config.join_max_attempts,
            base_delay=self.config.join_retry_base_delay,
            max_delay=self.config.join_retry_max_delay,
        )

    async def create(self, ctx: RequestContext, data: dict[str, Any]) -> Tournament:
        """Create an upcoming tournament with no players.

        Raises:
            ForbiddenError: Caller is not an admin
            InvalidRequestError: Unknown or invalid fields
        """
        ctx.require_admin()
        unknown = set(data) - CREATABLE_FIELDS
        if unknown:
            raise InvalidRequestError(
                "Unknown tournament fields",
                details={"fields": sorted(unknown)},
            )
        if "name" not in data or "max_players" not in data:
            raise InvalidRequestError("name and max_players are required")

        tournament = self._build(ctx.user_id, data)

        async def body(session: AsyncSession) -> Tournament:
            session.add(tournament)
            await session.flush()
            return tournament

        created = await self._run("create_tournament", body)
        logger.info(
            "tournament_created",
            tournament_id=created.id,
            name=created.name,
            max_players=created.max_players,
            entry_fee=created.entry_fee,
            admin_id=ctx.user_id,
        )
        return created

    async def copy(self, ctx: RequestContext, tournament_id: str) -> Tournament:
        """Duplicate a tournament as a fresh upcoming one starting in 24 hours."""
        ctx.require_admin()

        async with self.session_factory() as session:
            source = await load_tournament(session, tournament_id)

        now = utc_now()
        data = {field: getattr(source, field) for field in COPIED_FIELDS}
        data["name"] = f"{source.name} (Copy)"
        data["start_time"] = now + timedelta(hours=24)
        data["end_time"] = now + timedelta(hours=25)
        tournament = self._build(ctx.user_id, data)

        async def body(session: AsyncSession) -> Tournament:
            session.add(tournament)
            await session.flush()
            return tournament

        copied = await self._run("copy_tournament", body)
        logger.info(
            "tournament_copied",
            source_id=tournament_id,
            tournament_id=copied.id,
            admin_id=ctx.user_id,
        )
        return copied

    async def change_status(
        self,
        ctx: RequestContext,
        tournament_id: str,
        status: TournamentStatus | str,
    ) -> Tournament:
        """Move a tournament to ``status``.

        Allowed: upcoming -> ongoing -> finished, and upcoming/ongoing ->
        cancelled. Finished and cancelled are terminal.

        Raises:
            InvalidStateError: The transition is not allowed
        """
        ctx.require_admin()
        try:
            target = TournamentStatus(status)
        except ValueError as exc:
            raise InvalidRequestError(
                f"Unknown tournament status: {status}",
                details={"status": str(status)},
            ) from exc

        async def body(session: AsyncSession) -> Tournament:
            tournament = await load_tournament(session, tournament_id)
            current = tournament.status
            if not current.can_transition_to(target):
                raise InvalidStateError(
                    f"Cannot move tournament from {current.value} to {target.value}",
                    details={
                        "tournamentId": tournament_id,
                        "from": current.value,
                        "to": target.value,
                    },
                )
            tournament.status = target
            await session.flush()
            return tournament

        tournament = await self._run("change_tournament_status", body)
        logger.info(
            "tournament_status_changed",
            tournament_id=tournament_id,
            status=target.value,
            admin_id=ctx.user_id,
        )
        return tournament

    async def delete(self, ctx: RequestContext, tournament_id: str) -> None:
        """Remove a tournament nobody has paid to enter.

        Free entries are removed with it. Ledger entries that mention the
        tournament keep their history but lose the reference.

        Raises:
            NotFoundError: Tournament does not exist
            InvalidStateError: At least one entrant paid a fee
        """
        ctx.require_admin()

        async def body(session: AsyncSession) -> int:
            tournament = await load_tournament(session, tournament_id)
            paid = await session.scalar(
                select(func.count())
                .select_from(TournamentParticipant)
                .where(
                    TournamentParticipant.tournament_id == tournament_id,
                    TournamentParticipant.paid_deposit
                    + TournamentParticipant.paid_winning
                    + TournamentParticipant.paid_bonus
                    > 0,
                )
            )
            if paid:
                raise InvalidStateError(
                    "Tournament has paid entrants",
                    details={"tournamentId": tournament_id, "paidEntrants": paid},
                )

            removed = await session.execute(
                delete(TournamentParticipant)
                .where(TournamentParticipant.tournament_id == tournament_id)
                .execution_options(synchronize_session=False)
            )
            await session.execute(
                update(WalletTransaction)
                .where(WalletTransaction.tournament_id == tournament_id)
                .values(tournament_id=None)
                .execution_options(synchronize_session=False)
            )
            # Version-checked, so a join committed since the read forces a retry
            await session.delete(tournament)
            await session.flush()
            return removed.rowcount

        removed = await self._run("delete_tournament", body)
        logger.info(
            "tournament_deleted",
            tournament_id=tournament_id,
            free_entries_removed=removed,
            admin_id=ctx.user_id,
        )

    async def get(self, tournament_id: str) -> Tournament:
        async with self.session_factory() as session:
            return await load_tournament(session, tournament_id)

    async def list_tournaments(
        self,
        status: TournamentStatus | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Tournament]:
        """Tournaments ordered by start time, optionally filtered by status."""
        query = (
            select(Tournament)
            .order_by(Tournament.start_time.asc(), Tournament.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        if status is not None:
            query = query.where(Tournament.status == status)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def participants(
        self,
        ctx: RequestContext,
        tournament_id: str,
    ) -> list[TournamentParticipant]:
        ctx.require_admin()
        async with self.session_factory() as session:
            await load_tournament(session, tournament_id)
            result = await session.execute(
                select(TournamentParticipant)
                .where(TournamentParticipant.tournament_id == tournament_id)
                .order_by(TournamentParticipant.joined_at.asc())
            )
            return list(result.scalars().all())

    async def joined_by_user(self, ctx: RequestContext) -> list[Tournament]:
        """Tournaments the caller has joined, most recent join first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Tournament)
                .join(
                    TournamentParticipant,
                    TournamentParticipant.tournament_id == Tournament.id,
                )
                .where(TournamentParticipant.user_id == ctx.user_id)
                .order_by(TournamentParticipant.joined_at.desc())
            )
            return list(result.scalars().all())

    @staticmethod
    def _build(created_by: str, data: dict[str, Any]) -> Tournament:
        try:
            return Tournament(
                **data,
                status=TournamentStatus.UPCOMING,
                current_players=0,
                created_by=created_by,
            )
        except (TypeError, ValueError) as exc:
            raise InvalidRequestError(str(exc)) from exc

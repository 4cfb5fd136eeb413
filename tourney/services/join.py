"""Tournament join coordinator.

A join debits the entrant's wallet, creates the participant record and raises
the tournament's occupancy as one atomic unit.

The spot is claimed with one conditional UPDATE that only matches while the
tournament has room and accepts joins. Concurrent joiners queue on that row
instead of failing a version check, so a full tournament answers
TournamentFullError no matter how many joins race for it. The wallet row is
version-checked; a lost race on it (or on the participant key) is retried
against fresh state, and after the configured number of attempts the caller
gets ContentionError.

Failure at any step rolls the attempt back; a failed join leaves no trace.
"""

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tourney.config import Settings, get_settings
from tourney.context import RequestContext
from tourney.logging_config import get_logger
from tourney.models.tournament import (
    JOINABLE_STATUSES,
    PARTICIPANT_UNIQUE_KEY,
    Tournament,
    TournamentParticipant,
)
from tourney.models.wallet import Bucket, TransactionType
from tourney.services.allocator import allocate
from tourney.services.capacity import check_capacity, ensure_capacity, has_joined, load_tournament
from tourney.services.settings import SettingsService
from tourney.services.wallet import WalletService
from tourney.utils.db import run_optimistic
from tourney.utils.errors import (
    AlreadyJoinedError,
    MaintenanceModeError,
    TournamentNotJoinableError,
)

logger = get_logger(__name__)


class JoinCoordinator:
    """Runs tournament joins as optimistic transactions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.config = config or get_settings()

    async def join_tournament(
        self,
        ctx: RequestContext,
        tournament_id: str,
    ) -> TournamentParticipant:
        """Join ``tournament_id`` as ``ctx.user_id``.

        Returns:
            The committed participant record

        Raises:
            NotFoundError: Tournament or wallet does not exist
            AlreadyJoinedError: User already holds a participant record
            TournamentFullError: No spot left
            TournamentNotJoinableError: Tournament is finished or cancelled
            MaintenanceModeError: Maintenance mode is on
            InsufficientFundsError: Buckets cannot cover the entry fee
            ContentionError: Every attempt lost an optimistic race
        """
        async with self.session_factory() as session:
            await check_capacity(session, tournament_id, ctx.user_id)

        async def attempt(session: AsyncSession) -> TournamentParticipant:
            return await self._join_once(session, ctx.user_id, tournament_id)

        participant = await run_optimistic(
            "join_tournament",
            attempt,
            session_factory=self.session_factory,
            max_attempts=self.config.join_max_attempts,
            base_delay=self.config.join_retry_base_delay,
            max_delay=self.config.join_retry_max_delay,
            unique_keys=(PARTICIPANT_UNIQUE_KEY,),
        )

        logger.info(
            "tournament_joined",
            user_id=ctx.user_id,
            tournament_id=tournament_id,
            fee=participant.amount_paid,
            trace_id=ctx.trace_id,
        )
        return participant

    async def _join_once(
        self,
        session: AsyncSession,
        user_id: str,
        tournament_id: str,
    ) -> TournamentParticipant:
        tournament = await load_tournament(session, tournament_id)
        if await has_joined(session, tournament_id, user_id):
            raise AlreadyJoinedError(tournament_id)
        if not tournament.status.is_joinable:
            raise TournamentNotJoinableError(tournament_id, tournament.status.value)

        settings_service = SettingsService(session, self.config)
        app_settings = await settings_service.get()
        if app_settings.maintenance_mode:
            raise MaintenanceModeError()
        priority = await settings_service.join_fee_priority(tournament)

        wallets = WalletService(session)
        wallet = await wallets.get_wallet(user_id)
        plan = allocate(tournament.entry_fee, priority, wallet.balances())
        wallets.apply_plan(wallet, plan)

        await self._claim_spot(session, tournament_id)

        participant = TournamentParticipant(
            tournament_id=tournament_id,
            user_id=user_id,
            status="active",
            paid_deposit=plan.amount_for(Bucket.DEPOSIT),
            paid_winning=plan.amount_for(Bucket.WINNING),
            paid_bonus=plan.amount_for(Bucket.BONUS),
        )
        session.add(participant)

        if plan.total > 0:
            wallets.record(
                user_id,
                TransactionType.TOURNAMENT_JOIN,
                plan.total,
                tournament_id=tournament_id,
                description=f"Joined tournament: {tournament.name}",
            )

        await session.flush()
        return participant

    @staticmethod
    async def _claim_spot(session: AsyncSession, tournament_id: str) -> None:
        """Raise occupancy by one if the tournament still has room.

        Raises:
            TournamentFullError: Every spot is taken
            TournamentNotJoinableError: The tournament closed meanwhile
            NotFoundError: The tournament was deleted meanwhile
        """
        result = await session.execute(
            update(Tournament)
            .where(
                Tournament.id == tournament_id,
                Tournament.current_players < Tournament.max_players,
                Tournament.status.in_(JOINABLE_STATUSES),
            )
            .values(
                current_players=Tournament.current_players + 1,
                version=Tournament.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        tournament = await load_tournament(session, tournament_id)
        ensure_capacity(tournament)
        raise TournamentNotJoinableError(tournament_id, tournament.status.value)

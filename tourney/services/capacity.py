"""Tournament capacity gate.

Read-only checks run before any money moves: the tournament must exist, accept
joins, have a free spot, and not already list the user. The join coordinator
runs the same checks again inside its transaction.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tourney.models.tournament import Tournament, TournamentParticipant
from tourney.utils.errors import (
    AlreadyJoinedError,
    NotFoundError,
    TournamentFullError,
    TournamentNotJoinableError,
)


def ensure_joinable(tournament: Tournament, already_joined: bool) -> None:
    """Raise if the user may not join ``tournament``.

    Check order: existing participation, then occupancy, then status.
    """
    if already_joined:
        raise AlreadyJoinedError(tournament.id)
    ensure_capacity(tournament)
    if not tournament.status.is_joinable:
        raise TournamentNotJoinableError(tournament.id, tournament.status.value)


def ensure_capacity(tournament: Tournament) -> None:
    if tournament.current_players >= tournament.max_players:
        raise TournamentFullError(tournament.id, tournament.max_players)


async def load_tournament(session: AsyncSession, tournament_id: str) -> Tournament:
    tournament = await session.get(Tournament, tournament_id, populate_existing=True)
    if tournament is None:
        raise NotFoundError("tournament", tournament_id)
    return tournament


async def has_joined(session: AsyncSession, tournament_id: str, user_id: str) -> bool:
    result = await session.execute(
        select(TournamentParticipant.id).where(
            TournamentParticipant.tournament_id == tournament_id,
            TournamentParticipant.user_id == user_id,
        )
    )
    return result.first() is not None


async def check_capacity(
    session: AsyncSession,
    tournament_id: str,
    user_id: str,
) -> Tournament:
    """Run the gate against the current store state. Performs no writes."""
    tournament = await load_tournament(session, tournament_id)
    ensure_joinable(tournament, await has_joined(session, tournament_id, user_id))
    return tournament

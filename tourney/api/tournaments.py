"""Tournament API endpoints for participants.

Endpoints:
- GET /tournaments - List tournaments, optionally by status
- GET /tournaments/joined - Tournaments the caller has joined
- GET /tournaments/{tournament_id} - Tournament details
- POST /tournaments/{tournament_id}/join - Pay the entry fee and join
"""

from fastapi import APIRouter, Query, status

from tourney.api.deps import CurrentContext, Joins, Tournaments
from tourney.models import TournamentStatus
from tourney.schemas import ParticipantResponse, TournamentResponse

router = APIRouter(prefix="/tournaments", tags=["Tournaments"])


@router.get("", response_model=list[TournamentResponse])
async def list_tournaments(
    ctx: CurrentContext,
    tournaments: Tournaments,
    status_filter: TournamentStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> list[TournamentResponse]:
    items = await tournaments.list_tournaments(status_filter, limit=limit, offset=offset)
    return [TournamentResponse.from_model(t) for t in items]


@router.get("/joined", response_model=list[TournamentResponse])
async def list_joined(ctx: CurrentContext, tournaments: Tournaments) -> list[TournamentResponse]:
    items = await tournaments.joined_by_user(ctx)
    return [TournamentResponse.from_model(t) for t in items]


@router.get("/{tournament_id}", response_model=TournamentResponse)
async def get_tournament(
    tournament_id: str,
    ctx: CurrentContext,
    tournaments: Tournaments,
) -> TournamentResponse:
    tournament = await tournaments.get(tournament_id)
    return TournamentResponse.from_model(tournament)


@router.post(
    "/{tournament_id}/join",
    response_model=ParticipantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def join_tournament(
    tournament_id: str,
    ctx: CurrentContext,
    joins: Joins,
) -> ParticipantResponse:
    """Join a tournament.

    The entry fee is split across the wallet buckets in the tournament's
    spend order (or the app default) and charged atomically with the
    registration.
    """
    participant = await joins.join_tournament(ctx, tournament_id)
    return ParticipantResponse.from_model(participant)

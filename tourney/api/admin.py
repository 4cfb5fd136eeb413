"""Admin API endpoints.

Every route requires the admin capability (token claim or settings
allow-list).

Endpoints:
- POST /admin/tournaments - Create tournament
- POST /admin/tournaments/{id}/copy - Duplicate tournament
- POST /admin/tournaments/{id}/status - Change tournament status
- DELETE /admin/tournaments/{id} - Delete a tournament without paid entrants
- GET /admin/tournaments/{id}/participants - List participants
- GET /admin/transactions - List transactions by type/status
- POST /admin/transactions/{id}/approve - Approve pending deposit/withdrawal
- POST /admin/transactions/{id}/reject - Reject pending deposit/withdrawal
- POST /admin/prizes - Credit a prize
- GET /admin/users - List users, newest first, with optional search
- GET /admin/settings - Read app settings
- PUT /admin/settings - Update app settings
"""

from fastapi import APIRouter, Query, status

from tourney.api.deps import AdminContext, AppConfig, DbSession, Payments, Tournaments, Users
from tourney.models import TransactionStatus, TransactionType
from tourney.schemas import (
    AwardPrizeRequest,
    ChangeStatusRequest,
    CreateTournamentRequest,
    ParticipantResponse,
    SettingsResponse,
    TournamentResponse,
    TransactionResponse,
    UpdateSettingsRequest,
    UserResponse,
)
from tourney.services.settings import SettingsService

router = APIRouter(prefix="/admin", tags=["Admin"])


# ============================================================
# Tournaments
# ============================================================


@router.post(
    "/tournaments",
    response_model=TournamentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_tournament(
    request_data: CreateTournamentRequest,
    ctx: AdminContext,
    tournaments: Tournaments,
) -> TournamentResponse:
    tournament = await tournaments.create(ctx, request_data.model_dump())
    return TournamentResponse.from_model(tournament)


@router.post(
    "/tournaments/{tournament_id}/copy",
    response_model=TournamentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def copy_tournament(
    tournament_id: str,
    ctx: AdminContext,
    tournaments: Tournaments,
) -> TournamentResponse:
    """Duplicate a tournament; the copy starts in 24 hours with no players."""
    tournament = await tournaments.copy(ctx, tournament_id)
    return TournamentResponse.from_model(tournament)


@router.post("/tournaments/{tournament_id}/status", response_model=TournamentResponse)
async def change_tournament_status(
    tournament_id: str,
    request_data: ChangeStatusRequest,
    ctx: AdminContext,
    tournaments: Tournaments,
) -> TournamentResponse:
    tournament = await tournaments.change_status(ctx, tournament_id, request_data.status)
    return TournamentResponse.from_model(tournament)


@router.delete("/tournaments/{tournament_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tournament(
    tournament_id: str,
    ctx: AdminContext,
    tournaments: Tournaments,
):
    """Delete a tournament. Refused once anyone has paid to enter it."""
    await tournaments.delete(ctx, tournament_id)


@router.get(
    "/tournaments/{tournament_id}/participants",
    response_model=list[ParticipantResponse],
)
async def list_participants(
    tournament_id: str,
    ctx: AdminContext,
    tournaments: Tournaments,
) -> list[ParticipantResponse]:
    participants = await tournaments.participants(ctx, tournament_id)
    return [ParticipantResponse.from_model(p) for p in participants]


# ============================================================
# Transactions
# ============================================================


@router.get("/transactions", response_model=list[TransactionResponse])
async def list_transactions(
    ctx: AdminContext,
    payments: Payments,
    tx_type: TransactionType | None = Query(None, alias="type"),
    tx_status: TransactionStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> list[TransactionResponse]:
    """All transactions, newest first."""
    transactions = await payments.list_transactions(
        ctx,
        tx_type=tx_type,
        status=tx_status,
        limit=limit,
        offset=offset,
    )
    return [TransactionResponse.from_model(tx) for tx in transactions]


@router.post("/transactions/{transaction_id}/approve", response_model=TransactionResponse)
async def approve_transaction(
    transaction_id: str,
    ctx: AdminContext,
    payments: Payments,
) -> TransactionResponse:
    """Approve a pending deposit (credits deposit) or withdrawal."""
    tx = await payments.approve(ctx, transaction_id)
    return TransactionResponse.from_model(tx)


@router.post("/transactions/{transaction_id}/reject", response_model=TransactionResponse)
async def reject_transaction(
    transaction_id: str,
    ctx: AdminContext,
    payments: Payments,
) -> TransactionResponse:
    """Reject a pending deposit, or a withdrawal (refunds into winnings)."""
    tx = await payments.reject(ctx, transaction_id)
    return TransactionResponse.from_model(tx)


@router.post(
    "/prizes",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def award_prize(
    request_data: AwardPrizeRequest,
    ctx: AdminContext,
    payments: Payments,
) -> TransactionResponse:
    tx = await payments.award_prize(
        ctx,
        request_data.user_id,
        request_data.amount,
        tournament_id=request_data.tournament_id,
        description=request_data.description,
    )
    return TransactionResponse.from_model(tx)


# ============================================================
# Users
# ============================================================


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    ctx: AdminContext,
    users: Users,
    search: str | None = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> list[UserResponse]:
    """Users newest first; ``search`` matches username or email."""
    found = await users.list_users(ctx, search, limit=limit, offset=offset)
    return [UserResponse.from_model(user) for user in found]


# ============================================================
# Settings
# ============================================================


@router.get("/settings", response_model=SettingsResponse)
async def get_settings(
    ctx: AdminContext,
    session: DbSession,
    config: AppConfig,
) -> SettingsResponse:
    app_settings = await SettingsService(session, config).get()
    return SettingsResponse.from_model(app_settings)


@router.put("/settings", response_model=SettingsResponse)
async def update_settings(
    request_data: UpdateSettingsRequest,
    ctx: AdminContext,
    session: DbSession,
    config: AppConfig,
) -> SettingsResponse:
    """Update the fields present in the request body."""
    changes = {
        key: value
        for key, value in request_data.model_dump(exclude_unset=True).items()
        if value is not None or key.endswith("_url")
    }
    app_settings = await SettingsService(session, config).update(changes)
    await session.commit()
    return SettingsResponse.from_model(app_settings)

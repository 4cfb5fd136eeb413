"""API response schemas."""

from datetime import datetime

from pydantic import Field

from tourney.models import (
    AppSettings,
    Tournament,
    TournamentParticipant,
    TournamentStatus,
    TournamentType,
    TransactionStatus,
    TransactionType,
    User,
    Wallet,
    WalletTransaction,
)
from tourney.schemas.common import BaseSchema


# =============================================================================
# User Responses
# =============================================================================


class UserResponse(BaseSchema):
    """User profile."""

    id: str
    username: str
    email: str
    referral_code: str = Field(..., alias="referralCode")
    referred_by: str | None = Field(None, alias="referredBy")
    created_at: datetime = Field(..., alias="createdAt")
    last_login: datetime | None = Field(None, alias="lastLogin")

    @classmethod
    def from_model(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            referral_code=user.referral_code,
            referred_by=user.referred_by,
            created_at=user.created_at,
            last_login=user.last_login,
        )


# =============================================================================
# Wallet Responses
# =============================================================================


class WalletResponse(BaseSchema):
    """Bucket balances."""

    deposit: int
    winning: int
    bonus: int
    total: int

    @classmethod
    def from_model(cls, wallet: Wallet) -> "WalletResponse":
        return cls(**wallet.to_dict())


class TransactionResponse(BaseSchema):
    """Ledger entry."""

    id: str
    user_id: str = Field(..., alias="userId")
    type: TransactionType
    status: TransactionStatus
    amount: int
    tournament_id: str | None = Field(None, alias="tournamentId")
    description: str | None = None
    created_at: datetime = Field(..., alias="createdAt")
    processed_at: datetime | None = Field(None, alias="processedAt")

    @classmethod
    def from_model(cls, tx: WalletTransaction) -> "TransactionResponse":
        return cls(
            id=tx.id,
            user_id=tx.user_id,
            type=tx.tx_type,
            status=tx.status,
            amount=tx.amount,
            tournament_id=tx.tournament_id,
            description=tx.description,
            created_at=tx.created_at,
            processed_at=tx.processed_at,
        )


# =============================================================================
# Tournament Responses
# =============================================================================


class TournamentResponse(BaseSchema):
    """Tournament details."""

    id: str
    name: str
    type: TournamentType
    game: str | None = None
    map_name: str | None = Field(None, alias="map")
    entry_fee: int = Field(..., alias="entryFee")
    prize_pool: int = Field(..., alias="prizePool")
    per_kill: int = Field(..., alias="perKill")
    max_players: int = Field(..., alias="maxPlayers")
    current_players: int = Field(..., alias="currentPlayers")
    spots_left: int = Field(..., alias="spotsLeft")
    status: TournamentStatus
    join_fee_priority: list[str] | None = Field(None, alias="joinFeePriority")
    start_time: datetime | None = Field(None, alias="startTime")
    end_time: datetime | None = Field(None, alias="endTime")
    created_by: str = Field(..., alias="createdBy")
    created_at: datetime = Field(..., alias="createdAt")

    @classmethod
    def from_model(cls, tournament: Tournament) -> "TournamentResponse":
        return cls(
            id=tournament.id,
            name=tournament.name,
            type=tournament.tournament_type,
            game=tournament.game,
            map_name=tournament.map_name,
            entry_fee=tournament.entry_fee,
            prize_pool=tournament.prize_pool,
            per_kill=tournament.per_kill,
            max_players=tournament.max_players,
            current_players=tournament.current_players,
            spots_left=tournament.spots_left,
            status=tournament.status,
            join_fee_priority=tournament.join_fee_priority,
            start_time=tournament.start_time,
            end_time=tournament.end_time,
            created_by=tournament.created_by,
            created_at=tournament.created_at,
        )


class ParticipantResponse(BaseSchema):
    """Participant record with the per-bucket fee breakdown."""

    id: str
    tournament_id: str = Field(..., alias="tournamentId")
    user_id: str = Field(..., alias="userId")
    status: str
    joined_at: datetime = Field(..., alias="joinedAt")
    paid: dict[str, int]
    amount_paid: int = Field(..., alias="amountPaid")

    @classmethod
    def from_model(cls, participant: TournamentParticipant) -> "ParticipantResponse":
        return cls(
            id=participant.id,
            tournament_id=participant.tournament_id,
            user_id=participant.user_id,
            status=participant.status,
            joined_at=participant.joined_at,
            paid={
                "deposit": participant.paid_deposit,
                "winning": participant.paid_winning,
                "bonus": participant.paid_bonus,
            },
            amount_paid=participant.amount_paid,
        )


# =============================================================================
# Settings Responses
# =============================================================================


class SettingsResponse(BaseSchema):
    """App settings."""

    app_name: str = Field(..., alias="appName")
    maintenance_mode: bool = Field(..., alias="maintenanceMode")
    deposit_enabled: bool = Field(..., alias="depositEnabled")
    withdrawal_enabled: bool = Field(..., alias="withdrawalEnabled")
    default_join_fee_priority: list[str] = Field(..., alias="defaultJoinFeePriority")
    admin_uids: list[str] = Field(..., alias="adminUids")
    whatsapp_url: str | None = Field(None, alias="whatsappUrl")
    facebook_url: str | None = Field(None, alias="facebookUrl")
    youtube_url: str | None = Field(None, alias="youtubeUrl")

    @classmethod
    def from_model(cls, settings: AppSettings) -> "SettingsResponse":
        return cls(**settings.to_dict())

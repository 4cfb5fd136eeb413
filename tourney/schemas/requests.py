"""API request schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from tourney.models.tournament import TournamentStatus, TournamentType, validate_priority


def _check_priority(v: list[str] | None) -> list[str] | None:
    if v is None:
        return None
    return [bucket.value for bucket in validate_priority(v)]


# =============================================================================
# User Requests
# =============================================================================


class RegisterRequest(BaseModel):
    """Profile creation for an authenticated identity."""

    email: EmailStr = Field(..., description="User email address")
    username: str | None = Field(
        None,
        min_length=2,
        max_length=50,
        description="Display name (defaults to the email local part)",
    )
    referral_code: str | None = Field(
        None,
        min_length=6,
        max_length=6,
        description="Referral code of the inviting user",
    )


class LinkReferralRequest(BaseModel):
    """Link a referrer after registration."""

    code: str = Field(..., min_length=6, max_length=6)


# =============================================================================
# Wallet Requests
# =============================================================================


class AmountRequest(BaseModel):
    """Deposit or withdrawal request."""

    amount: int = Field(..., gt=0, description="Amount in whole currency units")
    description: str | None = Field(None, max_length=500)


# =============================================================================
# Admin Requests
# =============================================================================


class CreateTournamentRequest(BaseModel):
    """Tournament creation request."""

    name: str = Field(..., min_length=1, max_length=200)
    tournament_type: TournamentType = TournamentType.SOLO
    game: str | None = Field(None, max_length=100)
    map_name: str | None = Field(None, max_length=100)
    entry_fee: int = Field(0, ge=0)
    prize_pool: int = Field(0, ge=0)
    per_kill: int = Field(0, ge=0)
    max_players: int = Field(..., gt=0)
    join_fee_priority: list[str] | None = Field(
        None,
        description="Spend order override, e.g. ['bonus', 'winning', 'deposit']",
    )
    start_time: datetime | None = None
    end_time: datetime | None = None

    @field_validator("join_fee_priority")
    @classmethod
    def validate_join_fee_priority(cls, v: list[str] | None) -> list[str] | None:
        """Priority must name every wallet bucket exactly once."""
        return _check_priority(v)


class ChangeStatusRequest(BaseModel):
    """Tournament status change."""

    status: TournamentStatus


class AwardPrizeRequest(BaseModel):
    """Credit a prize to a user's winning bucket."""

    user_id: str = Field(..., min_length=1, max_length=128)
    amount: int = Field(..., gt=0)
    tournament_id: str | None = None
    description: str | None = Field(None, max_length=500)


class UpdateSettingsRequest(BaseModel):
    """Partial update of app settings. Omitted fields are left unchanged."""

    app_name: str | None = Field(None, min_length=1, max_length=100)
    maintenance_mode: bool | None = None
    deposit_enabled: bool | None = None
    withdrawal_enabled: bool | None = None
    default_join_fee_priority: list[str] | None = None
    admin_uids: list[str] | None = None
    whatsapp_url: str | None = Field(None, max_length=500)
    facebook_url: str | None = Field(None, max_length=500)
    youtube_url: str | None = Field(None, max_length=500)

    @field_validator("default_join_fee_priority")
    @classmethod
    def validate_default_priority(cls, v: list[str] | None) -> list[str] | None:
        return _check_priority(v)

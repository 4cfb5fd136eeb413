"""Pydantic schemas for API requests and responses."""

from tourney.schemas.common import ERROR_RESPONSES, BaseSchema, ErrorDetail, ErrorResponse
from tourney.schemas.requests import (
    AmountRequest,
    AwardPrizeRequest,
    ChangeStatusRequest,
    CreateTournamentRequest,
    LinkReferralRequest,
    RegisterRequest,
    UpdateSettingsRequest,
)
from tourney.schemas.responses import (
    ParticipantResponse,
    SettingsResponse,
    TournamentResponse,
    TransactionResponse,
    UserResponse,
    WalletResponse,
)

__all__ = [
    # Common
    "BaseSchema",
    "ERROR_RESPONSES",
    "ErrorDetail",
    "ErrorResponse",
    # Requests
    "AmountRequest",
    "AwardPrizeRequest",
    "ChangeStatusRequest",
    "CreateTournamentRequest",
    "LinkReferralRequest",
    "RegisterRequest",
    "UpdateSettingsRequest",
    # Responses
    "ParticipantResponse",
    "SettingsResponse",
    "TournamentResponse",
    "TransactionResponse",
    "UserResponse",
    "WalletResponse",
]

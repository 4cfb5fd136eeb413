"""Database models."""

from tourney.models.base import Base, TimestampMixin, UUIDMixin
from tourney.models.settings import APP_SETTINGS_ID, AppSettings
from tourney.models.tournament import (
    JOINABLE_STATUSES,
    PARTICIPANT_UNIQUE_KEY,
    STATUS_TRANSITIONS,
    Tournament,
    TournamentParticipant,
    TournamentStatus,
    TournamentType,
    validate_priority,
)
from tourney.models.user import User
from tourney.models.wallet import (
    Bucket,
    TransactionStatus,
    TransactionType,
    Wallet,
    WalletTransaction,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # User
    "User",
    # Wallet
    "Bucket",
    "Wallet",
    "WalletTransaction",
    "TransactionType",
    "TransactionStatus",
    # Tournament
    "Tournament",
    "TournamentParticipant",
    "TournamentStatus",
    "TournamentType",
    "JOINABLE_STATUSES",
    "PARTICIPANT_UNIQUE_KEY",
    "STATUS_TRANSITIONS",
    "validate_priority",
    # Settings
    "AppSettings",
    "APP_SETTINGS_ID",
]

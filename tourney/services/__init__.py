"""Business services."""

from tourney.services.allocator import AllocationPlan, allocate
from tourney.services.join import JoinCoordinator
from tourney.services.payments import PaymentService
from tourney.services.settings import SettingsService
from tourney.services.tournament import TournamentService
from tourney.services.user import UserService
from tourney.services.wallet import WalletService

__all__ = [
    "AllocationPlan",
    "allocate",
    "JoinCoordinator",
    "PaymentService",
    "SettingsService",
    "TournamentService",
    "UserService",
    "WalletService",
]

"""Exception classes for platform errors.

Provides structured error handling with error codes and user-friendly messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    MAINTENANCE_MODE = "MAINTENANCE_MODE"
    FEATURE_DISABLED = "FEATURE_DISABLED"

    # Wallet errors
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"

    # Tournament errors
    ALREADY_JOINED = "ALREADY_JOINED"
    TOURNAMENT_FULL = "TOURNAMENT_FULL"
    TOURNAMENT_NOT_JOINABLE = "TOURNAMENT_NOT_JOINABLE"

    # Transaction errors
    INVALID_STATE = "INVALID_STATE"
    CONTENTION = "CONTENTION"


class TourneyError(Exception):
    """Base exception for platform errors.

    Attributes:
        code: Error code for programmatic handling
        message: User-friendly error message
        details: Additional error details
        recoverable: Whether retrying the request later may succeed
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Fields of the API error envelope."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidRequestError(TourneyError):
    """Raised when input or a stored record fails validation."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code=ErrorCode.INVALID_REQUEST,
            message=message,
            details=details,
            recoverable=False,
        )


class NotFoundError(TourneyError):
    """Raised when a user, tournament or transaction does not exist."""

    def __init__(self, kind: str, identifier: str):
        super().__init__(
            code=ErrorCode.NOT_FOUND,
            message=f"{kind.capitalize()} not found: {identifier}",
            details={"kind": kind, "id": identifier},
            recoverable=False,
        )


class ForbiddenError(TourneyError):
    """Raised when the caller lacks the admin capability."""

    def __init__(self, message: str = "Admin privileges required"):
        super().__init__(
            code=ErrorCode.FORBIDDEN,
            message=message,
            recoverable=False,
        )


class InsufficientFundsError(TourneyError):
    """Raised when the wallet buckets cannot cover a charge."""

    def __init__(self, required: int, available: int):
        super().__init__(
            code=ErrorCode.INSUFFICIENT_FUNDS,
            message=f"Insufficient funds: required {required}, available {available}",
            details={"required": required, "available": available},
            recoverable=True,
        )


class AlreadyJoinedError(TourneyError):
    """Raised when the user already holds a participant record."""

    def __init__(self, tournament_id: str):
        super().__init__(
            code=ErrorCode.ALREADY_JOINED,
            message="You have already joined this tournament",
            details={"tournamentId": tournament_id},
            recoverable=False,
        )


class TournamentFullError(TourneyError):
    """Raised when occupancy has reached max players."""

    def __init__(self, tournament_id: str, max_players: int):
        super().__init__(
            code=ErrorCode.TOURNAMENT_FULL,
            message="Tournament is full",
            details={"tournamentId": tournament_id, "maxPlayers": max_players},
            recoverable=False,
        )


class TournamentNotJoinableError(TourneyError):
    """Raised when the tournament status does not accept joins."""

    def __init__(self, tournament_id: str, status: str):
        super().__init__(
            code=ErrorCode.TOURNAMENT_NOT_JOINABLE,
            message=f"Tournament is {status} and cannot be joined",
            details={"tournamentId": tournament_id, "status": status},
            recoverable=False,
        )


class InvalidStateError(TourneyError):
    """Raised when a record is not in the state an operation requires."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code=ErrorCode.INVALID_STATE,
            message=message,
            details=details,
            recoverable=False,
        )


class ContentionError(TourneyError):
    """Raised when optimistic retries are exhausted."""

    def __init__(self, operation: str, attempts: int):
        super().__init__(
            code=ErrorCode.CONTENTION,
            message="Too many concurrent updates, please try again",
            details={"operation": operation, "attempts": attempts},
            recoverable=True,
        )


class MaintenanceModeError(TourneyError):
    """Raised when a mutation is attempted during maintenance."""

    def __init__(self):
        super().__init__(
            code=ErrorCode.MAINTENANCE_MODE,
            message="The platform is under maintenance",
            recoverable=True,
        )


class FeatureDisabledError(TourneyError):
    """Raised when deposits or withdrawals are switched off in settings."""

    def __init__(self, feature: str):
        super().__init__(
            code=ErrorCode.FEATURE_DISABLED,
            message=f"{feature.capitalize()} is currently disabled",
            details={"feature": feature},
            recoverable=True,
        )

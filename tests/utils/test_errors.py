"""Error type and error envelope tests."""

from tourney.main import create_error_response
from tourney.schemas import ErrorResponse
from tourney.utils.errors import (
    ContentionError,
    ErrorCode,
    InsufficientFundsError,
    NotFoundError,
    TourneyError,
)


def test_to_dict():
    error = InsufficientFundsError(required=100, available=60)

    assert error.to_dict() == {
        "code": "INSUFFICIENT_FUNDS",
        "message": error.message,
        "details": {"required": 100, "available": 60},
    }


def test_code_is_plain_string():
    error = NotFoundError("wallet", "u1")

    assert type(error.code) is str
    assert error.code == ErrorCode.NOT_FOUND.value


def test_subclasses_share_base():
    for error in (NotFoundError("wallet", "u1"), ContentionError("join_tournament", 5)):
        assert isinstance(error, TourneyError)
        assert str(error) == error.message


def test_envelope_uses_client_keys():
    error = ContentionError("join_tournament", 5)

    envelope = create_error_response(**error.to_dict(), trace_id="req-1")

    assert envelope == {
        "error": {
            "code": "CONTENTION",
            "message": error.message,
            "details": {"operation": "join_tournament", "attempts": 5},
        },
        "traceId": "req-1",
    }
    assert ErrorResponse.model_validate(envelope).trace_id == "req-1"


def test_envelope_defaults():
    envelope = ErrorResponse.build("NOT_FOUND", "missing")

    assert envelope == {
        "error": {"code": "NOT_FOUND", "message": "missing", "details": {}},
        "traceId": None,
    }

"""Identity token tests."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from tourney.utils.security import TokenError, create_access_token, verify_access_token


class TestAccessToken:
    def test_round_trip(self, test_settings):
        token = create_access_token("user-1", settings=test_settings)

        payload = verify_access_token(token, test_settings)

        assert payload["sub"] == "user-1"
        assert payload["type"] == "access"
        assert "admin" not in payload

    def test_admin_claim(self, test_settings):
        token = create_access_token("user-1", admin=True, settings=test_settings)

        assert verify_access_token(token, test_settings)["admin"] is True

    def test_expired(self, test_settings):
        token = create_access_token(
            "user-1",
            expires_delta=timedelta(seconds=-10),
            settings=test_settings,
        )

        with pytest.raises(TokenError) as exc_info:
            verify_access_token(token, test_settings)

        assert exc_info.value.code == "TOKEN_EXPIRED"

    def test_wrong_secret(self, test_settings):
        other = test_settings.model_copy(update={"jwt_secret_key": "x" * 40})
        token = create_access_token("user-1", settings=other)

        with pytest.raises(TokenError) as exc_info:
            verify_access_token(token, test_settings)

        assert exc_info.value.code == "AUTH_INVALID_TOKEN"

    def test_wrong_type(self, test_settings):
        token = create_access_token(
            "user-1",
            additional_claims={"type": "refresh"},
            settings=test_settings,
        )

        with pytest.raises(TokenError):
            verify_access_token(token, test_settings)

    def test_missing_subject(self, test_settings):
        token = jwt.encode(
            {"exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            test_settings.jwt_secret_key,
            algorithm=test_settings.jwt_algorithm,
        )

        with pytest.raises(TokenError) as exc_info:
            verify_access_token(token, test_settings)

        assert exc_info.value.code == "AUTH_INVALID_TOKEN"

    @pytest.mark.parametrize("token", ["", "not-a-jwt"])
    def test_garbage(self, test_settings, token):
        with pytest.raises(TokenError):
            verify_access_token(token, test_settings)

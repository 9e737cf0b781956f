"""Re-authentication of protected requests, independent of Flask."""
import uuid
from dataclasses import replace
from datetime import timedelta
from unittest import mock

import pytest

from models.base_model import utcnow
from models.refresh_token import RefreshToken
from services.auth import AuthService
from services.errors import InvalidToken, StoreTimeout, Unauthorized
from services.reauth import AuthResult, Reauthenticator, parse_bearer
from utils.security import create_access_token, decode_access_token

from tests.conftest import TEST_EMAIL, TEST_PASSWORD, TEST_SECRET


def _bearer(token):
    return f"Bearer {token}"


@pytest.fixture
def expired_access(registered_user):
    return create_access_token(registered_user, timedelta(minutes=-1), TEST_SECRET)


class TestParseBearer:
    @pytest.mark.parametrize("header", [None, "", "Basic abc", "bearer abc", "Bearer ", "Bearer    ", "Token x"])
    def test_rejected(self, header):
        with pytest.raises(Unauthorized):
            parse_bearer(header)

    def test_token_extracted(self):
        assert parse_bearer("Bearer abc.def.ghi") == "abc.def.ghi"


class TestAuthenticate:
    def test_no_header(self, reauth):
        with pytest.raises(Unauthorized):
            reauth.authenticate(None, None)

    def test_malformed_header(self, reauth, auth_service, registered_user):
        pair = auth_service.login(TEST_EMAIL, TEST_PASSWORD)
        with pytest.raises(Unauthorized):
            reauth.authenticate(pair.access_token, pair.refresh_token)

    def test_valid_access_token(self, reauth, auth_service, registered_user):
        pair = auth_service.login(TEST_EMAIL, TEST_PASSWORD)

        result = reauth.authenticate(_bearer(pair.access_token), None)

        assert result == AuthResult(user=registered_user)
        assert not result.refreshed

    def test_invalid_signature_never_refreshes(self, reauth, auth_service, registered_user):
        pair = auth_service.login(TEST_EMAIL, TEST_PASSWORD)
        forged = create_access_token(registered_user, timedelta(minutes=-1), "forged-secret-0123456789abcdef-0123456789")

        with mock.patch.object(auth_service, "exchange_refresh") as exchange:
            with pytest.raises(InvalidToken):
                reauth.authenticate(_bearer(forged), pair.refresh_token)
        exchange.assert_not_called()

    def test_expired_access_with_valid_refresh(self, reauth, auth_service, registered_user, expired_access):
        pair = auth_service.login(TEST_EMAIL, TEST_PASSWORD)

        result = reauth.authenticate(_bearer(expired_access), pair.refresh_token)

        assert result.user.id == registered_user.id
        assert result.refreshed
        claims = decode_access_token(result.access_token, TEST_SECRET)
        assert claims.subject == registered_user.id
        assert claims.role is registered_user.role
        # refresh token far from expiry: not rotated
        assert result.refresh_token is None

    def test_expired_access_without_refresh(self, reauth, registered_user, expired_access):
        with pytest.raises(Unauthorized):
            reauth.authenticate(_bearer(expired_access), None)

    def test_expired_access_with_unknown_refresh(self, reauth, registered_user, expired_access):
        with pytest.raises(Unauthorized):
            reauth.authenticate(_bearer(expired_access), "never-issued")

    def test_expired_access_after_logout(self, reauth, auth_service, registered_user, expired_access):
        pair = auth_service.login(TEST_EMAIL, TEST_PASSWORD)
        auth_service.logout(pair.refresh_token)
        with pytest.raises(Unauthorized):
            reauth.authenticate(_bearer(expired_access), pair.refresh_token)

    def test_refresh_near_expiry_is_rotated(self, users, tokens, hasher, settings, registered_user, expired_access):
        service = AuthService(users, tokens, hasher, replace(settings, rotation_window=timedelta(hours=24)))
        old = RefreshToken(
            id=str(uuid.uuid4()),
            user_id=registered_user.id,
            token="about-to-expire",
            expires_at=utcnow() + timedelta(hours=2),
        )
        tokens.save(old)

        result = Reauthenticator(service).authenticate(_bearer(expired_access), old.token)

        assert result.refresh_token and result.refresh_token != old.token
        assert old.token not in tokens
        assert tokens.get(result.refresh_token).user_id == registered_user.id

    def test_store_timeout_propagates(self, reauth, auth_service, registered_user, tokens, expired_access):
        with mock.patch.object(tokens, "get", side_effect=StoreTimeout()):
            with pytest.raises(StoreTimeout):
                reauth.authenticate(_bearer(expired_access), "whatever")

    def test_deleted_user_with_valid_access(self, reauth, auth_service, registered_user, users):
        pair = auth_service.login(TEST_EMAIL, TEST_PASSWORD)
        users.remove(registered_user.id)
        with pytest.raises(Unauthorized):
            reauth.authenticate(_bearer(pair.access_token), pair.refresh_token)

from datetime import timedelta

import pytest

from api import create_app
from models.memory import InMemoryTokenRepository, InMemoryUserRepository
from services.auth import AuthService, AuthSettings
from services.reauth import Reauthenticator
from utils.security import Argon2PasswordHasher

TEST_SECRET = "unit-test-access-secret-0123456789abcdef"
TEST_EMAIL = "a@x.com"
TEST_PASSWORD = "password123"


@pytest.fixture
def settings():
    return AuthSettings(
        access_secret=TEST_SECRET,
        refresh_secret="unit-test-refresh-secret-0123456789abcdef",
        access_token_ttl=timedelta(minutes=15),
        refresh_token_ttl=timedelta(days=7),
        refresh_token_bytes=32,
    )


@pytest.fixture
def hasher():
    # cheapest argon2 parameters: these tests are about tokens, not hashing cost
    return Argon2PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def users():
    return InMemoryUserRepository()


@pytest.fixture
def tokens():
    return InMemoryTokenRepository()


@pytest.fixture
def auth_service(users, tokens, hasher, settings):
    return AuthService(users, tokens, hasher, settings)


@pytest.fixture
def reauth(auth_service):
    return Reauthenticator(auth_service)


@pytest.fixture
def registered_user(auth_service):
    return auth_service.register(TEST_EMAIL, TEST_PASSWORD)


@pytest.fixture
def app():
    return create_app("testing")


@pytest.fixture
def client(app):
    return app.test_client()

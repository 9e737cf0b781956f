"""SQLAlchemy repositories against in-memory SQLite."""
import uuid
from datetime import timedelta
from unittest import mock

import pytest
from sqlalchemy import exc as sa_exc

from models.base_model import as_utc, utcnow
from models.db_storage import DBStorage
from models.refresh_token import RefreshToken
from models.repositories import SQLTokenRepository, SQLUserRepository
from models.user import Role, User
from services.auth import AuthService
from services.errors import InvalidToken, StoreError, StoreTimeout, TokenNotFound, UserAlreadyExists, UserNotFound

from tests.conftest import TEST_EMAIL, TEST_PASSWORD


@pytest.fixture
def storage():
    storage = DBStorage("sqlite://")
    storage.reload()
    yield storage
    storage.dispose()


@pytest.fixture
def sql_users(storage):
    return SQLUserRepository(storage)


@pytest.fixture
def sql_tokens(storage):
    return SQLTokenRepository(storage)


def _user(email=TEST_EMAIL):
    now = utcnow()
    return User(id=str(uuid.uuid4()), email=email, password_hash="x", role=Role.USER.value,
                created_at=now, updated_at=now)


def _token(user_id, expires_in=timedelta(days=7)):
    return RefreshToken(id=str(uuid.uuid4()), user_id=user_id, token=uuid.uuid4().hex,
                        expires_at=utcnow() + expires_in)


class TestSQLUserRepository:
    def test_create_and_find(self, sql_users):
        user = _user()
        sql_users.create(user)
        assert sql_users.find_by_email(TEST_EMAIL).id == user.id
        assert sql_users.find_by_id(user.id).email == TEST_EMAIL

    def test_duplicate_email(self, sql_users):
        first = _user()
        sql_users.create(first)
        with pytest.raises(UserAlreadyExists):
            sql_users.create(_user())
        assert sql_users.find_by_email(TEST_EMAIL).id == first.id

    def test_not_found(self, sql_users):
        with pytest.raises(UserNotFound):
            sql_users.find_by_email("nobody@x.com")
        with pytest.raises(UserNotFound):
            sql_users.find_by_id(str(uuid.uuid4()))

    def test_timeout_is_translated(self, sql_users, storage):
        with mock.patch.object(storage, "get_session", side_effect=sa_exc.TimeoutError("pool exhausted")):
            with pytest.raises(StoreTimeout):
                sql_users.find_by_email(TEST_EMAIL)

    def test_other_failures_are_store_errors(self, sql_users, storage):
        err = sa_exc.OperationalError("SELECT 1", {}, Exception("disk I/O error"))
        with mock.patch.object(storage, "get_session", side_effect=err):
            with pytest.raises(StoreError):
                sql_users.find_by_id("x")


class TestSQLTokenRepository:
    def test_save_get_delete(self, sql_users, sql_tokens):
        user = _user()
        sql_users.create(user)
        record = _token(user.id)

        sql_tokens.save(record)
        stored = sql_tokens.get(record.token)
        assert stored.user_id == user.id
        assert abs(as_utc(stored.expires_at) - record.expires_at) < timedelta(seconds=1)

        sql_tokens.delete(record.token)
        with pytest.raises(TokenNotFound):
            sql_tokens.get(record.token)

    def test_delete_missing_is_fine(self, sql_tokens):
        sql_tokens.delete("never-issued")

    def test_token_unique(self, sql_users, sql_tokens):
        user = _user()
        sql_users.create(user)
        record = _token(user.id)
        sql_tokens.save(record)
        duplicate = RefreshToken(id=str(uuid.uuid4()), user_id=user.id, token=record.token,
                                 expires_at=record.expires_at)
        with pytest.raises(StoreError):
            sql_tokens.save(duplicate)
        assert sql_tokens.get(record.token).id == record.id


def test_auth_service_over_sql(sql_users, sql_tokens, hasher, settings):
    service = AuthService(sql_users, sql_tokens, hasher, settings)

    user = service.register(TEST_EMAIL, TEST_PASSWORD)
    with pytest.raises(UserAlreadyExists):
        service.register(TEST_EMAIL, TEST_PASSWORD)

    pair = service.login(TEST_EMAIL, TEST_PASSWORD)
    assert service.verify_access_token(pair.access_token).id == user.id

    record, owner = service.exchange_refresh(pair.refresh_token)
    assert owner.id == user.id
    assert not record.is_expired()

    service.logout(pair.refresh_token)
    with pytest.raises(InvalidToken):
        service.exchange_refresh(pair.refresh_token)

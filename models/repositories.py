"""
SQLAlchemy-backed user directory and refresh-token store.

Both translate driver errors into the auth error taxonomy:
- unique violation on users.email -> UserAlreadyExists
- statement/pool timeouts         -> StoreTimeout
- anything else from SQLAlchemy   -> StoreError
"""
from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import exc as sa_exc

from models.db_storage import DBStorage
from models.refresh_token import RefreshToken
from models.user import User
from services.errors import StoreError, StoreTimeout, TokenNotFound, UserAlreadyExists, UserNotFound

# query_canceled
_PG_TIMEOUT_CODES = {"57014"}
_TIMEOUT_MARKERS = ("timeout", "timed out", "canceling statement", "database is locked")


def _is_timeout(err: sa_exc.SQLAlchemyError) -> bool:
    if isinstance(err, sa_exc.TimeoutError):
        return True
    orig = getattr(err, "orig", None)
    if getattr(orig, "pgcode", None) in _PG_TIMEOUT_CODES:
        return True
    message = str(orig or err).lower()
    return any(marker in message for marker in _TIMEOUT_MARKERS)


@contextmanager
def _store_call(storage: DBStorage, operation: str):
    try:
        yield
    except sa_exc.SQLAlchemyError as err:
        storage.rollback()
        if _is_timeout(err):
            raise StoreTimeout(f"{operation} timed out") from err
        raise StoreError(f"{operation} failed: {err.__class__.__name__}") from err


class SQLUserRepository:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    def create(self, user: User) -> None:
        with _store_call(self.storage, "create user"):
            self.storage.new(user)
            try:
                self.storage.save()
            except sa_exc.IntegrityError as err:
                message = str(getattr(err, "orig", err)).lower()
                if "unique" in message or "duplicate" in message:
                    raise UserAlreadyExists() from err
                raise

    def find_by_email(self, email: str) -> User:
        with _store_call(self.storage, "find user by email"):
            user = self.storage.get_session().query(User).filter(User.email == email).first()
        if user is None:
            raise UserNotFound()
        return user

    def find_by_id(self, user_id: str) -> User:
        with _store_call(self.storage, "find user by id"):
            user = self.storage.get_session().get(User, user_id)
        if user is None:
            raise UserNotFound()
        return user


class SQLTokenRepository:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    def save(self, record: RefreshToken) -> None:
        with _store_call(self.storage, "save refresh token"):
            self.storage.new(record)
            self.storage.save()

    def get(self, token: str) -> RefreshToken:
        with _store_call(self.storage, "get refresh token"):
            record = (
                self.storage.get_session()
                .query(RefreshToken)
                .filter(RefreshToken.token == token)
                .first()
            )
        if record is None:
            raise TokenNotFound()
        return record

    def delete(self, token: str) -> None:
        """Delete by token string; a missing row is not an error."""
        with _store_call(self.storage, "delete refresh token"):
            self.storage.get_session().query(RefreshToken).filter(
                RefreshToken.token == token
            ).delete(synchronize_session=False)
            self.storage.save()

"""
In-memory user directory and refresh-token store.

Same contract as models.repositories (unique email, unique token string,
idempotent delete), guarded by a lock so request threads can share one
instance. Used by tests and by STORAGE_BACKEND=memory.
"""
from __future__ import annotations

import threading
from typing import Dict

from models.refresh_token import RefreshToken
from models.user import User
from services.errors import StoreError, TokenNotFound, UserAlreadyExists, UserNotFound


class InMemoryUserRepository:
    def __init__(self):
        self._lock = threading.Lock()
        self._by_id: Dict[str, User] = {}
        self._id_by_email: Dict[str, str] = {}

    def create(self, user: User) -> None:
        with self._lock:
            if user.email in self._id_by_email:
                raise UserAlreadyExists()
            self._by_id[user.id] = user
            self._id_by_email[user.email] = user.id

    def find_by_email(self, email: str) -> User:
        with self._lock:
            user_id = self._id_by_email.get(email)
            if user_id is None:
                raise UserNotFound()
            return self._by_id[user_id]

    def find_by_id(self, user_id: str) -> User:
        with self._lock:
            user = self._by_id.get(user_id)
        if user is None:
            raise UserNotFound()
        return user

    def remove(self, user_id: str) -> None:
        """Drop a user (account deletion)."""
        with self._lock:
            user = self._by_id.pop(user_id, None)
            if user is not None:
                self._id_by_email.pop(user.email, None)

    def __len__(self):
        return len(self._by_id)


class InMemoryTokenRepository:
    def __init__(self):
        self._lock = threading.Lock()
        self._by_token: Dict[str, RefreshToken] = {}

    def save(self, record: RefreshToken) -> None:
        with self._lock:
            if record.token in self._by_token:
                raise StoreError("duplicate refresh token")
            self._by_token[record.token] = record

    def get(self, token: str) -> RefreshToken:
        with self._lock:
            record = self._by_token.get(token)
        if record is None:
            raise TokenNotFound()
        return record

    def delete(self, token: str) -> None:
        with self._lock:
            self._by_token.pop(token, None)

    def __contains__(self, token: str) -> bool:
        with self._lock:
            return token in self._by_token

    def __len__(self):
        return len(self._by_token)

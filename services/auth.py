"""
Auth service: registration, login, logout, access-token verification and
refresh-token exchange/rotation.

The service keeps no state of its own between calls. Users and refresh
tokens live behind the UserRepository / TokenRepository protocols, password
hashing behind PasswordHasher, and everything configurable arrives in an
AuthSettings value built once at startup.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Protocol, Tuple

from models.base_model import as_utc, utcnow
from models.refresh_token import RefreshToken
from models.user import Role, User
from services.errors import (
    InvalidInput,
    InvalidToken,
    TokenNotFound,
    Unauthorized,
    UserNotFound,
)
from utils.security import (
    DEFAULT_REFRESH_TOKEN_BYTES,
    JWT_ALGORITHM,
    create_access_token,
    decode_access_token,
    generate_refresh_token,
)

ROTATE_ON_EXPIRY = "on_expiry"
ROTATE_ALWAYS = "always"
ROTATION_POLICIES = (ROTATE_ON_EXPIRY, ROTATE_ALWAYS)


class UserRepository(Protocol):
    def create(self, user: User) -> None: ...

    def find_by_email(self, email: str) -> User: ...

    def find_by_id(self, user_id: str) -> User: ...


class TokenRepository(Protocol):
    def save(self, record: RefreshToken) -> None: ...

    def get(self, token: str) -> RefreshToken: ...

    def delete(self, token: str) -> None: ...


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...

    def verify(self, password_hash: str, password: str) -> bool: ...


@dataclass(frozen=True)
class AuthSettings:
    """
    Token settings for AuthService.

    rotation_window is how long before expiry an on_expiry refresh token gets
    rotated. Expired records are rejected outright, so the default of 0
    disables on_expiry rotation; the app config sets it to 24 hours.
    """

    access_secret: str
    # refresh tokens are opaque and looked up in the store, never signed;
    # kept so a signed refresh format can be adopted without a config change
    refresh_secret: str = ""
    algorithm: str = JWT_ALGORITHM
    access_token_ttl: timedelta = timedelta(minutes=15)
    refresh_token_ttl: timedelta = timedelta(days=7)
    refresh_token_bytes: int = DEFAULT_REFRESH_TOKEN_BYTES
    rotation_policy: str = ROTATE_ON_EXPIRY
    rotation_window: timedelta = timedelta(0)

    def __post_init__(self):
        if not self.access_secret:
            raise ValueError("access_secret is required")
        if self.rotation_policy not in ROTATION_POLICIES:
            raise ValueError(f"rotation_policy must be one of {ROTATION_POLICIES}")


@dataclass(frozen=True)
class AuthenticatedUser:
    """A user as seen by handlers: never carries the password hash."""

    id: str
    email: str
    role: Role
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, user: User) -> "AuthenticatedUser":
        return cls(
            id=str(user.id),
            email=user.email,
            role=Role(user.role),
            created_at=as_utc(user.created_at),
            updated_at=as_utc(user.updated_at),
        )

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class AuthService:
    def __init__(self, users: UserRepository, tokens: TokenRepository, hasher: PasswordHasher,
                 settings: AuthSettings, logger: Optional[logging.Logger] = None):
        self.users = users
        self.tokens = tokens
        self.hasher = hasher
        self.settings = settings
        self.log = logger or logging.getLogger(__name__)

    def register(self, email: str, password: str, role: Role = Role.USER) -> AuthenticatedUser:
        """Create a user. Duplicate emails are rejected by the store itself."""
        if not email or not password:
            raise InvalidInput("email and password are required")

        password_hash = self.hasher.hash(password)
        now = utcnow()
        user = User(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=password_hash,
            role=Role(role).value,
            created_at=now,
            updated_at=now,
        )
        # raises UserAlreadyExists on a duplicate email
        self.users.create(user)

        self.log.info("user registered id=%s role=%s", user.id, user.role)
        return AuthenticatedUser.from_model(user)

    def login(self, email: str, password: str) -> TokenPair:
        try:
            user = self.users.find_by_email(email)
        except UserNotFound:
            self.log.info("login failed: unknown email")
            raise Unauthorized("user not found")

        if not self.hasher.verify(user.password_hash, password):
            self.log.info("login failed: invalid password user=%s", user.id)
            raise Unauthorized("invalid password")

        pair = TokenPair(
            access_token=self.issue_access_token(user),
            refresh_token=self._issue_refresh_token(user.id),
        )
        self.log.info("login succeeded user=%s", user.id)
        return pair

    def logout(self, refresh_token: str) -> None:
        """Forget a refresh token. Unknown tokens are fine.

        The paired access token stays valid until it expires: there is no
        blacklist.
        """
        if not refresh_token:
            return
        try:
            self.tokens.delete(refresh_token)
        except TokenNotFound:
            pass
        self.log.info("refresh token revoked on logout")

    def verify_access_token(self, token: str, secret: Optional[str] = None) -> AuthenticatedUser:
        """Decode `token` and load its subject.

        TokenExpired is raised as-is so the caller can try a refresh. A
        subject that no longer exists is Unauthorized even when the signature
        is still good.
        """
        claims = decode_access_token(token, secret or self.settings.access_secret, self.settings.algorithm)
        try:
            user = self.users.find_by_id(claims.subject)
        except UserNotFound:
            raise Unauthorized("token subject no longer exists")
        return AuthenticatedUser.from_model(user)

    def exchange_refresh(self, refresh_token: str) -> Tuple[RefreshToken, AuthenticatedUser]:
        """Resolve a refresh token to its stored record and owner."""
        if not refresh_token:
            raise InvalidToken("missing refresh token")
        try:
            record = self.tokens.get(refresh_token)
        except TokenNotFound:
            raise InvalidToken("unknown refresh token")

        if record.is_expired():
            self.tokens.delete(record.token)
            self.log.info("expired refresh token discarded user=%s", record.user_id)
            raise InvalidToken("refresh token expired")

        try:
            user = self.users.find_by_id(record.user_id)
        except UserNotFound:
            raise Unauthorized("refresh token owner no longer exists")
        return record, AuthenticatedUser.from_model(user)

    def rotate_if_expired(self, record: RefreshToken, user_id: str) -> str:
        """Return a replacement refresh token if `record` is due, else its own token.

        The new row is written before the old one is deleted, so a failure in
        between leaves both valid rather than neither.
        """
        if not self._rotation_due(record):
            return record.token

        new_token = self._issue_refresh_token(user_id)
        self.tokens.delete(record.token)
        self.log.info("refresh token rotated user=%s", user_id)
        return new_token

    def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new access token (and maybe a new refresh token)."""
        record, user = self.exchange_refresh(refresh_token)
        return TokenPair(
            access_token=self.issue_access_token(user),
            refresh_token=self.rotate_if_expired(record, user.id),
        )

    def issue_access_token(self, user) -> str:
        return create_access_token(
            user, self.settings.access_token_ttl, self.settings.access_secret, self.settings.algorithm
        )

    def _rotation_due(self, record: RefreshToken) -> bool:
        if self.settings.rotation_policy == ROTATE_ALWAYS:
            return True
        return as_utc(record.expires_at) - utcnow() <= self.settings.rotation_window

    def _issue_refresh_token(self, user_id: str) -> str:
        token = generate_refresh_token(self.settings.refresh_token_bytes)
        self.tokens.save(
            RefreshToken(
                id=str(uuid.uuid4()),
                user_id=str(user_id),
                token=token,
                expires_at=utcnow() + self.settings.refresh_token_ttl,
            )
        )
        return token

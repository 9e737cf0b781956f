"""
security helpers:
- Access token codec (HS256 JWTs) via PyJWT
- Opaque refresh token generation from the OS CSPRNG
- Argon2 password hashing via argon2-cffi

Nothing here reads Flask globals: secrets and TTLs are passed in by the caller.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import HashingError as Argon2HashingError
from argon2.exceptions import InvalidHashError, VerificationError

from models.user import Role
from services.errors import (
    HashingError,
    InvalidLength,
    InvalidToken,
    RandomSourceError,
    SigningError,
    TokenExpired,
)

JWT_ALGORITHM = "HS256"
DEFAULT_REFRESH_TOKEN_BYTES = 32


@dataclass(frozen=True)
class AccessTokenClaims:
    subject: str
    role: Role
    expires_at: datetime


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(user, ttl: timedelta, secret: str, algorithm: str = JWT_ALGORITHM) -> str:
    """Sign {sub, role, exp} for `user` with `secret`.

    A zero or negative `ttl` produces a token that is already expired.
    """
    payload = {
        "sub": str(user.id),
        "role": Role(user.role).value,
        "exp": int((_now() + ttl).timestamp()),
    }
    try:
        return jwt.encode(payload, secret, algorithm=algorithm)
    except (jwt.PyJWTError, TypeError, ValueError) as exc:
        raise SigningError(str(exc)) from exc


def decode_access_token(token: str, secret: str, algorithm: str = JWT_ALGORITHM) -> AccessTokenClaims:
    """
    Decode and verify an access token.
    Raises TokenExpired when the signature checks out but `exp` has passed,
    InvalidToken for anything else (bad signature, wrong/none alg, bad claims).
    """
    try:
        decoded: Dict[str, Any] = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpired() from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidToken(f"invalid token: {exc}") from exc

    subject = decoded.get("sub")
    if not isinstance(subject, str) or not subject:
        raise InvalidToken("invalid subject claim")
    try:
        role = Role(decoded.get("role"))
    except ValueError as exc:
        raise InvalidToken("invalid role claim") from exc

    return AccessTokenClaims(
        subject=subject,
        role=role,
        expires_at=datetime.fromtimestamp(decoded["exp"], tz=timezone.utc),
    )


def generate_refresh_token(length: int = DEFAULT_REFRESH_TOKEN_BYTES) -> str:
    """Return `length` random bytes as unpadded URL-safe base64."""
    if length <= 0:
        raise InvalidLength(length)
    try:
        return secrets.token_urlsafe(length)
    except (OSError, NotImplementedError) as exc:
        raise RandomSourceError(str(exc)) from exc


class Argon2PasswordHasher:
    """Password hashing collaborator used by the auth service."""

    def __init__(self, time_cost: int | None = None, memory_cost: int | None = None,
                 parallelism: int | None = None):
        kwargs = {}
        if time_cost:
            kwargs["time_cost"] = time_cost
        if memory_cost:
            kwargs["memory_cost"] = memory_cost
        if parallelism:
            kwargs["parallelism"] = parallelism
        self._ph = PasswordHasher(**kwargs)

    def hash(self, password: str) -> str:
        """Hash a plaintext password using Argon2
        """
        try:
            return self._ph.hash(password)
        except Argon2HashingError as exc:
            raise HashingError(str(exc)) from exc

    def verify(self, password_hash: str, password: str) -> bool:
        """ Verify a plaintext password against an argon2 hash
        """
        try:
            return self._ph.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

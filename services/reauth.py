"""
Re-authentication for protected requests.

Given the Authorization header and the refresh-token cookie of one request,
Reauthenticator.authenticate() either returns the authenticated user or
raises Unauthorized:

    no header / not "Bearer <token>"   -> Unauthorized
    access token valid                 -> user
    access token invalid (not expiry)  -> Unauthorized, no refresh attempt
    access token expired               -> refresh:
        no cookie                      -> Unauthorized
        exchange fails                 -> Unauthorized
        otherwise                      -> user + new access token
                                          (+ new refresh token if rotated)

Storage timeouts and internal failures are not turned into Unauthorized;
they propagate to the transport unchanged.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from services.auth import AuthenticatedUser, AuthService
from services.errors import TokenExpired, Unauthorized

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthResult:
    user: AuthenticatedUser
    # set only when the access token was re-issued during this request
    access_token: Optional[str] = None
    # set only when the refresh token was rotated during this request
    refresh_token: Optional[str] = None

    @property
    def refreshed(self) -> bool:
        return self.access_token is not None


def parse_bearer(header: Optional[str]) -> str:
    if not header:
        raise Unauthorized("missing authorization header")
    if not header.startswith(BEARER_PREFIX):
        raise Unauthorized("malformed authorization header")
    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthorized("malformed authorization header")
    return token


class Reauthenticator:
    def __init__(self, service: AuthService, logger: Optional[logging.Logger] = None):
        self.service = service
        self.log = logger or logging.getLogger(__name__)

    def authenticate(self, authorization: Optional[str], refresh_token: Optional[str]) -> AuthResult:
        access_token = parse_bearer(authorization)
        try:
            user = self.service.verify_access_token(access_token)
        except TokenExpired:
            return self._refresh(refresh_token)
        return AuthResult(user=user)

    def _refresh(self, refresh_token: Optional[str]) -> AuthResult:
        if not refresh_token:
            self.log.info("access token expired and no refresh token presented")
            raise Unauthorized("access token expired")

        try:
            record, user = self.service.exchange_refresh(refresh_token)
        except Unauthorized as exc:
            self.log.info("transparent refresh rejected: %s", exc.reason)
            raise Unauthorized(f"refresh failed: {exc.reason}") from exc

        current = record.token
        rotated = self.service.rotate_if_expired(record, user.id)
        new_access = self.service.issue_access_token(user)

        self.log.info("access token re-issued user=%s rotated=%s", user.id, rotated != current)
        return AuthResult(
            user=user,
            access_token=new_access,
            refresh_token=rotated if rotated != current else None,
        )

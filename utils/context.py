"""Typed per-request auth context, stored on flask.g under a single attribute."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import g

from services.auth import AuthenticatedUser
from services.errors import Unauthorized

_CONTEXT_ATTR = "_auth_context"


@dataclass
class RequestAuthContext:
    user: Optional[AuthenticatedUser] = None
    # tokens minted while authenticating; sent back whatever the view returns
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


def get_auth_context() -> RequestAuthContext:
    ctx = g.get(_CONTEXT_ATTR)
    if ctx is None:
        ctx = RequestAuthContext()
        setattr(g, _CONTEXT_ATTR, ctx)
    return ctx


def peek_auth_context() -> Optional[RequestAuthContext]:
    """The context if a protected view created one during this request."""
    return g.get(_CONTEXT_ATTR)


def set_authenticated_user(user: AuthenticatedUser) -> None:
    get_auth_context().user = user


def set_reissued_tokens(access_token: Optional[str], refresh_token: Optional[str]) -> None:
    ctx = get_auth_context()
    ctx.access_token = access_token
    ctx.refresh_token = refresh_token


def current_user() -> AuthenticatedUser:
    """The user attached by jwt_required(); Unauthorized outside a protected view."""
    user = get_auth_context().user
    if user is None:
        raise Unauthorized("no authenticated user in request context")
    return user

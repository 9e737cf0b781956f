from __future__ import annotations
from functools import wraps
from flask import current_app, request

from services.errors import Forbidden
from utils.context import current_user, peek_auth_context, set_authenticated_user, set_reissued_tokens
from utils.cookies import read_refresh_cookie, set_refresh_cookie


def jwt_required():
    """
    Protect a view with the bearer access token.
    An expired access token is renewed from the refresh cookie in the same
    request; the new access token goes back in the Authorization response
    header and a rotated refresh token in Set-Cookie (see attach_reissued_tokens).
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            reauth = current_app.extensions["reauthenticator"]
            result = reauth.authenticate(request.headers.get("Authorization"), read_refresh_cookie())
            set_authenticated_user(result.user)
            set_reissued_tokens(result.access_token, result.refresh_token)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: list[str]):
    """
    Allow access if the user's role is one of required_roles, 403 otherwise.
    """
    req = set(required_roles or [])
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if current_user().role.value not in req:
                raise Forbidden()
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def attach_reissued_tokens(response):
    """
    after_request hook: runs for error-handler responses too, so a refresh
    token rotated before the view raised still reaches the client.
    """
    ctx = peek_auth_context()
    if ctx is None:
        return response
    if ctx.access_token:
        response.headers["Authorization"] = f"Bearer {ctx.access_token}"
    if ctx.refresh_token:
        set_refresh_cookie(response, ctx.refresh_token)
    return response

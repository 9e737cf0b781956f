"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- GET  /auth/me

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived HS256 access tokens and opaque refresh tokens
- Stores refresh tokens so logout can delete them and refresh can rotate them
- Sends the refresh token as an HTTP-only cookie as well as in the login body
"""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, make_response, request
from marshmallow import ValidationError

from models.schemas.token import RefreshRequestSchema, TokenPairOutSchema
from models.schemas.user import UserCreateSchema, UserLoginSchema, UserOutSchema
from services.auth import AuthService, TokenPair
from utils.context import current_user
from utils.cookies import clear_refresh_cookie, read_refresh_cookie, set_refresh_cookie
from utils.decorators import jwt_required

bp = Blueprint("auth", __name__)

user_create_schema = UserCreateSchema()
user_login_schema = UserLoginSchema()
user_out_schema = UserOutSchema()
refresh_request_schema = RefreshRequestSchema()
token_pair_out_schema = TokenPairOutSchema()


def _service() -> AuthService:
    return current_app.extensions["auth_service"]


def _token_response(pair: TokenPair):
    body = token_pair_out_schema.dump(
        {
            "access_token": pair.access_token,
            "refresh_token": pair.refresh_token,
            "expires_in": int(current_app.config["ACCESS_TOKEN_TTL"].total_seconds()),
        }
    )
    response = make_response(jsonify(body), 200)
    return set_refresh_cookie(response, pair.refresh_token)


def _presented_refresh_token():
    payload = request.get_json(silent=True) or {}
    data = refresh_request_schema.load(payload, unknown="exclude")
    return read_refresh_cookie() or data.get("refresh_token")


@bp.post("/register")
def register():
    """
    Register a new user.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password]
          properties:
            email: { type: string }
            password: { type: string, minLength: 8 }
    responses:
      201:
        description: Created
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)

    user = _service().register(data["email"], data["password"])

    return jsonify(
        {
            "data": user_out_schema.dump(user)
        }
    ), 201


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens, sets refresh_token cookie)
      401:
        description: Unauthorized
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    pair = _service().login(data["email"], data["password"])
    return _token_response(pair)


@bp.post("/refresh")
def refresh():
    """
    Use the refresh token to obtain a new access token (refresh token rotated when due)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         required: false
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Unauthorized
    """
    pair = _service().refresh(_presented_refresh_token())
    return _token_response(pair)


@bp.post("/logout")
def logout():
    """
    Logout: deletes the refresh token and clears its cookie.
    The access token stays valid until it expires.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         required: false
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      204:
        description: ""
    """
    try:
        token = _presented_refresh_token()
    except ValidationError:
        # logout never fails for the caller; a malformed body just means no body token
        token = read_refresh_cookie()
    if token:
        _service().logout(token)

    response = make_response("", 204)
    return clear_refresh_cookie(response)


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify(
        {
            "data": user_out_schema.dump(current_user())
        }
    ), 200

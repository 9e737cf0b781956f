"""
Exception taxonomy shared by the auth core and the HTTP layer.

Every error carries the HTTP status and envelope code the transport should
use, so api.errors can map them without a lookup table:

- InvalidInput       -> 422
- Unauthorized       -> 401 (InvalidToken, TokenExpired are subclasses)
- Forbidden          -> 403
- NotFound           -> 404 (UserNotFound, TokenNotFound)
- AlreadyExists      -> 409 (UserAlreadyExists)
- InternalServer     -> 500 (SigningError, RandomSourceError, StoreError, ...)
- StoreTimeout       -> 503
"""
from __future__ import annotations


class AuthError(Exception):
    status_code = 500
    error = "INTERNAL_ERROR"
    public_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class InvalidInput(AuthError):
    status_code = 422
    error = "VALIDATION_ERROR"
    public_message = "Invalid input"

    def __init__(self, message: str | None = None):
        super().__init__(message)
        # validation messages are safe to show
        self.public_message = self.message


class Unauthorized(AuthError):
    """Authentication failed.

    `reason` is the internal cause (unknown user, bad password, ...). It is
    for logs only: the transport always answers with the same message.
    """

    status_code = 401
    error = "UNAUTHORIZED"
    public_message = "Unauthorized"

    def __init__(self, reason: str | None = None):
        super().__init__(reason or "unauthorized")
        self.reason = reason or "unauthorized"


class InvalidToken(Unauthorized):
    def __init__(self, reason: str | None = None):
        super().__init__(reason or "invalid token")


class TokenExpired(Unauthorized):
    """Signature is valid but the token is past its expiry.

    Consumed by the re-authentication middleware to start a refresh.
    """

    def __init__(self, reason: str | None = None):
        super().__init__(reason or "token expired")


class Forbidden(AuthError):
    status_code = 403
    error = "FORBIDDEN"
    public_message = "Insufficient role"


class NotFound(AuthError):
    status_code = 404
    error = "NOT_FOUND"
    public_message = "Resource not found"


class UserNotFound(NotFound):
    def __init__(self, message: str | None = None):
        super().__init__(message or "user not found")


class TokenNotFound(NotFound):
    def __init__(self, message: str | None = None):
        super().__init__(message or "refresh token not found")


class AlreadyExists(AuthError):
    status_code = 409
    error = "CONFLICT"
    public_message = "Resource already exists"


class UserAlreadyExists(AlreadyExists):
    public_message = "Email already registered"

    def __init__(self, message: str | None = None):
        super().__init__(message or "user already exists")


class InternalServer(AuthError):
    pass


class SigningError(InternalServer):
    def __init__(self, message: str | None = None):
        super().__init__(message or "failed to sign token")


class RandomSourceError(InternalServer):
    def __init__(self, message: str | None = None):
        super().__init__(message or "failed to read from random source")


class InvalidLength(InternalServer, ValueError):
    def __init__(self, length: int):
        super().__init__(f"invalid token length: {length}")
        self.length = length


class HashingError(InternalServer):
    def __init__(self, message: str | None = None):
        super().__init__(message or "failed to hash password")


class StoreError(InternalServer):
    def __init__(self, message: str | None = None):
        super().__init__(message or "storage failure")


class StoreTimeout(AuthError):
    status_code = 503
    error = "SERVICE_UNAVAILABLE"
    public_message = "Service temporarily unavailable"

    def __init__(self, message: str | None = None):
        super().__init__(message or "storage call timed out")

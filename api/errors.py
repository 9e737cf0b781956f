from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import logging

from services.errors import AuthError, InternalServer, StoreTimeout, Unauthorized

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    415: "UNSUPPORTED_MEDIA_TYPE",
    422: "VALIDATION_ERROR",
}


def error_response(error: str, message: str, status: int, details: dict | None = None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    # Auth core errors carry their own status and envelope code
    @app.errorhandler(AuthError)
    def handle_auth_error(err: AuthError):
        if isinstance(err, Unauthorized):
            # same answer for expired, invalid, unknown user and bad password
            logger.info("authentication rejected: %s", err.reason)
        elif isinstance(err, StoreTimeout):
            logger.warning("storage timeout: %s", err.message, exc_info=err)
        elif isinstance(err, InternalServer):
            logger.error("internal error: %s", err.message, exc_info=err)
        details = None
        if isinstance(err, InternalServer) and current_app and current_app.debug:
            details = {"type": err.__class__.__name__, "message": err.message}
        return error_response(err.error, err.public_message, err.status_code, details=details)

    # Marshmallow validation errors map to 422
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        return error_response("VALIDATION_ERROR", "Invalid input", 422, details=err.messages)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = err.code or 400
        return error_response(_HTTP_ERROR_CODES.get(status, "BAD_REQUEST"), err.description, status)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        details = None
        if current_app and current_app.debug:
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details)

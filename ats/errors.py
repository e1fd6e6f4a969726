"""
Error taxonomy for the ATS API.

Every failure a route can report is an ``ApiError`` subclass carrying its
HTTP status and a stable machine-readable code. ``register_error_handlers``
turns them into the JSON envelope ``{"error": ..., "code": ...}``.
"""

import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from ats.logging_config import LogContext

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500
    code = "STORAGE_ERROR"
    default_message = "Internal server error"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {"error": self.message, "code": self.code}


# ===== Authentication =====


class AuthenticationError(ApiError):
    """Request could not be tied to a user identity."""

    status_code = 401

    def to_dict(self):
        # Auth failures report the code itself so clients can branch on it
        return {"error": self.code, "code": self.code}


class NoTokenError(AuthenticationError):
    code = "NO_TOKEN"
    default_message = "No token provided"


class TokenExpiredError(AuthenticationError):
    code = "TOKEN_EXPIRED"
    default_message = "Token expired"


class InvalidTokenError(AuthenticationError):
    code = "INVALID_TOKEN"
    default_message = "Invalid token"


class InvalidCredentialsError(ApiError):
    """Wrong email/password combination."""

    status_code = 401
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


# ===== Request and storage =====


class ValidationError(ApiError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class DuplicateError(ApiError):
    status_code = 409
    code = "DUPLICATE"
    default_message = "Duplicate entry"


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"


class StorageError(ApiError):
    """Unclassified database failure. The message never reaches the client."""

    status_code = 500
    code = "STORAGE_ERROR"
    default_message = "Database error"

    def to_dict(self):
        return {"error": self.default_message, "code": self.code}


class IntegrityConflict(StorageError):
    """A database constraint rejected the statement."""


def register_error_handlers(app):
    """Install JSON error handlers on the Flask app."""

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        if isinstance(error, StorageError):
            with LogContext(logger, error_type=type(error).__name__):
                logger.error(f"❌ Storage error on {request.method} {request.path}: {error}")
        elif error.status_code >= 500:
            logger.error(f"❌ {error.code} on {request.method} {request.path}: {error}")
        else:
            logger.debug(f"{error.code} on {request.method} {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(error):
        logger.warning(f"Rejected oversized request body on {request.path}")
        return jsonify({"error": "File too large", "code": ValidationError.code}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        code = "NOT_FOUND" if error.code == 404 else "HTTP_ERROR"
        return jsonify({"error": error.description, "code": code}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        logger.exception(f"❌ Unhandled error on {request.method} {request.path}")
        return jsonify({"error": "Internal server error", "code": StorageError.code}), 500

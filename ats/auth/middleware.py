"""
Request authentication.

``authenticate_request`` is installed as a ``before_request`` hook on every
protected blueprint; ``require_auth`` wraps individual views that live on
otherwise public blueprints.
"""

import logging
from functools import wraps

from flask import current_app, g, request

from ats.auth.tokens import ExpiredToken, TokenVerificationError
from ats.errors import InvalidTokenError, NoTokenError, TokenExpiredError

logger = logging.getLogger(__name__)


def authenticate_request():
    """
    Verify the bearer token and attach the caller's identity to ``g``.

    Raises:
        NoTokenError: Header missing or without a credential segment
        InvalidTokenError: Wrong scheme, bad signature or malformed token
        TokenExpiredError: Token past its expiry
    """
    # CORS preflight carries no credentials
    if request.method == "OPTIONS":
        return None

    header = request.headers.get("Authorization")
    if not header:
        raise NoTokenError()

    parts = header.split()
    if len(parts) < 2:
        raise NoTokenError()

    scheme, token = parts[0], parts[1]
    if scheme.lower() != "bearer":
        raise InvalidTokenError()

    codec = current_app.extensions["ats_tokens"]
    try:
        identity = codec.verify(token)
    except ExpiredToken:
        raise TokenExpiredError()
    except TokenVerificationError as e:
        logger.debug(f"Rejected token on {request.path}: {e}")
        raise InvalidTokenError()

    g.user_id = identity.user_id
    g.user_email = identity.email
    return None


def require_auth(f):
    """Decorator form of ``authenticate_request`` for single views."""

    @wraps(f)
    def decorated(*args, **kwargs):
        authenticate_request()
        return f(*args, **kwargs)

    return decorated

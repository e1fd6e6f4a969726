"""Authentication: token codec and request middleware."""

from ats.auth.middleware import authenticate_request, require_auth
from ats.auth.tokens import (
    ExpiredToken,
    Identity,
    MalformedToken,
    TokenCodec,
    TokenVerificationError,
)

__all__ = [
    "authenticate_request",
    "require_auth",
    "TokenCodec",
    "Identity",
    "TokenVerificationError",
    "ExpiredToken",
    "MalformedToken",
]

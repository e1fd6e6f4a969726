"""
Token codec - issues and verifies signed bearer credentials.

Tokens are HS256 JWTs carrying the user's ``id`` and ``email`` plus ``iat``
and ``exp``. Verification is pure: it never touches the database.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

ALGORITHM = "HS256"


class TokenVerificationError(Exception):
    """Token could not be verified."""


class ExpiredToken(TokenVerificationError):
    """Signature is valid but the token is past its expiry."""


class MalformedToken(TokenVerificationError):
    """Token is structurally invalid, unsigned by us, or missing its identity claim."""


@dataclass(frozen=True)
class Identity:
    """Verified identity extracted from a token."""

    user_id: int
    email: Optional[str]
    issued_at: datetime
    expires_at: datetime


class TokenCodec:
    """
    Issue and verify bearer tokens with one shared secret.

    Examples:
        >>> codec = TokenCodec("a-long-random-secret", ttl_hours=2)
        >>> token = codec.issue(42, {"email": "ann@example.com"})
        >>> codec.verify(token).user_id
        42
    """

    def __init__(self, secret: str, ttl_hours: float = 2):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self.ttl = timedelta(hours=ttl_hours)

    def issue(
        self,
        subject: int,
        claims: Optional[Dict[str, Any]] = None,
        ttl: Optional[timedelta] = None,
    ) -> str:
        """
        Sign a token for ``subject``.

        ``ttl`` overrides the codec default; a negative value yields a token
        that is already expired.
        """
        now = datetime.now(timezone.utc)
        payload = dict(claims or {})
        payload.update(
            {
                "id": subject,
                "iat": now,
                "exp": now + (self.ttl if ttl is None else ttl),
            }
        )
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> Identity:
        """
        Verify signature and expiry and return the identity.

        Raises:
            ExpiredToken: If the token's ``exp`` is in the past
            MalformedToken: For any other failure
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise ExpiredToken(str(e)) from e
        except jwt.InvalidTokenError as e:
            raise MalformedToken(str(e)) from e

        user_id = payload.get("id")
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise MalformedToken("Token has no usable 'id' claim")

        return Identity(
            user_id=user_id,
            email=payload.get("email"),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )

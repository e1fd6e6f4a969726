"""
Tests for the token codec.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from ats.auth.tokens import ALGORITHM, ExpiredToken, MalformedToken, TokenCodec

SECRET = "codec-secret-0123456789abcdef0123456789"


@pytest.fixture
def codec():
    return TokenCodec(SECRET, ttl_hours=2)


def test_issue_and_verify_round_trip(codec):
    token = codec.issue(7, {"email": "ann@example.com"})
    identity = codec.verify(token)

    assert identity.user_id == 7
    assert identity.email == "ann@example.com"
    assert identity.expires_at - identity.issued_at == timedelta(hours=2)


def test_token_carries_id_email_iat_exp(codec):
    payload = jwt.decode(codec.issue(3, {"email": "a@b.co"}), SECRET, algorithms=[ALGORITHM])
    assert payload["id"] == 3
    assert payload["email"] == "a@b.co"
    assert {"iat", "exp"} <= set(payload)


def test_expired_token_is_distinguished(codec):
    token = codec.issue(1, ttl=timedelta(seconds=-30))
    with pytest.raises(ExpiredToken):
        codec.verify(token)


def test_wrong_secret_is_malformed(codec):
    other = TokenCodec("another-secret-0123456789abcdef01234567")
    with pytest.raises(MalformedToken):
        codec.verify(other.issue(1))


def test_expired_token_with_bad_signature_is_malformed(codec):
    """Signature is checked before expiry, so a forged old token is not 'expired'."""
    other = TokenCodec("another-secret-0123456789abcdef01234567")
    with pytest.raises(MalformedToken):
        codec.verify(other.issue(1, ttl=timedelta(seconds=-30)))


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c", "Bearer abc"])
def test_structurally_invalid_tokens(codec, token):
    with pytest.raises(MalformedToken):
        codec.verify(token)


def test_token_without_identity_claim_is_rejected(codec):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"email": "x@y.z", "iat": now, "exp": now + timedelta(hours=1)}, SECRET, algorithm=ALGORITHM
    )
    with pytest.raises(MalformedToken, match="id"):
        codec.verify(token)


def test_token_without_expiry_is_rejected(codec):
    token = jwt.encode({"id": 1, "iat": datetime.now(timezone.utc)}, SECRET, algorithm=ALGORITHM)
    with pytest.raises(MalformedToken):
        codec.verify(token)


def test_unsigned_token_is_rejected(codec):
    now = datetime.now(timezone.utc)
    token = jwt.encode({"id": 1, "iat": now, "exp": now + timedelta(hours=1)}, None, algorithm="none")
    with pytest.raises(MalformedToken):
        codec.verify(token)


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        TokenCodec("")

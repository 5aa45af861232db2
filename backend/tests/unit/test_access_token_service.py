"""
Unit tests for access token signing and verification.

Runs inside an app context (secret and TTL come from TestingConfig); no database.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from backend.app.errors import AuthenticationError, ErrorCode
from backend.app.services.access_token_service import (
    AccessTokenClaims,
    sign_access_token,
    verify_access_token,
)

CLAIMS = AccessTokenClaims(sub="3f0c8a52-0000-4000-8000-000000000001", email="a@b.com", role="USER")


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


def test_sign_then_verify_round_trips_identity_claims(ctx):
    token = sign_access_token(CLAIMS)
    assert verify_access_token(token) == CLAIMS


def test_expiry_matches_configured_ttl(ctx):
    token = sign_access_token(CLAIMS)
    payload = jwt.decode(token, ctx.config["JWT_SECRET_KEY"], algorithms=["HS256"])
    ttl = ctx.config["JWT_ACCESS_TOKEN_EXPIRES"]
    assert payload["exp"] - payload["iat"] == int(ttl.total_seconds())


def test_tokens_for_same_claims_are_unique(ctx):
    assert sign_access_token(CLAIMS) != sign_access_token(CLAIMS)


def test_expired_token_raises_token_expired(ctx, monkeypatch):
    monkeypatch.setitem(ctx.config, "JWT_ACCESS_TOKEN_EXPIRES", timedelta(seconds=-30))
    token = sign_access_token(CLAIMS)

    with pytest.raises(AuthenticationError) as exc_info:
        verify_access_token(token)
    assert exc_info.value.code == ErrorCode.TOKEN_EXPIRED
    assert exc_info.value.http_status == 401


def test_tampered_token_raises_token_invalid(ctx):
    token = sign_access_token(CLAIMS)
    head, body, signature = token.split(".")
    tampered = ".".join([head, body, signature[::-1]])

    with pytest.raises(AuthenticationError) as exc_info:
        verify_access_token(tampered)
    assert exc_info.value.code == ErrorCode.TOKEN_INVALID


def test_token_signed_with_other_secret_is_rejected(ctx):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": CLAIMS.sub, "email": CLAIMS.email, "role": CLAIMS.role,
         "typ": "access", "iat": now, "exp": now + timedelta(minutes=5)},
        "some-other-secret-that-is-long-enough-32b",
        algorithm="HS256",
    )
    with pytest.raises(AuthenticationError) as exc_info:
        verify_access_token(token)
    assert exc_info.value.code == ErrorCode.TOKEN_INVALID


def test_token_without_role_claim_is_rejected(ctx):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": CLAIMS.sub, "email": CLAIMS.email, "typ": "access",
         "iat": now, "exp": now + timedelta(minutes=5)},
        ctx.config["JWT_SECRET_KEY"],
        algorithm="HS256",
    )
    with pytest.raises(AuthenticationError) as exc_info:
        verify_access_token(token)
    assert exc_info.value.code == ErrorCode.TOKEN_INVALID


def test_token_without_exp_is_rejected(ctx):
    token = jwt.encode(
        {"sub": CLAIMS.sub, "email": CLAIMS.email, "role": CLAIMS.role, "typ": "access",
         "iat": datetime.now(timezone.utc)},
        ctx.config["JWT_SECRET_KEY"],
        algorithm="HS256",
    )
    with pytest.raises(AuthenticationError) as exc_info:
        verify_access_token(token)
    assert exc_info.value.code == ErrorCode.TOKEN_INVALID


def test_garbage_string_is_rejected(ctx):
    with pytest.raises(AuthenticationError):
        verify_access_token("definitely-not-a-jwt")

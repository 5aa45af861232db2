"""
services/access_token_service.py — Access token signing and verification.

Access tokens are stateless HS256 JWTs:
  sub   : user id (str)
  email : user email
  role  : USER | ADMIN
  iat / exp : issue time and explicit expiry (JWT_ACCESS_TOKEN_EXPIRES)
  jti   : random id, so two tokens minted in the same second differ
  typ   : "access"

The signing secret is JWT_SECRET_KEY from the Flask config, loaded once at
startup. No revocation list is consulted: a token that verifies is trusted
until its exp, even after logout.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone

import jwt
from flask import current_app

from backend.app.errors import AuthenticationError, ErrorCode
from backend.app.models.user import Role

TOKEN_TYPE = "access"


@dataclass(frozen=True)
class AccessTokenClaims:
    sub: str
    email: str
    role: str


def sign_access_token(claims: AccessTokenClaims) -> str:
    """Signs `claims` into a JWT that expires after JWT_ACCESS_TOKEN_EXPIRES."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(claims.sub),
        "email": claims.email,
        "role": claims.role,
        "typ": TOKEN_TYPE,
        "iat": now,
        "exp": now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"],
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def verify_access_token(token: str) -> AccessTokenClaims:
    """
    Checks signature and expiry and returns the identity claims.

    Raises:
      AuthenticationError(TOKEN_EXPIRED) — signature valid, exp in the past
      AuthenticationError(TOKEN_INVALID) — bad signature, malformed token,
                                           missing or wrong-typed claims
    """
    try:
        payload = jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(
            "The access token has expired. Use POST /auth/refresh to obtain a new one.",
            code=ErrorCode.TOKEN_EXPIRED,
        )
    except jwt.InvalidTokenError:
        raise AuthenticationError(
            "The access token is invalid or has been tampered with.",
            code=ErrorCode.TOKEN_INVALID,
        )

    sub = payload.get("sub")
    email = payload.get("email")
    role = payload.get("role")

    if (
        payload.get("typ") != TOKEN_TYPE
        or not isinstance(sub, str) or not sub
        or not isinstance(email, str)
        or role not in Role.ALL
    ):
        raise AuthenticationError(
            "The access token is missing required claims.",
            code=ErrorCode.TOKEN_INVALID,
        )

    return AccessTokenClaims(sub=sub, email=email, role=role)

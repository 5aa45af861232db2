"""
middleware/auth_middleware.py — JWT authentication and role decorators.

@require_auth:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Verifies signature and expiry via access_token_service
  3. Confirms the subject still exists
  4. Attaches user_id, user_email and user_role to flask.g

@require_roles(*roles) / @require_admin:
  Runs after @require_auth and raises 403 FORBIDDEN when g.user_role is not
  one of `roles`.

Error codes:
  TOKEN_MISSING  (401) — no Authorization header
  TOKEN_INVALID  (401) — malformed header, invalid signature, bad claims,
                         or the subject no longer exists
  TOKEN_EXPIRED  (401) — valid token but exp claim is in the past
  FORBIDDEN      (403) — authenticated, role not allowed
"""

from __future__ import annotations

import functools
from typing import Callable

from flask import g, request

from backend.app.errors import AuthenticationError, ErrorCode, ForbiddenError
from backend.app.extensions import db
from backend.app.models.user import Role, User
from backend.app.services.access_token_service import verify_access_token


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces JWT authentication.

    Usage:
        @auth_bp.route("/profile")
        @require_auth
        def profile():
            user_id = g.user_id
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def require_roles(*roles: str) -> Callable[[Callable], Callable]:
    """Route decorator factory; apply below @require_auth."""
    allowed = frozenset(roles)

    def decorator(f: Callable) -> Callable:
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            role = getattr(g, "user_role", None)
            if role is None:
                raise AuthenticationError(
                    "Authentication required.",
                    code=ErrorCode.TOKEN_MISSING,
                )
            if role not in allowed:
                raise ForbiddenError(
                    f"Access denied. Required roles: {', '.join(sorted(allowed))}."
                )
            return f(*args, **kwargs)

        return decorated

    return decorator


require_admin = require_roles(Role.ADMIN)


def _authenticate_request() -> None:
    """
    Performs the full JWT authentication sequence and populates flask.g.

    Raises AppError on any failure; the global error handler renders it.
    """
    auth_header = request.headers.get("Authorization", "")

    if not auth_header:
        raise AuthenticationError(
            "Authentication required. Provide a Bearer token in the Authorization header.",
            code=ErrorCode.TOKEN_MISSING,
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError(
            "Authorization header must be in the format: Bearer <token>.",
            code=ErrorCode.TOKEN_INVALID,
        )

    claims = verify_access_token(parts[1])

    user = db.session.get(User, claims.sub)
    if user is None:
        raise AuthenticationError(
            "The access token refers to an unknown user.",
            code=ErrorCode.TOKEN_INVALID,
        )

    g.user_id = user.id
    g.user_email = user.email
    g.user_role = user.role

"""
routes/auth.py — Authentication route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE service function
  - Commit the DB session
  - Return the standard response envelope: {"data": {...}, "warnings": []}

AppError propagates to the global error handler in app/__init__.py — routes
never catch it.

The refresh token never appears in a response body. It is set as an httpOnly
cookie on register/login/refresh and cleared on logout. Refresh and logout
read it from that cookie, falling back to a `refresh_token` body field.

Endpoints (url_prefix=/api/v1/auth):
  POST   /register    → 201
  POST   /login       → 200
  POST   /refresh     → 200
  POST   /logout      → 200
  GET    /profile     → 200  (auth required)
  GET    /admin/ping  → 200  (ADMIN role required)
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from backend.app.errors import AuthenticationError, ErrorCode
from backend.app.extensions import db
from backend.app.middleware.auth_middleware import require_admin, require_auth
from backend.app.schemas.auth_schema import LoginSchema, RefreshTokenSchema, RegisterSchema
from backend.app.services import auth_service

auth_bp = Blueprint("auth", __name__)


# ── Cookie helpers ─────────────────────────────────────────────────────────

def _set_refresh_cookie(response, raw_token: str) -> None:
    config = current_app.config
    response.set_cookie(
        config["REFRESH_COOKIE_NAME"],
        raw_token,
        max_age=int(config["JWT_REFRESH_TOKEN_EXPIRES"].total_seconds()),
        path=config["REFRESH_COOKIE_PATH"],
        secure=config["REFRESH_COOKIE_SECURE"],
        httponly=True,
        samesite=config["REFRESH_COOKIE_SAMESITE"],
    )


def _clear_refresh_cookie(response) -> None:
    config = current_app.config
    response.delete_cookie(
        config["REFRESH_COOKIE_NAME"],
        path=config["REFRESH_COOKIE_PATH"],
        secure=config["REFRESH_COOKIE_SECURE"],
        httponly=True,
        samesite=config["REFRESH_COOKIE_SAMESITE"],
    )


def _presented_refresh_token() -> str | None:
    """Cookie first, then the optional `refresh_token` body field."""
    raw = request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
    if raw:
        return raw
    data = RefreshTokenSchema().load(request.get_json(silent=True) or {})
    return data["refresh_token"]


def _with_session_tokens(result: dict, status: int):
    """Moves the raw refresh token from `result` into the cookie."""
    payload = dict(result)
    raw_refresh = payload.pop("refresh_token")
    response = jsonify({"data": payload, "warnings": []})
    response.status_code = status
    _set_refresh_cookie(response, raw_refresh)
    return response


# ── Endpoints ──────────────────────────────────────────────────────────────

@auth_bp.route("/register", methods=["POST"])
def register():
    """POST /auth/register — Create account; return tokens. (No auth required.)"""
    data = RegisterSchema().load(request.get_json(force=True, silent=True) or {})
    result = auth_service.register_user(
        email=data["email"],
        password=data["password"],
        first_name=data["first_name"],
        last_name=data["last_name"],
        street=data["street"],
        house_number=data["house_number"],
        postal_code=data["postal_code"],
        city=data["city"],
        session=db.session,
    )
    db.session.commit()
    return _with_session_tokens(result, 201)


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login — Authenticate; return tokens. (No auth required.)"""
    data = LoginSchema().load(request.get_json(force=True, silent=True) or {})
    result = auth_service.login_user(
        email=data["email"],
        password=data["password"],
        session=db.session,
    )
    db.session.commit()
    return _with_session_tokens(result, 200)


@auth_bp.route("/refresh", methods=["POST"])
def refresh():
    """POST /auth/refresh — Rotate the refresh token; return a new access token."""
    raw = _presented_refresh_token()
    if not raw:
        raise AuthenticationError(
            "Missing refresh token.",
            code=ErrorCode.REFRESH_TOKEN_MISSING,
        )

    result = auth_service.refresh_user_tokens(
        raw_refresh_token=raw,
        session=db.session,
    )
    db.session.commit()
    return _with_session_tokens(result, 200)


@auth_bp.route("/logout", methods=["POST"])
def logout():
    """
    POST /auth/logout — Revoke the presented refresh token.

    Without any refresh token the caller is already logged out: 200, cookie cleared.
    """
    raw = _presented_refresh_token()
    if not raw:
        response = jsonify({"data": {"message": "Already logged out."}, "warnings": []})
        _clear_refresh_cookie(response)
        return response, 200

    result = auth_service.logout_user(
        raw_refresh_token=raw,
        session=db.session,
    )
    db.session.commit()

    response = jsonify({"data": result, "warnings": []})
    _clear_refresh_cookie(response)
    return response, 200


@auth_bp.route("/profile", methods=["GET"])
@require_auth
def profile():
    """GET /auth/profile — Return current user profile. (Auth required.)"""
    result = auth_service.get_user_profile(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/admin/ping", methods=["GET"])
@require_auth
@require_admin
def admin_ping():
    """GET /auth/admin/ping — Role guard probe. (ADMIN required.)"""
    return jsonify({"data": {"message": "pong", "role": g.user_role}, "warnings": []}), 200

"""
Tests for auth_service flows, called directly (no HTTP layer).

Most tests use the `session` fixture and commit after each service call, the
way the routes do. The profile projection tests run DB-free with a mocked
session, like the rest of the unit suite.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy import text

from backend.app.errors import (
    AppError,
    AuthenticationError,
    ConflictError,
    ErrorCode,
    InternalServerError,
    NotFoundError,
)
from backend.app.models.refresh_token import RefreshToken
from backend.app.services import auth_service, refresh_token_service
from backend.app.services.access_token_service import AccessTokenClaims, verify_access_token


def _register(session, email: str = "alice@test.com", password: str = "Password1") -> dict:
    result = auth_service.register_user(
        email=email,
        password=password,
        first_name="Alice",
        last_name="Jansen",
        street="Main Street",
        house_number="12",
        postal_code="1234 AB",
        city="Amsterdam",
        session=session,
    )
    session.commit()
    return result


# ═══════════════════════════════════════════════════════════════════════════
# get_user_profile (DB-free)
# ═══════════════════════════════════════════════════════════════════════════

def test_get_user_profile_returns_public_projection():
    session = MagicMock()
    session.get.return_value = SimpleNamespace(
        id="u-7",
        email="alice@example.com",
        first_name="Alice",
        last_name="Jansen",
        role="USER",
        password_hash="$2b$04$secret",
    )

    result = auth_service.get_user_profile(user_id="u-7", session=session)

    assert result == {
        "id": "u-7",
        "email": "alice@example.com",
        "first_name": "Alice",
        "last_name": "Jansen",
        "role": "USER",
    }


def test_get_user_profile_raises_not_found():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(NotFoundError) as exc_info:
        auth_service.get_user_profile(user_id="missing", session=session)

    err = exc_info.value
    assert err.code == ErrorCode.USER_NOT_FOUND
    assert err.http_status == 404


def test_get_user_profile_maps_driver_errors_to_internal_error():
    session = MagicMock()
    session.get.side_effect = RuntimeError("connection reset")

    with pytest.raises(InternalServerError) as exc_info:
        auth_service.get_user_profile(user_id="u-7", session=session)

    assert "connection reset" not in exc_info.value.message


def test_normalize_email_trims_and_lowercases():
    assert auth_service.normalize_email("  Alice@Example.COM ") == "alice@example.com"


# ═══════════════════════════════════════════════════════════════════════════
# register / login
# ═══════════════════════════════════════════════════════════════════════════

def test_register_returns_user_and_both_tokens(app, session):
    result = _register(session)

    assert set(result) == {"user", "access_token", "refresh_token"}
    assert result["user"]["role"] == "USER"
    claims = verify_access_token(result["access_token"])
    assert claims == AccessTokenClaims(
        sub=result["user"]["id"], email="alice@test.com", role="USER",
    )


def test_register_twice_with_same_email_raises_conflict(session):
    _register(session)

    with pytest.raises(ConflictError) as exc_info:
        _register(session, email="ALICE@test.com ")

    assert exc_info.value.code == ErrorCode.DUPLICATE_EMAIL
    assert exc_info.value.http_status == 409


def test_register_then_login_succeeds(session):
    registered = _register(session)

    result = auth_service.login_user("alice@test.com", "Password1", session=session)
    session.commit()

    assert result["user"]["id"] == registered["user"]["id"]


def test_login_persists_matching_refresh_token_row(session):
    _register(session)

    result = auth_service.login_user("alice@test.com", "Password1", session=session)
    session.commit()

    record = refresh_token_service.validate_refresh_token(result["refresh_token"], session)
    assert record is not None
    assert record.user_id == result["user"]["id"]
    assert verify_access_token(result["access_token"]).sub == result["user"]["id"]


@pytest.mark.parametrize("email, password", [
    ("ghost@test.com", "Password1"),
    ("alice@test.com", "WrongPass1"),
])
def test_login_failures_share_one_generic_error(session, email, password):
    _register(session)

    with pytest.raises(AuthenticationError) as exc_info:
        auth_service.login_user(email, password, session=session)

    err = exc_info.value
    assert err.code == ErrorCode.INVALID_CREDENTIALS
    assert err.message == "Invalid email or password"


def test_login_with_unknown_email_still_runs_a_bcrypt_verify(session, monkeypatch):
    calls = []

    def recording_verify(plaintext, hashed):
        calls.append((plaintext, hashed))
        return False

    monkeypatch.setattr(auth_service, "verify_password", recording_verify)

    with pytest.raises(AuthenticationError) as exc_info:
        auth_service.login_user("ghost@test.com", "Password1", session=session)

    assert exc_info.value.message == "Invalid email or password"
    assert len(calls) == 1
    plaintext, hashed = calls[0]
    assert plaintext == "Password1"
    # Dummy hash uses the configured cost (4 under TestingConfig).
    assert hashed.startswith("$2b$04$")


def test_login_with_corrupt_stored_hash_raises_internal_error(session):
    _register(session)
    session.execute(text("UPDATE users SET password_hash = 'corrupt'"))
    session.commit()

    with pytest.raises(InternalServerError):
        auth_service.login_user("alice@test.com", "Password1", session=session)


# ═══════════════════════════════════════════════════════════════════════════
# refresh / logout
# ═══════════════════════════════════════════════════════════════════════════

def test_refresh_rotates_and_revokes_presented_token(session):
    registered = _register(session)
    old_raw = registered["refresh_token"]

    result = auth_service.refresh_user_tokens(old_raw, session=session)
    session.commit()

    assert set(result) == {"access_token", "refresh_token"}
    assert result["refresh_token"] != old_raw
    assert verify_access_token(result["access_token"]).sub == registered["user"]["id"]
    assert refresh_token_service.validate_refresh_token(old_raw, session) is None
    assert refresh_token_service.validate_refresh_token(result["refresh_token"], session) is not None


def test_refresh_with_rotated_token_fails(session):
    old_raw = _register(session)["refresh_token"]
    auth_service.refresh_user_tokens(old_raw, session=session)
    session.commit()

    with pytest.raises(AuthenticationError) as exc_info:
        auth_service.refresh_user_tokens(old_raw, session=session)

    assert exc_info.value.code == ErrorCode.REFRESH_TOKEN_INVALID
    assert exc_info.value.message == "Invalid or expired refresh token"


def test_refresh_losing_revoke_race_fails(session, monkeypatch):
    raw = _register(session)["refresh_token"]
    monkeypatch.setattr(refresh_token_service, "revoke_refresh_token", lambda *a, **kw: None)

    with pytest.raises(AuthenticationError):
        auth_service.refresh_user_tokens(raw, session=session)

    session.rollback()
    assert session.query(RefreshToken).count() == 1


def test_refresh_for_deleted_user_fails(session):
    raw = _register(session)["refresh_token"]
    session.execute(text("DELETE FROM users"))
    session.commit()

    with pytest.raises(AuthenticationError) as exc_info:
        auth_service.refresh_user_tokens(raw, session=session)
    assert exc_info.value.code == ErrorCode.REFRESH_TOKEN_INVALID


def test_logout_then_refresh_fails(session):
    raw = _register(session)["refresh_token"]

    assert auth_service.logout_user(raw, session=session) == {"message": "Logout successful."}
    session.commit()

    with pytest.raises(AuthenticationError):
        auth_service.refresh_user_tokens(raw, session=session)


def test_logout_with_unknown_token_fails(session):
    with pytest.raises(AuthenticationError) as exc_info:
        auth_service.logout_user("unknown", session=session)
    assert exc_info.value.http_status == 401


def test_unexpected_store_failure_becomes_internal_error(session, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(refresh_token_service, "validate_refresh_token", boom)

    with pytest.raises(InternalServerError) as exc_info:
        auth_service.refresh_user_tokens("anything", session=session)

    err = exc_info.value
    assert isinstance(err, AppError)
    assert err.code == ErrorCode.INTERNAL_ERROR
    assert err.message == "Failed to refresh authentication tokens."

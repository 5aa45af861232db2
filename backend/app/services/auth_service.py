"""
services/auth_service.py — Authentication business logic.

Composes the password hasher, the access token signer and the refresh token
store into the five auth flows: register, login, profile, refresh, logout.

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g, or HTTP status codes
  - Functions flush; committing is the route's job

Error boundary:
  Every public function passes AuthenticationError, ConflictError,
  NotFoundError and InternalServerError through unchanged. Anything else
  (driver errors, malformed hashes, ...) is logged with its traceback and
  re-raised as InternalServerError, so internal detail never reaches callers.

Enumeration resistance:
  Unknown email and wrong password produce the same AuthenticationError
  message, and both pay for one bcrypt verify. Every refresh/logout failure
  produces the same message too.

Refresh rotation:
  A successful refresh revokes the presented token before issuing the new
  pair. The revoke is conditional on the row still being unrevoked, so two
  concurrent refreshes with one token cannot both succeed.
"""

from __future__ import annotations

import functools
import logging
from typing import Callable, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.errors import (
    KNOWN_AUTH_ERRORS,
    AuthenticationError,
    ConflictError,
    ErrorCode,
    InternalServerError,
    NotFoundError,
)
from backend.app.models.user import Role, User
from backend.app.services import refresh_token_service
from backend.app.services.access_token_service import AccessTokenClaims, sign_access_token
from backend.app.services.password_hasher import dummy_hash, hash_password, verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
INVALID_REFRESH_MESSAGE = "Invalid or expired refresh token"

F = TypeVar("F", bound=Callable)


def _service_boundary(failure_message: str) -> Callable[[F], F]:
    """Re-maps unexpected exceptions raised by `f` to InternalServerError."""

    def decorator(f: F) -> F:
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except KNOWN_AUTH_ERRORS:
                raise
            except Exception:
                logger.exception("Unexpected error in %s", f.__name__)
                raise InternalServerError(failure_message)

        return wrapper  # type: ignore[return-value]

    return decorator


# ── Private helpers ────────────────────────────────────────────────────────

def normalize_email(email: str) -> str:
    return email.strip().lower()


def _find_user_by_email(email: str, session: Session) -> User | None:
    return session.execute(
        select(User).where(func.lower(User.email) == normalize_email(email))
    ).scalar_one_or_none()


def _build_user_dict(user: User) -> dict:
    """Public projection of a User. Never includes the password hash."""
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": user.role,
    }


def _build_token_pair(user: User, session: Session) -> dict:
    access_token = sign_access_token(
        AccessTokenClaims(sub=user.id, email=user.email, role=user.role)
    )
    raw_refresh = refresh_token_service.generate_refresh_token()
    refresh_token_service.issue_refresh_token(user.id, raw_refresh, session)
    return {
        "access_token": access_token,
        "refresh_token": raw_refresh,
    }


def _invalid_refresh() -> AuthenticationError:
    return AuthenticationError(INVALID_REFRESH_MESSAGE, code=ErrorCode.REFRESH_TOKEN_INVALID)


# ── Public service functions ───────────────────────────────────────────────

@_service_boundary("Failed to complete user registration.")
def register_user(
        email: str,
        password: str,
        session: Session,
        first_name: str | None = None,
        last_name: str | None = None,
        street: str | None = None,
        house_number: str | None = None,
        postal_code: str | None = None,
        city: str | None = None,
) -> dict:
    """
    Creates a USER account and issues an access + refresh token pair.

    The insert is guarded by the unique index on lower(email); a violation is
    confirmed with a lookup and reported as a conflict. No separate
    check-then-insert step exists, so two racing registrations for one email
    cannot both succeed.

    Raises:
      ConflictError(DUPLICATE_EMAIL, 409) — email already registered

    Returns: {"user": {...}, "access_token": "...", "refresh_token": "..."}
    """
    normalized = normalize_email(email)

    user = User(
        email=normalized,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        street=street,
        house_number=house_number,
        postal_code=postal_code.replace(" ", "") if postal_code else postal_code,
        city=city,
        role=Role.USER,
    )
    session.add(user)
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        if _find_user_by_email(normalized, session) is not None:
            logger.warning(
                "registration rejected: email already registered",
                extra={"event": "auth.register.conflict"},
            )
            raise ConflictError(
                "A user with this email already exists.",
                field="email",
            )
        raise

    created = _find_user_by_email(normalized, session)
    if created is None:
        logger.error(
            "registered user could not be re-fetched",
            extra={"event": "auth.register.missing"},
        )
        raise InternalServerError("Failed to complete user registration.")

    tokens = _build_token_pair(created, session)
    logger.info(
        "user registered",
        extra={"event": "auth.register.success", "user_id": created.id},
    )

    return {
        "user": _build_user_dict(created),
        **tokens,
    }


@_service_boundary("Failed to authenticate user.")
def login_user(email: str, password: str, session: Session) -> dict:
    """
    Validates credentials and issues a new access + refresh token pair.

    Raises:
      AuthenticationError(INVALID_CREDENTIALS, 401) — unknown email or wrong
      password, with the same message for both.

    Returns: {"user": {...}, "access_token": "...", "refresh_token": "..."}
    """
    user = _find_user_by_email(email, session)

    if user is None:
        # Same bcrypt work as a wrong password.
        verify_password(password, dummy_hash())
        password_ok = False
    else:
        password_ok = verify_password(password, user.password_hash)

    if not password_ok:
        logger.warning(
            "login failed",
            extra={"event": "auth.login.failure"},
        )
        raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

    tokens = _build_token_pair(user, session)
    logger.info(
        "user authenticated",
        extra={"event": "auth.login.success", "user_id": user.id},
    )

    return {
        "user": _build_user_dict(user),
        **tokens,
    }


@_service_boundary("Failed to load user profile.")
def get_user_profile(user_id: str, session: Session) -> dict:
    """
    Returns the public profile of `user_id`.

    Raises:
      NotFoundError(USER_NOT_FOUND, 404) — user deleted after token issue.
    """
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return _build_user_dict(user)


@_service_boundary("Failed to refresh authentication tokens.")
def refresh_user_tokens(raw_refresh_token: str, session: Session) -> dict:
    """
    Exchanges a valid refresh token for a new access + refresh token pair.

    The presented token is revoked as part of the exchange.

    Raises:
      AuthenticationError(REFRESH_TOKEN_INVALID, 401) — unknown, revoked,
      expired, already rotated, or owned by a user that no longer exists.

    Returns: {"access_token": "...", "refresh_token": "..."}
    """
    match = refresh_token_service.validate_refresh_token(raw_refresh_token, session)
    if match is None:
        raise _invalid_refresh()

    user = session.get(User, match.user_id)
    if user is None:
        logger.warning(
            "refresh token owner no longer exists",
            extra={"event": "auth.refresh.orphan", "token_id": match.id},
        )
        raise _invalid_refresh()

    if refresh_token_service.revoke_refresh_token(match.id, session) is None:
        # Lost a race against another refresh or logout using the same token.
        raise _invalid_refresh()

    tokens = _build_token_pair(user, session)
    logger.info(
        "tokens refreshed",
        extra={"event": "auth.refresh.success", "user_id": user.id},
    )
    return tokens


@_service_boundary("Failed to process logout request.")
def logout_user(raw_refresh_token: str, session: Session) -> dict:
    """
    Revokes a refresh token. Access tokens already issued stay valid until
    their own exp; there is no access token denylist.

    Raises:
      AuthenticationError(REFRESH_TOKEN_INVALID, 401) — token not found,
      expired, or already revoked.
    """
    match = refresh_token_service.validate_refresh_token(raw_refresh_token, session)
    if match is None:
        raise _invalid_refresh()

    if refresh_token_service.revoke_refresh_token(match.id, session) is None:
        raise _invalid_refresh()

    logger.info(
        "user logged out",
        extra={"event": "auth.logout.success", "user_id": match.user_id},
    )
    return {"message": "Logout successful."}

"""
services/refresh_token_service.py — Refresh token store.

Refresh tokens are opaque: 48 random bytes from `secrets`, hex encoded,
returned to the client once. The database keeps only:

  token_lookup : first 16 hex chars of SHA-256(raw). Indexed, non-secret.
                 Narrows validation to a handful of candidate rows instead of
                 a scan over every valid token in the system.
  hashed_token : bcrypt(SHA-256(raw)). The SHA-256 step keeps the bcrypt
                 input under its 72-byte limit; the bcrypt compare is still
                 required for a match.

A token is valid iff revoked_at IS NULL and expires_at > now.

Not-found and already-revoked outcomes return None rather than raising.
Database errors propagate to the caller untouched.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from backend.app.models.refresh_token import RefreshToken
from backend.app.services.password_hasher import hash_password, verify_password

logger = logging.getLogger(__name__)

TOKEN_BYTES = 48
LOOKUP_KEY_LENGTH = 16


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _digest(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def _lookup_key(raw_token: str) -> str:
    return _digest(raw_token)[:LOOKUP_KEY_LENGTH]


def _valid_clause(now: datetime):
    return (RefreshToken.revoked_at.is_(None)) & (RefreshToken.expires_at > now)


def generate_refresh_token() -> str:
    """Returns a fresh raw refresh token (96 hex chars, 384 bits of entropy)."""
    return secrets.token_hex(TOKEN_BYTES)


def issue_refresh_token(user_id: str, raw_token: str, session: Session) -> RefreshToken:
    """
    Persists a new refresh token row for `user_id` and returns it.

    Expiry is now + JWT_REFRESH_TOKEN_EXPIRES. Prior tokens of the user are
    left untouched. The row is flushed, not committed.
    """
    record = RefreshToken(
        user_id=user_id,
        token_lookup=_lookup_key(raw_token),
        hashed_token=hash_password(_digest(raw_token)),
        expires_at=_now() + current_app.config["JWT_REFRESH_TOKEN_EXPIRES"],
    )
    session.add(record)
    session.flush()

    logger.info(
        "refresh token issued",
        extra={"event": "refresh_token.issued", "user_id": user_id, "token_id": record.id},
    )
    return record


def find_valid_tokens(session: Session, user_id: str | None = None) -> list[RefreshToken]:
    """All non-revoked, non-expired rows, optionally scoped to one user."""
    stmt = select(RefreshToken).where(_valid_clause(_now()))
    if user_id is not None:
        stmt = stmt.where(RefreshToken.user_id == user_id)
    return list(session.execute(stmt.order_by(RefreshToken.id)).scalars())


def validate_refresh_token(
        raw_token: str,
        session: Session,
        user_id: str | None = None,
) -> RefreshToken | None:
    """
    Returns the valid row matching `raw_token`, or None.

    Candidates share the token's lookup key; each is bcrypt-compared and the
    first match wins.
    """
    stmt = (
        select(RefreshToken)
        .where(_valid_clause(_now()))
        .where(RefreshToken.token_lookup == _lookup_key(raw_token))
        .order_by(RefreshToken.id)
    )
    if user_id is not None:
        stmt = stmt.where(RefreshToken.user_id == user_id)

    digest = _digest(raw_token)
    for candidate in session.execute(stmt).scalars():
        if verify_password(digest, candidate.hashed_token):
            logger.info(
                "refresh token validated",
                extra={
                    "event": "refresh_token.validated",
                    "user_id": candidate.user_id,
                    "token_id": candidate.id,
                },
            )
            return candidate

    logger.warning(
        "refresh token rejected",
        extra={"event": "refresh_token.rejected"},
    )
    return None


def revoke_refresh_token(token_id: int, session: Session) -> RefreshToken | None:
    """
    Sets revoked_at = now on row `token_id`.

    The UPDATE only matches a row that is still unrevoked, so of two
    concurrent revocations exactly one wins. Returns the revoked row for the
    winner; None if the id is unknown or the row was already revoked.
    """
    result = session.execute(
        update(RefreshToken)
        .where(RefreshToken.id == token_id)
        .where(RefreshToken.revoked_at.is_(None))
        .values(revoked_at=_now())
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        return None

    record = session.get(RefreshToken, token_id, populate_existing=True)
    logger.info(
        "refresh token revoked",
        extra={
            "event": "refresh_token.revoked",
            "user_id": record.user_id if record is not None else None,
            "token_id": token_id,
        },
    )
    return record


def prune_refresh_tokens(session: Session) -> int:
    """Deletes expired or revoked rows. Returns the number of rows removed."""
    result = session.execute(
        delete(RefreshToken)
        .where(or_(
            RefreshToken.revoked_at.is_not(None),
            RefreshToken.expires_at <= _now(),
        ))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount

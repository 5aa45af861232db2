"""
services/password_hasher.py — bcrypt wrapper shared by every hashing call site.

bcrypt output is self-describing ($2b$<cost>$<salt><digest>) and salted per
call, so hashing the same input twice never yields the same string.
checkpw compares in constant time.

One cost policy: BCRYPT_LOG_ROUNDS from the Flask config, unless a caller
passes `rounds` explicitly (tests, CLI without an app context).
"""

from __future__ import annotations

import bcrypt
from flask import current_app, has_app_context

# bcrypt only reads the first 72 bytes of its input.
MAX_INPUT_BYTES = 72

DEFAULT_ROUNDS = 12


def _resolve_rounds(rounds: int | None) -> int:
    if rounds is not None:
        return rounds
    if has_app_context():
        return int(current_app.config.get("BCRYPT_LOG_ROUNDS", DEFAULT_ROUNDS))
    return DEFAULT_ROUNDS


def hash_password(plaintext: str, rounds: int | None = None) -> str:
    """
    Returns a bcrypt hash string for `plaintext`.

    Raises ValueError if the input exceeds bcrypt's 72-byte limit; schemas
    reject such passwords before they reach this point.
    """
    encoded = plaintext.encode("utf-8")
    if len(encoded) > MAX_INPUT_BYTES:
        raise ValueError("bcrypt input must be at most 72 bytes.")

    return bcrypt.hashpw(
        encoded,
        bcrypt.gensalt(rounds=_resolve_rounds(rounds)),
    ).decode("utf-8")


def verify_password(plaintext: str, hashed: str) -> bool:
    """
    Returns True iff `plaintext` matches `hashed`. Never raises on mismatch.

    A malformed `hashed` value raises ValueError from bcrypt; the auth service
    boundary maps that to InternalServerError.
    """
    encoded = plaintext.encode("utf-8")
    if len(encoded) > MAX_INPUT_BYTES:
        return False
    return bcrypt.checkpw(encoded, hashed.encode("utf-8"))


_dummy_hashes: dict[int, str] = {}


def dummy_hash() -> str:
    """
    A throwaway hash at the configured cost.

    Verifying against it costs the same as a real verify, so a login for an
    unknown email takes as long as one with a wrong password.
    """
    rounds = _resolve_rounds(None)
    if rounds not in _dummy_hashes:
        _dummy_hashes[rounds] = hash_password("frontrow-unknown-user", rounds=rounds)
    return _dummy_hashes[rounds]

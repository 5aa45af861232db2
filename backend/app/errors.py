"""
errors.py — AppError hierarchy and error code registry.

Every error returned by the FrontRow API uses a code defined here.
Do not raise strings or generic exceptions from service or route code.

Taxonomy used by the auth services:
  AuthenticationError  401 — bad credentials or tokens (generic messages only)
  ForbiddenError       403 — authenticated but role not allowed
  NotFoundError        404 — missing user / profile
  ConflictError        409 — duplicate registration
  InternalServerError  500 — unexpected or defensive failures

Never conflate 401 (unauthenticated) with 403 (unauthorized).
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# These are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, but you are not allowed
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    REFRESH_TOKEN_MISSING      = "REFRESH_TOKEN_MISSING"  # 401
    REFRESH_TOKEN_INVALID      = "REFRESH_TOKEN_INVALID"  # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Taxonomy ───────────────────────────────────────────────────────────────

class AuthenticationError(AppError):

    def __init__(
            self,
            message: str = "Authentication failed.",
            code: str = ErrorCode.INVALID_CREDENTIALS,
    ) -> None:
        super().__init__(code, message, 401)


class ForbiddenError(AppError):

    def __init__(self, message: str = "Access denied.") -> None:
        super().__init__(ErrorCode.FORBIDDEN, message, 403)


class NotFoundError(AppError):

    def __init__(
            self,
            message: str = "Resource not found.",
            code: str = ErrorCode.USER_NOT_FOUND,
    ) -> None:
        super().__init__(code, message, 404)


class ConflictError(AppError):

    def __init__(
            self,
            message: str = "Resource conflict.",
            code: str = ErrorCode.DUPLICATE_EMAIL,
            field: str | None = None,
    ) -> None:
        super().__init__(code, message, 409, field=field)


class InternalServerError(AppError):

    def __init__(self, message: str = "An unexpected error occurred.") -> None:
        super().__init__(ErrorCode.INTERNAL_ERROR, message, 500)


# The four kinds the auth orchestrator lets through its boundary unchanged.
KNOWN_AUTH_ERRORS: tuple[type[AppError], ...] = (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    InternalServerError,
)

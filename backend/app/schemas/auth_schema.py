"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: field types, lengths, formats.
  - services/auth_service.py: DUPLICATE_EMAIL (needs the database).

All schemas inherit from marshmallow.Schema directly, not ma.Schema, so they
can be unit tested without an app context.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, pre_load, validate, validates

# bcrypt reads at most 72 bytes of input.
PASSWORD_MAX_BYTES = 72


class _EmailNormalizingSchema(Schema):
    """Trims and lowercases `email` before field validation."""

    @pre_load
    def normalize_email(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("email"), str):
            data = dict(data)
            data["email"] = data["email"].strip().lower()
        return data


class RegisterSchema(_EmailNormalizingSchema):
    """
    POST /auth/register

    Field rules:
      email      : valid email format, max 255
      password   : 8–72 bytes
      profile    : trimmed; first_name, last_name, city 1–50; street 1–100;
                   house_number, postal_code 1–10
    """

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )
    password = fields.Str(required=True, load_only=True)

    first_name   = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    last_name    = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    street       = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    house_number = fields.Str(required=True, validate=validate.Length(min=1, max=10))
    postal_code  = fields.Str(required=True, validate=validate.Length(min=1, max=10))
    city         = fields.Str(required=True, validate=validate.Length(min=1, max=50))

    PROFILE_FIELDS = ("first_name", "last_name", "street", "house_number", "postal_code", "city")

    @pre_load
    def strip_profile_fields(self, data, **kwargs):
        """Whitespace-only profile values fail the min-length rule."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name in self.PROFILE_FIELDS:
            if isinstance(data.get(name), str):
                data[name] = data[name].strip()
        return data

    @validates("password")
    def validate_password_length(self, value: str, **kwargs) -> None:
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")
        if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValidationError("Password must be at most 72 bytes long.")


class LoginSchema(_EmailNormalizingSchema):
    """
    POST /auth/login

    Credential correctness is checked in auth_service.py (INVALID_CREDENTIALS, 401).
    """

    email = fields.Email(required=True)
    password = fields.Str(
        required=True,
        load_only=True,
        validate=validate.Length(min=1),
    )


class RefreshTokenSchema(Schema):
    """
    POST /auth/refresh, POST /auth/logout

    The refresh token normally travels in the httpOnly cookie; the body field
    is accepted for non-browser clients.
    """

    refresh_token = fields.Str(load_default=None, validate=validate.Length(min=1, max=512))

"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: field types, lengths, formats.
  - services/auth_service.py: DUPLICATE_EMAIL (needs a DB lookup).

All schemas inherit from marshmallow.Schema directly, never ma.Schema
(see extensions.py).
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates


class RegisterSchema(Schema):
    """
    POST /auth/register

    Field rules:
      email     : valid email, max 255 chars
      password  : min 8 chars, at least one letter and one digit
      full_name : optional display name; the email is used when absent
    """

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    # Checked in @validates below to give one clear message per missing rule.
    password = fields.String(required=True, load_only=True)

    full_name = fields.String(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=255),
    )

    @validates("password")
    def validate_password_strength(self, value: str, **kwargs) -> None:
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")
        if not any(c.isalpha() for c in value):
            raise ValidationError("Password must contain at least one letter.")
        if not any(c.isdigit() for c in value):
            raise ValidationError("Password must contain at least one digit.")


class LoginSchema(Schema):
    """
    POST /auth/login

    Credential correctness is checked in auth_service.py (INVALID_CREDENTIALS, 401).
    """

    email = fields.String(required=True)
    password = fields.String(required=True, load_only=True)


class RefreshTokenSchema(Schema):
    """POST /auth/refresh and POST /auth/logout."""

    refresh_token = fields.String(required=True)

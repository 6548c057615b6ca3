"""
schemas/profile_schema.py — Marshmallow schemas for profile endpoints.

Who may change what (owner: full_name; admin: also role) is decided in
services/profile_service.py, because it depends on the caller.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from backend.app.errors import ErrorCode
from backend.app.models.enums import Role
from backend.app.schemas.auth_schema import RegisterSchema
from backend.app.schemas.validators import validate_non_empty_after_trim


class UpdateProfileSchema(Schema):
    """PATCH /profiles/:id — all fields optional."""

    full_name = fields.String(
        validate=[validate.Length(min=1, max=255), validate_non_empty_after_trim],
    )

    role = fields.Enum(
        Role,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_ROLE},
    )


class AdminCreateUserSchema(RegisterSchema):
    """
    POST /profiles — admin-only user creation.

    Same identity rules as signup; full_name is required and an explicit
    role may be requested.
    """

    full_name = fields.String(
        required=True,
        validate=[validate.Length(min=1, max=255), validate_non_empty_after_trim],
    )

    role = fields.Enum(
        Role,
        by_value=True,
        load_default=None,
        allow_none=True,
        error_messages={"unknown": ErrorCode.INVALID_ROLE},
    )

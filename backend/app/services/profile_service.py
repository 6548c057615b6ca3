"""
services/profile_service.py — Profile reads, edits, and admin user creation.

Authorization rules (app/policies.py):
  - Read:   own profile; admins read every profile.
  - Update: own profile (full_name only); admins may change any field,
            including role.
  - Create: admins only. Ordinary profiles are created by the provisioning
            service at signup, never through this module.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.profile import Profile
from backend.app.policies import (
    Caller,
    Operation,
    get_row_or_404,
    is_allowed,
    list_visible,
    scoped_select,
)
from backend.app.services import auth_service

logger = logging.getLogger(__name__)

# Fields only an admin may change.
_ADMIN_ONLY_FIELDS = frozenset({"role"})


def list_profiles(caller: Caller, session: Session) -> list[Profile]:
    """Every profile for admins, the caller's own profile otherwise. Newest first."""
    stmt = scoped_select(caller, Profile).order_by(Profile.created_at.desc(), Profile.id.desc())
    return list_visible(caller, stmt, session)


def get_profile(caller: Caller, profile_id: int, session: Session) -> Profile:
    return get_row_or_404(caller, Profile, profile_id, Operation.SELECT, session)


def update_profile(caller: Caller, profile_id: int, data: dict, session: Session) -> Profile:
    """
    Applies a partial update to a profile.

    Raises:
      AppError(PROFILE_NOT_FOUND, 404) — missing or not visible to the caller
      AppError(FORBIDDEN, 403)         — a non-admin tried to change role
    """
    profile = get_row_or_404(caller, Profile, profile_id, Operation.UPDATE, session)

    restricted = _ADMIN_ONLY_FIELDS & data.keys()
    if restricted and not caller.is_admin:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Only an admin may change a profile's role.",
            403,
            field=sorted(restricted)[0],
        )

    if "full_name" in data:
        profile.full_name = data["full_name"].strip()
    if "role" in data and profile.role != data["role"]:
        logger.info(
            "Admin %s changed role of user %s from %s to %s",
            caller.user_id, profile.user_id, profile.role.value, data["role"].value,
        )
        profile.role = data["role"]

    session.flush()
    return profile


def create_user_as_admin(
        caller: Caller,
        data: dict,
        admin_emails: Iterable[str],
        session: Session,
) -> Profile:
    """
    Admin-only: creates a new identity (and its profile) on someone's behalf.

    The identity goes through the normal provisioning path first, so the
    allow-list rule still applies; a role requested by the admin is then
    applied on top.

    Args:
        data: Validated dict from AdminCreateUserSchema.
              Keys: email, password, full_name, role?.

    Raises:
      AppError(FORBIDDEN, 403)           — caller is not an admin
      AppError(DUPLICATE_EMAIL, 409)     — email already registered
      AppError(PROVISIONING_FAILED, 409) — profile could not be created
    """
    # Same predicate a direct profile insert is judged by.
    if not is_allowed(caller, Operation.INSERT, Profile(user_id=0), session):
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Only an admin may create users.",
            403,
        )

    _, profile = auth_service.create_identity(
        email=data["email"],
        password=data["password"],
        full_name=data.get("full_name"),
        admin_emails=admin_emails,
        session=session,
    )

    requested_role = data.get("role")
    if requested_role is not None and requested_role != profile.role:
        profile.role = requested_role
        session.flush()

    logger.info(
        "Admin %s created user %s with role %s",
        caller.user_id, profile.user_id, profile.role.value,
    )
    return profile

"""
services/provisioning_service.py — Profile creation for new identities.

Every identity gets exactly one profile, created in the same unit of work as
the identity itself. If the profile cannot be created the whole signup fails:
the route never commits and no identity is left without a profile.

Role rule:
  - An identity whose email is in the configured admin allow-list
    (ADMIN_EMAILS, default "admin@fms.com") becomes role=admin.
  - Everyone else becomes role=user.
  The allow-list is read from config at startup and passed in by the caller.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.enums import Role
from backend.app.models.profile import Profile
from backend.app.models.user import User

logger = logging.getLogger(__name__)


def resolve_role(email: str, admin_emails: Iterable[str]) -> Role:
    """admin iff the email is on the allow-list (case-insensitive), else user."""
    allowed = {e.strip().lower() for e in admin_emails}
    return Role.ADMIN if email.strip().lower() in allowed else Role.USER


def resolve_full_name(email: str, metadata: Mapping | None) -> str:
    """The metadata-supplied full name when present and non-blank, else the email."""
    full_name = (metadata or {}).get("full_name")
    if isinstance(full_name, str) and full_name.strip():
        return full_name.strip()
    return email


def provision_profile(
        user: User,
        metadata: Mapping | None,
        admin_emails: Iterable[str],
        session: Session,
) -> Profile:
    """
    Creates the single profile row for a freshly created identity.

    Args:
        user:         The new identity. Must already be flushed (user.id set).
        metadata:     Signup metadata; only "full_name" is read.
        admin_emails: The configured admin allow-list.

    Raises:
      AppError(PROVISIONING_FAILED, 409) — the identity already has a profile,
        or the insert violated a constraint. Repeating the creation event can
        therefore never produce a second profile.

    Returns: the new Profile.
    """
    existing = session.execute(
        select(Profile).where(Profile.user_id == user.id)
    ).scalar_one_or_none()
    if existing is not None:
        raise AppError(
            ErrorCode.PROVISIONING_FAILED,
            f"A profile already exists for user {user.id}.",
            409,
        )

    profile = Profile(
        user_id=user.id,
        full_name=resolve_full_name(user.email, metadata),
        role=resolve_role(user.email, admin_emails),
    )

    # On failure the session is left for the error handler to roll back,
    # which discards the identity row flushed before this call as well.
    session.add(profile)
    try:
        session.flush()
    except IntegrityError as exc:
        logger.error("Profile provisioning failed for user %s: %s", user.id, exc.orig)
        raise AppError(
            ErrorCode.PROVISIONING_FAILED,
            f"Could not create a profile for user {user.id}.",
            409,
        ) from exc

    logger.info("Provisioned profile %s for user %s as %s", profile.id, user.id, profile.role.value)
    return profile

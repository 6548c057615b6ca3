"""
services/auth_service.py — Identities, credentials and tokens.

An identity is a users row (email + bcrypt hash). Creating one always
provisions its profile in the same unit of work (provisioning_service);
either both rows are flushed or the caller gets an AppError and must not
commit.

Tokens:
  access   JWT (HS256), sub = str(user_id), short-lived. Carries no role:
           the role is read from the profile on each request.
  refresh  64 hex chars from `secrets`. Only its SHA-256 digest is stored.
           Not rotated on use; revoked on logout.

Layer rules:
  - No flask.request / flask.g. current_app.config is read for the JWT
    settings and the bcrypt cost only; the admin allow-list is an argument.
  - Flush only. The route commits.
"""

from __future__ import annotations

import hashlib
import secrets
from collections.abc import Iterable
from datetime import datetime, timezone

import bcrypt
import jwt
from flask import current_app
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.profile import Profile
from backend.app.models.refresh_token import RefreshToken
from backend.app.models.user import User
from backend.app.services import provisioning_service


# ── Credentials ────────────────────────────────────────────────────────────

def _hash_password(password: str) -> str:
    cost = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=cost)).decode("utf-8")


def _password_matches(user: User, password: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), user.password_hash.encode("utf-8"))


def _normalise_email(email: str) -> str:
    return email.strip().lower()


# ── Tokens ─────────────────────────────────────────────────────────────────

def _digest(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _access_token(user_id: int) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "iat": issued,
        "exp": issued + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"],
        # two tokens issued in the same second must still differ
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(
        claims,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def _issue_tokens(user_id: int, session: Session) -> dict:
    """Access token plus a new stored refresh token. The raw refresh value is returned once."""
    raw_refresh = secrets.token_hex(32)
    session.add(RefreshToken(
        user_id=user_id,
        token_hash=_digest(raw_refresh),
        expires_at=datetime.now(timezone.utc) + current_app.config["JWT_REFRESH_TOKEN_EXPIRES"],
    ))
    session.flush()
    return {"access_token": _access_token(user_id), "refresh_token": raw_refresh}


def _stored_refresh_token(raw_token: str, session: Session) -> RefreshToken | None:
    return session.execute(
        select(RefreshToken).where(RefreshToken.token_hash == _digest(raw_token))
    ).scalar_one_or_none()


def _invalid_refresh_token() -> AppError:
    return AppError(
        ErrorCode.REFRESH_TOKEN_INVALID,
        "Refresh token is unknown, expired or revoked. Log in again.",
        401,
    )


# ── Serialisation ──────────────────────────────────────────────────────────

def build_profile_dict(profile: Profile) -> dict:
    return {
        "id": profile.id,
        "user_id": profile.user_id,
        "full_name": profile.full_name,
        "role": profile.role.value,
        "created_at": profile.created_at.isoformat(),
        "updated_at": profile.updated_at.isoformat(),
    }


def _build_user_dict(user: User, profile: Profile | None) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "created_at": user.created_at.isoformat(),
        "profile": build_profile_dict(profile) if profile is not None else None,
    }


# ── Public service functions ───────────────────────────────────────────────

def create_identity(
        email: str,
        password: str,
        full_name: str | None,
        admin_emails: Iterable[str],
        session: Session,
) -> tuple[User, Profile]:
    """
    Inserts the user and provisions its profile. Both rows are flushed, not
    committed.

    Raises:
      AppError(DUPLICATE_EMAIL, 409)     — email taken (case-insensitive)
      AppError(PROVISIONING_FAILED, 409) — the profile could not be created
    """
    email = _normalise_email(email)

    taken = session.execute(select(User.id).where(User.email == email)).scalar_one_or_none()
    if taken is not None:
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            f"An account with email '{email}' already exists.",
            409,
            field="email",
        )

    user = User(email=email, password_hash=_hash_password(password))
    session.add(user)
    session.flush()  # user.id is needed by the profile

    profile = provisioning_service.provision_profile(
        user, {"full_name": full_name}, admin_emails, session,
    )
    return user, profile


def register_user(
        email: str,
        password: str,
        full_name: str | None,
        admin_emails: Iterable[str],
        session: Session,
) -> dict:
    """
    Signup: create_identity() plus a token pair.

    Returns: {"user": {..., "profile": {...}}, "access_token", "refresh_token"}
    """
    user, profile = create_identity(email, password, full_name, admin_emails, session)
    return {"user": _build_user_dict(user, profile), **_issue_tokens(user.id, session)}


def login_user(email: str, password: str, session: Session) -> dict:
    """
    Raises AppError(INVALID_CREDENTIALS, 401) for an unknown email and for a
    wrong password alike, so the response does not reveal which accounts exist.
    """
    user = session.execute(
        select(User).where(User.email == _normalise_email(email))
    ).scalar_one_or_none()

    if user is None or not _password_matches(user, password):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "Email or password is incorrect.",
            401,
        )

    return {"user": _build_user_dict(user, user.profile), **_issue_tokens(user.id, session)}


def refresh_access_token(raw_refresh_token: str, session: Session) -> dict:
    """New access token for a live refresh token. Writes nothing."""
    record = _stored_refresh_token(raw_refresh_token, session)
    if (
        record is None
        or record.revoked
        or _as_utc(record.expires_at) <= datetime.now(timezone.utc)
    ):
        raise _invalid_refresh_token()

    return {"access_token": _access_token(record.user_id)}


def logout_user(raw_refresh_token: str, session: Session) -> None:
    """Revokes a refresh token. Revoking it twice is REFRESH_TOKEN_INVALID (401)."""
    record = _stored_refresh_token(raw_refresh_token, session)
    if record is None or record.revoked:
        raise _invalid_refresh_token()

    record.revoked = True
    session.flush()


def get_current_user(user_id: int, session: Session) -> dict:
    """
    The token's identity with its profile.

    Raises AppError(USER_NOT_FOUND, 404) when the identity was deleted after
    the token was issued.
    """
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"No user with id {user_id}.",
            404,
        )
    return _build_user_dict(user, user.profile)

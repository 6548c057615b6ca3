"""
middleware/auth_middleware.py — Who is calling.

Authentication only (401). Deciding which rows that caller may touch is the
job of app/policies.py (403/404), applied inside the services.

  @require_auth     verifies "Authorization: Bearer <jwt>" (HS256) and sets
                    g.user_id before the view runs
  current_caller()  g.user_id → policies.Caller, with the role read from the
                    caller's profile

Failures:
  TOKEN_MISSING  (401) — no Authorization header
  TOKEN_INVALID  (401) — not "Bearer <token>", bad signature, bad sub claim
  TOKEN_EXPIRED  (401) — exp is in the past; the client should refresh
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from backend.app.errors import AppError, ErrorCode
from backend.app.extensions import db
from backend.app.policies import Caller, load_caller


def require_auth(f: Callable) -> Callable:
    """
    Route decorator. The view runs only for a verified token, with
    g.user_id set to the token's subject. Failures raise AppError and reach
    the global handler; views never see them.
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        g.user_id = _user_id_from(_bearer_token())
        return f(*args, **kwargs)

    return decorated


def _bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    if not header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Send an access token as 'Authorization: Bearer <token>'.",
            401,
        )

    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token or " " in token.strip():
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The Authorization header is not of the form 'Bearer <token>'.",
            401,
        )
    return token.strip()


def _user_id_from(token: str) -> int:
    """Verifies the signature and expiry and returns the integer `sub` claim."""
    try:
        claims = jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Call POST /auth/refresh for a new one.",
            401,
        )
    except jwt.InvalidTokenError:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token could not be verified.",
            401,
        )

    # sub is issued as str(user_id)
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token does not name a valid user.",
            401,
        )


def current_caller(*, for_update: bool = False) -> Caller:
    """
    The Caller a service call runs on behalf of. Only valid inside a
    @require_auth view. for_update=True locks the caller's profile row for
    writing (see policies.load_caller); use it when the view may update it.

    The role comes from the profile row on every request, never from the
    token, so a promotion or demotion applies to tokens already issued.
    An identity without a profile gets 403 FORBIDDEN.
    """
    return load_caller(g.user_id, db.session, for_update=for_update)

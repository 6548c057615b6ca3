"""
routes/auth.py — Signup, sign-in and token handling.

Endpoints (base url_prefix=/api/v1/auth):
  POST   /auth/register  → 201  identity + provisioned profile + token pair
  POST   /auth/login     → 200  token pair
  POST   /auth/refresh   → 200  new access token
  POST   /auth/logout    → 200  revokes the given refresh token
  GET    /auth/me        → 200  identity with its profile

Only /logout and /me need a Bearer token. Neither needs a Caller: they act on
the identity itself, not on rows guarded by policies.
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import require_auth
from backend.app.schemas.auth_schema import LoginSchema, RefreshTokenSchema, RegisterSchema
from backend.app.services import auth_service

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
def register():
    """
    The profile is created in the same unit of work as the identity. If
    provisioning fails nothing is committed and the email stays free.
    Emails on ADMIN_EMAILS are provisioned as admins.
    """
    payload = RegisterSchema().load(request.get_json(force=True) or {})
    body = auth_service.register_user(
        payload["email"],
        payload["password"],
        payload.get("full_name"),
        current_app.config["ADMIN_EMAILS"],
        db.session,
    )
    db.session.commit()
    return jsonify({"data": body, "warnings": []}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    payload = LoginSchema().load(request.get_json(force=True) or {})
    body = auth_service.login_user(payload["email"], payload["password"], db.session)
    # the new refresh token row
    db.session.commit()
    return jsonify({"data": body, "warnings": []}), 200


@auth_bp.route("/refresh", methods=["POST"])
def refresh():
    payload = RefreshTokenSchema().load(request.get_json(force=True) or {})
    body = auth_service.refresh_access_token(payload["refresh_token"], db.session)
    return jsonify({"data": body, "warnings": []}), 200


@auth_bp.route("/logout", methods=["POST"])
@require_auth
def logout():
    payload = RefreshTokenSchema().load(request.get_json(force=True) or {})
    auth_service.logout_user(payload["refresh_token"], db.session)
    db.session.commit()
    return jsonify({"data": {"message": "Logged out."}, "warnings": []}), 200


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    return jsonify({
        "data": auth_service.get_current_user(g.user_id, db.session),
        "warnings": [],
    }), 200

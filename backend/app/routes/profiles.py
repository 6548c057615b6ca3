"""
routes/profiles.py — Profile route handlers.

Endpoints (base url_prefix=/api/v1/profiles):
  GET    /profiles       → 200  admins: every profile; users: their own
  POST   /profiles       → 201  admin only: create a user and its profile
  GET    /profiles/:id   → 200
  PATCH  /profiles/:id   → 200  owner: full_name; admin: full_name, role
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import current_caller, require_auth
from backend.app.schemas.profile_schema import AdminCreateUserSchema, UpdateProfileSchema
from backend.app.services import profile_service
from backend.app.services.auth_service import build_profile_dict

profiles_bp = Blueprint("profiles", __name__)


@profiles_bp.route("", methods=["GET"])
@require_auth
def list_profiles():
    profiles = profile_service.list_profiles(current_caller(), db.session)
    return jsonify({
        "data": [build_profile_dict(p) for p in profiles],
        "warnings": [],
    }), 200


@profiles_bp.route("", methods=["POST"])
@require_auth
def create_user():
    """POST /profiles — admin-only user creation. Non-admins get 403."""
    caller = current_caller()
    data = AdminCreateUserSchema().load(request.get_json(force=True) or {})
    profile = profile_service.create_user_as_admin(
        caller=caller,
        data=data,
        admin_emails=current_app.config["ADMIN_EMAILS"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": build_profile_dict(profile), "warnings": []}), 201


@profiles_bp.route("/<int:profile_id>", methods=["GET"])
@require_auth
def get_profile(profile_id: int):
    profile = profile_service.get_profile(current_caller(), profile_id, db.session)
    return jsonify({"data": build_profile_dict(profile), "warnings": []}), 200


@profiles_bp.route("/<int:profile_id>", methods=["PATCH"])
@require_auth
def update_profile(profile_id: int):
    caller = current_caller(for_update=True)
    data = UpdateProfileSchema().load(request.get_json(force=True) or {})
    profile = profile_service.update_profile(caller, profile_id, data, db.session)
    db.session.commit()
    return jsonify({"data": build_profile_dict(profile), "warnings": []}), 200

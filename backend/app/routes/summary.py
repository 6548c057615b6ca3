"""
routes/summary.py — Dashboard totals for the authenticated user.

Endpoint (base url_prefix=/api/v1/summary):
  GET    /summary?year=&quarter=   → 200
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import current_caller, require_auth
from backend.app.schemas.income_schema import LedgerQuerySchema
from backend.app.services import summary_service

summary_bp = Blueprint("summary", __name__)


@summary_bp.route("", methods=["GET"])
@require_auth
def get_summary():
    caller = current_caller()
    filters = LedgerQuerySchema(only=("year", "quarter")).load(request.args)
    summary = summary_service.get_summary(caller, db.session, **filters)
    return jsonify({"data": summary, "warnings": []}), 200

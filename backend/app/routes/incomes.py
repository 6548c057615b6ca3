"""
routes/incomes.py — Income record route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.
  - _serialize_income() is a pure data-shape helper — not business logic.

Endpoints (base url_prefix=/api/v1/incomes):
  POST   /incomes        → 201
  GET    /incomes        → 200  ?year=&quarter=&currency=
  GET    /incomes/:id    → 200
  PATCH  /incomes/:id    → 200  partial update
  DELETE /incomes/:id    → 200
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import current_caller, require_auth
from backend.app.models.income_record import IncomeRecord
from backend.app.schemas.income_schema import IncomeSchema, LedgerQuerySchema
from backend.app.services import income_service

incomes_bp = Blueprint("incomes", __name__)


def _serialize_income(record: IncomeRecord) -> dict:
    """Converts an IncomeRecord to a plain dict. Amounts as strings."""
    return {
        "id": record.id,
        "user_id": record.user_id,
        "quarter": record.quarter.value,
        "year": record.year,
        "amount": str(record.amount),
        "currency": record.currency.value,
        "source": record.source,
        "description": record.description,
        "created_at": record.created_at.isoformat(),
        "updated_at": record.updated_at.isoformat(),
    }


@incomes_bp.route("", methods=["POST"])
@require_auth
def create_income():
    caller = current_caller()
    data = IncomeSchema().load(request.get_json(force=True) or {})
    record = income_service.create_income(caller, data, db.session)
    db.session.commit()
    return jsonify({"data": _serialize_income(record), "warnings": []}), 201


@incomes_bp.route("", methods=["GET"])
@require_auth
def list_incomes():
    caller = current_caller()
    filters = LedgerQuerySchema().load(request.args)
    records = income_service.list_incomes(caller, db.session, **filters)
    return jsonify({
        "data": [_serialize_income(r) for r in records],
        "warnings": [],
    }), 200


@incomes_bp.route("/<int:income_id>", methods=["GET"])
@require_auth
def get_income(income_id: int):
    record = income_service.get_income(current_caller(), income_id, db.session)
    return jsonify({"data": _serialize_income(record), "warnings": []}), 200


@incomes_bp.route("/<int:income_id>", methods=["PATCH"])
@require_auth
def update_income(income_id: int):
    caller = current_caller()
    data = IncomeSchema(partial=True).load(request.get_json(force=True) or {})
    record = income_service.update_income(caller, income_id, data, db.session)
    db.session.commit()
    return jsonify({"data": _serialize_income(record), "warnings": []}), 200


@incomes_bp.route("/<int:income_id>", methods=["DELETE"])
@require_auth
def delete_income(income_id: int):
    income_service.delete_income(current_caller(), income_id, db.session)
    db.session.commit()
    return jsonify({
        "data": {"deleted": True, "income_id": income_id},
        "warnings": [],
    }), 200

"""
routes/expenses.py — Expense record route handlers.

Endpoints (base url_prefix=/api/v1/expenses):
  POST   /expenses       → 201  422 UNKNOWN_CATEGORY for a dangling category_id
  GET    /expenses       → 200  ?year=&quarter=&currency=&category_id=
  GET    /expenses/:id   → 200
  PATCH  /expenses/:id   → 200  partial update
  DELETE /expenses/:id   → 200
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import current_caller, require_auth
from backend.app.models.expense_record import ExpenseRecord
from backend.app.schemas.expense_schema import ExpenseQuerySchema, ExpenseSchema
from backend.app.services import expense_service

expenses_bp = Blueprint("expenses", __name__)


def _serialize_expense(record: ExpenseRecord) -> dict:
    """Converts an ExpenseRecord to a plain dict. Amounts as strings."""
    return {
        "id": record.id,
        "user_id": record.user_id,
        "category_id": record.category_id,
        "category_name": record.category.name,
        "quarter": record.quarter.value,
        "year": record.year,
        "amount": str(record.amount),
        "currency": record.currency.value,
        "description": record.description,
        "expense_date": record.expense_date.isoformat(),
        "created_at": record.created_at.isoformat(),
        "updated_at": record.updated_at.isoformat(),
    }


@expenses_bp.route("", methods=["POST"])
@require_auth
def create_expense():
    caller = current_caller()
    data = ExpenseSchema().load(request.get_json(force=True) or {})
    record = expense_service.create_expense(caller, data, db.session)
    db.session.commit()
    return jsonify({"data": _serialize_expense(record), "warnings": []}), 201


@expenses_bp.route("", methods=["GET"])
@require_auth
def list_expenses():
    caller = current_caller()
    filters = ExpenseQuerySchema().load(request.args)
    records = expense_service.list_expenses(caller, db.session, **filters)
    return jsonify({
        "data": [_serialize_expense(r) for r in records],
        "warnings": [],
    }), 200


@expenses_bp.route("/<int:expense_id>", methods=["GET"])
@require_auth
def get_expense(expense_id: int):
    record = expense_service.get_expense(current_caller(), expense_id, db.session)
    return jsonify({"data": _serialize_expense(record), "warnings": []}), 200


@expenses_bp.route("/<int:expense_id>", methods=["PATCH"])
@require_auth
def update_expense(expense_id: int):
    caller = current_caller()
    data = ExpenseSchema(partial=True).load(request.get_json(force=True) or {})
    record = expense_service.update_expense(caller, expense_id, data, db.session)
    db.session.commit()
    return jsonify({"data": _serialize_expense(record), "warnings": []}), 200


@expenses_bp.route("/<int:expense_id>", methods=["DELETE"])
@require_auth
def delete_expense(expense_id: int):
    """DELETE /expenses/:id — Hard delete; expenses have no soft-delete state."""
    expense_service.delete_expense(current_caller(), expense_id, db.session)
    db.session.commit()
    return jsonify({
        "data": {"deleted": True, "expense_id": expense_id},
        "warnings": [],
    }), 200

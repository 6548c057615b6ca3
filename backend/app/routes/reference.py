"""
routes/reference.py — Expense categories and currency rates.

Both are shared reference data: any authenticated user may list them; only
admins may create, change, or delete them (403 FORBIDDEN otherwise).

Endpoints:
  GET    /categories            → 200
  POST   /categories            → 201
  PATCH  /categories/:id        → 200
  DELETE /categories/:id        → 200  409 CATEGORY_IN_USE when referenced
  GET    /currency-rates        → 200  ?from_currency=&to_currency=
  POST   /currency-rates        → 201
  PATCH  /currency-rates/:id    → 200
  DELETE /currency-rates/:id    → 200
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import current_caller, require_auth
from backend.app.models.currency_rate import CurrencyRate
from backend.app.models.expense_category import ExpenseCategory
from backend.app.schemas.reference_schema import (
    CurrencyRateQuerySchema,
    CurrencyRateSchema,
    ExpenseCategorySchema,
)
from backend.app.services import reference_service

# Registered at /api/v1 because it owns two top-level resources.
reference_bp = Blueprint("reference", __name__)


def _serialize_category(category: ExpenseCategory) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "created_at": category.created_at.isoformat(),
    }


def _serialize_rate(rate: CurrencyRate) -> dict:
    return {
        "id": rate.id,
        "from_currency": rate.from_currency.value,
        "to_currency": rate.to_currency.value,
        "rate": str(rate.rate),
        "date": rate.rate_date.isoformat(),
        "created_at": rate.created_at.isoformat(),
    }


# ── Expense categories ─────────────────────────────────────────────────────

@reference_bp.route("/categories", methods=["GET"])
@require_auth
def list_categories():
    categories = reference_service.list_categories(current_caller(), db.session)
    return jsonify({
        "data": [_serialize_category(c) for c in categories],
        "warnings": [],
    }), 200


@reference_bp.route("/categories", methods=["POST"])
@require_auth
def create_category():
    caller = current_caller()
    data = ExpenseCategorySchema().load(request.get_json(force=True) or {})
    category = reference_service.create_category(caller, data, db.session)
    db.session.commit()
    return jsonify({"data": _serialize_category(category), "warnings": []}), 201


@reference_bp.route("/categories/<int:category_id>", methods=["PATCH"])
@require_auth
def update_category(category_id: int):
    caller = current_caller()
    data = ExpenseCategorySchema(partial=True).load(request.get_json(force=True) or {})
    category = reference_service.update_category(caller, category_id, data, db.session)
    db.session.commit()
    return jsonify({"data": _serialize_category(category), "warnings": []}), 200


@reference_bp.route("/categories/<int:category_id>", methods=["DELETE"])
@require_auth
def delete_category(category_id: int):
    reference_service.delete_category(current_caller(), category_id, db.session)
    db.session.commit()
    return jsonify({
        "data": {"deleted": True, "category_id": category_id},
        "warnings": [],
    }), 200


# ── Currency rates ─────────────────────────────────────────────────────────

@reference_bp.route("/currency-rates", methods=["GET"])
@require_auth
def list_currency_rates():
    caller = current_caller()
    filters = CurrencyRateQuerySchema().load(request.args)
    rates = reference_service.list_currency_rates(caller, db.session, **filters)
    return jsonify({
        "data": [_serialize_rate(r) for r in rates],
        "warnings": [],
    }), 200


@reference_bp.route("/currency-rates", methods=["POST"])
@require_auth
def create_currency_rate():
    caller = current_caller()
    data = CurrencyRateSchema().load(request.get_json(force=True) or {})
    rate = reference_service.create_currency_rate(caller, data, db.session)
    db.session.commit()
    return jsonify({"data": _serialize_rate(rate), "warnings": []}), 201


@reference_bp.route("/currency-rates/<int:rate_id>", methods=["PATCH"])
@require_auth
def update_currency_rate(rate_id: int):
    caller = current_caller()
    data = CurrencyRateSchema(partial=True).load(request.get_json(force=True) or {})
    rate = reference_service.update_currency_rate(caller, rate_id, data, db.session)
    db.session.commit()
    return jsonify({"data": _serialize_rate(rate), "warnings": []}), 200


@reference_bp.route("/currency-rates/<int:rate_id>", methods=["DELETE"])
@require_auth
def delete_currency_rate(rate_id: int):
    reference_service.delete_currency_rate(current_caller(), rate_id, db.session)
    db.session.commit()
    return jsonify({
        "data": {"deleted": True, "rate_id": rate_id},
        "warnings": [],
    }), 200

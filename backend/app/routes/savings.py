"""
routes/savings.py — Savings goals and their transactions.

Every response that follows a balance change carries the goal's updated
current_amount, read back after the atomic update in savings_service.

Endpoints (base url_prefix=/api/v1/savings-goals):
  POST   /savings-goals                            → 201
  GET    /savings-goals                            → 200  ?is_active=
  GET    /savings-goals/:id                        → 200
  PATCH  /savings-goals/:id                        → 200  400 FIELD_NOT_WRITABLE for current_amount
  DELETE /savings-goals/:id                        → 200  history goes with it
  GET    /savings-goals/:id/transactions           → 200
  POST   /savings-goals/:id/transactions           → 201  {transaction, goal}
  DELETE /savings-goals/:id/transactions/:tx_id    → 200  {deleted, goal}
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import current_caller, require_auth
from backend.app.models.savings_goal import SavingsGoal
from backend.app.models.savings_transaction import SavingsTransaction
from backend.app.schemas.savings_schema import (
    GoalQuerySchema,
    SavingsGoalSchema,
    SavingsTransactionSchema,
)
from backend.app.services import savings_service

savings_bp = Blueprint("savings", __name__)


def _serialize_goal(goal: SavingsGoal) -> dict:
    return {
        "id": goal.id,
        "user_id": goal.user_id,
        "name": goal.name,
        "target_amount": str(goal.target_amount),
        "current_amount": str(goal.current_amount),
        "currency": goal.currency.value,
        "target_date": goal.target_date.isoformat() if goal.target_date else None,
        "goal_type": goal.goal_type.value,
        "description": goal.description,
        "is_active": goal.is_active,
        "created_at": goal.created_at.isoformat(),
        "updated_at": goal.updated_at.isoformat(),
    }


def _serialize_transaction(transaction: SavingsTransaction) -> dict:
    return {
        "id": transaction.id,
        "savings_goal_id": transaction.savings_goal_id,
        "amount": str(transaction.amount),
        "transaction_type": transaction.transaction_type.value,
        "description": transaction.description,
        "transaction_date": transaction.transaction_date.isoformat(),
        "created_at": transaction.created_at.isoformat(),
    }


# ── Goals ──────────────────────────────────────────────────────────────────

@savings_bp.route("", methods=["POST"])
@require_auth
def create_goal():
    caller = current_caller()
    data = SavingsGoalSchema().load(request.get_json(force=True) or {})
    goal = savings_service.create_goal(caller, data, db.session)
    db.session.commit()
    return jsonify({"data": _serialize_goal(goal), "warnings": []}), 201


@savings_bp.route("", methods=["GET"])
@require_auth
def list_goals():
    caller = current_caller()
    filters = GoalQuerySchema().load(request.args)
    goals = savings_service.list_goals(caller, db.session, **filters)
    return jsonify({
        "data": [_serialize_goal(goal) for goal in goals],
        "warnings": [],
    }), 200


@savings_bp.route("/<int:goal_id>", methods=["GET"])
@require_auth
def get_goal(goal_id: int):
    goal = savings_service.get_goal(current_caller(), goal_id, db.session)
    return jsonify({"data": _serialize_goal(goal), "warnings": []}), 200


@savings_bp.route("/<int:goal_id>", methods=["PATCH"])
@require_auth
def update_goal(goal_id: int):
    caller = current_caller()
    data = SavingsGoalSchema(partial=True).load(request.get_json(force=True) or {})
    goal = savings_service.update_goal(caller, goal_id, data, db.session)
    db.session.commit()
    return jsonify({"data": _serialize_goal(goal), "warnings": []}), 200


@savings_bp.route("/<int:goal_id>", methods=["DELETE"])
@require_auth
def delete_goal(goal_id: int):
    savings_service.delete_goal(current_caller(), goal_id, db.session)
    db.session.commit()
    return jsonify({
        "data": {"deleted": True, "goal_id": goal_id},
        "warnings": [],
    }), 200


# ── Transactions ───────────────────────────────────────────────────────────

@savings_bp.route("/<int:goal_id>/transactions", methods=["GET"])
@require_auth
def list_transactions(goal_id: int):
    transactions = savings_service.list_transactions(current_caller(), goal_id, db.session)
    return jsonify({
        "data": [_serialize_transaction(t) for t in transactions],
        "warnings": [],
    }), 200


@savings_bp.route("/<int:goal_id>/transactions", methods=["POST"])
@require_auth
def record_transaction(goal_id: int):
    """POST — Record a deposit or withdrawal; the goal balance moves with it."""
    caller = current_caller()
    data = SavingsTransactionSchema().load(request.get_json(force=True) or {})
    transaction, goal = savings_service.record_transaction(caller, goal_id, data, db.session)
    db.session.commit()
    return jsonify({
        "data": {
            "transaction": _serialize_transaction(transaction),
            "goal": _serialize_goal(goal),
        },
        "warnings": [],
    }), 201


@savings_bp.route("/<int:goal_id>/transactions/<int:transaction_id>", methods=["DELETE"])
@require_auth
def delete_transaction(goal_id: int, transaction_id: int):
    """DELETE — Remove a transaction and reverse its effect on the balance."""
    goal = savings_service.delete_transaction(
        current_caller(), goal_id, transaction_id, db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "transaction_id": transaction_id,
            "goal": _serialize_goal(goal),
        },
        "warnings": [],
    }), 200

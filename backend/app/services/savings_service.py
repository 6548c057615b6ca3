"""
services/savings_service.py — Savings goals and the goal balance they carry.

This file is the SINGLE place that writes SavingsGoal.current_amount.

Balance invariant:
  For every goal G, after every committed change,
    G.current_amount == sum(deposits) - sum(withdrawals)
  over the transactions currently referencing G.

How it is kept:
  - record_transaction() and delete_transaction() lock the goal row
    (SELECT ... FOR UPDATE), write or delete the transaction, and apply the
    signed delta with a single SQL expression
      UPDATE savings_goals SET current_amount = current_amount + :delta
    in the same unit of work. Concurrent writers on one goal serialise on the
    lock; writers on different goals never touch the same row.
  - verify_goal_balance() re-folds the history before returning and raises
    BALANCE_INCONSISTENT (500) if the stored value disagrees.
  - There is no update path for transactions, and goal create/update never
    accept current_amount.
  - reconcile_goal_balances() is the only other writer: a system-level
    repair run from the `flask reconcile-balances` CLI command.

Authorization: every function takes a Caller and goes through app/policies.py.
Transactions are authorised through the goal they reference.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
  - Decimal arithmetic only, never float.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.enums import MAX_MONEY_AMOUNT, Currency, TransactionType
from backend.app.models.savings_goal import SavingsGoal
from backend.app.models.savings_transaction import SavingsTransaction
from backend.app.policies import (
    Caller,
    Operation,
    authorize_insert,
    get_row_or_404,
    list_visible,
    not_found,
    scoped_select,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

# Goal columns a client may change. current_amount is deliberately absent.
_UPDATABLE_GOAL_FIELDS = (
    "name",
    "target_amount",
    "currency",
    "target_date",
    "goal_type",
    "description",
    "is_active",
)


# ── Balance arithmetic ─────────────────────────────────────────────────────

def signed_amount(transaction_type: TransactionType, amount: Decimal) -> Decimal:
    """+amount for a deposit, -amount for a withdrawal."""
    if transaction_type == TransactionType.DEPOSIT:
        return amount
    if transaction_type == TransactionType.WITHDRAWAL:
        return -amount
    raise ValueError(f"Unknown transaction type: {transaction_type!r}")


def compute_goal_balance(transactions: Iterable[SavingsTransaction]) -> Decimal:
    """The balance a goal must carry: the signed sum of its transactions."""
    total = ZERO
    for t in transactions:
        total += signed_amount(t.transaction_type, Decimal(t.amount))
    return total.quantize(Decimal("0.01"))


def _history(goal_id: int, session: Session) -> list[SavingsTransaction]:
    stmt = select(SavingsTransaction).where(SavingsTransaction.savings_goal_id == goal_id)
    return list(session.execute(stmt).scalars().all())


def _apply_delta(goal: SavingsGoal, delta: Decimal, session: Session) -> None:
    """
    Adds `delta` to the stored balance as one atomic UPDATE expression, then
    reloads the goal so the in-memory value is the committed-to value.

    `goal` must have been read under the row lock, so its current_amount is
    the value the UPDATE will add to.

    Raises:
      AppError(BALANCE_OUT_OF_RANGE, 422) — the new balance would not fit the
        Numeric(15, 2) column. The balance is left as it was.
    """
    new_balance = Decimal(goal.current_amount) + delta
    if abs(new_balance) > MAX_MONEY_AMOUNT:
        raise AppError(
            ErrorCode.BALANCE_OUT_OF_RANGE,
            f"The goal balance would become {new_balance}, outside "
            f"-{MAX_MONEY_AMOUNT} to {MAX_MONEY_AMOUNT}.",
            422,
            field="amount",
        )

    session.execute(
        update(SavingsGoal)
        .where(SavingsGoal.id == goal.id)
        .values(current_amount=SavingsGoal.current_amount + delta)
        .execution_options(synchronize_session=False)
    )
    session.refresh(goal)


def verify_goal_balance(goal: SavingsGoal, session: Session) -> Decimal:
    """
    Checks the stored balance against the transaction history.

    Raises:
      AppError(BALANCE_INCONSISTENT, 500) — stored != folded. Not a user error;
        the unit of work is aborted and the goal needs reconciliation.

    Returns: the verified balance.
    """
    expected = compute_goal_balance(_history(goal.id, session))
    stored = Decimal(goal.current_amount).quantize(Decimal("0.01"))
    if stored != expected:
        logger.critical(
            "Savings goal %s balance drift: stored=%s expected=%s",
            goal.id, stored, expected,
        )
        raise AppError(
            ErrorCode.BALANCE_INCONSISTENT,
            f"Savings goal {goal.id} balance does not match its transactions.",
            500,
        )
    return expected


# ── Goals ──────────────────────────────────────────────────────────────────

def create_goal(caller: Caller, data: dict, session: Session) -> SavingsGoal:
    """
    Creates a savings goal owned by the caller with a zero balance.

    Args:
        data: Validated dict from CreateSavingsGoalSchema.
    """
    goal = SavingsGoal(
        user_id=caller.user_id,
        name=data["name"].strip(),
        target_amount=data["target_amount"],
        current_amount=ZERO,
        currency=data.get("currency", Currency.USD),
        target_date=data.get("target_date"),
        goal_type=data["goal_type"],
        description=data.get("description"),
        is_active=data.get("is_active", True),
    )
    authorize_insert(caller, goal, session)
    session.add(goal)
    session.flush()
    return goal


def list_goals(
        caller: Caller,
        session: Session,
        is_active: bool | None = None,
) -> list[SavingsGoal]:
    """The caller's goals, newest first. Optionally only active/inactive ones."""
    stmt = scoped_select(caller, SavingsGoal)
    if is_active is not None:
        stmt = stmt.where(SavingsGoal.is_active.is_(is_active))
    stmt = stmt.order_by(SavingsGoal.created_at.desc(), SavingsGoal.id.desc())
    return list_visible(caller, stmt, session)


def get_goal(caller: Caller, goal_id: int, session: Session) -> SavingsGoal:
    return get_row_or_404(caller, SavingsGoal, goal_id, Operation.SELECT, session)


def update_goal(caller: Caller, goal_id: int, data: dict, session: Session) -> SavingsGoal:
    """
    Applies a partial update. Only _UPDATABLE_GOAL_FIELDS are touched; the
    schema has already rejected current_amount (FIELD_NOT_WRITABLE).
    """
    goal = get_row_or_404(caller, SavingsGoal, goal_id, Operation.UPDATE, session)

    for field in _UPDATABLE_GOAL_FIELDS:
        if field in data:
            value = data[field]
            setattr(goal, field, value.strip() if field == "name" else value)

    session.flush()
    return goal


def delete_goal(caller: Caller, goal_id: int, session: Session) -> None:
    """Deletes a goal together with its transaction history."""
    goal = get_row_or_404(caller, SavingsGoal, goal_id, Operation.DELETE, session, lock=True)
    session.delete(goal)
    session.flush()


# ── Transactions ───────────────────────────────────────────────────────────

def list_transactions(
        caller: Caller,
        goal_id: int,
        session: Session,
) -> list[SavingsTransaction]:
    """A goal's transactions, newest first. 404 if the goal is not the caller's."""
    get_row_or_404(caller, SavingsGoal, goal_id, Operation.SELECT, session)

    stmt = (
        scoped_select(caller, SavingsTransaction)
        .where(SavingsTransaction.savings_goal_id == goal_id)
        .order_by(
            SavingsTransaction.transaction_date.desc(),
            SavingsTransaction.id.desc(),
        )
    )
    return list_visible(caller, stmt, session)


def record_transaction(
        caller: Caller,
        goal_id: int,
        data: dict,
        session: Session,
) -> tuple[SavingsTransaction, SavingsGoal]:
    """
    Records a deposit or withdrawal and moves the goal balance with it.

    Args:
        data: Validated dict from CreateSavingsTransactionSchema.
              Keys: amount (Decimal > 0), transaction_type,
              description?, transaction_date?.

    Raises:
      AppError(GOAL_NOT_FOUND, 404)         — no such goal, or not the caller's
      AppError(BALANCE_OUT_OF_RANGE, 422)   — the balance would overflow
      AppError(BALANCE_INCONSISTENT, 500)   — history and balance disagree

    Returns: (transaction, goal) with goal.current_amount already updated.
    """
    goal = get_row_or_404(caller, SavingsGoal, goal_id, Operation.SELECT, session, lock=True)

    transaction = SavingsTransaction(
        savings_goal_id=goal.id,
        amount=data["amount"],
        transaction_type=data["transaction_type"],
        description=data.get("description"),
    )
    if data.get("transaction_date") is not None:
        transaction.transaction_date = data["transaction_date"]

    authorize_insert(caller, transaction, session)
    session.add(transaction)
    session.flush()

    _apply_delta(goal, signed_amount(transaction.transaction_type, data["amount"]), session)
    verify_goal_balance(goal, session)
    return transaction, goal


def delete_transaction(
        caller: Caller,
        goal_id: int,
        transaction_id: int,
        session: Session,
) -> SavingsGoal:
    """
    Deletes a transaction and reverses its effect on the goal balance.

    Raises:
      AppError(GOAL_NOT_FOUND, 404)        — no such goal, or not the caller's
      AppError(TRANSACTION_NOT_FOUND, 404) — not found under this goal

    Returns: the goal with its updated balance.
    """
    goal = get_row_or_404(caller, SavingsGoal, goal_id, Operation.SELECT, session, lock=True)

    transaction = get_row_or_404(
        caller, SavingsTransaction, transaction_id, Operation.DELETE, session,
    )
    if transaction.savings_goal_id != goal.id:
        raise not_found(SavingsTransaction, transaction_id)

    reversal = -signed_amount(transaction.transaction_type, Decimal(transaction.amount))
    session.delete(transaction)
    session.flush()

    _apply_delta(goal, reversal, session)
    verify_goal_balance(goal, session)
    return goal


# ── System-level repair ────────────────────────────────────────────────────

def reconcile_goal_balances(session: Session) -> list[dict]:
    """
    Recomputes every goal's balance from its history and rewrites the ones
    that drifted. Not reachable over HTTP and not subject to row policies;
    run it from the CLI (`flask reconcile-balances`) after an out-of-band
    write to current_amount.

    Returns: one {"goal_id", "stored", "expected"} dict per corrected goal.
    """
    corrections: list[dict] = []
    goals = session.execute(
        select(SavingsGoal).order_by(SavingsGoal.id).with_for_update()
    ).scalars().all()

    for goal in goals:
        expected = compute_goal_balance(goal.transactions)
        stored = Decimal(goal.current_amount).quantize(Decimal("0.01"))
        if stored == expected:
            continue
        logger.warning(
            "Reconciling savings goal %s: stored=%s expected=%s",
            goal.id, stored, expected,
        )
        goal.current_amount = expected
        corrections.append({"goal_id": goal.id, "stored": stored, "expected": expected})

    session.flush()
    return corrections

"""
services/expense_service.py — Expense record CRUD.

Rules enforced here:
  - Ownership: every read and write goes through app/policies.py; another
    user's record is indistinguishable from a missing one (404).
  - Category reference: category_id must name an existing ExpenseCategory.
    A dangling reference is a constraint violation (UNKNOWN_CATEGORY, 422)
    and nothing is written. The FK on expense_records.category_id is the
    last line of defence.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives a Caller and plain dicts; returns ORM objects or raises AppError.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.enums import Currency, Quarter
from backend.app.models.expense_category import ExpenseCategory
from backend.app.models.expense_record import ExpenseRecord
from backend.app.policies import (
    Caller,
    Operation,
    authorize_insert,
    get_row_or_404,
    list_visible,
    scoped_select,
)

_UPDATABLE_FIELDS = (
    "category_id",
    "quarter",
    "year",
    "amount",
    "currency",
    "description",
    "expense_date",
)


# ── Private helpers ────────────────────────────────────────────────────────

def _require_category(category_id: int, session: Session) -> ExpenseCategory:
    """
    Raises UNKNOWN_CATEGORY (422) if category_id does not exist.
    Categories are readable by everyone, so this leaks nothing.
    """
    category = session.get(ExpenseCategory, category_id)
    if category is None:
        raise AppError(
            ErrorCode.UNKNOWN_CATEGORY,
            f"Expense category {category_id} does not exist.",
            422,
            field="category_id",
        )
    return category


# ── Public service functions ───────────────────────────────────────────────

def create_expense(caller: Caller, data: dict, session: Session) -> ExpenseRecord:
    """
    Records an expense for the caller.

    Args:
        data: Validated dict from ExpenseSchema.

    Raises:
      AppError(UNKNOWN_CATEGORY, 422) — category_id does not exist
    """
    _require_category(data["category_id"], session)

    record = ExpenseRecord(
        user_id=caller.user_id,
        category_id=data["category_id"],
        quarter=data["quarter"],
        year=data["year"],
        amount=data["amount"],
        currency=data.get("currency", Currency.USD),
        description=data.get("description"),
        expense_date=data.get("expense_date") or date.today(),
    )
    authorize_insert(caller, record, session)
    session.add(record)
    session.flush()
    return record


def list_expenses(
        caller: Caller,
        session: Session,
        year: int | None = None,
        quarter: Quarter | None = None,
        currency: Currency | None = None,
        category_id: int | None = None,
) -> list[ExpenseRecord]:
    """The caller's expense records, most recent expense_date first."""
    stmt = scoped_select(caller, ExpenseRecord)
    if year is not None:
        stmt = stmt.where(ExpenseRecord.year == year)
    if quarter is not None:
        stmt = stmt.where(ExpenseRecord.quarter == quarter)
    if currency is not None:
        stmt = stmt.where(ExpenseRecord.currency == currency)
    if category_id is not None:
        stmt = stmt.where(ExpenseRecord.category_id == category_id)

    stmt = stmt.order_by(ExpenseRecord.expense_date.desc(), ExpenseRecord.id.desc())
    return list_visible(caller, stmt, session)


def get_expense(caller: Caller, expense_id: int, session: Session) -> ExpenseRecord:
    return get_row_or_404(caller, ExpenseRecord, expense_id, Operation.SELECT, session)


def update_expense(caller: Caller, expense_id: int, data: dict, session: Session) -> ExpenseRecord:
    """
    Applies a partial update.

    Raises:
      AppError(EXPENSE_NOT_FOUND, 404) — missing or not the caller's
      AppError(UNKNOWN_CATEGORY, 422)  — new category_id does not exist
    """
    record = get_row_or_404(caller, ExpenseRecord, expense_id, Operation.UPDATE, session)

    if "category_id" in data:
        _require_category(data["category_id"], session)

    for field in _UPDATABLE_FIELDS:
        if field in data:
            setattr(record, field, data[field])

    session.flush()
    return record


def delete_expense(caller: Caller, expense_id: int, session: Session) -> None:
    record = get_row_or_404(caller, ExpenseRecord, expense_id, Operation.DELETE, session)
    session.delete(record)
    session.flush()

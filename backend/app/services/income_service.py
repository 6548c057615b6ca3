"""
services/income_service.py — Income record CRUD.

Income records are owned by one user and are invisible to everyone else,
including admins. Ownership is enforced through app/policies.py; records
of other users behave exactly like records that do not exist (404).

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from backend.app.models.enums import Currency, Quarter
from backend.app.models.income_record import IncomeRecord
from backend.app.policies import (
    Caller,
    Operation,
    authorize_insert,
    get_row_or_404,
    list_visible,
    scoped_select,
)

_UPDATABLE_FIELDS = ("quarter", "year", "amount", "currency", "source", "description")


def create_income(caller: Caller, data: dict, session: Session) -> IncomeRecord:
    """
    Records income for the caller.

    Args:
        data: Validated dict from IncomeSchema.
    """
    record = IncomeRecord(
        user_id=caller.user_id,
        quarter=data["quarter"],
        year=data["year"],
        amount=data["amount"],
        currency=data.get("currency", Currency.USD),
        source=data.get("source"),
        description=data.get("description"),
    )
    authorize_insert(caller, record, session)
    session.add(record)
    session.flush()
    return record


def list_incomes(
        caller: Caller,
        session: Session,
        year: int | None = None,
        quarter: Quarter | None = None,
        currency: Currency | None = None,
) -> list[IncomeRecord]:
    """The caller's income records, newest period first, optionally filtered."""
    stmt = scoped_select(caller, IncomeRecord)
    if year is not None:
        stmt = stmt.where(IncomeRecord.year == year)
    if quarter is not None:
        stmt = stmt.where(IncomeRecord.quarter == quarter)
    if currency is not None:
        stmt = stmt.where(IncomeRecord.currency == currency)

    stmt = stmt.order_by(
        IncomeRecord.year.desc(),
        IncomeRecord.quarter.desc(),
        IncomeRecord.id.desc(),
    )
    return list_visible(caller, stmt, session)


def get_income(caller: Caller, income_id: int, session: Session) -> IncomeRecord:
    return get_row_or_404(caller, IncomeRecord, income_id, Operation.SELECT, session)


def update_income(caller: Caller, income_id: int, data: dict, session: Session) -> IncomeRecord:
    """Applies a partial update; only fields present in `data` change."""
    record = get_row_or_404(caller, IncomeRecord, income_id, Operation.UPDATE, session)
    for field in _UPDATABLE_FIELDS:
        if field in data:
            setattr(record, field, data[field])
    session.flush()
    return record


def delete_income(caller: Caller, income_id: int, session: Session) -> None:
    record = get_row_or_404(caller, IncomeRecord, income_id, Operation.DELETE, session)
    session.delete(record)
    session.flush()

"""
services/reference_service.py — Expense categories and currency rates.

Both tables are global reference data: every authenticated caller may read
them, only admins may change them (app/policies.py). Because every row is
visible to everyone, a denied write is reported as FORBIDDEN (403) rather
than hidden behind a 404.

Conflicts:
  DUPLICATE_CATEGORY (409) — category name already taken
  CATEGORY_IN_USE    (409) — category still referenced by expense records
  DUPLICATE_RATE     (409) — a rate for (from, to, date) already exists

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.currency_rate import CurrencyRate
from backend.app.models.enums import Currency
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

logger = logging.getLogger(__name__)


# ── Expense categories ─────────────────────────────────────────────────────

def _require_unique_category_name(name: str, session: Session, exclude_id: int | None = None) -> None:
    stmt = select(ExpenseCategory).where(func.lower(ExpenseCategory.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(ExpenseCategory.id != exclude_id)
    if session.execute(stmt).scalars().first() is not None:
        raise AppError(
            ErrorCode.DUPLICATE_CATEGORY,
            f"An expense category named '{name}' already exists.",
            409,
            field="name",
        )


def list_categories(caller: Caller, session: Session) -> list[ExpenseCategory]:
    stmt = scoped_select(caller, ExpenseCategory).order_by(ExpenseCategory.name.asc())
    return list_visible(caller, stmt, session)


def create_category(caller: Caller, data: dict, session: Session) -> ExpenseCategory:
    category = ExpenseCategory(
        name=data["name"].strip(),
        description=data.get("description"),
    )
    authorize_insert(caller, category, session)
    _require_unique_category_name(category.name, session)

    session.add(category)
    session.flush()
    logger.info("User %s created expense category %r", caller.user_id, category.name)
    return category


def update_category(caller: Caller, category_id: int, data: dict, session: Session) -> ExpenseCategory:
    category = get_row_or_404(caller, ExpenseCategory, category_id, Operation.UPDATE, session)

    if "name" in data:
        name = data["name"].strip()
        _require_unique_category_name(name, session, exclude_id=category.id)
        category.name = name
    if "description" in data:
        category.description = data["description"]

    session.flush()
    return category


def delete_category(caller: Caller, category_id: int, session: Session) -> None:
    """
    Removes a category.

    Raises:
      AppError(CATEGORY_IN_USE, 409) — expense records still reference it.
        Categories are never removed out from under existing expenses.
    """
    category = get_row_or_404(caller, ExpenseCategory, category_id, Operation.DELETE, session)

    in_use = session.execute(
        select(func.count(ExpenseRecord.id)).where(ExpenseRecord.category_id == category.id)
    ).scalar_one()
    if in_use:
        raise AppError(
            ErrorCode.CATEGORY_IN_USE,
            f"Expense category {category.id} is used by {in_use} expense record(s).",
            409,
        )

    session.delete(category)
    session.flush()
    logger.info("User %s deleted expense category %s", caller.user_id, category_id)


# ── Currency rates ─────────────────────────────────────────────────────────

def _require_unique_rate(
        from_currency: Currency,
        to_currency: Currency,
        rate_date: date,
        session: Session,
        exclude_id: int | None = None,
) -> None:
    stmt = select(CurrencyRate).where(
        CurrencyRate.from_currency == from_currency,
        CurrencyRate.to_currency == to_currency,
        CurrencyRate.rate_date == rate_date,
    )
    if exclude_id is not None:
        stmt = stmt.where(CurrencyRate.id != exclude_id)
    if session.execute(stmt).scalars().first() is not None:
        raise AppError(
            ErrorCode.DUPLICATE_RATE,
            f"A {from_currency.value}->{to_currency.value} rate for {rate_date.isoformat()} already exists.",
            409,
        )


def list_currency_rates(
        caller: Caller,
        session: Session,
        from_currency: Currency | None = None,
        to_currency: Currency | None = None,
) -> list[CurrencyRate]:
    """All rates, most recent date first."""
    stmt = scoped_select(caller, CurrencyRate)
    if from_currency is not None:
        stmt = stmt.where(CurrencyRate.from_currency == from_currency)
    if to_currency is not None:
        stmt = stmt.where(CurrencyRate.to_currency == to_currency)
    stmt = stmt.order_by(CurrencyRate.rate_date.desc(), CurrencyRate.id.desc())
    return list_visible(caller, stmt, session)


def create_currency_rate(caller: Caller, data: dict, session: Session) -> CurrencyRate:
    rate = CurrencyRate(
        from_currency=data["from_currency"],
        to_currency=data["to_currency"],
        rate=data["rate"],
        rate_date=data.get("date") or date.today(),
    )
    authorize_insert(caller, rate, session)
    _require_unique_rate(rate.from_currency, rate.to_currency, rate.rate_date, session)

    session.add(rate)
    session.flush()
    logger.info(
        "User %s set %s->%s rate %s for %s",
        caller.user_id, rate.from_currency.value, rate.to_currency.value, rate.rate, rate.rate_date,
    )
    return rate


def update_currency_rate(caller: Caller, rate_id: int, data: dict, session: Session) -> CurrencyRate:
    rate = get_row_or_404(caller, CurrencyRate, rate_id, Operation.UPDATE, session)

    from_currency = data.get("from_currency", rate.from_currency)
    to_currency = data.get("to_currency", rate.to_currency)
    rate_date = data.get("date", rate.rate_date)
    _require_unique_rate(from_currency, to_currency, rate_date, session, exclude_id=rate.id)

    rate.from_currency = from_currency
    rate.to_currency = to_currency
    rate.rate_date = rate_date
    if "rate" in data:
        rate.rate = data["rate"]

    session.flush()
    return rate


def delete_currency_rate(caller: Caller, rate_id: int, session: Session) -> None:
    rate = get_row_or_404(caller, CurrencyRate, rate_id, Operation.DELETE, session)
    session.delete(rate)
    session.flush()

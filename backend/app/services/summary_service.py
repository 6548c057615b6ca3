"""
services/summary_service.py — Dashboard totals for the caller's own ledger.

Totals are reported per currency and never converted: USD and GHS amounts
are kept apart. Only rows visible to the caller are aggregated; the same
scoped queries as the CRUD services are used, so an admin's summary covers
the admin's own records only.

Layer rules:
  - No Flask imports. Returns plain dicts.
  - Decimal arithmetic only.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from sqlalchemy.orm import Session

from backend.app.models.enums import Quarter
from backend.app.services import expense_service, income_service, savings_service
from backend.app.policies import Caller

ZERO = Decimal("0.00")


def _empty_totals() -> dict[str, Decimal]:
    return {"total_income": ZERO, "total_expenses": ZERO}


def get_summary(
        caller: Caller,
        session: Session,
        year: int | None = None,
        quarter: Quarter | None = None,
) -> dict:
    """
    Income, expense, and savings totals for the caller.

    Args:
        year, quarter: Optional period filter for income and expenses.
                       Savings goals are not period-scoped.

    Returns:
        {
          "year": int | None,
          "quarter": str | None,
          "currencies": {"USD": {"total_income", "total_expenses", "net"}, ...},
          "savings": {"USD": {"target", "saved", "active_goals"}, ...},
        }
    """
    totals: dict[str, dict[str, Decimal]] = defaultdict(_empty_totals)

    for income in income_service.list_incomes(caller, session, year=year, quarter=quarter):
        totals[income.currency.value]["total_income"] += Decimal(income.amount)

    for expense in expense_service.list_expenses(caller, session, year=year, quarter=quarter):
        totals[expense.currency.value]["total_expenses"] += Decimal(expense.amount)

    currencies = {
        code: {
            "total_income": values["total_income"],
            "total_expenses": values["total_expenses"],
            "net": values["total_income"] - values["total_expenses"],
        }
        for code, values in sorted(totals.items())
    }

    savings: dict[str, dict] = {}
    for goal in savings_service.list_goals(caller, session):
        bucket = savings.setdefault(
            goal.currency.value,
            {"target": ZERO, "saved": ZERO, "active_goals": 0},
        )
        bucket["target"] += Decimal(goal.target_amount)
        bucket["saved"] += Decimal(goal.current_amount)
        if goal.is_active:
            bucket["active_goals"] += 1

    return {
        "year": year,
        "quarter": quarter.value if quarter is not None else None,
        "currencies": currencies,
        "savings": dict(sorted(savings.items())),
    }

"""
models/expense_record.py — ExpenseRecord table definition.

Same ownership rules as IncomeRecord, plus a reference to one
ExpenseCategory. category_id is ON DELETE RESTRICT: a category that is still
referenced cannot be removed (CATEGORY_IN_USE at the service layer).

No business logic. No imports from services or routes.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db
from backend.app.models.enums import Currency, Quarter, string_enum


class ExpenseRecord(db.Model):
    __tablename__ = "expense_records"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expense_records_amount_positive"),
        CheckConstraint("year BETWEEN 1900 AND 9999", name="ck_expense_records_year_range"),
        Index("idx_expense_records_user_period", "user_id", "year", "quarter"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    category_id: Mapped[int] = mapped_column(
        ForeignKey("expense_categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quarter: Mapped[Quarter] = mapped_column(
        string_enum(Quarter, "ck_expense_records_quarter"),
        nullable=False,
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    # NUMERIC(15, 2). Never Float.
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    currency: Mapped[Currency] = mapped_column(
        string_enum(Currency, "ck_expense_records_currency"),
        nullable=False,
        default=Currency.USD,
        server_default=Currency.USD.value,
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    expense_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        default=date.today,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    category: Mapped["ExpenseCategory"] = relationship(  # noqa: F821
        "ExpenseCategory",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<ExpenseRecord id={self.id} user_id={self.user_id} "
            f"category_id={self.category_id} amount={self.amount} {self.currency}>"
        )

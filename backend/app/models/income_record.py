"""
models/income_record.py — IncomeRecord table definition.

Owned by exactly one user (user_id). Only that user may read or change it;
the policy table in app/policies.py is the enforcement point.

No business logic. No imports from services or routes.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.extensions import db
from backend.app.models.enums import Currency, Quarter, string_enum


class IncomeRecord(db.Model):
    __tablename__ = "income_records"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_income_records_amount_positive"),
        CheckConstraint("year BETWEEN 1900 AND 9999", name="ck_income_records_year_range"),
        Index("idx_income_records_user_period", "user_id", "year", "quarter"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    quarter: Mapped[Quarter] = mapped_column(
        string_enum(Quarter, "ck_income_records_quarter"),
        nullable=False,
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    # NUMERIC(15, 2). Never Float.
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    currency: Mapped[Currency] = mapped_column(
        string_enum(Currency, "ck_income_records_currency"),
        nullable=False,
        default=Currency.USD,
        server_default=Currency.USD.value,
    )

    source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

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

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<IncomeRecord id={self.id} user_id={self.user_id} "
            f"{self.quarter} {self.year} amount={self.amount} {self.currency}>"
        )

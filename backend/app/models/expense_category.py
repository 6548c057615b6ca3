"""
models/expense_category.py — ExpenseCategory reference table.

Global reference data: readable by every caller, writable by admins only.
Seeded by migration 001 with DEFAULT_CATEGORIES.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.extensions import db


DEFAULT_CATEGORIES: tuple[tuple[str, str], ...] = (
    ("Housing", "Rent, utilities, maintenance"),
    ("Transportation", "Car payments, fuel, public transport"),
    ("Food", "Groceries, dining out"),
    ("Healthcare", "Medical bills, insurance"),
    ("Entertainment", "Movies, games, subscriptions"),
    ("Personal", "Clothing, personal care"),
    ("Technology", "Tech gadgets, software"),
    ("Other", "Miscellaneous expenses"),
)


class ExpenseCategory(db.Model):
    __tablename__ = "expense_categories"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_expense_categories_name_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<ExpenseCategory id={self.id} name={self.name!r}>"

"""
models/savings_transaction.py — SavingsTransaction table definition.

A transaction carries no owner column: it belongs to whoever owns the goal
it references. `amount` is always positive; the direction comes from
`transaction_type`.

Rows are only ever inserted or deleted, never updated — both paths go
through services/savings_service.py, which keeps the goal balance in step.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Numeric, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db
from backend.app.models.enums import TransactionType, string_enum


class SavingsTransaction(db.Model):
    __tablename__ = "savings_transactions"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_savings_transactions_amount_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    savings_goal_id: Mapped[int] = mapped_column(
        ForeignKey("savings_goals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    transaction_type: Mapped[TransactionType] = mapped_column(
        string_enum(TransactionType, "ck_savings_transactions_type"),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    transaction_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        default=date.today,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    goal: Mapped["SavingsGoal"] = relationship(  # noqa: F821
        "SavingsGoal",
        back_populates="transactions",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<SavingsTransaction id={self.id} goal_id={self.savings_goal_id} "
            f"{self.transaction_type} {self.amount}>"
        )

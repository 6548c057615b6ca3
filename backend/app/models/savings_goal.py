"""
models/savings_goal.py — SavingsGoal table definition.

Key design points:
  - `current_amount` is a derived column. It must always equal the signed sum
    of the goal's transactions (deposits positive, withdrawals negative).
    Only services/savings_service.py writes it, and only as a side effect of
    recording or deleting a transaction. Clients can never set it.
  - Money columns use Numeric(15, 2) — never Float.
  - Deleting a goal deletes its transactions with it.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db
from backend.app.models.enums import Currency, GoalType, string_enum


class SavingsGoal(db.Model):
    __tablename__ = "savings_goals"

    __table_args__ = (
        CheckConstraint("target_amount > 0", name="ck_savings_goals_target_positive"),
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_savings_goals_name_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    target_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    # Derived: sum(deposits) - sum(withdrawals). See module docstring.
    current_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        default=Decimal("0.00"),
        server_default="0",
    )

    currency: Mapped[Currency] = mapped_column(
        string_enum(Currency, "ck_savings_goals_currency"),
        nullable=False,
        default=Currency.USD,
        server_default=Currency.USD.value,
    )

    target_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    goal_type: Mapped[GoalType] = mapped_column(
        string_enum(GoalType, "ck_savings_goals_goal_type"),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
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

    transactions: Mapped[list["SavingsTransaction"]] = relationship(  # noqa: F821
        "SavingsTransaction",
        back_populates="goal",
        cascade="all, delete-orphan",
        order_by="SavingsTransaction.id",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<SavingsGoal id={self.id} user_id={self.user_id} "
            f"current={self.current_amount} target={self.target_amount}>"
        )

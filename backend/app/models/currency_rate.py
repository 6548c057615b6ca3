"""
models/currency_rate.py — CurrencyRate reference table.

Static lookup data: one rate per (from_currency, to_currency, date).
Readable by every caller, writable by admins only. Nothing in the system
converts amounts with it; it is served as-is.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, Numeric, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.extensions import db
from backend.app.models.enums import Currency, string_enum


DEFAULT_RATES: tuple[tuple[Currency, Currency, Decimal], ...] = (
    (Currency.USD, Currency.GHS, Decimal("12.0")),
    (Currency.GHS, Currency.USD, Decimal("0.083")),
)


class CurrencyRate(db.Model):
    __tablename__ = "currency_rates"

    __table_args__ = (
        UniqueConstraint(
            "from_currency", "to_currency", "date",
            name="uq_currency_rates_pair_date",
        ),
        CheckConstraint("rate > 0", name="ck_currency_rates_rate_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    from_currency: Mapped[Currency] = mapped_column(
        string_enum(Currency, "ck_currency_rates_from_currency"),
        nullable=False,
    )

    to_currency: Mapped[Currency] = mapped_column(
        string_enum(Currency, "ck_currency_rates_to_currency"),
        nullable=False,
    )

    rate: Mapped[Decimal] = mapped_column(Numeric(15, 6), nullable=False)

    # Column is named "date"; the attribute name keeps datetime.date unshadowed.
    rate_date: Mapped[date] = mapped_column(
        "date",
        Date,
        nullable=False,
        default=date.today,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<CurrencyRate id={self.id} {self.from_currency}->{self.to_currency} "
            f"{self.rate} on {self.rate_date}>"
        )

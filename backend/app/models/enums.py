"""
models/enums.py — Enumerations and column limits shared by several ledger tables.

Stored as their string values (constrained VARCHAR + CHECK), never as names.
Import these in schemas and services instead of repeating string literals.
"""

from __future__ import annotations

import enum
from decimal import Decimal

from sqlalchemy import Enum

# Largest magnitude a Numeric(15, 2) money column holds.
MAX_MONEY_AMOUNT = Decimal("9999999999999.99")


class Quarter(str, enum.Enum):
    Q1 = "Q1"
    Q2 = "Q2"
    Q3 = "Q3"
    Q4 = "Q4"


class Currency(str, enum.Enum):
    USD = "USD"
    GHS = "GHS"


class Role(str, enum.Enum):
    ADMIN = "admin"
    USER  = "user"


class GoalType(str, enum.Enum):
    VACATION    = "vacation"
    CAR_SERVICE = "car_service"
    TECH_STOCKS = "tech_stocks"
    EMERGENCY   = "emergency"
    OTHER       = "other"


class TransactionType(str, enum.Enum):
    DEPOSIT    = "deposit"
    WITHDRAWAL = "withdrawal"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g., 'car_service'), not names ('CAR_SERVICE')."""
    return [member.value for member in enum_cls]


def string_enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    """
    Column type for an enum stored as VARCHAR with a CHECK constraint.

    Non-native so the same schema runs on PostgreSQL and on the in-memory
    SQLite database used by the test suite.
    """
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        validate_strings=True,
        values_callable=_enum_values,
        length=max(len(v) for v in _enum_values(enum_cls)),
    )

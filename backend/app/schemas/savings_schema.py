"""
schemas/savings_schema.py — Marshmallow schemas for savings goals and their
transactions.

current_amount is derived from the transaction history and never accepted
from a client. Sending it, on create or update, is a 400 FIELD_NOT_WRITABLE
rather than a silent ignore, so a client cannot believe it set a balance.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, pre_load, validate

from backend.app.errors import ErrorCode
from backend.app.models.enums import Currency, GoalType, TransactionType
from backend.app.schemas.validators import validate_monetary_amount, validate_non_empty_after_trim

_DERIVED_FIELDS = ("current_amount",)


class SavingsGoalSchema(Schema):
    """
    POST /savings-goals, and PATCH /savings-goals/:id when loaded with
    partial=True.
    """

    name = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=255), validate_non_empty_after_trim],
    )

    target_amount = fields.Decimal(required=True, validate=validate_monetary_amount)

    currency = fields.Enum(
        Currency,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CURRENCY},
    )

    target_date = fields.Date(allow_none=True)

    goal_type = fields.Enum(
        GoalType,
        required=True,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_GOAL_TYPE},
    )

    description = fields.Str(allow_none=True)
    is_active = fields.Bool()

    @pre_load
    def reject_derived_fields(self, data, **kwargs):
        if isinstance(data, dict):
            for name in _DERIVED_FIELDS:
                if name in data:
                    raise ValidationError({name: [ErrorCode.FIELD_NOT_WRITABLE]})
        return data


class GoalQuerySchema(Schema):
    """GET /savings-goals?is_active=true|false"""

    is_active = fields.Bool()


class SavingsTransactionSchema(Schema):
    """
    POST /savings-goals/:id/transactions

    The goal comes from the URL, never from the body. There is no update
    schema: transactions are immutable once recorded.
    """

    amount = fields.Decimal(required=True, validate=validate_monetary_amount)

    transaction_type = fields.Enum(
        TransactionType,
        required=True,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_TRANSACTION_TYPE},
    )

    description = fields.Str(allow_none=True)
    transaction_date = fields.Date(allow_none=True)

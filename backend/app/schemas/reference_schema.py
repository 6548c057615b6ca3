"""
schemas/reference_schema.py — Marshmallow schemas for the shared reference
data: expense categories and currency rates.

Uniqueness (DUPLICATE_CATEGORY, DUPLICATE_RATE) needs the DB and is checked
in services/reference_service.py.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from backend.app.errors import ErrorCode
from backend.app.models.enums import Currency
from backend.app.schemas.validators import validate_non_empty_after_trim, validate_rate


class ExpenseCategorySchema(Schema):
    """POST /categories, PATCH /categories/:id (partial=True)."""

    name = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=100), validate_non_empty_after_trim],
    )
    description = fields.Str(allow_none=True)


class CurrencyRateSchema(Schema):
    """
    POST /currency-rates, PATCH /currency-rates/:id (partial=True).

      from_currency, to_currency : USD | GHS, must differ
      rate                       : Decimal > 0, max 6 dp
      date                       : optional, defaults to today
    """

    from_currency = fields.Enum(
        Currency,
        required=True,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CURRENCY},
    )

    to_currency = fields.Enum(
        Currency,
        required=True,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CURRENCY},
    )

    rate = fields.Decimal(required=True, validate=validate_rate)

    date = fields.Date()

    @validates_schema
    def validate_distinct_currencies(self, data: dict, **kwargs) -> None:
        from_currency = data.get("from_currency")
        if from_currency is not None and from_currency == data.get("to_currency"):
            raise ValidationError(
                {"to_currency": ["to_currency must differ from from_currency."]}
            )


class CurrencyRateQuerySchema(Schema):
    """GET /currency-rates?from_currency=&to_currency="""

    from_currency = fields.Enum(
        Currency,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CURRENCY},
    )
    to_currency = fields.Enum(
        Currency,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CURRENCY},
    )


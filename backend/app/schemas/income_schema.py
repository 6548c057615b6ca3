"""
schemas/income_schema.py — Marshmallow schemas for income endpoints.

Ownership is never taken from the body: user_id is always the caller's
(services/income_service.py). A user_id key in the payload is an unknown
field and rejected like any other.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from backend.app.errors import ErrorCode
from backend.app.models.enums import Currency, Quarter
from backend.app.schemas.validators import MAX_YEAR, MIN_YEAR, validate_monetary_amount


class IncomeSchema(Schema):
    """
    POST /incomes, and PATCH /incomes/:id when loaded with partial=True.

      quarter     : Q1..Q4           (INVALID_QUARTER otherwise)
      year        : 1900..9999
      amount      : Decimal > 0, max 2 dp
      currency    : USD | GHS, default USD (INVALID_CURRENCY otherwise)
      source      : optional, max 255
      description : optional
    """

    quarter = fields.Enum(
        Quarter,
        required=True,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_QUARTER},
    )

    year = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=MIN_YEAR, max=MAX_YEAR),
    )

    amount = fields.Decimal(required=True, validate=validate_monetary_amount)

    currency = fields.Enum(
        Currency,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CURRENCY},
    )

    source = fields.Str(allow_none=True, validate=validate.Length(max=255))
    description = fields.Str(allow_none=True)


class LedgerQuerySchema(Schema):
    """Query-string filters shared by GET /incomes and GET /expenses."""

    year = fields.Int(validate=validate.Range(min=MIN_YEAR, max=MAX_YEAR))

    quarter = fields.Enum(
        Quarter,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_QUARTER},
    )

    currency = fields.Enum(
        Currency,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CURRENCY},
    )

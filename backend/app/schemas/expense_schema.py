"""
schemas/expense_schema.py — Marshmallow schemas for expense endpoints.

Validation responsibility:
  - This file: field types, enum values, decimal precision.
  - services/expense_service.py: UNKNOWN_CATEGORY (422), which needs a
    DB lookup.
"""

from __future__ import annotations

from marshmallow import fields, validate

from backend.app.schemas.income_schema import IncomeSchema, LedgerQuerySchema


class ExpenseSchema(IncomeSchema):
    """
    POST /expenses, and PATCH /expenses/:id when loaded with partial=True.

    Same period/amount/currency rules as income, minus `source`, plus a
    category reference and the date the money was spent.
    """

    class Meta:
        exclude = ("source",)

    category_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="category_id must be a positive integer."),
    )

    expense_date = fields.Date()


class ExpenseQuerySchema(LedgerQuerySchema):
    """GET /expenses filters."""

    category_id = fields.Int(validate=validate.Range(min=1))

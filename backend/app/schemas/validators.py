"""
schemas/validators.py — Field validators shared by the ledger schemas.

Monetary rule: strictly positive, at most 2 decimal places, and no larger
than a Numeric(15, 2) column holds. Input with more places is REJECTED with
INVALID_AMOUNT_PRECISION, never rounded; input above MAX_MONEY_AMOUNT is
AMOUNT_OUT_OF_RANGE. The validation error handler in app/__init__.py
recognises the bare ErrorCode constant as the message and reports it as the
response code.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import ValidationError

from backend.app.errors import ErrorCode
from backend.app.models.enums import MAX_MONEY_AMOUNT

MIN_YEAR = 1900
MAX_YEAR = 9999

# Numeric(15, 6)
MAX_RATE = Decimal("999999999.999999")


def validate_monetary_amount(value: Decimal) -> None:
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")

    # Decimal("10.123").as_tuple().exponent == -3 → 3 dp → reject
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)

    if value > MAX_MONEY_AMOUNT:
        raise ValidationError(ErrorCode.AMOUNT_OUT_OF_RANGE)


def validate_rate(value: Decimal) -> None:
    """Exchange rates are positive with up to 6 decimal places (Numeric(15, 6))."""
    if value <= Decimal("0"):
        raise ValidationError("Rate must be greater than zero.")
    if value.as_tuple().exponent < -6:
        raise ValidationError("Rate must have at most 6 decimal places.")
    if value > MAX_RATE:
        raise ValidationError(f"Rate must not exceed {MAX_RATE}.")


def validate_non_empty_after_trim(value: str) -> None:
    """
    Raises ValidationError if the string is blank or contains only whitespace.
    Mirrors the DB CHECK(LENGTH(TRIM(...)) > 0) constraints at the API layer.
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")

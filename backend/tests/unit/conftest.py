"""
tests/unit/conftest.py — Unit tests build model instances without a
database, which still requires every mapped class to be registered so
string relationship targets ("Profile", "RefreshToken", ...) resolve.
"""

from backend.app.models import (  # noqa: F401
    currency_rate,
    expense_category,
    expense_record,
    income_record,
    profile,
    refresh_token,
    savings_goal,
    savings_transaction,
    user,
)

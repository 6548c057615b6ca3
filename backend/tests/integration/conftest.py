"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing").
    TestingConfig points at in-memory SQLite unless TEST_DATABASE_URL names
    a real PostgreSQL database.
  - All tables are created once via db.create_all() at session start, and the
    reference data (categories, rates) is seeded the way migration 001 does.
  - Between tests, all user-owned rows are deleted in FK-safe order so tests
    are isolated; reference data is reset to the seed.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)       → dict with user + tokens
  - auth_headers(token)         → {"Authorization": "Bearer <token>"}
  - make_income(...)            → HTTP response
  - make_expense(...)           → HTTP response
  - make_goal(...)              → goal dict
  - make_transaction(...)       → HTTP response
  - category_id(client, token)  → id of a seeded category

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import text

from backend.app import create_app
from backend.app.extensions import db as _db
from backend.app.models.currency_rate import DEFAULT_RATES, CurrencyRate
from backend.app.models.expense_category import DEFAULT_CATEGORIES, ExpenseCategory

ADMIN_EMAIL = "admin@fms.com"
PASSWORD = "Password1"


def _seed_reference_data() -> None:
    for name, description in DEFAULT_CATEGORIES:
        _db.session.add(ExpenseCategory(name=name, description=description))
    for from_currency, to_currency, rate in DEFAULT_RATES:
        _db.session.add(CurrencyRate(
            from_currency=from_currency,
            to_currency=to_currency,
            rate=rate,
            rate_date=date.today(),
        ))
    _db.session.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    Steps:
      1. Create app with TestingConfig.
      2. Run db.create_all() to create all tables.
      3. Seed the reference data.
      4. Yield the app for the test session.
      5. Drop all tables at teardown.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()
        _seed_reference_data()

    yield flask_app

    with flask_app.app_context():
        _db.session.remove()
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows between tests in FK-safe order.

    Children before parents: transactions before goals, expense records
    before categories, profiles and tokens before users.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM savings_transactions"))
            conn.execute(text("DELETE FROM savings_goals"))
            conn.execute(text("DELETE FROM expense_records"))
            conn.execute(text("DELETE FROM income_records"))
            conn.execute(text("DELETE FROM refresh_tokens"))
            conn.execute(text("DELETE FROM profiles"))
            conn.execute(text("DELETE FROM users"))
            conn.execute(text("DELETE FROM expense_categories"))
            conn.execute(text("DELETE FROM currency_rates"))
            conn.commit()

        _seed_reference_data()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(
    client,
    name: str = "alice",
    email: str | None = None,
    password: str = PASSWORD,
    full_name: str | None = None,
) -> dict:
    """
    Registers a new user and returns the full response data dict.
    Returns: {"user": {..., "profile": {...}}, "access_token": "...", "refresh_token": "..."}
    """
    if email is None:
        email = f"{name}@test.com"
    payload = {"email": email, "password": password}
    if full_name is not None:
        payload["full_name"] = full_name
    resp = client.post("/api/v1/auth/register", json=payload)
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def register_admin(client) -> dict:
    return register(client, email=ADMIN_EMAIL, full_name="Admin")


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def category_id(client, token: str, name: str = "Food") -> int:
    """Returns the id of a seeded expense category by name."""
    resp = client.get("/api/v1/categories", headers=auth_headers(token))
    assert resp.status_code == 200
    for category in resp.get_json()["data"]:
        if category["name"] == name:
            return category["id"]
    raise AssertionError(f"category {name!r} not seeded")


def make_income(
    client,
    token: str,
    amount: str = "1000.00",
    quarter: str = "Q1",
    year: int = 2026,
    currency: str = "USD",
    **extra,
):
    return client.post(
        "/api/v1/incomes",
        json={"quarter": quarter, "year": year, "amount": amount, "currency": currency, **extra},
        headers=auth_headers(token),
    )


def make_expense(
    client,
    token: str,
    category: int,
    amount: str = "50.00",
    quarter: str = "Q1",
    year: int = 2026,
    currency: str = "USD",
    **extra,
):
    return client.post(
        "/api/v1/expenses",
        json={
            "category_id": category,
            "quarter": quarter,
            "year": year,
            "amount": amount,
            "currency": currency,
            **extra,
        },
        headers=auth_headers(token),
    )


def make_goal(
    client,
    token: str,
    name: str = "Trip",
    target_amount: str = "1000.00",
    goal_type: str = "vacation",
    **extra,
) -> dict:
    """Creates a savings goal and returns the goal data dict."""
    resp = client.post(
        "/api/v1/savings-goals",
        json={"name": name, "target_amount": target_amount, "goal_type": goal_type, **extra},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_goal failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_transaction(
    client,
    token: str,
    goal_id: int,
    amount: str,
    transaction_type: str = "deposit",
):
    return client.post(
        f"/api/v1/savings-goals/{goal_id}/transactions",
        json={"amount": amount, "transaction_type": transaction_type},
        headers=auth_headers(token),
    )

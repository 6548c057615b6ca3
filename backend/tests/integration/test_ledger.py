"""
tests/integration/test_ledger.py — Income and expense records.

Properties exercised:
  - Owner isolation: another user's record never appears in a list and is a
    404 by id, for reads and writes alike (admins included).
  - Validation: precision, positivity, quarter/currency enums.
  - Expense category reference: a dangling category_id is 422
    UNKNOWN_CATEGORY and nothing is written.
"""

from __future__ import annotations

from .conftest import (
    auth_headers,
    category_id,
    make_expense,
    make_income,
    register,
    register_admin,
)


# ═══════════════════════════════════════════════════════════════════════════
# Income
# ═══════════════════════════════════════════════════════════════════════════

class TestIncome:

    def test_create_income_returns_201_with_string_amount(self, client):
        alice = register(client, "alice")
        resp = make_income(client, alice["access_token"], amount="2500.50", source="Salary")
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["amount"]   == "2500.50"
        assert data["currency"] == "USD"
        assert data["quarter"]  == "Q1"
        assert data["source"]   == "Salary"
        assert data["user_id"]  == alice["user"]["id"]

    def test_user_id_in_body_is_rejected(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        resp = make_income(client, alice["access_token"], user_id=bob["user"]["id"])
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "user_id"

    def test_three_decimal_places_rejected(self, client):
        alice = register(client, "alice")
        resp = make_income(client, alice["access_token"], amount="10.123")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_AMOUNT_PRECISION"

    def test_non_positive_amount_rejected(self, client):
        alice = register(client, "alice")
        resp = make_income(client, alice["access_token"], amount="0")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "amount"

    def test_invalid_quarter_rejected(self, client):
        alice = register(client, "alice")
        resp = make_income(client, alice["access_token"], quarter="Q5")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_QUARTER"

    def test_invalid_currency_rejected(self, client):
        alice = register(client, "alice")
        resp = make_income(client, alice["access_token"], currency="EUR")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_CURRENCY"

    def test_list_is_scoped_to_owner(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        make_income(client, alice["access_token"], amount="100.00")
        make_income(client, bob["access_token"], amount="200.00")

        resp = client.get("/api/v1/incomes", headers=auth_headers(alice["access_token"]))
        rows = resp.get_json()["data"]
        assert [r["amount"] for r in rows] == ["100.00"]

    def test_admin_does_not_see_other_users_income(self, client):
        admin = register_admin(client)
        bob = register(client, "bob")
        income_id = make_income(client, bob["access_token"]).get_json()["data"]["id"]

        headers = auth_headers(admin["access_token"])
        assert client.get("/api/v1/incomes", headers=headers).get_json()["data"] == []
        assert client.get(f"/api/v1/incomes/{income_id}", headers=headers).status_code == 404

    def test_list_filters_by_period_and_currency(self, client):
        alice = register(client, "alice")
        token = alice["access_token"]
        make_income(client, token, quarter="Q1", year=2025)
        make_income(client, token, quarter="Q2", year=2026)
        make_income(client, token, quarter="Q2", year=2026, currency="GHS")

        headers = auth_headers(token)
        resp = client.get("/api/v1/incomes?year=2026&quarter=Q2", headers=headers)
        assert len(resp.get_json()["data"]) == 2

        resp = client.get("/api/v1/incomes?currency=GHS", headers=headers)
        assert [r["currency"] for r in resp.get_json()["data"]] == ["GHS"]

    def test_other_users_income_cannot_be_changed_or_deleted(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        income_id = make_income(client, bob["access_token"]).get_json()["data"]["id"]
        headers = auth_headers(alice["access_token"])

        resp = client.patch(f"/api/v1/incomes/{income_id}", json={"amount": "1.00"}, headers=headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "INCOME_NOT_FOUND"

        resp = client.delete(f"/api/v1/incomes/{income_id}", headers=headers)
        assert resp.status_code == 404

        resp = client.get(f"/api/v1/incomes/{income_id}", headers=auth_headers(bob["access_token"]))
        assert resp.get_json()["data"]["amount"] == "1000.00"

    def test_owner_updates_and_deletes(self, client):
        alice = register(client, "alice")
        headers = auth_headers(alice["access_token"])
        income_id = make_income(client, alice["access_token"]).get_json()["data"]["id"]

        resp = client.patch(
            f"/api/v1/incomes/{income_id}",
            json={"amount": "1200.00", "quarter": "Q3"},
            headers=headers,
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["amount"]  == "1200.00"
        assert data["quarter"] == "Q3"

        resp = client.delete(f"/api/v1/incomes/{income_id}", headers=headers)
        assert resp.status_code == 200
        assert client.get(f"/api/v1/incomes/{income_id}", headers=headers).status_code == 404


# ═══════════════════════════════════════════════════════════════════════════
# Expenses
# ═══════════════════════════════════════════════════════════════════════════

class TestExpense:

    def test_create_expense_with_seeded_category(self, client):
        alice = register(client, "alice")
        token = alice["access_token"]
        food = category_id(client, token, "Food")

        resp = make_expense(client, token, food, amount="45.99", expense_date="2026-02-14")
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["category_id"]   == food
        assert data["category_name"] == "Food"
        assert data["amount"]        == "45.99"
        assert data["expense_date"]  == "2026-02-14"

    def test_unknown_category_returns_422_and_writes_nothing(self, client):
        alice = register(client, "alice")
        token = alice["access_token"]

        resp = make_expense(client, token, 999999)
        assert resp.status_code == 422
        error = resp.get_json()["error"]
        assert error["code"]  == "UNKNOWN_CATEGORY"
        assert error["field"] == "category_id"

        resp = client.get("/api/v1/expenses", headers=auth_headers(token))
        assert resp.get_json()["data"] == []

    def test_update_to_unknown_category_returns_422(self, client):
        alice = register(client, "alice")
        token = alice["access_token"]
        expense_id = make_expense(client, token, category_id(client, token)).get_json()["data"]["id"]

        resp = client.patch(
            f"/api/v1/expenses/{expense_id}",
            json={"category_id": 999999},
            headers=auth_headers(token),
        )
        assert resp.status_code == 422

    def test_list_filters_by_category(self, client):
        alice = register(client, "alice")
        token = alice["access_token"]
        food = category_id(client, token, "Food")
        housing = category_id(client, token, "Housing")
        make_expense(client, token, food)
        make_expense(client, token, housing)

        resp = client.get(f"/api/v1/expenses?category_id={housing}", headers=auth_headers(token))
        rows = resp.get_json()["data"]
        assert [r["category_name"] for r in rows] == ["Housing"]

    def test_expenses_are_owner_scoped(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        food = category_id(client, alice["access_token"])
        expense_id = make_expense(client, bob["access_token"], food).get_json()["data"]["id"]

        headers = auth_headers(alice["access_token"])
        assert client.get("/api/v1/expenses", headers=headers).get_json()["data"] == []
        resp = client.get(f"/api/v1/expenses/{expense_id}", headers=headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "EXPENSE_NOT_FOUND"

    def test_owner_deletes_expense(self, client):
        alice = register(client, "alice")
        token = alice["access_token"]
        expense_id = make_expense(client, token, category_id(client, token)).get_json()["data"]["id"]

        resp = client.delete(f"/api/v1/expenses/{expense_id}", headers=auth_headers(token))
        assert resp.status_code == 200
        assert resp.get_json()["data"] == {"deleted": True, "expense_id": expense_id}

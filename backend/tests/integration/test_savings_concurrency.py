"""
tests/integration/test_savings_concurrency.py — Concurrent deposits into one goal.

Several threads post deposits to the same goal at once, each request in its
own app context and database session. Every deposit must land: the final
balance equals the sum of the deposits and the fold over the history.

The in-memory SQLite database of the session app is a single shared
connection, so on SQLite this module runs against a file-backed database of
its own. With TEST_DATABASE_URL pointing at PostgreSQL the session app is
used as is, and the goal row lock is what serialises the writers.
"""

from __future__ import annotations

import threading
from decimal import Decimal

import pytest
from sqlalchemy import select

from backend.app import create_app
from backend.app.extensions import db
from backend.app.models.savings_transaction import SavingsTransaction
from backend.app.services.savings_service import compute_goal_balance

from .conftest import auth_headers, make_goal, make_transaction, register

THREADS = 8


@pytest.fixture
def threaded_app(app, tmp_path):
    if not app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        yield app
        return

    file_app = create_app("testing", {
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'concurrency.db'}",
        # writers wait for the database lock instead of failing fast
        "SQLALCHEMY_ENGINE_OPTIONS": {
            "connect_args": {"timeout": 30, "check_same_thread": False},
        },
    })
    with file_app.app_context():
        db.create_all()

    yield file_app

    with file_app.app_context():
        db.session.remove()
        db.engine.dispose()


class TestConcurrentDeposits:

    def test_every_deposit_lands(self, threaded_app):
        client = threaded_app.test_client()
        token = register(client, "alice")["access_token"]
        goal = make_goal(client, token)

        amounts = [Decimal("10.01") * (i + 1) for i in range(THREADS)]
        start = threading.Barrier(THREADS)
        statuses = []
        failures = []

        def deposit(amount: Decimal) -> None:
            own_client = threaded_app.test_client()
            start.wait()
            try:
                resp = make_transaction(own_client, token, goal["id"], str(amount))
                statuses.append(resp.status_code)
            except Exception as exc:  # reported by the main thread
                failures.append(exc)

        workers = [threading.Thread(target=deposit, args=(a,)) for a in amounts]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=60)

        assert not failures
        assert statuses == [201] * THREADS

        expected = sum(amounts)
        resp = client.get(f"/api/v1/savings-goals/{goal['id']}", headers=auth_headers(token))
        assert Decimal(resp.get_json()["data"]["current_amount"]) == expected

        with threaded_app.app_context():
            history = db.session.execute(
                select(SavingsTransaction)
                .where(SavingsTransaction.savings_goal_id == goal["id"])
            ).scalars().all()
            assert len(history) == THREADS
            assert compute_goal_balance(history) == expected

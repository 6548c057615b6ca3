"""
Unit tests for the savings balance arithmetic and for the service paths that
never reach the database (authorization and consistency failures).
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from backend.app.errors import AppError, ErrorCode
from backend.app.models.enums import GoalType, Role, TransactionType
from backend.app.models.savings_goal import SavingsGoal
from backend.app.models.savings_transaction import SavingsTransaction
from backend.app.policies import Caller
from backend.app.services import savings_service

ALICE = Caller(user_id=1, role=Role.USER)

DEPOSIT = TransactionType.DEPOSIT
WITHDRAWAL = TransactionType.WITHDRAWAL


def _tx(amount: str, kind: TransactionType) -> SimpleNamespace:
    return SimpleNamespace(amount=Decimal(amount), transaction_type=kind)


# ═══════════════════════════════════════════════════════════════════════════
# Balance arithmetic
# ═══════════════════════════════════════════════════════════════════════════

class TestBalanceArithmetic:

    def test_signed_amount(self):
        assert savings_service.signed_amount(DEPOSIT, Decimal("5.00")) == Decimal("5.00")
        assert savings_service.signed_amount(WITHDRAWAL, Decimal("5.00")) == Decimal("-5.00")

    def test_empty_history_is_zero(self):
        assert savings_service.compute_goal_balance([]) == Decimal("0.00")

    def test_deposits_minus_withdrawals(self):
        history = [_tx("100.00", DEPOSIT), _tx("30.00", WITHDRAWAL), _tx("0.05", DEPOSIT)]
        assert savings_service.compute_goal_balance(history) == Decimal("70.05")

    def test_order_does_not_matter(self):
        history = [_tx("10.10", DEPOSIT), _tx("3.03", WITHDRAWAL), _tx("7.77", DEPOSIT)]
        assert (
            savings_service.compute_goal_balance(history)
            == savings_service.compute_goal_balance(list(reversed(history)))
        )

    def test_balance_may_be_negative(self):
        assert savings_service.compute_goal_balance([_tx("1.00", WITHDRAWAL)]) == Decimal("-1.00")

    def test_result_is_decimal_with_two_places(self):
        result = savings_service.compute_goal_balance([_tx("0.1", DEPOSIT), _tx("0.2", DEPOSIT)])
        assert result == Decimal("0.30")
        assert result.as_tuple().exponent == -2


# ═══════════════════════════════════════════════════════════════════════════
# verify_goal_balance
# ═══════════════════════════════════════════════════════════════════════════

class TestVerifyGoalBalance:

    def _session(self, history) -> MagicMock:
        session = MagicMock()
        session.execute.return_value.scalars.return_value.all.return_value = history
        return session

    def test_consistent_balance_returns_it(self):
        goal = SimpleNamespace(id=4, current_amount=Decimal("70.00"))
        session = self._session([_tx("100.00", DEPOSIT), _tx("30.00", WITHDRAWAL)])
        assert savings_service.verify_goal_balance(goal, session) == Decimal("70.00")

    def test_drift_raises_balance_inconsistent(self):
        goal = SimpleNamespace(id=4, current_amount=Decimal("71.00"))
        session = self._session([_tx("100.00", DEPOSIT), _tx("30.00", WITHDRAWAL)])

        with pytest.raises(AppError) as exc_info:
            savings_service.verify_goal_balance(goal, session)

        assert exc_info.value.code == ErrorCode.BALANCE_INCONSISTENT
        assert exc_info.value.http_status == 500


# ═══════════════════════════════════════════════════════════════════════════
# _apply_delta
# ═══════════════════════════════════════════════════════════════════════════

class TestApplyDelta:

    def test_delta_within_range_updates_and_refreshes(self):
        goal = SimpleNamespace(id=4, current_amount=Decimal("9999999999998.99"))
        session = MagicMock()

        savings_service._apply_delta(goal, Decimal("1.00"), session)

        session.execute.assert_called_once()
        session.refresh.assert_called_once_with(goal)

    @pytest.mark.parametrize("current, delta", [
        ("9999999999999.00", "1.00"),
        ("-9999999999999.00", "-1.00"),
        ("0.00", "12345678901234567.89"),
    ])
    def test_overflowing_balance_is_rejected_before_writing(self, current, delta):
        goal = SimpleNamespace(id=4, current_amount=Decimal(current))
        session = MagicMock()

        with pytest.raises(AppError) as exc_info:
            savings_service._apply_delta(goal, Decimal(delta), session)

        assert exc_info.value.code == ErrorCode.BALANCE_OUT_OF_RANGE
        assert exc_info.value.http_status == 422
        assert exc_info.value.field == "amount"
        session.execute.assert_not_called()
        assert goal.current_amount == Decimal(current)


# ═══════════════════════════════════════════════════════════════════════════
# Service paths
# ═══════════════════════════════════════════════════════════════════════════

class TestServicePaths:

    def test_create_goal_ignores_caller_supplied_balance(self):
        session = MagicMock()
        goal = savings_service.create_goal(
            ALICE,
            {
                "name": "  Trip ",
                "target_amount": Decimal("500.00"),
                "goal_type": GoalType.VACATION,
                "current_amount": Decimal("999.00"),
            },
            session,
        )
        assert goal.current_amount == Decimal("0.00")
        assert goal.name == "Trip"
        assert goal.user_id == ALICE.user_id
        session.add.assert_called_once_with(goal)

    def test_update_goal_never_writes_current_amount(self):
        goal = SavingsGoal(user_id=1, name="Trip", current_amount=Decimal("10.00"))
        session = MagicMock()
        session.get.return_value = goal

        savings_service.update_goal(
            ALICE, 3, {"current_amount": Decimal("999.00"), "name": "Japan"}, session,
        )

        assert goal.current_amount == Decimal("10.00")
        assert goal.name == "Japan"

    def test_record_transaction_on_foreign_goal_writes_nothing(self):
        session = MagicMock()
        session.get.return_value = SavingsGoal(user_id=2)

        with pytest.raises(AppError) as exc_info:
            savings_service.record_transaction(
                ALICE, 3, {"amount": Decimal("5.00"), "transaction_type": DEPOSIT}, session,
            )

        assert exc_info.value.code == ErrorCode.GOAL_NOT_FOUND
        session.add.assert_not_called()
        session.execute.assert_not_called()

    def test_record_transaction_applies_signed_delta_and_verifies(self):
        goal = SavingsGoal(user_id=1)
        goal.id = 3
        session = MagicMock()
        session.get.return_value = goal

        with patch.object(savings_service, "_apply_delta") as apply_delta, \
                patch.object(savings_service, "verify_goal_balance") as verify, \
                patch.object(savings_service, "authorize_insert"):
            tx, returned_goal = savings_service.record_transaction(
                ALICE, 3, {"amount": Decimal("12.50"), "transaction_type": WITHDRAWAL}, session,
            )

        assert isinstance(tx, SavingsTransaction)
        assert tx.savings_goal_id == 3
        assert returned_goal is goal
        apply_delta.assert_called_once_with(goal, Decimal("-12.50"), session)
        verify.assert_called_once_with(goal, session)

    def test_delete_transaction_from_other_goal_is_404(self):
        goal = SavingsGoal(user_id=1)
        goal.id = 3
        tx = SavingsTransaction(savings_goal_id=8, amount=Decimal("1.00"), transaction_type=DEPOSIT)

        session = MagicMock()
        # goal, transaction, then the goal again for each policy check
        session.get.side_effect = [goal, tx, SimpleNamespace(user_id=1), SimpleNamespace(user_id=1)]

        with pytest.raises(AppError) as exc_info:
            savings_service.delete_transaction(ALICE, 3, 11, session)

        assert exc_info.value.code == ErrorCode.TRANSACTION_NOT_FOUND
        session.delete.assert_not_called()

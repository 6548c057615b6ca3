"""
policies.py — Row-level authorization for every ledger and reference table.

This file is the SINGLE SOURCE OF TRUTH for who may read or write which rows.
Services never compare user ids themselves; they go through the helpers here
before every data access:

  load_caller()        resolve the caller's identity and role from profiles
  scoped_select()      SELECT restricted to the rows the caller may see
  list_visible()       run a scoped SELECT, re-checking each row's predicate
  get_row_or_404()     fetch one row for a given operation
  authorize_insert()   check a new row before it is added to the session

Policy table (operation → predicate):

  Profile             select: owner or admin  insert: admin   update: owner or admin
  IncomeRecord        select/insert/update/delete: owner
  ExpenseRecord       select/insert/update/delete: owner
  SavingsGoal         select/insert/update/delete: owner
  ExpenseCategory     select: everyone        insert/update/delete: admin
  CurrencyRate        select: everyone        insert/update/delete: admin
  SavingsTransaction  select/insert/delete: owner of the referenced goal

Anything not in the table is denied. Invisible rows surface as *_NOT_FOUND
(404), indistinguishable from rows that do not exist; visible rows the
caller may not change surface as FORBIDDEN (403).

Layer rules:
  - No Flask imports. Receives a Session and plain values.
  - Never writes.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy import Select, false, select, true
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.currency_rate import CurrencyRate
from backend.app.models.enums import Role
from backend.app.models.expense_category import ExpenseCategory
from backend.app.models.expense_record import ExpenseRecord
from backend.app.models.income_record import IncomeRecord
from backend.app.models.profile import Profile
from backend.app.models.savings_goal import SavingsGoal
from backend.app.models.savings_transaction import SavingsTransaction

logger = logging.getLogger(__name__)


class Operation(str, enum.Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Caller:
    """The authenticated principal a service call runs on behalf of."""

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


Predicate = Callable[[Caller, Any, Session], bool]


# ── Caller resolution ──────────────────────────────────────────────────────

def load_caller(user_id: int, session: Session, *, for_update: bool = False) -> Caller:
    """
    Resolves the caller's role from their profile.

    The profile row is read with FOR SHARE, so a concurrent role change waits
    for this unit of work to finish and every check in it sees one role.
    A request that may write the caller's own profile passes for_update=True
    and takes FOR UPDATE instead: two transactions both holding FOR SHARE on
    a row deadlock when both then update it.
    A caller without a profile gets no rights at all (FORBIDDEN, 403).
    """
    profile = session.execute(
        select(Profile)
        .where(Profile.user_id == user_id)
        .with_for_update(read=not for_update)
    ).scalar_one_or_none()

    if profile is None:
        logger.warning("Denied request from user %s: no profile provisioned", user_id)
        raise AppError(
            ErrorCode.FORBIDDEN,
            "No profile is provisioned for this account.",
            403,
        )

    return Caller(user_id=user_id, role=profile.role)


# ── Predicates ─────────────────────────────────────────────────────────────

def _everyone(caller: Caller, row: Any, session: Session) -> bool:
    return True


def _admin(caller: Caller, row: Any, session: Session) -> bool:
    return caller.is_admin


def _owner(caller: Caller, row: Any, session: Session) -> bool:
    return row.user_id == caller.user_id


def _goal_owner(caller: Caller, row: Any, session: Session) -> bool:
    """Transactions carry no owner column; ownership is read from their goal."""
    goal = session.get(SavingsGoal, row.savings_goal_id)
    return goal is not None and goal.user_id == caller.user_id


def _any_of(*predicates: Predicate) -> Predicate:
    def combined(caller: Caller, row: Any, session: Session) -> bool:
        return any(p(caller, row, session) for p in predicates)
    return combined


def _owner_only(model: type) -> dict[tuple[type, Operation], Predicate]:
    return {(model, op): _owner for op in Operation}


def _reference_data(model: type) -> dict[tuple[type, Operation], Predicate]:
    return {
        (model, Operation.SELECT): _everyone,
        (model, Operation.INSERT): _admin,
        (model, Operation.UPDATE): _admin,
        (model, Operation.DELETE): _admin,
    }


POLICIES: dict[tuple[type, Operation], Predicate] = {
    (Profile, Operation.SELECT): _any_of(_owner, _admin),
    (Profile, Operation.INSERT): _admin,
    (Profile, Operation.UPDATE): _any_of(_owner, _admin),
    **_owner_only(IncomeRecord),
    **_owner_only(ExpenseRecord),
    **_owner_only(SavingsGoal),
    **_reference_data(ExpenseCategory),
    **_reference_data(CurrencyRate),
    (SavingsTransaction, Operation.SELECT): _goal_owner,
    (SavingsTransaction, Operation.INSERT): _goal_owner,
    (SavingsTransaction, Operation.DELETE): _goal_owner,
}


# SQL equivalents of the SELECT predicates, used to filter list queries in
# the database. list_visible() still re-checks every returned row.
VISIBILITY: dict[type, Callable[[Caller], Any]] = {
    Profile: lambda c: true() if c.is_admin else Profile.user_id == c.user_id,
    IncomeRecord: lambda c: IncomeRecord.user_id == c.user_id,
    ExpenseRecord: lambda c: ExpenseRecord.user_id == c.user_id,
    SavingsGoal: lambda c: SavingsGoal.user_id == c.user_id,
    ExpenseCategory: lambda c: true(),
    CurrencyRate: lambda c: true(),
    SavingsTransaction: lambda c: SavingsTransaction.savings_goal_id.in_(
        select(SavingsGoal.id).where(SavingsGoal.user_id == c.user_id)
    ),
}


_NOT_FOUND: dict[type, tuple[str, str]] = {
    Profile: (ErrorCode.PROFILE_NOT_FOUND, "Profile"),
    IncomeRecord: (ErrorCode.INCOME_NOT_FOUND, "Income record"),
    ExpenseRecord: (ErrorCode.EXPENSE_NOT_FOUND, "Expense record"),
    SavingsGoal: (ErrorCode.GOAL_NOT_FOUND, "Savings goal"),
    SavingsTransaction: (ErrorCode.TRANSACTION_NOT_FOUND, "Savings transaction"),
    ExpenseCategory: (ErrorCode.CATEGORY_NOT_FOUND, "Expense category"),
    CurrencyRate: (ErrorCode.RATE_NOT_FOUND, "Currency rate"),
}


# ── Public helpers ─────────────────────────────────────────────────────────

def is_allowed(caller: Caller, op: Operation, row: Any, session: Session) -> bool:
    """Evaluates the policy for one row. Unknown (model, op) pairs are denied."""
    predicate = POLICIES.get((type(row), op))
    if predicate is None:
        return False
    return bool(predicate(caller, row, session))


def visibility_clause(caller: Caller, model: type):
    """WHERE clause matching the rows `caller` may SELECT from `model`."""
    builder = VISIBILITY.get(model)
    if builder is None:
        return false()
    return builder(caller)


def scoped_select(caller: Caller, model: type) -> Select:
    """select(model) already restricted to the caller's visible rows."""
    return select(model).where(visibility_clause(caller, model))


def list_visible(caller: Caller, stmt: Select, session: Session) -> list:
    """
    Executes a SELECT built from scoped_select() and keeps only the rows whose
    SELECT predicate holds, so a multi-row read never returns a row the
    caller is not entitled to.
    """
    rows = session.execute(stmt).scalars().all()
    return [row for row in rows if is_allowed(caller, Operation.SELECT, row, session)]


def not_found(model: type, row_id: int) -> AppError:
    code, label = _NOT_FOUND.get(model, (ErrorCode.INTERNAL_ERROR, model.__name__))
    return AppError(code, f"{label} {row_id} does not exist.", 404)


def get_row_or_404(
        caller: Caller,
        model: type,
        row_id: int,
        op: Operation,
        session: Session,
        *,
        lock: bool = False,
):
    """
    Fetches one row for `op`.

    Raises:
      AppError(*_NOT_FOUND, 404) — no such row, or the caller cannot see it
      AppError(FORBIDDEN, 403)   — the caller can see it but `op` is denied

    lock=True takes a row lock (SELECT ... FOR UPDATE) held until the unit of
    work ends; used to serialise writers of the same savings goal.
    """
    if lock:
        row = session.get(model, row_id, with_for_update=True, populate_existing=True)
    else:
        row = session.get(model, row_id)

    if row is None or not is_allowed(caller, Operation.SELECT, row, session):
        raise not_found(model, row_id)

    if op != Operation.SELECT and not is_allowed(caller, op, row, session):
        logger.info(
            "Denied %s on %s id=%s for user %s",
            op.value, model.__tablename__, row_id, caller.user_id,
        )
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You are not allowed to {op.value} this {_NOT_FOUND[model][1].lower()}.",
            403,
        )

    return row


def authorize_insert(caller: Caller, row: Any, session: Session) -> None:
    """
    Checks a new row against the INSERT policy before it is added.

    Raises AppError(FORBIDDEN, 403) and writes nothing when the check fails,
    e.g. a row whose owner is not the caller.
    """
    if not is_allowed(caller, Operation.INSERT, row, session):
        logger.info(
            "Denied insert into %s for user %s",
            type(row).__tablename__, caller.user_id,
        )
        raise AppError(
            ErrorCode.FORBIDDEN,
            "You are not allowed to create this record.",
            403,
        )

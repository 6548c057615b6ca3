"""Initial schema — all tables, constraints, indexes, and reference data.

Revision: 001_initial_schema
Created:  2026-10-16

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Enumerated columns are VARCHAR + CHECK (the models use non-native enums),
so the same schema runs on PostgreSQL and SQLite and adding a value is a
constraint swap, not an ALTER TYPE.

Creation order (FK dependencies):
  users → profiles, refresh_tokens
  expense_categories → expense_records
  savings_goals → savings_transactions
  income_records, currency_rates

ON DELETE policies:
  profiles.user_id                  → CASCADE   (profile owned by identity)
  refresh_tokens.user_id            → CASCADE
  income_records.user_id            → CASCADE
  expense_records.user_id           → CASCADE
  expense_records.category_id       → RESTRICT  (categories in use stay)
  savings_goals.user_id             → CASCADE
  savings_transactions.goal_id      → CASCADE   (history goes with the goal)

Seeds: the eight default expense categories and the two default
USD/GHS rates.
"""

from __future__ import annotations

from decimal import Decimal

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration
branch_labels: tuple | None = None
depends_on: tuple | None = None

QUARTERS = ("Q1", "Q2", "Q3", "Q4")
CURRENCIES = ("USD", "GHS")
ROLES = ("admin", "user")
GOAL_TYPES = ("vacation", "car_service", "tech_stocks", "emergency", "other")
TRANSACTION_TYPES = ("deposit", "withdrawal")

# Frozen copies: later changes to the model constants must not alter what
# this revision seeds.
SEED_CATEGORIES = (
    ("Housing", "Rent, utilities, maintenance"),
    ("Transportation", "Car payments, fuel, public transport"),
    ("Food", "Groceries, dining out"),
    ("Healthcare", "Medical bills, insurance"),
    ("Entertainment", "Movies, games, subscriptions"),
    ("Personal", "Clothing, personal care"),
    ("Technology", "Tech gadgets, software"),
    ("Other", "Miscellaneous expenses"),
)
SEED_RATES = (
    ("USD", "GHS", Decimal("12.0")),
    ("GHS", "USD", Decimal("0.083")),
)


def _in(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    # ── users ──────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("email LIKE '%@%'", name="ck_users_email_format"),
    )

    # ── profiles ───────────────────────────────────────────────────────────
    # One per identity; created by the provisioning service at signup.
    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_profiles_user"),
            nullable=False,
        ),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(5), nullable=False, server_default="user"),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id", name="pk_profiles"),
        sa.UniqueConstraint("user_id", name="uq_profiles_user_id"),
        sa.CheckConstraint("LENGTH(TRIM(full_name)) > 0", name="ck_profiles_full_name_nonempty"),
        sa.CheckConstraint(_in("role", ROLES), name="ck_profiles_role"),
    )

    # ── refresh_tokens ─────────────────────────────────────────────────────
    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_refresh_tokens_user"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_refresh_tokens"),
        sa.UniqueConstraint("token_hash", name="uq_refresh_tokens_token_hash"),
    )
    op.create_index("ix_refresh_tokens_user_id", "refresh_tokens", ["user_id"])

    # ── income_records ─────────────────────────────────────────────────────
    op.create_table(
        "income_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_income_records_user"),
            nullable=False,
        ),
        sa.Column("quarter", sa.String(2), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("source", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id", name="pk_income_records"),
        sa.CheckConstraint("amount > 0", name="ck_income_records_amount_positive"),
        sa.CheckConstraint("year BETWEEN 1900 AND 9999", name="ck_income_records_year_range"),
        sa.CheckConstraint(_in("quarter", QUARTERS), name="ck_income_records_quarter"),
        sa.CheckConstraint(_in("currency", CURRENCIES), name="ck_income_records_currency"),
    )
    op.create_index(
        "idx_income_records_user_period",
        "income_records",
        ["user_id", "year", "quarter"],
    )

    # ── expense_categories ─────────────────────────────────────────────────
    categories = op.create_table(
        "expense_categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_expense_categories"),
        sa.UniqueConstraint("name", name="uq_expense_categories_name"),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_expense_categories_name_nonempty"),
    )

    # ── expense_records ────────────────────────────────────────────────────
    op.create_table(
        "expense_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_expense_records_user"),
            nullable=False,
        ),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey(
                "expense_categories.id",
                ondelete="RESTRICT",
                name="fk_expense_records_category",
            ),
            nullable=False,
        ),
        sa.Column("quarter", sa.String(2), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("expense_date", sa.Date(), nullable=False, server_default=sa.func.current_date()),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id", name="pk_expense_records"),
        sa.CheckConstraint("amount > 0", name="ck_expense_records_amount_positive"),
        sa.CheckConstraint("year BETWEEN 1900 AND 9999", name="ck_expense_records_year_range"),
        sa.CheckConstraint(_in("quarter", QUARTERS), name="ck_expense_records_quarter"),
        sa.CheckConstraint(_in("currency", CURRENCIES), name="ck_expense_records_currency"),
    )
    op.create_index(
        "idx_expense_records_user_period",
        "expense_records",
        ["user_id", "year", "quarter"],
    )
    op.create_index("ix_expense_records_category_id", "expense_records", ["category_id"])

    # ── savings_goals ──────────────────────────────────────────────────────
    # current_amount is derived: only the balance maintainer in
    # services/savings_service.py writes it.
    op.create_table(
        "savings_goals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_savings_goals_user"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("target_amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("current_amount", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("target_date", sa.Date(), nullable=True),
        sa.Column("goal_type", sa.String(11), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id", name="pk_savings_goals"),
        sa.CheckConstraint("target_amount > 0", name="ck_savings_goals_target_positive"),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_savings_goals_name_nonempty"),
        sa.CheckConstraint(_in("currency", CURRENCIES), name="ck_savings_goals_currency"),
        sa.CheckConstraint(_in("goal_type", GOAL_TYPES), name="ck_savings_goals_goal_type"),
    )
    op.create_index("ix_savings_goals_user_id", "savings_goals", ["user_id"])

    # ── savings_transactions ───────────────────────────────────────────────
    op.create_table(
        "savings_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "savings_goal_id",
            sa.Integer(),
            sa.ForeignKey(
                "savings_goals.id",
                ondelete="CASCADE",
                name="fk_savings_transactions_goal",
            ),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("transaction_type", sa.String(10), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "transaction_date",
            sa.Date(),
            nullable=False,
            server_default=sa.func.current_date(),
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_savings_transactions"),
        sa.CheckConstraint("amount > 0", name="ck_savings_transactions_amount_positive"),
        sa.CheckConstraint(
            _in("transaction_type", TRANSACTION_TYPES),
            name="ck_savings_transactions_type",
        ),
    )
    op.create_index(
        "ix_savings_transactions_savings_goal_id",
        "savings_transactions",
        ["savings_goal_id"],
    )

    # ── currency_rates ─────────────────────────────────────────────────────
    rates = op.create_table(
        "currency_rates",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("from_currency", sa.String(3), nullable=False),
        sa.Column("to_currency", sa.String(3), nullable=False),
        sa.Column("rate", sa.Numeric(15, 6), nullable=False),
        sa.Column("date", sa.Date(), nullable=False, server_default=sa.func.current_date()),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_currency_rates"),
        sa.UniqueConstraint(
            "from_currency", "to_currency", "date",
            name="uq_currency_rates_pair_date",
        ),
        sa.CheckConstraint("rate > 0", name="ck_currency_rates_rate_positive"),
        sa.CheckConstraint(_in("from_currency", CURRENCIES), name="ck_currency_rates_from_currency"),
        sa.CheckConstraint(_in("to_currency", CURRENCIES), name="ck_currency_rates_to_currency"),
    )

    # ── Reference data ─────────────────────────────────────────────────────
    op.bulk_insert(
        categories,
        [{"name": name, "description": description} for name, description in SEED_CATEGORIES],
    )
    # `date` is left to its server default (the day the migration runs).
    op.bulk_insert(
        rates,
        [
            {"from_currency": src, "to_currency": dst, "rate": rate}
            for src, dst, rate in SEED_RATES
        ],
    )


def downgrade() -> None:
    """Drops everything in reverse dependency order."""
    op.drop_table("currency_rates")
    op.drop_index("ix_savings_transactions_savings_goal_id", table_name="savings_transactions")
    op.drop_table("savings_transactions")
    op.drop_index("ix_savings_goals_user_id", table_name="savings_goals")
    op.drop_table("savings_goals")
    op.drop_index("ix_expense_records_category_id", table_name="expense_records")
    op.drop_index("idx_expense_records_user_period", table_name="expense_records")
    op.drop_table("expense_records")
    op.drop_table("expense_categories")
    op.drop_index("idx_income_records_user_period", table_name="income_records")
    op.drop_table("income_records")
    op.drop_index("ix_refresh_tokens_user_id", table_name="refresh_tokens")
    op.drop_table("refresh_tokens")
    op.drop_table("profiles")
    op.drop_table("users")

"""
backend/migrations/env.py — Alembic environment for the FinLedger schema.

The database URL is the one the app itself would use: APP_ENV picks the
config class in backend/config.py (development by default), which reads
DATABASE_URL / TEST_DATABASE_URL from the environment or .env.

    alembic -c backend/alembic.ini upgrade head
    APP_ENV=testing alembic -c backend/alembic.ini upgrade head
"""

from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool

# repository root, so `backend.*` resolves when alembic is run from anywhere
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from backend.app.extensions import db  # noqa: E402
from backend.app.models import (  # noqa: E402,F401
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
from backend.config import resolve_config  # noqa: E402

target_metadata = db.metadata

database_url = resolve_config().SQLALCHEMY_DATABASE_URI
if not database_url:
    raise RuntimeError("No database URL configured. Set DATABASE_URL.")

config = context.config
config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# SQLite cannot ALTER most constraints in place.
_batch = database_url.startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit the migration as SQL to stdout (alembic ... --sql)."""
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=_batch,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=_batch,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

# alembic/env.py
# isort: skip_file
# ruff: noqa: E402
"""
Alembic config + environment.

- Uses the application's DATABASE_URL (from .env via remodel.config.get_settings()).
- Autogenerate sees all SQLModel tables by importing remodel.models.

Usage:
  alembic revision -m "..." --autogenerate
  alembic upgrade head
"""

from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlmodel import SQLModel

# --- Ensure project root is importable BEFORE importing remodel.* -----------
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from remodel.config import get_settings
import remodel.models  # noqa: F401  # registers users/rooms/expenses/timeline

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = SQLModel.metadata

# an explicit sqlalchemy.url (alembic.ini or Config API) wins over DATABASE_URL
database_url = config.get_main_option("sqlalchemy.url") or get_settings().database_url
if not database_url:
    raise RuntimeError("DATABASE_URL is not set; nothing to migrate")
config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))


def run_migrations_offline() -> None:
    """Emit SQL without a DB connection."""
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations with a real DB connection."""
    section = config.get_section(config.config_ini_section) or {}
    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=True,  # JSON columns + ALTER on SQLite
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
